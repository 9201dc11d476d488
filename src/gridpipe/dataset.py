from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Tuple

from .partition import split_dataset
from .sample import Sample


@dataclass
class Dataset:
    """Ordered container of samples, with a split helper."""
    samples: List[Sample] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.samples)

    def __iter__(self) -> Iterator[Sample]:
        return iter(self.samples)

    def names(self) -> List[str]:
        return [s.name for s in self.samples]

    def split(
        self,
        val_frac: float,
        test_frac: float,
        seed: Optional[int] = None,
        rng: Optional[random.Random] = None,
    ) -> List[Tuple[str, "Dataset"]]:
        """[(partition_name, Dataset), ...] in train, [val,] test order."""
        names, parts = split_dataset(self.samples, val_frac, test_frac, seed=seed, rng=rng)
        return [(name, Dataset(part)) for name, part in zip(names, parts)]
