from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict


@dataclass(frozen=True)
class Sample:
    """One (image, mask) pair. `name` is the image filename and identifies the sample."""
    name: str
    image_path: Path
    mask_path: Path

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "image_path": str(self.image_path),
            "mask_path": str(self.mask_path),
        }

    def __repr__(self) -> str:
        return f"Sample(name={self.name!r})"
