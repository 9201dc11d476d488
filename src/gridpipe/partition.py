# src/gridpipe/partition.py
from __future__ import annotations

"""
Random train/val/test partitioning.

The test cut is taken from the whole collection; the validation cut is then
taken from what remains (val_frac is relative to train+val, not to the
total). Membership is random; pass `seed` or an explicit `random.Random`
to make it reproducible.
"""

import math
import random
from typing import List, Optional, Sequence, Tuple, TypeVar

from .enums import Split
from .errors import PartitionSizeError

T = TypeVar("T")


def _check_frac(name: str, frac: float) -> float:
    frac = float(frac)
    if not 0.0 <= frac < 1.0:
        raise PartitionSizeError(f"{name} must be in [0, 1), got {frac}")
    return frac


def train_test_split(items: Sequence[T], test_size: int, rng: random.Random) -> Tuple[List[T], List[T]]:
    """Shuffle a copy of `items` and cut the first `test_size` off as test."""
    data = list(items)
    if not 0 <= test_size <= len(data):
        raise PartitionSizeError(f"test size {test_size} out of range for {len(data)} items")
    if test_size == 0:
        return data, []

    rng.shuffle(data)
    test, train = data[:test_size], data[test_size:]
    if len(test) != test_size:
        raise PartitionSizeError(f"could not retrieve {test_size} test items, got {len(test)}")
    return train, test


def split_dataset(
    ids: Sequence[T],
    val_frac: float,
    test_frac: float,
    seed: Optional[int] = None,
    rng: Optional[random.Random] = None,
) -> Tuple[List[str], List[List[T]]]:
    """
    Split `ids` into ["train", "test"] (val_frac == 0) or ["train", "val", "test"].

    Returns (names, partitions) with partitions in the same order as names.
    """
    val_frac = _check_frac("val_frac", val_frac)
    test_frac = _check_frac("test_frac", test_frac)
    rng = rng or random.Random(seed)

    total = len(ids)
    test_size = math.floor(test_frac * total)
    train_and_val, test = train_test_split(ids, test_size, rng)

    if val_frac == 0:
        names = [Split.TRAIN.value, Split.TEST.value]
        parts = [train_and_val, test]
    else:
        val_size = math.floor(val_frac * len(train_and_val))
        train, val = train_test_split(train_and_val, val_size, rng)
        names = [Split.TRAIN.value, Split.VAL.value, Split.TEST.value]
        parts = [train, val, test]

    if sum(len(p) for p in parts) != total:
        raise PartitionSizeError(
            f"partition sizes {[len(p) for p in parts]} do not add up to {total}"
        )
    return names, parts
