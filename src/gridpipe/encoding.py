from __future__ import annotations

import numpy as np

from .enums import RemainderPolicy
from .grid import cell_index
from .utils import MARKED, UNMARKED


def generate_grid_encoding(
    img_size: int,
    grid_size: int,
    remainder: RemainderPolicy | str = RemainderPolicy.REJECT,
) -> np.ndarray:
    """
    Checkerboard over a g x g grid: pixel (i, k) is on (255) when its cell row
    and cell column have different parity, off (0) otherwise. Cell (0, 0) is off.

    Pixels map to cells exactly as in grid_ground_truth, so under the clamp
    policy the leftover pixels belong to the last cell.

    Depends only on (img_size, grid_size, remainder), so one encoding serves
    every sample of a partition.
    """
    parity = cell_index(img_size, grid_size, remainder) % 2
    on = parity[:, None] != parity[None, :]
    return np.where(on, MARKED, UNMARKED).astype(np.uint8)
