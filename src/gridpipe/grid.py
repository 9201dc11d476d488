# src/gridpipe/grid.py
from __future__ import annotations

"""
Grid ground truth.

A pixel mask of side S is coarsened onto a g x g occupancy grid: every cell
covers an `S // g` square block of pixels and is marked if any pixel in the
block is marked. Expanding the grid back to S x S gives the grid
segmentation mask the model is trained on.

Values follow the mask convention: 255 marked, 0 unmarked.
"""

import numpy as np

from .enums import RemainderPolicy
from .errors import GridSizeError, NonSquareImageError
from .utils import MARKED, UNMARKED, binarize


def cell_extent(side: int, grid_size: int) -> int:
    """Pixels per cell side for a grid of `grid_size` cells over `side` pixels."""
    if grid_size < 1:
        raise GridSizeError(f"grid size must be positive, got {grid_size}")
    if grid_size > side:
        raise GridSizeError(f"grid size {grid_size} exceeds image side {side}")
    return side // grid_size


def cell_index(side: int, grid_size: int, remainder: RemainderPolicy | str = RemainderPolicy.REJECT) -> np.ndarray:
    """
    Cell row/column for each pixel row/column, shape (side,).

    When `side` is not a multiple of `grid_size` the trailing pixels would
    fall outside the grid. REJECT raises; CLAMP folds them into the last cell.
    """
    policy = RemainderPolicy(remainder)
    extent = cell_extent(side, grid_size)
    if side % grid_size and policy is RemainderPolicy.REJECT:
        raise GridSizeError(
            f"image side {side} is not divisible by grid size {grid_size} "
            f"({side % grid_size} trailing pixels)"
        )
    return np.minimum(np.arange(side) // extent, grid_size - 1)


def classify(mask: np.ndarray, grid_size: int, remainder: RemainderPolicy | str = RemainderPolicy.REJECT) -> np.ndarray:
    """Occupancy grid (g x g, uint8) of a square mask."""
    m = np.asarray(mask)
    if m.ndim not in (2, 3) or m.shape[0] != m.shape[1]:
        raise NonSquareImageError(f"mask must be square, got shape {m.shape}", stage="grid")
    idx = cell_index(m.shape[0], grid_size, remainder)

    grid = np.zeros((grid_size, grid_size), dtype=np.uint8)
    ys, xs = np.nonzero(binarize(m))
    grid[idx[ys], idx[xs]] = MARKED
    return grid


def expand(grid: np.ndarray, mask_side: int, grid_size: int, remainder: RemainderPolicy | str = RemainderPolicy.REJECT) -> np.ndarray:
    """Full-resolution mask (mask_side x mask_side, uint8) from an occupancy grid."""
    g = np.asarray(grid)
    if g.shape != (grid_size, grid_size):
        raise GridSizeError(f"occupancy grid shape {g.shape} does not match grid size {grid_size}")
    idx = cell_index(mask_side, grid_size, remainder)

    marked = (g != UNMARKED)[idx[:, None], idx[None, :]]
    return np.where(marked, MARKED, UNMARKED).astype(np.uint8)


def grid_ground_truth(mask: np.ndarray, grid_size: int, remainder: RemainderPolicy | str = RemainderPolicy.REJECT) -> np.ndarray:
    m = np.asarray(mask)
    return expand(classify(m, grid_size, remainder), m.shape[0], grid_size, remainder)
