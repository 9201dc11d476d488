import numpy as np
import pytest

from src.gridpipe.enums import RemainderPolicy
from src.gridpipe.errors import GridSizeError, NonSquareImageError, PartitionSizeError
from src.gridpipe.grid import cell_extent, cell_index, classify, expand, grid_ground_truth


def test_cell_extent():
    assert cell_extent(128, 4) == 32
    assert cell_extent(10, 3) == 3
    with pytest.raises(GridSizeError):
        cell_extent(8, 0)
    with pytest.raises(GridSizeError):
        cell_extent(8, 16)


def test_single_pixel_marks_one_cell():
    m = np.zeros((8, 8), dtype=np.uint8)
    m[3, 5] = 200  # rows 2..3, cols 4..5 → cell (1, 2)
    grid = classify(m, 4)
    assert grid.shape == (4, 4)
    assert grid.dtype == np.uint8
    assert grid[1, 2] == 255
    assert np.count_nonzero(grid) == 1


def test_threshold_is_strict():
    m = np.zeros((8, 8), dtype=np.uint8)
    m[0, 0] = 127
    m[7, 7] = 128
    grid = classify(m, 4)
    assert grid[0, 0] == 0
    assert grid[3, 3] == 255
    assert np.count_nonzero(grid) == 1


def test_bool_and_three_channel_masks():
    m = np.zeros((4, 4), dtype=bool)
    m[0, 3] = True
    assert classify(m, 2)[0, 1] == 255

    rgb = np.zeros((4, 4, 3), dtype=np.uint8)
    rgb[3, 0] = 255
    assert classify(rgb, 2)[1, 0] == 255


def test_expand_fills_cells():
    grid = np.zeros((2, 2), dtype=np.uint8)
    grid[0, 1] = 255
    out = expand(grid, 6, 2)
    assert out.shape == (6, 6)
    assert (out[:3, 3:] == 255).all()
    assert np.count_nonzero(out) == 9


def test_no_false_positives():
    rs = np.random.RandomState(0)
    m = (rs.rand(32, 32) > 0.97).astype(np.uint8) * 255
    gt = grid_ground_truth(m, 8)
    # every marked mask pixel is covered, and every marked cell holds a marked pixel
    assert (gt[m > 127] == 255).all()
    grid = classify(m, 8)
    for r, c in zip(*np.nonzero(grid)):
        assert (m[r * 4:(r + 1) * 4, c * 4:(c + 1) * 4] > 127).any()


@pytest.mark.parametrize("g", [1, 2, 4, 8, 16])
def test_roundtrip_is_stable(g):
    rs = np.random.RandomState(g)
    m = (rs.rand(16, 16) > 0.9).astype(np.uint8) * 255
    first = grid_ground_truth(m, g)
    second = grid_ground_truth(first, g)
    assert np.array_equal(first, second)


def test_remainder_rejected_by_default():
    m = np.zeros((10, 10), dtype=np.uint8)
    with pytest.raises(GridSizeError):
        classify(m, 4)
    # grid size errors are partition-size class diagnostics
    with pytest.raises(PartitionSizeError):
        classify(m, 3)


def test_remainder_clamped_into_last_cell():
    m = np.zeros((10, 10), dtype=np.uint8)
    m[9, 9] = 255  # index 9 // 2 == 4, beyond a 4x4 grid
    grid = classify(m, 4, RemainderPolicy.CLAMP)
    assert grid[3, 3] == 255
    assert np.count_nonzero(grid) == 1

    out = expand(grid, 10, 4, "clamp")
    assert (out[6:, 6:] == 255).all()
    assert np.count_nonzero(out) == 16


def test_cell_index_clamped():
    idx = cell_index(10, 3, RemainderPolicy.CLAMP)
    assert idx.tolist() == [0, 0, 0, 1, 1, 1, 2, 2, 2, 2]


def test_non_square_mask():
    with pytest.raises(NonSquareImageError):
        classify(np.zeros((8, 4), dtype=np.uint8), 2)


def test_expand_rejects_wrong_grid_shape():
    with pytest.raises(GridSizeError):
        expand(np.zeros((3, 3), dtype=np.uint8), 8, 4)
