import cv2
import numpy as np
import pytest

from src.gridpipe.errors import ImageLoadError, ImagePersistError
from src.gridpipe.image_io import Cv2ImageIO, rotate_image


def test_rotate_zero_is_copy():
    a = np.arange(16, dtype=np.uint8).reshape(4, 4)
    r = rotate_image(a, 0)
    assert np.array_equal(a, r)
    assert r is not a


@pytest.mark.parametrize("angle,k", [(90, 1), (180, 2), (270, 3), (360, 0), (-90, 3)])
def test_quarter_turns_are_exact(angle, k):
    a = np.arange(25, dtype=np.uint8).reshape(5, 5)
    assert np.array_equal(rotate_image(a, angle), np.rot90(a, k))


def test_quarter_turn_color():
    a = np.random.RandomState(0).randint(0, 255, (6, 6, 3)).astype(np.uint8)
    r = rotate_image(a, 90)
    assert r.shape == a.shape
    assert r.flags["C_CONTIGUOUS"]
    assert np.array_equal(r[..., 1], np.rot90(a[..., 1]))


def test_arbitrary_angle_keeps_size():
    a = np.full((20, 20), 255, dtype=np.uint8)
    r = rotate_image(a, 45, interpolation=cv2.INTER_NEAREST)
    assert r.shape == (20, 20)
    # corners fall outside the rotated square and are zero-filled
    assert r[0, 0] == 0
    assert r[10, 10] == 255


def test_cv2_roundtrip(tmp_path):
    io = Cv2ImageIO()
    img = np.random.RandomState(1).randint(0, 255, (8, 8, 3)).astype(np.uint8)
    p = tmp_path / "x.png"
    io.save_image(p, img)
    assert np.array_equal(io.load_image(p), img)
    assert io.load_image(p, grayscale=True).shape == (8, 8)
    assert io.image_size(p) == (8, 8)


def test_cv2_load_missing(tmp_path):
    with pytest.raises(ImageLoadError):
        Cv2ImageIO().load_image(tmp_path / "nope.png")


def test_cv2_save_into_missing_folder(tmp_path):
    with pytest.raises(ImagePersistError):
        Cv2ImageIO().save_image(tmp_path / "missing" / "x.png", np.zeros((4, 4), dtype=np.uint8))


def test_cv2_list_files(tmp_path):
    io = Cv2ImageIO()
    for name in ("b.png", "a.png", "c.jpg"):
        (tmp_path / name).write_bytes(b"")
    io.ensure_directory(tmp_path / "sub")
    (tmp_path / "sub" / "d.png").write_bytes(b"")
    assert [p.name for p in io.list_files(tmp_path, ".png")] == ["a.png", "b.png"]
    assert [p.name for p in io.list_files(tmp_path, ".png", recursive=True)] == ["a.png", "b.png", "d.png"]
