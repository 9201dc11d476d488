from pathlib import Path
from typing import Dict, List, Set, Tuple

import numpy as np
import pytest

from src.gridpipe.errors import ImageLoadError, ImagePersistError
from src.gridpipe.image_io import ImageIO


class MemoryImageIO(ImageIO):
    """ImageIO over dicts; nothing touches the disk."""

    def __init__(self) -> None:
        self.files: Dict[Path, np.ndarray] = {}
        self.texts: Dict[Path, str] = {}
        self.dirs: Set[Path] = set()
        self.fail_names: Set[str] = set()
        self.saved: List[Path] = []

    def add_dir(self, p: Path) -> None:
        p = Path(p)
        self.dirs.add(p)
        self.dirs.update(p.parents)

    def add_image(self, p: Path, arr: np.ndarray) -> None:
        p = Path(p)
        self.add_dir(p.parent)
        self.files[p] = arr

    def load_image(self, path: Path, grayscale: bool = False) -> np.ndarray:
        arr = self.files.get(Path(path))
        if arr is None:
            raise ImageLoadError(f"could not find/open image {path}")
        if grayscale and arr.ndim == 3:
            return arr[..., 0].copy()
        if not grayscale and arr.ndim == 2:
            return np.stack([arr] * 3, axis=-1)
        return arr.copy()

    def save_image(self, path: Path, data: np.ndarray) -> None:
        path = Path(path)
        if path.name in self.fail_names or path.parent not in self.dirs:
            raise ImagePersistError(f"could not write {path}")
        self.files[path] = np.array(data, copy=True)
        self.saved.append(path)

    def write_text(self, path: Path, text: str) -> None:
        path = Path(path)
        if path.name in self.fail_names or path.parent not in self.dirs:
            raise ImagePersistError(f"could not write {path}")
        self.texts[path] = text

    def ensure_directory(self, path: Path) -> None:
        self.add_dir(Path(path))

    def path_exists(self, path: Path) -> bool:
        path = Path(path)
        return path in self.dirs or path in self.files

    def list_files(self, folder: Path, ext: str, recursive: bool = False) -> List[Path]:
        folder = Path(folder)
        return sorted(
            p for p in self.files
            if p.suffix.lower() == ext
            and (p.parent == folder or (recursive and folder in p.parents))
        )

    def listdir(self, folder: Path) -> List[str]:
        folder = Path(folder)
        return sorted(p.name for p in self.files if p.parent == folder)


def make_pair(side: int, seed: int) -> Tuple[np.ndarray, np.ndarray]:
    rs = np.random.RandomState(seed)
    img = rs.randint(0, 256, size=(side, side, 3)).astype(np.uint8)
    mask = np.zeros((side, side), dtype=np.uint8)
    y, x = rs.randint(0, side, size=2)
    mask[y, x] = 255
    mask[: side // 4, : side // 4] = 200
    return img, mask


@pytest.fixture
def mem_io() -> MemoryImageIO:
    return MemoryImageIO()


def fill_dataset(io: MemoryImageIO, n: int, side: int = 8, root: Path = Path("/data")) -> Tuple[Path, Path]:
    images_dir, masks_dir = root / "images_resized", root / "masks_resized"
    io.add_dir(images_dir)
    io.add_dir(masks_dir)
    for i in range(n):
        img, mask = make_pair(side, i)
        io.add_image(images_dir / f"s{i:02d}.png", img)
        io.add_image(masks_dir / f"s{i:02d}.png", mask)
    return images_dir, masks_dir


@pytest.fixture
def mem_dataset(mem_io):
    """Fills mem_io with n square samples: mem_dataset(n, side) → (images_dir, masks_dir)."""
    def _fill(n: int, side: int = 8) -> Tuple[Path, Path]:
        return fill_dataset(mem_io, n, side)
    return _fill


@pytest.fixture
def mem_io_factory():
    """Independent MemoryImageIO instances: factory(n, side) → (io, images_dir, masks_dir)."""
    def _make(n: int, side: int = 8) -> Tuple[MemoryImageIO, Path, Path]:
        io = MemoryImageIO()
        images_dir, masks_dir = fill_dataset(io, n, side)
        return io, images_dir, masks_dir
    return _make
