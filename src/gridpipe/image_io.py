# src/gridpipe/image_io.py
from __future__ import annotations

"""
Raster and filesystem capability used by the pipeline.

`ImageIO` is the interface the orchestrator talks to; `Cv2ImageIO` is the
OpenCV-backed implementation. Tests swap in an in-memory implementation.
"""

from pathlib import Path
from typing import List, Tuple

import cv2
import numpy as np

from .errors import ImageLoadError, ImagePersistError
from .utils import ensure_dir, list_files_with_ext, read_image_size


def rotate_image(image: np.ndarray, angle: float, interpolation: int = cv2.INTER_LINEAR) -> np.ndarray:
    """
    Rotate counter-clockwise by `angle` degrees about the image centre, keeping the size.
    Quarter turns of square images are exact; other angles leave a zero border.
    """
    angle = float(angle) % 360.0
    h, w = image.shape[:2]
    if angle == 0.0:
        return image.copy()
    if angle % 90.0 == 0.0 and h == w:
        return np.ascontiguousarray(np.rot90(image, k=int(angle // 90)))

    center = ((w - 1) / 2.0, (h - 1) / 2.0)
    r = cv2.getRotationMatrix2D(center, angle, 1.0)
    return cv2.warpAffine(
        image, r, (w, h),
        flags=interpolation,
        borderMode=cv2.BORDER_CONSTANT,
        borderValue=0,
    )


class ImageIO:
    """Capability interface: image read/write/rotate plus the directory helpers."""

    def load_image(self, path: Path, grayscale: bool = False) -> np.ndarray:
        raise NotImplementedError

    def save_image(self, path: Path, data: np.ndarray) -> None:
        raise NotImplementedError

    def image_size(self, path: Path) -> Tuple[int, int]:
        """(width, height)"""
        h, w = self.load_image(path).shape[:2]
        return w, h

    def rotate(self, image: np.ndarray, angle: float, is_mask: bool = False) -> np.ndarray:
        interp = cv2.INTER_NEAREST if is_mask else cv2.INTER_LINEAR
        return rotate_image(image, angle, interpolation=interp)

    def write_text(self, path: Path, text: str) -> None:
        raise NotImplementedError

    def ensure_directory(self, path: Path) -> None:
        raise NotImplementedError

    def path_exists(self, path: Path) -> bool:
        raise NotImplementedError

    def list_files(self, folder: Path, ext: str, recursive: bool = False) -> List[Path]:
        raise NotImplementedError


class Cv2ImageIO(ImageIO):
    """OpenCV on the local filesystem."""

    def load_image(self, path: Path, grayscale: bool = False) -> np.ndarray:
        flag = cv2.IMREAD_GRAYSCALE if grayscale else cv2.IMREAD_COLOR
        img = cv2.imread(str(path), flag)
        if img is None:
            raise ImageLoadError(f"could not find/open image {path}")
        return img

    def save_image(self, path: Path, data: np.ndarray) -> None:
        try:
            ok = cv2.imwrite(str(path), data)
        except cv2.error as e:
            raise ImagePersistError(f"could not write {path}: {e}") from e
        if not ok:
            raise ImagePersistError(f"could not write {path}")

    def image_size(self, path: Path) -> Tuple[int, int]:
        try:
            return read_image_size(Path(path))
        except Exception as e:
            raise ImageLoadError(f"could not read size of {path}: {e}") from e

    def write_text(self, path: Path, text: str) -> None:
        try:
            Path(path).write_text(text)
        except OSError as e:
            raise ImagePersistError(f"could not write {path}: {e}") from e

    def ensure_directory(self, path: Path) -> None:
        ensure_dir(Path(path))

    def path_exists(self, path: Path) -> bool:
        return Path(path).exists()

    def list_files(self, folder: Path, ext: str, recursive: bool = False) -> List[Path]:
        return list_files_with_ext(Path(folder), (ext,), recursive=recursive)
