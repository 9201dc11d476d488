from __future__ import annotations

from pathlib import Path
from typing import Iterable, List, Tuple

import numpy as np


IMG_EXTS = (".png", ".jpg", ".jpeg", ".tif", ".tiff", ".bmp")

# Canonical output format
OUT_EXT = ".png"

# A mask pixel is marked iff its value exceeds this
MARK_THRESHOLD = 127
MARKED = 255
UNMARKED = 0


def ensure_dir(p: Path) -> None:
    p.mkdir(parents=True, exist_ok=True)


def normalize_ext(ext: str) -> str:
    ext = ext.strip().lower()
    return ext if ext.startswith(".") else f".{ext}"


def list_files_with_ext(root: Path, exts: Iterable[str] = IMG_EXTS, recursive: bool = True) -> List[Path]:
    exts = tuple(normalize_ext(e) for e in exts)
    if recursive:
        return sorted([p for p in root.rglob("*") if p.is_file() and p.suffix.lower() in exts])
    return sorted([p for p in root.iterdir() if p.is_file() and p.suffix.lower() in exts])


def read_image_size(img_path: Path) -> Tuple[int, int]:
    """Return (width, height) without fully decoding if possible."""
    try:
        from PIL import Image  # type: ignore
        with Image.open(img_path) as im:
            return im.size  # (W, H)
    except Exception:
        pass
    import cv2  # type: ignore
    im = cv2.imread(str(img_path), cv2.IMREAD_UNCHANGED)
    if im is None:
        raise RuntimeError(f"Unable to read image size for {img_path}")
    h, w = im.shape[:2]
    return w, h


def binarize(mask: np.ndarray, threshold: int = MARK_THRESHOLD) -> np.ndarray:
    """Boolean view of a mask: True where value > threshold."""
    if mask.ndim == 3:
        mask = mask[..., 0]
    if mask.dtype == np.bool_:
        return mask
    return mask > threshold
