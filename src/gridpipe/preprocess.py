# src/gridpipe/preprocess.py
from __future__ import annotations

"""
Resize step: bring raw images and masks to a common square size and to PNG.

    raw_root/images/*<orig_ext>  →  raw_root/images_resized/<stem>.png
    raw_root/masks/*<orig_ext>   →  raw_root/masks_resized/<stem>.png

Images are optionally contrast enhanced with CLAHE, one channel at a time.
An unreadable source file stops the step; a failed write is logged and skipped.
"""

from pathlib import Path
from typing import Optional, Tuple

import cv2
import numpy as np

from .errors import ImageLoadError, ImagePersistError, MissingPathError
from .image_io import Cv2ImageIO, ImageIO
from .utils import OUT_EXT, normalize_ext


def enhance_contrast(image: np.ndarray, clip_limit: float = 2.0) -> np.ndarray:
    clahe = cv2.createCLAHE(clipLimit=clip_limit)
    if image.ndim == 2:
        return clahe.apply(image)
    chans = [clahe.apply(np.ascontiguousarray(image[..., c])) for c in range(image.shape[2])]
    return cv2.merge(chans)


def resize(image: np.ndarray, size: Tuple[int, int], is_mask: bool = False) -> np.ndarray:
    """`size` is (width, height)."""
    interp = cv2.INTER_NEAREST if is_mask else cv2.INTER_AREA
    return cv2.resize(image, tuple(int(v) for v in size), interpolation=interp)


def _resize_folder(
    io: ImageIO,
    src: Path,
    dst: Path,
    size: Tuple[int, int],
    orig_ext: str,
    is_mask: bool,
    contrast_enhance: bool,
) -> int:
    if not io.path_exists(src):
        raise MissingPathError(f"source folder does not exist: {src}", stage="resize")
    io.ensure_directory(dst)

    written = 0
    for p in io.list_files(src, orig_ext, recursive=True):
        try:
            img = io.load_image(p, grayscale=is_mask)
        except ImageLoadError as e:
            raise ImageLoadError(str(e.args[0]), stage="resize") from e
        out = resize(img, size, is_mask=is_mask)
        if contrast_enhance and not is_mask:
            out = enhance_contrast(out)
        try:
            io.save_image(dst / f"{p.stem}{OUT_EXT}", out)
        except ImagePersistError as e:
            print(f"[ERR] {e}")
            continue
        written += 1
    return written


def resize_images(
    raw_root: Path,
    size: Tuple[int, int],
    orig_ext: str = ".jpg",
    contrast_enhance: bool = False,
    io: Optional[ImageIO] = None,
) -> Tuple[int, int]:
    """Returns (n_images, n_masks) written."""
    io = io or Cv2ImageIO()
    raw_root = Path(raw_root)
    ext = normalize_ext(orig_ext)

    n_masks = _resize_folder(io, raw_root / "masks", raw_root / "masks_resized", size, ext, True, False)
    n_imgs = _resize_folder(io, raw_root / "images", raw_root / "images_resized", size, ext, False, contrast_enhance)
    print(f"[RESIZE] {n_imgs} images, {n_masks} masks → {size[0]}x{size[1]} in {raw_root}")
    return n_imgs, n_masks
