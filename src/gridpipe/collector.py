# src/gridpipe/collector.py
from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional

from .dataset import Dataset
from .errors import EmptyDatasetError, MissingPathError
from .image_io import Cv2ImageIO, ImageIO
from .sample import Sample
from .utils import IMG_EXTS, OUT_EXT, normalize_ext


class SampleCollector:
    """
    Discovers (image, mask) samples.

    Images are the files in `images_dir` with the canonical extension, in
    sorted order. Each is paired with the file of the same stem in
    `masks_dir`; images without a mask are skipped with a warning.
    """

    def __init__(
        self,
        images_dir: Path,
        masks_dir: Path,
        ext: str = OUT_EXT,
        recursive: bool = False,
        io: Optional[ImageIO] = None,
    ) -> None:
        self.images_dir = Path(images_dir)
        self.masks_dir = Path(masks_dir)
        self.ext = normalize_ext(ext)
        self.recursive = recursive
        self.io = io or Cv2ImageIO()

    def _mask_map(self) -> Dict[str, Path]:
        out: Dict[str, Path] = {}
        # canonical extension first so it wins on stem clashes
        for ext in (self.ext,) + tuple(e for e in IMG_EXTS if e != self.ext):
            for p in self.io.list_files(self.masks_dir, ext, recursive=self.recursive):
                out.setdefault(p.stem, p)
        return out

    def collect(self) -> Dataset:
        if not self.io.path_exists(self.images_dir):
            raise MissingPathError(f"image folder does not exist: {self.images_dir}")
        if not self.io.path_exists(self.masks_dir):
            raise MissingPathError(f"mask folder does not exist: {self.masks_dir}")

        img_paths = self.io.list_files(self.images_dir, self.ext, recursive=self.recursive)
        if not img_paths:
            raise EmptyDatasetError(f"no *{self.ext} images found in {self.images_dir}")

        masks = self._mask_map()
        samples: List[Sample] = []
        for ip in img_paths:
            mp = masks.get(ip.stem)
            if mp is None:
                print(f"[WARN] no mask for {ip.name}; skipped")
                continue
            samples.append(Sample(name=ip.name, image_path=ip, mask_path=mp))

        if not samples:
            raise EmptyDatasetError(f"no image in {self.images_dir} has a matching mask in {self.masks_dir}")
        print(f"[COLLECT] {len(samples)} samples from {self.images_dir}")
        return Dataset(samples)
