# src/gridpipe/augment.py
from __future__ import annotations

"""
Grid augmentation of a segmentation dataset.

For every partition (train/val/test) and every (sample, rotation, grid size)
combination one augmented unit is written:

    dataset_root/<split>/imgs/<n>.png
    dataset_root/<split>/masks/<n>.png
    dataset_root/<split>/<g>x<g>grids/imgs/<n>.png
    dataset_root/<split>/<g>x<g>grids/masks/<n>.png

where <n> counts units from 0 within the partition, and masks are the grid
ground truth of the rotated pixel mask. Each grid folder also receives a
`grid_encoding.png` shared by all samples of the partition.

Rotations (0/90/180/270) are applied to the train partition only, and only
when `rotate_augment` is on.

Usage
-----
from pathlib import Path
from src.gridpipe.config import PipelineConfig
from src.gridpipe.augment import GridAugmentor

cfg = PipelineConfig.load(Path("grid.yaml"))
report = GridAugmentor(cfg).run()
"""

import csv
import random
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from io import StringIO
from itertools import groupby
from operator import attrgetter
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

import numpy as np
import yaml

from .collector import SampleCollector
from .config import PipelineConfig
from .dataset import Dataset
from .encoding import generate_grid_encoding
from .enums import Split
from .errors import ImageLoadError, ImagePersistError, NonSquareImageError
from .grid import cell_index, grid_ground_truth
from .image_io import Cv2ImageIO, ImageIO
from .sample import Sample
from .utils import OUT_EXT

ROTATIONS = (0, 90, 180, 270)
NO_ROTATION = (0,)

MANIFEST_FIELDS = ("index", "name", "image_path", "mask_path", "rotation", "grid_size")


# ----------------------------- unit enumeration -----------------------------

@dataclass(frozen=True)
class AugmentedUnit:
    """One emitted (image, grid mask) pair; `index` is its output filename stem."""
    index: int
    sample: Sample
    rotation: int
    grid_size: int


def rotations_for(partition: str, rotate_augment: bool) -> Tuple[int, ...]:
    if partition == Split.TRAIN.value and rotate_augment:
        return ROTATIONS
    return NO_ROTATION


def iter_units(
    samples: Iterable[Sample],
    rotations: Sequence[int],
    grid_sizes: Sequence[int],
    start: int = 0,
) -> Iterator[AugmentedUnit]:
    """Sample → rotation → grid size, indices assigned up front so any scheduler writes the same files."""
    n = start
    for sample in samples:
        for rotation in rotations:
            for grid_size in grid_sizes:
                yield AugmentedUnit(n, sample, rotation, grid_size)
                n += 1


def grids_dirname(grid_size: int) -> str:
    return f"{grid_size}x{grid_size}grids"


# ----------------------------- reports --------------------------------------

@dataclass
class PartitionReport:
    name: str
    samples: int = 0
    units: int = 0
    failed_writes: List[str] = field(default_factory=list)


@dataclass
class RunReport:
    img_size: int
    grid_sizes: List[int]
    partitions: List[PartitionReport] = field(default_factory=list)
    # run-level files (data.yaml)
    failed_writes: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed_writes and all(not p.failed_writes for p in self.partitions)

    @property
    def total_units(self) -> int:
        return sum(p.units for p in self.partitions)

    def partition(self, name: str) -> Optional[PartitionReport]:
        for p in self.partitions:
            if p.name == name:
                return p
        return None


# ----------------------------- orchestrator ---------------------------------

class GridAugmentor:
    """
    Runs discovery → probing → partitioning → per-partition augmentation.

    Everything up to and including sample loading is fatal and raises a
    GridPipeError naming the stage. Failed writes are reported per file and
    the run continues.
    """

    def __init__(self, cfg: PipelineConfig, io: Optional[ImageIO] = None, rng: Optional[random.Random] = None) -> None:
        self.cfg = cfg
        self.io = io or Cv2ImageIO()
        self.rng = rng or random.Random(cfg.seed)
        self.ext = OUT_EXT

    # -------------------- stages --------------------

    def discover(self) -> Dataset:
        return SampleCollector(
            images_dir=self.cfg.images_dir,
            masks_dir=self.cfg.masks_dir,
            ext=self.cfg.img_ext,
            recursive=self.cfg.recursive,
            io=self.io,
        ).collect()

    def probe(self, ds: Dataset) -> int:
        """Side length shared by all samples, read from the first one."""
        first = ds.samples[0]
        try:
            w, h = self.io.image_size(first.image_path)
        except ImageLoadError as e:
            raise ImageLoadError(str(e.args[0]), stage="probing") from e
        if w != h:
            raise NonSquareImageError(f"{first.name} is {w}x{h}; images must be square", stage="probing")

        # every grid size must map onto the side before anything is written
        for g in self.cfg.grid_sizes:
            cell_index(w, g, self.cfg.remainder)
        print(f"[PROBE] image side {w}px; grid sizes {list(self.cfg.grid_sizes)}")
        return w

    def partition(self, ds: Dataset) -> List[Tuple[str, Dataset]]:
        parts = ds.split(self.cfg.val_frac, self.cfg.test_frac, rng=self.rng)
        print("[SPLIT] " + " | ".join(f"{name}={len(part)}" for name, part in parts))
        return parts

    def run(self) -> RunReport:
        ds = self.discover()
        img_size = self.probe(ds)
        parts = self.partition(ds)

        report = RunReport(img_size=img_size, grid_sizes=list(self.cfg.grid_sizes))
        for name, part in parts:
            report.partitions.append(self.process_partition(name, part, img_size))
        self._write_summary(report)

        for p in report.partitions:
            status = "OK" if not p.failed_writes else "WARN"
            print(f"[{status}] {p.name}: {p.units} units from {p.samples} samples, {len(p.failed_writes)} failed writes")
        return report

    # -------------------- per partition --------------------

    def _partition_root(self, name: str) -> Path:
        return Path(self.cfg.dataset_root) / name

    def process_partition(self, name: str, part: Dataset, img_size: int) -> PartitionReport:
        root = self._partition_root(name)
        grid_sizes = list(self.cfg.grid_sizes)
        rotations = rotations_for(name, self.cfg.rotate_augment)
        rep = PartitionReport(name=name, samples=len(part))

        self.io.ensure_directory(root / "imgs")
        self.io.ensure_directory(root / "masks")
        for g in grid_sizes:
            gdir = root / grids_dirname(g)
            self.io.ensure_directory(gdir / "imgs")
            self.io.ensure_directory(gdir / "masks")
            enc_path = gdir / f"grid_encoding{self.ext}"
            if self._save(enc_path, generate_grid_encoding(img_size, g, self.cfg.remainder)):
                print(f"[ENCODE] {name} {g}x{g} → {enc_path}")
            else:
                rep.failed_writes.append(str(enc_path))

        units = list(iter_units(part.samples, rotations, grid_sizes))
        rep.units = len(units)
        print(f"[AUG] {name}: {len(part)} samples x {len(rotations)} rotations x {len(grid_sizes)} grid sizes = {len(units)} units")

        groups = [(s, list(us)) for s, us in groupby(units, key=attrgetter("sample"))]
        if self.cfg.workers > 1 and len(groups) > 1:
            abort = threading.Event()

            def _task(s: Sample, us: List[AugmentedUnit]) -> List[str]:
                if abort.is_set():
                    return []
                try:
                    return self._process_sample(s, us, img_size, root)
                except BaseException:
                    abort.set()
                    raise

            with ThreadPoolExecutor(max_workers=self.cfg.workers) as ex:
                futures = [ex.submit(_task, s, us) for s, us in groups]
                try:
                    for fut in futures:
                        rep.failed_writes.extend(fut.result())
                except BaseException:
                    # fatal: drop samples that have not started yet
                    ex.shutdown(wait=True, cancel_futures=True)
                    raise
        else:
            for s, us in groups:
                rep.failed_writes.extend(self._process_sample(s, us, img_size, root))

        self._write_manifest(root, units, rep)
        return rep

    # -------------------- per sample --------------------

    def _load_sample(self, sample: Sample, img_size: int) -> Tuple[np.ndarray, np.ndarray]:
        img = self.io.load_image(sample.image_path)
        mask = self.io.load_image(sample.mask_path, grayscale=True)

        h, w = img.shape[:2]
        if w != h:
            raise NonSquareImageError(f"{sample.name} is {w}x{h}; images must be square", stage="loading")
        if mask.shape[:2] != img.shape[:2]:
            raise ImageLoadError(f"mask {sample.mask_path} is {mask.shape[1]}x{mask.shape[0]}, image is {w}x{h}")
        if w != img_size:
            raise ImageLoadError(f"{sample.name} is {w}px, expected {img_size}px like the first sample")
        return img, mask

    def _process_sample(self, sample: Sample, units: List[AugmentedUnit], img_size: int, root: Path) -> List[str]:
        img, mask = self._load_sample(sample, img_size)

        failed: List[str] = []
        rotated: Dict[int, Tuple[np.ndarray, np.ndarray]] = {}
        for unit in units:
            if unit.rotation not in rotated:
                rotated[unit.rotation] = (
                    self.io.rotate(img, unit.rotation),
                    self.io.rotate(mask, unit.rotation, is_mask=True),
                )
            img_rot, mask_rot = rotated[unit.rotation]
            grid_mask = grid_ground_truth(mask_rot, unit.grid_size, self.cfg.remainder)

            fname = f"{unit.index}{self.ext}"
            gdir = root / grids_dirname(unit.grid_size)
            for path, data in (
                (root / "imgs" / fname, img_rot),
                (root / "masks" / fname, grid_mask),
                (gdir / "imgs" / fname, img_rot),
                (gdir / "masks" / fname, grid_mask),
            ):
                if not self._save(path, data):
                    failed.append(str(path))
        return failed

    # -------------------- persistence --------------------

    def _save(self, path: Path, data: np.ndarray) -> bool:
        try:
            self.io.save_image(path, data)
        except ImagePersistError as e:
            print(f"[ERR] {e}")
            return False
        return True

    def _write_text(self, path: Path, text: str) -> bool:
        try:
            self.io.write_text(path, text)
        except ImagePersistError as e:
            print(f"[ERR] {e}")
            return False
        return True

    def _write_manifest(self, root: Path, units: List[AugmentedUnit], rep: PartitionReport) -> None:
        buf = StringIO()
        w = csv.DictWriter(buf, fieldnames=MANIFEST_FIELDS, lineterminator="\n")
        w.writeheader()
        for u in units:
            w.writerow(dict(u.sample.to_dict(), index=u.index, rotation=u.rotation, grid_size=u.grid_size))
        path = root / "manifest.csv"
        if not self._write_text(path, buf.getvalue()):
            rep.failed_writes.append(str(path))

    def _write_summary(self, report: RunReport) -> None:
        data = {
            "path": str(self.cfg.dataset_root),
            "img_size": report.img_size,
            "grid_sizes": report.grid_sizes,
            "grid_dirs": [grids_dirname(g) for g in report.grid_sizes],
            "rotate_augment": bool(self.cfg.rotate_augment),
            "seed": self.cfg.seed,
            "splits": {
                p.name: {"samples": p.samples, "units": p.units, "failed_writes": len(p.failed_writes)}
                for p in report.partitions
            },
        }
        path = Path(self.cfg.dataset_root) / "data.yaml"
        if not self._write_text(path, yaml.safe_dump(data, sort_keys=False)):
            report.failed_writes.append(str(path))
