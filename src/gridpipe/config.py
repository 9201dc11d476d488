# src/gridpipe/config.py
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from .enums import RemainderPolicy
from .errors import ConfigError

DEFAULT_GRID_SIZES = [2, 4, 8, 16, 128]


@dataclass
class PipelineConfig:
    # Core
    project_dir: Path

    # Inputs (already resized, square, canonical extension)
    images_dir: Path
    masks_dir: Path

    # Output
    dataset_root: Path

    img_ext: str = ".png"
    recursive: bool = False

    # Grids
    grid_sizes: List[int] = field(default_factory=lambda: list(DEFAULT_GRID_SIZES))
    remainder: str = RemainderPolicy.REJECT.value

    # Split
    val_frac: float = 0.0
    test_frac: float = 0.2
    seed: Optional[int] = None  # None → fresh split every run

    # Augment
    rotate_augment: bool = True
    workers: int = 1

    # Resize step (optional)
    raw_root: Optional[Path] = None
    resize_to: Optional[Tuple[int, int]] = None
    orig_ext: str = ".jpg"
    contrast_enhance: bool = False

    # Keep raw YAML
    raw: Dict[str, Any] = field(default_factory=dict)

    def validate(self) -> "PipelineConfig":
        if not self.grid_sizes:
            raise ConfigError("grid_sizes must not be empty")
        bad = [g for g in self.grid_sizes if int(g) < 1]
        if bad:
            raise ConfigError(f"grid sizes must be positive, got {bad}")
        for name in ("val_frac", "test_frac"):
            v = getattr(self, name)
            if not 0.0 <= v < 1.0:
                raise ConfigError(f"{name} must be in [0, 1), got {v}")
        try:
            RemainderPolicy(self.remainder)
        except ValueError:
            raise ConfigError(
                f"remainder must be one of {[p.value for p in RemainderPolicy]}, got {self.remainder!r}"
            ) from None
        if self.workers < 1:
            raise ConfigError(f"workers must be >= 1, got {self.workers}")
        if self.resize_to is not None and (len(self.resize_to) != 2 or min(self.resize_to) < 1):
            raise ConfigError(f"resize_to must be [width, height], got {self.resize_to}")
        return self

    @classmethod
    def load(cls, path: Path) -> "PipelineConfig":
        import yaml

        with open(path, "r") as f:
            cfg = yaml.safe_load(f) or {}
        return cls.from_dict(cfg, base_dir=Path(path).parent)

    @classmethod
    def from_dict(cls, cfg: Dict[str, Any], base_dir: Path) -> "PipelineConfig":
        import os

        def _p(v: Any, rel_to: Path) -> Optional[Path]:
            if v in (None, "", False):
                return None
            p = Path(os.path.expanduser(str(v)))
            return (p if p.is_absolute() else rel_to / p).resolve()

        # Project dir (default to config file's parent if not supplied)
        proj = _p(cfg.get("project_dir"), base_dir) or Path(base_dir).resolve()

        # Defaults mirror the resize step's output folders
        raw_root = _p(cfg.get("raw_root"), proj)
        data_base = raw_root or proj
        images_dir = _p(cfg.get("images_dir"), proj) or (data_base / "images_resized").resolve()
        masks_dir = _p(cfg.get("masks_dir"), proj) or (data_base / "masks_resized").resolve()
        dataset_root = _p(cfg.get("dataset_root"), proj) or data_base

        grid_sizes = cfg.get("grid_sizes", DEFAULT_GRID_SIZES)
        if isinstance(grid_sizes, (int, str)):
            grid_sizes = [x.strip() for x in str(grid_sizes).split(",") if x.strip()]

        resize_to = cfg.get("resize_to")
        seed = cfg.get("seed")
        try:
            if isinstance(resize_to, int):
                resize_to = (resize_to, resize_to)
            elif resize_to:
                resize_to = tuple(int(x) for x in resize_to)

            return cls(
                project_dir=proj,
                images_dir=images_dir,
                masks_dir=masks_dir,
                dataset_root=dataset_root,
                img_ext=str(cfg.get("img_ext", ".png")),
                recursive=bool(cfg.get("recursive", False)),

                grid_sizes=[int(g) for g in grid_sizes],
                remainder=str(cfg.get("remainder", RemainderPolicy.REJECT.value)),

                val_frac=float(cfg.get("val_frac", 0.0)),
                test_frac=float(cfg.get("test_frac", 0.2)),
                seed=None if seed is None else int(seed),

                rotate_augment=bool(cfg.get("rotate_augment", True)),
                workers=int(cfg.get("workers", 1)),

                raw_root=raw_root,
                resize_to=resize_to or None,
                orig_ext=str(cfg.get("orig_ext", ".jpg")),
                contrast_enhance=bool(cfg.get("contrast_enhance", False)),

                raw=cfg,
            ).validate()
        except (TypeError, ValueError) as e:
            raise ConfigError(f"invalid config value: {e}") from e
