#!/usr/bin/env python3
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from src.gridpipe.augment import GridAugmentor, RunReport
from src.gridpipe.config import PipelineConfig
from src.gridpipe.errors import ConfigError, GridPipeError
from src.gridpipe.preprocess import resize_images

ALL_STEPS = ("resize", "generate")


def normalize_steps(steps_arg: str | None, cfg: PipelineConfig) -> List[str]:
    if not steps_arg:
        return ["resize", "generate"] if cfg.raw_root and cfg.resize_to else ["generate"]
    steps = [s.strip() for s in steps_arg.split(",") if s.strip()]
    unknown = [s for s in steps if s not in ALL_STEPS]
    if unknown:
        raise ConfigError(f"unknown steps {unknown}; choose from {list(ALL_STEPS)}")
    return steps


def step_resize(cfg: PipelineConfig) -> None:
    if cfg.raw_root is None or cfg.resize_to is None:
        raise ConfigError("'resize' needs raw_root and resize_to in the config")
    resize_images(
        raw_root=cfg.raw_root,
        size=cfg.resize_to,
        orig_ext=cfg.orig_ext,
        contrast_enhance=cfg.contrast_enhance,
    )


def step_generate(cfg: PipelineConfig) -> RunReport:
    report = GridAugmentor(cfg).run()
    print(f"[OK] {report.total_units} units written → {cfg.dataset_root}")
    return report


# ------------------------------- CLI -------------------------------

def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    ap = argparse.ArgumentParser(description="Grid-augmented segmentation dataset builder")
    ap.add_argument("--config", required=True, help="Path to YAML config.")
    ap.add_argument("--steps", default=None, help="Comma list (subset of: resize,generate)")
    ap.add_argument("--seed", type=int, default=None, help="Override the split seed.")
    ap.add_argument("--workers", type=int, default=None, help="Override the number of worker threads.")
    return ap.parse_args(argv)


# ------------------------------ main -------------------------------

def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    try:
        cfg = PipelineConfig.load(Path(args.config))
        if args.seed is not None:
            cfg.seed = args.seed
        if args.workers is not None:
            cfg.workers = args.workers
        cfg.validate()
        steps = normalize_steps(args.steps, cfg)

        if "resize" in steps:
            step_resize(cfg)

        report = None
        if "generate" in steps:
            report = step_generate(cfg)
    except GridPipeError as e:
        raise SystemExit(f"[ERR] {e}") from e

    return 0 if report is None or report.ok else 1


if __name__ == "__main__":
    sys.exit(main())
