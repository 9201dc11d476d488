# src/gridpipe/errors.py
from __future__ import annotations

from typing import Optional


class GridPipeError(RuntimeError):
    """Base error. `stage` names the pipeline stage that failed (discovery, probing, ...)."""

    default_stage: Optional[str] = None

    def __init__(self, message: str, stage: Optional[str] = None) -> None:
        super().__init__(message)
        self.stage = stage or self.default_stage

    def __str__(self) -> str:
        msg = super().__str__()
        return f"{self.stage}: {msg}" if self.stage else msg


class ConfigError(GridPipeError):
    default_stage = "config"


class MissingPathError(GridPipeError):
    default_stage = "discovery"


class EmptyDatasetError(GridPipeError):
    default_stage = "discovery"


class NonSquareImageError(GridPipeError):
    pass


class PartitionSizeError(GridPipeError):
    default_stage = "partitioning"


class GridSizeError(PartitionSizeError):
    """Grid size cannot be mapped onto the image side (zero extent or remainder pixels)."""
    default_stage = "grid"


class ImageLoadError(GridPipeError):
    default_stage = "loading"


class ImagePersistError(GridPipeError):
    """Recoverable: one output file could not be written."""
    default_stage = "persist"
