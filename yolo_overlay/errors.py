"""
Typed failures raised by the overlay pipeline.

Every error names the stage that failed and, once the driver knows it, the
image being processed, so a batch run can report "which file, which stage".
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union


PathLike = Union[str, Path]


class OverlayError(Exception):
    stage = "pipeline"

    def __init__(self, reason: str, *, stage: Optional[str] = None, path: Optional[PathLike] = None):
        super().__init__(reason)
        self.reason = reason
        if stage is not None:
            self.stage = stage
        self.path: Optional[Path] = Path(path) if path is not None else None

    def __str__(self) -> str:
        if self.path is None:
            return f"[{self.stage}] {self.reason}"
        return f"[{self.stage}] {self.path}: {self.reason}"


class PreconditionError(OverlayError, ValueError):
    stage = "preprocess"


class ShapeMismatchError(PreconditionError):
    stage = "decode"


class ImageReadError(OverlayError, OSError):
    stage = "load"


class ImageWriteError(OverlayError, OSError):
    stage = "save"


class InferenceError(OverlayError, RuntimeError):
    stage = "inference"


class RenderError(OverlayError, RuntimeError):
    stage = "render"
