"""
Batch driver built on top of `yolo_overlay`.

Runtime detection logic stays in `yolo_overlay`; this package only covers
input listing, run configuration, per-image isolation and the CLI.
"""

from __future__ import annotations

from .config import RunSettings, settings_from_args
from .ingest import list_input_images, output_path_for
from .run_config import apply_run_config, explicit_dests, load_run_config
from .runner import BatchReport, ImageFailure, build_parser, main, run_batch

__all__ = [
    "RunSettings",
    "settings_from_args",
    "list_input_images",
    "output_path_for",
    "apply_run_config",
    "explicit_dests",
    "load_run_config",
    "BatchReport",
    "ImageFailure",
    "build_parser",
    "main",
    "run_batch",
]
