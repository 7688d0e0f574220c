from __future__ import annotations

import argparse
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

from yolo_overlay.overlay import parse_color
from yolo_overlay.runtime import RENDER_TARGETS

DEFAULT_INPUT_DIR = "inputImgs"
DEFAULT_OUTPUT_DIR = "outputImgs"
DEFAULT_MODEL = "models/model.onnx"
DEFAULT_CONF = 0.6
DEFAULT_IOU = 0.5


@dataclass(frozen=True)
class RunSettings:
    input_dir: Path
    output_dir: Path
    model: Path
    conf: float = DEFAULT_CONF
    iou: float = DEFAULT_IOU
    max_det: Optional[int] = None
    apply_nms: bool = True
    color: str = "red"
    stroke_width: int = 2
    render_on: str = "model"
    imgsz: int = 640
    onnx_providers: Optional[Tuple[str, ...]] = None
    progress: bool = False

    def __post_init__(self) -> None:
        if not (0.0 <= self.conf <= 1.0):
            raise ValueError("--conf must be within [0, 1]")
        if not (0.0 <= self.iou <= 1.0):
            raise ValueError("--iou must be within [0, 1]")
        if self.max_det is not None and self.max_det < 1:
            raise ValueError("--max-det must be >= 1 (or 0 for no limit)")
        if self.stroke_width < 1:
            raise ValueError("--stroke-width must be >= 1")
        if self.imgsz < 32:
            raise ValueError("--imgsz must be >= 32")
        if self.render_on not in RENDER_TARGETS:
            raise ValueError(f"--render-on must be one of {RENDER_TARGETS}")
        parse_color(self.color)
        if self.input_dir.resolve() == self.output_dir.resolve():
            raise ValueError("--output-dir must differ from --input-dir")


def _sanitize_ort_provider_name(name: str) -> str:
    # Copy/paste from shells can leave stray backticks/quotes.
    return str(name).strip().strip("'\"`")


def parse_ort_providers(raw: Optional[str]) -> Optional[List[str]]:
    if raw is None:
        return None
    parts: List[str] = []
    for p in str(raw).split(","):
        cleaned = _sanitize_ort_provider_name(p)
        if cleaned:
            parts.append(cleaned)
    return parts or None


def settings_from_args(args: argparse.Namespace) -> RunSettings:
    providers = parse_ort_providers(args.onnx_providers)
    return RunSettings(
        input_dir=Path(args.input_dir),
        output_dir=Path(args.output_dir),
        model=Path(args.model),
        conf=float(args.conf),
        iou=float(args.iou),
        max_det=int(args.max_det) if args.max_det else None,
        apply_nms=not bool(args.no_nms),
        color=str(args.color),
        stroke_width=int(args.stroke_width),
        render_on=str(args.render_on),
        imgsz=int(args.imgsz),
        onnx_providers=tuple(providers) if providers else None,
        progress=bool(args.progress),
    )
