"""
Batch runner: one output image per input image.

Each image is an independent unit of work. A failure is logged with the file
and the stage that failed, and the batch moves on to the next image.
"""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from tqdm import tqdm

from yolo_overlay import DetectionConfig, OverlayError, OverlayStyle, load_pipeline
from yolo_overlay.runtime import RENDER_TARGETS, ImageResult, OverlayPipeline

from .config import (
    DEFAULT_CONF,
    DEFAULT_INPUT_DIR,
    DEFAULT_IOU,
    DEFAULT_MODEL,
    DEFAULT_OUTPUT_DIR,
    RunSettings,
    settings_from_args,
)
from .ingest import list_input_images, output_path_for
from .run_config import apply_run_config, explicit_dests, load_run_config

LOGGER = logging.getLogger(__name__)

# Exit status when the run cannot start (bad settings, input dir or model).
STARTUP_FAILURE = 2


@dataclass(frozen=True)
class ImageFailure:
    source: Path
    stage: str
    reason: str


@dataclass
class BatchReport:
    succeeded: List[ImageResult] = field(default_factory=list)
    failed: List[ImageFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed

    @property
    def exit_code(self) -> int:
        return 0 if self.ok else 1


def setup_logging(level: str = "INFO") -> None:
    formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)
    logging.basicConfig(level=getattr(logging, str(level).upper(), logging.INFO), handlers=[handler], force=True)


def run_batch(
    pipeline: OverlayPipeline,
    sources: Sequence[Path],
    output_dir: Path,
    *,
    progress: bool = False,
) -> BatchReport:
    report = BatchReport()
    items: Iterable[Path] = sources
    if progress:
        items = tqdm(sources, desc="images", unit="img")

    for source in items:
        LOGGER.info("Working on image: %s", source)
        try:
            result = pipeline.process_file(source, output_path_for(source, output_dir))
        except OverlayError as exc:
            LOGGER.error("%s failed at %s: %s", source, exc.stage, exc.reason)
            report.failed.append(ImageFailure(source=Path(source), stage=exc.stage, reason=exc.reason))
            continue
        LOGGER.debug("%s: kept %d box(es)", source, len(result.boxes))
        report.succeeded.append(result)

    return report


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Detect objects with a single-class YOLO ONNX model and draw the boxes on each image."
    )
    parser.add_argument("--config", default=None, help="Optional JSON run config (CLI flags override it).")
    parser.add_argument("--input-dir", default=DEFAULT_INPUT_DIR, help="Directory of input images.")
    parser.add_argument("--output-dir", default=DEFAULT_OUTPUT_DIR, help="Directory for annotated images.")
    parser.add_argument("--model", default=DEFAULT_MODEL, help="Path to the ONNX model.")
    parser.add_argument("--conf", type=float, default=DEFAULT_CONF, help="Confidence threshold (inclusive).")
    parser.add_argument("--iou", type=float, default=DEFAULT_IOU, help="IoU threshold for NMS.")
    parser.add_argument("--max-det", type=int, default=0, help="Keep at most N boxes per image (0 = no limit).")
    parser.add_argument("--no-nms", action="store_true", help="Disable NMS and only keep top-K boxes by score.")
    parser.add_argument("--color", default="red", help="Box outline color: a name (red, green, ...) or #rrggbb.")
    parser.add_argument("--stroke-width", type=int, default=2, help="Box outline width in pixels.")
    parser.add_argument(
        "--render-on",
        choices=RENDER_TARGETS,
        default="model",
        help="Draw on the letterboxed model-size image (model) or on the original image (source).",
    )
    parser.add_argument("--imgsz", type=int, default=640, help="Input size used when the model has dynamic H/W.")
    parser.add_argument(
        "--onnx-providers",
        default=None,
        help='Comma-separated ORT providers, e.g. "CPUExecutionProvider".',
    )
    parser.add_argument("--progress", action="store_true", help="Show a progress bar.")
    parser.add_argument("--log-level", default="INFO", help="Logging level (DEBUG, INFO, WARNING, ...).")
    return parser


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = build_parser()
    raw = list(sys.argv[1:] if argv is None else argv)
    args = parser.parse_args(raw)
    if args.config:
        try:
            payload = load_run_config(Path(args.config))
            apply_run_config(args=args, payload=payload, cli_dests=explicit_dests(parser, raw), parser=parser)
        except (OSError, ValueError) as exc:
            parser.error(str(exc))
    return args


def build_pipeline(settings: RunSettings) -> OverlayPipeline:
    return load_pipeline(
        settings.model,
        post_cfg=DetectionConfig(
            conf_threshold=settings.conf,
            iou_threshold=settings.iou,
            max_detections=settings.max_det,
            apply_nms=settings.apply_nms,
        ),
        style=OverlayStyle(color=settings.color, stroke_width=settings.stroke_width),
        render_on=settings.render_on,
        fallback_size=(settings.imgsz, settings.imgsz),
        onnx_providers=settings.onnx_providers,
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_level)

    # Nothing has been written yet; report the problem and stop.
    try:
        settings = settings_from_args(args)
        sources = list_input_images(settings.input_dir)
        if not sources:
            LOGGER.warning("No input images found in %s", settings.input_dir)
        pipeline = build_pipeline(settings)
    except (OSError, ValueError, RuntimeError, ImportError) as exc:
        LOGGER.error("Startup failed: %s", exc)
        return STARTUP_FAILURE

    try:
        report = run_batch(pipeline, sources, settings.output_dir, progress=settings.progress)
    finally:
        pipeline.close()

    print(f"Wrote {len(report.succeeded)} image(s) to: {settings.output_dir}")
    if report.failed:
        print(f"Failed: {len(report.failed)} image(s)")
        for failure in report.failed:
            print(f"  {failure.source} [{failure.stage}] {failure.reason}")
    return report.exit_code


if __name__ == "__main__":
    raise SystemExit(main())
