from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple, Union

import numpy as np

from .errors import InferenceError, OverlayError, PreconditionError
from .image_io import composite_and_save, load_and_fit
from .overlay import OverlayStyle, build_overlay, scale_overlay
from .postprocess import DetectionConfig, DetectionPostprocessor
from .preprocess import PixelBuffer, to_tensor
from .types import Box, Overlay

LOGGER = logging.getLogger(__name__)

PathLike = Union[str, Path]

RENDER_TARGETS = ("model", "source")


def resolve_model_path(path: PathLike, root: Optional[PathLike] = None) -> Path:
    """
    Absolute paths pass through; relative ones are taken from `root`, or from
    the working directory the runner was started in.
    """
    p = Path(path).expanduser()
    if not p.is_absolute():
        p = Path(root if root is not None else Path.cwd()) / p
    return p.resolve()


@dataclass(frozen=True)
class ImageResult:
    source: Path
    output: Path
    boxes: Tuple[Box, ...]
    overlay: Overlay


class OverlayPipeline:
    """
    Preprocess -> inference -> decode -> NMS -> overlay, one image at a time.

    The pipeline holds no per-image state: every call builds its own tensors,
    boxes and overlay, so images never share data.
    """

    def __init__(
        self,
        infer_fn: Callable[[np.ndarray], np.ndarray],
        *,
        input_size: Tuple[int, int],
        num_predictions: Optional[int] = None,
        post_cfg: DetectionConfig = DetectionConfig(),
        style: OverlayStyle = OverlayStyle(),
        render_on: str = "model",
        pad_color: Tuple[int, int, int] = (0, 0, 0),
        backend: Optional[object] = None,
    ):
        height, width = input_size
        if height <= 0 or width <= 0:
            raise ValueError(f"input_size must be positive, got {input_size}")
        if render_on not in RENDER_TARGETS:
            raise ValueError(f"render_on must be one of {RENDER_TARGETS}, got {render_on!r}")

        self._infer_fn = infer_fn
        self.height = int(height)
        self.width = int(width)
        self.num_predictions = num_predictions
        self.post = DetectionPostprocessor(post_cfg)
        self.style = style
        self.render_on = render_on
        self.pad_color = pad_color
        self.backend = backend

    def infer(self, blob: np.ndarray) -> np.ndarray:
        expected = (1, 3, self.height, self.width)
        if tuple(blob.shape) != expected:
            raise PreconditionError(
                f"Input tensor shape {tuple(blob.shape)} does not match model input {expected}",
                stage="inference",
            )
        try:
            preds = self._infer_fn(blob)
        except OverlayError:
            raise
        except Exception as exc:
            raise InferenceError(f"Inference engine failed: {exc}") from exc
        return np.asarray(preds)

    def detect(self, pixels: PixelBuffer) -> List[Box]:
        blob = to_tensor(pixels, self.height, self.width)
        preds = self.infer(blob)
        return self.post.process(preds, expected_count=self.num_predictions)

    def process_file(self, source: PathLike, output: PathLike) -> ImageResult:
        src = Path(source)
        try:
            fitted = load_and_fit(src, self.width, self.height, pad_color=self.pad_color)
            boxes = self.detect(fitted.pixels_rgb)
            overlay = build_overlay(boxes, self.width, self.height)

            if self.render_on == "source":
                src_w, src_h = fitted.source_size
                drawn = scale_overlay(overlay, fitted.ratio, fitted.pad, src_w, src_h)
                canvas = fitted.source_bgr
            else:
                drawn = overlay
                canvas = fitted.canvas_bgr

            out = composite_and_save(canvas, drawn, output, self.style)
        except OverlayError as exc:
            if exc.path is None:
                exc.path = src
            raise

        return ImageResult(source=src, output=out, boxes=tuple(boxes), overlay=drawn)

    def close(self) -> None:
        close = getattr(self.backend, "close", None)
        if close is not None:
            close()


def load_pipeline(
    model_path: PathLike,
    *,
    root: Optional[PathLike] = None,
    post_cfg: DetectionConfig = DetectionConfig(),
    style: OverlayStyle = OverlayStyle(),
    render_on: str = "model",
    pad_color: Tuple[int, int, int] = (0, 0, 0),
    fallback_size: Tuple[int, int] = (640, 640),
    onnx_providers: Optional[Sequence[str]] = None,
    onnx_input_name: Optional[str] = None,
    onnx_output_name: Optional[str] = None,
) -> OverlayPipeline:
    """
    Create a pipeline for an ONNX model on disk.

        pipe = load_pipeline("models/model.onnx")  # relative to the working directory

    The model's input size and prediction count are queried once here and
    stay fixed for every image the pipeline processes.
    """

    resolved = resolve_model_path(model_path, root=root)
    if resolved.suffix.lower() != ".onnx":
        raise ValueError(f"Expected an .onnx model, got '{resolved.name}'")

    from .backends.onnxruntime_backend import OnnxRuntimeBackend, OnnxRuntimeBackendConfig

    ort_backend = OnnxRuntimeBackend(
        resolved,
        OnnxRuntimeBackendConfig(
            providers=onnx_providers,
            input_name=onnx_input_name,
            output_name=onnx_output_name,
            fallback_size=fallback_size,
        ),
    )
    return OverlayPipeline(
        ort_backend.infer,
        input_size=ort_backend.input_size,
        num_predictions=ort_backend.num_predictions,
        post_cfg=post_cfg,
        style=style,
        render_on=render_on,
        pad_color=pad_color,
        backend=ort_backend,
    )
