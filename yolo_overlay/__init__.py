"""
Single-class YOLO post-processing and box overlays.

Turns the raw (1, 5, N) output of a one-class detector into a small set of
non-overlapping boxes and draws them on the image. Works with NumPy arrays
emitted by ONNX Runtime; OpenCV handles image decode, letterboxing and
drawing.
"""

from .types import Box, Overlay, Rect
from .errors import (
    ImageReadError,
    ImageWriteError,
    InferenceError,
    OverlayError,
    PreconditionError,
    RenderError,
    ShapeMismatchError,
)
from .letterbox import letterbox
from .preprocess import to_tensor
from .postprocess import DetectionConfig, DetectionPostprocessor, decode_boxes, decode_candidates
from .nms import NMSConfig, iou, nms
from .overlay import OverlayStyle, build_overlay, draw_overlay, scale_overlay
from .image_io import composite_and_save, load_and_fit, read_image
from .runtime import ImageResult, OverlayPipeline, load_pipeline, resolve_model_path

__all__ = [
    "Box",
    "Overlay",
    "Rect",
    "ImageReadError",
    "ImageWriteError",
    "InferenceError",
    "OverlayError",
    "PreconditionError",
    "RenderError",
    "ShapeMismatchError",
    "letterbox",
    "to_tensor",
    "DetectionConfig",
    "DetectionPostprocessor",
    "decode_boxes",
    "decode_candidates",
    "NMSConfig",
    "iou",
    "nms",
    "OverlayStyle",
    "build_overlay",
    "draw_overlay",
    "scale_overlay",
    "composite_and_save",
    "load_and_fit",
    "read_image",
    "ImageResult",
    "OverlayPipeline",
    "load_pipeline",
    "resolve_model_path",
]
