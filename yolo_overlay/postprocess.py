from dataclasses import dataclass
from typing import List, Optional

import numpy as np

from .errors import ShapeMismatchError
from .nms import NMSConfig, nms
from .types import Box

# x, y, w, h, conf
BOX_CHANNELS = 5


@dataclass(frozen=True)
class DetectionConfig:
    """
    Post-processing settings for a single-class detector.
    """

    conf_threshold: float = 0.6
    iou_threshold: float = 0.5
    # Optional cap on the number of kept boxes; None keeps all.
    max_detections: Optional[int] = None
    # If False, skip NMS and only apply `max_detections` by score.
    apply_nms: bool = True

    def __post_init__(self) -> None:
        if not (0.0 <= self.conf_threshold <= 1.0):
            raise ValueError("conf_threshold must be within [0, 1]")
        if not (0.0 <= self.iou_threshold <= 1.0):
            raise ValueError("iou_threshold must be within [0, 1]")
        if self.max_detections is not None and self.max_detections < 1:
            raise ValueError("max_detections must be >= 1 (or None for no limit)")


def _check_output(output: np.ndarray, expected_count: Optional[int]) -> np.ndarray:
    p = np.asarray(output)
    if p.ndim != 3:
        raise ShapeMismatchError(f"Expected output tensor of shape (1, {BOX_CHANNELS}, N), got {p.shape}")
    if p.shape[0] != 1:
        raise ShapeMismatchError(f"Batch > 1 is not supported (got shape {p.shape}). Pass one image at a time.")
    if p.shape[1] != BOX_CHANNELS:
        raise ShapeMismatchError(
            f"Expected {BOX_CHANNELS} channels (x, y, w, h, conf), got {p.shape[1]} in shape {p.shape}"
        )
    if expected_count is not None and p.shape[2] != expected_count:
        raise ShapeMismatchError(f"Model declares {expected_count} predictions, output has {p.shape[2]}")
    return p


def _rows_to_boxes(rows: np.ndarray, indices: np.ndarray) -> List[Box]:
    return [
        Box(
            x=float(rows[0, i]),
            y=float(rows[1, i]),
            w=float(rows[2, i]),
            h=float(rows[3, i]),
            conf=float(rows[4, i]),
        )
        for i in indices
    ]


def decode_candidates(output: np.ndarray, expected_count: Optional[int] = None) -> List[Box]:
    """
    Decode every prediction of a (1, 5, N) output tensor, in prediction order.

    The flat buffer is channel-major: prediction i reads x at i, y at i + N,
    w at i + 2N, h at i + 3N and conf at i + 4N.
    """
    p = _check_output(output, expected_count)
    rows = p[0]
    return _rows_to_boxes(rows, np.arange(rows.shape[1]))


def decode_boxes(output: np.ndarray, threshold: float = 0.6, expected_count: Optional[int] = None) -> List[Box]:
    """
    Decode predictions whose confidence is >= threshold, in prediction order.
    """
    p = _check_output(output, expected_count)
    rows = p[0]
    # Compare at the tensor's precision so conf == threshold is kept.
    tau = np.asarray(threshold, dtype=rows.dtype if rows.dtype.kind == "f" else np.float64)
    keep = np.nonzero(rows[4] >= tau)[0]
    return _rows_to_boxes(rows, keep)


class DetectionPostprocessor:
    """
    Raw output tensor -> kept boxes: confidence filter, then greedy NMS.
    """

    def __init__(self, cfg: DetectionConfig = DetectionConfig()):
        self.cfg = cfg

    def process(self, preds: np.ndarray, expected_count: Optional[int] = None) -> List[Box]:
        boxes = decode_boxes(preds, threshold=self.cfg.conf_threshold, expected_count=expected_count)
        if not boxes:
            return []

        if self.cfg.apply_nms:
            return nms(
                boxes,
                NMSConfig(iou_threshold=self.cfg.iou_threshold, max_detections=self.cfg.max_detections),
            )
        return self._select_topk(boxes)

    def _select_topk(self, boxes: List[Box]) -> List[Box]:
        ranked = sorted(boxes, key=lambda b: b.conf, reverse=True)
        if self.cfg.max_detections is None:
            return ranked
        return ranked[: self.cfg.max_detections]
