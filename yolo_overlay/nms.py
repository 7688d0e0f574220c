import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

from .types import Box

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class NMSConfig:
    iou_threshold: float = 0.5
    # None keeps every box that survives suppression.
    max_detections: Optional[int] = None

    def __post_init__(self) -> None:
        if not (0.0 <= self.iou_threshold <= 1.0):
            raise ValueError("iou_threshold must be within [0, 1]")
        if self.max_detections is not None and self.max_detections < 1:
            raise ValueError("max_detections must be >= 1 (or None for no limit)")


def _xyxy(boxes: Sequence[Box]) -> np.ndarray:
    return np.array([b.as_xyxy() for b in boxes], dtype=np.float64).reshape(-1, 4)


def _iou_one_to_many(box: np.ndarray, area: float, others: np.ndarray, areas: np.ndarray):
    """
    IoU of one xyxy box against (M, 4) others. Returns (ious, degenerate_count);
    pairs with a zero union get IoU 0.
    """
    xx1 = np.maximum(box[0], others[:, 0])
    yy1 = np.maximum(box[1], others[:, 1])
    xx2 = np.minimum(box[2], others[:, 2])
    yy2 = np.minimum(box[3], others[:, 3])

    w = np.maximum(0.0, xx2 - xx1)
    h = np.maximum(0.0, yy2 - yy1)
    inter = w * h
    union = area + areas - inter

    degenerate = union <= 0.0
    ious = np.zeros_like(inter)
    np.divide(inter, union, out=ious, where=~degenerate)
    return ious, int(np.count_nonzero(degenerate))


def iou(box_a: Box, box_b: Box) -> float:
    """
    Intersection over union of two center-form boxes, in [0, 1].

    Two zero-area boxes have no defined IoU; it is reported as 0.
    """
    ious, degenerate = _iou_one_to_many(
        np.array(box_a.as_xyxy(), dtype=np.float64),
        box_a.area,
        _xyxy([box_b]),
        np.array([box_b.area], dtype=np.float64),
    )
    if degenerate:
        LOGGER.warning("IoU undefined for zero-area boxes %s and %s; treating as 0", box_a, box_b)
    return float(ious[0])


def nms(boxes: Sequence[Box], cfg: NMSConfig = NMSConfig()) -> List[Box]:
    """
    Greedy NMS over center-form boxes.

    Boxes are visited by confidence, highest first; equal confidences keep
    their input order. A box is kept when its IoU with every box kept so far
    is <= cfg.iou_threshold. Kept boxes are returned in the order they were
    kept.
    """

    if len(boxes) == 0:
        return []

    xyxy = _xyxy(boxes)
    areas = np.array([b.area for b in boxes], dtype=np.float64)
    scores = np.array([b.conf for b in boxes], dtype=np.float64)

    order = np.argsort(-scores, kind="stable")
    keep: List[int] = []
    degenerate_pairs = 0

    while order.size > 0 and (cfg.max_detections is None or len(keep) < cfg.max_detections):
        i = order[0]
        keep.append(int(i))

        rest = order[1:]
        ious, degenerate = _iou_one_to_many(xyxy[i], areas[i], xyxy[rest], areas[rest])
        degenerate_pairs += degenerate
        order = rest[ious <= cfg.iou_threshold]

    if degenerate_pairs:
        LOGGER.warning("NMS met %d zero-union box pair(s); their IoU was treated as 0", degenerate_pairs)

    return [boxes[i] for i in keep]
