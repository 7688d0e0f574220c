from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Iterable, Tuple

import cv2
import numpy as np

from .types import Box, Overlay, Rect

LOGGER = logging.getLogger(__name__)

# RGB
NAMED_COLORS = {
    "red": (255, 0, 0),
    "green": (0, 128, 0),
    "lime": (0, 255, 0),
    "blue": (0, 0, 255),
    "yellow": (255, 255, 0),
    "cyan": (0, 255, 255),
    "magenta": (255, 0, 255),
    "orange": (255, 165, 0),
    "white": (255, 255, 255),
    "black": (0, 0, 0),
}


def parse_color(value: str) -> Tuple[int, int, int]:
    """
    Named color or "#rrggbb" -> (r, g, b).
    """

    text = str(value).strip().lower()
    if text in NAMED_COLORS:
        return NAMED_COLORS[text]
    if text.startswith("#") and len(text) == 7:
        try:
            return int(text[1:3], 16), int(text[3:5], 16), int(text[5:7], 16)
        except ValueError:
            pass
    raise ValueError(f"Unsupported color {value!r}; use one of {sorted(NAMED_COLORS)} or '#rrggbb'")


@dataclass(frozen=True)
class OverlayStyle:
    """
    Unfilled solid-color outline used for every rectangle.
    """

    color: str = "red"
    stroke_width: int = 2

    def __post_init__(self) -> None:
        parse_color(self.color)
        if self.stroke_width < 1:
            raise ValueError("stroke_width must be >= 1")

    def bgr(self) -> Tuple[int, int, int]:
        r, g, b = parse_color(self.color)
        return b, g, r


def box_to_rect(box: Box) -> Rect:
    return Rect(x=box.x - box.w / 2, y=box.y - box.h / 2, width=box.w, height=box.h)


def build_overlay(boxes: Iterable[Box], width: int, height: int) -> Overlay:
    """
    Convert kept boxes into top-left rectangles, one per box, same order.

    Nothing is clamped to the image; out-of-bounds rectangles are left to the
    drawing step.
    """
    return Overlay(width=int(width), height=int(height), rects=tuple(box_to_rect(b) for b in boxes))


def scale_overlay(
    overlay: Overlay,
    ratio: float,
    pad: Tuple[float, float],
    width: int,
    height: int,
) -> Overlay:
    """
    Map rectangles from the letterboxed model canvas back onto the source image.
    """
    if ratio <= 0:
        raise ValueError(f"ratio must be > 0, got {ratio}")
    dw, dh = pad
    rects = tuple(
        Rect(
            x=(r.x - dw) / ratio,
            y=(r.y - dh) / ratio,
            width=r.width / ratio,
            height=r.height / ratio,
        )
        for r in overlay.rects
    )
    return Overlay(width=int(width), height=int(height), rects=rects)


def draw_overlay(image_bgr: np.ndarray, overlay: Overlay, style: OverlayStyle = OverlayStyle()) -> np.ndarray:
    """
    Draw the overlay rectangles on an OpenCV BGR image and return a copy.
    """

    if image_bgr is None or not hasattr(image_bgr, "shape"):
        raise TypeError("image_bgr must be a NumPy array (BGR).")
    if image_bgr.ndim != 3 or image_bgr.shape[2] != 3:
        raise ValueError(f"Expected image shape (H, W, 3), got {getattr(image_bgr, 'shape', None)}")

    out = image_bgr.copy()
    color = style.bgr()

    # Pixel coordinates only: edges pushed past this margin stay off-canvas,
    # so the drawn result is the same as for the unclipped rectangle.
    h, w = out.shape[:2]
    margin = max(h, w) + style.stroke_width + 1
    lo = np.array([-margin, -margin, -margin, -margin], dtype=np.float64)
    hi = np.array([w + margin, h + margin, w + margin, h + margin], dtype=np.float64)

    for rect in overlay.rects:
        corners = rect.as_xyxy()
        if not all(math.isfinite(v) for v in corners):
            LOGGER.warning("Skipping non-finite rectangle %s", rect)
            continue
        x1, y1, x2, y2 = (int(v) for v in np.rint(np.clip(np.asarray(corners, dtype=np.float64), lo, hi)))
        cv2.rectangle(out, (x1, y1), (x2, y2), color, thickness=style.stroke_width)

    return out
