from typing import Tuple

import cv2
import numpy as np


def letterbox(
    image: np.ndarray,
    width: int,
    height: int,
    color: Tuple[int, int, int] = (0, 0, 0),
    scaleup: bool = True,
):
    """
    "Contain" fit: resize keeping aspect ratio, then pad the remainder so the
    result is exactly (height, width). Content is centered.

    Returns:
        padded: resized + padded image
        ratio: scale factor applied to the source (same for both axes)
        pad: (dw, dh) padding applied on the left/top
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"Target size must be positive, got {width}x{height}")

    h, w = image.shape[:2]
    if h == 0 or w == 0:
        raise ValueError(f"Cannot letterbox an empty image (shape {image.shape})")

    # Scale ratio (new / old)
    r = min(width / w, height / h)
    if not scaleup:  # only scale down
        r = min(r, 1.0)

    resized_w = min(width, max(1, int(round(w * r))))
    resized_h = min(height, max(1, int(round(h * r))))
    dw, dh = width - resized_w, height - resized_h

    if (w, h) != (resized_w, resized_h):
        image = cv2.resize(image, (resized_w, resized_h), interpolation=cv2.INTER_LINEAR)

    left, top = dw // 2, dh // 2
    right, bottom = dw - left, dh - top
    padded = cv2.copyMakeBorder(image, top, bottom, left, right, cv2.BORDER_CONSTANT, value=color)

    return padded, r, (float(left), float(top))
