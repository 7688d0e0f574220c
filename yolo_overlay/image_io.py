"""
Image decode / letterbox / encode, backed by OpenCV.

Files are decoded with `cv2.imdecode` on bytes read from disk so non-ASCII
paths work, and written through a temporary file that is renamed into place:
a failed save never leaves a partial output behind.
"""

from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Tuple, Union

import cv2
import numpy as np

from .errors import ImageReadError, ImageWriteError, RenderError
from .letterbox import letterbox
from .overlay import OverlayStyle, draw_overlay
from .types import Overlay

LOGGER = logging.getLogger(__name__)

PathLike = Union[str, Path]


@dataclass(frozen=True)
class FittedImage:
    source_bgr: np.ndarray
    canvas_bgr: np.ndarray
    pixels_rgb: np.ndarray
    ratio: float
    pad: Tuple[float, float]

    @property
    def source_size(self) -> Tuple[int, int]:
        h, w = self.source_bgr.shape[:2]
        return w, h


def read_image(path: PathLike) -> np.ndarray:
    """
    Decode an image file to 8-bit BGR. Alpha is dropped, grayscale is expanded.
    """
    p = Path(path)
    try:
        data = np.fromfile(str(p), dtype=np.uint8)
    except OSError as exc:
        raise ImageReadError(f"Could not read image: {exc.strerror or exc}", path=p) from exc
    if data.size == 0:
        raise ImageReadError("Image file is empty", path=p)

    image = cv2.imdecode(data, cv2.IMREAD_COLOR)
    if image is None:
        raise ImageReadError("Could not decode image (unsupported or corrupt file)", path=p)
    return image


def load_and_fit(
    path: PathLike,
    width: int,
    height: int,
    pad_color: Tuple[int, int, int] = (0, 0, 0),
) -> FittedImage:
    """
    Read `path` and letterbox it to exactly width x height.

    `pixels_rgb` is the interleaved RGB buffer for the network (H, W, 3);
    `canvas_bgr` is the same letterboxed image in OpenCV channel order.
    """
    source = read_image(path)
    r, g, b = pad_color
    try:
        canvas, ratio, pad = letterbox(source, width, height, color=(b, g, r))
        pixels = np.ascontiguousarray(cv2.cvtColor(canvas, cv2.COLOR_BGR2RGB))
    except cv2.error as exc:
        raise ImageReadError(f"Could not fit image to {width}x{height}: {exc}", path=path) from exc
    return FittedImage(source_bgr=source, canvas_bgr=canvas, pixels_rgb=pixels, ratio=ratio, pad=pad)


def write_image_atomic(image_bgr: np.ndarray, output_path: PathLike) -> Path:
    out = Path(output_path)
    ext = out.suffix.lower() or ".png"
    try:
        ok, encoded = cv2.imencode(ext, image_bgr)
    except cv2.error as exc:
        raise ImageWriteError(f"Could not encode image as {ext}: {exc}", path=out) from exc
    if not ok:
        raise ImageWriteError(f"Could not encode image as {ext}", path=out)

    try:
        out.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{out.name}.", suffix=".part", dir=str(out.parent))
    except OSError as exc:
        raise ImageWriteError(f"Could not prepare output directory: {exc}", path=out) from exc

    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(encoded.tobytes())
        os.replace(tmp_path, out)
    except BaseException as exc:
        tmp_path.unlink(missing_ok=True)
        if isinstance(exc, OSError):
            raise ImageWriteError(f"Could not write image: {exc}", path=out) from exc
        raise
    return out


def composite_and_save(
    image_bgr: np.ndarray,
    overlay: Overlay,
    output_path: PathLike,
    style: OverlayStyle = OverlayStyle(),
) -> Path:
    """
    Draw `overlay` on a copy of `image_bgr` and save it. An empty overlay
    saves the image unchanged.
    """
    try:
        vis = draw_overlay(image_bgr, overlay, style)
    except cv2.error as exc:
        raise RenderError(f"Could not draw {len(overlay)} box(es): {exc}") from exc
    out = write_image_atomic(vis, output_path)
    LOGGER.info("Saved image with %d box(es) to: %s", len(overlay), out)
    return out
