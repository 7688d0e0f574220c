from __future__ import annotations

from typing import Union

import numpy as np

from .errors import PreconditionError


PixelBuffer = Union[np.ndarray, bytes, bytearray, memoryview]


def _as_interleaved(pixels: PixelBuffer, height: int, width: int) -> np.ndarray:
    if isinstance(pixels, (bytes, bytearray, memoryview)):
        arr = np.frombuffer(pixels, dtype=np.uint8)
    else:
        arr = np.asarray(pixels)

    if arr.dtype != np.uint8:
        raise PreconditionError(f"Expected 8-bit pixels, got dtype {arr.dtype}")

    if arr.ndim == 3:
        if arr.shape[2] != 3:
            raise PreconditionError(
                f"Expected 3 interleaved channels (RGB), got {arr.shape[2]}; strip alpha before preprocessing"
            )
        if arr.shape[:2] != (height, width):
            raise PreconditionError(f"Expected pixels of shape ({height}, {width}, 3), got {arr.shape}")
    elif arr.ndim == 1:
        expected = height * width * 3
        if arr.size != expected:
            raise PreconditionError(
                f"Pixel buffer has {arr.size} samples, expected {expected} ({width}x{height}x3)"
            )
    else:
        raise PreconditionError(f"Unsupported pixel buffer shape {arr.shape}")

    return arr.reshape(height * width, 3)


def to_tensor(pixels: PixelBuffer, height: int, width: int) -> np.ndarray:
    """
    Convert interleaved 8-bit RGB pixels into the network input tensor.

    The result is float32, shape (1, 3, H, W), channel planes ordered R, G, B,
    each plane row-major, values in [0, 1].
    """
    if height <= 0 or width <= 0:
        raise PreconditionError(f"Target size must be positive, got {width}x{height}")

    interleaved = _as_interleaved(pixels, height, width)
    planes = interleaved.T.astype(np.float32) / np.float32(255.0)
    return np.ascontiguousarray(planes.reshape(1, 3, height, width))


def tensor_to_pixels(tensor: np.ndarray) -> np.ndarray:
    """
    Inverse of `to_tensor`: (1, 3, H, W) float in [0, 1] -> (H, W, 3) uint8 RGB.
    """
    t = np.asarray(tensor)
    if t.ndim != 4 or t.shape[0] != 1 or t.shape[1] != 3:
        raise PreconditionError(f"Expected tensor of shape (1, 3, H, W), got {t.shape}")
    hwc = np.transpose(t[0], (1, 2, 0))
    return np.clip(np.rint(hwc * 255.0), 0, 255).astype(np.uint8)
