from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Sequence, Tuple, Union

import numpy as np

from ..errors import ShapeMismatchError

LOGGER = logging.getLogger(__name__)

PathLike = Union[str, Path]


@dataclass(frozen=True)
class OnnxRuntimeBackendConfig:
    """
    Configuration for ONNX Runtime inference.

    - providers: ORT execution providers (None lets ORT pick its default)
    - input_name/output_name: override auto-selected I/O names if needed
    - fallback_size: (H, W) used when the model input has symbolic height/width
    """

    providers: Optional[Sequence[str]] = None
    input_name: Optional[str] = None
    output_name: Optional[str] = None
    fallback_size: Tuple[int, int] = (640, 640)


def _static_dim(value: Any) -> Optional[int]:
    # ORT reports symbolic dims as strings (e.g. "batch") or None.
    if isinstance(value, int) and not isinstance(value, bool) and value > 0:
        return value
    return None


def _pick(metas: Sequence[Any], name: Optional[str], kind: str) -> Any:
    if not metas:
        raise RuntimeError(f"ONNX model has no {kind}s.")
    if name is None:
        return metas[0]
    for meta in metas:
        if meta.name == name:
            return meta
    raise ValueError(f"{kind.capitalize()} name {name!r} not found. Available: {[m.name for m in metas]}")


class OnnxRuntimeBackend:
    """
    ONNX Runtime session for a single-class YOLO export.

    Expects an NCHW float32 blob shaped (1, 3, H, W) and returns the primary
    output, shaped (1, 5, N). The model contract (H, W, N) is read once from
    the session metadata when the backend is created.
    """

    def __init__(self, model_path: PathLike, cfg: OnnxRuntimeBackendConfig = OnnxRuntimeBackendConfig()):
        try:
            import onnxruntime as ort  # type: ignore
        except Exception as e:  # pragma: no cover
            raise ImportError(
                "onnxruntime is required for the ONNX backend. Install it with `pip install onnxruntime`."
            ) from e

        self._ort = ort
        self.model_path = Path(model_path)
        if not self.model_path.exists():
            raise FileNotFoundError(str(self.model_path))

        LOGGER.info("Creating ONNX Runtime session for %s", self.model_path)
        sess_opts = ort.SessionOptions()
        providers = list(cfg.providers) if cfg.providers is not None else None
        try:
            self.session = ort.InferenceSession(str(self.model_path), sess_options=sess_opts, providers=providers)
        except Exception as e:
            raise RuntimeError(f"Could not load ONNX model {self.model_path}: {e}") from e

        input_meta = _pick(self.session.get_inputs(), cfg.input_name, "input")
        output_meta = _pick(self.session.get_outputs(), cfg.output_name, "output")
        self.input_name = input_meta.name
        self.output_name = output_meta.name

        self.input_size = self._read_input_size(input_meta.shape, cfg.fallback_size)
        self.num_predictions = self._read_num_predictions(output_meta.shape)
        LOGGER.info(
            "Model input %r: %dx%d (HxW), output %r: %s predictions",
            self.input_name,
            self.input_size[0],
            self.input_size[1],
            self.output_name,
            self.num_predictions if self.num_predictions is not None else "dynamic",
        )

    @staticmethod
    def _read_input_size(shape: Sequence[Any], fallback: Tuple[int, int]) -> Tuple[int, int]:
        if len(shape) != 4:
            raise ShapeMismatchError(f"Model input must be (1, 3, H, W), got {list(shape)}", stage="load_model")
        channels = _static_dim(shape[1])
        if channels is not None and channels != 3:
            raise ShapeMismatchError(f"Model input expects {channels} channels, only RGB (3) is supported", stage="load_model")
        height = _static_dim(shape[2])
        width = _static_dim(shape[3])
        if height is None or width is None:
            LOGGER.warning("Model input has symbolic height/width %s; using %dx%d", list(shape), *fallback)
            return int(fallback[0]), int(fallback[1])
        return height, width

    @staticmethod
    def _read_num_predictions(shape: Sequence[Any]) -> Optional[int]:
        if len(shape) != 3:
            raise ShapeMismatchError(f"Model output must be (1, 5, N), got {list(shape)}", stage="load_model")
        channels = _static_dim(shape[1])
        if channels is not None and channels != 5:
            raise ShapeMismatchError(
                f"Model output has {channels} channels; expected 5 (x, y, w, h, conf) for a single-class model",
                stage="load_model",
            )
        return _static_dim(shape[2])

    @property
    def providers_in_use(self) -> Sequence[str]:
        # ORT returns providers in priority order for this session.
        return tuple(self.session.get_providers())

    @property
    def available_providers(self) -> Sequence[str]:
        return tuple(self._ort.get_available_providers())

    def infer(self, blob: np.ndarray) -> np.ndarray:
        if self.session is None:
            raise RuntimeError("ONNX Runtime session has been closed.")
        outputs = self.session.run([self.output_name], {self.input_name: blob})
        return outputs[0]

    def close(self) -> None:
        self.session = None

    def __enter__(self) -> "OnnxRuntimeBackend":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
