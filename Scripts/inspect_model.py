import argparse

from overlay_runner.config import parse_ort_providers
from yolo_overlay.backends.onnxruntime_backend import OnnxRuntimeBackend, OnnxRuntimeBackendConfig
from yolo_overlay.runtime import resolve_model_path


def main() -> int:
    parser = argparse.ArgumentParser(description="Print the input/output contract of a single-class YOLO ONNX model.")
    parser.add_argument("--model", default="models/model.onnx", help="Path to the ONNX model.")
    parser.add_argument(
        "--onnx-providers",
        default=None,
        help='Comma-separated ORT providers, e.g. "CPUExecutionProvider".',
    )
    args = parser.parse_args()

    cfg = OnnxRuntimeBackendConfig(providers=parse_ort_providers(args.onnx_providers))
    with OnnxRuntimeBackend(resolve_model_path(args.model), cfg) as backend:
        height, width = backend.input_size
        print(f"model: {backend.model_path}")
        print(f"input: {backend.input_name} (1, 3, {height}, {width})")
        n = backend.num_predictions if backend.num_predictions is not None else "N (dynamic)"
        print(f"output: {backend.output_name} (1, 5, {n})")
        print(f"providers in use: {list(backend.providers_in_use)}")
        print(f"available providers: {list(backend.available_providers)}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
