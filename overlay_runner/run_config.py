from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Dict, Sequence


def load_run_config(path: Path) -> Dict[str, object]:
    """
    Read a JSON object whose keys are the runner's argparse dests
    (`input_dir`, `conf`, `onnx_providers`, ...).
    """
    try:
        with path.open(encoding="utf-8") as f:
            payload = json.load(f)
    except FileNotFoundError:
        raise FileNotFoundError(f"Run config not found: {path}") from None
    except json.JSONDecodeError as exc:
        raise ValueError(f"{path}: invalid JSON at line {exc.lineno}: {exc.msg}") from exc
    if not isinstance(payload, dict):
        raise ValueError(f"{path}: run config must be a JSON object, got {type(payload).__name__}")
    return payload


def explicit_dests(parser: argparse.ArgumentParser, argv: Sequence[str]) -> set[str]:
    """
    Dests whose flag appears in `argv` (`--conf 0.5` or `--conf=0.5`); those
    win over the run config.
    """
    by_flag = {opt: action.dest for action in parser._actions for opt in action.option_strings}
    return {by_flag[flag] for flag in (arg.split("=", 1)[0] for arg in argv) if flag in by_flag}


def _providers_value(value: object) -> str:
    # "A,B" or ["A", "B"] -> "A,B", the form --onnx-providers takes.
    items = [value] if isinstance(value, str) else value
    if not isinstance(items, list) or not items:
        raise ValueError("onnx_providers must be a string or a non-empty list of strings")
    cleaned = [item.strip() if isinstance(item, str) else "" for item in items]
    if not all(cleaned):
        raise ValueError("onnx_providers must not contain empty or non-string entries")
    return ",".join(cleaned)


STR_KEYS = {"input_dir", "output_dir", "model", "color", "render_on", "log_level"}
INT_KEYS = {"stroke_width", "imgsz", "max_det"}
FLOAT_KEYS = {"conf", "iou"}
BOOL_KEYS = {"no_nms", "progress"}


def apply_run_config(
    *,
    args: argparse.Namespace,
    payload: Dict[str, object],
    cli_dests: set[str],
    parser: argparse.ArgumentParser,
) -> None:
    allowed = {action.dest for action in parser._actions if action.dest != "help"}
    if "config" in payload:
        raise ValueError("run config must not include the 'config' key")
    unknown = sorted(k for k in payload.keys() if k not in allowed)
    if unknown:
        raise ValueError(f"Unknown run config keys: {unknown}")

    for key, value in payload.items():
        if key in cli_dests:
            continue
        if value is None:
            continue
        if key == "onnx_providers":
            setattr(args, key, _providers_value(value))
            continue
        if key in STR_KEYS:
            if not isinstance(value, str) or not value.strip():
                raise ValueError(f"{key} must be a non-empty string")
            setattr(args, key, value)
            continue
        if key in BOOL_KEYS:
            if not isinstance(value, bool):
                raise ValueError(f"{key} must be a boolean")
            setattr(args, key, value)
            continue
        if key in INT_KEYS:
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError(f"{key} must be an integer")
            if isinstance(value, float) and not value.is_integer():
                raise ValueError(f"{key} must be an integer")
            setattr(args, key, int(value))
            continue
        if key in FLOAT_KEYS:
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError(f"{key} must be a number")
            setattr(args, key, float(value))
            continue
        raise ValueError(f"Unsupported run config key: {key}")
