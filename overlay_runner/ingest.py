from __future__ import annotations

from pathlib import Path
from typing import List, Union


PathLike = Union[str, Path]


def list_input_images(input_dir: PathLike) -> List[Path]:
    """
    Regular files in `input_dir`, sorted by name. Hidden files (".gitkeep")
    are skipped; whether a file is a decodable image is decided per image.
    """
    root = Path(input_dir)
    if not root.exists():
        raise FileNotFoundError(f"Input directory not found: {root}")
    if not root.is_dir():
        raise NotADirectoryError(f"Input path is not a directory: {root}")

    return sorted(
        (p for p in root.iterdir() if p.is_file() and not p.name.startswith(".")),
        key=lambda p: p.name,
    )


def output_path_for(source: PathLike, output_dir: PathLike) -> Path:
    return Path(output_dir) / Path(source).name
