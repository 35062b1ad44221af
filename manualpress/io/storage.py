"""Artifact storage abstraction.

Responsibilities:
- Provide deterministic filesystem storage for text and JSON page artifacts.
- Write files atomically so interrupted runs never leave partial artifacts.
- Offer directory reset helpers used by the clean stage.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
import shutil
from typing import Any


def dump_json(payload: Any) -> str:
    """Serialize a JSON payload in the stable on-disk layout."""

    return json.dumps(payload, ensure_ascii=False, indent=2) + "\n"


def write_text_atomic(path: Path, content: str) -> Path:
    """Write text through a sibling temp file and `os.replace` into place."""

    path.parent.mkdir(parents=True, exist_ok=True)
    temp_path = path.with_name(f".{path.name}.tmp")
    try:
        temp_path.write_text(content, encoding="utf-8")
        os.replace(temp_path, path)
    finally:
        if temp_path.exists():
            temp_path.unlink()
    return path


class ArtifactStore:
    """Filesystem-backed store rooted at one directory."""

    def __init__(self, root: Path) -> None:
        """Initialize the store with a root output directory."""

        self.root = root

    def save_json(self, relative_path: Path | str, payload: Any) -> Path:
        """Save JSON-serializable payload atomically and return final path."""

        return write_text_atomic(self.root / relative_path, dump_json(payload))

    def load_json_object(self, relative_path: Path | str) -> dict[str, Any]:
        """Load a JSON file whose root must be an object.

        Raises:
            ValueError: If the file is not valid JSON or its root is not an object.
        """

        path = self.root / relative_path
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise ValueError(f"{path} is not valid JSON: {exc}") from exc
        if not isinstance(payload, dict):
            raise ValueError(f"{path} must contain a JSON object.")
        return payload

    def exists(self, relative_path: Path | str) -> bool:
        """Return whether the given artifact exists."""

        return (self.root / relative_path).exists()

    def remove(self, relative_path: Path | str) -> bool:
        """Remove one artifact file; return whether anything was removed."""

        path = self.root / relative_path
        if not path.is_file():
            return False
        path.unlink()
        return True


def directory_size(path: Path) -> int:
    """Return the total byte size of regular files below `path`."""

    if path.is_file():
        return path.stat().st_size
    return sum(item.stat().st_size for item in path.rglob("*") if item.is_file())


def clear_directory(path: Path) -> tuple[int, int]:
    """Delete every entry inside `path` and recreate it empty.

    Returns:
        Tuple of `(removed_top_level_items, removed_bytes)`.
    """

    removed_items = 0
    removed_bytes = 0
    if path.exists():
        for entry in sorted(path.iterdir()):
            removed_bytes += directory_size(entry)
            if entry.is_dir() and not entry.is_symlink():
                shutil.rmtree(entry)
            else:
                entry.unlink()
            removed_items += 1
    path.mkdir(parents=True, exist_ok=True)
    return removed_items, removed_bytes
