"""Filesystem helpers."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path


def ensure_parent(path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


def atomic_write_text(path: Path, data: str, *, encoding: str = "utf-8") -> None:
    """Write through a temporary file in the same directory, then rename over ``path``."""
    ensure_parent(path)
    with tempfile.NamedTemporaryFile(
        "w", encoding=encoding, delete=False, dir=str(path.parent), suffix=".tmp"
    ) as tmp:
        tmp.write(data)
        tmp_path = Path(tmp.name)
    try:
        os.replace(tmp_path, path)
    except OSError:
        tmp_path.unlink(missing_ok=True)
        raise
