"""Filesystem helpers."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

__all__ = ["atomic_write_text", "tree_size", "iter_files", "is_empty_dir"]


def atomic_write_text(path: Path, content: str, *, encoding: str = "utf-8", newline: str = "") -> None:
    """Write text to path atomically using temp file + replace."""
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{path.name}.",
        suffix=".tmp",
        dir=str(path.parent),
    )
    tmp_path = Path(tmp_name)

    try:
        with os.fdopen(fd, "w", encoding=encoding, newline=newline) as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_path, path)
    finally:
        if tmp_path.exists():
            tmp_path.unlink(missing_ok=True)


def iter_files(root: Path) -> list[Path]:
    """Regular files under root in sorted order (symlinks are not followed)."""
    if not root.is_dir():
        return []
    return sorted(p for p in root.rglob("*") if p.is_file() and not p.is_symlink())


def tree_size(root: Path) -> int:
    """Total size in bytes of regular files under root (or of root itself)."""
    if root.is_file():
        return root.stat().st_size
    return sum(p.stat().st_size for p in iter_files(root))


def is_empty_dir(path: Path) -> bool:
    """True if path is a directory with no entries."""
    return path.is_dir() and next(path.iterdir(), None) is None
