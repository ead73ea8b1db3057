"""Integrity manifest for cached tools.

After a successful fetch the fetcher records every extracted file with its
size and SHA-256 in ``<cache>/<tool>/.artipack-manifest.json``. The
resolver checks the manifest before reporting a tool as cached, so a
directory left behind by an interrupted extraction is never mistaken for a
good one.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from pathlib import Path

from artipack.platform.files import atomic_write_text, iter_files

__all__ = [
    "MANIFEST_NAME",
    "ManifestEntry",
    "ToolManifest",
    "sha256_file",
    "build_manifest",
    "load_manifest",
    "save_manifest",
    "verify_manifest",
]

MANIFEST_NAME = ".artipack-manifest.json"
MANIFEST_SCHEMA = 1


def sha256_file(path: Path) -> str:
    h = hashlib.sha256()
    with path.open("rb") as f:
        for chunk in iter(lambda: f.read(1024 * 1024), b""):
            h.update(chunk)
    return h.hexdigest()


@dataclass(frozen=True, slots=True)
class ManifestEntry:
    """One cached file, path relative to the tool directory (POSIX form)."""

    path: str
    size: int
    sha256: str


@dataclass(frozen=True, slots=True)
class ToolManifest:
    """Recorded content of one cached tool.

    Attributes:
        tool: Tool name
        url: Source URL of the fetched archive
        fetched_at: ISO timestamp (UTC)
        files: Extracted files
    """

    tool: str
    url: str
    fetched_at: str
    files: tuple[ManifestEntry, ...]

    @property
    def total_size(self) -> int:
        return sum(entry.size for entry in self.files)


def build_manifest(tool_dir: Path, *, tool: str, url: str) -> ToolManifest:
    """Hash every file currently under tool_dir (the manifest itself excluded)."""
    entries: list[ManifestEntry] = []
    for path in iter_files(tool_dir):
        if path.name == MANIFEST_NAME and path.parent == tool_dir:
            continue
        entries.append(
            ManifestEntry(
                path=path.relative_to(tool_dir).as_posix(),
                size=path.stat().st_size,
                sha256=sha256_file(path),
            )
        )
    return ToolManifest(
        tool=tool,
        url=url,
        fetched_at=datetime.now(UTC).isoformat(),
        files=tuple(entries),
    )


def save_manifest(tool_dir: Path, manifest: ToolManifest) -> Path:
    path = tool_dir / MANIFEST_NAME
    data = {
        "schema": MANIFEST_SCHEMA,
        "tool": manifest.tool,
        "url": manifest.url,
        "fetched_at": manifest.fetched_at,
        "files": [asdict(entry) for entry in manifest.files],
    }
    atomic_write_text(path, json.dumps(data, indent=2, sort_keys=True) + "\n")
    return path


def load_manifest(tool_dir: Path) -> ToolManifest | None:
    """Read the manifest; None if absent or corrupted."""
    path = tool_dir / MANIFEST_NAME
    if not path.is_file():
        return None

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        if data.get("schema") != MANIFEST_SCHEMA:
            return None
        files = tuple(
            ManifestEntry(path=str(f["path"]), size=int(f["size"]), sha256=str(f["sha256"]))
            for f in data["files"]
        )
        return ToolManifest(
            tool=str(data["tool"]),
            url=str(data.get("url", "")),
            fetched_at=str(data.get("fetched_at", "")),
            files=files,
        )
    except (OSError, json.JSONDecodeError, TypeError, KeyError, ValueError, AttributeError):
        return None


def verify_manifest(tool_dir: Path, manifest: ToolManifest, *, hashes: bool = False) -> bool:
    """Check that every recorded file exists with the recorded size (and hash)."""
    if not manifest.files:
        return False
    for entry in manifest.files:
        path = tool_dir / entry.path
        try:
            if not path.is_file() or path.stat().st_size != entry.size:
                return False
        except OSError:
            return False
        if hashes and sha256_file(path) != entry.sha256:
            return False
    return True
