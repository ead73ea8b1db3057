"""Dependency resolution - where does a tool come from right now?

For a tool name the resolver answers one of:

- available: a system tool present on the host (registry path, then PATH)
- cached: a downloadable tool already extracted into the cache
- missing: known to the registry but not present
- unknown: not in the registry

Resolution only reads the registry and the filesystem. It has no side
effects and is safe to call concurrently for different tool names.
"""

from __future__ import annotations

import shutil
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

from artipack.platform.files import is_empty_dir, tree_size

from .base import SourceKind, normalize_tool_name
from .manifest import load_manifest, verify_manifest

if TYPE_CHECKING:
    from .base import ToolRecord
    from .registry import ToolRegistry

__all__ = ["DependencyState", "DependencyStatus", "DependencyResolver"]


class DependencyState(Enum):
    AVAILABLE = "available"
    CACHED = "cached"
    MISSING = "missing"
    UNKNOWN = "unknown"

    def __str__(self) -> str:
        return self.value

    @property
    def is_present(self) -> bool:
        """True when the tool can be used or bundled as-is."""
        return self in (DependencyState.AVAILABLE, DependencyState.CACHED)


@dataclass(frozen=True, slots=True)
class DependencyStatus:
    """Resolution result for one tool name.

    Attributes:
        name: Tool name as queried (normalized)
        status: Resolution state
        source: Registry source kind, None when unknown
        path: Host binary (available) or cache directory (cached)
        url: Download URL for downloadable tools
        size_bytes: File or cached tree size, 0 when not present
    """

    name: str
    status: DependencyState
    source: SourceKind | None = None
    path: Path | None = None
    url: str | None = None
    size_bytes: int = 0

    @property
    def is_present(self) -> bool:
        return self.status.is_present

    @property
    def can_fetch(self) -> bool:
        """Missing but downloadable."""
        return self.status is DependencyState.MISSING and self.url is not None


class DependencyResolver:
    """Classifies tools against a registry and a cache directory.

    Args:
        registry: Tool registry
        cache_dir: Root of the per-tool cache (``<cache_dir>/<tool>/``)
        strict: Require a valid integrity manifest for "cached"
        verify_hashes: In strict mode, also re-hash cached files
        search_path: Fall back to PATH lookup for system tools
    """

    def __init__(
        self,
        registry: ToolRegistry,
        cache_dir: Path,
        *,
        strict: bool = True,
        verify_hashes: bool = False,
        search_path: bool = True,
    ) -> None:
        self._registry = registry
        self._cache_dir = cache_dir
        self._strict = strict
        self._verify_hashes = verify_hashes
        self._search_path = search_path

    @property
    def registry(self) -> ToolRegistry:
        return self._registry

    @property
    def cache_dir(self) -> Path:
        return self._cache_dir

    def tool_cache_dir(self, name: str) -> Path:
        """Cache subdirectory for a tool."""
        return self._cache_dir / normalize_tool_name(name)

    def status(self, name: str) -> DependencyStatus:
        """Resolve a tool name to its current status."""
        canonical = normalize_tool_name(name) or name
        record = self._registry.get(canonical)
        if record is None:
            return DependencyStatus(name=canonical, status=DependencyState.UNKNOWN)

        if record.source is SourceKind.SYSTEM:
            return self._system_status(record)
        return self._cache_status(record)

    def statuses(self, names: list[str]) -> list[DependencyStatus]:
        return [self.status(name) for name in names]

    def is_cached(self, record: ToolRecord) -> bool:
        return self._cache_status(record).status is DependencyState.CACHED

    def _system_status(self, record: ToolRecord) -> DependencyStatus:
        candidates: list[Path] = []
        if record.path:
            candidates.append(Path(record.path))
        if self._search_path:
            found = shutil.which(record.name)
            if found:
                candidates.append(Path(found))

        for path in candidates:
            try:
                if path.is_file():
                    return DependencyStatus(
                        name=record.name,
                        status=DependencyState.AVAILABLE,
                        source=record.source,
                        path=path,
                        size_bytes=path.stat().st_size,
                    )
            except OSError:
                continue

        return DependencyStatus(
            name=record.name,
            status=DependencyState.MISSING,
            source=record.source,
            path=Path(record.path) if record.path else None,
        )

    def _cache_status(self, record: ToolRecord) -> DependencyStatus:
        tool_dir = self._cache_dir / record.name
        missing = DependencyStatus(
            name=record.name,
            status=DependencyState.MISSING,
            source=record.source,
            url=record.url,
        )

        if not tool_dir.is_dir() or is_empty_dir(tool_dir):
            return missing

        if self._strict:
            manifest = load_manifest(tool_dir)
            if manifest is None or not verify_manifest(
                tool_dir, manifest, hashes=self._verify_hashes
            ):
                return missing

        return DependencyStatus(
            name=record.name,
            status=DependencyState.CACHED,
            source=record.source,
            path=tool_dir,
            url=record.url,
            size_bytes=tree_size(tool_dir),
        )
