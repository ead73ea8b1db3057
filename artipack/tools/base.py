"""Base definitions for the tools system.

This module defines the core abstractions:
- SourceKind: where a tool comes from (host path vs downloadable archive)
- ToolRecord: immutable provenance metadata for one tool
- normalize_tool_name: canonical form used as registry and cache key
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from pathlib import PurePosixPath


__all__ = [
    "CROSS_PLATFORM",
    "SourceKind",
    "ToolRecord",
    "normalize_tool_name",
]

CROSS_PLATFORM = "cross-platform"

_PLATFORM_TAGS = frozenset({"windows", "linux", "macos", CROSS_PLATFORM})
_VALID_NAME = re.compile(r"^[a-z0-9][a-z0-9._+-]*$")


class SourceKind(Enum):
    """How a tool is obtained.

    SYSTEM: expected at a fixed path on the host
    DOWNLOAD: fetched from a URL and extracted into the cache
    """

    SYSTEM = "system"
    DOWNLOAD = "download"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, value: str) -> SourceKind:
        """Parse "system"/"system-path" or "download"/"downloadable"."""
        tag = value.strip().lower()
        if tag in ("system", "system-path", "path"):
            return cls.SYSTEM
        if tag in ("download", "downloadable", "url"):
            return cls.DOWNLOAD
        raise ValueError(f"Unknown tool source kind: {value!r}")


def normalize_tool_name(raw: str) -> str:
    """Return the canonical tool name for a reference found in a definition.

    Directory components and a trailing ".exe" are dropped and the result
    is lower-cased, so ``C:\\Tools\\Yara64.EXE`` becomes ``yara64``.
    Returns an empty string when nothing usable remains.
    """
    text = raw.strip().strip("\"'").replace("\\", "/")
    if not text:
        return ""
    name = PurePosixPath(text).name.lower()
    if name.endswith(".exe"):
        name = name[: -len(".exe")]
    return name if _VALID_NAME.match(name) else ""


@dataclass(frozen=True, slots=True)
class ToolRecord:
    """Immutable tool provenance metadata.

    Exactly one of ``path``/``url`` is meaningful, selected by ``source``.

    Attributes:
        name: Canonical tool name (registry and cache key)
        platform: "windows", "linux", "macos" or "cross-platform"
        source: SourceKind.SYSTEM or SourceKind.DOWNLOAD
        path: Host path of a system tool
        url: Archive or executable URL of a downloadable tool
        license: License identifier or short text
        description: Human-readable summary
    """

    name: str
    platform: str
    source: SourceKind
    path: str | None = None
    url: str | None = None
    license: str = ""
    description: str = ""

    def __post_init__(self) -> None:
        """Validate the record."""
        if not self.name:
            raise ValueError("Tool name cannot be empty")
        if normalize_tool_name(self.name) != self.name:
            raise ValueError(f"Tool name must be normalized: {self.name!r}")
        if self.platform not in _PLATFORM_TAGS:
            raise ValueError(f"Unknown platform for {self.name}: {self.platform!r}")
        if self.source is SourceKind.SYSTEM:
            if not self.path or self.url:
                raise ValueError(f"System tool {self.name} needs a path and no url")
        elif not self.url or self.path:
            raise ValueError(f"Downloadable tool {self.name} needs a url and no path")

    @property
    def is_downloadable(self) -> bool:
        return self.source is SourceKind.DOWNLOAD
