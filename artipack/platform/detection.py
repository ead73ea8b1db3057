"""Host operating system detection.

Tool records carry a platform tag; ``Platform`` is the host side of that
comparison.
"""

from __future__ import annotations

import sys as _sys
from enum import Enum, auto
from functools import lru_cache

__all__ = ["Platform", "detect_platform", "is_windows"]


class Platform(Enum):
    LINUX = auto()
    MACOS = auto()
    WINDOWS = auto()
    UNKNOWN = auto()

    def __str__(self) -> str:
        return self.name.lower()


@lru_cache(maxsize=1)
def detect_platform() -> Platform:
    """Detect the current operating system (cached)."""
    # NOTE: avoid platform.system() on Windows, it may query WMI and hang.
    system = _sys.platform.lower()
    if system.startswith("linux"):
        return Platform.LINUX
    if system.startswith("darwin"):
        return Platform.MACOS
    if system.startswith(("win32", "cygwin", "msys")):
        return Platform.WINDOWS
    return Platform.UNKNOWN


def is_windows() -> bool:
    return detect_platform() == Platform.WINDOWS
