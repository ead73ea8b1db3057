"""Platform-aware user directories.

The tool cache lives outside any package or collection library so that
downloads survive rebuilds:

- Linux/macOS: ``$XDG_CACHE_HOME/artipack`` or ``~/.cache/artipack``
- Windows: ``%LOCALAPPDATA%\\artipack``
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

from .detection import is_windows

__all__ = [
    "home",
    "user_cache_dir",
    "default_tool_cache_dir",
    "clear_caches",
]

APP_NAME = "artipack"


@lru_cache(maxsize=1)
def home() -> Path:
    """Get user's home directory.

    Uses USERPROFILE on Windows, HOME on Unix, then Path.home().
    """
    if is_windows():
        userprofile = os.environ.get("USERPROFILE")
        if userprofile:
            return Path(userprofile)
    else:
        home_env = os.environ.get("HOME")
        if home_env:
            return Path(home_env)

    return Path.home()


@lru_cache(maxsize=1)
def user_cache_dir() -> Path:
    """Get the user-level cache directory for artipack."""
    if is_windows():
        local_app_data = os.environ.get("LOCALAPPDATA")
        if local_app_data:
            return Path(local_app_data) / APP_NAME
        return home() / "AppData" / "Local" / APP_NAME

    xdg_cache = os.environ.get("XDG_CACHE_HOME")
    if xdg_cache:
        return Path(xdg_cache) / APP_NAME
    return home() / ".cache" / APP_NAME


def default_tool_cache_dir() -> Path:
    """Directory holding one extracted subdirectory per downloaded tool."""
    return user_cache_dir() / "tools"


def clear_caches() -> None:
    """Clear cached paths (tests change HOME/XDG variables)."""
    home.cache_clear()
    user_cache_dir.cache_clear()
