"""Platform abstraction layer."""

from .detection import Platform, detect_platform, is_windows
from .files import atomic_write_text, is_empty_dir, iter_files, tree_size
from .paths import default_tool_cache_dir, home, user_cache_dir

__all__ = [
    # detection
    "Platform",
    "detect_platform",
    "is_windows",
    # files
    "atomic_write_text",
    "is_empty_dir",
    "iter_files",
    "tree_size",
    # paths
    "default_tool_cache_dir",
    "home",
    "user_cache_dir",
]
