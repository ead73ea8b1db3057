"""Typed configuration loading and access.

This module provides frozen dataclasses for the ``artipack.toml`` structure:

    [paths]
    collections = "artifacts"
    output = "dist/offline"
    cache = "~/.cache/artipack/tools"

    [download]
    timeout = 120.0
    workers = 4
    retries = 0

    [cache]
    strict = true
    verify_hashes = false

    [registry]
    overrides = "tools.toml"

Relative paths are resolved against the directory holding the config file.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from artipack import __version__
from artipack.platform.paths import default_tool_cache_dir

from .result import Err, Ok, Result
from .structured import StrDict, as_str_dict, get_bool, get_float, get_int, get_str, get_table

__all__ = [
    "Config",
    "PathsConfig",
    "DownloadConfig",
    "CacheConfig",
    "RegistryConfig",
    "ConfigError",
    "CONFIG_FILENAME",
    "DEFAULT_TIMEOUT",
    "DEFAULT_WORKERS",
    "MAX_WORKERS",
    "load_config",
]

CONFIG_FILENAME = "artipack.toml"

DEFAULT_TIMEOUT = 120.0
MIN_TIMEOUT = 1.0
MAX_TIMEOUT = 600.0
DEFAULT_WORKERS = 4
MAX_WORKERS = 8
DEFAULT_USER_AGENT = f"artipack/{__version__}"


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when config cannot be loaded or parsed."""

    message: str
    path: Path | None = None


@dataclass(frozen=True, slots=True)
class PathsConfig:
    """Filesystem locations used by the pipeline."""

    collections: Path = Path("artifacts")
    output: Path = Path("offline-package")
    cache: Path = field(default_factory=default_tool_cache_dir)


@dataclass(frozen=True, slots=True)
class DownloadConfig:
    """Network fetch settings.

    Attributes:
        timeout: Per-request timeout in seconds
        workers: Concurrent downloads (clamped to 1..MAX_WORKERS)
        retries: Extra attempts for a failed tool within one batch
        user_agent: User-Agent header sent with every request
    """

    timeout: float = DEFAULT_TIMEOUT
    workers: int = DEFAULT_WORKERS
    retries: int = 0
    user_agent: str = DEFAULT_USER_AGENT


@dataclass(frozen=True, slots=True)
class CacheConfig:
    """Cache verification policy.

    strict: a cached tool needs a matching integrity manifest
    verify_hashes: also re-hash cached files on every status query
    """

    strict: bool = True
    verify_hashes: bool = False


@dataclass(frozen=True, slots=True)
class RegistryConfig:
    """Tool registry customisation."""

    overrides: Path | None = None


@dataclass(frozen=True, slots=True)
class Config:
    """Main configuration container."""

    paths: PathsConfig = field(default_factory=PathsConfig)
    download: DownloadConfig = field(default_factory=DownloadConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    registry: RegistryConfig = field(default_factory=RegistryConfig)

    @classmethod
    def from_dict(cls, data: Mapping[str, object], *, base_dir: Path | None = None) -> Config:
        """Create Config from a mapping (parsed TOML)."""
        paths: StrDict = get_table(data, "paths") or {}
        download: StrDict = get_table(data, "download") or {}
        cache: StrDict = get_table(data, "cache") or {}
        registry: StrDict = get_table(data, "registry") or {}

        def _path(value: str | None, default: Path | None) -> Path | None:
            if value is None:
                return default
            p = Path(value).expanduser()
            if base_dir is not None and not p.is_absolute():
                p = base_dir / p
            return p

        defaults = PathsConfig()
        timeout = get_float(download, "timeout") or DEFAULT_TIMEOUT
        workers = get_int(download, "workers") or DEFAULT_WORKERS
        retries = get_int(download, "retries") or 0

        if retries < 0:
            raise ValueError("download.retries must be >= 0")

        return cls(
            paths=PathsConfig(
                collections=_path(get_str(paths, "collections"), defaults.collections)
                or defaults.collections,
                output=_path(get_str(paths, "output"), defaults.output) or defaults.output,
                cache=_path(get_str(paths, "cache"), defaults.cache) or defaults.cache,
            ),
            download=DownloadConfig(
                timeout=min(max(timeout, MIN_TIMEOUT), MAX_TIMEOUT),
                workers=min(max(workers, 1), MAX_WORKERS),
                retries=retries,
                user_agent=get_str(download, "user_agent") or DEFAULT_USER_AGENT,
            ),
            cache=CacheConfig(
                strict=_bool_or(get_bool(cache, "strict"), True),
                verify_hashes=_bool_or(get_bool(cache, "verify_hashes"), False),
            ),
            registry=RegistryConfig(
                overrides=_path(get_str(registry, "overrides"), None),
            ),
        )


def _bool_or(value: bool | None, default: bool) -> bool:
    return default if value is None else value


def _parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    """Parse a TOML file, handling import and parse errors."""
    import tomllib

    try:
        content = path.read_bytes()
        data_obj: object = tomllib.loads(content.decode("utf-8"))
        data = as_str_dict(data_obj)
        if data is None:
            return Err(ConfigError("Config root must be a TOML table", path=path))
        return Ok(data)
    except FileNotFoundError:
        return Err(ConfigError(f"Config file not found: {path}", path=path))
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))


def load_config(path: Path) -> Result[Config, ConfigError]:
    """Load and parse configuration from a TOML file.

    Args:
        path: Path to artipack.toml

    Returns:
        Ok(Config) on success, Err(ConfigError) on failure
    """
    result = _parse_toml(path)
    if isinstance(result, Err):
        return result

    try:
        return Ok(Config.from_dict(result.value, base_dir=path.parent))
    except (KeyError, TypeError, ValueError) as e:
        return Err(ConfigError(f"Invalid config structure: {e}", path=path))
