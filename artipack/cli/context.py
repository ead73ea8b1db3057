from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path

import typer

from artipack.core.config import CONFIG_FILENAME, Config, load_config
from artipack.core.errors import ErrorCode
from artipack.core.result import Err
from artipack.output.console import ConsoleProtocol, RichConsole
from artipack.tools.registry import ToolRegistry
from artipack.tools.resolver import DependencyResolver

ENV_CONFIG = "ARTIPACK_CONFIG"
ENV_COLLECTIONS = "ARTIPACK_COLLECTIONS"
ENV_CACHE_DIR = "ARTIPACK_CACHE_DIR"


@dataclass(frozen=True, slots=True)
class CLIContext:
    config: Config
    console: ConsoleProtocol
    registry: ToolRegistry
    resolver: DependencyResolver


def _load(console: ConsoleProtocol) -> Config:
    explicit = os.environ.get(ENV_CONFIG)
    path = Path(explicit).expanduser() if explicit else Path.cwd() / CONFIG_FILENAME
    if not explicit and not path.is_file():
        return Config()

    result = load_config(path)
    if isinstance(result, Err):
        console.error(result.error.message)
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))
    return result.value


def build_context() -> CLIContext:
    console = RichConsole()
    config = _load(console)

    paths = config.paths
    if collections := os.environ.get(ENV_COLLECTIONS):
        paths = replace(paths, collections=Path(collections).expanduser())
    if cache := os.environ.get(ENV_CACHE_DIR):
        paths = replace(paths, cache=Path(cache).expanduser())
    config = replace(config, paths=paths)

    registry_result = ToolRegistry.builtin().with_overrides(config.registry.overrides)
    if isinstance(registry_result, Err):
        console.error(registry_result.error.message)
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))
    registry = registry_result.value

    return CLIContext(
        config=config,
        console=console,
        registry=registry,
        resolver=DependencyResolver(
            registry,
            config.paths.cache,
            strict=config.cache.strict,
            verify_hashes=config.cache.verify_hashes,
        ),
    )
