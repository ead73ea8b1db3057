from __future__ import annotations

import os
from pathlib import Path

import typer

from artipack import __version__
from artipack.cli.commands.build_cmd import build, package
from artipack.cli.commands.deploy import deploy
from artipack.cli.commands.download import download
from artipack.cli.commands.list_cmd import list_collections
from artipack.cli.commands.validate import validate
from artipack.cli.context import ENV_CACHE_DIR, ENV_COLLECTIONS, ENV_CONFIG
from artipack.core.errors import ErrorCode


app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# Commands
app.command("list")(list_collections)
app.command()(download)
app.command()(build)
app.command()(validate)
app.command()(package)
app.command()(deploy)


@app.callback()
def _main(  # pyright: ignore[reportUnusedFunction]
    version: bool = typer.Option(False, "--version", help="Show version and exit."),
    config: Path | None = typer.Option(
        None, "--config", help="Config file (default: ./artipack.toml)", show_default=False
    ),
    collections_path: Path | None = typer.Option(
        None, "--collections-path", help="Collection definitions directory", show_default=False
    ),
    cache_dir: Path | None = typer.Option(
        None, "--cache-dir", help="Tool cache directory", show_default=False
    ),
) -> None:
    if version:
        typer.echo(__version__)
        raise typer.Exit(code=0)

    if config is not None:
        path = config.expanduser()
        if not path.is_file():
            typer.echo(f"error: --config '{path}' does not exist", err=True)
            raise typer.Exit(code=int(ErrorCode.USER_ERROR))
        os.environ[ENV_CONFIG] = str(path.resolve())

    if collections_path is not None:
        os.environ[ENV_COLLECTIONS] = str(collections_path.expanduser().resolve())
    if cache_dir is not None:
        os.environ[ENV_CACHE_DIR] = str(cache_dir.expanduser().resolve())


def main() -> None:
    app()
