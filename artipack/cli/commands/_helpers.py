"""Shared helpers for CLI commands."""

from __future__ import annotations

import threading
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING, NoReturn

import typer

from artipack.catalog.loader import load_catalog
from artipack.core.errors import ErrorCode
from artipack.core.result import Err
from artipack.output.console import Style

if TYPE_CHECKING:
    from artipack.catalog.models import CollectionIndex
    from artipack.cli.context import CLIContext
    from artipack.output.console import ConsoleProtocol


def exit_with_code(code: ErrorCode) -> NoReturn:
    """Exit with given code. Explicit helper for clarity."""
    raise typer.Exit(code=int(code))


def split_names(values: list[str] | None) -> list[str]:
    """Flatten repeated and comma separated option values."""
    names: list[str] = []
    for value in values or []:
        names.extend(part.strip() for part in value.split(",") if part.strip())
    return list(dict.fromkeys(names))


def load_index(ctx: CLIContext) -> CollectionIndex:
    """Load the collection catalog or exit with USER_ERROR."""
    directory = ctx.config.paths.collections
    result = load_catalog(directory)
    if isinstance(result, Err):
        ctx.console.error(result.error.message)
        ctx.console.print("hint: pass --collections-path or set [paths] collections", Style.DIM)
        exit_with_code(ErrorCode.USER_ERROR)

    index = result.value
    for warning in index.warnings:
        ctx.console.warning(warning)
    return index


def select_collections(
    ctx: CLIContext,
    index: CollectionIndex,
    include: list[str] | None,
    exclude: list[str] | None,
    *,
    keep_unknown: bool = False,
) -> list[str]:
    """Resolve --include/--exclude against the index.

    Unknown included names are warned about and dropped unless keep_unknown
    is set. Exits with USER_ERROR when nothing is left.
    """
    selection = index.select(split_names(include), split_names(exclude))
    if not keep_unknown:
        for name in selection:
            if name not in index:
                ctx.console.warning(f"Unknown collection {name!r} skipped")
        selection = [name for name in selection if name in index]

    if not selection:
        ctx.console.error(f"No collections selected (catalog has {len(index)})")
        exit_with_code(ErrorCode.USER_ERROR)
    return selection


def run_cancellable[T](
    fn: Callable[[threading.Event], T],
    console: ConsoleProtocol,
) -> T:
    """Run fn on a helper thread; Ctrl+C sets the event and waits for fn."""
    cancel = threading.Event()
    with ThreadPoolExecutor(max_workers=1) as pool:
        future = pool.submit(fn, cancel)
        while True:
            try:
                return future.result(timeout=0.2)
            except TimeoutError:
                continue
            except KeyboardInterrupt:
                cancel.set()
                console.warning("Cancelling: waiting for running downloads to finish")
                return future.result()


def format_size(size: int) -> str:
    value = float(size)
    for unit in ("B", "KiB", "MiB", "GiB"):
        if value < 1024 or unit == "GiB":
            return f"{value:.0f} {unit}" if unit == "B" else f"{value:.1f} {unit}"
        value /= 1024
    return f"{size} B"
