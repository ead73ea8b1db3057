"""Build and package commands - assemble the offline package."""

from __future__ import annotations

from enum import StrEnum
from pathlib import Path

import typer

from artipack.cli.commands._helpers import exit_with_code, format_size, load_index, select_collections
from artipack.cli.commands.download import make_download_service, run_download
from artipack.cli.context import CLIContext, build_context
from artipack.core.errors import ErrorCode
from artipack.output.console import Style
from artipack.services.package import OfflinePackage, OfflinePackager, PackagingError


class ArchiveFormat(StrEnum):
    zip = "zip"
    tar_gz = "tar.gz"


def build(
    output_path: Path | None = typer.Option(
        None, "--output-path", help="Package directory (default: [paths] output)", show_default=False
    ),
    include: list[str] | None = typer.Option(
        None, "--include", help="Collections to package (comma separated or repeated)"
    ),
    exclude: list[str] | None = typer.Option(
        None, "--exclude", help="Collections to leave out (comma separated or repeated)"
    ),
    offline: bool = typer.Option(
        False, "--offline", help="Fetch missing tools and bundle them into the package"
    ),
) -> None:
    """Build an offline package directory."""
    ctx = build_context()
    _build(ctx, output_path, include, exclude, offline=offline)


def package(
    output_path: Path | None = typer.Option(
        None, "--output-path", help="Package directory (default: [paths] output)", show_default=False
    ),
    include: list[str] | None = typer.Option(
        None, "--include", help="Collections to package (comma separated or repeated)"
    ),
    exclude: list[str] | None = typer.Option(
        None, "--exclude", help="Collections to leave out (comma separated or repeated)"
    ),
    offline: bool = typer.Option(
        False, "--offline", help="Fetch missing tools and bundle them into the package"
    ),
    fmt: ArchiveFormat = typer.Option(ArchiveFormat.zip, "--format", help="Archive format"),
) -> None:
    """Build an offline package and archive it."""
    ctx = build_context()
    packager, result = _build(ctx, output_path, include, exclude, offline=offline)

    try:
        archive = packager.archive(result, fmt.value)
    except PackagingError as e:
        ctx.console.error(e.message)
        exit_with_code(ErrorCode.IO_ERROR)

    size = archive.stat().st_size
    ctx.console.success(f"{archive} ({format_size(size)})")


def _build(
    ctx: CLIContext,
    output_path: Path | None,
    include: list[str] | None,
    exclude: list[str] | None,
    *,
    offline: bool,
) -> tuple[OfflinePackager, OfflinePackage]:
    index = load_index(ctx)
    selection = select_collections(ctx, index, include, exclude, keep_unknown=True)
    output = output_path or ctx.config.paths.output

    if offline:
        tools = index.dependencies(selection)
        if tools:
            ctx.console.header("Tools")
            run_download(ctx, make_download_service(ctx), tools)

    ctx.console.header("Package")
    packager = OfflinePackager(index=index, resolver=ctx.resolver, console=ctx.console)
    try:
        result = packager.build(selection, output, bundle_tools=offline)
    except PackagingError as e:
        ctx.console.error(e.message)
        exit_with_code(ErrorCode.IO_ERROR)

    ctx.console.print(
        f"{len(result.collections)} collection(s), {len(result.tools)} tool(s), "
        f"{format_size(result.size_bytes)}",
        Style.DIM,
    )
    if result.missing_tools:
        ctx.console.print(f"not bundled: {', '.join(result.missing_tools)}", Style.DIM)

    if not result.collections:
        ctx.console.error("No collections were packaged")
        exit_with_code(ErrorCode.USER_ERROR)
    if not result.success:
        ctx.console.error(f"Package incomplete: {result.path}")
        exit_with_code(ErrorCode.IO_ERROR)

    ctx.console.success(str(result.path))
    return packager, result
