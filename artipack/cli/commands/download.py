"""Download command - fetch missing tool dependencies into the cache."""

from __future__ import annotations

import typer

from artipack.cli.commands._helpers import (
    exit_with_code,
    format_size,
    load_index,
    run_cancellable,
    select_collections,
)
from artipack.cli.context import CLIContext, build_context
from artipack.core.errors import ErrorCode
from artipack.output.console import Style
from artipack.services.download import DownloadReport, DownloadService
from artipack.tools.fetcher import Fetcher
from artipack.tools.http import RealHttpClient


def download(
    include: list[str] | None = typer.Option(
        None, "--include", help="Collections whose tools to fetch (comma separated or repeated)"
    ),
    exclude: list[str] | None = typer.Option(
        None, "--exclude", help="Collections to skip (comma separated or repeated)"
    ),
    validate_only: bool = typer.Option(
        False, "--validate-only", help="Show what would be downloaded, without network access"
    ),
) -> None:
    """Download missing tool dependencies of the selected collections."""
    ctx = build_context()
    index = load_index(ctx)
    selection = select_collections(ctx, index, include, exclude)

    tools = index.dependencies(selection)
    if not tools:
        ctx.console.info("Selected collections have no tool dependencies")
        return

    service = make_download_service(ctx)
    if validate_only:
        _print_plan(ctx, service, tools)
        return

    report = run_download(ctx, service, tools)
    if not report.ok:
        exit_with_code(ErrorCode.NETWORK_ERROR)


def make_download_service(ctx: CLIContext) -> DownloadService:
    settings = ctx.config.download
    http = RealHttpClient(timeout=settings.timeout, user_agent=settings.user_agent)
    return DownloadService(
        resolver=ctx.resolver,
        fetcher=Fetcher(http, ctx.resolver),
        console=ctx.console,
        workers=settings.workers,
        retries=settings.retries,
    )


def run_download(ctx: CLIContext, service: DownloadService, tools: list[str]) -> DownloadReport:
    """Run a batch download with Ctrl+C cancellation and print the summary."""
    report = run_cancellable(lambda cancel: service.download_missing(tools, cancel=cancel), ctx.console)

    summary = f"{report.downloaded} downloaded, {report.available} already present, {report.failed} failed"
    if report.cancelled:
        ctx.console.warning(f"Cancelled: {summary}")
    elif report.failed:
        ctx.console.error(summary)
    else:
        ctx.console.success(summary)
    return report


def _print_plan(ctx: CLIContext, service: DownloadService, tools: list[str]) -> None:
    rows: list[list[str]] = []
    to_fetch = 0
    for status in service.plan(tools):
        if status.can_fetch:
            action = "download"
            to_fetch += 1
        elif status.is_present:
            action = "-"
        else:
            action = "unavailable"
        where = str(status.path) if status.path else (status.url or "-")
        size = format_size(status.size_bytes) if status.size_bytes else "-"
        rows.append([status.name, str(status.status), str(status.source or "-"), action, size, where])

    ctx.console.table(["Tool", "Status", "Source", "Action", "Size", "Location"], rows, title="Download plan")
    ctx.console.print(f"{to_fetch} tool(s) would be downloaded to {ctx.resolver.cache_dir}", Style.DIM)
