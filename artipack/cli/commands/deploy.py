from __future__ import annotations

from pathlib import Path

import typer

from artipack.cli.commands._helpers import exit_with_code
from artipack.cli.context import build_context
from artipack.core.errors import ErrorCode
from artipack.output.console import Style
from artipack.services.deploy import CheckStatus, check_package


def deploy(
    output_path: Path | None = typer.Option(
        None, "--output-path", help="Package directory (default: [paths] output)", show_default=False
    ),
) -> None:
    """Check that a built package is complete and deployable."""
    ctx = build_context()
    root = output_path or ctx.config.paths.output

    report = check_package(root)
    console = ctx.console
    console.header(f"Package {root}")
    for r in report.results:
        console.print(f"{r.name}: {r.message}", _style_for_status(r.status))
        if r.hint and r.status != CheckStatus.OK:
            console.print(f"hint: {r.hint}", Style.DIM)

    if not report.ok:
        console.error(f"{len(report.errors)} check(s) failed")
        exit_with_code(ErrorCode.IO_ERROR)
    console.success("Package is ready to deploy (run deploy.sh or deploy.cmd on the target)")


def _style_for_status(status: CheckStatus) -> Style:
    if status == CheckStatus.OK:
        return Style.SUCCESS
    if status == CheckStatus.WARNING:
        return Style.WARNING
    return Style.ERROR
