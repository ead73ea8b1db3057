from __future__ import annotations

import typer

from artipack.cli.commands._helpers import exit_with_code, load_index, select_collections
from artipack.cli.context import build_context
from artipack.core.errors import ErrorCode
from artipack.output.console import Style
from artipack.services.validate import Validator


def validate(
    include: list[str] | None = typer.Option(
        None, "--include", help="Collections to validate (comma separated or repeated)"
    ),
    exclude: list[str] | None = typer.Option(
        None, "--exclude", help="Collections to skip (comma separated or repeated)"
    ),
    strict: bool = typer.Option(
        False, "--strict", help="Exit with an error if any collection or file is invalid"
    ),
) -> None:
    """Validate collection definitions and their tool dependencies."""
    ctx = build_context()
    index = load_index(ctx)
    selection = select_collections(ctx, index, include, exclude, keep_unknown=True)

    report = Validator(ctx.resolver).validate_all(index, selection)
    console = ctx.console

    for result in report.results:
        if result.valid:
            console.success(result.name)
        else:
            console.print(f"FAIL {result.name}", Style.ERROR)
        for error in result.errors:
            console.print(f"  error: {error}", Style.ERROR)
        for warning in result.warnings:
            console.print(f"  warning: {warning}", Style.WARNING)

    failures = len(report.invalid) + len(index.errors)
    console.newline()
    console.print(
        f"{report.valid_count} valid, {len(report.invalid)} invalid, "
        f"{len(index.errors)} unreadable file(s), {report.warning_count} warning(s)",
        Style.BOLD,
    )

    if strict and failures:
        exit_with_code(ErrorCode.VALIDATION_ERROR)
