from __future__ import annotations

import typer

from artipack.cli.commands._helpers import load_index, split_names
from artipack.cli.context import build_context
from artipack.output.console import Style


def list_collections(
    include: list[str] | None = typer.Option(
        None, "--include", help="Collections to show (comma separated or repeated)"
    ),
    exclude: list[str] | None = typer.Option(
        None, "--exclude", help="Collections to hide (comma separated or repeated)"
    ),
    status: bool = typer.Option(False, "--status", help="Show dependency status per tool"),
) -> None:
    """List collections with their type and tool dependencies."""
    ctx = build_context()
    index = load_index(ctx)

    names: list[str] = []
    rows: list[list[str]] = []
    for name in index.select(split_names(include), split_names(exclude)):
        definition = index.get(name)
        if definition is None:
            continue
        names.append(name)
        deps = definition.dependencies
        if status:
            deps = [f"{s.name} ({s.status})" for s in ctx.resolver.statuses(deps)]
        rows.append([name, definition.type or "-", str(len(definition.sources)), ", ".join(deps) or "-"])

    ctx.console.table(
        ["Name", "Type", "Sources", "Dependencies"],
        rows,
        title=f"Collections in {index.root}",
    )
    ctx.console.print(f"{len(rows)} collection(s), {len(index.dependencies(names))} tool(s)", Style.DIM)