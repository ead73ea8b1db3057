"""Collection catalog loading.

Definitions are YAML files in the Velociraptor artifact style, discovered
recursively (``*.yaml`` / ``*.yml``) in sorted relative-path order so that
duplicate-name resolution is deterministic: the file loaded last wins.

A malformed file is recorded on ``index.errors`` and skipped; only a
missing or unreadable collection directory fails the whole load.
"""

from __future__ import annotations

from pathlib import Path

import yaml

from artipack.core.result import Err, Ok, Result
from artipack.core.structured import (
    StrDict,
    as_str_dict,
    get_list,
    get_scalar_str,
    get_str,
    get_str_list,
)
from artipack.tools.base import normalize_tool_name

from .extractor import enrich
from .models import CatalogError, CollectionDefinition, CollectionIndex, ParseError, Source

__all__ = [
    "DEFINITION_SUFFIXES",
    "discover_definition_files",
    "parse_definition",
    "load_catalog",
]

DEFINITION_SUFFIXES = (".yaml", ".yml")


def discover_definition_files(directory: Path) -> list[Path]:
    """Definition files under directory, sorted by relative path."""
    files = [
        p
        for p in directory.rglob("*")
        if p.is_file() and p.suffix.lower() in DEFINITION_SUFFIXES
    ]
    return sorted(files, key=lambda p: p.relative_to(directory).as_posix())


def _parse_parameters(data: StrDict) -> dict[str, str]:
    raw = data.get("parameters")
    params: dict[str, str] = {}

    mapping = as_str_dict(raw)
    if mapping is not None:
        for key, value in mapping.items():
            params[key] = "" if value is None else str(value)
        return params

    for item in get_list(data, "parameters") or []:
        entry = as_str_dict(item)
        if entry is None:
            continue
        name = get_str(entry, "name")
        if name:
            params[name] = get_scalar_str(entry, "default") or ""
    return params


def _parse_sources(data: StrDict) -> list[Source]:
    raw = data.get("sources")
    if raw is None:
        return []

    items = get_list(data, "sources")
    if items is None:
        raise ValueError("'sources' must be a list")

    sources: list[Source] = []
    for i, item in enumerate(items):
        entry = as_str_dict(item)
        if entry is None:
            raise ValueError(f"source #{i + 1} must be a mapping")
        sources.append(
            Source(
                query=str(entry.get("query") or ""),
                precondition=str(entry.get("precondition") or ""),
                name=get_str(entry, "name") or "",
            )
        )
    return sources


def _declared_dependencies(data: StrDict) -> list[str]:
    names: list[str] = []
    for item in get_list(data, "tools") or []:
        entry = as_str_dict(item)
        raw = get_str(entry, "name") if entry is not None else item
        if isinstance(raw, str):
            names.append(raw)
    names.extend(get_str_list(data, "dependencies"))

    normalized: list[str] = []
    for raw in names:
        name = normalize_tool_name(raw)
        if name and name not in normalized:
            normalized.append(name)
    return normalized


def parse_definition(path: Path) -> Result[CollectionDefinition, ParseError]:
    """Parse one definition file (without dependency extraction)."""
    try:
        with path.open("r", encoding="utf-8") as f:
            data_obj: object = yaml.safe_load(f)
    except yaml.YAMLError as e:
        return Err(ParseError(path=path, message=f"Invalid YAML: {e}"))
    except UnicodeDecodeError as e:
        return Err(ParseError(path=path, message=f"Not UTF-8 text: {e}"))
    except OSError as e:
        return Err(ParseError(path=path, message=f"Cannot read file: {e}"))

    data = as_str_dict(data_obj)
    if data is None:
        return Err(ParseError(path=path, message="Definition root must be a mapping"))

    try:
        sources = _parse_sources(data)
    except ValueError as e:
        return Err(ParseError(path=path, message=str(e)))

    preconditions = get_str_list(data, "preconditions")
    single = get_str(data, "precondition")
    if single and single not in preconditions:
        preconditions.insert(0, single)

    return Ok(
        CollectionDefinition(
            name=get_scalar_str(data, "name") or "",
            file_path=path,
            type=get_str(data, "type") or "",
            description=get_str(data, "description") or "",
            parameters=_parse_parameters(data),
            preconditions=preconditions,
            sources=sources,
            dependencies=_declared_dependencies(data),
        )
    )


def load_catalog(directory: Path) -> Result[CollectionIndex, CatalogError]:
    """Load every definition under directory into a CollectionIndex.

    Args:
        directory: Root of the collection library

    Returns:
        Ok(index), or Err(CatalogError) if directory is missing/unreadable
    """
    if not directory.exists():
        return Err(CatalogError(f"Collection directory not found: {directory}", path=directory))
    if not directory.is_dir():
        return Err(CatalogError(f"Not a directory: {directory}", path=directory))

    try:
        files = discover_definition_files(directory)
    except OSError as e:
        return Err(CatalogError(f"Cannot read collection directory: {e}", path=directory))

    index = CollectionIndex(directory)
    for path in files:
        result = parse_definition(path)
        if isinstance(result, Err):
            index.errors.append(result.error)
            index.warnings.append(f"Skipped {result.error}")
            continue

        definition = enrich(result.value)
        index.add(definition, key=definition.name or path.stem)

    return Ok(index)
