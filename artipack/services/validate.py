"""Collection validation.

Hard errors make a collection invalid: a missing name or no sources.
Everything else is advisory: dependencies that are missing or unknown, and
queries that do not look like VQL at all.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from artipack.tools.resolver import DependencyState

if TYPE_CHECKING:
    from artipack.catalog.models import CollectionDefinition, CollectionIndex
    from artipack.tools.resolver import DependencyResolver

__all__ = ["QUERY_KEYWORDS", "ValidationResult", "ValidationReport", "Validator"]

QUERY_KEYWORDS = ("SELECT", "LET", "FROM", "WHERE", "FOREACH")

_KEYWORD_RE = re.compile(r"\b(?:" + "|".join(QUERY_KEYWORDS) + r")\b", re.IGNORECASE)


@dataclass(frozen=True, slots=True)
class ValidationResult:
    """Validation outcome for one collection."""

    name: str
    valid: bool
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()


@dataclass(slots=True)
class ValidationReport:
    """Validation outcomes for a set of collections."""

    results: list[ValidationResult] = field(default_factory=list)

    @property
    def invalid(self) -> list[ValidationResult]:
        return [r for r in self.results if not r.valid]

    @property
    def valid_count(self) -> int:
        return sum(1 for r in self.results if r.valid)

    @property
    def warning_count(self) -> int:
        return sum(len(r.warnings) for r in self.results)

    @property
    def ok(self) -> bool:
        return not self.invalid


def looks_like_query(text: str) -> bool:
    """Heuristic: does the text contain at least one VQL keyword?"""
    return bool(_KEYWORD_RE.search(text or ""))


class Validator:
    """Checks collection definitions against structure and tool availability."""

    def __init__(self, resolver: DependencyResolver) -> None:
        self._resolver = resolver

    def validate(self, definition: CollectionDefinition) -> ValidationResult:
        errors: list[str] = []
        warnings: list[str] = []

        label = definition.name or definition.file_path.name
        if not definition.name:
            errors.append(f"Missing name ({definition.file_path})")
        if not definition.sources:
            errors.append("No sources defined: a collection needs at least one source query")

        for i, source in enumerate(definition.sources, start=1):
            source_label = source.name or f"#{i}"
            if not source.query.strip():
                warnings.append(f"Source {source_label}: empty query")
            elif not looks_like_query(source.query):
                warnings.append(f"Source {source_label}: query has no recognizable VQL keyword")

        for tool in definition.dependencies:
            status = self._resolver.status(tool)
            if status.status is DependencyState.MISSING:
                hint = "downloadable" if status.url else "not installed on this host"
                warnings.append(f"Dependency {tool} is missing ({hint})")
            elif status.status is DependencyState.UNKNOWN:
                warnings.append(f"Dependency {tool} is unknown to the tool registry")

        return ValidationResult(
            name=label,
            valid=not errors,
            errors=tuple(errors),
            warnings=tuple(warnings),
        )

    def validate_all(
        self,
        index: CollectionIndex,
        names: list[str] | None = None,
    ) -> ValidationReport:
        """Validate the named collections (all when names is None).

        Names absent from the index are reported as invalid results.
        """
        report = ValidationReport()
        for name in names if names is not None else index.names():
            definition = index.get(name)
            if definition is None:
                report.results.append(
                    ValidationResult(name=name, valid=False, errors=(f"Unknown collection: {name}",))
                )
                continue
            report.results.append(self.validate(definition))
        return report
