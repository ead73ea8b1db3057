"""Collection definition types.

A collection is a named investigative procedure made of one or more
sources, each a query plus an optional precondition. Definitions are read
from YAML files by the loader, enriched once by the dependency extractor
and treated as read-only afterwards.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from pathlib import Path

__all__ = [
    "Source",
    "CollectionDefinition",
    "CollectionIndex",
    "CatalogError",
    "ParseError",
]


@dataclass(frozen=True, slots=True)
class Source:
    """One data-source query of a collection."""

    query: str
    precondition: str = ""
    name: str = ""


def _empty_sources() -> list[Source]:
    return []


@dataclass(slots=True)
class CollectionDefinition:
    """A parsed collection definition.

    Attributes:
        name: Unique key ("" when the file declares none)
        type: Category tag (e.g. "CLIENT", "SERVER")
        description: Free text
        file_path: File the definition was loaded from
        parameters: Parameter name to default value
        preconditions: Guard expressions evaluated before any source
        sources: Ordered data-source queries
        dependencies: Tool names, declared first then discovered, no duplicates
    """

    name: str
    file_path: Path
    type: str = ""
    description: str = ""
    parameters: dict[str, str] = field(default_factory=dict)
    preconditions: list[str] = field(default_factory=list)
    sources: list[Source] = field(default_factory=_empty_sources)
    dependencies: list[str] = field(default_factory=list)

    def add_dependency(self, tool_name: str) -> bool:
        """Add a tool name if not already present.

        Returns:
            True if the name was added
        """
        if not tool_name or tool_name in self.dependencies:
            return False
        self.dependencies.append(tool_name)
        return True

    def texts(self) -> Iterator[str]:
        """All query and precondition strings of the definition."""
        yield from self.preconditions
        for source in self.sources:
            yield source.query
            if source.precondition:
                yield source.precondition


@dataclass(frozen=True, slots=True)
class CatalogError:
    """The collection directory is missing or unreadable."""

    message: str
    path: Path


@dataclass(frozen=True, slots=True)
class ParseError:
    """A single definition file could not be parsed."""

    path: Path
    message: str

    def __str__(self) -> str:
        return f"{self.path}: {self.message}"


class CollectionIndex:
    """In-memory collection catalog keyed by name.

    Besides the definitions, the index keeps the per-file parse errors and
    load warnings (e.g. duplicate names) so callers can report them.
    """

    def __init__(self, root: Path) -> None:
        self._root = root
        self._items: dict[str, CollectionDefinition] = {}
        self.errors: list[ParseError] = []
        self.warnings: list[str] = []

    @property
    def root(self) -> Path:
        return self._root

    def add(self, definition: CollectionDefinition, *, key: str | None = None) -> None:
        """Insert a definition; an existing entry with the same key is replaced."""
        key = key or definition.name
        previous = self._items.get(key)
        if previous is not None:
            self.warnings.append(
                f"Duplicate collection {key!r}: {definition.file_path} "
                f"replaces {previous.file_path}"
            )
        self._items[key] = definition

    def get(self, name: str) -> CollectionDefinition | None:
        return self._items.get(name)

    def names(self) -> list[str]:
        return sorted(self._items)

    def select(
        self,
        include: Iterable[str] | None = None,
        exclude: Iterable[str] | None = None,
    ) -> list[str]:
        """Names matching the include list (all when empty) minus excludes.

        Included names that are not in the index are kept so that callers
        can report them.
        """
        wanted = list(dict.fromkeys(include or ())) or self.names()
        skip = set(exclude or ())
        return [name for name in wanted if name not in skip]

    def dependencies(self, names: Iterable[str] | None = None) -> list[str]:
        """Distinct tool names required by the named collections, first-seen order."""
        seen: dict[str, None] = {}
        for name in names if names is not None else self.names():
            definition = self._items.get(name)
            if definition is not None:
                seen.update(dict.fromkeys(definition.dependencies))
        return list(seen)

    def __contains__(self, name: object) -> bool:
        return name in self._items

    def __iter__(self) -> Iterator[CollectionDefinition]:
        return (self._items[name] for name in self.names())

    def __len__(self) -> int:
        return len(self._items)
