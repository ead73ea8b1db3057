"""Collection catalog: definition loading and dependency extraction."""

from .extractor import PATTERNS, ToolPattern, enrich, extract_tool_names
from .loader import discover_definition_files, load_catalog, parse_definition
from .models import CatalogError, CollectionDefinition, CollectionIndex, ParseError, Source

__all__ = [
    # models
    "CatalogError",
    "CollectionDefinition",
    "CollectionIndex",
    "ParseError",
    "Source",
    # extractor
    "PATTERNS",
    "ToolPattern",
    "enrich",
    "extract_tool_names",
    # loader
    "discover_definition_files",
    "load_catalog",
    "parse_definition",
]
