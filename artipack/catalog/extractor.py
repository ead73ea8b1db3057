"""Static tool-dependency extraction from query text.

The extractor scans every precondition and source query of a definition for
the common ways a tool shows up in VQL and merges the names it finds into
``definition.dependencies``. It is a heuristic: unrecognised idioms are
simply missed, and malformed text never raises.

The pattern table is ordered and public so new idioms can be added (or a
custom table passed to ``extract_tool_names``).
"""

from __future__ import annotations

import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from artipack.tools.base import normalize_tool_name

from .models import CollectionDefinition

__all__ = [
    "ToolPattern",
    "PATTERNS",
    "extract_tool_names",
    "enrich",
]


def _whole(match: re.Match[str]) -> str:
    return match.group("tool")


def _first_token(match: re.Match[str]) -> str:
    parts = match.group("tool").split()
    return parts[0] if parts else ""


@dataclass(frozen=True, slots=True)
class ToolPattern:
    """One extraction rule.

    Attributes:
        label: Short identifier used in tests and debugging
        regex: Compiled pattern with a named group "tool"
        extract: Turns a match into a raw tool reference
    """

    label: str
    regex: re.Pattern[str]
    extract: Callable[[re.Match[str]], str] = _whole


_QUOTED = r"""(?P<q>["'])(?P<tool>[^"'\n]+)(?P=q)"""

PATTERNS: tuple[ToolPattern, ...] = (
    # execve(argv=["yara.exe", ...]) and execve(argv=['cmd.exe', '/c', ...])
    ToolPattern(
        "execve",
        re.compile(r"execve\s*\(\s*argv\s*=\s*\[\s*" + _QUOTED, re.IGNORECASE),
    ),
    # Generic.Utils.FetchBinary(ToolName="Autorunsc"), tool_name: 'yara'
    ToolPattern(
        "tool-name",
        re.compile(r"\btool[ _]?name\s*[=:]\s*" + _QUOTED, re.IGNORECASE),
    ),
    ToolPattern(
        "executable",
        re.compile(r"\bexecutable\s*[=:]\s*" + _QUOTED, re.IGNORECASE),
    ),
    ToolPattern(
        "binary",
        re.compile(r"\bbinary\s*[=:]\s*" + _QUOTED, re.IGNORECASE),
    ),
    # command="netstat -ano" names netstat
    ToolPattern(
        "command",
        re.compile(r"\bcommand\s*[=:]\s*" + _QUOTED, re.IGNORECASE),
        _first_token,
    ),
)


def extract_tool_names(text: str, patterns: Sequence[ToolPattern] = PATTERNS) -> list[str]:
    """Return normalized tool names referenced in text, in discovery order."""
    if not text:
        return []

    found: list[str] = []
    for pattern in patterns:
        for match in pattern.regex.finditer(text):
            name = normalize_tool_name(pattern.extract(match))
            if name and name not in found:
                found.append(name)
    return found


def enrich(
    definition: CollectionDefinition,
    patterns: Sequence[ToolPattern] = PATTERNS,
) -> CollectionDefinition:
    """Merge tool names found in the definition's queries into its dependencies.

    Idempotent: a second run adds nothing.
    """
    for text in definition.texts():
        for name in extract_tool_names(text, patterns):
            definition.add_dependency(name)
    return definition
