"""Package deployment check.

Verifies that a built offline package is complete before it is shipped
to a target host: layout, runtime config, entry points, bundled tools.
Nothing in the package is executed.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from enum import Enum, auto
from pathlib import Path

from artipack.core.structured import as_str_dict, get_list, get_str, get_table
from artipack.platform.files import iter_files

from .entrypoint import ENTRYPOINT_CMD, ENTRYPOINT_SH
from .package import FORMAT_VERSION, RUNTIME_CONFIG

__all__ = ["CheckStatus", "CheckResult", "DeployReport", "check_package"]


class CheckStatus(Enum):
    """Status of a check result."""

    OK = auto()
    WARNING = auto()
    ERROR = auto()


@dataclass(frozen=True, slots=True)
class CheckResult:
    """Result of a single check.

    Attributes:
        name: Short identifier for what was checked (e.g. "layout", "tool:yara")
        status: Whether the check passed, warned, or failed
        message: Human-readable result message
        hint: Optional fix suggestion
    """

    name: str
    status: CheckStatus
    message: str
    hint: str | None = None

    @property
    def ok(self) -> bool:
        """Return True if check passed (OK or WARNING)."""
        return self.status != CheckStatus.ERROR

    @property
    def is_error(self) -> bool:
        return self.status == CheckStatus.ERROR

    @property
    def is_warning(self) -> bool:
        return self.status == CheckStatus.WARNING

    @classmethod
    def success(cls, name: str, message: str) -> CheckResult:
        return cls(name=name, status=CheckStatus.OK, message=message)

    @classmethod
    def warning(cls, name: str, message: str, hint: str | None = None) -> CheckResult:
        return cls(name=name, status=CheckStatus.WARNING, message=message, hint=hint)

    @classmethod
    def error(cls, name: str, message: str, hint: str | None = None) -> CheckResult:
        return cls(name=name, status=CheckStatus.ERROR, message=message, hint=hint)


@dataclass(slots=True)
class DeployReport:
    """All check results for one package."""

    root: Path
    results: list[CheckResult] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return all(r.ok for r in self.results)

    @property
    def errors(self) -> list[CheckResult]:
        return [r for r in self.results if r.is_error]

    @property
    def warnings(self) -> list[CheckResult]:
        return [r for r in self.results if r.is_warning]


def check_package(root: Path) -> DeployReport:
    """Run every deployment check against a package directory."""
    report = DeployReport(root=root)

    if not root.is_dir():
        report.results.append(
            CheckResult.error("layout", f"Package directory not found: {root}", hint="run: artipack build")
        )
        return report

    report.results.append(_check_collections(root))

    config = _load_runtime_config(root, report)
    if config is not None:
        report.results.extend(_check_listed_collections(root, config))
        report.results.extend(_check_tools(root, config))

    report.results.extend(_check_entry_points(root))
    return report


def _check_collections(root: Path) -> CheckResult:
    collections = root / "collections"
    if not collections.is_dir():
        return CheckResult.error("collections", "collections/ directory is missing", hint="rebuild the package")
    count = sum(1 for p in iter_files(collections) if p.suffix.lower() in (".yaml", ".yml"))
    if count == 0:
        return CheckResult.error("collections", "No collection definitions in collections/")
    return CheckResult.success("collections", f"{count} definition(s)")


def _load_runtime_config(root: Path, report: DeployReport) -> dict[str, object] | None:
    path = root / RUNTIME_CONFIG
    if not path.is_file():
        report.results.append(CheckResult.error("runtime-config", f"{RUNTIME_CONFIG.as_posix()} is missing"))
        return None
    try:
        data = as_str_dict(json.loads(path.read_text(encoding="utf-8")))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        report.results.append(CheckResult.error("runtime-config", f"Unreadable runtime config: {e}"))
        return None
    if data is None:
        report.results.append(CheckResult.error("runtime-config", "Runtime config is not a JSON object"))
        return None

    version = data.get("format_version")
    if version != FORMAT_VERSION:
        report.results.append(
            CheckResult.warning("runtime-config", f"Unexpected format_version {version!r} (expected {FORMAT_VERSION})")
        )
    else:
        generator = get_str(data, "generator") or "unknown generator"
        report.results.append(CheckResult.success("runtime-config", f"format {version}, {generator}"))
    return data


def _check_listed_collections(root: Path, config: dict[str, object]) -> list[CheckResult]:
    names = [n for n in get_list(config, "collections") or [] if isinstance(n, str)]
    if not names:
        return [CheckResult.error("selection", "Runtime config lists no collections")]

    files = get_table(config, "collection_files") or {}
    results: list[CheckResult] = []
    for name in names:
        rel = files.get(name)
        if not isinstance(rel, str):
            results.append(CheckResult.error(f"collection:{name}", "No file recorded in runtime config"))
        elif not (root / rel).is_file():
            results.append(
                CheckResult.error(f"collection:{name}", f"Definition file missing: {rel}", hint="rebuild the package")
            )
        else:
            results.append(CheckResult.success(f"collection:{name}", rel))
    return results


def _check_tools(root: Path, config: dict[str, object]) -> list[CheckResult]:
    tools = get_table(config, "tools")
    if tools is None:
        return []

    results: list[CheckResult] = []
    for name, rel in sorted(tools.items()):
        tool_dir = root / str(rel)
        if not tool_dir.is_dir() or not any(iter_files(tool_dir)):
            results.append(CheckResult.error(f"tool:{name}", f"Bundled tool directory is empty or missing: {rel}"))
        else:
            results.append(CheckResult.success(f"tool:{name}", str(rel)))

    for name in get_list(config, "missing_tools") or []:
        results.append(
            CheckResult.warning(
                f"tool:{name}",
                "Not bundled; must be present on the target host",
                hint="run: artipack download, then rebuild",
            )
        )
    return results


def _check_entry_points(root: Path) -> list[CheckResult]:
    results: list[CheckResult] = []

    sh = root / ENTRYPOINT_SH
    if not sh.is_file():
        results.append(CheckResult.error(ENTRYPOINT_SH, "Missing"))
    elif b"\r\n" in sh.read_bytes():
        results.append(CheckResult.error(ENTRYPOINT_SH, "Has CRLF line endings; bash will reject it"))
    elif os.name != "nt" and not os.access(sh, os.X_OK):
        results.append(CheckResult.warning(ENTRYPOINT_SH, "Not executable", hint=f"chmod +x {ENTRYPOINT_SH}"))
    else:
        results.append(CheckResult.success(ENTRYPOINT_SH, "OK"))

    cmd = root / ENTRYPOINT_CMD
    if not cmd.is_file():
        results.append(CheckResult.warning(ENTRYPOINT_CMD, "Missing; package cannot be started on Windows"))
    else:
        results.append(CheckResult.success(ENTRYPOINT_CMD, "OK"))
    return results
