"""Tool registry - immutable name to provenance lookup.

The registry is built once at startup from the built-in table below,
optionally merged with a user override file, and then passed explicitly to
the resolver, fetcher and packager. It never touches the network.

Override file (TOML), one table per tool:

    [tools.yara]
    platform = "windows"
    source = "download"
    url = "https://mirror.example/yara-4.5.0-win64.zip"
    license = "BSD-3-Clause"

An override fully replaces the built-in entry of the same name.

Usage:
    result = ToolRegistry.builtin().with_overrides(Path("tools.toml"))
    if isinstance(result, Ok):
        registry = result.value
        record = registry.get("yara")
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType

from artipack.core.result import Err, Ok, Result
from artipack.core.structured import StrDict, as_str_dict, get_str, get_table

from .base import CROSS_PLATFORM, SourceKind, ToolRecord, normalize_tool_name

__all__ = ["BUILTIN_TOOLS", "RegistryError", "ToolRegistry", "parse_tool_record"]


def _system(name: str, platform: str, path: str, description: str, license: str = "") -> ToolRecord:
    return ToolRecord(
        name=name,
        platform=platform,
        source=SourceKind.SYSTEM,
        path=path,
        license=license or "OS component",
        description=description,
    )


def _download(name: str, platform: str, url: str, license: str, description: str) -> ToolRecord:
    return ToolRecord(
        name=name,
        platform=platform,
        source=SourceKind.DOWNLOAD,
        url=url,
        license=license,
        description=description,
    )


_SYSINTERNALS = "Sysinternals Software License Terms"

BUILTIN_TOOLS: tuple[ToolRecord, ...] = (
    # Windows
    _system("cmd", "windows", r"C:\Windows\System32\cmd.exe", "Windows command processor"),
    _system(
        "powershell",
        "windows",
        r"C:\Windows\System32\WindowsPowerShell\v1.0\powershell.exe",
        "Windows PowerShell",
    ),
    _system("wmic", "windows", r"C:\Windows\System32\wbem\WMIC.exe", "WMI command-line"),
    _system("netstat", "windows", r"C:\Windows\System32\NETSTAT.EXE", "Network statistics"),
    _system("certutil", "windows", r"C:\Windows\System32\certutil.exe", "Certificate utility"),
    _download(
        "autorunsc",
        "windows",
        "https://download.sysinternals.com/files/Autoruns.zip",
        _SYSINTERNALS,
        "Sysinternals autostart entry enumerator",
    ),
    _download(
        "sigcheck",
        "windows",
        "https://download.sysinternals.com/files/Sigcheck.zip",
        _SYSINTERNALS,
        "Sysinternals signature verification",
    ),
    _download(
        "handle",
        "windows",
        "https://download.sysinternals.com/files/Handle.zip",
        _SYSINTERNALS,
        "Sysinternals open handle viewer",
    ),
    _download(
        "winpmem",
        "windows",
        "https://github.com/Velocidex/WinPmem/releases/download/v4.0.rc1/winpmem_mini_x64_rc2.exe",
        "Apache-2.0",
        "Physical memory acquisition",
    ),
    _download(
        "hayabusa",
        "windows",
        "https://github.com/Yamato-Security/hayabusa/releases/download/v2.17.0/hayabusa-2.17.0-win-x64.zip",
        "AGPL-3.0",
        "Windows event log fast forensics timeline generator",
    ),
    _download(
        "yara",
        "windows",
        "https://github.com/VirusTotal/yara/releases/download/v4.5.2/yara-v4.5.2-2326-win64.zip",
        "BSD-3-Clause",
        "Pattern matching engine for malware research",
    ),
    # Linux
    _system("bash", "linux", "/bin/bash", "Bourne-again shell", "GPL-3.0"),
    _system("ps", "linux", "/bin/ps", "Process listing", "GPL-2.0"),
    _system("lsof", "linux", "/usr/bin/lsof", "List open files"),
    _system("ss", "linux", "/usr/bin/ss", "Socket statistics", "GPL-2.0"),
    _download(
        "avml",
        "linux",
        "https://github.com/microsoft/avml/releases/download/v0.14.0/avml",
        "MIT",
        "Linux volatile memory acquisition",
    ),
    _download(
        "osqueryi",
        "linux",
        "https://pkg.osquery.io/linux/osquery-5.12.1_1.linux_x86_64.tar.gz",
        "Apache-2.0 OR GPL-2.0",
        "SQL-powered host instrumentation shell",
    ),
    # macOS
    _system("log", "macos", "/usr/bin/log", "Unified logging CLI"),
    _system("launchctl", "macos", "/bin/launchctl", "launchd control"),
    _system("plutil", "macos", "/usr/bin/plutil", "Property list utility"),
    # Cross-platform
    _download(
        "volatility",
        CROSS_PLATFORM,
        "https://github.com/volatilityfoundation/volatility3/archive/refs/tags/v2.7.0.tar.gz",
        "Volatility Software License",
        "Memory forensics framework",
    ),
    _download(
        "chainsaw",
        CROSS_PLATFORM,
        "https://github.com/WithSecureLabs/chainsaw/releases/download/v2.9.1/chainsaw_all_platforms+rules.zip",
        "GPL-3.0",
        "Event log hunting with Sigma rules",
    ),
)


@dataclass(frozen=True, slots=True)
class RegistryError:
    """Override file could not be loaded."""

    message: str
    path: Path | None = None


def parse_tool_record(name: str, table: Mapping[str, object]) -> ToolRecord:
    """Build a ToolRecord from an override table.

    Raises:
        ValueError: If the table is incomplete or inconsistent
    """
    canonical = normalize_tool_name(name)
    if not canonical:
        raise ValueError(f"Invalid tool name: {name!r}")

    source_tag = get_str(table, "source")
    url = get_str(table, "url")
    path = get_str(table, "path")
    if source_tag is None:
        source = SourceKind.DOWNLOAD if url else SourceKind.SYSTEM
    else:
        source = SourceKind.parse(source_tag)

    return ToolRecord(
        name=canonical,
        platform=(get_str(table, "platform") or CROSS_PLATFORM).lower(),
        source=source,
        path=path if source is SourceKind.SYSTEM else None,
        url=url if source is SourceKind.DOWNLOAD else None,
        license=get_str(table, "license") or "",
        description=get_str(table, "description") or "",
    )


class ToolRegistry:
    """Immutable mapping of tool name to ToolRecord.

    Lookups normalize the name first, so "Yara.exe" finds "yara".
    """

    __slots__ = ("_records",)

    def __init__(self, records: Iterable[ToolRecord] = ()) -> None:
        self._records: Mapping[str, ToolRecord] = MappingProxyType(
            {record.name: record for record in records}
        )

    @classmethod
    def builtin(cls) -> ToolRegistry:
        """Registry holding the built-in tool table."""
        return cls(BUILTIN_TOOLS)

    def merged(self, overrides: Iterable[ToolRecord]) -> ToolRegistry:
        """New registry where each override replaces the entry of the same name."""
        combined = dict(self._records)
        for record in overrides:
            combined[record.name] = record
        return ToolRegistry(combined.values())

    def with_overrides(self, path: Path | None) -> Result[ToolRegistry, RegistryError]:
        """Merge a TOML override file; a None path returns self unchanged."""
        if path is None:
            return Ok(self)

        import tomllib

        try:
            data_obj: object = tomllib.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return Err(RegistryError(f"Override file not found: {path}", path=path))
        except (OSError, UnicodeDecodeError) as e:
            return Err(RegistryError(f"Cannot read override file: {e}", path=path))
        except tomllib.TOMLDecodeError as e:
            return Err(RegistryError(f"Invalid TOML syntax: {e}", path=path))

        data: StrDict = as_str_dict(data_obj) or {}
        tools = get_table(data, "tools")
        if tools is None:
            return Err(RegistryError("Override file needs a [tools] table", path=path))

        records: list[ToolRecord] = []
        for name, value in tools.items():
            table = as_str_dict(value)
            if table is None:
                return Err(RegistryError(f"[tools.{name}] must be a table", path=path))
            try:
                records.append(parse_tool_record(name, table))
            except ValueError as e:
                return Err(RegistryError(f"[tools.{name}]: {e}", path=path))

        return Ok(self.merged(records))

    def get(self, name: str) -> ToolRecord | None:
        """Look up a tool by (normalized) name."""
        return self._records.get(normalize_tool_name(name))

    resolve = get

    def names(self) -> list[str]:
        return sorted(self._records)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and normalize_tool_name(name) in self._records

    def __iter__(self) -> Iterator[ToolRecord]:
        return (self._records[name] for name in self.names())

    def __len__(self) -> int:
        return len(self._records)
