"""Deployment entry point generator.

Every package gets two launchers at its root:

- ``deploy.sh`` (bash, LF line endings, executable)
- ``deploy.cmd`` (cmd, CRLF line endings)

Both check that the package layout is intact, put bundled tool
directories on PATH, export the runtime config location and hand the
packaged collections to the collection engine (``velociraptor`` unless
``COLLECTION_ENGINE`` says otherwise).
"""

from __future__ import annotations

import shlex
from dataclasses import dataclass
from pathlib import Path

from artipack import __version__

__all__ = [
    "DEFAULT_ENGINE",
    "ENTRYPOINT_SH",
    "ENTRYPOINT_CMD",
    "EntryPointSpec",
    "EntryPointGenerator",
    "cmd_argument",
    "is_cmd_safe",
]

DEFAULT_ENGINE = "velociraptor"
ENTRYPOINT_SH = "deploy.sh"
ENTRYPOINT_CMD = "deploy.cmd"

# Cannot appear inside a quoted argument of a script running with delayed expansion.
_CMD_UNSAFE = frozenset('"!')


def is_cmd_safe(name: str) -> bool:
    return bool(name) and not any(c in _CMD_UNSAFE or ord(c) < 32 for c in name)


def cmd_argument(name: str) -> str:
    """Double-quote name for a batch file line; % is doubled.

    Raises:
        ValueError: If name holds a character cmd cannot carry in quotes
    """
    if not is_cmd_safe(name):
        raise ValueError(f"Name cannot be passed to {ENTRYPOINT_CMD}: {name!r}")
    return '"' + name.replace("%", "%%") + '"'


@dataclass(frozen=True, slots=True)
class EntryPointSpec:
    """What the launchers run.

    Attributes:
        collections: Collection names passed to the engine
        config_path: Runtime config, relative to the package root (POSIX form)
        collections_dir: Definitions directory, relative to the package root
        tools_dir: Bundled tools directory, relative, or None when not bundled
        engine: Default engine executable name
    """

    collections: tuple[str, ...]
    config_path: str = "config/runtime.json"
    collections_dir: str = "collections"
    tools_dir: str | None = None
    engine: str = DEFAULT_ENGINE


class EntryPointGenerator:
    """Writes deploy.sh and deploy.cmd into a package root."""

    def __init__(self, root: Path) -> None:
        self._root = root

    def generate(self, spec: EntryPointSpec) -> list[Path]:
        """Generate both launchers.

        Returns:
            Paths of the generated scripts
        """
        return [self._generate_bash(spec), self._generate_cmd(spec)]

    def _generate_bash(self, spec: EntryPointSpec) -> Path:
        script_path = self._root / ENTRYPOINT_SH
        names = " ".join(shlex.quote(name) for name in spec.collections)

        lines = [
            "#!/usr/bin/env bash",
            f"# Generated by artipack {__version__}",
            "set -euo pipefail",
            "",
            'HERE="$(cd "$(dirname "${BASH_SOURCE[0]}")" && pwd)"',
            f'CONFIG="$HERE/{spec.config_path}"',
            f'DEFINITIONS="$HERE/{spec.collections_dir}"',
            "",
            'for required in "$DEFINITIONS" "$CONFIG"; do',
            '    if [ ! -e "$required" ]; then',
            '        echo "error: package incomplete, missing $required" >&2',
            "        exit 1",
            "    fi",
            "done",
            "",
        ]

        if spec.tools_dir:
            lines += [
                f'for tool_dir in "$HERE/{spec.tools_dir}"/*/; do',
                '    [ -d "$tool_dir" ] && PATH="${tool_dir%/}:$PATH"',
                "done",
                "export PATH",
                "",
            ]

        lines += [
            f'ENGINE="${{COLLECTION_ENGINE:-{spec.engine}}}"',
            'if ! command -v "$ENGINE" >/dev/null 2>&1; then',
            '    echo "error: collection engine \'$ENGINE\' not found (set COLLECTION_ENGINE)" >&2',
            "    exit 2",
            "fi",
            "",
            'export ARTIPACK_RUNTIME_CONFIG="$CONFIG"',
            f'exec "$ENGINE" --definitions "$DEFINITIONS" artifacts collect {names} '
            '--output "${COLLECTION_OUTPUT:-$HERE/results.zip}" "$@"',
        ]

        content = "\n".join(lines) + "\n"
        script_path.write_text(content, encoding="utf-8", newline="\n")
        script_path.chmod(0o755)
        return script_path

    def _generate_cmd(self, spec: EntryPointSpec) -> Path:
        script_path = self._root / ENTRYPOINT_CMD
        names = " ".join(cmd_argument(name) for name in spec.collections)
        config = spec.config_path.replace("/", "\\")
        definitions = spec.collections_dir.replace("/", "\\")

        lines = [
            "@echo off",
            f"REM Generated by artipack {__version__}",
            "setlocal EnableDelayedExpansion",
            "",
            'set "HERE=%~dp0"',
            f'set "CONFIG=%HERE%{config}"',
            f'set "DEFINITIONS=%HERE%{definitions}"',
            "",
            'if not exist "%DEFINITIONS%\\" (',
            "    echo error: package incomplete, missing %DEFINITIONS% 1>&2",
            "    exit /b 1",
            ")",
            'if not exist "%CONFIG%" (',
            "    echo error: package incomplete, missing %CONFIG% 1>&2",
            "    exit /b 1",
            ")",
            "",
        ]

        if spec.tools_dir:
            tools = spec.tools_dir.replace("/", "\\")
            lines += [
                f'for /d %%D in ("%HERE%{tools}\\*") do set "PATH=%%~fD;!PATH!"',
                "",
            ]

        lines += [
            f'if "%COLLECTION_ENGINE%"=="" set "COLLECTION_ENGINE={spec.engine}.exe"',
            'where "%COLLECTION_ENGINE%" >nul 2>&1',
            "if errorlevel 1 (",
            "    echo error: collection engine %COLLECTION_ENGINE% not found, set COLLECTION_ENGINE 1>&2",
            "    exit /b 2",
            ")",
            'if "%COLLECTION_OUTPUT%"=="" set "COLLECTION_OUTPUT=%HERE%results.zip"',
            "",
            'set "ARTIPACK_RUNTIME_CONFIG=%CONFIG%"',
            f'"%COLLECTION_ENGINE%" --definitions "%DEFINITIONS%" artifacts collect {names} '
            '--output "%COLLECTION_OUTPUT%" %*',
            "exit /b %ERRORLEVEL%",
        ]

        content = "\r\n".join(lines) + "\r\n"
        script_path.write_bytes(content.encode("utf-8"))
        return script_path
