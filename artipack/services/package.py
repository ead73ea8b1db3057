"""Offline package assembly.

A package is a directory that can be copied to a disconnected host:

    <root>/
        collections/<name>.yaml     selected definitions
        tools/<tool>/...            bundled tools (only with bundle_tools)
        config/runtime.json         generated runtime configuration
        deploy.sh, deploy.cmd       generated entry points

Packaging is best effort. Only creating the directory tree can abort a
build; a collection that cannot be copied, a tool that cannot be bundled
or a script that cannot be written becomes a warning on the result.
Tools that are neither available nor cached are left out of the bundle.
"""

from __future__ import annotations

import json
import re
import shutil
import tarfile
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING
from zipfile import ZIP_DEFLATED, ZipFile

from artipack import __version__
from artipack.output.console import Style
from artipack.platform.files import atomic_write_text, is_empty_dir, iter_files, tree_size
from artipack.tools.resolver import DependencyState

from .entrypoint import DEFAULT_ENGINE, EntryPointGenerator, EntryPointSpec, is_cmd_safe

if TYPE_CHECKING:
    from artipack.catalog.models import CollectionIndex
    from artipack.output.console import ConsoleProtocol
    from artipack.tools.resolver import DependencyResolver

__all__ = [
    "ARCHIVE_FORMATS",
    "FORMAT_VERSION",
    "RUNTIME_CONFIG",
    "OfflinePackage",
    "OfflinePackager",
    "PackagingError",
]

FORMAT_VERSION = 1
RUNTIME_CONFIG = Path("config") / "runtime.json"
ARCHIVE_FORMATS = ("zip", "tar.gz")

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


class PackagingError(Exception):
    """The package directory tree could not be created or written."""

    def __init__(self, message: str, path: Path | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.path = path


@dataclass(slots=True)
class OfflinePackage:
    """Result of one build.

    Attributes:
        path: Package root
        collections: Names of the collections copied into the package
        tools: Names of the bundled tools
        size_bytes: Total size of all files under path
        success: True when the tree was created and every selected, known
            collection was copied
        warnings: Non-fatal problems (unknown names, copy failures, ...)
        missing_tools: Dependencies that could not be bundled
        archive: Archive file, when the package was archived
    """

    path: Path
    collections: list[str] = field(default_factory=list)
    tools: list[str] = field(default_factory=list)
    size_bytes: int = 0
    success: bool = False
    warnings: list[str] = field(default_factory=list)
    missing_tools: list[str] = field(default_factory=list)
    archive: Path | None = None


def safe_filename(name: str) -> str:
    """File-system safe form of a collection name."""
    return _UNSAFE_CHARS.sub("_", name).strip("._") or "collection"


class OfflinePackager:
    """Builds offline packages from a collection index.

    Args:
        index: Loaded collection catalog
        resolver: Tool resolution (registry + cache)
        console: Progress output
        engine: Default collection engine named in the entry points
    """

    def __init__(
        self,
        *,
        index: CollectionIndex,
        resolver: DependencyResolver,
        console: ConsoleProtocol,
        engine: str = DEFAULT_ENGINE,
    ) -> None:
        self._index = index
        self._resolver = resolver
        self._console = console
        self._engine = engine

    def build(
        self,
        selection: list[str],
        output: Path,
        *,
        bundle_tools: bool = False,
    ) -> OfflinePackage:
        """Build a package for the selected collections.

        Raises:
            PackagingError: If the output tree cannot be created
        """
        package = OfflinePackage(path=output)

        self._prepare_root(output, bundle_tools=bundle_tools)
        copied_all, files = self._copy_collections(package, selection)

        if bundle_tools:
            self._bundle_tools(package)

        self._write_runtime_config(package, files, bundle_tools=bundle_tools)
        self._write_entry_points(package, bundle_tools=bundle_tools)

        package.size_bytes = tree_size(output)
        package.success = copied_all and bool(package.collections)
        if not package.collections:
            package.warnings.append("No collections were included in the package")

        for warning in package.warnings:
            self._console.warning(warning)
        return package

    def archive(self, package: OfflinePackage, fmt: str = "zip") -> Path:
        """Archive a built package next to its root directory.

        Raises:
            PackagingError: If fmt is unknown or the archive cannot be written
        """
        if fmt not in ARCHIVE_FORMATS:
            raise PackagingError(f"Unknown archive format: {fmt} (use {', '.join(ARCHIVE_FORMATS)})")

        root = package.path
        target = root.with_name(f"{root.name}.{fmt}")
        try:
            if fmt == "zip":
                # Some tool archives ship mtime=0 files, which ZIP cannot represent.
                with ZipFile(target, "w", compression=ZIP_DEFLATED, strict_timestamps=False) as zf:
                    for path in iter_files(root):
                        zf.write(path, arcname=f"{root.name}/{path.relative_to(root).as_posix()}")
            else:
                with tarfile.open(target, "w:gz") as tar:
                    tar.add(root, arcname=root.name)
        except (OSError, tarfile.TarError) as e:
            target.unlink(missing_ok=True)
            raise PackagingError(f"Cannot write archive {target}: {e}", path=target) from e

        package.archive = target
        return target

    # -------------------------------------------------------------------------
    # Build steps
    # -------------------------------------------------------------------------

    def _prepare_root(self, root: Path, *, bundle_tools: bool) -> None:
        if root.exists():
            if not root.is_dir():
                raise PackagingError(f"Output path is not a directory: {root}", path=root)
            if not is_empty_dir(root) and not (root / RUNTIME_CONFIG).is_file():
                raise PackagingError(
                    f"Refusing to overwrite {root}: not empty and not a previous package",
                    path=root,
                )
            try:
                shutil.rmtree(root)
            except OSError as e:
                raise PackagingError(f"Cannot remove previous package: {e}", path=root) from e

        dirs = [root, root / "collections", root / "config"]
        if bundle_tools:
            dirs.append(root / "tools")
        try:
            for d in dirs:
                d.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise PackagingError(f"Cannot create package directory: {e}", path=root) from e

    def _copy_collections(
        self, package: OfflinePackage, selection: list[str]
    ) -> tuple[bool, dict[str, str]]:
        target_dir = package.path / "collections"
        files: dict[str, str] = {}
        ok = True

        for name in dict.fromkeys(selection):
            definition = self._index.get(name)
            if definition is None:
                package.warnings.append(f"Unknown collection {name!r} excluded from package")
                continue
            if not is_cmd_safe(name):
                package.warnings.append(f"Collection {name!r} excluded: name cannot be passed to deploy.cmd")
                continue

            stem = safe_filename(name)
            suffix = definition.file_path.suffix or ".yaml"
            filename = f"{stem}{suffix}"
            counter = 2
            while filename.lower() in (f.lower() for f in files.values()):
                filename = f"{stem}_{counter}{suffix}"
                counter += 1

            try:
                shutil.copy2(definition.file_path, target_dir / filename)
            except OSError as e:
                package.warnings.append(f"Cannot copy collection {name}: {e}")
                ok = False
                continue

            files[name] = filename
            package.collections.append(name)
            self._console.print(f"collection {name} -> collections/{filename}", Style.DIM)

        return ok, files

    def _bundle_tools(self, package: OfflinePackage) -> None:
        tools_dir = package.path / "tools"
        for tool in self._index.dependencies(package.collections):
            status = self._resolver.status(tool)
            if not status.is_present or status.path is None:
                package.missing_tools.append(tool)
                reason = "unknown tool" if status.status is DependencyState.UNKNOWN else "missing"
                package.warnings.append(f"Tool {tool} not bundled ({reason})")
                continue

            dest = tools_dir / status.name
            try:
                self._copy_tool(status.status, status.path, dest)
            except OSError as e:
                shutil.rmtree(dest, ignore_errors=True)
                package.missing_tools.append(tool)
                package.warnings.append(f"Cannot bundle tool {tool}: {e}")
                continue

            package.tools.append(status.name)
            self._console.print(f"tool {status.name} ({status.status}) -> tools/{status.name}", Style.DIM)

    def _copy_tool(self, state: DependencyState, source: Path, dest: Path) -> None:
        if state is DependencyState.CACHED:
            shutil.copytree(source, dest)
        else:
            dest.mkdir(parents=True, exist_ok=True)
            shutil.copy2(source, dest / source.name)

    def _tool_entries(self, package: OfflinePackage) -> dict[str, str]:
        return {name: f"tools/{name}" for name in package.tools}

    def _write_runtime_config(
        self, package: OfflinePackage, files: dict[str, str], *, bundle_tools: bool
    ) -> None:
        config: dict[str, object] = {
            "format_version": FORMAT_VERSION,
            "created_at": datetime.now(UTC).isoformat(),
            "generator": f"artipack {__version__}",
            "collections": list(package.collections),
            "collection_files": {name: f"collections/{fn}" for name, fn in files.items()},
            "engine": {
                "binary": self._engine,
                "definitions": "collections",
                "command": ["artifacts", "collect", *package.collections],
            },
        }
        if bundle_tools:
            config["tools_path"] = "tools"
            config["tools"] = self._tool_entries(package)
            config["missing_tools"] = list(package.missing_tools)

        try:
            atomic_write_text(
                package.path / RUNTIME_CONFIG,
                json.dumps(config, indent=2, sort_keys=True) + "\n",
            )
        except OSError as e:
            package.warnings.append(f"Cannot write runtime config: {e}")

    def _write_entry_points(self, package: OfflinePackage, *, bundle_tools: bool) -> None:
        spec = EntryPointSpec(
            collections=tuple(package.collections),
            config_path=RUNTIME_CONFIG.as_posix(),
            tools_dir="tools" if bundle_tools else None,
            engine=self._engine,
        )
        try:
            EntryPointGenerator(package.path).generate(spec)
        except OSError as e:
            package.warnings.append(f"Cannot write entry points: {e}")
