"""Tests for services/deploy.py - package deployment check."""

import json
from pathlib import Path

from artipack.catalog.models import CollectionDefinition, CollectionIndex, Source
from artipack.output.console import MockConsole
from artipack.services.deploy import CheckResult, CheckStatus, check_package
from artipack.services.package import OfflinePackager
from artipack.tools.base import SourceKind, ToolRecord
from artipack.tools.registry import ToolRegistry
from artipack.tools.resolver import DependencyResolver


def _build(tmp_path: Path, *, bundle_tools: bool = False) -> Path:
    defs = tmp_path / "defs"
    defs.mkdir()
    path = defs / "pslist.yaml"
    path.write_text("name: Linux.Sys.Pslist\nsources:\n  - query: SELECT * FROM pslist()\n", encoding="utf-8")

    index = CollectionIndex(defs)
    index.add(
        CollectionDefinition(
            name="Linux.Sys.Pslist",
            file_path=path,
            sources=[Source(query="SELECT * FROM pslist()")],
            dependencies=["ps", "avml"],
        )
    )

    host = tmp_path / "host" / "ps"
    host.parent.mkdir(parents=True)
    host.write_bytes(b"ELF")
    registry = ToolRegistry(
        [
            ToolRecord(name="ps", platform="linux", source=SourceKind.SYSTEM, path=str(host)),
            ToolRecord(name="avml", platform="linux", source=SourceKind.DOWNLOAD, url="https://x/avml"),
        ]
    )
    packager = OfflinePackager(
        index=index,
        resolver=DependencyResolver(registry, tmp_path / "cache", search_path=False),
        console=MockConsole(),
    )
    out = tmp_path / "pkg"
    assert packager.build(["Linux.Sys.Pslist"], out, bundle_tools=bundle_tools).success
    return out


def _by_name(results: list[CheckResult]) -> dict[str, CheckResult]:
    return {r.name: r for r in results}


class TestCheckPackage:
    def test_fresh_package_is_ok(self, tmp_path: Path) -> None:
        report = check_package(_build(tmp_path))
        assert report.ok
        assert report.errors == []
        checks = _by_name(report.results)
        assert checks["collections"].status is CheckStatus.OK
        assert checks["runtime-config"].status is CheckStatus.OK
        assert checks["collection:Linux.Sys.Pslist"].status is CheckStatus.OK
        assert checks["deploy.sh"].status is CheckStatus.OK

    def test_bundled_tools_and_missing_tool_warning(self, tmp_path: Path) -> None:
        report = check_package(_build(tmp_path, bundle_tools=True))
        checks = _by_name(report.results)
        assert checks["tool:ps"].status is CheckStatus.OK
        assert checks["tool:avml"].status is CheckStatus.WARNING
        assert report.ok

    def test_missing_directory(self, tmp_path: Path) -> None:
        report = check_package(tmp_path / "nope")
        assert not report.ok
        assert report.results[0].name == "layout"

    def test_missing_collection_file(self, tmp_path: Path) -> None:
        root = _build(tmp_path)
        (root / "collections" / "Linux.Sys.Pslist.yaml").unlink()

        report = check_package(root)

        assert not report.ok
        checks = _by_name(report.results)
        assert checks["collection:Linux.Sys.Pslist"].is_error
        assert checks["collections"].is_error

    def test_uppercase_yaml_suffix_is_counted(self, tmp_path: Path) -> None:
        root = _build(tmp_path)
        collections = root / "collections"
        (collections / "Linux.Sys.Pslist.yaml").rename(collections / "Linux.Sys.Pslist.YAML")
        path = root / "config" / "runtime.json"
        data = json.loads(path.read_text(encoding="utf-8"))
        data["collection_files"]["Linux.Sys.Pslist"] = "collections/Linux.Sys.Pslist.YAML"
        path.write_text(json.dumps(data), encoding="utf-8")

        report = check_package(root)

        assert report.ok
        checks = _by_name(report.results)
        assert checks["collections"].status is CheckStatus.OK
        assert checks["collections"].message == "1 definition(s)"

    def test_missing_runtime_config(self, tmp_path: Path) -> None:
        root = _build(tmp_path)
        (root / "config" / "runtime.json").unlink()
        report = check_package(root)
        assert _by_name(report.results)["runtime-config"].is_error

    def test_unexpected_format_version_warns(self, tmp_path: Path) -> None:
        root = _build(tmp_path)
        path = root / "config" / "runtime.json"
        data = json.loads(path.read_text(encoding="utf-8"))
        data["format_version"] = 99
        path.write_text(json.dumps(data), encoding="utf-8")

        report = check_package(root)
        assert _by_name(report.results)["runtime-config"].is_warning
        assert report.ok

    def test_emptied_tool_directory(self, tmp_path: Path) -> None:
        root = _build(tmp_path, bundle_tools=True)
        (root / "tools" / "ps" / "ps").unlink()
        report = check_package(root)
        assert _by_name(report.results)["tool:ps"].is_error

    def test_crlf_shell_script(self, tmp_path: Path) -> None:
        root = _build(tmp_path)
        sh = root / "deploy.sh"
        sh.write_bytes(sh.read_bytes().replace(b"\n", b"\r\n"))
        report = check_package(root)
        assert _by_name(report.results)["deploy.sh"].is_error

    def test_missing_cmd_is_warning(self, tmp_path: Path) -> None:
        root = _build(tmp_path)
        (root / "deploy.cmd").unlink()
        report = check_package(root)
        assert _by_name(report.results)["deploy.cmd"].is_warning
        assert report.ok
