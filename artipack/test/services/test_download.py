"""Tests for services/download.py - batch downloads."""

import io
import struct
import threading
import zipfile
from pathlib import Path

from artipack.output.console import MockConsole
from artipack.services.download import CANCELLED_MESSAGE, DownloadService
from artipack.tools.base import SourceKind, ToolRecord
from artipack.tools.fetcher import DownloadResult, DownloadStatus, Fetcher
from artipack.tools.http import MockHttpClient
from artipack.tools.registry import ToolRegistry
from artipack.tools.resolver import DependencyResolver, DependencyState

YARA_URL = "https://example.com/yara-v4.5.2-2326-win64.zip"
HANDLE_URL = "https://example.com/Handle.zip"


def zip_bytes(files: dict[str, bytes]) -> bytes:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        for name, content in files.items():
            zf.writestr(name, content)
    return buf.getvalue()


def corrupt_zip_bytes(name: str, content: bytes) -> bytes:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        zf.writestr(name, content)
    data = bytearray(buf.getvalue())
    name_len, extra_len = struct.unpack_from("<HH", data, 26)
    data[30 + name_len + extra_len] = 0xFF
    return bytes(data)


def _registry(tmp_path: Path) -> ToolRegistry:
    host = tmp_path / "host" / "bash"
    host.parent.mkdir(parents=True)
    host.write_bytes(b"#!")
    return ToolRegistry(
        [
            ToolRecord(name="yara", platform="cross-platform", source=SourceKind.DOWNLOAD, url=YARA_URL),
            ToolRecord(name="handle", platform="windows", source=SourceKind.DOWNLOAD, url=HANDLE_URL),
            ToolRecord(name="bash", platform="linux", source=SourceKind.SYSTEM, path=str(host)),
            ToolRecord(name="ghost", platform="linux", source=SourceKind.SYSTEM, path=str(tmp_path / "nope")),
        ]
    )


def _service(
    tmp_path: Path,
    http: MockHttpClient,
    *,
    workers: int = 4,
    retries: int = 0,
) -> tuple[DownloadService, DependencyResolver, MockConsole]:
    resolver = DependencyResolver(_registry(tmp_path), tmp_path / "cache", search_path=False)
    console = MockConsole()
    service = DownloadService(
        resolver=resolver,
        fetcher=Fetcher(http, resolver),
        console=console,
        workers=workers,
        retries=retries,
    )
    return service, resolver, console


class TestPlan:
    def test_plan_has_no_side_effects(self, tmp_path: Path) -> None:
        http = MockHttpClient()
        service, _, _ = _service(tmp_path, http)

        plan = service.plan(["yara", "Yara.exe", "bash", "mimikatz"])

        assert [s.name for s in plan] == ["yara", "bash", "mimikatz"]
        assert [s.status for s in plan] == [
            DependencyState.MISSING,
            DependencyState.AVAILABLE,
            DependencyState.UNKNOWN,
        ]
        assert http.calls == []


class TestDownloadMissing:
    def test_mixed_batch(self, tmp_path: Path) -> None:
        http = MockHttpClient()
        http.set_download(YARA_URL, zip_bytes({"yara64.exe": b"MZ"}))
        service, resolver, console = _service(tmp_path, http)

        report = service.download_missing(["yara", "bash", "ghost", "mimikatz", "handle"])

        assert [r.name for r in report.results] == ["yara", "bash", "ghost", "mimikatz", "handle"]
        statuses = {r.name: r.status for r in report.results}
        assert statuses == {
            "yara": DownloadStatus.DOWNLOADED,
            "bash": DownloadStatus.AVAILABLE,
            "ghost": DownloadStatus.FAILED,
            "mimikatz": DownloadStatus.FAILED,
            "handle": DownloadStatus.FAILED,
        }
        assert report.downloaded == 1
        assert report.available == 1
        assert report.failed == 3
        assert not report.ok

        unknown = report.get("mimikatz")
        assert unknown is not None and "not in the tool registry" in unknown.message
        assert resolver.status("yara").status is DependencyState.CACHED
        assert console.find("handle:")

    def test_corrupt_download_is_reported_not_raised(self, tmp_path: Path) -> None:
        http = MockHttpClient()
        http.set_download(YARA_URL, corrupt_zip_bytes("yara64.exe", b"MZ" * 500))
        http.set_download(HANDLE_URL, zip_bytes({"handle64.exe": b"MZ"}))
        service, resolver, _ = _service(tmp_path, http)

        report = service.download_missing(["yara", "handle"])

        assert [r.name for r in report.results] == ["yara", "handle"]
        assert report.failed == 1
        assert report.downloaded == 1
        yara = report.get("yara")
        assert yara is not None and "Extraction failed" in yara.message
        assert resolver.status("yara").status is DependencyState.MISSING

    def test_nothing_to_do(self, tmp_path: Path) -> None:
        http = MockHttpClient()
        service, _, _ = _service(tmp_path, http)

        report = service.download_missing(["bash"])

        assert report.ok
        assert report.available == 1
        assert http.calls == []

    def test_offline_then_online_retry(self, tmp_path: Path) -> None:
        http = MockHttpClient()
        http.set_download(YARA_URL, zip_bytes({"yara64.exe": b"MZ"}))
        http.offline = True
        service, resolver, _ = _service(tmp_path, http)

        first = service.download_missing(["yara"])
        result = first.get("yara")
        assert result is not None and result.status is DownloadStatus.FAILED
        assert resolver.status("yara").status is DependencyState.MISSING

        http.offline = False
        second = service.download_missing(["yara"])
        result = second.get("yara")
        assert result is not None and result.status is DownloadStatus.DOWNLOADED
        assert resolver.status("yara").status is DependencyState.CACHED

    def test_retries_within_batch(self, tmp_path: Path) -> None:
        http = MockHttpClient()
        service, _, _ = _service(tmp_path, http, retries=2)

        report = service.download_missing(["yara"])

        assert report.failed == 1
        assert http.calls == [("download", YARA_URL)] * 3

    def test_duplicates_fetched_once(self, tmp_path: Path) -> None:
        http = MockHttpClient()
        http.set_download(YARA_URL, zip_bytes({"yara64.exe": b"MZ"}))
        service, _, _ = _service(tmp_path, http, workers=8)

        report = service.download_missing(["yara", "YARA", "yara.exe"])

        assert len(report.results) == 1
        assert len(http.calls) == 1

    def test_cancel_before_start(self, tmp_path: Path) -> None:
        http = MockHttpClient()
        http.set_download(YARA_URL, zip_bytes({"yara64.exe": b"MZ"}))
        service, _, _ = _service(tmp_path, http)
        cancel = threading.Event()
        cancel.set()

        report = service.download_missing(["yara", "handle", "bash"], cancel=cancel)

        assert report.cancelled
        assert not report.ok
        yara = report.get("yara")
        handle = report.get("handle")
        assert yara is not None and yara.status is DownloadStatus.FAILED
        assert yara.message == CANCELLED_MESSAGE
        assert handle is not None and handle.message == CANCELLED_MESSAGE
        bash = report.get("bash")
        assert bash is not None and bash.status is DownloadStatus.AVAILABLE
        assert http.calls == []

    def test_cancel_midway_reports_unstarted(self, tmp_path: Path) -> None:
        """With one worker, setting the event during the first fetch skips the second."""
        http = MockHttpClient()
        service, resolver, _ = _service(tmp_path, http, workers=1)
        cancel = threading.Event()

        class CancellingFetcher(Fetcher):
            def fetch(self, record: ToolRecord) -> DownloadResult:
                cancel.set()
                return DownloadResult(name=record.name, status=DownloadStatus.DOWNLOADED, message="ok")

        service._fetcher = CancellingFetcher(http, resolver)  # pyright: ignore[reportPrivateUsage]

        report = service.download_missing(["yara", "handle"], cancel=cancel)

        assert report.cancelled
        assert report.downloaded == 1
        assert report.failed == 1
        failed = [r for r in report.results if r.status is DownloadStatus.FAILED]
        assert failed[0].message == CANCELLED_MESSAGE
