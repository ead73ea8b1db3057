"""Tool fetching - download, extract and record one missing tool.

The fetcher streams a tool's archive into a temporary file in the cache
root, extracts it into ``<cache>/<tool>/`` and writes the integrity
manifest. Failures come back as a ``failed`` DownloadResult, never as an
exception, so batch callers can report partial success. There is no retry
here; the caller owns the retry policy.

Fetches of the same tool are serialised with a per-name lock and the cache
is re-checked after the lock is taken, so two workers never overwrite each
other's extraction. Different tools proceed in parallel.
"""

from __future__ import annotations

import os
import tempfile
import threading
from dataclasses import dataclass
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING
from urllib.parse import unquote, urlparse

from artipack.core.result import Err

from .installer import Installer
from .manifest import MANIFEST_NAME, build_manifest, save_manifest

if TYPE_CHECKING:
    from .base import ToolRecord
    from .http import HttpClient
    from .resolver import DependencyResolver

__all__ = ["DownloadStatus", "DownloadResult", "Fetcher", "archive_filename"]


class DownloadStatus(Enum):
    DOWNLOADED = "downloaded"
    FAILED = "failed"
    AVAILABLE = "available"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class DownloadResult:
    """Outcome of one fetch.

    Attributes:
        name: Tool name
        status: downloaded, failed, or available (nothing to do)
        message: Human-readable detail (error text on failure)
        path: Cache directory or host path of the tool, if any
    """

    name: str
    status: DownloadStatus
    message: str = ""
    path: Path | None = None

    @property
    def ok(self) -> bool:
        return self.status is not DownloadStatus.FAILED

    @classmethod
    def failed(cls, name: str, message: str) -> DownloadResult:
        return cls(name=name, status=DownloadStatus.FAILED, message=message)


def archive_filename(url: str) -> str:
    """File name component of a URL ("download" when the path has none)."""
    path = unquote(urlparse(url).path)
    return PurePosixPath(path).name or "download"


class Fetcher:
    """Downloads and extracts tools into the shared cache.

    Args:
        http: HTTP transport
        resolver: Resolver sharing the same cache directory
        installer: Archive extractor
    """

    def __init__(
        self,
        http: HttpClient,
        resolver: DependencyResolver,
        installer: Installer | None = None,
    ) -> None:
        self._http = http
        self._resolver = resolver
        self._installer = installer or Installer()
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    @property
    def cache_dir(self) -> Path:
        return self._resolver.cache_dir

    def _lock_for(self, name: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(name)
            if lock is None:
                lock = threading.Lock()
                self._locks[name] = lock
            return lock

    def fetch(self, record: ToolRecord) -> DownloadResult:
        """Fetch one downloadable tool into the cache."""
        if not record.url:
            return DownloadResult.failed(record.name, "No download URL for this tool")

        with self._lock_for(record.name):
            if self._resolver.is_cached(record):
                return DownloadResult(
                    name=record.name,
                    status=DownloadStatus.AVAILABLE,
                    message="Already cached",
                    path=self._resolver.tool_cache_dir(record.name),
                )
            try:
                return self._fetch_locked(record, record.url)
            except Exception as e:
                # Batch callers expect one result per tool, never an exception.
                return DownloadResult.failed(record.name, f"Unexpected error: {type(e).__name__}: {e}")

    def _fetch_locked(self, record: ToolRecord, url: str) -> DownloadResult:
        tool_dir = self.cache_dir / record.name
        filename = archive_filename(url)

        try:
            tool_dir.mkdir(parents=True, exist_ok=True)
            # A stale manifest would make a failed re-fetch look cached.
            (tool_dir / MANIFEST_NAME).unlink(missing_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{record.name}.",
                suffix=f".{filename}.part",
                dir=str(self.cache_dir),
            )
            os.close(fd)
        except OSError as e:
            return DownloadResult.failed(record.name, f"Cannot prepare cache: {e}")

        tmp_path = Path(tmp_name)
        try:
            dres = self._http.download(url, tmp_path)
            if isinstance(dres, Err):
                return DownloadResult.failed(record.name, f"Download failed: {dres.error}")

            ires = self._installer.install(tmp_path, tool_dir, filename=filename)
            if isinstance(ires, Err):
                return DownloadResult.failed(record.name, f"Extraction failed: {ires.error.message}")
            if ires.value.files_count == 0:
                return DownloadResult.failed(record.name, "Archive contained no usable files")

            try:
                save_manifest(tool_dir, build_manifest(tool_dir, tool=record.name, url=url))
            except OSError as e:
                return DownloadResult.failed(record.name, f"Cannot write manifest: {e}")

            return DownloadResult(
                name=record.name,
                status=DownloadStatus.DOWNLOADED,
                message=f"{ires.value.files_count} file(s) from {filename}",
                path=tool_dir,
            )
        finally:
            tmp_path.unlink(missing_ok=True)
