"""Batch download of missing tool dependencies.

Missing downloadable tools are fetched on a bounded thread pool. Each
worker checks the caller's cancellation event before starting a tool;
downloads already running are left to finish. Every requested tool ends
up in the report, including the ones that were skipped.
"""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from artipack.core.config import DEFAULT_WORKERS, MAX_WORKERS
from artipack.output.console import Style
from artipack.tools.base import normalize_tool_name
from artipack.tools.fetcher import DownloadResult, DownloadStatus
from artipack.tools.resolver import DependencyState

if TYPE_CHECKING:
    from artipack.output.console import ConsoleProtocol
    from artipack.tools.base import ToolRecord
    from artipack.tools.fetcher import Fetcher
    from artipack.tools.resolver import DependencyResolver, DependencyStatus

__all__ = ["CANCELLED_MESSAGE", "DownloadReport", "DownloadService"]

CANCELLED_MESSAGE = "cancelled before download started"


def _empty_results() -> list[DownloadResult]:
    return []


@dataclass(slots=True)
class DownloadReport:
    """Aggregate outcome of a batch download."""

    results: list[DownloadResult] = field(default_factory=_empty_results)
    cancelled: bool = False

    def _count(self, status: DownloadStatus) -> int:
        return sum(1 for r in self.results if r.status is status)

    @property
    def downloaded(self) -> int:
        return self._count(DownloadStatus.DOWNLOADED)

    @property
    def failed(self) -> int:
        return self._count(DownloadStatus.FAILED)

    @property
    def available(self) -> int:
        return self._count(DownloadStatus.AVAILABLE)

    @property
    def ok(self) -> bool:
        return self.failed == 0 and not self.cancelled

    def get(self, name: str) -> DownloadResult | None:
        return next((r for r in self.results if r.name == name), None)


class DownloadService:
    """Fetches every missing dependency of a selection.

    Args:
        resolver: Status lookups (shares the cache with the fetcher)
        fetcher: Single-tool fetcher
        console: Progress output
        workers: Concurrent downloads (clamped to 1..MAX_WORKERS)
        retries: Extra attempts per tool after a failure
    """

    def __init__(
        self,
        *,
        resolver: DependencyResolver,
        fetcher: Fetcher,
        console: ConsoleProtocol,
        workers: int = DEFAULT_WORKERS,
        retries: int = 0,
    ) -> None:
        self._resolver = resolver
        self._fetcher = fetcher
        self._console = console
        self._workers = min(max(workers, 1), MAX_WORKERS)
        self._retries = max(retries, 0)

    def plan(self, names: list[str]) -> list[DependencyStatus]:
        """Current status of each distinct tool; no network access."""
        return [self._resolver.status(name) for name in _distinct(names)]

    def download_missing(
        self,
        names: list[str],
        *,
        cancel: threading.Event | None = None,
    ) -> DownloadReport:
        """Fetch every missing downloadable tool among names.

        Args:
            names: Tool names (duplicates are ignored)
            cancel: Set to stop starting new downloads

        Returns:
            DownloadReport with one result per distinct name, in input order
        """
        cancel = cancel or threading.Event()
        outcomes: dict[str, DownloadResult] = {}
        pending: list[ToolRecord] = []

        for status in self.plan(names):
            immediate = self._immediate_result(status)
            if immediate is not None:
                outcomes[status.name] = immediate
                continue
            record = self._resolver.registry.get(status.name)
            if record is not None:
                pending.append(record)

        if pending:
            self._console.print(
                f"Downloading {len(pending)} tool(s) with {min(self._workers, len(pending))} worker(s)",
                Style.INFO,
            )
            with ThreadPoolExecutor(max_workers=self._workers) as executor:
                futures = {
                    executor.submit(self._fetch_with_retries, record, cancel): record
                    for record in pending
                }
                for future in as_completed(futures):
                    result = future.result()
                    outcomes[result.name] = result
                    self._report(result)

        ordered = [outcomes[name] for name in _distinct(names) if name in outcomes]
        return DownloadReport(results=ordered, cancelled=cancel.is_set())

    def _immediate_result(self, status: DependencyStatus) -> DownloadResult | None:
        """Outcome for tools that need no fetch, None for fetchable ones."""
        if status.is_present:
            return DownloadResult(
                name=status.name,
                status=DownloadStatus.AVAILABLE,
                message=str(status.status),
                path=status.path,
            )
        if status.status is DependencyState.UNKNOWN:
            return DownloadResult.failed(status.name, "Unknown tool: not in the tool registry")
        if not status.can_fetch:
            return DownloadResult.failed(
                status.name, "System tool not found on this host and has no download source"
            )
        return None

    def _fetch_with_retries(self, record: ToolRecord, cancel: threading.Event) -> DownloadResult:
        result = DownloadResult.failed(record.name, CANCELLED_MESSAGE)
        for _attempt in range(1 + self._retries):
            if cancel.is_set():
                break
            result = self._fetcher.fetch(record)
            if result.ok:
                break
        return result

    def _report(self, result: DownloadResult) -> None:
        if result.status is DownloadStatus.FAILED:
            self._console.print(f"{result.name}: {result.message}", Style.ERROR)
        else:
            self._console.print(f"{result.name}: {result.status} ({result.message})", Style.DIM)


def _distinct(names: list[str]) -> list[str]:
    return list(dict.fromkeys(n for n in (normalize_tool_name(x) or x for x in names) if n))
