"""HTTP client abstraction for tool downloads.

This module provides:
- HttpClient: Protocol for downloads (injectable for tests)
- RealHttpClient: urllib implementation (system certificates, redirects
  followed by urllib, per-request deadline)
- MockHttpClient: canned responses plus an offline switch for tests
"""

from __future__ import annotations

import ssl
import threading
import time
import urllib.error
import urllib.request
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from artipack import __version__
from artipack.core.result import Err, Ok, Result

if TYPE_CHECKING:
    from collections.abc import Callable

__all__ = [
    "HttpClient",
    "RealHttpClient",
    "MockHttpClient",
    "HttpError",
]


@dataclass(frozen=True, slots=True)
class HttpError:
    """HTTP error details.

    Attributes:
        url: The URL that failed
        status: HTTP status code (0 for network errors)
        message: Human-readable error message
    """

    url: str
    status: int
    message: str

    def __str__(self) -> str:
        if self.status:
            return f"HTTP {self.status}: {self.message} ({self.url})"
        return f"{self.message} ({self.url})"


@runtime_checkable
class HttpClient(Protocol):
    """Protocol for HTTP downloads."""

    def download(
        self,
        url: str,
        dest: Path,
        progress: Callable[[int, int], None] | None = None,
    ) -> Result[Path, HttpError]:
        """Stream URL into dest.

        Args:
            url: URL to download
            dest: Destination file (overwritten)
            progress: Optional callback(downloaded, total)

        Returns:
            Ok with dest path, or Err with HttpError
        """
        ...


class RealHttpClient:
    """Real HTTP client using urllib.

    ``timeout`` bounds both every socket operation and the whole transfer,
    so a slow trickle cannot hang a download forever.
    """

    def __init__(
        self,
        timeout: float = 120.0,
        user_agent: str = f"artipack/{__version__}",
    ) -> None:
        self.timeout = timeout
        self.user_agent = user_agent
        self._ssl_context = ssl.create_default_context()

    def download(
        self,
        url: str,
        dest: Path,
        progress: Callable[[int, int], None] | None = None,
    ) -> Result[Path, HttpError]:
        """Download URL to file with optional progress callback."""
        deadline = time.monotonic() + self.timeout
        try:
            req = urllib.request.Request(
                url,
                headers={"User-Agent": self.user_agent},
            )
            with urllib.request.urlopen(
                req,
                timeout=self.timeout,
                context=self._ssl_context,
            ) as response:
                total = int(response.headers.get("Content-Length", 0) or 0)
                downloaded = 0
                chunk_size = 64 * 1024

                dest.parent.mkdir(parents=True, exist_ok=True)

                with open(dest, "wb") as f:
                    while True:
                        if time.monotonic() > deadline:
                            return Err(HttpError(url=url, status=0, message="Download timed out"))
                        chunk = response.read(chunk_size)
                        if not chunk:
                            break
                        f.write(chunk)
                        downloaded += len(chunk)
                        if progress:
                            progress(downloaded, total)

                if total and downloaded != total:
                    return Err(
                        HttpError(
                            url=url,
                            status=0,
                            message=f"Truncated download ({downloaded}/{total} bytes)",
                        )
                    )
                return Ok(dest)

        except urllib.error.HTTPError as e:
            return Err(HttpError(url=url, status=e.code, message=str(e.reason)))
        except urllib.error.URLError as e:
            return Err(HttpError(url=url, status=0, message=str(e.reason)))
        except TimeoutError:
            return Err(HttpError(url=url, status=0, message="Download timed out"))
        except ValueError as e:
            return Err(HttpError(url=url, status=0, message=str(e)))
        except OSError as e:
            return Err(HttpError(url=url, status=0, message=str(e)))


class MockHttpClient:
    """Mock HTTP client for testing.

    Usage:
        client = MockHttpClient()
        client.set_download("https://example.com/yara.zip", zip_bytes)
        client.offline = True   # every download fails with a network error
    """

    def __init__(self) -> None:
        self._download_responses: dict[str, bytes | HttpError] = {}
        self._lock = threading.Lock()
        self.offline = False
        self.calls: list[tuple[str, str]] = []

    def set_download(self, url: str, response: bytes | HttpError) -> None:
        """Set download content for URL."""
        self._download_responses[url] = response

    def download(
        self,
        url: str,
        dest: Path,
        progress: Callable[[int, int], None] | None = None,
    ) -> Result[Path, HttpError]:
        """Mock download - writes predefined content to dest."""
        with self._lock:
            self.calls.append(("download", url))

        if self.offline:
            return Err(HttpError(url=url, status=0, message="Network is unreachable (mock)"))

        if url not in self._download_responses:
            return Err(HttpError(url=url, status=404, message="Not found (mock)"))

        response = self._download_responses[url]
        if isinstance(response, HttpError):
            return Err(response)

        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_bytes(response)

        if progress:
            progress(len(response), len(response))

        return Ok(dest)
