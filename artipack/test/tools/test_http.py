"""Tests for tools/http.py - MockHttpClient and HttpError."""

from pathlib import Path

from artipack.core.result import Err, Ok
from artipack.tools.http import HttpClient, HttpError, MockHttpClient, RealHttpClient


class TestHttpError:
    def test_str_with_status(self) -> None:
        error = HttpError(url="https://x/y.zip", status=404, message="Not Found")
        assert str(error) == "HTTP 404: Not Found (https://x/y.zip)"

    def test_str_network_error(self) -> None:
        error = HttpError(url="https://x/y.zip", status=0, message="timed out")
        assert str(error) == "timed out (https://x/y.zip)"


class TestMockHttpClient:
    def test_download_writes_content(self, tmp_path: Path) -> None:
        client = MockHttpClient()
        client.set_download("https://x/a.bin", b"data")
        seen: list[tuple[int, int]] = []

        dest = tmp_path / "sub" / "a.bin"
        result = client.download("https://x/a.bin", dest, progress=lambda d, t: seen.append((d, t)))

        assert isinstance(result, Ok)
        assert dest.read_bytes() == b"data"
        assert seen == [(4, 4)]
        assert client.calls == [("download", "https://x/a.bin")]

    def test_unknown_url_is_404(self, tmp_path: Path) -> None:
        result = MockHttpClient().download("https://x/missing", tmp_path / "f")
        assert isinstance(result, Err)
        assert result.error.status == 404

    def test_offline(self, tmp_path: Path) -> None:
        client = MockHttpClient()
        client.set_download("https://x/a.bin", b"data")
        client.offline = True
        result = client.download("https://x/a.bin", tmp_path / "f")
        assert isinstance(result, Err)
        assert result.error.status == 0
        assert not (tmp_path / "f").exists()

    def test_protocol(self) -> None:
        assert isinstance(MockHttpClient(), HttpClient)
        assert isinstance(RealHttpClient(timeout=5), HttpClient)


class TestRealHttpClient:
    def test_settings(self) -> None:
        client = RealHttpClient(timeout=30, user_agent="ir/1.0")
        assert client.timeout == 30
        assert client.user_agent == "ir/1.0"

    def test_invalid_url_is_error_value(self, tmp_path: Path) -> None:
        result = RealHttpClient(timeout=1).download("not a url", tmp_path / "f")
        assert isinstance(result, Err)
        assert result.error.status == 0
