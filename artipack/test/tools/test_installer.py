"""Tests for tools/installer.py - Archive extraction."""

import gzip
import io
import struct
import tarfile
import zipfile
from pathlib import Path

import pytest

from artipack.core.result import Err, Ok
from artipack.tools.installer import Installer, InstallError, archive_kind

# =============================================================================
# Test fixtures for creating archives
# =============================================================================


def create_tar_gz(path: Path, files: dict[str, bytes], *, prefix: str = "") -> None:
    with tarfile.open(path, "w:gz") as tar:
        for name, content in files.items():
            full_name = f"{prefix}/{name}" if prefix else name
            info = tarfile.TarInfo(name=full_name)
            info.size = len(content)
            tar.addfile(info, io.BytesIO(content))


def create_zip(path: Path, files: dict[str, bytes]) -> None:
    with zipfile.ZipFile(path, "w") as zf:
        for name, content in files.items():
            zf.writestr(name, content)


def corrupt_zip_bytes(name: str, content: bytes) -> bytes:
    """Valid zip headers around a deflate stream with a reserved block type."""
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        zf.writestr(name, content)
    data = bytearray(buf.getvalue())
    name_len, extra_len = struct.unpack_from("<HH", data, 26)
    data[30 + name_len + extra_len] = 0xFF
    return bytes(data)


def corrupt_gzip_bytes(content: bytes) -> bytes:
    data = bytearray(gzip.compress(content))
    data[10] = 0xFF
    return bytes(data)


# =============================================================================
# archive_kind
# =============================================================================


class TestArchiveKind:
    @pytest.mark.parametrize(
        ("filename", "kind"),
        [
            ("yara-v4.5.2-win64.zip", "zip"),
            ("osquery.tar.gz", "tar:gz"),
            ("tool.tgz", "tar:gz"),
            ("tool.tar.xz", "tar:xz"),
            ("tool.tar", "tar"),
            ("avml.gz", "gz"),
            ("winpmem_mini_x64_rc2.exe", "file"),
            ("avml", "file"),
        ],
    )
    def test_kind(self, filename: str, kind: str) -> None:
        assert archive_kind(filename) == kind


# =============================================================================
# Installer
# =============================================================================


class TestInstaller:
    def test_zip(self, tmp_path: Path) -> None:
        archive = tmp_path / "download.part"
        create_zip(archive, {"yara64.exe": b"MZyara", "yarac64.exe": b"MZyarac"})
        dest = tmp_path / "yara"

        result = Installer().install(archive, dest, filename="yara.zip")
        assert isinstance(result, Ok)
        assert result.value.files_count == 2
        assert result.value.kind == "zip"
        assert (dest / "yara64.exe").read_bytes() == b"MZyara"

    def test_tar_gz_keeps_layout(self, tmp_path: Path) -> None:
        archive = tmp_path / "osquery.tar.gz"
        create_tar_gz(archive, {"bin/osqueryi": b"ELF"}, prefix="osquery-5.12")
        dest = tmp_path / "osqueryi"

        result = Installer().install(archive, dest)
        assert isinstance(result, Ok)
        assert result.value.kind == "tar"
        assert (dest / "osquery-5.12" / "bin" / "osqueryi").read_bytes() == b"ELF"

    def test_plain_executable_is_copied(self, tmp_path: Path) -> None:
        archive = tmp_path / "tmp.part"
        archive.write_bytes(b"MZwinpmem")
        dest = tmp_path / "winpmem"

        result = Installer().install(archive, dest, filename="winpmem_mini_x64_rc2.exe")
        assert isinstance(result, Ok)
        assert result.value.kind == "file"
        assert (dest / "winpmem_mini_x64_rc2.exe").read_bytes() == b"MZwinpmem"

    def test_gzip_single_file(self, tmp_path: Path) -> None:
        archive = tmp_path / "tmp.part"
        archive.write_bytes(gzip.compress(b"ELFavml"))
        dest = tmp_path / "avml"

        result = Installer().install(archive, dest, filename="avml.gz")
        assert isinstance(result, Ok)
        assert (dest / "avml").read_bytes() == b"ELFavml"

    def test_replaces_previous_content(self, tmp_path: Path) -> None:
        dest = tmp_path / "yara"
        dest.mkdir()
        (dest / "stale.txt").write_text("old", encoding="utf-8")
        archive = tmp_path / "yara.zip"
        create_zip(archive, {"yara64.exe": b"MZ"})

        assert isinstance(Installer().install(archive, dest), Ok)
        assert not (dest / "stale.txt").exists()

    def test_path_traversal_members_are_skipped(self, tmp_path: Path) -> None:
        archive = tmp_path / "evil.zip"
        create_zip(archive, {"../escape.txt": b"x", "ok.txt": b"y"})
        dest = tmp_path / "out"

        result = Installer().install(archive, dest)
        assert isinstance(result, Ok)
        assert result.value.files_count == 1
        assert not (tmp_path / "escape.txt").exists()

    def test_corrupt_zip(self, tmp_path: Path) -> None:
        archive = tmp_path / "bad.zip"
        archive.write_bytes(b"this is not a zip")

        result = Installer().install(archive, tmp_path / "out")
        assert isinstance(result, Err)
        assert isinstance(result.error, InstallError)
        assert "Invalid zip" in result.error.message

    def test_missing_archive(self, tmp_path: Path) -> None:
        result = Installer().install(tmp_path / "nope.zip", tmp_path / "out")
        assert isinstance(result, Err)
        assert result.error.message == "Archive not found"

    def test_corrupt_deflate_stream_in_zip(self, tmp_path: Path) -> None:
        archive = tmp_path / "yara.zip"
        archive.write_bytes(corrupt_zip_bytes("yara64.exe", b"MZ" * 500))

        result = Installer().install(archive, tmp_path / "out")
        assert isinstance(result, Err)
        assert "Corrupt zip member" in result.error.message

    def test_corrupt_deflate_stream_in_gzip(self, tmp_path: Path) -> None:
        archive = tmp_path / "tmp.part"
        archive.write_bytes(corrupt_gzip_bytes(b"ELF" * 500))

        result = Installer().install(archive, tmp_path / "avml", filename="avml.gz")
        assert isinstance(result, Err)
        assert "Invalid gzip" in result.error.message
