"""Archive extraction into the tool cache.

The extraction strategy is chosen from the file name:
- .zip
- .tar, .tar.gz/.tgz, .tar.xz/.txz
- .gz (a single compressed file)
- anything else is treated as a standalone executable and copied as-is

Members with absolute paths, ``..`` components, drive letters, links or
special file types are skipped; nothing is written outside install_dir.
"""

from __future__ import annotations

import contextlib
import gzip
import lzma
import os
import shutil
import stat
import tarfile
import zipfile
import zlib
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

from artipack.core.result import Err, Ok, Result

__all__ = ["Installer", "InstallResult", "InstallError", "archive_kind"]


@dataclass(frozen=True, slots=True)
class InstallError:
    """Installation error details.

    Attributes:
        archive: Path to the archive that failed
        message: Human-readable error message
    """

    archive: Path
    message: str

    def __str__(self) -> str:
        return f"{self.message}: {self.archive}"


@dataclass(frozen=True, slots=True)
class InstallResult:
    """Result of an installation operation.

    Attributes:
        install_dir: Path to the installation directory
        files_count: Number of files written
        kind: Extraction strategy used ("zip", "tar", "gz", "file")
    """

    install_dir: Path
    files_count: int
    kind: str = "zip"


def archive_kind(filename: str) -> str:
    """Return the extraction strategy for a file name."""
    # NOTE: Path.suffixes is not reliable for names like "yara-v4.5.2-2326-win64.zip"
    # because it splits on every dot.
    name = filename.lower()
    if name.endswith((".tar.gz", ".tgz")):
        return "tar:gz"
    if name.endswith((".tar.xz", ".txz")):
        return "tar:xz"
    if name.endswith(".tar"):
        return "tar"
    if name.endswith(".zip"):
        return "zip"
    if name.endswith(".gz"):
        return "gz"
    return "file"


class Installer:
    """Extracts downloaded tool archives.

    Usage:
        installer = Installer()
        result = installer.install(tmp_file, cache_dir / "yara", filename="yara.zip")
        if isinstance(result, Ok):
            print(f"Installed {result.value.files_count} files")
    """

    def install(
        self,
        archive: Path,
        install_dir: Path,
        *,
        filename: str | None = None,
    ) -> Result[InstallResult, InstallError]:
        """Extract (or copy) archive into install_dir, replacing its content.

        Args:
            archive: Path to the downloaded file
            install_dir: Directory to extract to
            filename: Original file name; selects the strategy (default: archive.name)

        Returns:
            Ok with InstallResult, or Err with InstallError
        """
        if not archive.is_file():
            return Err(InstallError(archive=archive, message="Archive not found"))

        name = filename or archive.name
        kind = archive_kind(name)

        try:
            if install_dir.exists():
                shutil.rmtree(install_dir)
            install_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            return Err(InstallError(archive=archive, message=f"IO error: {e}"))

        if kind.startswith("tar"):
            mode = "r:" + kind.partition(":")[2] if ":" in kind else "r:"
            return self._extract_tar(archive, install_dir, mode)
        if kind == "zip":
            return self._extract_zip(archive, install_dir)
        if kind == "gz":
            return self._extract_gz(archive, install_dir, name)
        return self._copy_file(archive, install_dir, name)

    def _safe_relative_path(self, member_name: str) -> Path | None:
        """Return a sanitized relative extraction path, or None if unsafe."""
        normalized = member_name.replace("\\", "/")
        if normalized.startswith("/"):
            return None

        parts = PurePosixPath(normalized).parts
        if not parts or any(part in {"", ".", ".."} for part in parts):
            return None
        if parts[0].endswith(":"):
            return None

        return Path(*parts)

    def _is_within_root(self, root: Path, target: Path) -> bool:
        try:
            return target.resolve().is_relative_to(root.resolve())
        except OSError:
            return False

    def _extract_tar(
        self,
        archive: Path,
        install_dir: Path,
        mode: str,
    ) -> Result[InstallResult, InstallError]:
        try:
            install_root = install_dir.resolve()
            files_count = 0

            with tarfile.open(archive, mode) as tar:
                for member in tar.getmembers():
                    # Skip directories and non-regular entries (symlink, hardlink, device, fifo)
                    if not member.isreg():
                        continue

                    rel_path = self._safe_relative_path(member.name)
                    if rel_path is None:
                        continue

                    full_path = install_dir / rel_path
                    if not self._is_within_root(install_root, full_path):
                        continue

                    src = tar.extractfile(member)
                    if src is None:
                        continue

                    full_path.parent.mkdir(parents=True, exist_ok=True)
                    with src, open(full_path, "wb") as dst:
                        shutil.copyfileobj(src, dst)

                    perms = member.mode & 0o777
                    if perms:
                        with contextlib.suppress(OSError):
                            os.chmod(full_path, perms)

                    files_count += 1

            return Ok(InstallResult(install_dir=install_dir, files_count=files_count, kind="tar"))

        except tarfile.TarError as e:
            return Err(InstallError(archive=archive, message=f"Tar extraction failed: {e}"))
        except (zlib.error, lzma.LZMAError, EOFError) as e:
            return Err(InstallError(archive=archive, message=f"Corrupt tar stream: {e}"))
        except OSError as e:
            return Err(InstallError(archive=archive, message=f"IO error: {e}"))

    def _extract_zip(
        self,
        archive: Path,
        install_dir: Path,
    ) -> Result[InstallResult, InstallError]:
        try:
            install_root = install_dir.resolve()
            files_count = 0

            with zipfile.ZipFile(archive, "r") as zf:
                for info in zf.infolist():
                    if info.is_dir():
                        continue

                    rel_path = self._safe_relative_path(info.filename)
                    if rel_path is None:
                        continue

                    file_type_bits = (info.external_attr >> 16) & 0o170000
                    if file_type_bits == stat.S_IFLNK:
                        continue

                    full_path = install_dir / rel_path
                    if not self._is_within_root(install_root, full_path):
                        continue

                    full_path.parent.mkdir(parents=True, exist_ok=True)
                    with zf.open(info) as src, open(full_path, "wb") as dst:
                        shutil.copyfileobj(src, dst)

                    perms = (info.external_attr >> 16) & 0o777
                    if perms:
                        with contextlib.suppress(OSError):
                            full_path.chmod(perms)

                    files_count += 1

            return Ok(InstallResult(install_dir=install_dir, files_count=files_count, kind="zip"))

        except zipfile.BadZipFile as e:
            return Err(InstallError(archive=archive, message=f"Invalid zip file: {e}"))
        except (zlib.error, EOFError) as e:
            return Err(InstallError(archive=archive, message=f"Corrupt zip member: {e}"))
        except OSError as e:
            return Err(InstallError(archive=archive, message=f"IO error: {e}"))

    def _extract_gz(
        self,
        archive: Path,
        install_dir: Path,
        filename: str,
    ) -> Result[InstallResult, InstallError]:
        target = install_dir / (PurePosixPath(filename).name[: -len(".gz")] or "tool")
        try:
            with gzip.open(archive, "rb") as src, open(target, "wb") as dst:
                shutil.copyfileobj(src, dst)
            target.chmod(0o755)
            return Ok(InstallResult(install_dir=install_dir, files_count=1, kind="gz"))
        except (gzip.BadGzipFile, zlib.error, EOFError) as e:
            return Err(InstallError(archive=archive, message=f"Invalid gzip file: {e}"))
        except OSError as e:
            return Err(InstallError(archive=archive, message=f"IO error: {e}"))

    def _copy_file(
        self,
        archive: Path,
        install_dir: Path,
        filename: str,
    ) -> Result[InstallResult, InstallError]:
        target = install_dir / (PurePosixPath(filename.replace("\\", "/")).name or "tool")
        try:
            shutil.copyfile(archive, target)
            target.chmod(0o755)
            return Ok(InstallResult(install_dir=install_dir, files_count=1, kind="file"))
        except OSError as e:
            return Err(InstallError(archive=archive, message=f"IO error: {e}"))
