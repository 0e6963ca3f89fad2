"""ZIP archive access for uploaded capsules."""

from __future__ import annotations

import io
import logging
import zipfile
import zlib

logger = logging.getLogger("capsule.archive.zip")

# Raised by zipfile for a listed member it cannot decode
_UNREADABLE_MEMBER = (
    zipfile.BadZipFile,
    RuntimeError,
    NotImplementedError,
    EOFError,
    zlib.error,
)


class ArchiveError(Exception):
    """The uploaded bytes are not a usable capsule archive."""


class ArchiveTooLargeError(ArchiveError):
    """The upload exceeds the configured size limit."""


class ZipArchive:
    """Read-only view over an in-memory ZIP archive.

    The whole archive is resident before validation starts; every lookup
    here is synchronous.
    """

    def __init__(self, zf: zipfile.ZipFile) -> None:
        self._zip = zf
        self._names = [info.filename for info in zf.infolist() if not info.is_dir()]
        self._name_set = set(self._names)
        self._lower: dict[str, str] = {}
        for name in self._names:
            self._lower.setdefault(name.lower(), name)

    @classmethod
    def from_bytes(cls, data: bytes, *, max_bytes: int | None = None) -> ZipArchive:
        """Open an archive from raw upload bytes.

        Raises:
            ArchiveTooLargeError: If ``data`` exceeds ``max_bytes``.
            ArchiveError: If the bytes are not a ZIP or the archive holds no files.
        """
        if max_bytes is not None and len(data) > max_bytes:
            raise ArchiveTooLargeError(
                f"Archive is {len(data)} bytes, limit is {max_bytes} bytes"
            )
        try:
            zf = zipfile.ZipFile(io.BytesIO(data))
        except (zipfile.BadZipFile, EOFError) as e:
            raise ArchiveError(f"Not a valid ZIP archive: {e}") from e

        archive = cls(zf)
        if not archive.file_list():
            raise ArchiveError("Archive contains no files")

        logger.debug("Opened archive with %d files", len(archive.file_list()))
        return archive

    def file_list(self) -> list[str]:
        return list(self._names)

    def exists(self, name: str) -> bool:
        """Case-sensitive exact match."""
        return name in self._name_set

    def find_case_insensitive(self, name: str) -> str | None:
        """Return the stored name matching ``name`` ignoring case, if any."""
        return self._lower.get(name.lower())

    def size(self, name: str) -> int:
        if not self.exists(name):
            return 0
        return self._zip.getinfo(name).file_size

    def read_bytes(self, name: str) -> bytes:
        """Raw member bytes.

        Raises:
            FileNotFoundError: If there is no member called ``name``.
            ArchiveError: If the member exists but cannot be decoded.
        """
        if not self.exists(name):
            raise FileNotFoundError(f"File {name} not found in archive")
        try:
            return self._zip.read(name)
        except _UNREADABLE_MEMBER as e:
            raise ArchiveError(f"Cannot read {name} from archive: {e}") from e

    def read_text(self, name: str, encoding: str = "utf-8") -> str:
        return self.read_bytes(name).decode(encoding, errors="replace").lstrip("\ufeff")

    def close(self) -> None:
        self._zip.close()
