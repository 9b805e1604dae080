"""Read-only access to the zip container of an EPUB."""

import io
import zipfile
from pathlib import Path

from epub_digest.errors import EpubParseError


class ArchiveReader:
    """Thin wrapper over a zip file opened from a path or a byte buffer."""

    def __init__(self, source: str | Path | bytes):
        try:
            if isinstance(source, (bytes, bytearray)):
                self._zip = zipfile.ZipFile(io.BytesIO(source))
            else:
                self._zip = zipfile.ZipFile(Path(source))
        except zipfile.BadZipFile as e:
            raise EpubParseError(f"Invalid EPUB file: not a zip archive ({e})") from e
        except OSError as e:
            raise EpubParseError(f"Cannot open EPUB file: {e}") from e
        self._names = [info.filename for info in self._zip.infolist() if not info.is_dir()]
        self._name_set = set(self._names)

    @classmethod
    def open(cls, source: str | Path | bytes) -> "ArchiveReader":
        """Open an archive from a file path or raw bytes."""
        return cls(source)

    def __enter__(self) -> "ArchiveReader":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self._zip.close()

    @property
    def names(self) -> list[str]:
        """Entry names in archive order (directories excluded)."""
        return list(self._names)

    def has(self, path: str) -> bool:
        return path in self._name_set

    def read_bytes(self, path: str) -> bytes:
        return self._zip.read(path)

    def read_text(self, path: str, encoding: str = "utf-8") -> str:
        return self.read_bytes(path).decode(encoding, errors="replace")
