"""EPUB parsing: metadata, TOC, spine, cover and chapter text."""

import logging
from pathlib import Path

from epub_digest.core.archive import ArchiveReader
from epub_digest.core.chapter_loader import ChapterContentLoader
from epub_digest.core.cover import resolve_cover
from epub_digest.core.opf import (
    CONTAINER_PATH,
    OpfDocument,
    extract_metadata,
    extract_spine,
    parse_container,
    parse_package,
    resolve_container,
)
from epub_digest.core.toc import extract_toc
from epub_digest.errors import EpubDigestError, EpubParseError
from epub_digest.models.epub import ChapterContent, EpubMetadata, EpubParseResult

log = logging.getLogger(__name__)


class EpubParser:
    """Parse EPUB files and extract structure.

    Nothing is cached between calls: every ``parse`` re-reads the package.
    """

    def __init__(self, source: str | Path | bytes):
        self.source = source
        self.archive = ArchiveReader.open(source)

    def __enter__(self) -> "EpubParser":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self.archive.close()

    def _load_package(self) -> OpfDocument:
        opf_path = resolve_container(self.archive)
        log.debug("Found rootfile: %s", opf_path)
        return parse_package(self.archive, opf_path)

    def parse(self) -> EpubParseResult:
        """Parse the EPUB and return complete structure."""
        try:
            doc = self._load_package()
            metadata = extract_metadata(doc)
            result = EpubParseResult(
                metadata=metadata,
                toc=extract_toc(self.archive, doc),
                spine=extract_spine(doc),
                cover_path=resolve_cover(self.archive, doc),
            )
        except EpubParseError:
            raise
        except Exception as e:
            log.error("Failed to parse EPUB file", exc_info=True)
            raise EpubParseError(f"Failed to parse EPUB file: {e}") from e

        log.info("Parsed EPUB %r: %d spine item(s)", metadata.title, len(result.spine))
        return result

    def get_metadata(self) -> EpubMetadata:
        """Extract book metadata."""
        return extract_metadata(self._load_package())

    def chapter_loader(self) -> ChapterContentLoader:
        doc = self._load_package()
        return ChapterContentLoader(
            self.archive,
            spine=extract_spine(doc),
            toc=extract_toc(self.archive, doc),
            opf_dir=doc.opf_dir,
        )

    def get_chapter_content(self, index: int) -> ChapterContent:
        """Cleaned text and TOC title of the chapter at a spine index."""
        return self.chapter_loader().load(index)

    def get_chapter_html(self, index: int) -> str:
        return self.chapter_loader().load_html(index)

    def extract_cover_data(self) -> bytes | None:
        """Cover image bytes, or None if the book has no usable cover."""
        try:
            cover_path = self.parse().cover_path
            if not cover_path:
                return None
            return self.archive.read_bytes(cover_path)
        except Exception:
            log.warning("Failed to extract cover data", exc_info=True)
            return None


def parse(file_path: str | Path) -> EpubParseResult:
    """Parse an EPUB file."""
    with EpubParser(file_path) as parser:
        return parser.parse()


def extract_cover_data(file_path: str | Path) -> bytes | None:
    """Cover image bytes of an EPUB file, or None."""
    try:
        with EpubParser(file_path) as parser:
            return parser.extract_cover_data()
    except (OSError, EpubDigestError):
        log.warning("Failed to open %s for cover extraction", file_path, exc_info=True)
        return None


def validate(file_path: str | Path) -> bool:
    """Check that the file is a zip with a container pointing at an existing OPF."""
    try:
        with ArchiveReader.open(file_path) as archive:
            if not archive.has(CONTAINER_PATH):
                return False
            container = parse_container(archive.read_bytes(CONTAINER_PATH))
            if not container.rootfile_paths:
                return False
            return archive.has(container.rootfile_paths[0])
    except Exception:
        log.debug("Validation failed for %s", file_path, exc_info=True)
        return False
