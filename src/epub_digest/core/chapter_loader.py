"""Locate spine entries inside the archive and load their text."""

import logging

from epub_digest.core.archive import ArchiveReader
from epub_digest.core.content_processor import clean_html
from epub_digest.core.opf import resolve_href
from epub_digest.core.resolution import Strategy, first_match
from epub_digest.core.toc import find_chapter_title
from epub_digest.errors import ChapterIndexError, ChapterNotFoundError
from epub_digest.models.epub import ChapterContent, SpineItem, TOCItem

log = logging.getLogger(__name__)

COMMON_CONTENT_DIR = "OEBPS"


def path_direct(archive: ArchiveReader, opf_dir: str, href: str) -> str | None:
    return href if archive.has(href) else None


def path_common_prefix(archive: ArchiveReader, opf_dir: str, href: str) -> str | None:
    candidate = f"{COMMON_CONTENT_DIR}/{href}"
    return candidate if archive.has(candidate) else None


def path_opf_relative(archive: ArchiveReader, opf_dir: str, href: str) -> str | None:
    candidate = resolve_href(opf_dir, href)
    return candidate if archive.has(candidate) else None


def path_suffix_search(archive: ArchiveReader, opf_dir: str, href: str) -> str | None:
    """First archive entry whose name ends with the href."""
    for name in archive.names:
        if name.endswith(href):
            return name
    return None


PATH_STRATEGIES: list[Strategy] = [
    Strategy("direct", path_direct),
    Strategy("oebps-prefix", path_common_prefix),
    Strategy("opf-relative", path_opf_relative),
    Strategy("suffix-search", path_suffix_search),
]


class ChapterContentLoader:
    """Load cleaned chapter text by spine index."""

    def __init__(
        self,
        archive: ArchiveReader,
        spine: list[SpineItem],
        toc: list[TOCItem] | None = None,
        opf_dir: str = "",
    ):
        self.archive = archive
        self.spine = spine
        self.toc = toc or []
        self.opf_dir = opf_dir

    def spine_item(self, index: int) -> SpineItem:
        if index < 0 or index >= len(self.spine):
            raise ChapterIndexError(index, len(self.spine))
        return self.spine[index]

    def resolve_path(self, index: int) -> str:
        """Archive entry name for a spine index."""
        item = self.spine_item(index)
        if not item.href:
            raise ChapterNotFoundError(item.href or item.id)

        match = first_match(PATH_STRATEGIES, self.archive, self.opf_dir, item.href)
        if match is None:
            raise ChapterNotFoundError(item.href)

        strategy, path = match
        if strategy != "direct":
            log.debug("Resolved %s to %s via %s", item.href, path, strategy)
        return path

    def load_html(self, index: int) -> str:
        """Raw chapter markup."""
        return self.archive.read_text(self.resolve_path(index))

    def load(self, index: int) -> ChapterContent:
        """Cleaned chapter text with its TOC title."""
        item = self.spine_item(index)
        content = clean_html(self.load_html(index))
        return ChapterContent(
            index=index,
            href=item.href,
            title=find_chapter_title(self.toc, item),
            content=content,
        )
