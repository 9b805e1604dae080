"""Data models."""

from epub_digest.models.epub import (
    ChapterContent,
    EpubMetadata,
    EpubParseResult,
    ManifestItem,
    SpineItem,
    TOCItem,
)
from epub_digest.models.summary import (
    BookRecord,
    ChapterSummary,
    SummarizeOptions,
)

__all__ = [
    # EPUB models
    "EpubMetadata",
    "ManifestItem",
    "SpineItem",
    "TOCItem",
    "EpubParseResult",
    "ChapterContent",
    # Summary models
    "ChapterSummary",
    "BookRecord",
    "SummarizeOptions",
]
