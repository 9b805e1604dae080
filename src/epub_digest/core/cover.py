"""Cover image lookup.

Tiers run in a fixed order, from the explicit EPUB2 ``<meta name="cover">``
declaration through the EPUB3 ``cover-image`` property down to a filename
heuristic. The filename tier must stay last.
"""

import logging

from epub_digest.core.archive import ArchiveReader
from epub_digest.core.opf import OpfDocument
from epub_digest.core.resolution import Strategy, first_match
from epub_digest.models.epub import ManifestItem

log = logging.getLogger(__name__)


def cover_from_meta(doc: OpfDocument) -> ManifestItem | None:
    """``<meta name="cover" content="ID">``, metadata first, then manifest."""
    for location in ("metadata", "manifest"):
        for meta in doc.metas:
            if meta.location != location or meta.attrs.get("name") != "cover":
                continue
            item = doc.manifest_item(meta.attrs.get("content"))
            if item is not None:
                return item
    return None


def cover_from_properties(doc: OpfDocument) -> ManifestItem | None:
    for item in doc.manifest:
        if "cover-image" in item.properties.split():
            return item
    return None


def cover_from_filename(doc: OpfDocument) -> ManifestItem | None:
    """Image whose href mentions "cover"."""
    for item in doc.manifest:
        if item.media_type.lower().startswith("image/") and "cover" in item.href.lower():
            return item
    return None


COVER_STRATEGIES: list[Strategy] = [
    Strategy("meta-cover", cover_from_meta),
    Strategy("cover-image-property", cover_from_properties),
    Strategy("image-filename", cover_from_filename),
]


def resolve_cover(archive: ArchiveReader, doc: OpfDocument) -> str | None:
    """Archive path of the cover image, or None when there is no usable cover."""
    match = first_match(COVER_STRATEGIES, doc)
    if match is None:
        log.debug("No cover declared")
        return None

    tier, item = match
    cover_path = doc.resolve(item.href)
    if not archive.has(cover_path):
        log.warning("Cover %s (%s) missing from archive", cover_path, tier)
        return None

    return cover_path
