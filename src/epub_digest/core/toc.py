"""Table of contents extraction from NCX or EPUB3 nav documents."""

import logging
from dataclasses import dataclass, field

from lxml import etree

from epub_digest.core.archive import ArchiveReader
from epub_digest.core.opf import (
    OpfDocument,
    children,
    element_text,
    first_child,
    local_name,
    parse_xml,
)
from epub_digest.core.resolution import Strategy, first_match
from epub_digest.models.epub import SpineItem, TOCItem

log = logging.getLogger(__name__)

OPS_NAMESPACE = "http://www.idpf.org/2007/ops"
DEFAULT_LABEL = "Section"


@dataclass
class NavSource:
    """Navigation document located in the archive."""

    kind: str  # "ncx" | "nav"
    path: str


@dataclass
class NavPoint:
    """Source-agnostic navigation node."""

    label: str
    href: str
    children: list["NavPoint"] = field(default_factory=list)


# =============================================================================
# Locating the navigation document
# =============================================================================


def ncx_from_spine_toc(doc: OpfDocument) -> NavSource | None:
    """EPUB2: ``<spine toc="ncx-id">`` points at the NCX manifest item."""
    item = doc.manifest_item(doc.spine_toc)
    if item is None:
        return None
    return NavSource("ncx", doc.resolve(item.href))


def ncx_from_manifest_scan(doc: OpfDocument) -> NavSource | None:
    """Any manifest item that looks like an NCX file."""
    for item in doc.manifest:
        if "ncx" in item.media_type or item.href.endswith(".ncx"):
            return NavSource("ncx", doc.resolve(item.href))
    return None


def nav_from_properties(doc: OpfDocument) -> NavSource | None:
    """EPUB3: manifest item with ``properties="nav"``."""
    for item in doc.manifest:
        if "nav" in item.properties.split():
            return NavSource("nav", doc.resolve(item.href))
    return None


NAV_STRATEGIES: list[Strategy] = [
    Strategy("spine-toc", ncx_from_spine_toc),
    Strategy("manifest-ncx", ncx_from_manifest_scan),
    Strategy("nav-document", nav_from_properties),
]


# =============================================================================
# Parsing
# =============================================================================


def _ncx_point(element: etree._Element) -> NavPoint:
    label_node = first_child(first_child(element, "navLabel"), "text")
    label = element_text(label_node) if label_node is not None else ""
    content = first_child(element, "content")
    return NavPoint(
        label=label or DEFAULT_LABEL,
        href=content.get("src", "") if content is not None else "",
        children=[_ncx_point(child) for child in children(element, "navPoint")],
    )


def parse_ncx(data: bytes) -> list[NavPoint]:
    """Convert ``navMap/navPoint`` elements into nav points."""
    root = parse_xml(data)
    nav_map = first_child(root, "navMap")
    return [_ncx_point(point) for point in children(nav_map, "navPoint")]


def _nav_list(ol: etree._Element | None) -> list[NavPoint]:
    points = []
    for li in children(ol, "li"):
        anchor = first_child(li, "a")
        if anchor is None:
            anchor = first_child(li, "span")
        label = element_text(anchor) if anchor is not None else ""
        href = anchor.get("href", "") if anchor is not None else ""
        points.append(
            NavPoint(
                label=label or DEFAULT_LABEL,
                href=href,
                children=_nav_list(first_child(li, "ol")),
            )
        )
    return points


def parse_nav_document(data: bytes) -> list[NavPoint]:
    """Convert the ``<nav epub:type="toc">`` list of an XHTML nav document."""
    root = parse_xml(data)
    if root is None:
        return []

    navs = [el for el in root.iter() if isinstance(el.tag, str) and local_name(el) == "nav"]
    if not navs:
        return []

    toc_nav = next(
        (nav for nav in navs if "toc" in nav.get(f"{{{OPS_NAMESPACE}}}type", "").split()),
        navs[0],
    )
    return _nav_list(first_child(toc_nav, "ol"))


def build_toc(points: list[NavPoint], parent: str | None = None) -> list[TOCItem]:
    """Assign path-encoded ids ("0", "0-1", "0-1-2") to a nav point tree."""
    prefix = f"{parent}-" if parent is not None else ""
    items = []
    for index, point in enumerate(points):
        item_id = f"{prefix}{index}"
        items.append(
            TOCItem(
                id=item_id,
                label=point.label,
                href=point.href,
                parent=parent,
                children=build_toc(point.children, item_id),
            )
        )
    return items


def extract_toc(archive: ArchiveReader, doc: OpfDocument) -> list[TOCItem]:
    """Extract the TOC tree. Any failure degrades to an empty list."""
    try:
        match = first_match(NAV_STRATEGIES, doc)
        if match is None:
            log.warning("Navigation document not found, TOC will be empty")
            return []

        _, source = match
        if not archive.has(source.path):
            log.warning("Navigation document not found in archive: %s", source.path)
            return []

        data = archive.read_bytes(source.path)
        points = parse_ncx(data) if source.kind == "ncx" else parse_nav_document(data)
        toc = build_toc(points)
        log.debug("Extracted %d top-level TOC items from %s", len(toc), source.path)
        return toc
    except Exception:
        log.warning("Failed to parse TOC, returning empty list", exc_info=True)
        return []


def find_chapter_title(toc: list[TOCItem], spine_item: SpineItem) -> str | None:
    """Depth-first search for a TOC label matching a spine entry.

    Matches on exact href, or on the manifest id appearing in the TOC href.
    """
    for item in toc:
        if (spine_item.href and item.href == spine_item.href) or (
            spine_item.id and spine_item.id in item.href
        ):
            return item.label
        found = find_chapter_title(item.children, spine_item)
        if found:
            return found
    return None
