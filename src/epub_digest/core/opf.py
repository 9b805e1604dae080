"""Container and OPF package parsing.

The XML is converted once into small typed documents (``ContainerDocument``,
``OpfDocument``); metadata and spine extraction are plain functions over
those documents.
"""

import logging
import posixpath
import re
from dataclasses import dataclass, field
from datetime import datetime

from lxml import etree

from epub_digest.core.archive import ArchiveReader
from epub_digest.errors import EpubParseError
from epub_digest.models.epub import EpubMetadata, ManifestItem, SpineItem

log = logging.getLogger(__name__)

CONTAINER_PATH = "META-INF/container.xml"
DC_NAMESPACE = "http://purl.org/dc/elements/1.1/"

_XML_PARSER = etree.XMLParser(
    recover=True,
    resolve_entities=False,
    no_network=True,
    remove_comments=True,
    remove_pis=True,
)


def parse_xml(data: bytes) -> etree._Element | None:
    """Parse XML leniently. Returns None when nothing usable was recovered."""
    try:
        return etree.fromstring(data, parser=_XML_PARSER)
    except etree.XMLSyntaxError:
        return None


def local_name(element: etree._Element) -> str:
    """Tag name without namespace."""
    return etree.QName(element).localname


def element_text(element: etree._Element) -> str:
    """All text inside an element, stripped."""
    return "".join(element.itertext()).strip()


def children(element: etree._Element | None, name: str) -> list[etree._Element]:
    """Direct children with the given local name, ignoring namespaces."""
    if element is None:
        return []
    return [child for child in element if isinstance(child.tag, str) and local_name(child) == name]


def first_child(element: etree._Element | None, name: str) -> etree._Element | None:
    found = children(element, name)
    return found[0] if found else None


def resolve_href(base_dir: str, href: str) -> str:
    """Join an OPF-relative href onto the OPF directory."""
    if not base_dir or base_dir == ".":
        return posixpath.normpath(href)
    return posixpath.normpath(posixpath.join(base_dir, href))


# =============================================================================
# Container
# =============================================================================


@dataclass
class ContainerDocument:
    """``META-INF/container.xml`` reduced to its rootfile paths."""

    rootfile_paths: list[str] = field(default_factory=list)


def parse_container(data: bytes) -> ContainerDocument:
    root = parse_xml(data)
    if root is None or local_name(root) != "container":
        return ContainerDocument()

    paths = []
    for rootfiles in children(root, "rootfiles"):
        for rootfile in children(rootfiles, "rootfile"):
            full_path = rootfile.get("full-path")
            if full_path:
                paths.append(full_path)
    return ContainerDocument(rootfile_paths=paths)


def resolve_container(archive: ArchiveReader) -> str:
    """Return the OPF path declared by the container."""
    if not archive.has(CONTAINER_PATH):
        raise EpubParseError("Invalid EPUB file: container.xml not found", "container")

    container = parse_container(archive.read_bytes(CONTAINER_PATH))
    if not container.rootfile_paths:
        raise EpubParseError("Invalid EPUB file: rootfile path not found", "container")

    return container.rootfile_paths[0]


# =============================================================================
# OPF package
# =============================================================================


@dataclass
class MetaTag:
    """``<meta>`` element attributes and where it was declared."""

    attrs: dict[str, str]
    location: str  # "metadata" | "manifest"


@dataclass
class Identifier:
    value: str
    scheme: str | None = None


@dataclass
class OpfDocument:
    """Typed view of the OPF package document."""

    opf_path: str
    dc_fields: dict[str, list[str]] = field(default_factory=dict)
    plain_fields: dict[str, list[str]] = field(default_factory=dict)
    nested_dc_fields: dict[str, list[str]] = field(default_factory=dict)
    identifiers: list[Identifier] = field(default_factory=list)
    metas: list[MetaTag] = field(default_factory=list)
    manifest: list[ManifestItem] = field(default_factory=list)
    spine_toc: str | None = None
    itemrefs: list[str] = field(default_factory=list)

    @property
    def opf_dir(self) -> str:
        return posixpath.dirname(self.opf_path)

    def manifest_item(self, item_id: str | None) -> ManifestItem | None:
        """Look up a manifest item by id."""
        if not item_id:
            return None
        for item in self.manifest:
            if item.id == item_id:
                return item
        return None

    def resolve(self, href: str) -> str:
        """Archive path of an OPF-relative href."""
        return resolve_href(self.opf_dir, href)


def _collect_fields(
    container: etree._Element,
    dc_fields: dict[str, list[str]],
    plain_fields: dict[str, list[str]] | None = None,
) -> None:
    for child in container:
        if not isinstance(child.tag, str):
            continue
        name = local_name(child).lower()
        if name in ("meta", "metadata", "dc-metadata", "x-metadata"):
            continue
        text = element_text(child)
        if not text:
            continue
        if etree.QName(child).namespace == DC_NAMESPACE or plain_fields is None:
            dc_fields.setdefault(name, []).append(text)
        else:
            plain_fields.setdefault(name, []).append(text)


def _build_opf_document(root: etree._Element, opf_path: str) -> OpfDocument:
    doc = OpfDocument(opf_path=opf_path)

    metadata = first_child(root, "metadata")
    if metadata is not None:
        _collect_fields(metadata, doc.dc_fields, doc.plain_fields)
        # EPUB2 legacy layout: <metadata><dc-metadata><dc:Title/>...</dc-metadata>
        for name in ("dc-metadata", "metadata"):
            for nested in children(metadata, name):
                _collect_fields(nested, doc.nested_dc_fields)

        for child in metadata.iter():
            if not isinstance(child.tag, str):
                continue
            name = local_name(child).lower()
            if name == "identifier":
                scheme = next(
                    (v for k, v in child.attrib.items() if etree.QName(k).localname == "scheme"),
                    None,
                )
                doc.identifiers.append(Identifier(element_text(child), scheme))
            elif name == "meta":
                doc.metas.append(MetaTag(dict(child.attrib), "metadata"))

    manifest = first_child(root, "manifest")
    for item in children(manifest, "item"):
        item_id = item.get("id")
        if not item_id:
            continue
        doc.manifest.append(
            ManifestItem(
                id=item_id,
                href=item.get("href", ""),
                media_type=item.get("media-type", ""),
                properties=item.get("properties", ""),
            )
        )
    for meta in children(manifest, "meta"):
        doc.metas.append(MetaTag(dict(meta.attrib), "manifest"))

    spine = first_child(root, "spine")
    if spine is not None:
        doc.spine_toc = spine.get("toc")
        doc.itemrefs = [ref.get("idref", "") for ref in children(spine, "itemref")]

    return doc


def parse_package(archive: ArchiveReader, opf_path: str) -> OpfDocument:
    """Parse the OPF file into an ``OpfDocument``."""
    if not archive.has(opf_path):
        raise EpubParseError("Invalid EPUB file: OPF file not found", "package")

    root = parse_xml(archive.read_bytes(opf_path))
    if root is None or local_name(root) != "package":
        raise EpubParseError("Invalid EPUB file: package node not found", "package")

    return _build_opf_document(root, opf_path)


# =============================================================================
# Metadata and spine extraction
# =============================================================================


def _first_value(doc: OpfDocument, name: str, nested: bool = True) -> str | None:
    """First non-empty value of a field: dc:name, then name, then nested dc:name."""
    sources = [doc.dc_fields, doc.plain_fields]
    if nested:
        sources.append(doc.nested_dc_fields)
    for source in sources:
        values = source.get(name)
        if values:
            return values[0]
    return None


def parse_date(value: str | None) -> datetime | None:
    """Parse ISO-8601 style dates, including bare years and year-months."""
    if not value:
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        pass
    match = re.fullmatch(r"(\d{4})(?:-(\d{1,2}))?", text)
    if match:
        try:
            return datetime(int(match.group(1)), int(match.group(2) or 1), 1)
        except ValueError:
            return None
    return None


def extract_isbn(doc: OpfDocument) -> str | None:
    for identifier in doc.identifiers:
        value = identifier.value
        if "isbn" in value.lower():
            return re.sub(r"isbn:", "", value, count=1, flags=re.IGNORECASE).strip()
        if identifier.scheme and identifier.scheme.lower() == "isbn" and value:
            return value
    return None


def extract_metadata(doc: OpfDocument) -> EpubMetadata:
    """Build ``EpubMetadata`` with best-effort fallbacks per field."""
    return EpubMetadata(
        title=_first_value(doc, "title") or "Unknown",
        author=_first_value(doc, "creator") or "Unknown",
        publisher=_first_value(doc, "publisher", nested=False),
        publish_date=parse_date(_first_value(doc, "date", nested=False)),
        isbn=extract_isbn(doc),
        language=_first_value(doc, "language", nested=False),
        description=_first_value(doc, "description", nested=False),
    )


def extract_spine(doc: OpfDocument) -> list[SpineItem]:
    """Join spine itemrefs against the manifest.

    Unknown idrefs keep their position with an empty href and media type.
    """
    spine = []
    for idref in doc.itemrefs:
        item = doc.manifest_item(idref)
        if item is None:
            log.warning("Spine itemref %r has no manifest entry", idref)
        spine.append(
            SpineItem(
                id=idref,
                href=item.href if item else "",
                media_type=item.media_type if item else "",
            )
        )
    return spine
