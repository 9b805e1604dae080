"""Shared fixtures: in-memory EPUB builder and a recording fake provider."""

import io
import threading
import zipfile
from pathlib import Path

import pytest

from epub_digest.storage.database import Database

CONTAINER_XML = """<?xml version="1.0" encoding="UTF-8"?>
<container version="1.0" xmlns="urn:oasis:names:tc:opendocument:xmlns:container">
  <rootfiles>
    <rootfile full-path="{opf_path}" media-type="application/oebps-package+xml"/>
  </rootfiles>
</container>
"""

OPF_TEMPLATE = """<?xml version="1.0" encoding="UTF-8"?>
<package xmlns="http://www.idpf.org/2007/opf" version="2.0" unique-identifier="bookid">
  <metadata xmlns:dc="http://purl.org/dc/elements/1.1/" xmlns:opf="http://www.idpf.org/2007/opf">
    {metadata}
  </metadata>
  <manifest>
    {manifest}
  </manifest>
  <spine{spine_attrs}>
    {spine}
  </spine>
</package>
"""

NCX_TEMPLATE = """<?xml version="1.0" encoding="UTF-8"?>
<ncx xmlns="http://www.daisy.org/z3986/2005/ncx/" version="2005-1">
  <head/>
  <docTitle><text>Book</text></docTitle>
  <navMap>
    {points}
  </navMap>
</ncx>
"""


def chapter_html(title: str, body: str) -> str:
    return (
        '<?xml version="1.0" encoding="utf-8"?>\n'
        '<html xmlns="http://www.w3.org/1999/xhtml"><head><title>'
        f"{title}</title><style>p {{ margin: 0 }}</style></head>"
        f"<body><h1>{title}</h1>{body}</body></html>"
    )


def nav_point(label: str, src: str, children: str = "") -> str:
    return (
        f"<navPoint><navLabel><text>{label}</text></navLabel>"
        f'<content src="{src}"/>{children}</navPoint>'
    )


def build_epub(
    files: dict[str, str | bytes] | None = None,
    opf_path: str | None = "OEBPS/content.opf",
    metadata: str = '<dc:title>Test Book</dc:title><dc:creator>Jane Doe</dc:creator>',
    manifest: str = "",
    spine: str = "",
    spine_attrs: str = "",
    include_container: bool = True,
    raw_opf: str | None = None,
) -> bytes:
    """Assemble an EPUB zip in memory."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        zf.writestr("mimetype", "application/epub+zip")
        if include_container:
            zf.writestr("META-INF/container.xml", CONTAINER_XML.format(opf_path=opf_path or ""))
        if opf_path:
            opf = raw_opf or OPF_TEMPLATE.format(
                metadata=metadata,
                manifest=manifest,
                spine=spine,
                spine_attrs=spine_attrs,
            )
            zf.writestr(opf_path, opf)
        for name, data in (files or {}).items():
            zf.writestr(name, data)
    return buffer.getvalue()


def standard_epub(with_ncx: bool = True, chapter_bodies: dict[str, str] | None = None) -> bytes:
    """Two-chapter book under OEBPS/ with an optional NCX."""
    bodies = chapter_bodies or {
        "ch1": "<p>First paragraph.</p><p>Second paragraph.</p>",
        "ch2": "<p>Chapter two text.</p>",
    }
    manifest = "".join(
        f'<item id="{cid}" href="text/{cid}.xhtml" media-type="application/xhtml+xml"/>'
        for cid in bodies
    )
    spine = "".join(f'<itemref idref="{cid}"/>' for cid in bodies)
    files: dict[str, str | bytes] = {
        f"OEBPS/text/{cid}.xhtml": chapter_html(cid.upper(), body) for cid, body in bodies.items()
    }
    spine_attrs = ""
    if with_ncx:
        manifest += '<item id="ncx" href="toc.ncx" media-type="application/x-dtbncx+xml"/>'
        spine_attrs = ' toc="ncx"'
        points = nav_point(
            "Chapter One",
            "text/ch1.xhtml",
            nav_point("Section 1.1", "text/ch1.xhtml#s1"),
        ) + nav_point("Chapter Two", "text/ch2.xhtml")
        files["OEBPS/toc.ncx"] = NCX_TEMPLATE.format(points=points)
    return build_epub(files=files, manifest=manifest, spine=spine, spine_attrs=spine_attrs)


class RecordingProvider:
    """Fake provider that records prompts and returns a fixed stub."""

    def __init__(self, response: str = "S" * 120, model: str = "fake-model", fail_on: str | None = None):
        self.name = "fake"
        self.model = model
        self.response = response
        self.fail_on = fail_on
        self.prompts: list[str] = []
        self._lock = threading.Lock()

    def invoke(self, prompt: str) -> str:
        with self._lock:
            self.prompts.append(prompt)
        if self.fail_on and self.fail_on in prompt:
            raise RuntimeError("provider failure")
        return self.response


@pytest.fixture
def epub_bytes() -> bytes:
    return standard_epub()


@pytest.fixture
def epub_file(tmp_path: Path, epub_bytes: bytes) -> Path:
    path = tmp_path / "book.epub"
    path.write_bytes(epub_bytes)
    return path


@pytest.fixture
def database(tmp_path: Path):
    db = Database(tmp_path)
    yield db
    db.close()


@pytest.fixture
def provider() -> RecordingProvider:
    return RecordingProvider()
