"""Convert chapter HTML into plain text or Markdown."""

import re
import warnings
from typing import Literal

from bs4 import BeautifulSoup, XMLParsedAsHTMLWarning
from markdownify import markdownify as md

# Chapter files are XHTML; parsing them with the HTML parser is intended
warnings.filterwarnings("ignore", category=XMLParsedAsHTMLWarning)

_SCRIPT_RE = re.compile(r"<script\b[^>]*>.*?</script\s*>", re.IGNORECASE | re.DOTALL)
_STYLE_RE = re.compile(r"<style\b[^>]*>.*?</style\s*>", re.IGNORECASE | re.DOTALL)
_BR_RE = re.compile(r"<br\s*/?>", re.IGNORECASE)
_P_CLOSE_RE = re.compile(r"</p>", re.IGNORECASE)
_TAG_RE = re.compile(r"<[^>]+>")
_NUMERIC_ENTITY_RE = re.compile(r"&#(\d+);")
_SPACES_RE = re.compile(r"[ \t]+")
_BLANK_LINES_RE = re.compile(r"\n\s*\n\s*\n")

_ENTITIES = [
    ("&nbsp;", " "),
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&amp;", "&"),
    ("&quot;", '"'),
]


def _decode_numeric(match: re.Match) -> str:
    try:
        return chr(int(match.group(1)))
    except (ValueError, OverflowError):
        return match.group(0)


def clean_html(html: str) -> str:
    """Strip markup from chapter HTML, keeping paragraph breaks."""
    text = _SCRIPT_RE.sub("", html)
    text = _STYLE_RE.sub("", text)
    text = _BR_RE.sub("\n", text)
    text = _P_CLOSE_RE.sub("\n\n", text)
    text = _TAG_RE.sub("", text)
    for entity, replacement in _ENTITIES:
        text = text.replace(entity, replacement)
    text = _NUMERIC_ENTITY_RE.sub(_decode_numeric, text)
    text = _SPACES_RE.sub(" ", text)
    text = _BLANK_LINES_RE.sub("\n\n", text)
    return text.strip()


class ContentProcessor:
    """Render chapter HTML for display."""

    def process(
        self,
        html_content: str | bytes,
        output_format: Literal["markdown", "text"] = "text",
    ) -> str:
        """Convert HTML to the requested format."""
        if output_format == "text":
            if isinstance(html_content, bytes):
                html_content = html_content.decode("utf-8", errors="replace")
            return clean_html(html_content)
        return self._to_markdown(html_content)

    def _to_markdown(self, html_content: str | bytes) -> str:
        """Convert HTML to clean Markdown."""
        soup = BeautifulSoup(html_content, "lxml")
        for tag in soup(["script", "style", "nav", "header", "footer", "aside"]):
            tag.decompose()

        body = soup.body or soup
        markdown = md(
            str(body),
            heading_style="ATX",
            bullets="-",
            strip=["a"],  # Keep link text only
        )
        # Remove multiple consecutive blank lines
        lines = [line.rstrip() for line in markdown.split("\n")]
        cleaned = []
        prev_blank = False
        for line in lines:
            is_blank = not line.strip()
            if is_blank and prev_blank:
                continue
            cleaned.append(line)
            prev_blank = is_blank

        return "\n".join(cleaned).strip()

    def get_stats(self, content: str) -> dict[str, int]:
        """Calculate content statistics."""
        words = content.split()
        paragraphs = [p for p in content.split("\n\n") if p.strip()]
        return {
            "word_count": len(words),
            "character_count": len(content),
            "paragraph_count": len(paragraphs),
        }
