"""Book inspection commands: info, validate, cover, chapter."""

import re
from pathlib import Path
from typing import Literal

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from rich.tree import Tree

from epub_digest.core.content_processor import ContentProcessor
from epub_digest.core.epub_parser import EpubParser, extract_cover_data, validate
from epub_digest.models.epub import EpubParseResult, TOCItem


def parse_chapter_selection(selection: str, total_chapters: int) -> list[int]:
    """Parse user chapter selection string to list of indices.

    Supports: "1,3,5-7", "all", "1-10", etc.
    Returns 0-based indices.
    """
    selection = selection.strip().lower()

    if selection == "all":
        return list(range(total_chapters))

    indices = set()
    for part in selection.split(","):
        part = part.strip()
        if not part:
            continue

        if "-" in part:
            match = re.match(r"(\d+)\s*-\s*(\d+)", part)
            if match:
                start, end = int(match.group(1)), int(match.group(2))
                indices.update(range(start - 1, end))  # Convert to 0-based
        else:
            try:
                indices.add(int(part) - 1)  # Convert to 0-based
            except ValueError:
                continue

    # Filter valid indices
    return sorted(i for i in indices if 0 <= i < total_chapters)


def _add_toc_nodes(tree: Tree, items: list[TOCItem]) -> None:
    for item in items:
        node = tree.add(f"{item.label} [dim]{item.href}[/]")
        _add_toc_nodes(node, item.children)


def display_book(parsed: EpubParseResult, console: Console) -> None:
    """Print metadata panel, TOC tree and spine table."""
    meta = parsed.metadata
    info_lines = [
        f"[bold]{meta.title}[/]",
        "",
        f"[dim]Author:[/] {meta.author}",
        f"[dim]Publisher:[/] {meta.publisher or 'Unknown'}",
        f"[dim]Language:[/] {meta.language or 'Unknown'}",
        f"[dim]Published:[/] {meta.publish_date.date() if meta.publish_date else 'Unknown'}",
        f"[dim]ISBN:[/] {meta.isbn or 'Unknown'}",
        f"[dim]Cover:[/] {parsed.cover_path or 'None'}",
        f"[dim]Spine items:[/] {len(parsed.spine)}",
    ]

    console.print()
    console.print(Panel("\n".join(info_lines), title="Book Information", border_style="green"))

    console.print()
    if parsed.toc:
        tree = Tree("[bold cyan]Table of Contents[/]")
        _add_toc_nodes(tree, parsed.toc)
        console.print(tree)
    else:
        console.print("[yellow]No table of contents found[/]")

    console.print()
    table = Table(title="Reading Order", show_header=True, header_style="bold cyan")
    table.add_column("#", style="dim", width=4)
    table.add_column("Id", style="white")
    table.add_column("Href", style="green")
    table.add_column("Media Type", style="dim")
    for i, item in enumerate(parsed.spine):
        table.add_row(str(i + 1), item.id, item.href or "—", item.media_type or "—")
    console.print(table)
    console.print()


def execute_info(book_path: Path, console: Console) -> None:
    """Execute the info command."""
    with EpubParser(book_path) as parser:
        parsed = parser.parse()
    display_book(parsed, console)


def execute_validate(book_path: Path, console: Console) -> bool:
    """Execute the validate command."""
    ok = validate(book_path)
    if ok:
        console.print(f"[green]Valid EPUB:[/] {book_path}")
    else:
        console.print(f"[red]Invalid EPUB:[/] {book_path}")
    return ok


def execute_cover(book_path: Path, output: Path | None, console: Console) -> Path | None:
    """Execute the cover command. Returns the written file, if any."""
    data = extract_cover_data(book_path)
    if data is None:
        console.print("[yellow]No cover found[/]")
        return None

    if output is None:
        with EpubParser(book_path) as parser:
            cover_path = parser.parse().cover_path or "cover.jpg"
        output = book_path.with_name(f"{book_path.stem}_cover{Path(cover_path).suffix}")

    output.write_bytes(data)
    console.print(f"[green]Cover written to[/] {output} [dim]({len(data):,} bytes)[/]")
    return output


def execute_chapter(
    book_path: Path,
    section: int,
    output_format: Literal["text", "markdown"],
    console: Console,
) -> None:
    """Execute the chapter command. ``section`` is 1-based."""
    processor = ContentProcessor()
    with EpubParser(book_path) as parser:
        chapter = parser.get_chapter_content(section - 1)
        if output_format == "markdown":
            content = processor.process(parser.get_chapter_html(section - 1), "markdown")
        else:
            content = chapter.content

    stats = processor.get_stats(content)
    title = chapter.title or chapter.href
    console.print(
        Panel(
            Text(content) if content else "[dim](empty)[/]",
            title=f"{section}. {title}",
            subtitle=f"[dim]{stats['word_count']:,} words[/]",
            border_style="blue",
        )
    )
