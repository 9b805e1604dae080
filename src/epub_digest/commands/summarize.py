"""Summarization commands."""

import logging

from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.progress import Progress
from rich.table import Table

from epub_digest.commands.parse import parse_chapter_selection
from epub_digest.core.epub_parser import EpubParser
from epub_digest.core.text_splitter import estimate_cost, estimate_tokens, format_tokens
from epub_digest.errors import BookNotFoundError, EpubDigestError
from epub_digest.models.summary import ChapterSummary, SummarizeOptions
from epub_digest.services.summary_service import SummaryService
from epub_digest.storage.books import BookRepository
from epub_digest.storage.summary_store import SummaryStore

log = logging.getLogger(__name__)


def display_summary(summary: ChapterSummary, console: Console) -> None:
    title = summary.chapter_title or f"Chapter {summary.chapter_index + 1}"
    console.print(
        Panel(
            Markdown(summary.summary),
            title=f"{summary.chapter_index + 1}. {title}",
            subtitle=f"[dim]{summary.model} · {summary.created_at:%Y-%m-%d %H:%M}[/]",
            border_style="green",
        )
    )


def estimate_input_tokens(parser: EpubParser, indices: list[int]) -> int:
    """Rough token count of the selected chapters; unreadable ones are skipped."""
    loader = parser.chapter_loader()
    tokens = 0
    for index in indices:
        try:
            tokens += estimate_tokens(loader.load(index).content)
        except EpubDigestError as e:
            log.debug("Skipping section %d in estimate: %s", index + 1, e)
    return tokens


def execute_summarize(
    service: SummaryService,
    book_id: str,
    sections: str | None,
    options: SummarizeOptions,
    quiet: bool,
    console: Console,
) -> list[ChapterSummary]:
    """Execute the summarize command."""
    book = service.books.get(book_id)
    if book is None:
        raise BookNotFoundError(book_id)

    with EpubParser(book.file_path) as parser:
        total = len(parser.parse().spine)
        indices = parse_chapter_selection(sections or "all", total)
        input_tokens = 0 if quiet else estimate_input_tokens(parser, indices)

    if not indices:
        console.print("[yellow]No sections selected. Exiting.[/]")
        return []

    if not quiet:
        cost = estimate_cost(input_tokens, service.model)
        console.print(f"[dim]Book:[/] {book.title}")
        console.print(f"[dim]Model: {service.model}[/]")
        console.print(f"[dim]Sections to process:[/] {len(indices)}")
        console.print(
            f"[dim]Estimated input:[/] {format_tokens(input_tokens)} [dim](~${cost:.4f})[/]"
        )
        console.print()

    failures: list[tuple[int, Exception]] = []

    if quiet:
        results = service.summarize_chapters(book_id, indices, options)
    else:
        with Progress(console=console) as progress:
            task = progress.add_task("Summarizing...", total=len(indices))

            def on_result(index: int, summary: ChapterSummary | None, error: Exception | None):
                if error is not None:
                    failures.append((index, error))
                progress.update(
                    task, advance=1, description=f"Summarized section {index + 1}"
                )

            results = service.summarize_chapters(book_id, indices, options, on_result)

        for summary in results:
            display_summary(summary, console)

    for index, error in failures:
        console.print(f"[red]Section {index + 1} failed:[/] {error}")

    if not quiet:
        console.print(
            f"[green]Summarized {len(results)} of {len(indices)} section(s)[/]"
        )
    return results


def execute_summaries(
    store: SummaryStore,
    book_id: str,
    section: int | None,
    console: Console,
) -> None:
    """Show stored summaries of a book (all, or one 1-based section)."""
    if section is not None:
        summary = store.get(book_id, section - 1)
        if summary is None:
            console.print(f"[dim]No summary for section {section}[/]")
            return
        display_summary(summary, console)
        return

    summaries = store.list_for_book(book_id)
    if not summaries:
        console.print("[dim]No summaries stored for this book[/]")
        return

    table = Table(title="Chapter Summaries", show_header=True, header_style="bold cyan")
    table.add_column("#", style="dim", width=4)
    table.add_column("Title", style="white")
    table.add_column("Model", style="dim")
    table.add_column("Words", justify="right", style="green")
    table.add_column("Created", style="dim")
    for summary in summaries:
        table.add_row(
            str(summary.chapter_index + 1),
            summary.chapter_title or "—",
            summary.model,
            f"{len(summary.summary.split()):,}",
            f"{summary.created_at:%Y-%m-%d %H:%M}",
        )
    console.print(table)


def execute_books(books: BookRepository, console: Console) -> None:
    """List registered books."""
    records = books.list_books()
    if not records:
        console.print("[dim]No books registered[/]")
        return

    table = Table(title="Library", show_header=True, header_style="bold cyan")
    table.add_column("Id", style="dim")
    table.add_column("Title", style="white")
    table.add_column("Author", style="white")
    table.add_column("Path", style="dim")
    for record in records:
        display_path = record.file_path
        if len(display_path) >= 60:
            display_path = "..." + display_path[-57:]
        table.add_row(record.id, record.title, record.author, display_path)
    console.print(table)
