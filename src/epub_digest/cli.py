"""Main CLI application."""

import logging
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from epub_digest.cache.manager import CacheManager
from epub_digest.commands.parse import (
    execute_chapter,
    execute_cover,
    execute_info,
    execute_validate,
)
from epub_digest.commands.summarize import (
    execute_books,
    execute_summaries,
    execute_summarize,
)
from epub_digest.config import ENV_PREFIX, AISettings
from epub_digest.errors import AIConfigError
from epub_digest.models.summary import SummarizeOptions
from epub_digest.services.summary_service import create_summary_service
from epub_digest.storage.books import BookRepository
from epub_digest.storage.database import Database
from epub_digest.storage.summary_store import SummaryStore

app = typer.Typer(
    name="epub-digest",
    help="Inspect EPUB files and generate cached AI chapter summaries.",
    add_completion=False,
    no_args_is_help=True,
)

console = Console()
err_console = Console(stderr=True)

# Cache subcommand group
cache_app = typer.Typer(help="AI cache management commands")
app.add_typer(cache_app, name="cache")

BookPath = Annotated[
    Path,
    typer.Argument(
        help="Path to the EPUB file",
        exists=True,
        file_okay=True,
        dir_okay=False,
        resolve_path=True,
    ),
]


def setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def get_database(ctx: typer.Context) -> Database:
    return Database(ctx.obj["project_dir"])


def fail(message: str) -> None:
    console.print(f"[red]Error: {message}[/]")
    raise typer.Exit(1)


@app.callback()
def main(
    ctx: typer.Context,
    project_dir: Annotated[
        Path,
        typer.Option(
            "--dir",
            "-d",
            help="Project directory holding the library database (default: current directory)",
        ),
    ] = Path("."),
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show debug logging"),
    ] = False,
) -> None:
    """Inspect EPUB files and generate cached AI chapter summaries."""
    setup_logging(verbose)
    ctx.obj = {"project_dir": project_dir.resolve()}


@app.command()
def info(book_path: BookPath) -> None:
    """Display book metadata, table of contents and reading order."""
    try:
        execute_info(book_path, console)
    except Exception as e:
        fail(f"reading file: {e}")


@app.command("validate")
def validate_command(book_path: BookPath) -> None:
    """Check that a file is a structurally valid EPUB."""
    if not execute_validate(book_path, console):
        raise typer.Exit(1)


@app.command()
def cover(
    book_path: BookPath,
    output: Annotated[
        Optional[Path],
        typer.Option("--output", "-o", help="Output image path (default: next to the book)"),
    ] = None,
) -> None:
    """Extract the cover image."""
    try:
        execute_cover(book_path, output, console)
    except Exception as e:
        fail(str(e))


@app.command()
def chapter(
    book_path: BookPath,
    section: Annotated[int, typer.Argument(help="Section number (1-based)", min=1)],
    output_format: Annotated[
        str,
        typer.Option("--format", "-f", help="Output format: text or markdown"),
    ] = "text",
) -> None:
    """Print the text of one section in reading order."""
    if output_format not in ("text", "markdown"):
        fail(f"Invalid format: {output_format}. Use text or markdown.")

    try:
        execute_chapter(book_path, section, output_format, console)  # type: ignore
    except Exception as e:
        fail(str(e))


@app.command()
def add(ctx: typer.Context, book_path: BookPath) -> None:
    """Register an EPUB in the library and print its book id."""
    with get_database(ctx) as db:
        try:
            record = BookRepository(db).add(book_path)
        except Exception as e:
            fail(str(e))
    console.print(f"[green]Registered[/] [bold]{record.title}[/] [dim]({record.author})[/]")
    console.print(record.id)


@app.command()
def books(ctx: typer.Context) -> None:
    """List registered books."""
    with get_database(ctx) as db:
        execute_books(BookRepository(db), console)


@app.command()
def remove(
    ctx: typer.Context,
    book_id: Annotated[str, typer.Argument(help="Book id")],
) -> None:
    """Unregister a book and delete its stored summaries."""
    with get_database(ctx) as db:
        removed = BookRepository(db).remove(book_id)

    if not removed:
        fail(f"Book not found: {book_id}")
    console.print(f"[green]Removed book {book_id}[/]")


@app.command()
def summarize(
    ctx: typer.Context,
    book_id: Annotated[str, typer.Argument(help="Book id (see 'epub-digest books')")],
    sections: Annotated[
        Optional[str],
        typer.Option(
            "--sections",
            "-s",
            help="Sections to summarize by number: '1,3,5-7' or 'all' (default: all)",
        ),
    ] = None,
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Ignore stored summaries and the AI cache"),
    ] = False,
    chunk_size: Annotated[
        int,
        typer.Option("--chunk-size", help="Characters per chunk for long chapters", min=100),
    ] = 2000,
    chunk_overlap: Annotated[
        int,
        typer.Option("--chunk-overlap", help="Overlap between chunks in characters", min=0),
    ] = 200,
    threshold: Annotated[
        int,
        typer.Option("--threshold", help="Chapters longer than this use map-reduce", min=1),
    ] = 3000,
    quiet: Annotated[
        bool,
        typer.Option("--quiet", "-q", help="Suppress progress output"),
    ] = False,
) -> None:
    """Generate AI summaries for chapters of a registered book."""
    options = SummarizeOptions(
        force_refresh=force,
        chunk_size=chunk_size,
        chunk_overlap=chunk_overlap,
        chunk_threshold=threshold,
    )

    with get_database(ctx) as db:
        try:
            service = create_summary_service(AISettings.from_env(), db)
        except AIConfigError as e:
            console.print(f"[red]AI is not configured: {e}[/]")
            console.print(
                f"[dim]Set {ENV_PREFIX}ENABLED=true, {ENV_PREFIX}PROVIDER, "
                f"{ENV_PREFIX}API_KEY and optionally {ENV_PREFIX}MODEL / "
                f"{ENV_PREFIX}BASE_URL (a .env file works too).[/]"
            )
            raise typer.Exit(1)

        try:
            results = execute_summarize(service, book_id, sections, options, quiet, console)
        except Exception as e:
            fail(str(e))

    if sections is not None and not results:
        raise typer.Exit(1)


@app.command()
def summaries(
    ctx: typer.Context,
    book_id: Annotated[str, typer.Argument(help="Book id")],
    section: Annotated[
        Optional[int],
        typer.Option("--section", "-n", help="Show the full summary of one section", min=1),
    ] = None,
) -> None:
    """Show stored summaries of a book."""
    with get_database(ctx) as db:
        execute_summaries(SummaryStore(db), book_id, section, console)


@app.command("delete-summary")
def delete_summary(
    ctx: typer.Context,
    book_id: Annotated[str, typer.Argument(help="Book id")],
    section: Annotated[int, typer.Argument(help="Section number (1-based)", min=1)],
) -> None:
    """Delete the stored summary of one section."""
    with get_database(ctx) as db:
        deleted = SummaryStore(db).delete(book_id, section - 1)

    if deleted:
        console.print(f"[green]Deleted summary of section {section}[/]")
    else:
        console.print("[dim]No summary to delete[/]")


@cache_app.command("stats")
def cache_stats(ctx: typer.Context) -> None:
    """Show AI cache statistics."""
    with get_database(ctx) as db:
        stats = CacheManager(db).get_stats()
    console.print(f"[bold]{stats.total}[/] cached response(s), {stats.size:,} characters")


@cache_app.command("cleanup")
def cache_cleanup(
    ctx: typer.Context,
    days: Annotated[
        int,
        typer.Option("--days", help="Keep entries newer than this many days", min=0),
    ] = 30,
) -> None:
    """Delete cached AI responses older than the retention window."""
    with get_database(ctx) as db:
        count = CacheManager(db).cleanup(days)

    if count > 0:
        console.print(f"[green]Removed {count} cached response(s)[/]")
    else:
        console.print("[dim]Nothing to clean up[/]")


if __name__ == "__main__":
    app()
