"""Tests for the command line interface."""

import pytest
from typer.testing import CliRunner

from conftest import RecordingProvider, standard_epub
from epub_digest import cli
from epub_digest.config import ENV_PREFIX
from epub_digest.services.summary_service import SummaryService

runner = CliRunner()


@pytest.fixture
def project(tmp_path, monkeypatch):
    for name in ("ENABLED", "PROVIDER", "API_KEY", "MODEL", "BASE_URL", "TEMPERATURE", "MAX_TOKENS"):
        monkeypatch.delenv(ENV_PREFIX + name, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


def invoke(project, *args):
    return runner.invoke(cli.app, ["--dir", str(project), *args])


def register(project, epub_file) -> str:
    result = invoke(project, "add", str(epub_file))
    assert result.exit_code == 0, result.output
    return result.output.strip().splitlines()[-1]


def test_info(project, epub_file):
    result = invoke(project, "info", str(epub_file))

    assert result.exit_code == 0, result.output
    assert "Test Book" in result.output
    assert "Chapter One" in result.output
    assert "Section 1.1" in result.output


def test_validate(project, epub_file, tmp_path):
    assert invoke(project, "validate", str(epub_file)).exit_code == 0

    bad = tmp_path / "bad.epub"
    bad.write_bytes(b"not a zip")
    result = invoke(project, "validate", str(bad))
    assert result.exit_code == 1
    assert "Invalid EPUB" in result.output

    corrupted = tmp_path / "corrupted.epub"
    corrupted.write_bytes(standard_epub().replace(b"<rootfiles>", b"<rootfileX>", 1))
    result = invoke(project, "validate", str(corrupted))
    assert result.exit_code == 1
    assert "Invalid EPUB" in result.output


def test_chapter(project, epub_file):
    result = invoke(project, "chapter", str(epub_file), "2")

    assert result.exit_code == 0, result.output
    assert "Chapter two text." in result.output


def test_chapter_out_of_range(project, epub_file):
    result = invoke(project, "chapter", str(epub_file), "9")

    assert result.exit_code == 1
    assert "out of range" in result.output


def test_add_and_books(project, epub_file):
    book_id = register(project, epub_file)
    assert register(project, epub_file) == book_id

    result = invoke(project, "books")
    assert result.exit_code == 0
    assert "Test Book" in result.output
    assert (project / ".epub_digest" / "library.db").exists()


def test_summarize_requires_ai_config(project, epub_file):
    book_id = register(project, epub_file)
    result = invoke(project, "summarize", book_id)

    assert result.exit_code == 1
    assert "AI is not configured" in result.output


def test_summarize_reports_malformed_settings(project, epub_file, monkeypatch):
    book_id = register(project, epub_file)
    monkeypatch.setenv(ENV_PREFIX + "ENABLED", "true")
    monkeypatch.setenv(ENV_PREFIX + "API_KEY", "k")
    monkeypatch.setenv(ENV_PREFIX + "TEMPERATURE", "warm")

    result = invoke(project, "summarize", book_id)

    assert result.exit_code == 1
    assert "AI is not configured" in result.output
    assert result.exception is None or isinstance(result.exception, SystemExit)


def test_summarize_and_show(project, epub_file, monkeypatch):
    provider = RecordingProvider(response="A short summary.")
    monkeypatch.setattr(
        cli, "create_summary_service", lambda settings, db: SummaryService(db, provider)
    )
    book_id = register(project, epub_file)

    result = invoke(project, "summarize", book_id, "--sections", "1-2")
    assert result.exit_code == 0, result.output
    assert "Summarized 2 of 2" in result.output
    assert "Estimated input:" in result.output
    assert len(provider.prompts) == 2

    result = invoke(project, "summaries", book_id, "--section", "1")
    assert "A short summary." in result.output

    result = invoke(project, "summarize", book_id, "-s", "1", "-q")
    assert result.exit_code == 0
    assert len(provider.prompts) == 2

    result = invoke(project, "cache", "stats")
    assert "2" in result.output

    result = invoke(project, "delete-summary", book_id, "1")
    assert "Deleted summary of section 1" in result.output


def test_summarize_unknown_book(project, monkeypatch):
    monkeypatch.setattr(
        cli,
        "create_summary_service",
        lambda settings, db: SummaryService(db, RecordingProvider()),
    )
    result = invoke(project, "summarize", "missing")

    assert result.exit_code == 1
    assert "Book not found" in result.output


def test_remove(project, epub_file):
    book_id = register(project, epub_file)

    assert invoke(project, "remove", book_id).exit_code == 0
    assert "No books registered" in invoke(project, "books").output
    assert invoke(project, "remove", book_id).exit_code == 1


def test_cache_cleanup_empty(project):
    result = invoke(project, "cache", "cleanup", "--days", "1")

    assert result.exit_code == 0
    assert "Nothing to clean up" in result.output
