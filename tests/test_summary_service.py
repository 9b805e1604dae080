"""Tests for the chapter summarization workflow."""

import pytest

from conftest import RecordingProvider, build_epub, chapter_html, standard_epub
from epub_digest.config import AISettings
from epub_digest.core.summarizer import SUMMARY_DELIMITER, summarize_chunks
from epub_digest.errors import (
    AIConfigError,
    BookNotFoundError,
    ChapterIndexError,
    EmptyChapterError,
)
from epub_digest.models.summary import SummarizeOptions
from epub_digest.services.summary_service import (
    SummaryService,
    SummaryServiceCache,
    create_summary_service,
)
from epub_digest.storage.books import BookRepository

LONG_BODY = "<p>" + "word " * 1000 + "</p>"


def is_map_prompt(prompt: str) -> bool:
    return "chapter excerpt" in prompt


def is_reduce_prompt(prompt: str) -> bool:
    return "summaries of different parts" in prompt


def add_book(database, tmp_path, name="book.epub", data=None):
    path = tmp_path / name
    path.write_bytes(data or standard_epub())
    return BookRepository(database).add(path)


@pytest.fixture
def book(database, epub_file):
    return BookRepository(database).add(epub_file)


@pytest.fixture
def service(database, provider):
    return SummaryService(database, provider)


def test_short_chapter_single_direct_call(service, provider, book):
    summary = service.summarize_chapter(book.id, 0)

    assert summary.summary == provider.response
    assert summary.chapter_title == "Chapter One"
    assert summary.model == "fake-model"
    assert len(provider.prompts) == 1
    assert "First paragraph." in provider.prompts[0]


def test_long_chapter_map_reduce(database, tmp_path, provider):
    book = add_book(database, tmp_path, data=standard_epub(chapter_bodies={"ch1": LONG_BODY}))
    service = SummaryService(database, provider)

    service.summarize_chapter(book.id, 0, SummarizeOptions(chunk_size=2000))

    map_calls = [p for p in provider.prompts if is_map_prompt(p)]
    reduce_calls = [p for p in provider.prompts if is_reduce_prompt(p)]
    assert len(map_calls) >= 3
    assert len(reduce_calls) == 1
    assert len(provider.prompts) == len(map_calls) + 1
    assert is_reduce_prompt(provider.prompts[-1])
    assert provider.prompts[-1].count(provider.response) == len(map_calls)


def test_threshold_controls_map_reduce(database, tmp_path, provider):
    book = add_book(database, tmp_path, data=standard_epub(chapter_bodies={"ch1": LONG_BODY}))
    service = SummaryService(database, provider)

    service.summarize_chapter(book.id, 0, SummarizeOptions(chunk_threshold=10_000))

    assert len(provider.prompts) == 1
    assert not is_map_prompt(provider.prompts[0])


def test_repeat_returns_persisted_summary(service, provider, book):
    first = service.summarize_chapter(book.id, 0)
    second = service.summarize_chapter(book.id, 0)

    assert second.id == first.id
    assert second.summary == first.summary
    assert len(provider.prompts) == 1


def test_force_refresh_with_new_model(database, service, book):
    first = service.summarize_chapter(book.id, 0)

    other = RecordingProvider(response="fresh", model="other-model")
    refreshed = SummaryService(database, other).summarize_chapter(
        book.id, 0, SummarizeOptions(force_refresh=True)
    )

    assert len(other.prompts) == 1
    assert refreshed.summary == "fresh"
    assert refreshed.model == "other-model"
    assert refreshed.id != first.id
    assert service.get_summary(book.id, 0).summary == "fresh"
    assert len(service.get_all_summaries(book.id)) == 1
    assert service.cache.get_stats().total == 2


def test_force_refresh_bypasses_cache(service, provider, book):
    service.summarize_chapter(book.id, 0)
    service.summarize_chapter(book.id, 0, SummarizeOptions(force_refresh=True))

    assert len(provider.prompts) == 2
    assert service.cache.get_stats().total == 1


def test_identical_text_in_another_book_hits_cache(database, tmp_path, service, provider, book):
    twin = add_book(database, tmp_path, name="twin.epub")
    service.summarize_chapter(book.id, 0)

    summary = service.summarize_chapter(twin.id, 0)

    assert len(provider.prompts) == 1
    assert summary.book_id == twin.id
    assert summary.summary == provider.response


def test_lost_summary_rebuilt_from_cache(service, provider, book):
    service.summarize_chapter(book.id, 0)
    assert service.delete_summary(book.id, 0) is True

    rebuilt = service.summarize_chapter(book.id, 0)

    assert rebuilt.summary == provider.response
    assert len(provider.prompts) == 1
    assert service.get_summary(book.id, 0) is not None


def test_empty_chapter(database, tmp_path, provider):
    data = build_epub(
        files={
            "OEBPS/full.xhtml": chapter_html("Full", "<p>text</p>"),
            "OEBPS/blank.xhtml": "<html><body><p> </p><script>x()</script></body></html>",
        },
        manifest=(
            '<item id="full" href="full.xhtml" media-type="application/xhtml+xml"/>'
            '<item id="blank" href="blank.xhtml" media-type="application/xhtml+xml"/>'
        ),
        spine='<itemref idref="full"/><itemref idref="blank"/>',
    )
    book = add_book(database, tmp_path, data=data)
    service = SummaryService(database, provider)

    with pytest.raises(EmptyChapterError):
        service.summarize_chapter(book.id, 1)
    assert provider.prompts == []


def test_chapter_out_of_range(service, book):
    with pytest.raises(ChapterIndexError):
        service.summarize_chapter(book.id, 7)


def test_unknown_book(service):
    with pytest.raises(BookNotFoundError):
        service.summarize_chapter("missing", 0)


def test_batch_skips_failures(database, book):
    provider = RecordingProvider(fail_on="Chapter two text.")
    service = SummaryService(database, provider)
    outcomes = []

    results = service.summarize_chapters(
        book.id,
        [0, 1, 9],
        on_result=lambda index, summary, error: outcomes.append((index, error is None)),
    )

    assert [s.chapter_index for s in results] == [0]
    assert outcomes == [(0, True), (1, False), (9, False)]
    assert service.get_summary(book.id, 1) is None


def test_summarize_chunks_requires_chunks(provider):
    with pytest.raises(ValueError):
        summarize_chunks(provider, [])


def test_summarize_chunks_keeps_order():
    class EchoProvider:
        name = "echo"
        model = "echo"

        def invoke(self, prompt):
            if "summaries of different parts" in prompt:
                return prompt
            return prompt.split("\n\n")[1]

    merged = summarize_chunks(EchoProvider(), ["one", "two", "three"], max_concurrency=3)
    assert "one" + SUMMARY_DELIMITER + "two" + SUMMARY_DELIMITER + "three" in merged


def test_create_service_requires_enabled_settings(database):
    with pytest.raises(AIConfigError):
        create_summary_service(AISettings(), database)


def test_service_cache_rebuilds_on_settings_change(database):
    built = []

    def factory(settings, db):
        built.append(settings.model)
        return SummaryService(db, RecordingProvider(model=settings.model))

    holder = SummaryServiceCache(database, factory)
    settings = AISettings(enabled=True, api_key="k", model="a")

    first = holder.acquire(settings)
    assert holder.acquire(settings.model_copy()) is first

    second_settings = settings.model_copy(update={"model": "b"})
    second = holder.acquire(second_settings)
    assert second is not first
    assert second.model == "b"
    assert holder.acquire(second_settings.model_copy(update={"api_key": "other"})) is not second
    assert built == ["a", "b", "b"]

    holder.reset()
    holder.acquire(settings)
    assert built == ["a", "b", "b", "a"]


def test_service_cache_with_gemini_cli(database):
    holder = SummaryServiceCache(database)
    service = holder.acquire(AISettings(enabled=True, provider="gemini-cli"))

    assert service.provider.name == "gemini-cli"
    assert service.model == "gemini-2.5-pro"
