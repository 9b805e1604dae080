"""Chapter summarization with a persisted-summary layer and a content-hash cache.

A request for (book, chapter) goes through these steps:

1. Return the persisted summary unless ``force_refresh`` is set.
2. Load the chapter text; empty text is an error.
3. Look up the content-hash cache (key = hash of text + model name) unless
   ``force_refresh`` is set. A hit skips the model call.
4. Summarize directly, or map-reduce over chunks for long chapters.
5. Write the cache entry (only for fresh model output), then upsert the
   persisted summary.

The two writes in step 5 share no transaction. If the process stops between
them, the next request finds the cache entry and re-creates the persisted
summary from it.
"""

import logging
from typing import Callable

from epub_digest.cache.manager import CacheManager, generate_cache_key
from epub_digest.config import AISettings
from epub_digest.core.epub_parser import EpubParser
from epub_digest.core.providers import LLMProvider, create_provider
from epub_digest.core.summarizer import summarize_chunks, summarize_short
from epub_digest.core.text_splitter import split_text
from epub_digest.errors import BookNotFoundError, EmptyChapterError
from epub_digest.models.epub import ChapterContent
from epub_digest.models.summary import ChapterSummary, SummarizeOptions
from epub_digest.storage.books import BookRepository
from epub_digest.storage.database import Database
from epub_digest.storage.summary_store import SummaryStore

log = logging.getLogger(__name__)

CACHE_KEY_PREFIX = "summary"


class SummaryService:
    """Summarize chapters of registered books."""

    def __init__(
        self,
        database: Database,
        provider: LLMProvider,
        model: str | None = None,
    ):
        self.provider = provider
        self.model = model or provider.model
        self.books = BookRepository(database)
        self.summaries = SummaryStore(database)
        self.cache = CacheManager(database)

    def get_chapter_content(self, book_id: str, chapter_index: int) -> ChapterContent:
        """Load cleaned chapter text from the book's EPUB file."""
        book = self.books.get(book_id)
        if book is None:
            raise BookNotFoundError(book_id)

        with EpubParser(book.file_path) as parser:
            return parser.get_chapter_content(chapter_index)

    def _generate(self, content: str, options: SummarizeOptions) -> str:
        if len(content) > options.chunk_threshold:
            chunks = split_text(
                content,
                chunk_size=options.chunk_size,
                chunk_overlap=options.chunk_overlap,
            )
            log.info("Long chapter: map-reduce over %d chunk(s)", len(chunks))
            return summarize_chunks(self.provider, chunks, options.max_concurrency)

        log.info("Short chapter: summarizing directly")
        return summarize_short(self.provider, content)

    def summarize_chapter(
        self,
        book_id: str,
        chapter_index: int,
        options: SummarizeOptions | None = None,
    ) -> ChapterSummary:
        """Summarize one chapter, reusing persisted or cached results when allowed."""
        options = options or SummarizeOptions()
        log.info("Summarizing chapter: book_id=%s, chapter_index=%d", book_id, chapter_index)

        if not options.force_refresh:
            existing = self.summaries.get(book_id, chapter_index)
            if existing is not None:
                log.info("Returning persisted summary")
                return existing

        chapter = self.get_chapter_content(book_id, chapter_index)
        if not chapter.content.strip():
            raise EmptyChapterError(chapter_index)
        log.info("Chapter length: %d characters", len(chapter.content))

        cache_key = generate_cache_key(chapter.content, self.model, CACHE_KEY_PREFIX)
        if not options.force_refresh:
            cached = self.cache.get(cache_key)
            if cached is not None:
                log.info("Returning summary from AI cache")
                return self.summaries.save(
                    book_id, chapter_index, chapter.title, cached.response, cached.model
                )

        summary_text = self._generate(chapter.content, options)

        self.cache.set(cache_key, summary_text, self.model)
        summary = self.summaries.save(
            book_id, chapter_index, chapter.title, summary_text, self.model
        )
        log.info("Chapter summary complete")
        return summary

    def summarize_chapters(
        self,
        book_id: str,
        chapter_indices: list[int],
        options: SummarizeOptions | None = None,
        on_result: Callable[[int, ChapterSummary | None, Exception | None], None] | None = None,
    ) -> list[ChapterSummary]:
        """Summarize chapters one after another; failures are logged and skipped."""
        results: list[ChapterSummary] = []

        for index in chapter_indices:
            try:
                summary = self.summarize_chapter(book_id, index, options)
            except Exception as e:
                log.error("Failed to summarize chapter %d: %s", index, e)
                if on_result:
                    on_result(index, None, e)
                continue
            results.append(summary)
            if on_result:
                on_result(index, summary, None)

        return results

    def get_summary(self, book_id: str, chapter_index: int) -> ChapterSummary | None:
        return self.summaries.get(book_id, chapter_index)

    def get_all_summaries(self, book_id: str) -> list[ChapterSummary]:
        return self.summaries.list_for_book(book_id)

    def delete_summary(self, book_id: str, chapter_index: int) -> bool:
        return self.summaries.delete(book_id, chapter_index)


def create_summary_service(settings: AISettings, database: Database) -> SummaryService:
    """Build a service for the given settings. Raises ``AIConfigError`` if unusable."""
    provider = create_provider(settings)
    return SummaryService(database, provider, settings.effective_model)


class SummaryServiceCache:
    """Caller-owned holder that rebuilds the service when settings change."""

    def __init__(
        self,
        database: Database,
        factory: Callable[[AISettings, Database], SummaryService] = create_summary_service,
    ):
        self.database = database
        self.factory = factory
        self._service: SummaryService | None = None
        self._config_hash: str | None = None

    def acquire(self, settings: AISettings) -> SummaryService:
        """Return the cached service, rebuilding it if the settings hash changed."""
        current_hash = settings.config_hash()

        if self._service is not None and current_hash != self._config_hash:
            log.info("AI settings changed, recreating summary service")
            self.reset()

        if self._service is None:
            self._service = self.factory(settings, self.database)
            self._config_hash = current_hash

        return self._service

    def reset(self) -> None:
        self._service = None
        self._config_hash = None
