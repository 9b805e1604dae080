"""Data models for persisted summaries and library records."""

from datetime import datetime

from pydantic import BaseModel, Field


class ChapterSummary(BaseModel):
    """AI summary of one chapter, unique per (book_id, chapter_index)."""

    id: str
    book_id: str
    chapter_index: int
    chapter_title: str | None = None
    summary: str
    model: str
    created_at: datetime = Field(default_factory=datetime.now)


class BookRecord(BaseModel):
    """Book registered in the local library."""

    id: str
    file_path: str
    title: str
    author: str
    added_at: datetime = Field(default_factory=datetime.now)


class SummarizeOptions(BaseModel):
    """Options for a summarization request."""

    force_refresh: bool = False
    chunk_size: int = Field(default=2000, gt=0)
    chunk_overlap: int = Field(default=200, ge=0)
    chunk_threshold: int = Field(default=3000, gt=0)
    max_concurrency: int = Field(default=4, ge=1)
