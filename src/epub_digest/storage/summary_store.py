"""Persisted chapter summaries, one row per (book, chapter)."""

import time
import uuid
from datetime import datetime

from epub_digest.models.summary import ChapterSummary
from epub_digest.storage.database import Database

_COLUMNS = "id, book_id, chapter_index, chapter_title, summary, model, created_at"


class SummaryStore:
    """Read and write the ``chapter_summaries`` table."""

    def __init__(self, database: Database):
        self.db = database

    def _to_summary(self, row) -> ChapterSummary:
        return ChapterSummary(
            id=row["id"],
            book_id=row["book_id"],
            chapter_index=row["chapter_index"],
            chapter_title=row["chapter_title"],
            summary=row["summary"],
            model=row["model"],
            created_at=datetime.fromtimestamp(row["created_at"]),
        )

    def get(self, book_id: str, chapter_index: int) -> ChapterSummary | None:
        row = self.db.conn.execute(
            f"SELECT {_COLUMNS} FROM chapter_summaries WHERE book_id = ? AND chapter_index = ?",
            (book_id, chapter_index),
        ).fetchone()
        return self._to_summary(row) if row else None

    def list_for_book(self, book_id: str) -> list[ChapterSummary]:
        rows = self.db.conn.execute(
            f"SELECT {_COLUMNS} FROM chapter_summaries WHERE book_id = ? ORDER BY chapter_index",
            (book_id,),
        ).fetchall()
        return [self._to_summary(row) for row in rows]

    def save(
        self,
        book_id: str,
        chapter_index: int,
        chapter_title: str | None,
        summary: str,
        model: str,
    ) -> ChapterSummary:
        """Upsert the summary for (book_id, chapter_index), replacing any prior row."""
        record = ChapterSummary(
            id=str(uuid.uuid4()),
            book_id=book_id,
            chapter_index=chapter_index,
            chapter_title=chapter_title,
            summary=summary,
            model=model,
            created_at=datetime.now(),
        )
        self.db.conn.execute(
            f"INSERT OR REPLACE INTO chapter_summaries ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?)",
            (
                record.id,
                book_id,
                chapter_index,
                chapter_title,
                summary,
                model,
                record.created_at.timestamp(),
            ),
        )
        self.db.conn.commit()
        return record

    def delete(self, book_id: str, chapter_index: int) -> bool:
        """Remove one summary. Returns True if a row was deleted."""
        cursor = self.db.conn.execute(
            "DELETE FROM chapter_summaries WHERE book_id = ? AND chapter_index = ?",
            (book_id, chapter_index),
        )
        self.db.conn.commit()
        return cursor.rowcount > 0

    def delete_for_book(self, book_id: str) -> int:
        cursor = self.db.conn.execute(
            "DELETE FROM chapter_summaries WHERE book_id = ?", (book_id,)
        )
        self.db.conn.commit()
        return cursor.rowcount
