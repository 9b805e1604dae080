"""Registry of imported books."""

import logging
import time
import uuid
from datetime import datetime
from pathlib import Path

from epub_digest.core.epub_parser import parse
from epub_digest.models.summary import BookRecord
from epub_digest.storage.database import Database
from epub_digest.storage.summary_store import SummaryStore

log = logging.getLogger(__name__)


class BookRepository:
    """Maps book ids to EPUB files on disk."""

    def __init__(self, database: Database):
        self.db = database

    def _to_record(self, row) -> BookRecord:
        return BookRecord(
            id=row["id"],
            file_path=row["file_path"],
            title=row["title"],
            author=row["author"],
            added_at=datetime.fromtimestamp(row["added_at"]),
        )

    def get(self, book_id: str) -> BookRecord | None:
        row = self.db.conn.execute(
            "SELECT id, file_path, title, author, added_at FROM books WHERE id = ?",
            (book_id,),
        ).fetchone()
        return self._to_record(row) if row else None

    def find_by_path(self, file_path: Path) -> BookRecord | None:
        row = self.db.conn.execute(
            "SELECT id, file_path, title, author, added_at FROM books WHERE file_path = ?",
            (str(file_path.resolve()),),
        ).fetchone()
        return self._to_record(row) if row else None

    def list_books(self) -> list[BookRecord]:
        rows = self.db.conn.execute(
            "SELECT id, file_path, title, author, added_at FROM books ORDER BY added_at"
        ).fetchall()
        return [self._to_record(row) for row in rows]

    def add(self, file_path: Path) -> BookRecord:
        """Parse and register an EPUB. Re-adding a known path returns the existing record."""
        existing = self.find_by_path(file_path)
        if existing is not None:
            return existing

        parsed = parse(file_path)
        record = BookRecord(
            id=str(uuid.uuid4()),
            file_path=str(file_path.resolve()),
            title=parsed.metadata.title,
            author=parsed.metadata.author,
        )
        self.db.conn.execute(
            "INSERT INTO books (id, file_path, title, author, added_at) VALUES (?, ?, ?, ?, ?)",
            (record.id, record.file_path, record.title, record.author, time.time()),
        )
        self.db.conn.commit()
        log.info("Registered %r as %s", record.title, record.id)
        return record

    def remove(self, book_id: str) -> bool:
        """Unregister a book and drop its stored summaries."""
        removed = SummaryStore(self.db).delete_for_book(book_id)
        cursor = self.db.conn.execute("DELETE FROM books WHERE id = ?", (book_id,))
        self.db.conn.commit()
        if cursor.rowcount:
            log.info("Removed book %s and %d summary(ies)", book_id, removed)
        return cursor.rowcount > 0
