"""SQLite database holding the book registry, summaries and AI cache."""

import sqlite3
from pathlib import Path

SCHEMA = """
CREATE TABLE IF NOT EXISTS books (
    id TEXT PRIMARY KEY,
    file_path TEXT NOT NULL UNIQUE,
    title TEXT NOT NULL,
    author TEXT NOT NULL,
    added_at REAL NOT NULL
);

CREATE TABLE IF NOT EXISTS chapter_summaries (
    id TEXT PRIMARY KEY,
    book_id TEXT NOT NULL,
    chapter_index INTEGER NOT NULL,
    chapter_title TEXT,
    summary TEXT NOT NULL,
    model TEXT NOT NULL,
    created_at REAL NOT NULL,
    UNIQUE (book_id, chapter_index)
);

CREATE TABLE IF NOT EXISTS ai_cache (
    id TEXT PRIMARY KEY,
    cache_key TEXT NOT NULL UNIQUE,
    response TEXT NOT NULL,
    model TEXT NOT NULL,
    created_at REAL NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_ai_cache_created_at ON ai_cache (created_at);
"""


class Database:
    """Single-file embedded store under the project directory."""

    DB_DIR = ".epub_digest"
    DB_FILE = "library.db"

    def __init__(self, project_dir: Path):
        self.root = project_dir / self.DB_DIR
        self.path = self.root / self.DB_FILE
        self._conn: sqlite3.Connection | None = None

    @property
    def conn(self) -> sqlite3.Connection:
        """Open the connection and create tables on first use."""
        if self._conn is None:
            self.root.mkdir(parents=True, exist_ok=True)
            # Opened lazily, possibly on another thread than later callers
            conn = sqlite3.connect(str(self.path), check_same_thread=False)
            conn.row_factory = sqlite3.Row
            conn.executescript(SCHEMA)
            conn.commit()
            self._conn = conn
        return self._conn

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> "Database":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
