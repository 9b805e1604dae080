"""Content-addressed cache of raw model outputs."""

import hashlib
import time
import uuid
from datetime import datetime

from epub_digest.cache.models import CacheEntry, CacheStats
from epub_digest.storage.database import Database

SECONDS_PER_DAY = 86400


def generate_cache_key(content: str, model: str, prefix: str = "ai") -> str:
    """Deterministic key for a (content, model) pair."""
    digest = hashlib.sha256((content + model).encode("utf-8")).hexdigest()
    return f"{prefix}:{model}:{digest[:16]}"


class CacheManager:
    """Manages the ``ai_cache`` table."""

    def __init__(self, database: Database):
        self.db = database

    def _to_entry(self, row) -> CacheEntry:
        return CacheEntry(
            id=row["id"],
            cache_key=row["cache_key"],
            response=row["response"],
            model=row["model"],
            created_at=datetime.fromtimestamp(row["created_at"]),
        )

    def get(self, cache_key: str) -> CacheEntry | None:
        """Point lookup. Returns None on miss."""
        row = self.db.conn.execute(
            "SELECT id, cache_key, response, model, created_at FROM ai_cache WHERE cache_key = ?",
            (cache_key,),
        ).fetchone()
        return self._to_entry(row) if row else None

    def set(self, cache_key: str, response: str, model: str) -> None:
        """Insert or replace the entry for a key."""
        self.db.conn.execute(
            "INSERT OR REPLACE INTO ai_cache (id, cache_key, response, model, created_at) "
            "VALUES (?, ?, ?, ?, ?)",
            (str(uuid.uuid4()), cache_key, response, model, time.time()),
        )
        self.db.conn.commit()

    def delete(self, cache_key: str) -> None:
        self.db.conn.execute("DELETE FROM ai_cache WHERE cache_key = ?", (cache_key,))
        self.db.conn.commit()

    def cleanup(self, days: int = 30) -> int:
        """Delete entries older than the retention window. Returns number removed."""
        cutoff = time.time() - days * SECONDS_PER_DAY
        cursor = self.db.conn.execute("DELETE FROM ai_cache WHERE created_at < ?", (cutoff,))
        self.db.conn.commit()
        return cursor.rowcount

    def get_stats(self) -> CacheStats:
        row = self.db.conn.execute(
            "SELECT COUNT(*) AS total, SUM(LENGTH(response)) AS size FROM ai_cache"
        ).fetchone()
        return CacheStats(total=row["total"] or 0, size=row["size"] or 0)
