"""Cache data models."""

from datetime import datetime

from pydantic import BaseModel, Field


class CacheEntry(BaseModel):
    """Raw model output stored under a content-derived key."""

    id: str
    cache_key: str
    response: str
    model: str
    created_at: datetime = Field(default_factory=datetime.now)


class CacheStats(BaseModel):
    """Aggregate numbers for the AI cache."""

    total: int = 0
    size: int = 0  # Total response length in characters
