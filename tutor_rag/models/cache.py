"""
Response cache models.

Dependencies: pydantic
System role: Cache key/entry/statistics contracts
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class CacheKey(BaseModel):
    """Composite, hashable cache identity."""

    model_config = ConfigDict(frozen=True)

    scope_id: str = Field(description="Invalidation unit, e.g. a study room")
    content_signature: str = Field(description="Digest of what was asked/generated")
    context_level: str = Field(description="Learner tier")
    version: int = Field(description="Progress quantum plus level offset")

    def as_string(self) -> str:
        return f"{self.scope_id}:{self.content_signature}:{self.context_level}:v{self.version}"


class CacheEntry(BaseModel):
    key: CacheKey
    payload: Any
    created_at: datetime
    expires_at: datetime


class CacheEntryInfo(BaseModel):
    key: str
    created_at: datetime
    expires_at: datetime


class CacheStats(BaseModel):
    """Read-only operational view of the cache."""

    size: int
    max_entries: int
    hits: int = 0
    misses: int = 0
    entries: list[CacheEntryInfo] = Field(default_factory=list)
