"""
Web search cache ORM model.

Dependencies: sqlalchemy, tutor_rag.boundary.db.base
System role: Persistence for raw web search provider responses
"""

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from tutor_rag.boundary.db.base import Base, UUIDMixin


class WebSearchCacheModel(Base, UUIDMixin):
    """
    Cached provider response keyed by the literal (unprefixed) query.

    Attributes:
        query: Query string exactly as the caller passed it
        results: Raw provider result objects
        cached_at: When the response was fetched (UTC)
    """

    __tablename__ = "web_search_cache"

    query: Mapped[str] = mapped_column(String(1000), nullable=False, index=True)
    results: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    cached_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        index=True,
    )
