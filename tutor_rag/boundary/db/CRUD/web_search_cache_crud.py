"""
Web search cache CRUD operations.

Dependencies: sqlalchemy, tutor_rag.boundary.db.models
System role: Web search response cache persistence
"""

from datetime import datetime
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from tutor_rag.boundary.db.CRUD.base_crud import BaseCRUD
from tutor_rag.boundary.db.models.web_search_cache_model import WebSearchCacheModel


class WebSearchCacheCRUD(BaseCRUD[WebSearchCacheModel]):
    """CRUD operations for WebSearchCacheModel."""

    def __init__(self) -> None:
        """Initialize WebSearchCacheCRUD with WebSearchCacheModel."""
        super().__init__(WebSearchCacheModel)

    async def get_fresh(
        self,
        session: AsyncSession,
        query: str,
        not_before: datetime,
    ) -> WebSearchCacheModel | None:
        """
        Newest cached response for the literal query cached after not_before.

        Args:
            session: Async database session
            query: Literal query string
            not_before: Oldest acceptable cache timestamp
        """
        stmt = (
            select(WebSearchCacheModel)
            .where(WebSearchCacheModel.query == query)
            .where(WebSearchCacheModel.cached_at >= not_before)
            .order_by(WebSearchCacheModel.cached_at.desc())
            .limit(1)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def store(
        self,
        session: AsyncSession,
        query: str,
        results: list[dict[str, Any]],
    ) -> WebSearchCacheModel:
        return await self.create(session, query=query, results=results)

    async def purge_older_than(self, session: AsyncSession, cutoff: datetime) -> int:
        result = await session.execute(
            delete(WebSearchCacheModel).where(WebSearchCacheModel.cached_at < cutoff)
        )
        return result.rowcount


web_search_cache_crud = WebSearchCacheCRUD()
