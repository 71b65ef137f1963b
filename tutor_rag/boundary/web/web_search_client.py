"""
Web search client (Tavily) with a 24-hour response cache.

Web search is a best-effort enhancement: a missing API key, provider error or
timeout yields an empty list, never an exception. Cached responses are keyed
by the literal caller query, before the domain prefix is applied.

Dependencies: httpx, tenacity, tutor_rag.boundary.db
System role: External web evidence for hybrid retrieval
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

import httpx
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from tutor_rag.boundary.db.CRUD.web_search_cache_crud import web_search_cache_crud
from tutor_rag.configs.retrieval import WebSearchSettings
from tutor_rag.core.exceptions import WebSearchError
from tutor_rag.models.search import WebResult
from tutor_rag.observability.log_utils import preview_text

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 3


class WebSearchClient:
    """
    Tavily search wrapper with a database-backed response cache.

    Pass `session_factory=None` to run without caching.
    """

    def __init__(
        self,
        settings: WebSearchSettings | None = None,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """
        Initialize web search client.

        Args:
            settings: Provider endpoint, key, allow-list and cache TTL
            session_factory: Session factory for the web_search_cache table
            http_client: Shared httpx client (one is created per call if omitted)
        """
        self._settings = settings or WebSearchSettings()
        self._session_factory = session_factory
        self._http_client = http_client
        self._cache = web_search_cache_crud

    @property
    def enabled(self) -> bool:
        return bool(self._settings.api_key)

    async def search(self, query: str, max_results: int = 5) -> list[WebResult]:
        """
        Search the web, serving fresh cached responses first.

        Args:
            query: Caller query (cache key)
            max_results: Maximum results returned

        Returns:
            list[WebResult]: Provider order, possibly empty
        """
        if max_results <= 0:
            return []

        cached = await self._get_cached(query)
        if cached is not None:
            logger.info(f"{__name__}:search - Cache hit for '{preview_text(query)}'")
            return self._parse(cached)[:max_results]

        if not self.enabled:
            logger.warning(f"{__name__}:search - No web search API key configured, skipping")
            return []

        try:
            raw = await self._call_provider(f"{self._settings.query_prefix}{query}", max_results)
        except (httpx.HTTPError, WebSearchError) as e:
            logger.error(
                f"{__name__}:search - Web search failed: {type(e).__name__}: {e}",
                extra={"query": preview_text(query)},
            )
            return []

        await self._store(query, raw)
        results = self._parse(raw)
        logger.info(f"{__name__}:search - Retrieved {len(results)} web results")
        return results[:max_results]

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        stop=stop_after_attempt(MAX_ATTEMPTS),
        wait=wait_exponential_jitter(initial=0.5, max=5, jitter=1),
        before_sleep=lambda retry_state: logger.warning(
            f"{__name__}:_call_provider - Retry {retry_state.attempt_number}/{MAX_ATTEMPTS} "
            f"after transport error"
        ),
        reraise=True,
    )
    async def _call_provider(self, query: str, max_results: int) -> list[dict[str, Any]]:
        """POST to the provider; transport errors are retried, HTTP errors are not."""
        payload = {
            "api_key": self._settings.api_key,
            "query": query,
            "search_depth": self._settings.search_depth,
            "include_answer": False,
            "include_images": False,
            "include_raw_content": False,
            "max_results": max_results,
            "include_domains": self._settings.allowed_domains,
        }

        if self._http_client is not None:
            response = await self._http_client.post(
                self._settings.endpoint,
                json=payload,
                timeout=self._settings.timeout_seconds,
            )
        else:
            async with httpx.AsyncClient(timeout=self._settings.timeout_seconds) as client:
                response = await client.post(self._settings.endpoint, json=payload)

        response.raise_for_status()
        try:
            data = response.json()
        except ValueError as e:
            raise WebSearchError(
                "Provider returned a non-JSON body",
                details={"status_code": response.status_code},
            ) from e
        results = data.get("results") if isinstance(data, dict) else None
        if not isinstance(results, list):
            keys = list(data) if isinstance(data, dict) else []
            raise WebSearchError("Malformed provider response", details={"keys": keys})
        return [r for r in results if isinstance(r, dict)]

    async def _get_cached(self, query: str) -> list[dict[str, Any]] | None:
        if self._session_factory is None:
            return None
        not_before = datetime.now(timezone.utc) - timedelta(hours=self._settings.cache_ttl_hours)
        try:
            async with self._session_factory() as session:
                row = await self._cache.get_fresh(session, query, not_before)
        except SQLAlchemyError as e:
            logger.error(f"{__name__}:_get_cached - Cache lookup failed: {e}")
            return None
        return list(row.results) if row is not None else None

    async def _store(self, query: str, raw: list[dict[str, Any]]) -> None:
        if self._session_factory is None:
            return
        try:
            async with self._session_factory() as session:
                await self._cache.store(session, query, raw)
                await session.commit()
        except SQLAlchemyError as e:
            logger.error(f"{__name__}:_store - Caching web results failed: {e}")

    async def purge_expired(self) -> int:
        """Delete cached responses older than the cache TTL; returns rows removed."""
        if self._session_factory is None:
            return 0
        cutoff = datetime.now(timezone.utc) - timedelta(hours=self._settings.cache_ttl_hours)
        try:
            async with self._session_factory() as session:
                removed = await self._cache.purge_older_than(session, cutoff)
                await session.commit()
        except SQLAlchemyError as e:
            logger.error(f"{__name__}:purge_expired - Purge failed: {e}")
            return 0
        if removed:
            logger.info(f"{__name__}:purge_expired - Removed {removed} stale cache rows")
        return removed

    @staticmethod
    def _parse(raw: list[dict[str, Any]]) -> list[WebResult]:
        results = []
        for item in raw:
            url = item.get("url")
            if not url:
                continue
            results.append(
                WebResult(
                    title=item.get("title") or "",
                    url=url,
                    content=item.get("content") or item.get("snippet") or "",
                    snippet=item.get("snippet"),
                    score=item.get("score"),
                )
            )
        return results
