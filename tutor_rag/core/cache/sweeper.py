"""
Periodic expiry sweep for the response cache.

Runs as an asyncio task owned by the application lifespan, independent of
request traffic.

Dependencies: tutor_rag.core.cache.response_cache
System role: Background cache maintenance
"""

import asyncio
import logging

from tutor_rag.core.cache.response_cache import VersionedResponseCache

logger = logging.getLogger(__name__)


class CacheSweeper:
    """Calls `cleanup_expired()` every `interval_seconds`."""

    def __init__(self, cache: VersionedResponseCache, interval_seconds: float) -> None:
        self._cache = cache
        self._interval = interval_seconds
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(), name="response-cache-sweeper")
        logger.info(f"{__name__}:start - Cache sweeper started (every {self._interval}s)")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info(f"{__name__}:stop - Cache sweeper stopped")

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                self._cache.cleanup_expired()
            except Exception as e:
                logger.error(f"{__name__}:_loop - Sweep failed: {type(e).__name__}: {e}")
