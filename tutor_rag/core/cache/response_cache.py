"""
Versioned TTL cache for generated artifacts (answers, study materials).

Keys carry a coarse version: floor(progress / quantum) plus a per-level
offset, so small progress changes reuse entries and crossing a quantum
boundary does not. Entries expire a fixed TTL after creation. At capacity
the single oldest-by-creation entry is evicted before inserting.

Payloads are deep-copied on store and on retrieval.

Dependencies: tutor_rag.models.cache, tutor_rag.configs.generation
System role: Shared in-process cache for expensive completions
"""

import copy
import hashlib
import json
import logging
import threading
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any

from tutor_rag.configs.generation import CacheSettings
from tutor_rag.models.cache import CacheEntry, CacheEntryInfo, CacheKey, CacheStats
from tutor_rag.models.rag import UserLevel

logger = logging.getLogger(__name__)

LEVEL_OFFSETS = {
    UserLevel.BEGINNER.value: 0,
    UserLevel.INTERMEDIATE.value: 100,
    UserLevel.ADVANCED.value: 200,
}

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def content_signature(*parts: Any) -> str:
    """Stable sha256 digest of JSON-serializable parts."""
    encoded = json.dumps(parts, ensure_ascii=False, sort_keys=True, default=str)
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()


class VersionedResponseCache:
    """
    Thread-safe versioned TTL cache.

    One instance is built at startup and injected where needed.
    """

    def __init__(self, settings: CacheSettings | None = None, clock: Clock | None = None) -> None:
        """
        Initialize cache.

        Args:
            settings: TTL, capacity and progress quantum
            clock: Returns the current aware datetime (overridable in tests)
        """
        self._settings = settings or CacheSettings()
        self._clock = clock or _utcnow
        self._entries: dict[CacheKey, CacheEntry] = {}
        self._lock = threading.RLock()
        self._hits = 0
        self._misses = 0

    @property
    def ttl(self) -> timedelta:
        return timedelta(seconds=self._settings.ttl_seconds)

    def progress_quantum(self, signal: float) -> int:
        return int(signal // self._settings.progress_quantum)

    def compute_version(self, signal: float, level: UserLevel | str) -> int:
        """floor(signal / quantum) + level offset (0 / 100 / 200)."""
        level_value = level.value if isinstance(level, UserLevel) else level
        return self.progress_quantum(signal) + LEVEL_OFFSETS.get(level_value, 0)

    def build_key(
        self,
        scope_id: str,
        signature: str,
        level: UserLevel | str,
        signal: float,
    ) -> CacheKey:
        level_value = level.value if isinstance(level, UserLevel) else level
        return CacheKey(
            scope_id=scope_id,
            content_signature=signature,
            context_level=level_value,
            version=self.compute_version(signal, level_value),
        )

    def get(self, key: CacheKey) -> Any | None:
        """
        Look up a payload.

        Returns:
            A deep copy of the payload, or None on miss or expiry
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None
            if entry.expires_at <= self._clock():
                del self._entries[key]
                self._misses += 1
                logger.debug(f"{__name__}:get - Expired entry evicted: {key.as_string()}")
                return None
            self._hits += 1
            return copy.deepcopy(entry.payload)

    def set(self, key: CacheKey, payload: Any) -> None:
        """Store a deep copy of the payload, evicting the oldest entry at capacity."""
        now = self._clock()
        entry = CacheEntry(
            key=key,
            payload=copy.deepcopy(payload),
            created_at=now,
            expires_at=now + self.ttl,
        )
        with self._lock:
            if key not in self._entries and len(self._entries) >= self._settings.max_entries:
                oldest = min(self._entries.values(), key=lambda e: e.created_at)
                del self._entries[oldest.key]
                logger.info(f"{__name__}:set - Capacity reached, evicted {oldest.key.as_string()}")
            self._entries[key] = entry

    def invalidate_scope(self, scope_id: str) -> int:
        """Drop every entry of a scope; returns the number removed."""
        with self._lock:
            doomed = [k for k in self._entries if k.scope_id == scope_id]
            for key in doomed:
                del self._entries[key]
        if doomed:
            logger.info(f"{__name__}:invalidate_scope - Removed {len(doomed)} entries for {scope_id}")
        return len(doomed)

    def invalidate_on_level_crossing(self, scope_id: str, old_signal: float, new_signal: float) -> bool:
        """
        Invalidate a scope when the signal moves into a different quantum.

        Returns:
            bool: True if the scope was invalidated
        """
        if self.progress_quantum(old_signal) == self.progress_quantum(new_signal):
            return False
        self.invalidate_scope(scope_id)
        return True

    def cleanup_expired(self) -> int:
        """Remove every expired entry; returns the number removed."""
        now = self._clock()
        with self._lock:
            expired = [k for k, e in self._entries.items() if e.expires_at <= now]
            for key in expired:
                del self._entries[key]
        if expired:
            logger.info(f"{__name__}:cleanup_expired - Swept {len(expired)} expired entries")
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0

    def stats(self) -> CacheStats:
        with self._lock:
            entries = [
                CacheEntryInfo(
                    key=e.key.as_string(),
                    created_at=e.created_at,
                    expires_at=e.expires_at,
                )
                for e in self._entries.values()
            ]
            return CacheStats(
                size=len(entries),
                max_entries=self._settings.max_entries,
                hits=self._hits,
                misses=self._misses,
                entries=entries,
            )
