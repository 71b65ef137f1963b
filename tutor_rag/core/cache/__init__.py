"""Versioned response/material cache."""

from tutor_rag.core.cache.response_cache import VersionedResponseCache, content_signature
from tutor_rag.core.cache.sweeper import CacheSweeper

__all__ = ["VersionedResponseCache", "CacheSweeper", "content_signature"]
