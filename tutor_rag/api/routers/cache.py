"""
Response cache API endpoints.

Routes:
- GET /cache/stats - Cache size, hit/miss counters and entries
- DELETE /cache - Drop every entry
- DELETE /cache/scopes/{scope_id} - Invalidate one scope
- POST /cache/scopes/{scope_id}/progress - Invalidate a scope when progress crosses a quantum

Dependencies: tutor_rag.core.cache
System role: Cache inspection and invalidation HTTP API
"""

from fastapi import APIRouter, Depends, status

from tutor_rag.api.deps import get_response_cache
from tutor_rag.core.cache.response_cache import VersionedResponseCache
from tutor_rag.models.api import (
    InvalidateScopeResponse,
    ProgressUpdateRequest,
    ProgressUpdateResponse,
)
from tutor_rag.models.cache import CacheStats

router = APIRouter(prefix="/cache", tags=["cache"])


@router.get("/stats", response_model=CacheStats)
async def cache_stats(cache: VersionedResponseCache = Depends(get_response_cache)) -> CacheStats:
    return cache.stats()


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
async def clear_cache(cache: VersionedResponseCache = Depends(get_response_cache)) -> None:
    cache.clear()


@router.delete("/scopes/{scope_id}", response_model=InvalidateScopeResponse)
async def invalidate_scope(
    scope_id: str,
    cache: VersionedResponseCache = Depends(get_response_cache),
) -> InvalidateScopeResponse:
    return InvalidateScopeResponse(scope_id=scope_id, removed=cache.invalidate_scope(scope_id))


@router.post("/scopes/{scope_id}/progress", response_model=ProgressUpdateResponse)
async def update_progress(
    scope_id: str,
    request: ProgressUpdateRequest,
    cache: VersionedResponseCache = Depends(get_response_cache),
) -> ProgressUpdateResponse:
    """Report a progress change; cached artifacts are dropped on a quantum crossing."""
    invalidated = cache.invalidate_on_level_crossing(
        scope_id,
        request.old_progress,
        request.new_progress,
    )
    return ProgressUpdateResponse(scope_id=scope_id, invalidated=invalidated)
