"""API routers."""

from .cache import router as cache_router
from .health import router as health_router
from .knowledge import router as knowledge_router
from .rag import router as rag_router

__all__ = [
    "cache_router",
    "health_router",
    "knowledge_router",
    "rag_router",
]
