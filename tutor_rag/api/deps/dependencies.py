"""
Dependency injection container.

Builds every service once at startup and exposes them to routers through
FastAPI dependency functions.

Dependencies: tutor_rag.configs, tutor_rag.application, tutor_rag.boundary, tutor_rag.core
System role: DI container for service injection
"""

import logging

import httpx
from fastapi import Depends, Request
from langchain_core.embeddings import Embeddings
from sqlalchemy.ext.asyncio import AsyncEngine

from tutor_rag.application.chunker import DocumentChunker
from tutor_rag.application.embedder import EmbeddingClient
from tutor_rag.application.ingestion_service import IngestionService
from tutor_rag.application.material_service import MaterialRecommendationService
from tutor_rag.boundary.db.connection import get_async_engine, get_async_session_factory
from tutor_rag.boundary.llm.completion_client import CompletionClient, ModelFactory
from tutor_rag.boundary.llm.embeddings_provider import build_embeddings
from tutor_rag.boundary.vdb.vector_index_store import VectorIndexStore
from tutor_rag.boundary.web.web_search_client import WebSearchClient
from tutor_rag.configs import Settings, get_settings
from tutor_rag.core.cache.response_cache import VersionedResponseCache
from tutor_rag.core.cache.sweeper import CacheSweeper
from tutor_rag.core.rag.orchestrator import RAGOrchestrator
from tutor_rag.core.retrieval.hybrid_retriever import HybridRetriever
from tutor_rag.models.chunk import ChunkingOptions

logger = logging.getLogger(__name__)


class ServiceContainer:
    """Holds the service graph for one application instance."""

    def __init__(
        self,
        settings: Settings,
        engine: AsyncEngine | None = None,
        embeddings: Embeddings | None = None,
        model_factory: ModelFactory | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """
        Wire services from settings.

        Args:
            settings: Application settings
            engine: Async engine (built from database settings if omitted)
            embeddings: Embeddings provider (Gemini if omitted)
            model_factory: Chat model factory (Gemini if omitted)
            http_client: Shared client for the web search provider
        """
        self.settings = settings
        self.engine = engine or get_async_engine(settings.database)
        self.session_factory = get_async_session_factory(self.engine)
        self.http_client = http_client or httpx.AsyncClient(
            timeout=settings.web_search.timeout_seconds,
        )

        self.embedder = EmbeddingClient(
            embeddings or build_embeddings(settings.embedding),
            settings.embedding,
        )
        self.vector_store = VectorIndexStore(self.session_factory, self.embedder, settings.retrieval)
        self.web_client = WebSearchClient(settings.web_search, self.session_factory, self.http_client)
        self.retriever = HybridRetriever(self.vector_store, self.web_client, settings.retrieval)
        self.completion = CompletionClient(model_factory, settings.completion)

        self.cache = VersionedResponseCache(settings.cache)
        self.sweeper = CacheSweeper(self.cache, settings.cache.sweep_interval_seconds)

        self.chunker = DocumentChunker(ChunkingOptions(
            max_chunk_size=settings.chunking.max_chunk_size,
            overlap_size=settings.chunking.overlap_size,
        ))
        self.ingestion = IngestionService(self.chunker, self.vector_store, self.embedder, settings.embedding)
        self.orchestrator = RAGOrchestrator(
            self.vector_store,
            self.retriever,
            self.completion,
            self.cache,
            history_window=settings.completion.history_window,
        )
        self.materials = MaterialRecommendationService(self.completion, self.cache)

    async def aclose(self) -> None:
        """Stop background work and release connections."""
        await self.sweeper.stop()
        await self.http_client.aclose()
        await self.engine.dispose()
        logger.info(f"{__name__}:aclose - Service container closed")


def get_settings_dependency() -> Settings:
    """Get settings singleton."""
    return get_settings()


def get_container(request: Request) -> ServiceContainer:
    """Service container attached to the app during lifespan startup."""
    return request.app.state.container


def get_orchestrator(container: ServiceContainer = Depends(get_container)) -> RAGOrchestrator:
    return container.orchestrator


def get_ingestion_service(container: ServiceContainer = Depends(get_container)) -> IngestionService:
    return container.ingestion


def get_vector_store(container: ServiceContainer = Depends(get_container)) -> VectorIndexStore:
    return container.vector_store


def get_response_cache(container: ServiceContainer = Depends(get_container)) -> VersionedResponseCache:
    return container.cache


def get_material_service(
    container: ServiceContainer = Depends(get_container),
) -> MaterialRecommendationService:
    return container.materials
