"""
Database boundary layer: ORM models, CRUD operations, and connection management.

Exports:
  - Base, UUIDMixin, TimestampMixin: Model building blocks
  - get_async_engine(), get_async_session_factory(): Connection management
  - KnowledgeChunkModel, VectorEmbeddingModel, WebSearchCacheModel: Stored entities
  - knowledge_chunk_crud, vector_embedding_crud, web_search_cache_crud: CRUD singletons

Dependencies: sqlalchemy, pgvector, tutor_rag.configs
System role: Database adapter for the retrieval corpus and web search cache
"""

from tutor_rag.boundary.db.base import Base, TimestampMixin, UUIDMixin
from tutor_rag.boundary.db.connection import (
    get_async_engine,
    get_async_session_factory,
)
from tutor_rag.boundary.db.models import (
    KnowledgeChunkModel,
    VectorEmbeddingModel,
    WebSearchCacheModel,
)
from tutor_rag.boundary.db.CRUD import (
    BaseCRUD,
    KnowledgeChunkCRUD,
    VectorEmbeddingCRUD,
    WebSearchCacheCRUD,
    knowledge_chunk_crud,
    vector_embedding_crud,
    web_search_cache_crud,
)

__all__ = [
    "Base",
    "TimestampMixin",
    "UUIDMixin",
    "get_async_engine",
    "get_async_session_factory",
    "KnowledgeChunkModel",
    "VectorEmbeddingModel",
    "WebSearchCacheModel",
    "BaseCRUD",
    "KnowledgeChunkCRUD",
    "VectorEmbeddingCRUD",
    "WebSearchCacheCRUD",
    "knowledge_chunk_crud",
    "vector_embedding_crud",
    "web_search_cache_crud",
]
