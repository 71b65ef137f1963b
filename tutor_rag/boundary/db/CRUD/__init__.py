"""
CRUD operations for database models.

Exports base CRUD class and model-specific CRUD implementations
with pre-instantiated singletons for direct use.

Usage:
    from tutor_rag.boundary.db.CRUD import knowledge_chunk_crud

    missing = await knowledge_chunk_crud.get_ids_without_embedding(db)
"""

from tutor_rag.boundary.db.CRUD.base_crud import BaseCRUD
from tutor_rag.boundary.db.CRUD.knowledge_crud import (
    KnowledgeChunkCRUD,
    VectorEmbeddingCRUD,
    knowledge_chunk_crud,
    vector_embedding_crud,
)
from tutor_rag.boundary.db.CRUD.web_search_cache_crud import (
    WebSearchCacheCRUD,
    web_search_cache_crud,
)

__all__ = [
    "BaseCRUD",
    "KnowledgeChunkCRUD",
    "VectorEmbeddingCRUD",
    "WebSearchCacheCRUD",
    "knowledge_chunk_crud",
    "vector_embedding_crud",
    "web_search_cache_crud",
]
