"""
Database models package.

Exports:
  - KnowledgeChunkModel: Chunk text and metadata
  - VectorEmbeddingModel: Embedding vector per chunk
  - WebSearchCacheModel: Cached web search responses

Dependencies: sqlalchemy, tutor_rag.boundary.db.base
System role: Database model definitions for the retrieval corpus
"""

from tutor_rag.boundary.db.models.knowledge_model import KnowledgeChunkModel, VectorEmbeddingModel
from tutor_rag.boundary.db.models.web_search_cache_model import WebSearchCacheModel

__all__ = [
    "KnowledgeChunkModel",
    "VectorEmbeddingModel",
    "WebSearchCacheModel",
]
