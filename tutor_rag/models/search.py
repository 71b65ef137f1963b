"""
Search result schemas.

Vector search options/results, the tagged hybrid result union, web results
and the retrieval quality evaluation.

Dependencies: pydantic
System role: Type definitions for retrieval
"""

from datetime import datetime, timezone
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SearchOptions(BaseModel):
    """Query parameters for vector search."""

    subject: str | None = Field(default=None, description="Filter by exam subject")
    category: str | None = Field(default=None, description="Filter by chunk category")
    limit: int = Field(default=10, description="Maximum number of results", ge=1, le=100)
    similarity_threshold: float = Field(
        default=0.7,
        description="Minimum similarity score (0.0-1.0)",
        ge=0.0,
        le=1.0,
    )
    include_metadata: bool = Field(default=False, description="Attach stored chunk metadata")


class SearchResult(BaseModel):
    """Single result from vector search."""

    chunk_id: str = Field(description="Chunk identifier")
    title: str = Field(description="Chunk title")
    document_name: str | None = Field(default=None, description="Source document name")
    chunk_index: int | None = Field(default=None, description="Position within the source document")
    content: str = Field(description="Chunk text content")
    subject: str | None = Field(default=None, description="Exam subject")
    category: str | None = Field(default=None, description="Chunk category")
    similarity_score: float = Field(description="Similarity score (0.0-1.0)", ge=0.0, le=1.0)
    importance_score: int = Field(default=1, description="Editorial importance (higher first on ties)")
    metadata: dict[str, Any] | None = Field(default=None, description="Stored metadata when requested")


class EmbeddingStatus(BaseModel):
    """Reconciliation view of chunks versus stored embeddings."""

    total: int = Field(description="Total chunk count")
    embedded: int = Field(description="Chunks with an embedding")
    missing_ids: list[str] = Field(default_factory=list, description="Chunk ids without an embedding")


class WebResult(BaseModel):
    """Single result returned by the web search provider."""

    title: str = ""
    url: str
    content: str = ""
    snippet: str | None = None
    score: float | None = None


class VectorHit(BaseModel):
    """Hybrid result backed by the local vector index."""

    source: Literal["vector"] = "vector"
    content: str
    chunk_id: str
    file_name: str | None = None
    chunk_index: int | None = None
    similarity: float = Field(ge=0.0, le=1.0)
    timestamp: datetime = Field(default_factory=_utcnow)


class WebHit(BaseModel):
    """Hybrid result backed by web search."""

    source: Literal["web"] = "web"
    content: str
    url: str
    title: str = ""
    snippet: str | None = None
    timestamp: datetime = Field(default_factory=_utcnow)


HybridSearchResult = Annotated[Union[VectorHit, WebHit], Field(discriminator="source")]


class HybridSearchOptions(BaseModel):
    """Options for a hybrid (vector + web) retrieval."""

    subject_id: str | None = Field(default=None, description="Restrict vector search to a subject")
    include_web_search: bool = Field(default=True, description="Allow the web fallback")
    vector_threshold: float = Field(default=0.7, ge=0.0, le=1.0)
    max_vector_results: int = Field(default=10, ge=1, le=100)
    max_web_results: int = Field(default=5, ge=0, le=20)


class QualityEvaluation(BaseModel):
    """Retrieval quality verdict for a fused result set."""

    has_relevant_results: bool
    confidence_score: float = Field(ge=0.0, le=1.0)
    summary: str
