"""
HTTP request/response schemas.

Dependencies: pydantic
System role: API request validation and response serialization
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from tutor_rag.models.chunk import ChunkType
from tutor_rag.models.materials import GoalType
from tutor_rag.models.rag import ChatMessage, RAGOptions, ScopeContext
from tutor_rag.models.search import SearchOptions


class AskRequest(BaseModel):
    """Request body for a single-corpus answer."""

    question: str = Field(..., min_length=1, max_length=4000, description="Learner question")
    scope: ScopeContext
    options: RAGOptions = Field(default_factory=RAGOptions)


class HybridAskRequest(BaseModel):
    """Request body for a hybrid (vector + web) answer."""

    question: str = Field(..., min_length=1, max_length=4000)
    subject_id: str | None = Field(default=None, description="Exam subject id, e.g. database_construction")
    history: list[ChatMessage] = Field(default_factory=list, description="Prior conversation")


class ExplainRequest(BaseModel):
    topic: str = Field(..., min_length=1, max_length=500)
    scope: ScopeContext
    detail_level: Literal["basic", "intermediate", "advanced"] = "intermediate"


class RelatedRequest(BaseModel):
    topic: str = Field(..., min_length=1, max_length=500)
    scope: ScopeContext


class ClassifyRequest(BaseModel):
    question: str = Field(..., min_length=1, max_length=4000)


class MaterialsRequest(BaseModel):
    scope: ScopeContext
    goal_type: GoalType = GoalType.CERTIFICATION
    current_step: int = Field(default=0, ge=0)


class IngestRequest(BaseModel):
    """Raw document text to chunk, store and embed."""

    document_name: str = Field(..., min_length=1, max_length=255)
    content: str = Field(..., min_length=1)
    chunk_type: ChunkType = ChunkType.AUTO
    max_chunk_size: int | None = Field(default=None, gt=0)
    overlap_size: int | None = Field(default=None, ge=0)
    category: str | None = None
    importance_score: int = Field(default=1, ge=1, le=10)


class SearchRequest(BaseModel):
    query: str = Field(..., min_length=1, max_length=4000)
    options: SearchOptions = Field(default_factory=SearchOptions)


class DeleteDocumentResponse(BaseModel):
    document_name: str
    deleted_chunks: int


class InvalidateScopeResponse(BaseModel):
    scope_id: str
    removed: int


class ProgressUpdateRequest(BaseModel):
    old_progress: float = Field(..., ge=0.0, le=100.0)
    new_progress: float = Field(..., ge=0.0, le=100.0)


class ProgressUpdateResponse(BaseModel):
    scope_id: str
    invalidated: bool


class KnowledgeChunkResponse(BaseModel):
    """Stored chunk as returned by the corpus API."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    document_name: str
    title: str
    content: str
    subject: str | None = None
    category: str | None = None
    importance_score: int
    chunk_index: int
    chunk_metadata: dict[str, Any] = Field(default_factory=dict)
