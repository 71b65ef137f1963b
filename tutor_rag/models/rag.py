"""
RAG request/response models.

Dependencies: pydantic
System role: Orchestrator input/output contracts
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field

from tutor_rag.models.search import EmbeddingStatus, HybridSearchResult, SearchResult


class ResponseType(str, Enum):
    """How strongly an answer is grounded in retrieved sources."""

    DIRECT = "direct"
    CONTEXTUAL = "contextual"
    GENERAL = "general"


class UserLevel(str, Enum):
    """Learner tier; part of the response cache identity."""

    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class ScopeContext(BaseModel):
    """Who is asking and in which study scope (e.g. a study room)."""

    scope_id: str = Field(description="Study scope identifier (cache invalidation unit)")
    subject: str = Field(default="정보처리기사", description="Subject shown in prompts")
    category: str | None = Field(default=None, description="Optional chunk category filter")
    subject_filter: str | None = Field(
        default=None,
        description="Restrict retrieval to chunks of one exam subject",
    )
    user_level: UserLevel = Field(default=UserLevel.BEGINNER)
    progress: float = Field(default=0.0, ge=0.0, le=100.0, description="Progress percentage")


class RAGOptions(BaseModel):
    """Per-question retrieval options."""

    max_sources: int = Field(default=5, ge=1, le=20)
    similarity_threshold: float = Field(default=0.7, ge=0.0, le=1.0)
    include_general_knowledge: bool = True


class RAGContext(BaseModel):
    """Retrieval bundle for a single question."""

    query: str
    relevant_chunks: list[SearchResult] = Field(default_factory=list)
    total_similarity: float = 0.0
    search_options: RAGOptions

    @property
    def average_similarity(self) -> float:
        if not self.relevant_chunks:
            return 0.0
        return self.total_similarity / len(self.relevant_chunks)


class RAGResponse(BaseModel):
    """Answer plus the evidence and classification behind it."""

    answer: str
    sources: list[SearchResult] = Field(default_factory=list)
    confidence: float = Field(ge=0.0, le=1.0)
    response_type: ResponseType
    context: RAGContext


class ChatMessage(BaseModel):
    """One turn of prior conversation supplied by the caller."""

    role: Literal["user", "assistant"]
    content: str


class SourceReference(BaseModel):
    """Condensed citation shown alongside a hybrid answer."""

    type: Literal["vector", "web"]
    title: str
    url: str | None = None
    similarity: float | None = None


class HybridRAGMetadata(BaseModel):
    search_results_count: int = 0
    has_web_results: bool = False
    response_time_ms: int = 0


class HybridRAGResponse(BaseModel):
    """Answer produced from fused vector + web evidence."""

    answer: str
    search_results: list[HybridSearchResult] = Field(default_factory=list)
    confidence: float = Field(ge=0.0, le=1.0)
    sources: list[SourceReference] = Field(default_factory=list)
    metadata: HybridRAGMetadata = Field(default_factory=HybridRAGMetadata)


class RelatedSource(BaseModel):
    title: str
    similarity: float


class RelatedConcepts(BaseModel):
    """Topics, follow-up questions and extra reading around a topic."""

    related_topics: list[str] = Field(default_factory=list)
    suggested_questions: list[str] = Field(default_factory=list)
    additional_sources: list[RelatedSource] = Field(default_factory=list)


class SystemStatus(BaseModel):
    """Readiness summary for operators."""

    is_ready: bool
    embedding_status: EmbeddingStatus | None = None
    last_update: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    recommendations: list[str] = Field(default_factory=list)


class QuestionCategory(BaseModel):
    """Keyword-based routing of a question to an exam subject."""

    subject_id: str | None = None
    category: Literal["exam", "concept"] = "concept"
    keywords: list[str] = Field(default_factory=list)
    details: dict[str, Any] = Field(default_factory=dict)
