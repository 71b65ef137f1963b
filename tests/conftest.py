"""
Shared test fixtures and configuration for entire test suite.

Provides: In-memory SQLite corpus, deterministic embeddings, wired stores and
sample chunks/results
Dependencies: pytest, sqlalchemy, aiosqlite, langchain_core
System role: Test infrastructure and fixture management
"""

from unittest.mock import AsyncMock

import pytest
from langchain_core.embeddings import Embeddings
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from tutor_rag.application.embedder import EmbeddingClient
from tutor_rag.boundary.db.connection import get_async_session_factory
from tutor_rag.boundary.db.create_tables import create_all_tables, drop_all_tables
from tutor_rag.boundary.vdb.vector_index_store import VectorIndexStore
from tutor_rag.configs.embedding import EmbeddingSettings
from tutor_rag.configs.generation import CacheSettings
from tutor_rag.configs.retrieval import RetrievalSettings
from tutor_rag.core.cache.response_cache import VersionedResponseCache
from tutor_rag.models.chunk import Chunk, ChunkMetadata, ChunkType
from tutor_rag.models.rag import ScopeContext
from tutor_rag.models.search import SearchResult

TOPIC_AXES = ("정규화", "트랜잭션", "uml", "네트워크")


class KeywordEmbeddings(Embeddings):
    """
    Deterministic 4-dimensional embeddings.

    Each axis lights up when its keyword occurs in the text. Text without any
    keyword maps to a uniform vector (cosine 0.5 against any single axis).
    """

    def __init__(self, fail_batches: bool = False, fail_on: str | None = None) -> None:
        self.fail_batches = fail_batches
        self.fail_on = fail_on
        self.batch_calls = 0
        self.query_calls = 0

    def _vector(self, text: str) -> list[float]:
        if self.fail_on and self.fail_on in text:
            raise RuntimeError(f"provider rejected text containing {self.fail_on!r}")
        lowered = text.lower()
        vector = [1.0 if axis in lowered else 0.0 for axis in TOPIC_AXES]
        return vector if any(vector) else [1.0, 1.0, 1.0, 1.0]

    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        self.batch_calls += 1
        if self.fail_batches:
            raise RuntimeError("batch endpoint unavailable")
        return [self._vector(t) for t in texts]

    def embed_query(self, text: str) -> list[float]:
        self.query_calls += 1
        return self._vector(text)


@pytest.fixture
async def engine():
    """
    Create in-memory SQLite async engine with all tables.

    Yields:
        AsyncEngine: Engine sharing one connection across sessions
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await create_all_tables(engine)

    yield engine

    # Cleanup
    await drop_all_tables(engine)
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return get_async_session_factory(engine)


@pytest.fixture
def embedding_settings() -> EmbeddingSettings:
    """Four-dimensional embeddings without ingestion throttling."""
    return EmbeddingSettings(
        dimension=4,
        batch_size=32,
        max_concurrency=2,
        request_interval_seconds=0.0,
        timeout_seconds=5.0,
    )


@pytest.fixture
def fake_embeddings() -> KeywordEmbeddings:
    return KeywordEmbeddings()


@pytest.fixture
def embedder(fake_embeddings: KeywordEmbeddings, embedding_settings: EmbeddingSettings) -> EmbeddingClient:
    return EmbeddingClient(fake_embeddings, embedding_settings)


@pytest.fixture
def retrieval_settings() -> RetrievalSettings:
    """Settings that force the client-side scan with a generous candidate pool."""
    return RetrievalSettings(native_vector_search=False, fallback_pool_multiplier=10)


@pytest.fixture
def vector_store(session_factory, embedder: EmbeddingClient, retrieval_settings: RetrievalSettings) -> VectorIndexStore:
    return VectorIndexStore(session_factory, embedder, retrieval_settings)


@pytest.fixture
def response_cache() -> VersionedResponseCache:
    return VersionedResponseCache(CacheSettings(ttl_seconds=1800, max_entries=50, progress_quantum=25))


@pytest.fixture
def scope() -> ScopeContext:
    """Beginner learner in a study room at 20% progress."""
    return ScopeContext(scope_id="room-1", subject="정보처리기사", progress=20.0)


@pytest.fixture
def mock_vector_store() -> AsyncMock:
    """Provide mock VectorIndexStore with async methods."""
    return AsyncMock(spec=VectorIndexStore)


def _make_chunk(
    chunk_id: str,
    content: str,
    index: int = 0,
    total: int = 1,
    subject: str | None = None,
    chunk_type: ChunkType = ChunkType.TEXTBOOK,
) -> Chunk:
    """Build a chunk with consistent metadata."""
    return Chunk(
        id=chunk_id,
        content=content,
        metadata=ChunkMetadata(
            chunk_index=index,
            total_chunks=total,
            start_offset=0,
            end_offset=len(content),
            chunk_type=chunk_type,
            subject=subject,
        ),
    )


def _make_result(chunk_id: str, similarity: float, title: str | None = None, content: str = "내용") -> SearchResult:
    """Build a vector search result."""
    return SearchResult(
        chunk_id=chunk_id,
        title=title or f"{chunk_id} title",
        document_name=f"{chunk_id}.txt",
        chunk_index=0,
        content=content,
        similarity_score=similarity,
    )


@pytest.fixture
def make_chunk():
    return _make_chunk


@pytest.fixture
def make_result():
    return _make_result


@pytest.fixture
def make_embeddings():
    """Factory for KeywordEmbeddings with failure switches."""
    return KeywordEmbeddings
