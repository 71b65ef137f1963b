"""
Test suite for VectorIndexStore.

Exercises chunk/embedding persistence and the client-side similarity scan
against an in-memory SQLite database (the native pgvector path requires
PostgreSQL).

System role: Verification of retrieval corpus storage and search
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from tutor_rag.boundary.vdb.vector_index_store import VectorIndexStore
from tutor_rag.configs.retrieval import RetrievalSettings
from tutor_rag.core.exceptions import InvalidEmbeddingError, VectorStoreError
from tutor_rag.models.chunk import ChunkType
from tutor_rag.models.search import SearchOptions


@pytest.fixture
async def seeded_store(vector_store: VectorIndexStore, make_chunk) -> VectorIndexStore:
    """
    Store with four embedded chunks.

    Against the query "정규화" ([1, 0, 0, 0]):
    db_chunk_0 → 1.0, db_chunk_1 → 0.707, net_chunk_0 → 0.0, tips_chunk_0 → 1.0
    (tips has higher importance).
    """
    await vector_store.add_chunks(
        [
            make_chunk("db_chunk_0", "정규화 개념", 0, 2, subject="데이터베이스 구축"),
            make_chunk("db_chunk_1", "정규화와 트랜잭션", 1, 2, subject="데이터베이스 구축"),
        ],
        "db.txt",
    )
    await vector_store.add_chunks(
        [make_chunk("net_chunk_0", "네트워크 계층", subject="정보시스템 구축관리")],
        "net.txt",
    )
    await vector_store.add_chunks(
        [make_chunk("tips_chunk_0", "정규화 암기 요령")],
        "tips.txt",
        category="study_tips",
        importance_score=3,
    )
    await vector_store.upsert_embedding("db_chunk_0", [1.0, 0.0, 0.0, 0.0])
    await vector_store.upsert_embedding("db_chunk_1", [1.0, 1.0, 0.0, 0.0])
    await vector_store.upsert_embedding("net_chunk_0", [0.0, 0.0, 0.0, 1.0])
    await vector_store.upsert_embedding("tips_chunk_0", [2.0, 0.0, 0.0, 0.0])
    return vector_store


class TestAddChunks:
    """Test suite for add_chunks()."""

    @pytest.mark.asyncio
    async def test_should_store_title_and_default_category(self, vector_store: VectorIndexStore, make_chunk) -> None:
        """Test titles carry position and category follows the chunk type."""
        # Arrange
        chunks = [
            make_chunk("exam_question_1", "1. 문제", 0, 2, chunk_type=ChunkType.QUESTION),
            make_chunk("exam_question_2", "2. 문제", 1, 2, chunk_type=ChunkType.QUESTION),
        ]

        # Act
        count = await vector_store.add_chunks(chunks, "exam.txt")

        # Assert
        assert count == 2
        row = await vector_store.get_chunk("exam_question_2")
        assert row.title == "exam.txt (2/2)"
        assert row.category == "exam"
        assert row.chunk_metadata["chunk_type"] == "question"

    @pytest.mark.asyncio
    async def test_empty_input_should_store_nothing(self, vector_store: VectorIndexStore) -> None:
        assert await vector_store.add_chunks([], "empty.txt") == 0

    @pytest.mark.asyncio
    async def test_duplicate_id_should_raise_vector_store_error(self, vector_store: VectorIndexStore, make_chunk) -> None:
        """Test an id collision is reported as a store failure."""
        # Arrange
        await vector_store.add_chunks([make_chunk("dup_chunk_0", "첫 번째")], "dup.txt")

        # Act & Assert
        with pytest.raises(VectorStoreError):
            await vector_store.add_chunks([make_chunk("dup_chunk_0", "두 번째")], "dup.txt")


class TestUpsertEmbedding:
    """Test suite for upsert_embedding()."""

    @pytest.mark.asyncio
    async def test_second_upsert_should_replace_vector(self, vector_store: VectorIndexStore, make_chunk) -> None:
        """Test a chunk never holds more than one embedding."""
        # Arrange
        await vector_store.add_chunks([make_chunk("a_chunk_0", "정규화")], "a.txt")
        await vector_store.upsert_embedding("a_chunk_0", [0.0, 0.0, 0.0, 1.0])

        # Act
        await vector_store.upsert_embedding("a_chunk_0", [1.0, 0.0, 0.0, 0.0])

        # Assert
        status = await vector_store.get_embedding_status()
        assert status.embedded == 1
        results = await vector_store.search_similar("정규화", SearchOptions(similarity_threshold=0.99))
        assert [r.chunk_id for r in results] == ["a_chunk_0"]

    @pytest.mark.asyncio
    async def test_malformed_vector_should_be_rejected(self, vector_store: VectorIndexStore, make_chunk) -> None:
        """Test wrong-dimension vectors never reach the database."""
        # Arrange
        await vector_store.add_chunks([make_chunk("a_chunk_0", "정규화")], "a.txt")

        # Act & Assert
        with pytest.raises(InvalidEmbeddingError):
            await vector_store.upsert_embedding("a_chunk_0", [1.0, 0.0])
        status = await vector_store.get_embedding_status()
        assert status.embedded == 0

    @pytest.mark.asyncio
    async def test_unknown_chunk_should_raise(self, vector_store: VectorIndexStore) -> None:
        with pytest.raises(VectorStoreError) as exc_info:
            await vector_store.upsert_embedding("missing_chunk", [1.0, 0.0, 0.0, 0.0])

        assert exc_info.value.details["chunk_id"] == "missing_chunk"


class TestEmbeddingStatus:
    """Test suite for get_embedding_status()."""

    @pytest.mark.asyncio
    async def test_should_list_exact_missing_ids(self, vector_store: VectorIndexStore, make_chunk) -> None:
        # Arrange
        await vector_store.add_chunks(
            [make_chunk("s_chunk_0", "a", 0, 3), make_chunk("s_chunk_1", "b", 1, 3), make_chunk("s_chunk_2", "c", 2, 3)],
            "s.txt",
        )
        await vector_store.upsert_embedding("s_chunk_1", [1.0, 0.0, 0.0, 0.0])

        # Act
        status = await vector_store.get_embedding_status()

        # Assert
        assert status.total == 3
        assert status.embedded == 1
        assert status.missing_ids == ["s_chunk_0", "s_chunk_2"]


class TestSearchSimilar:
    """Test suite for search_similar() on the client-side scan."""

    @pytest.mark.asyncio
    async def test_should_order_by_similarity_then_importance(self, seeded_store: VectorIndexStore) -> None:
        """Test ties on similarity are broken by importance."""
        # Act
        results = await seeded_store.search_similar("정규화", SearchOptions(similarity_threshold=0.5))

        # Assert
        assert [r.chunk_id for r in results] == ["tips_chunk_0", "db_chunk_0", "db_chunk_1"]
        assert results[0].similarity_score == pytest.approx(1.0)
        assert results[2].similarity_score == pytest.approx(0.7071, abs=1e-3)

    @pytest.mark.asyncio
    async def test_should_apply_threshold_and_limit(self, seeded_store: VectorIndexStore) -> None:
        # Act
        results = await seeded_store.search_similar(
            "정규화",
            SearchOptions(similarity_threshold=0.9, limit=1),
        )

        # Assert
        assert [r.chunk_id for r in results] == ["tips_chunk_0"]

    @pytest.mark.asyncio
    async def test_should_filter_by_subject(self, seeded_store: VectorIndexStore) -> None:
        # Act
        results = await seeded_store.search_similar(
            "정규화",
            SearchOptions(subject="데이터베이스 구축", similarity_threshold=0.0),
        )

        # Assert
        assert {r.chunk_id for r in results} == {"db_chunk_0", "db_chunk_1"}
        assert all(r.subject == "데이터베이스 구축" for r in results)

    @pytest.mark.asyncio
    async def test_should_filter_by_category(self, seeded_store: VectorIndexStore) -> None:
        # Act
        results = await seeded_store.search_similar(
            "정규화",
            SearchOptions(category="study_tips", similarity_threshold=0.0),
        )

        # Assert
        assert [r.chunk_id for r in results] == ["tips_chunk_0"]

    @pytest.mark.asyncio
    async def test_should_attach_metadata_only_when_requested(self, seeded_store: VectorIndexStore) -> None:
        # Act
        plain = await seeded_store.search_similar("정규화", SearchOptions(limit=1))
        detailed = await seeded_store.search_similar("정규화", SearchOptions(limit=1, include_metadata=True))

        # Assert
        assert plain[0].metadata is None
        assert detailed[0].metadata["chunk_index"] == 0

    @pytest.mark.asyncio
    async def test_empty_corpus_should_return_no_results(self, vector_store: VectorIndexStore) -> None:
        assert await vector_store.search_similar("정규화") == []

    @pytest.mark.asyncio
    async def test_fallback_pool_should_bound_candidates(
        self,
        session_factory,
        embedder,
        make_chunk,
    ) -> None:
        """Test the scan only scores limit * multiplier rows, by importance."""
        # Arrange
        store = VectorIndexStore(
            session_factory,
            embedder,
            RetrievalSettings(native_vector_search=False, fallback_pool_multiplier=1),
        )
        await store.add_chunks([make_chunk("low_chunk_0", "정규화")], "low.txt", importance_score=1)
        await store.add_chunks([make_chunk("high_chunk_0", "네트워크")], "high.txt", importance_score=9)
        await store.upsert_embedding("low_chunk_0", [1.0, 0.0, 0.0, 0.0])
        await store.upsert_embedding("high_chunk_0", [1.0, 0.0, 0.0, 1.0])

        # Act
        results = await store.search_similar("정규화", SearchOptions(limit=1, similarity_threshold=0.0))

        # Assert
        assert [r.chunk_id for r in results] == ["high_chunk_0"]

    @pytest.mark.asyncio
    async def test_native_setting_should_fall_back_on_sqlite(
        self,
        session_factory,
        embedder,
        seeded_store: VectorIndexStore,
    ) -> None:
        """Test the pgvector path is skipped on databases without it."""
        # Arrange
        store = VectorIndexStore(session_factory, embedder, RetrievalSettings(native_vector_search=True))

        # Act
        results = await store.search_similar("정규화", SearchOptions(similarity_threshold=0.9))

        # Assert
        assert {r.chunk_id for r in results} == {"tips_chunk_0", "db_chunk_0"}


class TestFindRelatedKnowledge:
    """Test suite for find_related_knowledge()."""

    @pytest.mark.asyncio
    async def test_should_search_within_subject(self, seeded_store: VectorIndexStore) -> None:
        # Act
        results = await seeded_store.find_related_knowledge("데이터베이스 구축", "정규화")

        # Assert
        assert results
        assert all(r.subject == "데이터베이스 구축" for r in results)
        assert all(r.similarity_score >= 0.6 for r in results)


class TestDeleteDocument:
    """Test suite for delete_document()."""

    @pytest.mark.asyncio
    async def test_should_remove_chunks_and_embeddings(self, seeded_store: VectorIndexStore) -> None:
        # Act
        deleted = await seeded_store.delete_document("db.txt")

        # Assert
        assert deleted == 2
        status = await seeded_store.get_embedding_status()
        assert status.total == 2
        assert status.embedded == 2
        assert await seeded_store.get_chunk("db_chunk_0") is None

    @pytest.mark.asyncio
    async def test_unknown_document_should_delete_nothing(self, seeded_store: VectorIndexStore) -> None:
        assert await seeded_store.delete_document("nope.txt") == 0


class TestChunkLookups:
    """Test suite for get_chunks() / list_chunk_ids()."""

    @pytest.mark.asyncio
    async def test_should_fetch_by_ids_and_list_all(self, seeded_store: VectorIndexStore) -> None:
        # Act
        rows = await seeded_store.get_chunks(["db_chunk_1", "net_chunk_0", "ghost"])
        ids = await seeded_store.list_chunk_ids()

        # Assert
        assert {r.id for r in rows} == {"db_chunk_1", "net_chunk_0"}
        assert ids == ["db_chunk_0", "db_chunk_1", "net_chunk_0", "tips_chunk_0"]

    @pytest.mark.asyncio
    async def test_datastore_errors_should_raise_vector_store_error(
        self, vector_store: VectorIndexStore
    ) -> None:
        """Test read failures surface as VectorStoreError, not raw SQLAlchemy errors."""
        # Arrange
        failure = OperationalError("SELECT", {}, Exception("connection lost"))
        chunks = MagicMock()
        chunks.get_by_id = AsyncMock(side_effect=failure)
        chunks.get_by_ids = AsyncMock(side_effect=failure)
        chunks.list_ids = AsyncMock(side_effect=failure)
        vector_store._chunks = chunks

        # Act & Assert
        with pytest.raises(VectorStoreError) as exc_info:
            await vector_store.get_chunks(["db_chunk_0"])
        assert exc_info.value.operation == "get_chunks"

        with pytest.raises(VectorStoreError):
            await vector_store.get_chunk("db_chunk_0")
        with pytest.raises(VectorStoreError):
            await vector_store.list_chunk_ids()
