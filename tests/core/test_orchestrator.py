"""
Test suite for RAGOrchestrator.

The vector store, hybrid retriever and completion client are mocked; the
response cache is real.

System role: Verification of the question answering pipeline
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

from tutor_rag.boundary.llm.completion_client import CompletionClient
from tutor_rag.core.cache.response_cache import VersionedResponseCache
from tutor_rag.core.exceptions import CompletionError, RetrievalError, VectorStoreError
from tutor_rag.core.rag.confidence import GENERAL_KNOWLEDGE_CONFIDENCE, NO_ANSWER_CONFIDENCE
from tutor_rag.core.rag.orchestrator import RAGOrchestrator, normalize_question
from tutor_rag.core.rag.prompts import APOLOGY_ANSWER, HYBRID_APOLOGY_ANSWER, NO_INFORMATION_ANSWER
from tutor_rag.core.retrieval.hybrid_retriever import HybridRetriever
from tutor_rag.models.rag import ChatMessage, RAGOptions, ResponseType, ScopeContext
from tutor_rag.models.search import EmbeddingStatus, VectorHit, WebHit
from tutor_rag.models.streaming import StreamChunk


@pytest.fixture
def mock_retriever() -> AsyncMock:
    return AsyncMock(spec=HybridRetriever)


@pytest.fixture
def mock_completion() -> MagicMock:
    completion = MagicMock(spec=CompletionClient)
    completion.complete = AsyncMock(return_value="정규화는 중복을 줄이는 설계 기법입니다.")
    return completion


@pytest.fixture
def orchestrator(
    mock_vector_store: AsyncMock,
    mock_retriever: AsyncMock,
    mock_completion: MagicMock,
    response_cache: VersionedResponseCache,
) -> RAGOrchestrator:
    return RAGOrchestrator(mock_vector_store, mock_retriever, mock_completion, response_cache, history_window=2)


class TestAnswer:
    """Test suite for answer()."""

    @pytest.mark.asyncio
    async def test_strong_sources_should_yield_direct_answer(
        self,
        orchestrator: RAGOrchestrator,
        mock_vector_store: AsyncMock,
        mock_completion: MagicMock,
        scope: ScopeContext,
        make_result,
    ) -> None:
        # Arrange
        mock_vector_store.search_similar.return_value = [
            make_result("db_chunk_0", 0.9, title="정규화 (1/2)", content="1NF는 원자값"),
        ]

        # Act
        response = await orchestrator.answer("정규화란?", scope)

        # Assert
        assert response.response_type == ResponseType.DIRECT
        assert response.answer == "정규화는 중복을 줄이는 설계 기법입니다."
        assert response.confidence == pytest.approx(0.73332)
        assert response.context.average_similarity == pytest.approx(0.9)
        messages = mock_completion.complete.await_args.args[0]
        assert isinstance(messages[0], SystemMessage)
        assert "정보처리기사" in messages[0].content
        assert "[참조 1] 정규화 (1/2)" in messages[-1].content
        assert "(유사도: 90.0%)" in messages[-1].content

    @pytest.mark.asyncio
    async def test_should_pass_scope_filters_to_search(
        self,
        orchestrator: RAGOrchestrator,
        mock_vector_store: AsyncMock,
    ) -> None:
        # Arrange
        mock_vector_store.search_similar.return_value = []
        scope = ScopeContext(scope_id="room-9", category="exam", subject_filter="데이터베이스 구축")

        # Act
        await orchestrator.answer("정규화", scope, RAGOptions(max_sources=3, similarity_threshold=0.75))

        # Assert
        _, search_options = mock_vector_store.search_similar.await_args.args
        assert search_options.subject == "데이터베이스 구축"
        assert search_options.category == "exam"
        assert search_options.limit == 3
        assert search_options.similarity_threshold == 0.75

    @pytest.mark.asyncio
    async def test_no_sources_without_general_knowledge_should_skip_completion(
        self,
        orchestrator: RAGOrchestrator,
        mock_vector_store: AsyncMock,
        mock_completion: MagicMock,
        scope: ScopeContext,
    ) -> None:
        """Test the fixed no-information answer is returned without a model call."""
        # Arrange
        mock_vector_store.search_similar.return_value = []

        # Act
        response = await orchestrator.answer(
            "양자 컴퓨팅?",
            scope,
            RAGOptions(include_general_knowledge=False),
        )

        # Assert
        assert response.answer == NO_INFORMATION_ANSWER
        assert response.confidence == NO_ANSWER_CONFIDENCE
        assert response.response_type == ResponseType.GENERAL
        mock_completion.complete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_no_sources_with_general_knowledge_should_answer(
        self,
        orchestrator: RAGOrchestrator,
        mock_vector_store: AsyncMock,
        scope: ScopeContext,
    ) -> None:
        # Arrange
        mock_vector_store.search_similar.return_value = []

        # Act
        response = await orchestrator.answer("양자 컴퓨팅?", scope)

        # Assert
        assert response.response_type == ResponseType.GENERAL
        assert response.confidence == GENERAL_KNOWLEDGE_CONFIDENCE
        assert response.sources == []

    @pytest.mark.asyncio
    async def test_repeat_question_should_be_served_from_cache(
        self,
        orchestrator: RAGOrchestrator,
        mock_vector_store: AsyncMock,
        mock_completion: MagicMock,
        scope: ScopeContext,
        make_result,
    ) -> None:
        """Test whitespace/case variants of a question share one cache entry."""
        # Arrange
        mock_vector_store.search_similar.return_value = [make_result("db_chunk_0", 0.8)]
        first = await orchestrator.answer("정규화란 SQL?", scope)

        # Act
        second = await orchestrator.answer("  정규화란   sql? ", scope)

        # Assert
        assert second == first
        mock_completion.complete.assert_awaited_once()
        mock_vector_store.search_similar.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_same_question_in_other_subject_should_not_share_cache(
        self,
        orchestrator: RAGOrchestrator,
        mock_vector_store: AsyncMock,
        mock_completion: MagicMock,
        make_result,
    ) -> None:
        """Test subject filter and category are part of the answer cache key."""
        # Arrange
        mock_vector_store.search_similar.return_value = [make_result("db_chunk_0", 0.8)]
        mock_completion.complete.side_effect = ["DB 답변", "SW 답변"]
        db_scope = ScopeContext(scope_id="room-1", subject_filter="데이터베이스 구축")
        sw_scope = ScopeContext(scope_id="room-1", subject_filter="소프트웨어 설계", category="exam")
        first = await orchestrator.answer("정의는?", db_scope)

        # Act
        second = await orchestrator.answer("정의는?", sw_scope)

        # Assert
        assert first.answer == "DB 답변"
        assert second.answer == "SW 답변"
        assert mock_vector_store.search_similar.await_count == 2

    @pytest.mark.asyncio
    async def test_unavailable_model_should_return_apology(
        self,
        mock_vector_store: AsyncMock,
        mock_retriever: AsyncMock,
        response_cache: VersionedResponseCache,
        scope: ScopeContext,
        make_result,
    ) -> None:
        """Test a model that cannot be built still yields the apology answer."""
        # Arrange
        def factory(temperature: float, max_tokens: int):
            raise ValueError("Did not find google_api_key")

        orchestrator = RAGOrchestrator(
            mock_vector_store, mock_retriever, CompletionClient(factory), response_cache
        )
        mock_vector_store.search_similar.return_value = [make_result("db_chunk_0", 0.8)]

        # Act
        response = await orchestrator.answer("정규화란?", scope)

        # Assert
        assert response.answer == APOLOGY_ANSWER
        assert response_cache.stats().size == 0

    @pytest.mark.asyncio
    async def test_completion_failure_should_return_uncached_apology(
        self,
        orchestrator: RAGOrchestrator,
        mock_vector_store: AsyncMock,
        mock_completion: MagicMock,
        response_cache: VersionedResponseCache,
        scope: ScopeContext,
        make_result,
    ) -> None:
        # Arrange
        mock_vector_store.search_similar.return_value = [make_result("db_chunk_0", 0.8)]
        mock_completion.complete.side_effect = CompletionError("provider down")

        # Act
        response = await orchestrator.answer("정규화란?", scope)

        # Assert
        assert response.answer == APOLOGY_ANSWER
        assert response_cache.stats().size == 0

    @pytest.mark.asyncio
    async def test_vector_failure_should_raise_retrieval_error(
        self,
        orchestrator: RAGOrchestrator,
        mock_vector_store: AsyncMock,
        scope: ScopeContext,
    ) -> None:
        # Arrange
        mock_vector_store.search_similar.side_effect = VectorStoreError("db down")

        # Act & Assert
        with pytest.raises(RetrievalError):
            await orchestrator.answer("정규화란?", scope)


class TestStreamAnswer:
    """Test suite for stream_answer()."""

    @pytest.mark.asyncio
    async def test_should_relay_fragments_and_sentinel(
        self,
        orchestrator: RAGOrchestrator,
        mock_vector_store: AsyncMock,
        mock_completion: MagicMock,
        scope: ScopeContext,
        make_result,
    ) -> None:
        # Arrange
        mock_vector_store.search_similar.return_value = [make_result("db_chunk_0", 0.9)]

        async def fragments(_messages):
            yield StreamChunk(content="정규화는 ")
            yield StreamChunk(content="중복 제거")
            yield StreamChunk.sentinel()

        mock_completion.stream = fragments

        # Act
        chunks = [chunk async for chunk in orchestrator.stream_answer("정규화란?", scope)]

        # Assert
        assert "".join(c.content for c in chunks) == "정규화는 중복 제거"
        assert chunks[-1].is_complete is True

    @pytest.mark.asyncio
    async def test_no_information_should_stream_fixed_answer(
        self,
        orchestrator: RAGOrchestrator,
        mock_vector_store: AsyncMock,
        scope: ScopeContext,
    ) -> None:
        # Arrange
        mock_vector_store.search_similar.return_value = []

        # Act
        chunks = [
            chunk
            async for chunk in orchestrator.stream_answer(
                "양자 컴퓨팅?", scope, RAGOptions(include_general_knowledge=False)
            )
        ]

        # Assert
        assert [c.content for c in chunks] == [NO_INFORMATION_ANSWER, ""]
        assert chunks[-1].is_complete is True

    @pytest.mark.asyncio
    async def test_stream_failure_should_end_with_apology(
        self,
        orchestrator: RAGOrchestrator,
        mock_vector_store: AsyncMock,
        mock_completion: MagicMock,
        scope: ScopeContext,
        make_result,
    ) -> None:
        # Arrange
        mock_vector_store.search_similar.return_value = [make_result("db_chunk_0", 0.9)]

        async def broken(_messages):
            yield StreamChunk(content="정규화는 ")
            raise CompletionError("connection reset")

        mock_completion.stream = broken

        # Act
        chunks = [chunk async for chunk in orchestrator.stream_answer("정규화란?", scope)]

        # Assert
        assert [c.content for c in chunks] == ["정규화는 ", APOLOGY_ANSWER, ""]
        assert chunks[-1].is_complete is True


class TestExplainAndRelated:
    """Test suite for explain_topic() / get_related_concepts()."""

    @pytest.mark.asyncio
    async def test_explain_should_widen_source_set(
        self,
        orchestrator: RAGOrchestrator,
        mock_vector_store: AsyncMock,
        scope: ScopeContext,
    ) -> None:
        # Arrange
        mock_vector_store.search_similar.return_value = []

        # Act
        response = await orchestrator.explain_topic("정규화", scope, detail_level="advanced")

        # Assert
        query, search_options = mock_vector_store.search_similar.await_args.args
        assert query == "정규화에 대해 advanced 수준으로 자세히 설명해주세요."
        assert search_options.limit == 8
        assert search_options.similarity_threshold == 0.6
        assert response.context.search_options.include_general_knowledge is True

    @pytest.mark.asyncio
    async def test_related_concepts_should_dedupe_titles(
        self,
        orchestrator: RAGOrchestrator,
        mock_vector_store: AsyncMock,
        scope: ScopeContext,
        make_result,
    ) -> None:
        # Arrange
        mock_vector_store.search_similar.return_value = [
            make_result("a", 0.9, title="정규화"),
            make_result("b", 0.8, title="함수 종속"),
            make_result("c", 0.7, title="함수 종속"),
            make_result("d", 0.6, title="이상 현상"),
        ]

        # Act
        related = await orchestrator.get_related_concepts("정규화", scope)

        # Assert
        assert related.related_topics == ["함수 종속", "이상 현상"]
        assert len(related.suggested_questions) == 5
        assert related.suggested_questions[0] == "정규화의 핵심 개념은 무엇인가요?"
        assert [s.similarity for s in related.additional_sources] == [0.9, 0.8, 0.7, 0.6]

    @pytest.mark.asyncio
    async def test_related_concepts_failure_should_return_empty(
        self,
        orchestrator: RAGOrchestrator,
        mock_vector_store: AsyncMock,
        scope: ScopeContext,
    ) -> None:
        # Arrange
        mock_vector_store.search_similar.side_effect = VectorStoreError("db down")

        # Act
        related = await orchestrator.get_related_concepts("정규화", scope)

        # Assert
        assert related.related_topics == []
        assert related.suggested_questions == []


class TestSystemStatus:
    """Test suite for get_system_status()."""

    @pytest.mark.parametrize(
        "status, is_ready, recommendation_count",
        [
            (EmbeddingStatus(total=5, embedded=0, missing_ids=["a", "b", "c", "d", "e"]), False, 2),
            (EmbeddingStatus(total=12, embedded=11, missing_ids=["x"]), True, 1),
            (EmbeddingStatus(total=20, embedded=20), True, 0),
        ],
    )
    @pytest.mark.asyncio
    async def test_should_report_readiness(
        self,
        orchestrator: RAGOrchestrator,
        mock_vector_store: AsyncMock,
        status: EmbeddingStatus,
        is_ready: bool,
        recommendation_count: int,
    ) -> None:
        # Arrange
        mock_vector_store.get_embedding_status.return_value = status

        # Act
        result = await orchestrator.get_system_status()

        # Assert
        assert result.is_ready is is_ready
        assert len(result.recommendations) == recommendation_count
        assert result.embedding_status == status

    @pytest.mark.asyncio
    async def test_store_failure_should_report_not_ready(
        self,
        orchestrator: RAGOrchestrator,
        mock_vector_store: AsyncMock,
    ) -> None:
        # Arrange
        mock_vector_store.get_embedding_status.side_effect = VectorStoreError("db down")

        # Act
        result = await orchestrator.get_system_status()

        # Assert
        assert result.is_ready is False
        assert result.embedding_status is None


class TestAnswerHybrid:
    """Test suite for answer_hybrid()."""

    @pytest.mark.asyncio
    async def test_should_answer_from_fused_results(
        self,
        orchestrator: RAGOrchestrator,
        mock_retriever: AsyncMock,
        mock_completion: MagicMock,
    ) -> None:
        # Arrange
        mock_retriever.retrieve.return_value = [
            VectorHit(content="1NF 설명", chunk_id="db_chunk_0", file_name="db.txt", similarity=0.95),
            WebHit(content="블로그 설명", url="https://blog.naver.com/a", title="정규화 블로그"),
        ]

        # Act
        response = await orchestrator.answer_hybrid("정규화란?", subject_id="database_construction")

        # Assert
        assert response.answer == "정규화는 중복을 줄이는 설계 기법입니다."
        assert response.confidence == pytest.approx(0.85)
        assert [s.type for s in response.sources] == ["vector", "web"]
        assert response.sources[0].title == "db.txt"
        assert response.sources[1].url == "https://blog.naver.com/a"
        assert response.metadata.search_results_count == 2
        assert response.metadata.has_web_results is True
        search_options = mock_retriever.retrieve.await_args.args[1]
        assert search_options.subject_id == "database_construction"
        assert search_options.max_vector_results == 8
        assert search_options.max_web_results == 3
        kwargs = mock_completion.complete.await_args.kwargs
        assert (kwargs["temperature"], kwargs["max_tokens"]) == (0.3, 2000)

    @pytest.mark.asyncio
    async def test_history_should_be_windowed(
        self,
        orchestrator: RAGOrchestrator,
        mock_retriever: AsyncMock,
        mock_completion: MagicMock,
    ) -> None:
        """Test only the most recent messages are replayed, in order."""
        # Arrange
        mock_retriever.retrieve.return_value = []
        history = [
            ChatMessage(role="user", content="첫 질문"),
            ChatMessage(role="assistant", content="첫 답변"),
            ChatMessage(role="user", content="둘째 질문"),
        ]

        # Act
        await orchestrator.answer_hybrid("정규화란?", history=history)

        # Assert
        messages = mock_completion.complete.await_args.args[0]
        assert isinstance(messages[0], SystemMessage)
        assert isinstance(messages[1], AIMessage) and messages[1].content == "첫 답변"
        assert isinstance(messages[2], HumanMessage) and messages[2].content == "둘째 질문"
        assert "사용자 질문: 정규화란?" in messages[3].content
        assert "관련 정보를 찾을 수 없습니다." in messages[3].content

    @pytest.mark.parametrize(
        "retrieval_error, completion_error",
        [(RetrievalError("vector down"), None), (None, CompletionError("model down"))],
    )
    @pytest.mark.asyncio
    async def test_any_failure_should_return_apology(
        self,
        orchestrator: RAGOrchestrator,
        mock_retriever: AsyncMock,
        mock_completion: MagicMock,
        retrieval_error,
        completion_error,
    ) -> None:
        # Arrange
        mock_retriever.retrieve.return_value = []
        mock_retriever.retrieve.side_effect = retrieval_error
        mock_completion.complete.side_effect = completion_error

        # Act
        response = await orchestrator.answer_hybrid("정규화란?")

        # Assert
        assert response.answer == HYBRID_APOLOGY_ANSWER
        assert response.confidence == 0.0
        assert response.sources == []
        assert response.search_results == []


class TestNormalizeQuestion:
    def test_should_collapse_whitespace_and_lowercase(self) -> None:
        assert normalize_question("  정규화란   SQL?\n") == "정규화란 sql?"
