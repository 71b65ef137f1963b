"""
RAG orchestrator.

Top-level entry point for tutor answers: retrieves sources, classifies the
response type, builds the prompt, calls the completion model and scores
confidence. Generated answers are served from the response cache when the
same question is asked again within the same scope, level and progress
quantum.

Completion failures never surface to the caller; they become a fixed
apology answer. Retrieval failures are raised as RetrievalError.

Dependencies: langchain_core, tutor_rag.core.retrieval, tutor_rag.core.cache,
    tutor_rag.boundary.llm, tutor_rag.boundary.vdb
System role: Question answering pipeline
"""

import logging
import time
from collections.abc import AsyncIterator, Sequence

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

from tutor_rag.boundary.llm.completion_client import CompletionClient
from tutor_rag.boundary.vdb.vector_index_store import VectorIndexStore
from tutor_rag.core.cache.response_cache import VersionedResponseCache, content_signature
from tutor_rag.core.exceptions import CompletionError, RetrievalError, TutorRAGException
from tutor_rag.core.rag.confidence import (
    NO_ANSWER_CONFIDENCE,
    answer_confidence,
    classify_response_type,
)
from tutor_rag.core.rag.prompts import (
    ANSWER_PROMPTS,
    APOLOGY_ANSWER,
    HYBRID_APOLOGY_ANSWER,
    HYBRID_QUESTION_TEMPLATE,
    HYBRID_SYSTEM_PROMPT,
    NO_INFORMATION_ANSWER,
    format_sources,
)
from tutor_rag.core.retrieval.hybrid_retriever import HybridRetriever, format_results_for_prompt
from tutor_rag.core.retrieval.quality_evaluator import evaluate
from tutor_rag.models.rag import (
    ChatMessage,
    HybridRAGMetadata,
    HybridRAGResponse,
    RAGContext,
    RAGOptions,
    RAGResponse,
    RelatedConcepts,
    RelatedSource,
    ResponseType,
    ScopeContext,
    SourceReference,
    SystemStatus,
)
from tutor_rag.models.search import HybridSearchOptions, SearchOptions, SearchResult, VectorHit
from tutor_rag.models.streaming import StreamChunk
from tutor_rag.observability.log_utils import preview_text

logger = logging.getLogger(__name__)

HYBRID_TEMPERATURE = 0.3
HYBRID_MAX_TOKENS = 2000
HYBRID_MAX_VECTOR_RESULTS = 8
HYBRID_MAX_WEB_RESULTS = 3
HYBRID_VECTOR_THRESHOLD = 0.7

EXPLAIN_MAX_SOURCES = 8
EXPLAIN_THRESHOLD = 0.6

RELATED_SEARCH_LIMIT = 10
RELATED_THRESHOLD = 0.5
RELATED_MAX_ITEMS = 5

MIN_EMBEDDED_CHUNKS = 10


def normalize_question(question: str) -> str:
    return " ".join(question.split()).lower()


class RAGOrchestrator:
    """Answers learner questions from the knowledge corpus (and the web)."""

    def __init__(
        self,
        vector_store: VectorIndexStore,
        retriever: HybridRetriever,
        completion: CompletionClient,
        cache: VersionedResponseCache,
        history_window: int = 6,
    ) -> None:
        """
        Initialize orchestrator.

        Args:
            vector_store: Vector index used for single-corpus answers
            retriever: Hybrid retriever used for hybrid answers
            completion: Chat completion client
            cache: Shared response cache
            history_window: Prior messages kept in hybrid prompts
        """
        self._vector_store = vector_store
        self._retriever = retriever
        self._completion = completion
        self._cache = cache
        self._history_window = history_window

    # ------------------------------------------------------------------
    # Single-corpus answers
    # ------------------------------------------------------------------

    async def answer(
        self,
        question: str,
        scope: ScopeContext,
        options: RAGOptions | None = None,
    ) -> RAGResponse:
        """
        Answer a question from the vector index.

        Args:
            question: Learner question
            scope: Scope, subject, level and progress of the learner
            options: Source count, similarity threshold, general-knowledge toggle

        Returns:
            RAGResponse: Answer, sources, confidence and response type

        Raises:
            RetrievalError: Vector search failed
        """
        options = options or RAGOptions()
        cache_key = self._cache.build_key(
            scope.scope_id,
            content_signature(
                normalize_question(question),
                options.model_dump(mode="json"),
                scope.subject,
                scope.subject_filter,
                scope.category,
            ),
            scope.user_level,
            scope.progress,
        )
        cached = self._cache.get(cache_key)
        if cached is not None:
            logger.info(f"{__name__}:answer - Cache hit for '{preview_text(question)}'")
            return cached

        context = await self._retrieve(question, scope, options)
        sources = context.relevant_chunks
        similarities = [s.similarity_score for s in sources]
        response_type = classify_response_type(similarities)

        logger.info(
            f"{__name__}:answer - {len(sources)} sources, response type {response_type.value}",
            extra={"question": preview_text(question), "scope_id": scope.scope_id},
        )

        if response_type == ResponseType.GENERAL and not options.include_general_knowledge:
            return RAGResponse(
                answer=NO_INFORMATION_ANSWER,
                sources=sources,
                confidence=NO_ANSWER_CONFIDENCE,
                response_type=response_type,
                context=context,
            )

        messages = self._answer_messages(question, scope, sources, response_type)
        generated = True
        try:
            answer = await self._completion.complete(messages)
        except CompletionError as e:
            logger.error(f"{__name__}:answer - Completion failed, returning apology: {e}")
            answer = APOLOGY_ANSWER
            generated = False

        response = RAGResponse(
            answer=answer,
            sources=sources,
            confidence=answer_confidence(response_type, similarities),
            response_type=response_type,
            context=context,
        )
        if generated:
            self._cache.set(cache_key, response)
        return response

    async def stream_answer(
        self,
        question: str,
        scope: ScopeContext,
        options: RAGOptions | None = None,
    ) -> AsyncIterator[StreamChunk]:
        """
        Stream an answer fragment by fragment.

        Always ends with the terminal sentinel chunk. Streamed answers are not
        cached.

        Raises:
            RetrievalError: Vector search failed (before any chunk is yielded)
        """
        options = options or RAGOptions()
        context = await self._retrieve(question, scope, options)
        sources = context.relevant_chunks
        response_type = classify_response_type([s.similarity_score for s in sources])

        if response_type == ResponseType.GENERAL and not options.include_general_knowledge:
            yield StreamChunk(content=NO_INFORMATION_ANSWER)
            yield StreamChunk.sentinel()
            return

        messages = self._answer_messages(question, scope, sources, response_type)
        try:
            async for chunk in self._completion.stream(messages):
                yield chunk
        except CompletionError as e:
            logger.error(f"{__name__}:stream_answer - Stream failed, returning apology: {e}")
            yield StreamChunk(content=APOLOGY_ANSWER)
            yield StreamChunk.sentinel()

    async def explain_topic(
        self,
        topic: str,
        scope: ScopeContext,
        detail_level: str = "intermediate",
    ) -> RAGResponse:
        """Detailed explanation of a topic using a wider, looser source set."""
        return await self.answer(
            f"{topic}에 대해 {detail_level} 수준으로 자세히 설명해주세요.",
            scope,
            RAGOptions(
                max_sources=EXPLAIN_MAX_SOURCES,
                similarity_threshold=EXPLAIN_THRESHOLD,
                include_general_knowledge=True,
            ),
        )

    async def get_related_concepts(self, topic: str, scope: ScopeContext) -> RelatedConcepts:
        """
        Related topics, follow-up questions and extra reading for a topic.

        Returns empty lists when the lookup fails.
        """
        try:
            related = await self._vector_store.search_similar(
                topic,
                SearchOptions(
                    subject=scope.subject_filter,
                    category=scope.category,
                    limit=RELATED_SEARCH_LIMIT,
                    similarity_threshold=RELATED_THRESHOLD,
                ),
            )
        except TutorRAGException as e:
            logger.error(f"{__name__}:get_related_concepts - Lookup failed: {e}")
            return RelatedConcepts()

        topics: list[str] = []
        for title in (r.title for r in related if r.title != topic):
            if title not in topics:
                topics.append(title)

        return RelatedConcepts(
            related_topics=topics[:RELATED_MAX_ITEMS],
            suggested_questions=[
                f"{topic}의 핵심 개념은 무엇인가요?",
                f"{topic}을 실무에서 어떻게 활용하나요?",
                f"{topic}과 관련된 주의사항은 무엇인가요?",
                f"{topic}의 장단점을 비교해주세요.",
                f"{topic}을 효과적으로 학습하는 방법은?",
            ],
            additional_sources=[
                RelatedSource(title=r.title, similarity=r.similarity_score)
                for r in related[:RELATED_MAX_ITEMS]
            ],
        )

    async def get_system_status(self) -> SystemStatus:
        """Readiness of the corpus plus operator recommendations."""
        try:
            status = await self._vector_store.get_embedding_status()
        except TutorRAGException as e:
            logger.error(f"{__name__}:get_system_status - Status check failed: {e}")
            return SystemStatus(
                is_ready=False,
                recommendations=["시스템 상태를 확인할 수 없습니다."],
            )

        is_ready = status.embedded > 0
        recommendations = []
        if not is_ready:
            recommendations.append("임베딩을 생성해야 합니다. 초기화를 진행하세요.")
        elif status.embedded < status.total:
            recommendations.append(f"{len(status.missing_ids)}개 청크의 임베딩이 누락되었습니다.")
        if status.embedded < MIN_EMBEDDED_CHUNKS:
            recommendations.append("더 많은 학습 데이터를 추가하면 검색 품질이 향상됩니다.")

        return SystemStatus(
            is_ready=is_ready,
            embedding_status=status,
            recommendations=recommendations,
        )

    # ------------------------------------------------------------------
    # Hybrid answers
    # ------------------------------------------------------------------

    async def answer_hybrid(
        self,
        question: str,
        subject_id: str | None = None,
        history: Sequence[ChatMessage] | None = None,
    ) -> HybridRAGResponse:
        """
        Answer from fused vector and web evidence.

        Confidence is the retrieval confidence of the fused result set. Any
        failure yields an apology with confidence 0 and no sources.

        Args:
            question: Learner question
            subject_id: Optional exam subject id restricting vector search
            history: Prior conversation; only the most recent messages are kept
        """
        started = time.perf_counter()
        try:
            results = await self._retriever.retrieve(
                question,
                HybridSearchOptions(
                    subject_id=subject_id,
                    include_web_search=True,
                    vector_threshold=HYBRID_VECTOR_THRESHOLD,
                    max_vector_results=HYBRID_MAX_VECTOR_RESULTS,
                    max_web_results=HYBRID_MAX_WEB_RESULTS,
                ),
            )
            quality = evaluate(results)
            logger.info(f"{__name__}:answer_hybrid - Quality: {quality.summary}")

            messages: list[BaseMessage] = [SystemMessage(content=HYBRID_SYSTEM_PROMPT)]
            for message in list(history or [])[-self._history_window:]:
                if message.role == "user":
                    messages.append(HumanMessage(content=message.content))
                else:
                    messages.append(AIMessage(content=message.content))
            messages.append(HumanMessage(content=HYBRID_QUESTION_TEMPLATE.format(
                question=question,
                search_results=format_results_for_prompt(results),
            )))

            answer = await self._completion.complete(
                messages,
                temperature=HYBRID_TEMPERATURE,
                max_tokens=HYBRID_MAX_TOKENS,
            )
        except Exception as e:
            logger.error(
                f"{__name__}:answer_hybrid - {type(e).__name__}: {e}",
                extra={"question": preview_text(question)},
            )
            return HybridRAGResponse(
                answer=HYBRID_APOLOGY_ANSWER,
                confidence=0.0,
                metadata=HybridRAGMetadata(response_time_ms=self._elapsed_ms(started)),
            )

        sources = [
            SourceReference(type="vector", title=r.file_name or "제목 없음", similarity=r.similarity)
            if isinstance(r, VectorHit)
            else SourceReference(type="web", title=r.title or "제목 없음", url=r.url)
            for r in results
        ]
        response = HybridRAGResponse(
            answer=answer,
            search_results=results,
            confidence=quality.confidence_score,
            sources=sources,
            metadata=HybridRAGMetadata(
                search_results_count=len(results),
                has_web_results=any(r.source == "web" for r in results),
                response_time_ms=self._elapsed_ms(started),
            ),
        )
        logger.info(
            f"{__name__}:answer_hybrid - Answered in {response.metadata.response_time_ms}ms "
            f"(confidence {response.confidence:.2f}, web: {response.metadata.has_web_results})"
        )
        return response

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _retrieve(self, question: str, scope: ScopeContext, options: RAGOptions) -> RAGContext:
        try:
            sources = await self._vector_store.search_similar(
                question,
                SearchOptions(
                    subject=scope.subject_filter,
                    category=scope.category,
                    limit=options.max_sources,
                    similarity_threshold=options.similarity_threshold,
                    include_metadata=True,
                ),
            )
        except TutorRAGException as e:
            logger.error(f"{__name__}:_retrieve - Vector search failed: {e}")
            raise RetrievalError(f"Vector search failed: {e.message}", query=question) from e

        return RAGContext(
            query=question,
            relevant_chunks=sources,
            total_similarity=sum(s.similarity_score for s in sources),
            search_options=options,
        )

    @staticmethod
    def _answer_messages(
        question: str,
        scope: ScopeContext,
        sources: list[SearchResult],
        response_type: ResponseType,
    ) -> list[BaseMessage]:
        return ANSWER_PROMPTS[response_type].format_messages(
            subject=scope.subject,
            category=scope.category or "일반",
            user_level=scope.user_level.value,
            question=question,
            context=format_sources(sources),
        )

    @staticmethod
    def _elapsed_ms(started: float) -> int:
        return int((time.perf_counter() - started) * 1000)
