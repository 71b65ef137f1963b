"""
Hybrid retrieval: local vector index first, web search as a fallback.

Web search runs only when the vector evidence is weak: no hit above the
high-quality similarity bar, or fewer than `min_vector_results` hits.
Vector failures propagate; web failures degrade to vector-only results.

Dependencies: tutor_rag.boundary.vdb, tutor_rag.boundary.web
System role: Evidence gathering for hybrid answers
"""

import logging
from collections.abc import Sequence

from tutor_rag.boundary.vdb.vector_index_store import VectorIndexStore
from tutor_rag.boundary.web.web_search_client import WebSearchClient
from tutor_rag.configs.retrieval import RetrievalSettings
from tutor_rag.core.exceptions import RetrievalError, TutorRAGException
from tutor_rag.core.retrieval.question_classifier import subject_name
from tutor_rag.models.search import (
    HybridSearchOptions,
    HybridSearchResult,
    SearchOptions,
    SearchResult,
    VectorHit,
    WebHit,
    WebResult,
)
from tutor_rag.observability.log_utils import preview_text

logger = logging.getLogger(__name__)

NO_RESULTS_TEXT = "관련 정보를 찾을 수 없습니다."
PROMPT_VECTOR_RESULTS = 3
PROMPT_WEB_RESULTS = 2
VECTOR_EXCERPT_CHARS = 300
WEB_EXCERPT_CHARS = 200


class HybridRetriever:
    """Fuses vector search results with web search results."""

    def __init__(
        self,
        vector_store: VectorIndexStore,
        web_client: WebSearchClient,
        settings: RetrievalSettings | None = None,
    ) -> None:
        self._vector_store = vector_store
        self._web_client = web_client
        self._settings = settings or RetrievalSettings()

    def needs_web_search(self, vector_results: Sequence[SearchResult]) -> bool:
        """True when the vector evidence is too thin or too weak."""
        has_strong_hit = any(
            r.similarity_score > self._settings.high_quality_similarity for r in vector_results
        )
        return not has_strong_hit or len(vector_results) < self._settings.min_vector_results

    async def retrieve(
        self,
        query: str,
        options: HybridSearchOptions | None = None,
    ) -> list[HybridSearchResult]:
        """
        Gather evidence for a query.

        Args:
            query: Learner question
            options: Subject filter, web toggle, thresholds and limits

        Returns:
            list[HybridSearchResult]: Vector hits (similarity descending)
            followed by web hits (provider order)

        Raises:
            RetrievalError: Vector search failed
        """
        options = options or HybridSearchOptions()

        try:
            vector_results = await self._vector_store.search_similar(
                query,
                SearchOptions(
                    subject=subject_name(options.subject_id),
                    limit=options.max_vector_results,
                    similarity_threshold=options.vector_threshold,
                ),
            )
        except TutorRAGException as e:
            logger.error(f"{__name__}:retrieve - Vector search failed: {e}")
            raise RetrievalError(f"Vector search failed: {e.message}", query=query) from e

        web_results: list[WebResult] = []
        if options.include_web_search and self.needs_web_search(vector_results):
            logger.info(
                f"{__name__}:retrieve - Weak vector evidence, querying web",
                extra={"query": preview_text(query), "vector_count": len(vector_results)},
            )
            try:
                web_results = await self._web_client.search(query, options.max_web_results)
            except Exception as e:
                # Web evidence is optional; vector results are kept regardless
                logger.warning(f"{__name__}:retrieve - Web search degraded: {type(e).__name__}: {e}")
                web_results = []

        merged = self._merge(vector_results, web_results)
        logger.info(
            f"{__name__}:retrieve - {len(vector_results)} vector + {len(web_results)} web results"
        )
        return merged

    @staticmethod
    def _merge(
        vector_results: Sequence[SearchResult],
        web_results: Sequence[WebResult],
    ) -> list[HybridSearchResult]:
        vector_hits = sorted(
            (
                VectorHit(
                    content=r.content,
                    chunk_id=r.chunk_id,
                    file_name=r.document_name,
                    chunk_index=r.chunk_index,
                    similarity=r.similarity_score,
                )
                for r in vector_results
            ),
            key=lambda hit: hit.similarity,
            reverse=True,
        )
        web_hits = [
            WebHit(content=r.content, url=r.url, title=r.title, snippet=r.snippet)
            for r in web_results
        ]
        return [*vector_hits, *web_hits]


def format_results_for_prompt(results: Sequence[HybridSearchResult]) -> str:
    """
    Render hybrid results as prompt context.

    Top 3 vector hits (file name, similarity %, 300-char excerpt) then top 2
    web hits (title, URL, 200-char excerpt).
    """
    if not results:
        return NO_RESULTS_TEXT

    vector_hits = [r for r in results if isinstance(r, VectorHit)]
    web_hits = [r for r in results if isinstance(r, WebHit)]
    sections: list[str] = []

    if vector_hits:
        lines = ["**학습 자료에서:**"]
        for i, hit in enumerate(vector_hits[:PROMPT_VECTOR_RESULTS], start=1):
            lines.append(
                f"{i}. [{hit.file_name or '파일명 없음'}] (유사도: {hit.similarity * 100:.1f}%)"
            )
            lines.append(f"{hit.content[:VECTOR_EXCERPT_CHARS]}...")
            lines.append("")
        sections.append("\n".join(lines))

    if web_hits:
        lines = ["**추가 참고자료:**"]
        for i, hit in enumerate(web_hits[:PROMPT_WEB_RESULTS], start=1):
            lines.append(f"{i}. {hit.title or '제목 없음'}")
            lines.append(f"   출처: {hit.url}")
            lines.append(f"   {hit.content[:WEB_EXCERPT_CHARS]}...")
            lines.append("")
        sections.append("\n".join(lines))

    return "\n".join(sections).strip()
