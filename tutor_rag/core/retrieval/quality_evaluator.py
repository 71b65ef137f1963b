"""
Retrieval quality evaluator.

Pure function over a fused result set; no I/O.

Dependencies: tutor_rag.core.rag.confidence
System role: Decides how much a hybrid result set can be trusted
"""

from collections.abc import Sequence

from tutor_rag.core.rag.confidence import HIGH_QUALITY_SIMILARITY, retrieval_confidence
from tutor_rag.models.search import HybridSearchResult, QualityEvaluation, VectorHit, WebHit


def evaluate(
    results: Sequence[HybridSearchResult],
    high_quality_bar: float = HIGH_QUALITY_SIMILARITY,
) -> QualityEvaluation:
    """
    Score a hybrid result set.

    Relevant means at least one vector hit above the high-quality bar or at
    least one web hit.

    Args:
        results: Fused vector and web results
        high_quality_bar: Similarity a vector hit must exceed to count as strong

    Returns:
        QualityEvaluation: Relevance flag, confidence in [0, 1], summary line
    """
    vector_similarities = [r.similarity for r in results if isinstance(r, VectorHit)]
    web_count = sum(1 for r in results if isinstance(r, WebHit))
    high_quality = sum(1 for s in vector_similarities if s > high_quality_bar)

    return QualityEvaluation(
        has_relevant_results=high_quality > 0 or web_count > 0,
        confidence_score=retrieval_confidence(vector_similarities, web_count, high_quality_bar),
        summary=(
            f"vector: {len(vector_similarities)} (high quality: {high_quality}), "
            f"web: {web_count}"
        ),
    )
