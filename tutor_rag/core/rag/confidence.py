"""
Confidence scoring.

Two distinct signals live here:

- retrieval confidence: how useful a fused (vector + web) result set is,
  in [0, 1]. Used by the quality evaluator and the hybrid answer path.
- answer confidence: how trustworthy a generated single-corpus answer is,
  in [0.1, 0.95]. Depends on the response type as well as the evidence.

Dependencies: tutor_rag.models.rag
System role: Single definition of confidence semantics
"""

from collections.abc import Sequence

from tutor_rag.models.rag import ResponseType

HIGH_QUALITY_SIMILARITY = 0.8
DIRECT_SIMILARITY = 0.85
CONTEXTUAL_SIMILARITY = 0.70

ANSWER_CONFIDENCE_FLOOR = 0.1
ANSWER_CONFIDENCE_CEILING = 0.95
GENERAL_KNOWLEDGE_CONFIDENCE = 0.6
NO_ANSWER_CONFIDENCE = ANSWER_CONFIDENCE_FLOOR
SOURCE_COUNT_NORMALIZER = 5

_BASE_CONFIDENCE = {
    ResponseType.DIRECT: 0.9,
    ResponseType.CONTEXTUAL: 0.75,
    ResponseType.GENERAL: 0.6,
}


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def retrieval_confidence(
    vector_similarities: Sequence[float],
    web_result_count: int,
    high_quality_bar: float = HIGH_QUALITY_SIMILARITY,
) -> float:
    """
    Confidence in a fused retrieval result set.

    High-quality vector hits (similarity above the bar) give 0.8 + 0.05 each;
    otherwise any vector hits give 0.4 + 0.4 * mean similarity; web-only
    evidence gives 0.3; nothing gives 0. Clamped to [0, 1].
    """
    high_quality = [s for s in vector_similarities if s > high_quality_bar]
    if high_quality:
        score = 0.8 + 0.05 * len(high_quality)
    elif vector_similarities:
        score = 0.4 + 0.4 * _mean(vector_similarities)
    elif web_result_count > 0:
        score = 0.3
    else:
        score = 0.0
    return min(max(score, 0.0), 1.0)


def classify_response_type(similarities: Sequence[float]) -> ResponseType:
    """Direct at mean >= 0.85, contextual at mean >= 0.70, otherwise general."""
    if not similarities:
        return ResponseType.GENERAL
    mean = _mean(similarities)
    if mean >= DIRECT_SIMILARITY:
        return ResponseType.DIRECT
    if mean >= CONTEXTUAL_SIMILARITY:
        return ResponseType.CONTEXTUAL
    return ResponseType.GENERAL


def answer_confidence(response_type: ResponseType, similarities: Sequence[float]) -> float:
    """
    Confidence in a generated answer.

    base(type) * (0.7 + 0.3 * mean similarity) * (0.8 + 0.2 * min(n, 5) / 5),
    clamped to [0.1, 0.95]. Without sources, a general-knowledge answer
    scores 0.6.
    """
    if not similarities:
        if response_type == ResponseType.GENERAL:
            return GENERAL_KNOWLEDGE_CONFIDENCE
        return ANSWER_CONFIDENCE_FLOOR

    source_factor = min(len(similarities), SOURCE_COUNT_NORMALIZER) / SOURCE_COUNT_NORMALIZER
    score = (
        _BASE_CONFIDENCE[response_type]
        * (0.7 + 0.3 * _mean(similarities))
        * (0.8 + 0.2 * source_factor)
    )
    return min(max(score, ANSWER_CONFIDENCE_FLOOR), ANSWER_CONFIDENCE_CEILING)
