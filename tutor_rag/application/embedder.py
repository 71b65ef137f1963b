"""
Embedding client.

Wraps a LangChain embeddings provider with the preprocessing, validation and
similarity math shared by ingestion and query time.

Dependencies: langchain_core, tutor_rag.configs
System role: Embedding generation adapter
"""

import asyncio
import logging
import math
import re
from collections.abc import Sequence
from datetime import datetime, timezone
from typing import Any

from langchain_core.embeddings import Embeddings

from tutor_rag.configs.embedding import EmbeddingSettings
from tutor_rag.core.exceptions import EmbeddingError, InvalidEmbeddingError
from tutor_rag.observability.log_utils import preview_text

logger = logging.getLogger(__name__)

_DISALLOWED_CHARS = re.compile(r"[^\w\s가-힣]")
_WHITESPACE_RUN = re.compile(r"\s+")


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Cosine similarity of two vectors.

    Returns 0.0 when either vector has zero norm.

    Raises:
        InvalidEmbeddingError: If the vectors differ in dimension
    """
    if len(a) != len(b):
        raise InvalidEmbeddingError(
            "Vector dimensions do not match",
            details={"left": len(a), "right": len(b)},
        )

    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return dot / (norm_a * norm_b)


class EmbeddingClient:
    """Embedding generator with preprocessing and strict vector validation."""

    def __init__(self, provider: Embeddings, settings: EmbeddingSettings | None = None) -> None:
        """
        Initialize embedding client.

        Args:
            provider: Any LangChain embeddings implementation
            settings: Embedding settings (model name, dimension, batching)
        """
        self._provider = provider
        self._settings = settings or EmbeddingSettings()

    @property
    def dimension(self) -> int:
        return self._settings.dimension

    @property
    def model_name(self) -> str:
        return self._settings.model

    def preprocess_text(self, text: str) -> str:
        """
        Normalize text before embedding.

        Symbols become spaces, whitespace runs collapse, and the result is
        truncated. Lossy; ingestion and queries must both go through it.
        """
        cleaned = _DISALLOWED_CHARS.sub(" ", text)
        cleaned = _WHITESPACE_RUN.sub(" ", cleaned).strip()
        return cleaned[: self._settings.max_input_chars]

    def validate_embedding(self, vector: Any) -> bool:
        """True iff vector is a list/tuple of finite numbers of the configured dimension."""
        if not isinstance(vector, (list, tuple)):
            return False
        if len(vector) != self._settings.dimension:
            return False
        return all(
            isinstance(v, (int, float)) and not isinstance(v, bool) and math.isfinite(v)
            for v in vector
        )

    def ensure_valid(self, vector: Any) -> list[float]:
        """
        Return the vector as floats or raise.

        Raises:
            InvalidEmbeddingError: Wrong type, wrong dimension, or non-finite values
        """
        if not self.validate_embedding(vector):
            size = len(vector) if isinstance(vector, (list, tuple)) else None
            raise InvalidEmbeddingError(
                "Malformed embedding vector",
                details={"expected_dimension": self._settings.dimension, "actual_dimension": size},
            )
        return [float(v) for v in vector]

    def cosine_similarity(self, a: Sequence[float], b: Sequence[float]) -> float:
        return cosine_similarity(a, b)

    async def generate_embedding(self, text: str) -> list[float]:
        """
        Embed a single text.

        Args:
            text: Raw text (preprocessed here)

        Returns:
            list[float]: Validated embedding

        Raises:
            EmbeddingError: Provider failure or timeout
            InvalidEmbeddingError: Provider returned a malformed vector
        """
        prepared = self.preprocess_text(text)
        try:
            vector = await asyncio.wait_for(
                self._provider.aembed_query(prepared),
                timeout=self._settings.timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            raise EmbeddingError(
                "Embedding provider timed out",
                details={"timeout_seconds": self._settings.timeout_seconds},
            ) from e
        except Exception as e:
            logger.error(
                f"{__name__}:generate_embedding - {type(e).__name__}: {e}",
                extra={"text_preview": preview_text(prepared)},
            )
            raise EmbeddingError(f"Embedding generation failed: {e}") from e

        return self.ensure_valid(vector)

    async def generate_embeddings(self, texts: list[str]) -> list[list[float]]:
        """
        Embed many texts with batched provider calls.

        Raises:
            EmbeddingError: Provider failure, timeout, or result count mismatch
            InvalidEmbeddingError: Any returned vector is malformed
        """
        if not texts:
            return []

        prepared = [self.preprocess_text(t) for t in texts]
        batch_size = self._settings.batch_size
        vectors: list[list[float]] = []

        for start in range(0, len(prepared), batch_size):
            batch = prepared[start : start + batch_size]
            try:
                result = await asyncio.wait_for(
                    self._provider.aembed_documents(batch),
                    timeout=self._settings.timeout_seconds,
                )
            except asyncio.TimeoutError as e:
                raise EmbeddingError(
                    "Embedding provider timed out",
                    details={"batch_start": start, "batch_size": len(batch)},
                ) from e
            except Exception as e:
                logger.error(f"{__name__}:generate_embeddings - {type(e).__name__}: {e}")
                raise EmbeddingError(f"Batch embedding failed: {e}") from e

            if len(result) != len(batch):
                raise EmbeddingError(
                    "Provider returned an unexpected number of vectors",
                    details={"expected": len(batch), "actual": len(result)},
                )
            vectors.extend(self.ensure_valid(v) for v in result)

        logger.info(f"{__name__}:generate_embeddings - Generated {len(vectors)} embeddings")
        return vectors

    def create_embedding_metadata(self, chunk_id: str, text: str) -> dict[str, Any]:
        return {
            "chunk_id": chunk_id,
            "text_length": len(text),
            "model_name": self._settings.model,
            "dimensions": self._settings.dimension,
            "created_at": datetime.now(timezone.utc).isoformat(),
        }
