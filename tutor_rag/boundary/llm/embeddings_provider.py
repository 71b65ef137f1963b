"""
Google Generative AI Embeddings wrapper with fixed output dimensionality.

Wraps GoogleGenerativeAIEmbeddings so every call, sync or async, requests the
same vector size. Stored vectors and query vectors must agree on dimension or
the pgvector column rejects them.

Dependencies: langchain_google_genai
System role: Embedding provider adapter
"""

import logging
from typing import List

from langchain_google_genai import GoogleGenerativeAIEmbeddings

from tutor_rag.configs.embedding import EmbeddingSettings

logger = logging.getLogger(__name__)


class FixedDimensionEmbeddings(GoogleGenerativeAIEmbeddings):
    """
    GoogleGenerativeAIEmbeddings wrapper with fixed output dimensionality.

    The base class ignores output_dimensionality in the constructor, so each
    embed method injects the configured dimension unless the caller overrides it.
    """

    _output_dimensionality: int = 1536

    def __init__(
        self,
        model: str = "models/gemini-embedding-001",
        output_dimensionality: int = 1536,
        **kwargs,
    ) -> None:
        """
        Initialize embeddings with fixed output dimensionality.

        Args:
            model: Google embedding model ID
            output_dimensionality: Fixed dimension for all embeddings
            **kwargs: Additional arguments for GoogleGenerativeAIEmbeddings
        """
        super().__init__(model=model, **kwargs)
        self._output_dimensionality = output_dimensionality
        logger.info(
            f"{__name__}:__init__ - Initialized with model={model}, "
            f"output_dimensionality={output_dimensionality}"
        )

    def embed_documents(
        self,
        texts: List[str],
        *,
        output_dimensionality: int | None = None,
        **kwargs,
    ) -> List[List[float]]:
        dim = output_dimensionality or self._output_dimensionality
        return super().embed_documents(texts, output_dimensionality=dim, **kwargs)

    def embed_query(
        self,
        text: str,
        output_dimensionality: int | None = None,
        **kwargs,
    ) -> List[float]:
        dim = output_dimensionality or self._output_dimensionality
        return super().embed_query(text, output_dimensionality=dim, **kwargs)

    async def aembed_documents(
        self,
        texts: List[str],
        *,
        output_dimensionality: int | None = None,
        **kwargs,
    ) -> List[List[float]]:
        """Async batch embedding with the configured dimension."""
        dim = output_dimensionality or self._output_dimensionality
        return await super().aembed_documents(texts, output_dimensionality=dim, **kwargs)

    async def aembed_query(
        self,
        text: str,
        output_dimensionality: int | None = None,
        **kwargs,
    ) -> List[float]:
        """Async query embedding with the configured dimension."""
        dim = output_dimensionality or self._output_dimensionality
        return await super().aembed_query(text, output_dimensionality=dim, **kwargs)


def build_embeddings(settings: EmbeddingSettings) -> FixedDimensionEmbeddings:
    """Create the production embedding provider from settings."""
    return FixedDimensionEmbeddings(
        model=settings.model,
        output_dimensionality=settings.dimension,
    )
