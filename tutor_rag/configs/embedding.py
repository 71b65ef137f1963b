"""
Embedding provider configuration.

Model, dimension and throttling knobs for embedding generation.
The dimension is part of the stored vector contract: changing it requires
re-embedding every chunk.

Dependencies: pydantic, pydantic_settings
System role: Embedding client configuration
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class EmbeddingSettings(BaseSettings):
    """Embedding model and batching configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="EMBEDDING_",
        case_sensitive=False,
        extra="ignore",
    )

    model: str = Field(
        default="models/gemini-embedding-001",
        description="Google embedding model ID (supports reduced output dimensionality)",
    )
    dimension: int = Field(default=1536, description="Embedding vector dimension", gt=0)
    max_input_chars: int = Field(
        default=8000,
        description="Hard truncation length applied during preprocessing",
    )
    batch_size: int = Field(default=32, description="Texts per provider batch call", ge=1)
    timeout_seconds: float = Field(default=30.0, description="Per-call provider timeout")

    # Ingestion throttling
    max_concurrency: int = Field(
        default=4,
        description="Concurrent single-chunk embedding calls during ingestion",
        ge=1,
    )
    request_interval_seconds: float = Field(
        default=0.2,
        description="Delay before each single-chunk call to respect provider rate limits",
        ge=0.0,
    )
