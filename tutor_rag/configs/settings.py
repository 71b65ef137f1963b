"""
Unified application settings.

Aggregates all configuration modules into a single Settings class.
Provides dependency injection factory for FastAPI.

Dependencies: All config modules
System role: Central configuration aggregator for the application
"""

from functools import lru_cache

from pydantic import Field

from tutor_rag.configs.base import BaseSettings
from tutor_rag.configs.database import DatabaseSettings
from tutor_rag.configs.embedding import EmbeddingSettings
from tutor_rag.configs.generation import CacheSettings, CompletionSettings
from tutor_rag.configs.retrieval import ChunkingSettings, RetrievalSettings, WebSearchSettings


class Settings(BaseSettings):
    """Unified application settings aggregating all config modules."""

    # Aggregated settings
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    embedding: EmbeddingSettings = Field(default_factory=EmbeddingSettings)
    retrieval: RetrievalSettings = Field(default_factory=RetrievalSettings)
    web_search: WebSearchSettings = Field(default_factory=WebSearchSettings)
    chunking: ChunkingSettings = Field(default_factory=ChunkingSettings)
    completion: CompletionSettings = Field(default_factory=CompletionSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)


@lru_cache
def get_settings() -> Settings:
    """
    Get application settings singleton.

    Returns Settings instance, cached for dependency injection.
    Environment variables loaded once at startup.

    Returns:
        Settings: Application settings instance

    Usage:
        from tutor_rag.configs import get_settings
        settings = get_settings()
    """
    return Settings()
