"""
Retrieval configuration settings.

Vector search thresholds, hybrid retrieval policy, web search provider and
chunking defaults.

Dependencies: pydantic, pydantic_settings
System role: Retrieval pipeline configuration
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class RetrievalSettings(BaseSettings):
    """Vector index and hybrid retrieval configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="RETRIEVAL_",
        case_sensitive=False,
        extra="ignore",
    )

    similarity_threshold: float = Field(
        default=0.7,
        description="Default minimum similarity for vector search (0.0-1.0)",
        ge=0.0,
        le=1.0,
    )
    high_quality_similarity: float = Field(
        default=0.8,
        description="Similarity above which a vector hit counts as high quality",
        ge=0.0,
        le=1.0,
    )
    min_vector_results: int = Field(
        default=3,
        description="Below this many vector hits the web search fallback runs",
        ge=0,
    )
    native_vector_search: bool = Field(
        default=True,
        description="Use the pgvector distance operator when the database supports it",
    )
    fallback_pool_multiplier: int = Field(
        default=1,
        description="Candidate rows scanned client-side = limit * multiplier",
        ge=1,
    )
    query_timeout_seconds: float = Field(default=15.0, description="Datastore query timeout")


class WebSearchSettings(BaseSettings):
    """Tavily web search configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="WEB_SEARCH_",
        case_sensitive=False,
        extra="ignore",
    )

    api_key: str | None = Field(default=None, description="Tavily API key; web search disabled if unset")
    endpoint: str = Field(default="https://api.tavily.com/search", description="Search endpoint URL")
    search_depth: str = Field(default="basic", description="Tavily search depth")
    query_prefix: str = Field(
        default="정보처리기사 ",
        description="Prefix that scopes outgoing queries to the exam domain",
    )
    allowed_domains: list[str] = Field(
        default=[
            "www.kisa.or.kr",
            "www.tta.or.kr",
            "cafe.naver.com",
            "blog.naver.com",
            "tistory.com",
            "github.io",
        ],
        description="Trusted domains results are restricted to",
    )
    cache_ttl_hours: int = Field(default=24, description="Reuse cached responses younger than this")
    timeout_seconds: float = Field(default=10.0, description="HTTP timeout for the provider")


class ChunkingSettings(BaseSettings):
    """Default chunking parameters for document ingestion."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="CHUNKING_",
        case_sensitive=False,
        extra="ignore",
    )

    max_chunk_size: int = Field(default=2000, description="Textbook window size in characters")
    overlap_size: int = Field(default=200, description="Overlap carried into the next window")
