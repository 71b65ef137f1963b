"""
Generation and caching configuration.

Completion model parameters and the response/material cache bounds.

Dependencies: pydantic, pydantic_settings
System role: Answer generation configuration
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class CompletionSettings(BaseSettings):
    """Chat completion model configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="COMPLETION_",
        case_sensitive=False,
        extra="ignore",
    )

    model: str = Field(default="gemini-2.5-flash", description="Chat model identifier")
    temperature: float = Field(default=0.3, description="Sampling temperature for answers")
    max_tokens: int = Field(default=1000, description="Maximum output tokens for answers")
    material_temperature: float = Field(default=0.4, description="Temperature for material generation")
    material_max_tokens: int = Field(default=3000, description="Output budget for material generation")
    timeout_seconds: float = Field(default=60.0, description="Per-call provider timeout")
    history_window: int = Field(default=6, description="Recent conversation messages kept in hybrid prompts")


class CacheSettings(BaseSettings):
    """Response/material cache bounds."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="RESPONSE_CACHE_",
        case_sensitive=False,
        extra="ignore",
    )

    ttl_seconds: int = Field(default=30 * 60, description="Entry lifetime from creation")
    max_entries: int = Field(default=50, description="Capacity before oldest-entry eviction", ge=1)
    sweep_interval_seconds: int = Field(default=5 * 60, description="Expired-entry sweep period")
    progress_quantum: int = Field(default=25, description="Progress points per cache version", ge=1)
