"""
Ingestion result models.

Dependencies: pydantic
System role: Ingestion and embedding backfill reporting
"""

from pydantic import BaseModel, Field


class EmbeddingBatchResult(BaseModel):
    """Tally of one embedding run; order of results is irrelevant."""

    success: int = 0
    failed: int = 0
    failed_ids: list[str] = Field(default_factory=list)


class IngestionResult(BaseModel):
    """Outcome of ingesting one document."""

    document_name: str
    chunk_count: int
    quality_issues: list[str] = Field(default_factory=list)
    embedded: int = 0
    failed: int = 0
    failed_ids: list[str] = Field(default_factory=list)
