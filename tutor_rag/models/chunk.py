"""
Chunk domain model.

Represents a retrievable unit of a source document plus the options and
quality report produced by the chunker.

Dependencies: pydantic
System role: Document chunk data structure
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ChunkType(str, Enum):
    """Chunking strategy applied to (or requested for) a document."""

    TEXTBOOK = "textbook"
    QUESTION = "question"
    MIXED = "mixed"
    AUTO = "auto"


class ExamInfo(BaseModel):
    """Exam sitting a past-paper document belongs to."""

    model_config = ConfigDict(frozen=True)

    year: int = Field(description="Exam year, e.g. 2023")
    round: int = Field(description="Exam round within the year")


class ChunkMetadata(BaseModel):
    """Positional and classification metadata for a chunk."""

    model_config = ConfigDict(frozen=True)

    chunk_index: int = Field(description="Contiguous index within the source document", ge=0)
    total_chunks: int = Field(description="Number of chunks produced for the document", ge=1)
    start_offset: int = Field(description="Start offset in the source text", ge=0)
    end_offset: int = Field(description="End offset (exclusive) in the source text", ge=0)
    chunk_type: ChunkType = Field(description="Strategy that produced this chunk")
    subject: str | None = Field(default=None, description="Exam subject detected for the document")
    exam_info: ExamInfo | None = Field(default=None, description="Exam year/round if detected")

    @model_validator(mode="after")
    def _offsets_ordered(self) -> "ChunkMetadata":
        if self.start_offset > self.end_offset:
            raise ValueError("start_offset must not exceed end_offset")
        return self


class Chunk(BaseModel):
    """Document chunk model."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Chunk identifier, unique within the corpus")
    content: str = Field(description="Chunk text content")
    metadata: ChunkMetadata = Field(description="Chunk position and classification")


class ChunkingOptions(BaseModel):
    """Parameters for a single chunking run."""

    max_chunk_size: int = Field(default=2000, description="Textbook window size", gt=0)
    overlap_size: int = Field(default=200, description="Overlap carried into the next window", ge=0)
    chunk_type: ChunkType = Field(default=ChunkType.AUTO, description="Strategy, or auto-detect")

    @model_validator(mode="after")
    def _overlap_smaller_than_window(self) -> "ChunkingOptions":
        if self.overlap_size >= self.max_chunk_size:
            raise ValueError("overlap_size must be smaller than max_chunk_size")
        return self


class FileMetadata(BaseModel):
    """Signals extracted from a document's name and content."""

    exam_info: ExamInfo | None = None
    subject: str | None = None
    has_questions: bool = False
    is_textbook: bool = False


class ChunkQualityReport(BaseModel):
    """Outcome of the chunk quality gate. Issues flag, they do not reject."""

    is_valid: bool
    issues: list[str] = Field(default_factory=list)
