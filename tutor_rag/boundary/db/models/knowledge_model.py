"""
Knowledge chunk and embedding ORM models.

Chunks are stored once per document and never edited; each chunk owns at
most one embedding row (upserted by chunk_id). Deleting a chunk cascades to
its embedding.

Dependencies: sqlalchemy, pgvector, tutor_rag.boundary.db.base
System role: Persistence for the retrieval corpus
"""

from typing import Any

from sqlalchemy import JSON, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tutor_rag.boundary.db.base import Base, TimestampMixin, UUIDMixin, embedding_column_type
from tutor_rag.configs.embedding import EmbeddingSettings

EMBEDDING_DIMENSION = EmbeddingSettings().dimension


class KnowledgeChunkModel(Base, TimestampMixin):
    """
    A retrievable unit of source text.

    Attributes:
        id: Chunk identifier produced by the chunker (e.g. "notes.txt_chunk_0")
        document_name: Source document the chunk came from
        title: Display title used in prompts and citations
        content: Chunk text
        subject: Exam subject (filterable)
        category: Free-form category such as "textbook" or "exam" (filterable)
        importance_score: Editorial weight, higher ranks first on distance ties
        chunk_index: Position within the source document
        chunk_metadata: Offsets, chunk type and exam info
        embedding: Related VectorEmbeddingModel (cascade delete)
    """

    __tablename__ = "knowledge_chunks"

    id: Mapped[str] = mapped_column(String(512), primary_key=True)
    document_name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(512), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    subject: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)
    category: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)
    importance_score: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    chunk_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    chunk_metadata: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    embedding = relationship(
        "VectorEmbeddingModel",
        back_populates="chunk",
        uselist=False,
        cascade="all, delete-orphan",
    )


class VectorEmbeddingModel(Base, UUIDMixin, TimestampMixin):
    """
    Embedding vector attached 1:1 to a knowledge chunk.

    Attributes:
        chunk_id: Owning chunk (unique, cascades on delete)
        embedding: Vector of the configured dimension
        model_name: Embedding model that produced the vector
    """

    __tablename__ = "vector_embeddings"

    chunk_id: Mapped[str] = mapped_column(
        ForeignKey("knowledge_chunks.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )
    embedding: Mapped[list[float]] = mapped_column(
        embedding_column_type(EMBEDDING_DIMENSION),
        nullable=False,
    )
    model_name: Mapped[str] = mapped_column(String(100), nullable=False)

    chunk = relationship("KnowledgeChunkModel", back_populates="embedding")
