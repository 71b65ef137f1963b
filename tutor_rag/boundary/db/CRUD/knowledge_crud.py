"""
Knowledge chunk and embedding CRUD operations.

Dependencies: sqlalchemy, tutor_rag.boundary.db.models
System role: Corpus persistence operations
"""

from typing import Sequence

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from tutor_rag.boundary.db.CRUD.base_crud import BaseCRUD
from tutor_rag.boundary.db.models.knowledge_model import KnowledgeChunkModel, VectorEmbeddingModel


class KnowledgeChunkCRUD(BaseCRUD[KnowledgeChunkModel]):
    """
    CRUD operations for KnowledgeChunkModel.

    Extends BaseCRUD with document-scoped queries and the embedding
    reconciliation join.
    """

    def __init__(self) -> None:
        """Initialize KnowledgeChunkCRUD with KnowledgeChunkModel."""
        super().__init__(KnowledgeChunkModel)

    async def get_by_ids(
        self,
        session: AsyncSession,
        chunk_ids: list[str],
    ) -> Sequence[KnowledgeChunkModel]:
        if not chunk_ids:
            return []
        stmt = select(KnowledgeChunkModel).where(KnowledgeChunkModel.id.in_(chunk_ids))
        result = await session.execute(stmt)
        return result.scalars().all()

    async def list_ids(self, session: AsyncSession) -> list[str]:
        result = await session.execute(
            select(KnowledgeChunkModel.id).order_by(KnowledgeChunkModel.id)
        )
        return list(result.scalars().all())

    async def get_ids_by_document(self, session: AsyncSession, document_name: str) -> list[str]:
        stmt = select(KnowledgeChunkModel.id).where(
            KnowledgeChunkModel.document_name == document_name
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    async def get_ids_without_embedding(self, session: AsyncSession) -> list[str]:
        """
        Chunk ids that have no embedding row (outer join set difference).

        Returns:
            list[str]: Missing chunk ids in id order
        """
        stmt = (
            select(KnowledgeChunkModel.id)
            .outerjoin(
                VectorEmbeddingModel,
                VectorEmbeddingModel.chunk_id == KnowledgeChunkModel.id,
            )
            .where(VectorEmbeddingModel.id.is_(None))
            .order_by(KnowledgeChunkModel.id)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    async def delete_by_document(self, session: AsyncSession, document_name: str) -> int:
        """
        Delete every chunk of a document together with its embeddings.

        Embeddings are removed explicitly first so the cascade holds on
        databases that do not enforce foreign keys (SQLite).

        Returns:
            int: Number of chunks deleted
        """
        chunk_ids = await self.get_ids_by_document(session, document_name)
        if not chunk_ids:
            return 0
        await session.execute(
            delete(VectorEmbeddingModel).where(VectorEmbeddingModel.chunk_id.in_(chunk_ids))
        )
        result = await session.execute(
            delete(KnowledgeChunkModel).where(KnowledgeChunkModel.id.in_(chunk_ids))
        )
        return result.rowcount


class VectorEmbeddingCRUD(BaseCRUD[VectorEmbeddingModel]):
    """CRUD operations for VectorEmbeddingModel with upsert-by-chunk semantics."""

    def __init__(self) -> None:
        """Initialize VectorEmbeddingCRUD with VectorEmbeddingModel."""
        super().__init__(VectorEmbeddingModel)

    async def get_by_chunk_id(
        self,
        session: AsyncSession,
        chunk_id: str,
    ) -> VectorEmbeddingModel | None:
        stmt = select(VectorEmbeddingModel).where(VectorEmbeddingModel.chunk_id == chunk_id)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def upsert(
        self,
        session: AsyncSession,
        chunk_id: str,
        embedding: list[float],
        model_name: str,
    ) -> VectorEmbeddingModel:
        """
        Replace the chunk's embedding, or insert one if absent.

        Returns:
            VectorEmbeddingModel: The stored row
        """
        existing = await self.get_by_chunk_id(session, chunk_id)
        if existing is not None:
            existing.embedding = embedding
            existing.model_name = model_name
            await session.flush()
            return existing
        return await self.create(
            session,
            chunk_id=chunk_id,
            embedding=embedding,
            model_name=model_name,
        )


knowledge_chunk_crud = KnowledgeChunkCRUD()
vector_embedding_crud = VectorEmbeddingCRUD()
