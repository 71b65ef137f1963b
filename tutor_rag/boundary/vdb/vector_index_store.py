"""
Vector index store backed by PostgreSQL + pgvector.

Persists chunk rows and one embedding per chunk, and answers nearest-neighbour
queries by cosine distance. When the native operator is unavailable (SQLite,
disabled by configuration, or a failing query) the store falls back to a
client-side scan over a bounded candidate pool.

The fallback only scores `limit * fallback_pool_multiplier` candidate rows,
so it can miss matches the native path would find. Ordering is identical:
similarity descending, importance descending on ties.

Dependencies: sqlalchemy, pgvector, tutor_rag.application.embedder
System role: Retrieval corpus storage and similarity search
"""

import asyncio
import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tutor_rag.application.embedder import EmbeddingClient, cosine_similarity
from tutor_rag.boundary.db.CRUD.knowledge_crud import knowledge_chunk_crud, vector_embedding_crud
from tutor_rag.boundary.db.models.knowledge_model import KnowledgeChunkModel, VectorEmbeddingModel
from tutor_rag.configs.retrieval import RetrievalSettings
from tutor_rag.core.exceptions import InvalidEmbeddingError, VectorStoreError
from tutor_rag.models.chunk import Chunk, ChunkType
from tutor_rag.models.search import EmbeddingStatus, SearchOptions, SearchResult
from tutor_rag.observability.log_utils import preview_text

logger = logging.getLogger(__name__)

RELATED_KNOWLEDGE_THRESHOLD = 0.6


class VectorIndexStore:
    """
    Chunk + embedding store with native and fallback similarity search.

    Every datastore round-trip is bounded by `query_timeout_seconds`;
    a timeout surfaces as VectorStoreError.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        embedder: EmbeddingClient,
        settings: RetrievalSettings | None = None,
    ) -> None:
        """
        Initialize vector index store.

        Args:
            session_factory: Async session factory bound to the corpus database
            embedder: Embedding client used for query vectors and validation
            settings: Retrieval settings (native toggle, pool size, timeout)
        """
        self._session_factory = session_factory
        self._embedder = embedder
        self._settings = settings or RetrievalSettings()
        self._chunks = knowledge_chunk_crud
        self._embeddings = vector_embedding_crud

    async def _run(self, coro, operation: str):
        try:
            return await asyncio.wait_for(coro, timeout=self._settings.query_timeout_seconds)
        except asyncio.TimeoutError as e:
            raise VectorStoreError(
                "Datastore query timed out",
                operation=operation,
                details={"timeout_seconds": self._settings.query_timeout_seconds},
            ) from e

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def add_chunks(
        self,
        chunks: list[Chunk],
        document_name: str,
        category: str | None = None,
        importance_score: int = 1,
    ) -> int:
        """
        Batch insert chunks for a document.

        Args:
            chunks: Chunker output for one document
            document_name: Source document name
            category: Category to store (defaults to "exam" for question chunks,
                "textbook" otherwise)
            importance_score: Editorial weight for ranking ties

        Returns:
            int: Number of chunks inserted

        Raises:
            VectorStoreError: If the insert fails
        """
        if not chunks:
            return 0

        rows = []
        for chunk in chunks:
            meta = chunk.metadata
            rows.append({
                "id": chunk.id,
                "document_name": document_name,
                "title": f"{document_name} ({meta.chunk_index + 1}/{meta.total_chunks})",
                "content": chunk.content,
                "subject": meta.subject,
                "category": category
                or ("exam" if meta.chunk_type == ChunkType.QUESTION else "textbook"),
                "importance_score": importance_score,
                "chunk_index": meta.chunk_index,
                "chunk_metadata": meta.model_dump(mode="json"),
            })

        async def _insert() -> int:
            async with self._session_factory() as session:
                count = await self._chunks.create_many(session, rows)
                await session.commit()
                return count

        try:
            count = await self._run(_insert(), "add_chunks")
        except SQLAlchemyError as e:
            logger.error(f"{__name__}:add_chunks - {type(e).__name__}: {e}")
            raise VectorStoreError(
                f"Failed to insert chunks: {e}",
                operation="add_chunks",
                details={"document_name": document_name},
            ) from e

        logger.info(f"{__name__}:add_chunks - Stored {count} chunks for '{document_name}'")
        return count

    async def upsert_embedding(self, chunk_id: str, vector: list[float]) -> None:
        """
        Store or replace the embedding of a chunk.

        Raises:
            InvalidEmbeddingError: If the vector is malformed
            VectorStoreError: If the chunk does not exist or the write fails
        """
        valid = self._embedder.ensure_valid(vector)

        async def _upsert() -> None:
            async with self._session_factory() as session:
                if await self._chunks.get_by_id(session, chunk_id) is None:
                    raise VectorStoreError(
                        "Chunk not found",
                        operation="upsert",
                        details={"chunk_id": chunk_id},
                    )
                await self._embeddings.upsert(
                    session,
                    chunk_id=chunk_id,
                    embedding=valid,
                    model_name=self._embedder.model_name,
                )
                await session.commit()

        try:
            await self._run(_upsert(), "upsert")
        except SQLAlchemyError as e:
            logger.error(f"{__name__}:upsert_embedding - {type(e).__name__}: {e}")
            raise VectorStoreError(
                f"Failed to store embedding: {e}",
                operation="upsert",
                details={"chunk_id": chunk_id},
            ) from e

    async def delete_document(self, document_name: str) -> int:
        """
        Delete a document's chunks and their embeddings.

        Returns:
            int: Number of chunks deleted
        """

        async def _delete() -> int:
            async with self._session_factory() as session:
                deleted = await self._chunks.delete_by_document(session, document_name)
                await session.commit()
                return deleted

        try:
            deleted = await self._run(_delete(), "delete")
        except SQLAlchemyError as e:
            raise VectorStoreError(
                f"Failed to delete document: {e}",
                operation="delete",
                details={"document_name": document_name},
            ) from e

        logger.info(f"{__name__}:delete_document - Deleted {deleted} chunks of '{document_name}'")
        return deleted

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_chunk(self, chunk_id: str) -> KnowledgeChunkModel | None:
        try:
            async with self._session_factory() as session:
                return await self._run(self._chunks.get_by_id(session, chunk_id), "get_chunk")
        except SQLAlchemyError as e:
            raise VectorStoreError(
                f"Failed to read chunk: {e}",
                operation="get_chunk",
                details={"chunk_id": chunk_id},
            ) from e

    async def get_chunks(self, chunk_ids: list[str]) -> list[KnowledgeChunkModel]:
        try:
            async with self._session_factory() as session:
                rows = await self._run(self._chunks.get_by_ids(session, chunk_ids), "get_chunks")
                return list(rows)
        except SQLAlchemyError as e:
            raise VectorStoreError(
                f"Failed to read chunks: {e}",
                operation="get_chunks",
                details={"count": len(chunk_ids)},
            ) from e

    async def list_chunk_ids(self) -> list[str]:
        try:
            async with self._session_factory() as session:
                return await self._run(self._chunks.list_ids(session), "list_chunk_ids")
        except SQLAlchemyError as e:
            raise VectorStoreError(f"Failed to list chunk ids: {e}", operation="list_chunk_ids") from e

    async def get_embedding_status(self) -> EmbeddingStatus:
        """
        Reconcile chunks against stored embeddings.

        Returns:
            EmbeddingStatus: Totals plus the exact ids missing an embedding
        """

        async def _status() -> EmbeddingStatus:
            async with self._session_factory() as session:
                total = await self._chunks.count(session)
                embedded = await self._embeddings.count(session)
                missing = await self._chunks.get_ids_without_embedding(session)
            return EmbeddingStatus(total=total, embedded=embedded, missing_ids=missing)

        try:
            return await self._run(_status(), "status")
        except SQLAlchemyError as e:
            raise VectorStoreError(f"Failed to read embedding status: {e}", operation="status") from e

    async def search_similar(
        self,
        query: str,
        options: SearchOptions | None = None,
    ) -> list[SearchResult]:
        """
        Find chunks similar to the query.

        Args:
            query: Natural-language query (preprocessed like ingestion text)
            options: Filters, limit and similarity threshold

        Returns:
            list[SearchResult]: Similarity descending, importance descending on ties

        Raises:
            EmbeddingError: Query embedding failed
            VectorStoreError: Datastore failure on the fallback path or timeout
        """
        options = options or SearchOptions()
        query_vector = await self._embedder.generate_embedding(query)

        async with self._session_factory() as session:
            if self._use_native(session):
                try:
                    results = await self._run(
                        self._search_native(session, query_vector, options),
                        "search",
                    )
                    logger.info(
                        f"{__name__}:search_similar - Native search returned {len(results)} results",
                        extra={"query": preview_text(query), "limit": options.limit},
                    )
                    return results
                except SQLAlchemyError as e:
                    await session.rollback()
                    logger.warning(
                        f"{__name__}:search_similar - Native vector search failed, "
                        f"using client-side fallback: {e}"
                    )

            try:
                results = await self._run(
                    self._search_fallback(session, query_vector, options),
                    "search",
                )
            except SQLAlchemyError as e:
                raise VectorStoreError(f"Vector search failed: {e}", operation="search") from e

        logger.warning(
            f"{__name__}:search_similar - Client-side fallback scan returned {len(results)} results",
            extra={"query": preview_text(query), "limit": options.limit},
        )
        return results

    async def find_related_knowledge(
        self,
        subject: str,
        topic: str,
        limit: int = 5,
    ) -> list[SearchResult]:
        """Search for explanations of a topic within one subject."""
        return await self.search_similar(
            f"{subject} {topic}에 대해 설명해주세요",
            SearchOptions(
                subject=subject,
                limit=limit,
                similarity_threshold=RELATED_KNOWLEDGE_THRESHOLD,
            ),
        )

    # ------------------------------------------------------------------
    # Search paths
    # ------------------------------------------------------------------

    def _use_native(self, session: AsyncSession) -> bool:
        return (
            self._settings.native_vector_search
            and session.bind is not None
            and session.bind.dialect.name == "postgresql"
        )

    @staticmethod
    def _apply_filters(stmt, options: SearchOptions):
        if options.subject:
            stmt = stmt.where(KnowledgeChunkModel.subject == options.subject)
        if options.category:
            stmt = stmt.where(KnowledgeChunkModel.category == options.category)
        return stmt

    @staticmethod
    def _to_result(row: KnowledgeChunkModel, similarity: float, options: SearchOptions) -> SearchResult:
        return SearchResult(
            chunk_id=row.id,
            title=row.title,
            document_name=row.document_name,
            chunk_index=row.chunk_index,
            content=row.content,
            subject=row.subject,
            category=row.category,
            similarity_score=min(max(similarity, 0.0), 1.0),
            importance_score=row.importance_score,
            metadata=dict(row.chunk_metadata or {}) if options.include_metadata else None,
        )

    async def _search_native(
        self,
        session: AsyncSession,
        query_vector: list[float],
        options: SearchOptions,
    ) -> list[SearchResult]:
        distance = VectorEmbeddingModel.embedding.cosine_distance(query_vector)
        max_distance = 1 - options.similarity_threshold

        stmt = select(KnowledgeChunkModel, distance.label("distance")).join(
            VectorEmbeddingModel,
            VectorEmbeddingModel.chunk_id == KnowledgeChunkModel.id,
        )
        stmt = self._apply_filters(stmt, options)
        stmt = (
            stmt.where(distance <= max_distance)
            .order_by(distance.asc(), KnowledgeChunkModel.importance_score.desc())
            .limit(options.limit)
        )

        result = await session.execute(stmt)
        return [
            self._to_result(row, 1 - float(dist), options)
            for row, dist in result.all()
        ]

    async def _search_fallback(
        self,
        session: AsyncSession,
        query_vector: list[float],
        options: SearchOptions,
    ) -> list[SearchResult]:
        pool_size = options.limit * self._settings.fallback_pool_multiplier
        stmt = select(KnowledgeChunkModel, VectorEmbeddingModel.embedding).join(
            VectorEmbeddingModel,
            VectorEmbeddingModel.chunk_id == KnowledgeChunkModel.id,
        )
        stmt = self._apply_filters(stmt, options)
        stmt = stmt.order_by(
            KnowledgeChunkModel.importance_score.desc(),
            KnowledgeChunkModel.id,
        ).limit(pool_size)

        result = await session.execute(stmt)
        scored: list[tuple[float, KnowledgeChunkModel]] = []
        for row, stored in result.all():
            try:
                similarity = cosine_similarity(query_vector, _as_floats(stored))
            except (InvalidEmbeddingError, TypeError, ValueError):
                logger.warning(
                    f"{__name__}:_search_fallback - Unreadable embedding for chunk {row.id}"
                )
                continue
            if similarity >= options.similarity_threshold:
                scored.append((similarity, row))

        scored.sort(key=lambda item: (-item[0], -item[1].importance_score))
        return [self._to_result(row, sim, options) for sim, row in scored[: options.limit]]


def _as_floats(stored: Any) -> list[float]:
    """Stored vectors arrive as lists (JSON) or numpy arrays (pgvector)."""
    return [float(v) for v in stored]
