"""
Document ingestion service.

Chunks a document, stores the chunks and embeds them. Embedding is tried in
provider batches first; a failed batch falls back to single-chunk calls run
with bounded concurrency and a fixed delay per call. One chunk failing never
aborts the run: failures are tallied and can be retried with
`embed_missing()`.

Dependencies: tutor_rag.application, tutor_rag.boundary.vdb
System role: Offline ingestion path
"""

import asyncio
import logging

from tutor_rag.application.chunker import DocumentChunker, validate_chunk_quality
from tutor_rag.application.embedder import EmbeddingClient
from tutor_rag.boundary.db.models.knowledge_model import KnowledgeChunkModel
from tutor_rag.boundary.vdb.vector_index_store import VectorIndexStore
from tutor_rag.configs.embedding import EmbeddingSettings
from tutor_rag.core.exceptions import IngestionError, TutorRAGException
from tutor_rag.models.chunk import ChunkingOptions
from tutor_rag.models.ingestion import EmbeddingBatchResult, IngestionResult
from tutor_rag.observability.log_utils import log_with_context

logger = logging.getLogger(__name__)


def embedding_text(chunk: KnowledgeChunkModel) -> str:
    return f"{chunk.title}\n\n{chunk.content}"


class IngestionService:
    """Chunk → store → embed pipeline with partial-failure accounting."""

    def __init__(
        self,
        chunker: DocumentChunker,
        vector_store: VectorIndexStore,
        embedder: EmbeddingClient,
        settings: EmbeddingSettings | None = None,
    ) -> None:
        """
        Initialize ingestion service.

        Args:
            chunker: Document chunker
            vector_store: Store receiving chunks and embeddings
            embedder: Embedding client
            settings: Batch size, concurrency bound and per-call delay
        """
        self._chunker = chunker
        self._vector_store = vector_store
        self._embedder = embedder
        self._settings = settings or EmbeddingSettings()

    async def ingest_document(
        self,
        content: str,
        source_name: str,
        options: ChunkingOptions | None = None,
        category: str | None = None,
        importance_score: int = 1,
    ) -> IngestionResult:
        """
        Ingest one document, replacing any previous version with the same name.

        Args:
            content: Raw document text
            source_name: Document name
            options: Chunking options
            category: Category stored on every chunk
            importance_score: Ranking weight stored on every chunk

        Returns:
            IngestionResult: Chunk count, quality issues and embedding tallies

        Raises:
            IngestionError: Empty document or chunk storage failure
        """
        chunks = self._chunker.chunk(content, source_name, options)
        if not chunks:
            raise IngestionError("Document produced no chunks", document_name=source_name)

        report = validate_chunk_quality(chunks)
        for issue in report.issues:
            logger.warning(f"{__name__}:ingest_document - '{source_name}': {issue}")

        try:
            replaced = await self._vector_store.delete_document(source_name)
            if replaced:
                logger.info(f"{__name__}:ingest_document - Replacing {replaced} chunks of '{source_name}'")
            await self._vector_store.add_chunks(chunks, source_name, category, importance_score)
        except TutorRAGException as e:
            raise IngestionError(
                f"Failed to store chunks: {e.message}",
                document_name=source_name,
                details=e.details,
            ) from e

        batch = await self.embed_chunks([c.id for c in chunks])
        logger.info(
            f"{__name__}:ingest_document - Ingested '{source_name}'",
            extra={"chunks": len(chunks), "embedded": batch.success, "failed": batch.failed},
        )
        return IngestionResult(
            document_name=source_name,
            chunk_count=len(chunks),
            quality_issues=report.issues,
            embedded=batch.success,
            failed=batch.failed,
            failed_ids=batch.failed_ids,
        )

    async def embed_chunks(self, chunk_ids: list[str]) -> EmbeddingBatchResult:
        """
        Embed and store vectors for the given chunks.

        Unknown ids count as failures.

        Returns:
            EmbeddingBatchResult: success/failed tallies and the failed ids
        """
        result = EmbeddingBatchResult()
        if not chunk_ids:
            return result

        try:
            rows = await self._vector_store.get_chunks(chunk_ids)
        except TutorRAGException as e:
            logger.error(f"{__name__}:embed_chunks - Could not load chunks: {e}")
            return EmbeddingBatchResult(failed=len(chunk_ids), failed_ids=list(chunk_ids))

        found = {row.id for row in rows}
        for chunk_id in chunk_ids:
            if chunk_id not in found:
                result.failed += 1
                result.failed_ids.append(chunk_id)

        batch_size = self._settings.batch_size
        for start in range(0, len(rows), batch_size):
            await self._embed_batch(rows[start : start + batch_size], result)

        logger.info(
            f"{__name__}:embed_chunks - Embedded {result.success}/{len(chunk_ids)} chunks",
            extra={"failed": result.failed},
        )
        return result

    async def embed_missing(self) -> EmbeddingBatchResult:
        """Embed exactly the chunks that currently lack an embedding."""
        status = await self._vector_store.get_embedding_status()
        if not status.missing_ids:
            logger.info(f"{__name__}:embed_missing - No missing embeddings")
            return EmbeddingBatchResult()
        logger.info(f"{__name__}:embed_missing - Backfilling {len(status.missing_ids)} chunks")
        return await self.embed_chunks(status.missing_ids)

    async def create_all_embeddings(self) -> EmbeddingBatchResult:
        """Re-embed every chunk in the corpus."""
        chunk_ids = await self._vector_store.list_chunk_ids()
        logger.info(f"{__name__}:create_all_embeddings - Re-embedding {len(chunk_ids)} chunks")
        return await self.embed_chunks(chunk_ids)

    async def _embed_batch(
        self,
        rows: list[KnowledgeChunkModel],
        result: EmbeddingBatchResult,
    ) -> None:
        try:
            vectors = await self._embedder.generate_embeddings([embedding_text(r) for r in rows])
        except TutorRAGException as e:
            logger.warning(
                f"{__name__}:_embed_batch - Batch of {len(rows)} failed, embedding one by one: {e}"
            )
            await self._embed_individually(rows, result)
            return

        for row, vector in zip(rows, vectors):
            await self._store(row, vector, result)

    async def _embed_individually(
        self,
        rows: list[KnowledgeChunkModel],
        result: EmbeddingBatchResult,
    ) -> None:
        semaphore = asyncio.Semaphore(self._settings.max_concurrency)

        async def _one(row: KnowledgeChunkModel) -> None:
            async with semaphore:
                if self._settings.request_interval_seconds:
                    await asyncio.sleep(self._settings.request_interval_seconds)
                try:
                    vector = await self._embedder.generate_embedding(embedding_text(row))
                except TutorRAGException as e:
                    logger.error(f"{__name__}:_embed_individually - Chunk {row.id} failed: {e}")
                    result.failed += 1
                    result.failed_ids.append(row.id)
                    return
                await self._store(row, vector, result)

        await asyncio.gather(*(_one(row) for row in rows))

    async def _store(
        self,
        row: KnowledgeChunkModel,
        vector: list[float],
        result: EmbeddingBatchResult,
    ) -> None:
        try:
            await self._vector_store.upsert_embedding(row.id, vector)
        except TutorRAGException as e:
            logger.error(f"{__name__}:_store - Could not store embedding for {row.id}: {e}")
            result.failed += 1
            result.failed_ids.append(row.id)
            return
        result.success += 1
        log_with_context(
            logger,
            logging.DEBUG,
            f"{__name__}:_store - Embedding stored",
            **self._embedder.create_embedding_metadata(row.id, embedding_text(row)),
        )
