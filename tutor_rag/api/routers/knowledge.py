"""
Knowledge corpus API endpoints.

Routes:
- POST /knowledge/documents - Ingest a document (chunk, store, embed)
- DELETE /knowledge/documents/{document_name} - Delete a document and its embeddings
- POST /knowledge/search - Vector similarity search
- GET /knowledge/related - Explanations of a topic within one subject
- GET /knowledge/chunks/{chunk_id} - One stored chunk
- GET /knowledge/embeddings/status - Chunks versus stored embeddings
- POST /knowledge/embeddings/backfill - Embed missing (or all) chunks

Dependencies: tutor_rag.application.ingestion_service, tutor_rag.boundary.vdb
System role: Corpus management HTTP API
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status

from tutor_rag.api.deps import get_ingestion_service, get_settings_dependency, get_vector_store
from tutor_rag.application.ingestion_service import IngestionService
from tutor_rag.boundary.vdb.vector_index_store import VectorIndexStore
from tutor_rag.configs import Settings
from tutor_rag.models.api import (
    DeleteDocumentResponse,
    IngestRequest,
    KnowledgeChunkResponse,
    SearchRequest,
)
from tutor_rag.models.chunk import ChunkingOptions
from tutor_rag.models.ingestion import EmbeddingBatchResult, IngestionResult
from tutor_rag.models.search import EmbeddingStatus, SearchResult

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/knowledge", tags=["knowledge"])


@router.post("/documents", response_model=IngestionResult, status_code=status.HTTP_201_CREATED)
async def ingest_document(
    request: IngestRequest,
    ingestion: IngestionService = Depends(get_ingestion_service),
    settings: Settings = Depends(get_settings_dependency),
) -> IngestionResult:
    """
    Ingest a document, replacing any previous version with the same name.

    Embedding failures do not fail the request; they are reported in the
    result and can be retried with the backfill endpoint.
    """
    chunking = settings.chunking
    options = ChunkingOptions(
        max_chunk_size=request.max_chunk_size or chunking.max_chunk_size,
        overlap_size=(
            request.overlap_size if request.overlap_size is not None else chunking.overlap_size
        ),
        chunk_type=request.chunk_type,
    )
    logger.info(f"{__name__}:ingest_document - START document_name={request.document_name}")
    return await ingestion.ingest_document(
        request.content,
        request.document_name,
        options,
        category=request.category,
        importance_score=request.importance_score,
    )


@router.delete("/documents/{document_name}", response_model=DeleteDocumentResponse)
async def delete_document(
    document_name: str,
    vector_store: VectorIndexStore = Depends(get_vector_store),
) -> DeleteDocumentResponse:
    deleted = await vector_store.delete_document(document_name)
    return DeleteDocumentResponse(document_name=document_name, deleted_chunks=deleted)


@router.post("/search", response_model=list[SearchResult])
async def search(
    request: SearchRequest,
    vector_store: VectorIndexStore = Depends(get_vector_store),
) -> list[SearchResult]:
    return await vector_store.search_similar(request.query, request.options)


@router.get("/related", response_model=list[SearchResult])
async def related_knowledge(
    subject: str = Query(..., min_length=1, description="Exam subject, e.g. 데이터베이스 구축"),
    topic: str = Query(..., min_length=1),
    limit: int = Query(default=5, ge=1, le=20),
    vector_store: VectorIndexStore = Depends(get_vector_store),
) -> list[SearchResult]:
    """Explanatory chunks for a topic within one subject."""
    return await vector_store.find_related_knowledge(subject, topic, limit)


@router.get("/chunks/{chunk_id}", response_model=KnowledgeChunkResponse)
async def get_chunk(
    chunk_id: str,
    vector_store: VectorIndexStore = Depends(get_vector_store),
) -> KnowledgeChunkResponse:
    chunk = await vector_store.get_chunk(chunk_id)
    if chunk is None:
        raise HTTPException(status_code=404, detail=f"Chunk not found: {chunk_id}")
    return KnowledgeChunkResponse.model_validate(chunk)


@router.get("/embeddings/status", response_model=EmbeddingStatus)
async def embedding_status(
    vector_store: VectorIndexStore = Depends(get_vector_store),
) -> EmbeddingStatus:
    return await vector_store.get_embedding_status()


@router.post("/embeddings/backfill", response_model=EmbeddingBatchResult)
async def backfill_embeddings(
    full: bool = Query(default=False, description="Re-embed every chunk instead of only missing ones"),
    ingestion: IngestionService = Depends(get_ingestion_service),
) -> EmbeddingBatchResult:
    if full:
        return await ingestion.create_all_embeddings()
    return await ingestion.embed_missing()
