"""
Tutor answer API endpoints.

Routes:
- POST /rag/ask - Answer from the knowledge corpus
- POST /rag/ask/stream - Stream an answer using Server-Sent Events (SSE)
- POST /rag/hybrid - Answer from knowledge corpus and web search
- POST /rag/explain - Detailed topic explanation
- POST /rag/related - Related topics and follow-up questions
- POST /rag/classify - Route a question to an exam subject
- POST /rag/materials - Recommended study materials
- GET /rag/status - Corpus readiness

Dependencies: tutor_rag.core.rag, tutor_rag.application.material_service
System role: Question answering HTTP API
"""

import json
import logging
from collections.abc import AsyncGenerator

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from tutor_rag.api.deps import get_material_service, get_orchestrator
from tutor_rag.application.material_service import MaterialRecommendationService
from tutor_rag.core.exceptions import TutorRAGException
from tutor_rag.core.rag.orchestrator import RAGOrchestrator
from tutor_rag.core.retrieval.question_classifier import analyze_question_category
from tutor_rag.models.api import (
    AskRequest,
    ClassifyRequest,
    ExplainRequest,
    HybridAskRequest,
    MaterialsRequest,
    RelatedRequest,
)
from tutor_rag.models.materials import MaterialCategory
from tutor_rag.models.rag import (
    HybridRAGResponse,
    QuestionCategory,
    RAGResponse,
    RelatedConcepts,
    SystemStatus,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/rag", tags=["rag"])


@router.post("/ask", response_model=RAGResponse)
async def ask(
    request: AskRequest,
    orchestrator: RAGOrchestrator = Depends(get_orchestrator),
) -> RAGResponse:
    """
    Answer a question from the knowledge corpus.

    Completion failures produce an apology answer; retrieval failures are
    reported by the application exception handlers.
    """
    return await orchestrator.answer(request.question, request.scope, request.options)


@router.post("/ask/stream")
async def ask_stream(
    request: AskRequest,
    orchestrator: RAGOrchestrator = Depends(get_orchestrator),
) -> StreamingResponse:
    """
    Stream an answer using Server-Sent Events (SSE).

    SSE Format:
        event: token
        data: {"token": "...", "index": 0}

        event: complete
        data: {"full_answer": "..."}

        event: error
        data: {"code": "...", "message": "..."}
    """
    logger.info(f"{__name__}:ask_stream - START scope_id={request.scope.scope_id}")

    async def event_generator() -> AsyncGenerator[str, None]:
        parts: list[str] = []
        try:
            async for chunk in orchestrator.stream_answer(
                request.question,
                request.scope,
                request.options,
            ):
                if chunk.is_complete:
                    data = json.dumps({"full_answer": "".join(parts)}, ensure_ascii=False)
                    yield f"event: complete\ndata: {data}\n\n"
                    break
                data = json.dumps({"token": chunk.content, "index": len(parts)}, ensure_ascii=False)
                parts.append(chunk.content)
                yield f"event: token\ndata: {data}\n\n"

            logger.info(f"{__name__}:ask_stream - Stream completed for scope_id={request.scope.scope_id}")

        except TutorRAGException as e:
            logger.error(f"{__name__}:ask_stream - {type(e).__name__}: {e}")
            data = json.dumps({"code": "RETRIEVAL_ERROR", "message": e.message}, ensure_ascii=False)
            yield f"event: error\ndata: {data}\n\n"

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",  # Disable nginx buffering
        },
    )


@router.post("/hybrid", response_model=HybridRAGResponse)
async def ask_hybrid(
    request: HybridAskRequest,
    orchestrator: RAGOrchestrator = Depends(get_orchestrator),
) -> HybridRAGResponse:
    """Answer from fused corpus and web evidence; never fails."""
    return await orchestrator.answer_hybrid(request.question, request.subject_id, request.history)


@router.post("/explain", response_model=RAGResponse)
async def explain(
    request: ExplainRequest,
    orchestrator: RAGOrchestrator = Depends(get_orchestrator),
) -> RAGResponse:
    return await orchestrator.explain_topic(request.topic, request.scope, request.detail_level)


@router.post("/related", response_model=RelatedConcepts)
async def related(
    request: RelatedRequest,
    orchestrator: RAGOrchestrator = Depends(get_orchestrator),
) -> RelatedConcepts:
    return await orchestrator.get_related_concepts(request.topic, request.scope)


@router.post("/classify", response_model=QuestionCategory)
async def classify(request: ClassifyRequest) -> QuestionCategory:
    return analyze_question_category(request.question)


@router.post("/materials", response_model=list[MaterialCategory])
async def materials(
    request: MaterialsRequest,
    service: MaterialRecommendationService = Depends(get_material_service),
) -> list[MaterialCategory]:
    """Study materials for the scope; falls back to a fixed set when generation fails."""
    return await service.recommend(request.scope, request.goal_type, request.current_step)


@router.get("/status", response_model=SystemStatus)
async def status(orchestrator: RAGOrchestrator = Depends(get_orchestrator)) -> SystemStatus:
    return await orchestrator.get_system_status()
