"""
FastAPI application with assembled routers.

Builds the service container during lifespan startup, starts the response
cache sweeper, and maps domain exceptions to JSON error responses.

Dependencies: fastapi, uvicorn, tutor_rag.api
System role: API entry point with router assembly and server launch
"""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError

from tutor_rag.api.deps import ServiceContainer
from tutor_rag.api.routers import cache_router, health_router, knowledge_router, rag_router
from tutor_rag.boundary.db.create_tables import create_all_tables
from tutor_rag.configs import get_settings
from tutor_rag.core.exceptions import (
    IngestionError,
    RetrievalError,
    TutorRAGException,
    ValidationError,
    VectorStoreError,
)
from tutor_rag.observability import configure_logging
from tutor_rag.observability.log_utils import log_exception_with_context
from tutor_rag.observability.middleware import CorrelationMiddleware, RequestLoggingMiddleware

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan context manager.

    Handles startup and shutdown events.
    """
    container: ServiceContainer | None = getattr(app.state, "container", None)
    if container is None:
        container = ServiceContainer(get_settings())
        app.state.container = container

    # Startup
    await create_all_tables(container.engine)
    await container.web_client.purge_expired()
    container.sweeper.start()
    logger.info(f"{__name__}:lifespan - Services ready")

    yield

    # Shutdown
    await container.aclose()
    logger.info(f"{__name__}:lifespan - Services stopped")


def _error_response(status_code: int, exc: TutorRAGException) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": type(exc).__name__, "message": exc.message, "details": exc.details},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Map domain exceptions to HTTP status codes."""

    @app.exception_handler(TutorRAGException)
    async def handle_domain_error(request: Request, exc: TutorRAGException) -> JSONResponse:
        if isinstance(exc, (ValidationError, IngestionError)):
            return _error_response(status.HTTP_422_UNPROCESSABLE_ENTITY, exc)
        log_exception_with_context(
            logger,
            f"{request.method} {request.url.path} failed",
            exc,
            path=request.url.path,
        )
        if isinstance(exc, (RetrievalError, VectorStoreError)):
            return _error_response(status.HTTP_503_SERVICE_UNAVAILABLE, exc)
        return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, exc)

    @app.exception_handler(PydanticValidationError)
    async def handle_model_error(request: Request, exc: PydanticValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"error": "ValidationError", "message": str(exc), "details": {}},
        )


def create_app(container: ServiceContainer | None = None) -> FastAPI:
    """
    Create and configure FastAPI application with routers.

    Args:
        container: Prebuilt service container (built from settings at startup if omitted)

    Returns:
        FastAPI: Configured application instance with all routers registered
    """
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Tutor RAG API",
        description="Knowledge retrieval and hybrid RAG for exam tutoring",
        version="0.1.0",
        lifespan=lifespan,
    )
    if container is not None:
        app.state.container = container

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Add observability middleware
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(CorrelationMiddleware)

    register_exception_handlers(app)

    # Register all routers with /api/v1 prefix for versioning
    app.include_router(health_router, prefix="/api/v1")
    app.include_router(rag_router, prefix="/api/v1")
    app.include_router(knowledge_router, prefix="/api/v1")
    app.include_router(cache_router, prefix="/api/v1")

    return app


if __name__ == "__main__":
    uvicorn.run(
        "tutor_rag.main:create_app",
        factory=True,
        host="0.0.0.0",
        port=8000,
    )
