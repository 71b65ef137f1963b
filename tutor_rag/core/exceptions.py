"""
Exception hierarchy for the tutor knowledge retrieval service.

Provides layered exception structure for domain-specific errors.
All exceptions include context for observability and debugging.

Dependencies: None (pure domain layer)
System role: Centralized exception handling across the application
"""

from typing import Any


class TutorRAGException(Exception):
    """Base exception for all tutor retrieval errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """
        Initialize base exception with message and optional context.

        Args:
            message: Human-readable error message
            details: Optional dictionary of additional context for debugging

        """
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        """Return string representation including details."""
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ValidationError(TutorRAGException):
    """Raised when input validation fails."""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize validation error.

        Args:
            message: Error message
            field: Field name that failed validation
            details: Additional context
        """
        details = details or {}
        if field:
            details["field"] = field
        super().__init__(message, details)


class InvalidEmbeddingError(ValidationError):
    """Raised when a vector is malformed (wrong dimension, NaN, Infinity)."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message, field="embedding", details=details)


class EmbeddingError(TutorRAGException):
    """Raised when the embedding provider call fails or times out."""

    pass


class VectorStoreError(TutorRAGException):
    """Raised when vector store operations fail."""

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize vector store error.

        Args:
            message: Error message
            operation: Operation that failed (upsert, search, status, delete)
            details: Additional context
        """
        details = details or {}
        if operation:
            details["operation"] = operation
        super().__init__(message, details)


class RetrievalError(TutorRAGException):
    """Raised when retrieval operations fail."""

    def __init__(
        self,
        message: str,
        query: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize retrieval error.

        Args:
            message: Error message
            query: Query text for the failed retrieval
            details: Additional context
        """
        details = details or {}
        if query:
            details["query"] = query[:100]
        super().__init__(message, details)


class WebSearchError(TutorRAGException):
    """Raised when the web search provider fails (caught by the client)."""

    pass


class CompletionError(TutorRAGException):
    """Raised when the completion provider call fails or times out."""

    pass


class IngestionError(TutorRAGException):
    """Raised when a document cannot be ingested."""

    def __init__(
        self,
        message: str,
        document_name: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if document_name:
            details["document_name"] = document_name
        super().__init__(message, details)
