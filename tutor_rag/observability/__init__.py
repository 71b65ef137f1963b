"""
Observability module.

Provides logging configuration, safe structured logging and correlation ID
tracking.
"""

from tutor_rag.observability.correlation import get_correlation_id, set_correlation_id
from tutor_rag.observability.logger import configure_logging

__all__ = ["configure_logging", "get_correlation_id", "set_correlation_id"]
