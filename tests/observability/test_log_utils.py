"""
Test suite for logging helpers and correlation ID propagation.

System role: Verification of safe structured logging
"""

import logging

import pytest

from tutor_rag.observability.correlation import (
    clear_correlation_id,
    get_correlation_id,
    set_correlation_id,
)
from tutor_rag.observability.log_utils import (
    log_exception_with_context,
    log_with_context,
    preview_text,
    safe_log_value,
)
from tutor_rag.observability.logger import CorrelationIdFilter


class TestSafeLogValue:
    """Test suite for safe_log_value()."""

    @pytest.mark.parametrize(
        "value, expected",
        [
            (None, "None"),
            ("정규화", "정규화"),
            ([0.1, 0.2, 0.3], "vector(dim=3)"),
            (["a", "b"], "list(2 items)"),
            ({"a": 1}, "dict(1 keys)"),
            (42, "42"),
        ],
    )
    def test_should_summarize_values(self, value, expected: str) -> None:
        assert safe_log_value(value) == expected

    def test_should_truncate_long_strings(self) -> None:
        result = safe_log_value("x" * 600, max_length=10)

        assert result == "xxxxxxxxxx... (truncated, 600 total)"


class TestPreviewText:
    """Test suite for preview_text()."""

    def test_should_flatten_and_truncate(self) -> None:
        assert preview_text("정규화\n  란?") == "정규화 란?"
        assert preview_text("가" * 100, limit=5) == "가가가가가..."
        assert preview_text(None) == ""


class TestStructuredLogging:
    """Test suite for log_with_context() / log_exception_with_context()."""

    def test_context_should_be_attached_safely(self, caplog) -> None:
        # Arrange
        logger = logging.getLogger("tests.log_utils")

        # Act
        with caplog.at_level(logging.INFO, logger="tests.log_utils"):
            log_with_context(logger, logging.INFO, "stored chunk", chunk_id="db_chunk_0", vector=[0.5] * 1536)

        # Assert
        record = caplog.records[0]
        assert record.chunk_id == "db_chunk_0"
        assert record.vector == "vector(dim=1536)"

    def test_exception_should_carry_error_fields(self, caplog) -> None:
        # Arrange
        logger = logging.getLogger("tests.log_utils")

        # Act
        with caplog.at_level(logging.ERROR, logger="tests.log_utils"):
            try:
                raise ValueError("bad vector")
            except ValueError as e:
                log_exception_with_context(logger, "upsert failed", e, path="/knowledge")

        # Assert
        record = caplog.records[0]
        assert record.error_type == "ValueError"
        assert record.error_msg == "bad vector"
        assert record.path == "/knowledge"
        assert record.exc_info is not None


class TestCorrelation:
    """Test suite for correlation id context and log filter."""

    def test_set_should_generate_when_missing(self) -> None:
        # Act
        generated = set_correlation_id()

        # Assert
        assert generated
        assert get_correlation_id() == generated
        clear_correlation_id()
        assert get_correlation_id() == ""

    def test_filter_should_stamp_records(self) -> None:
        # Arrange
        record = logging.LogRecord("x", logging.INFO, __file__, 1, "msg", None, None)
        set_correlation_id("req-42")

        # Act
        CorrelationIdFilter().filter(record)
        clear_correlation_id()
        other = logging.LogRecord("x", logging.INFO, __file__, 1, "msg", None, None)
        CorrelationIdFilter().filter(other)

        # Assert
        assert record.correlation_id == "req-42"
        assert other.correlation_id == "-"
