"""
Test suite for CompletionClient.

Uses LangChain's FakeListChatModel for happy paths and mocked models for
provider failures and timeouts.

System role: Verification of the completion provider adapter
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from langchain_core.language_models.fake_chat_models import FakeListChatModel
from langchain_core.messages import HumanMessage

from tutor_rag.boundary.llm.completion_client import CompletionClient, message_text
from tutor_rag.configs.generation import CompletionSettings
from tutor_rag.core.exceptions import CompletionError

MESSAGES = [HumanMessage(content="정규화란?")]


@pytest.fixture
def settings() -> CompletionSettings:
    return CompletionSettings(temperature=0.3, max_tokens=1000, timeout_seconds=1.0)


class TestComplete:
    """Test suite for CompletionClient.complete()."""

    @pytest.mark.asyncio
    async def test_should_return_model_text(self, settings: CompletionSettings) -> None:
        # Arrange
        client = CompletionClient(lambda t, m: FakeListChatModel(responses=["  정규화는 중복 제거입니다.  "]), settings)

        # Act
        answer = await client.complete(MESSAGES)

        # Assert
        assert answer == "정규화는 중복 제거입니다."

    @pytest.mark.asyncio
    async def test_should_build_one_model_per_sampling_configuration(self, settings: CompletionSettings) -> None:
        """Test per-call temperature/max_tokens select (and reuse) model instances."""
        # Arrange
        built: list[tuple[float, int]] = []

        def factory(temperature: float, max_tokens: int) -> FakeListChatModel:
            built.append((temperature, max_tokens))
            return FakeListChatModel(responses=["답변"])

        client = CompletionClient(factory, settings)

        # Act
        await client.complete(MESSAGES)
        await client.complete(MESSAGES)
        await client.complete(MESSAGES, temperature=0.7, max_tokens=2000)

        # Assert
        assert built == [(0.3, 1000), (0.7, 2000)]

    @pytest.mark.asyncio
    async def test_provider_error_should_raise_completion_error(self, settings: CompletionSettings) -> None:
        # Arrange
        model = MagicMock()
        model.ainvoke = AsyncMock(side_effect=RuntimeError("503 from provider"))
        client = CompletionClient(lambda t, m: model, settings)

        # Act & Assert
        with pytest.raises(CompletionError, match="503 from provider"):
            await client.complete(MESSAGES)

    @pytest.mark.asyncio
    async def test_timeout_should_raise_completion_error(self) -> None:
        # Arrange
        async def slow(_messages):
            await asyncio.sleep(1)

        model = MagicMock()
        model.ainvoke = slow
        client = CompletionClient(lambda t, m: model, CompletionSettings(timeout_seconds=0.01))

        # Act & Assert
        with pytest.raises(CompletionError, match="timed out"):
            await client.complete(MESSAGES)

    @pytest.mark.asyncio
    async def test_model_construction_failure_should_raise_completion_error(
        self, settings: CompletionSettings
    ) -> None:
        """Test a factory failure (e.g. missing API key) surfaces as CompletionError."""
        # Arrange
        def factory(temperature: float, max_tokens: int) -> FakeListChatModel:
            raise ValueError("Did not find google_api_key")

        client = CompletionClient(factory, settings)

        # Act & Assert
        with pytest.raises(CompletionError, match="google_api_key") as exc_info:
            await client.complete(MESSAGES)

        assert exc_info.value.details == {"temperature": 0.3, "max_tokens": 1000}

    @pytest.mark.asyncio
    async def test_empty_response_should_raise(self, settings: CompletionSettings) -> None:
        # Arrange
        client = CompletionClient(lambda t, m: FakeListChatModel(responses=["   "]), settings)

        # Act & Assert
        with pytest.raises(CompletionError, match="empty"):
            await client.complete(MESSAGES)


class TestStream:
    """Test suite for CompletionClient.stream()."""

    @pytest.mark.asyncio
    async def test_should_stream_fragments_then_sentinel(self, settings: CompletionSettings) -> None:
        # Arrange
        client = CompletionClient(lambda t, m: FakeListChatModel(responses=["원자성 보장"]), settings)

        # Act
        chunks = [chunk async for chunk in client.stream(MESSAGES)]

        # Assert
        assert chunks[-1].is_complete is True
        assert chunks[-1].content == ""
        assert all(not c.is_complete for c in chunks[:-1])
        assert "".join(c.content for c in chunks) == "원자성 보장"

    @pytest.mark.asyncio
    async def test_mid_stream_failure_should_raise(self, settings: CompletionSettings) -> None:
        # Arrange
        async def broken_stream(_messages):
            yield MagicMock(content="부분")
            raise RuntimeError("connection reset")

        model = MagicMock()
        model.astream = broken_stream
        client = CompletionClient(lambda t, m: model, settings)

        # Act & Assert
        received = []
        with pytest.raises(CompletionError, match="connection reset"):
            async for chunk in client.stream(MESSAGES):
                received.append(chunk.content)
        assert received == ["부분"]

    @pytest.mark.asyncio
    async def test_model_construction_failure_should_raise_before_any_fragment(
        self, settings: CompletionSettings
    ) -> None:
        # Arrange
        def factory(temperature: float, max_tokens: int) -> FakeListChatModel:
            raise ValueError("Did not find google_api_key")

        client = CompletionClient(factory, settings)

        # Act & Assert
        with pytest.raises(CompletionError, match="google_api_key"):
            async for _ in client.stream(MESSAGES):
                pass


class TestMessageText:
    """Test suite for message_text()."""

    def test_should_flatten_content_parts(self) -> None:
        assert message_text([{"type": "text", "text": "가"}, "나", {"type": "image"}]) == "가나"

    def test_should_handle_plain_and_empty_content(self) -> None:
        assert message_text("답") == "답"
        assert message_text(None) == ""
