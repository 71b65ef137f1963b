"""
Chat completion client.

Invokes a LangChain chat model with per-call temperature and token limits,
bounded by a timeout. Streaming yields text fragments followed by a terminal
sentinel chunk.

Dependencies: langchain_core, langchain_google_genai
System role: Completion provider adapter
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Callable

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import BaseMessage
from langchain_google_genai import ChatGoogleGenerativeAI

from tutor_rag.configs.generation import CompletionSettings
from tutor_rag.core.exceptions import CompletionError
from tutor_rag.models.streaming import StreamChunk

logger = logging.getLogger(__name__)

ModelFactory = Callable[[float, int], BaseChatModel]


def message_text(content) -> str:
    """Flatten str or list-of-parts message content into plain text."""
    if isinstance(content, list):
        return "".join(
            item if isinstance(item, str)
            else (item.get("text", "") if isinstance(item, dict) else str(item))
            for item in content
        )
    return str(content or "")


def google_model_factory(model_id: str) -> ModelFactory:
    """Factory producing Gemini chat models for a given sampling configuration."""

    def _build(temperature: float, max_tokens: int) -> BaseChatModel:
        return ChatGoogleGenerativeAI(
            model=model_id,
            temperature=temperature,
            max_output_tokens=max_tokens,
        )

    return _build


class CompletionClient:
    """Chat model wrapper; one model instance per (temperature, max_tokens) pair."""

    def __init__(
        self,
        model_factory: ModelFactory | None = None,
        settings: CompletionSettings | None = None,
    ) -> None:
        """
        Initialize completion client.

        Args:
            model_factory: Builds a chat model for (temperature, max_tokens);
                defaults to Gemini with the configured model id
            settings: Default sampling parameters and timeout
        """
        self._settings = settings or CompletionSettings()
        self._factory = model_factory or google_model_factory(self._settings.model)
        self._models: dict[tuple[float, int], BaseChatModel] = {}

    @property
    def settings(self) -> CompletionSettings:
        return self._settings

    def _model_for(self, temperature: float | None, max_tokens: int | None) -> BaseChatModel:
        """
        Build or reuse the chat model for a sampling configuration.

        Raises:
            CompletionError: Model construction failed (e.g. missing API key)
        """
        key = (
            self._settings.temperature if temperature is None else temperature,
            self._settings.max_tokens if max_tokens is None else max_tokens,
        )
        if key not in self._models:
            try:
                self._models[key] = self._factory(*key)
            except Exception as e:
                logger.error(f"{__name__}:_model_for - {type(e).__name__}: {e}")
                raise CompletionError(
                    f"Completion model unavailable: {e}",
                    details={"temperature": key[0], "max_tokens": key[1]},
                ) from e
        return self._models[key]

    async def complete(
        self,
        messages: list[BaseMessage],
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> str:
        """
        Generate a full response.

        Raises:
            CompletionError: Provider failure, timeout, or empty response
        """
        model = self._model_for(temperature, max_tokens)
        try:
            response = await asyncio.wait_for(
                model.ainvoke(messages),
                timeout=self._settings.timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            raise CompletionError(
                "Completion provider timed out",
                details={"timeout_seconds": self._settings.timeout_seconds},
            ) from e
        except Exception as e:
            logger.error(f"{__name__}:complete - {type(e).__name__}: {e}")
            raise CompletionError(f"Completion failed: {e}") from e

        text = message_text(response.content).strip()
        if not text:
            raise CompletionError("Completion provider returned an empty response")
        return text

    async def stream(
        self,
        messages: list[BaseMessage],
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> AsyncIterator[StreamChunk]:
        """
        Stream response fragments, ending with the sentinel chunk.

        The timeout bounds the wait for each fragment.

        Raises:
            CompletionError: Provider failure or timeout mid-stream
        """
        model = self._model_for(temperature, max_tokens)
        try:
            iterator = model.astream(messages).__aiter__()
        except Exception as e:
            logger.error(f"{__name__}:stream - {type(e).__name__}: {e}")
            raise CompletionError(f"Completion stream failed: {e}") from e
        while True:
            try:
                part = await asyncio.wait_for(
                    iterator.__anext__(),
                    timeout=self._settings.timeout_seconds,
                )
            except StopAsyncIteration:
                break
            except asyncio.TimeoutError as e:
                raise CompletionError("Completion stream timed out") from e
            except Exception as e:
                logger.error(f"{__name__}:stream - {type(e).__name__}: {e}")
                raise CompletionError(f"Completion stream failed: {e}") from e

            text = message_text(part.content)
            if text:
                yield StreamChunk(content=text)

        yield StreamChunk.sentinel()
