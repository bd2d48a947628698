"""Ollama LLM provider adapter.

Ollama exposes an OpenAI-compatible ``/v1`` API, so this adapter reuses the
``openai.AsyncOpenAI`` client pointed at the local server and shares the
message/completion translation helpers with the OpenAI adapter.

Setup: install Ollama, ``ollama pull llama3.1`` and set
OLLAMA_BASE_URL=http://localhost:11434.
"""

from __future__ import annotations

from typing import Any

import httpx
import openai
import structlog

from kb_assistant.config.settings import Settings
from kb_assistant.interfaces.llm_provider import ILLMProvider
from kb_assistant.models.conversation import ChatMessage, LLMResponse
from kb_assistant.models.documents import ConnectionTestResult
from kb_assistant.providers.llm.openai_provider import parse_completion, to_openai_messages
from kb_assistant.utils.errors import LLMError

logger = structlog.get_logger(logger_name=__name__)


class OllamaLLMProvider(ILLMProvider):
    """LLM provider backed by a local Ollama server.  No API key required."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._base_url = settings.ollama_base_url.rstrip("/")
        # The openai SDK requires a non-empty key; Ollama ignores it.
        self._client = openai.AsyncOpenAI(base_url=f"{self._base_url}/v1", api_key="ollama")
        self._model = settings.resolved_llm_model()
        self._temperature = settings.llm_temperature
        self._max_tokens = settings.llm_max_tokens

    async def send_message(
        self,
        messages: list[ChatMessage],
        tools: list[dict[str, Any]] | None = None,
    ) -> LLMResponse:
        request: dict[str, Any] = {
            "model": self._model,
            "messages": to_openai_messages(messages),
            "max_tokens": self._max_tokens,
            "temperature": self._temperature,
        }
        if tools:
            request["tools"] = tools

        try:
            response = await self._client.chat.completions.create(**request)
        except openai.APIError as exc:
            raise LLMError(
                message=f"Ollama API error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        result = parse_completion(response)
        if result.message is None:
            raise LLMError(message="Ollama returned no choices", provider_name="ollama")
        logger.info("ollama_completion", model=self._model)
        return result

    async def test_connection(self) -> ConnectionTestResult:
        """Check that the Ollama server answers ``/api/tags``."""
        try:
            async with httpx.AsyncClient(timeout=3.0) as client:
                response = await client.get(f"{self._base_url}/api/tags")
            if response.status_code == 200:
                return ConnectionTestResult(connected=True)
            return ConnectionTestResult(
                connected=False, error=f"Ollama returned HTTP {response.status_code}"
            )
        except httpx.HTTPError as exc:
            return ConnectionTestResult(connected=False, error=str(exc))

    def get_model(self) -> str:
        return self._model

    def get_provider_name(self) -> str:
        return "ollama"

    def is_available(self) -> bool:
        return bool(self._base_url)
