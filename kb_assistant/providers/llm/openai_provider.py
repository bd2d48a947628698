"""OpenAI-compatible LLM provider adapter.

Wraps the ``openai`` async client to implement :class:`ILLMProvider`.
Because many vendors expose OpenAI-compatible chat APIs, the same adapter
serves two configured providers:

    - ``openai``: api.openai.com, or ``openai_base_url`` when set
    - ``gemini``: Google's OpenAI-compatible endpoint
      (``gemini_openai_base_url``) authenticated with ``gemini_api_key``

The module-level helpers that translate messages and parse completions are
shared with the Ollama adapter.
"""

from __future__ import annotations

from typing import Any

import openai
import structlog

from kb_assistant.config.settings import Settings
from kb_assistant.interfaces.llm_provider import ILLMProvider
from kb_assistant.models.conversation import (
    ChatMessage,
    LLMChoice,
    LLMResponse,
    TokenUsage,
    ToolCall,
    ToolFunction,
)
from kb_assistant.models.documents import ConnectionTestResult
from kb_assistant.utils.errors import LLMError

logger = structlog.get_logger(logger_name=__name__)


def to_openai_messages(messages: list[ChatMessage]) -> list[dict[str, Any]]:
    return [m.to_llm_dict() for m in messages]


def parse_completion(response: Any) -> LLMResponse:
    """Convert an SDK ``ChatCompletion`` into an :class:`LLMResponse`."""
    choices: list[LLMChoice] = []
    for choice in response.choices or []:
        message = choice.message
        tool_calls = [
            ToolCall(
                id=tc.id or "",
                type=tc.type or "function",
                function=ToolFunction(
                    name=tc.function.name,
                    arguments=tc.function.arguments or "{}",
                ),
            )
            for tc in (message.tool_calls or [])
        ]
        choices.append(
            LLMChoice(
                message=ChatMessage(
                    role="assistant",
                    content=message.content,
                    tool_calls=tool_calls or None,
                )
            )
        )
    usage = None
    if response.usage is not None:
        usage = TokenUsage(
            prompt_tokens=response.usage.prompt_tokens or 0,
            completion_tokens=response.usage.completion_tokens or 0,
            total_tokens=response.usage.total_tokens or 0,
        )
    return LLMResponse(choices=choices, usage=usage)


class OpenAILLMProvider(ILLMProvider):
    """LLM provider backed by an OpenAI-compatible chat completions API."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._provider = "gemini" if settings.llm_provider.lower() == "gemini" else "openai"

        if self._provider == "gemini":
            self._api_key = settings.gemini_api_key
            base_url = settings.gemini_openai_base_url
        else:
            self._api_key = settings.openai_api_key
            base_url = settings.openai_base_url

        client_kwargs: dict = {"api_key": self._api_key}
        if base_url:
            client_kwargs["base_url"] = base_url

        self._client = openai.AsyncOpenAI(**client_kwargs)
        self._model = settings.resolved_llm_model()
        self._temperature = settings.llm_temperature
        self._max_tokens = settings.llm_max_tokens

    # ------------------------------------------------------------------
    # ILLMProvider implementation
    # ------------------------------------------------------------------

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
                message=f"{self._provider} API error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        result = parse_completion(response)
        if result.message is None:
            raise LLMError(
                message=f"{self._provider} returned no choices",
                provider_name=self.get_provider_name(),
            )
        logger.info(
            "llm_completion",
            provider=self._provider,
            model=self._model,
            tools_offered=len(tools or []),
            tool_calls=len(result.message.tool_calls or []),
            tokens=result.usage.total_tokens if result.usage else None,
        )
        return result

    async def test_connection(self) -> ConnectionTestResult:
        if not self.is_available():
            return ConnectionTestResult(connected=False, error="API key not configured")
        try:
            await self._client.models.list()
            return ConnectionTestResult(connected=True)
        except openai.APIError as exc:
            return ConnectionTestResult(connected=False, error=str(exc))

    def get_model(self) -> str:
        return self._model

    def get_provider_name(self) -> str:
        return self._provider

    def is_available(self) -> bool:
        return bool(self._api_key)
