"""Anthropic LLM provider adapter (``llm_provider = "claude"``).

Wraps the ``anthropic`` async client to implement :class:`ILLMProvider`.

Key differences from the OpenAI wire format, handled here:
    - System messages are joined into the separate ``system`` parameter
    - Assistant tool calls become ``tool_use`` content blocks
    - ``tool`` role messages become ``tool_result`` blocks inside a user
      message (consecutive results are merged into one user turn)
    - Tool schemas use ``input_schema`` instead of ``parameters``
    - Responses are lists of blocks; text blocks are joined and
      ``tool_use`` blocks are mapped back to OpenAI-style tool calls
"""

from __future__ import annotations

import json
from typing import Any

import anthropic
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


def _to_anthropic_tools(tools: list[dict[str, Any]]) -> list[dict[str, Any]]:
    converted = []
    for tool in tools:
        function = tool.get("function", tool)
        converted.append(
            {
                "name": function["name"],
                "description": function.get("description", ""),
                "input_schema": function.get("parameters") or {"type": "object", "properties": {}},
            }
        )
    return converted


def _to_anthropic_messages(
    messages: list[ChatMessage],
) -> tuple[str | None, list[dict[str, Any]]]:
    """Split *messages* into a system string and Anthropic message dicts."""
    system_parts: list[str] = []
    converted: list[dict[str, Any]] = []

    for message in messages:
        if message.role == "system":
            if message.content:
                system_parts.append(message.content)
            continue

        if message.role == "tool":
            block = {
                "type": "tool_result",
                "tool_use_id": message.tool_call_id or "",
                "content": message.content or "",
            }
            previous = converted[-1] if converted else None
            if (
                previous is not None
                and previous["role"] == "user"
                and isinstance(previous["content"], list)
                and all(b.get("type") == "tool_result" for b in previous["content"])
            ):
                previous["content"].append(block)
            else:
                converted.append({"role": "user", "content": [block]})
            continue

        if message.role == "assistant" and message.tool_calls:
            blocks: list[dict[str, Any]] = []
            if message.content:
                blocks.append({"type": "text", "text": message.content})
            for call in message.tool_calls:
                try:
                    arguments = json.loads(call.function.arguments or "{}")
                except json.JSONDecodeError:
                    arguments = {}
                blocks.append(
                    {
                        "type": "tool_use",
                        "id": call.id,
                        "name": call.function.name,
                        "input": arguments,
                    }
                )
            converted.append({"role": "assistant", "content": blocks})
            continue

        converted.append({"role": message.role, "content": message.content or ""})

    system = "\n\n".join(system_parts) if system_parts else None
    return system, converted


class AnthropicLLMProvider(ILLMProvider):
    """LLM provider backed by the Anthropic Messages API."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._api_key = settings.anthropic_api_key
        self._client = anthropic.AsyncAnthropic(api_key=self._api_key)
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
        system, converted = _to_anthropic_messages(messages)
        request: dict[str, Any] = {
            "model": self._model,
            "max_tokens": self._max_tokens,
            "temperature": self._temperature,
            "messages": converted,
        }
        if system:
            request["system"] = system
        if tools:
            request["tools"] = _to_anthropic_tools(tools)

        try:
            response = await self._client.messages.create(**request)
        except anthropic.APIError as exc:
            raise LLMError(
                message=f"Anthropic API error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        text_blocks = [block.text for block in response.content if block.type == "text"]
        tool_calls = [
            ToolCall(
                id=block.id,
                function=ToolFunction(name=block.name, arguments=json.dumps(block.input or {})),
            )
            for block in response.content
            if block.type == "tool_use"
        ]
        usage = TokenUsage(
            prompt_tokens=response.usage.input_tokens,
            completion_tokens=response.usage.output_tokens,
            total_tokens=response.usage.input_tokens + response.usage.output_tokens,
        )
        logger.info(
            "anthropic_completion",
            model=self._model,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            tool_calls=len(tool_calls),
        )
        message = ChatMessage(
            role="assistant",
            content="\n".join(text_blocks) if text_blocks else None,
            tool_calls=tool_calls or None,
        )
        return LLMResponse(choices=[LLMChoice(message=message)], usage=usage)

    async def test_connection(self) -> ConnectionTestResult:
        """Send a minimal completion to verify the API key works."""
        if not self.is_available():
            return ConnectionTestResult(connected=False, error="API key not configured")
        try:
            await self._client.messages.create(
                model=self._model,
                max_tokens=10,
                messages=[{"role": "user", "content": "hi"}],
            )
            return ConnectionTestResult(connected=True)
        except anthropic.APIError as exc:
            return ConnectionTestResult(connected=False, error=str(exc))

    def get_model(self) -> str:
        return self._model

    def get_provider_name(self) -> str:
        return "claude"

    def is_available(self) -> bool:
        return bool(self._api_key)
