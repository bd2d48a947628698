"""LLM/tool round-trip loop implementing :class:`IToolProcessingService`.

Tools are plain async callables registered in a :class:`ToolRegistry`
under a server id.  Each round sends the conversation plus the enabled
tool schemas to the LLM; requested tools are executed in order and their
results appended as ``tool`` messages until the model answers without
tool calls.
"""

from __future__ import annotations

import json
from collections.abc import Awaitable, Callable
from typing import Any

import structlog

from kb_assistant.interfaces.llm_provider import ILLMProvider
from kb_assistant.interfaces.tool_processing_service import IToolProcessingService
from kb_assistant.models.conversation import (
    ChatMessage,
    ToolCall,
    ToolDescriptor,
    ToolProcessingResult,
    ToolResponse,
)

logger = structlog.get_logger(logger_name=__name__)

ToolHandler = Callable[[dict[str, Any]], Awaitable[str]]


class ToolRegistry:
    """Named tool handlers grouped by server id."""

    def __init__(self) -> None:
        self._tools: dict[str, tuple[ToolDescriptor, ToolHandler]] = {}

    def register(
        self,
        name: str,
        handler: ToolHandler,
        description: str = "",
        parameters: dict[str, Any] | None = None,
        server_id: str = "default",
    ) -> None:
        if name in self._tools:
            raise ValueError(f"Tool already registered: {name}")
        descriptor = ToolDescriptor(
            name=name,
            description=description,
            parameters=parameters or {"type": "object", "properties": {}},
            server_id=server_id,
        )
        self._tools[name] = (descriptor, handler)

    def descriptors(self, server_ids: list[str] | None = None) -> list[ToolDescriptor]:
        """Return descriptors, restricted to *server_ids* when non-empty."""
        return [
            descriptor
            for descriptor, _ in self._tools.values()
            if not server_ids or descriptor.server_id in server_ids
        ]

    def get(self, name: str) -> tuple[ToolDescriptor, ToolHandler] | None:
        return self._tools.get(name)

    def server_ids(self) -> list[str]:
        return sorted({descriptor.server_id for descriptor, _ in self._tools.values()})


class ToolLoopService(IToolProcessingService):
    """Answers a conversation with the LLM, executing requested tools.

    After ``max_rounds`` rounds that still request tools, one last call is
    made without tools so the model must answer from what it has.
    """

    def __init__(
        self,
        llm_provider: ILLMProvider,
        registry: ToolRegistry,
        max_rounds: int = 5,
    ) -> None:
        self._llm = llm_provider
        self._registry = registry
        self._max_rounds = max(1, max_rounds)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def process_query(
        self,
        messages: list[ChatMessage],
        enabled_server_ids: list[str] | None = None,
    ) -> ToolProcessingResult:
        tools = [d.to_llm_tool() for d in self._registry.descriptors(enabled_server_ids)]
        conversation = list(messages)
        tool_calls: list[ToolCall] = []
        tool_responses: list[ToolResponse] = []

        for round_number in range(self._max_rounds):
            response = await self._llm.send_message(conversation, tools or None)
            message = response.message
            if message is None or not message.tool_calls:
                return ToolProcessingResult(
                    reply=(message.content if message else None) or "",
                    tool_calls=tool_calls,
                    tool_responses=tool_responses,
                )

            conversation.append(
                ChatMessage(role="assistant", content=message.content, tool_calls=message.tool_calls)
            )
            for call in message.tool_calls:
                tool_response = await self._execute(call)
                tool_calls.append(call)
                tool_responses.append(tool_response)
                conversation.append(
                    ChatMessage(role="tool", content=tool_response.result, tool_call_id=call.id)
                )
            logger.info(
                "tool_round_complete",
                round=round_number + 1,
                tools=[c.function.name for c in message.tool_calls],
            )

        logger.warning("tool_round_limit_reached", max_rounds=self._max_rounds)
        final = await self._llm.send_message(conversation, None)
        return ToolProcessingResult(
            reply=(final.message.content if final.message else None) or "",
            tool_calls=tool_calls,
            tool_responses=tool_responses,
        )

    def get_available_tools(self) -> list[ToolDescriptor]:
        return self._registry.descriptors()

    def get_server_ids(self) -> list[str]:
        return self._registry.server_ids()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _execute(self, call: ToolCall) -> ToolResponse:
        """Run one tool call; failures become unsuccessful responses."""
        name = call.function.name
        try:
            arguments = json.loads(call.function.arguments or "{}")
        except json.JSONDecodeError as exc:
            return ToolResponse(
                id=call.id,
                tool_name=name,
                result=f"Invalid tool arguments: {exc}",
                success=False,
            )
        if not isinstance(arguments, dict):
            arguments = {"value": arguments}

        entry = self._registry.get(name)
        if entry is None:
            logger.warning("unknown_tool_requested", tool=name)
            return ToolResponse(
                id=call.id,
                tool_name=name,
                arguments=arguments,
                result=f"Unknown tool: {name}",
                success=False,
            )

        descriptor, handler = entry
        try:
            result = await handler(arguments)
        except Exception as exc:
            logger.warning("tool_execution_failed", tool=name, error=str(exc))
            return ToolResponse(
                id=call.id,
                tool_name=name,
                arguments=arguments,
                result=f"Tool {name} failed: {exc}",
                success=False,
                server_id=descriptor.server_id,
            )

        logger.info("tool_executed", tool=name, server_id=descriptor.server_id)
        return ToolResponse(
            id=call.id,
            tool_name=name,
            arguments=arguments,
            result=result,
            success=True,
            server_id=descriptor.server_id,
        )
