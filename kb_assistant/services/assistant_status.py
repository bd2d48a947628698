"""Status reporting for the LLM provider and the tool service."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from kb_assistant.models.conversation import LLMProviderStatus, ToolStatus

if TYPE_CHECKING:
    from kb_assistant.interfaces.llm_provider import ILLMProvider
    from kb_assistant.interfaces.tool_processing_service import IToolProcessingService

logger = structlog.get_logger(logger_name=__name__)


class AssistantStatusService:
    """Reports whether the LLM answers and which tools are registered."""

    def __init__(
        self,
        llm_provider: ILLMProvider,
        tool_service: IToolProcessingService | None = None,
    ) -> None:
        self._llm = llm_provider
        self._tool_service = tool_service

    async def get_provider_status(self) -> LLMProviderStatus:
        result = await self._llm.test_connection()
        if not result.connected:
            logger.warning(
                "llm_provider_unreachable",
                provider=self._llm.get_provider_name(),
                error=result.error,
            )
        return LLMProviderStatus(
            provider=self._llm.get_provider_name(),
            model=self._llm.get_model(),
            connected=result.connected,
            error=result.error,
        )

    def get_tool_status(self) -> ToolStatus:
        if self._tool_service is None:
            return ToolStatus(enabled=False)
        return ToolStatus(
            enabled=True,
            servers=self._tool_service.get_server_ids(),
            tool_count=len(self._tool_service.get_available_tools()),
        )
