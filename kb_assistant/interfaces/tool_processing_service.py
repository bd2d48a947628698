"""Abstract base class for tool-processing services.

A tool-processing service owns the LLM/tool round-trip loop: it offers tool
schemas to the model, executes the tools the model asks for, feeds results
back and returns once the model produces a final answer.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from kb_assistant.models.conversation import ChatMessage, ToolDescriptor, ToolProcessingResult


# Concrete implementation: ToolLoopService (kb_assistant/providers/tools/)
class IToolProcessingService(ABC):
    """Contract for services that answer a conversation using tools."""

    @abstractmethod
    async def process_query(
        self,
        messages: list[ChatMessage],
        enabled_server_ids: list[str] | None = None,
    ) -> ToolProcessingResult:
        """Answer *messages*, invoking tools as the model requests.

        Parameters
        ----------
        messages:
            Full history including the system message.
        enabled_server_ids:
            Restrict tools to these servers.  An empty list or ``None``
            enables every server.

        Returns
        -------
        ToolProcessingResult
            The final reply plus every tool call and tool response made
            along the way, in order.

        Raises
        ------
        kb_assistant.utils.errors.LLMError
            If an LLM call fails.  Tool failures do not raise; they are
            reported as unsuccessful tool responses.
        """

    @abstractmethod
    def get_available_tools(self) -> list[ToolDescriptor]:
        """Return every registered tool."""

    @abstractmethod
    def get_server_ids(self) -> list[str]:
        """Return the distinct server ids that own registered tools."""
