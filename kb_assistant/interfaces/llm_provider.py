"""Abstract base class for LLM service providers.

Defines the single conversational contract used by the fusion engine and
the tool loop: send a full message list (optionally with tool schemas) and
receive an OpenAI chat-completion shaped :class:`LLMResponse`.  Providers
with other wire formats (Anthropic) translate in both directions.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from kb_assistant.models.conversation import ChatMessage, LLMResponse
from kb_assistant.models.documents import ConnectionTestResult


# Concrete implementations: OpenAILLMProvider (also Gemini), AnthropicLLMProvider,
# OllamaLLMProvider.  Located in: kb_assistant/providers/llm/
class ILLMProvider(ABC):
    """Contract for chat-completion services."""

    @abstractmethod
    async def send_message(
        self,
        messages: list[ChatMessage],
        tools: list[dict[str, Any]] | None = None,
    ) -> LLMResponse:
        """Send a conversation to the model.

        Parameters
        ----------
        messages:
            The full ordered history, including any system messages.
        tools:
            OpenAI function-tool schemas.  ``None`` or an empty list sends
            no tools.

        Returns
        -------
        LLMResponse
            ``choices[0].message`` holds the reply text and any requested
            ``tool_calls``.

        Raises
        ------
        kb_assistant.utils.errors.LLMError
            If the API call fails or the response cannot be parsed.
        """

    @abstractmethod
    async def test_connection(self) -> ConnectionTestResult:
        """Make a lightweight call to confirm the provider answers.  Never raises."""

    @abstractmethod
    def get_model(self) -> str:
        """Return the model name used for completions."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return the provider id, e.g. ``"openai"``, ``"claude"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if credentials are configured (no network call)."""
