"""LLM provider adapters.

Concrete implementations of ILLMProvider, selected by LLM_PROVIDER:
    - OpenAILLMProvider    -- ``openai`` and ``gemini`` (OpenAI-compatible endpoint)
    - AnthropicLLMProvider -- ``claude``
    - OllamaLLMProvider    -- ``ollama`` (local server, no key)
"""

from kb_assistant.providers.llm.anthropic_provider import AnthropicLLMProvider
from kb_assistant.providers.llm.ollama_provider import OllamaLLMProvider
from kb_assistant.providers.llm.openai_provider import OpenAILLMProvider

__all__ = ["AnthropicLLMProvider", "OllamaLLMProvider", "OpenAILLMProvider"]
