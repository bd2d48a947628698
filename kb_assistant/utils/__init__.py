"""Utility modules for the assistant.

- **errors** -- Exception hierarchy rooted at AssistantError; each failure
  class has its own subclass so callers can degrade, isolate or propagate.
- **logging** -- structlog setup with a dual-renderer pattern: coloured
  console output in development, structured JSON in production.
"""

from kb_assistant.utils.errors import (
    AssistantError,
    ChatProcessingError,
    ConfigurationError,
    IngestionError,
    LLMError,
    ProviderUnavailableError,
    RAGError,
    ToolExecutionError,
)
from kb_assistant.utils.logging import configure_logging, get_logger

__all__ = [
    "AssistantError",
    "ChatProcessingError",
    "ConfigurationError",
    "IngestionError",
    "LLMError",
    "ProviderUnavailableError",
    "RAGError",
    "ToolExecutionError",
    "configure_logging",
    "get_logger",
]
