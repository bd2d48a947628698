"""Custom exception hierarchy for the knowledge-base assistant.

All application exceptions inherit from :class:`AssistantError`, which
carries an optional ``provider_name`` so error handlers can identify which
external service (e.g. "openai", "chromadb", "pinecone") caused the failure.

The hierarchy is organized by failure class:

    AssistantError  (base -- catch-all for any assistant error)
    +-- ConfigurationError       (startup / missing or invalid config)
    +-- ProviderUnavailableError (collaborator not configured or unreachable)
    +-- RAGError                 (embedding or vector-store failure)
    +-- LLMError                 (any LLM API call failure)
    +-- IngestionError           (one file failed to ingest)
    +-- ToolExecutionError       (a tool handler failed)
    +-- ChatProcessingError      (fatal per-request fusion failure)

Configuration errors abort startup, retrieval errors degrade a chat turn,
ingestion errors are isolated per file, and chat processing errors surface
to the HTTP boundary as a single 500-class failure.
"""


class AssistantError(Exception):
    """Base exception for all assistant errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which external service triggered the
    error.  The ``__str__`` method prefixes the provider name in brackets
    for structured log output, e.g. ``[openai] Rate limit exceeded``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Configuration / availability errors
# ---------------------------------------------------------------------------

class ConfigurationError(AssistantError):
    """Raised when configuration is invalid or missing at startup."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ProviderUnavailableError(AssistantError):
    """Raised when a collaborator (knowledge base, tool service) is not configured."""

    def __init__(
        self,
        message: str = "External service is unavailable",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# External service errors
# ---------------------------------------------------------------------------

class RAGError(AssistantError):
    """Raised when a RAG operation fails (embedding or vector store)."""

    def __init__(
        self,
        message: str = "RAG pipeline operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class LLMError(AssistantError):
    """Raised when an LLM API call fails or returns an unparseable response."""

    def __init__(
        self,
        message: str = "LLM API call failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ToolExecutionError(AssistantError):
    """Raised by a tool handler; the tool loop records it as a failed response."""

    def __init__(
        self,
        message: str = "Tool execution failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Pipeline errors
# ---------------------------------------------------------------------------

class IngestionError(AssistantError):
    """Raised when a single document fails to ingest.

    Multi-file uploads catch this per file so siblings still proceed.
    """

    def __init__(
        self,
        message: str = "Document ingestion failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ChatProcessingError(AssistantError):
    """Raised when a chat, YAML or log-explanation turn cannot be completed.

    The message always starts with a stage prefix such as
    ``"Failed to process chat message: "``.
    """

    def __init__(
        self,
        message: str = "Failed to process chat message",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
