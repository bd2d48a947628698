"""Pydantic models shared by providers, services and the API layer."""

from kb_assistant.models.conversation import (
    AssistantResponse,
    ChatMessage,
    LLMChoice,
    LLMProviderStatus,
    LLMResponse,
    MessageProvenance,
    TokenUsage,
    ToolCall,
    ToolDescriptor,
    ToolFunction,
    ToolProcessingResult,
    ToolResponse,
    ToolStatus,
    TurnKind,
)
from kb_assistant.models.documents import (
    ChunkSettings,
    ConnectionTestResult,
    DeleteResult,
    EmbeddingProviderStatus,
    FileFormat,
    FileUpload,
    IdPage,
    KnowledgeBaseStatus,
    LogicalDocument,
    OversizedPolicy,
    SearchResult,
    UploadedDocument,
    VectorDocument,
    VectorStoreStats,
    VectorStoreStatus,
)

__all__ = [
    "AssistantResponse",
    "ChatMessage",
    "ChunkSettings",
    "ConnectionTestResult",
    "DeleteResult",
    "EmbeddingProviderStatus",
    "FileFormat",
    "FileUpload",
    "IdPage",
    "KnowledgeBaseStatus",
    "LLMChoice",
    "LLMProviderStatus",
    "LLMResponse",
    "LogicalDocument",
    "MessageProvenance",
    "OversizedPolicy",
    "SearchResult",
    "TokenUsage",
    "ToolCall",
    "ToolDescriptor",
    "ToolFunction",
    "ToolProcessingResult",
    "ToolResponse",
    "ToolStatus",
    "TurnKind",
    "UploadedDocument",
    "VectorDocument",
    "VectorStoreStats",
    "VectorStoreStatus",
]
