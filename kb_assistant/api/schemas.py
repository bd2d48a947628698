"""Pydantic request/response schemas for the assistant API.

Request and response bodies use camelCase on the wire (``fileName``,
``enableRAG``) and snake_case in Python.  Message objects keep the OpenAI
names (``tool_calls``, ``tool_call_id``) because clients replay them
verbatim on follow-up turns.

Convention: request schemas end with "Request", response schemas end with
"Response".  Field constraints reject malformed bodies before a route runs;
the error handlers turn those rejections into 400 responses.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from kb_assistant.models.conversation import (
    ChatMessage,
    MessageProvenance,
    ToolCall,
    ToolDescriptor,
    TurnKind,
)
from kb_assistant.models.documents import (
    FileUpload,
    LogicalDocument,
    OversizedPolicy,
    SearchResult,
    UploadedDocument,
)

_CAMEL = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ErrorResponse(BaseModel):
    """Standard error body."""

    error: str
    detail: str | None = None


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str


# ---------------------------------------------------------------------------
# Conversation requests
# ---------------------------------------------------------------------------


class MessageInput(BaseModel):
    """One client-supplied conversation message.

    ``provenance`` lets a client hand back retrieval context it received on
    an earlier turn as ``rag-context`` so it is merged into the system
    prompt instead of being forwarded as history.
    """

    role: str
    content: str | None = None
    tool_calls: list[ToolCall] | None = None
    tool_call_id: str | None = None
    provenance: MessageProvenance = MessageProvenance.USER_SUPPLIED

    def to_chat_message(self) -> ChatMessage:
        return ChatMessage(
            role=self.role,  # type: ignore[arg-type]
            content=self.content,
            tool_calls=self.tool_calls,
            tool_call_id=self.tool_call_id,
            provenance=self.provenance,
        )


class RagConfig(BaseModel):
    model_config = _CAMEL

    top_k: int | None = Field(default=None, ge=1, le=50)


class ChatRequest(BaseModel):
    model_config = _CAMEL

    messages: list[MessageInput] = Field(default_factory=list)
    enable_mcp_tools: bool = Field(default=False, alias="enableMCPTools")
    enable_rag: bool = Field(default=False, alias="enableRAG")
    rag_config: RagConfig | None = None
    enabled_server_ids: list[str] | None = None


class YamlGenerateRequest(BaseModel):
    model_config = _CAMEL

    messages: list[MessageInput] = Field(default_factory=list)
    enable_rag: bool = Field(default=False, alias="enableRAG")
    rag_config: RagConfig | None = None
    turn_kind: TurnKind | None = None


class LogExplainRequest(BaseModel):
    model_config = _CAMEL

    messages: list[MessageInput] = Field(default_factory=list)
    resource_type: str = Field(min_length=1)
    resource_name: str = Field(min_length=1)
    namespace: str = Field(min_length=1)
    log_type: str = Field(min_length=1)
    turn_kind: TurnKind | None = None


# ---------------------------------------------------------------------------
# Knowledge base
# ---------------------------------------------------------------------------


class ChunkSettingsInput(BaseModel):
    """Per-upload chunk settings; omitted fields fall back to configured defaults."""

    model_config = _CAMEL

    max_chunk_length: int | None = None
    chunk_overlap: int | None = None
    delimiter: str | None = None
    oversized_policy: OversizedPolicy | None = None


class UploadRequest(BaseModel):
    model_config = _CAMEL

    files: list[FileUpload] = Field(min_length=1)
    chunk_settings: ChunkSettingsInput | None = None
    namespace: str | None = None


class UploadResponse(BaseModel):
    model_config = _CAMEL

    success: bool
    uploaded_documents: list[UploadedDocument]
    total_uploaded: int
    total_failed: int


class DocumentListResponse(BaseModel):
    model_config = _CAMEL

    success: bool = True
    documents: list[LogicalDocument]
    total_documents: int
    timestamp: str


class DeleteResponse(BaseModel):
    model_config = _CAMEL

    deleted_count: int
    file_name: str


class SearchRequest(BaseModel):
    model_config = _CAMEL

    query: str = Field(min_length=1)
    top_k: int | None = Field(default=None, ge=1, le=50)
    filter: dict[str, Any] | None = None
    namespace: str | None = None


class SearchResponse(BaseModel):
    model_config = _CAMEL

    results: list[SearchResult]
    total: int


class ToolsResponse(BaseModel):
    tools: list[ToolDescriptor]
