"""Conversation data models: messages, tool calls and normalized responses.

Message and tool-call models keep the OpenAI wire names (``tool_calls``,
``tool_call_id``) because they are forwarded to LLM providers as-is.
Response models that only travel to the HTTP client use camelCase aliases.

Every message carries a ``provenance`` tag.  Messages from the client are
``user-supplied`` unless the client explicitly tags a previously injected
retrieval message as ``rag-context``; the fusion engine tags the messages it
synthesizes.  The tag is stripped before anything is sent to a provider.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

_CAMEL = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

Role = Literal["user", "assistant", "system", "tool"]


class MessageProvenance(str, Enum):
    """Where a message came from."""

    USER_SUPPLIED = "user-supplied"
    RAG_CONTEXT = "rag-context"
    SYSTEM_PROMPT = "system-prompt"


class TurnKind(str, Enum):
    INITIAL = "initial"
    FOLLOWUP = "followup"


# ---------------------------------------------------------------------------
# Tool calls
# ---------------------------------------------------------------------------
class ToolFunction(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    arguments: str = Field(default="{}", description="JSON-encoded argument object.")


class ToolCall(BaseModel):
    """A tool invocation requested by the model."""

    model_config = ConfigDict(frozen=True)

    id: str = ""
    type: str = "function"
    function: ToolFunction


class ToolResponse(BaseModel):
    """The outcome of executing one :class:`ToolCall`."""

    model_config = _CAMEL

    id: str = ""
    tool_name: str
    arguments: dict[str, Any] = Field(default_factory=dict)
    result: str = ""
    success: bool = True
    server_id: str | None = None


class ToolDescriptor(BaseModel):
    """A tool advertised to the model, in OpenAI function-schema form."""

    model_config = _CAMEL

    name: str
    description: str = ""
    parameters: dict[str, Any] = Field(default_factory=lambda: {"type": "object", "properties": {}})
    server_id: str = "default"

    def to_llm_tool(self) -> dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }


# ---------------------------------------------------------------------------
# ChatMessage
# ---------------------------------------------------------------------------
class ChatMessage(BaseModel):
    """One entry of a conversation history."""

    model_config = ConfigDict(frozen=True)

    role: Role
    content: str | None = None
    tool_calls: list[ToolCall] | None = None
    tool_call_id: str | None = None
    provenance: MessageProvenance = MessageProvenance.USER_SUPPLIED

    def to_llm_dict(self) -> dict[str, Any]:
        """Return the OpenAI-style dict sent to providers (no provenance)."""
        return self.model_dump(exclude={"provenance"}, exclude_none=True)


# ---------------------------------------------------------------------------
# Provider responses
# ---------------------------------------------------------------------------
class TokenUsage(BaseModel):
    model_config = ConfigDict(frozen=True)

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class LLMChoice(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: ChatMessage


class LLMResponse(BaseModel):
    """Normalized ``send_message`` result, OpenAI chat-completion shaped."""

    model_config = ConfigDict(frozen=True)

    choices: list[LLMChoice] = Field(default_factory=list)
    usage: TokenUsage | None = None

    @property
    def message(self) -> ChatMessage | None:
        return self.choices[0].message if self.choices else None


class ToolProcessingResult(BaseModel):
    """Result of a full LLM/tool round-trip sequence."""

    model_config = ConfigDict(frozen=True)

    reply: str = ""
    tool_calls: list[ToolCall] = Field(default_factory=list)
    tool_responses: list[ToolResponse] = Field(default_factory=list)


class AssistantResponse(BaseModel):
    """Uniform response of every fusion operation.

    Optional fields are omitted from JSON when ``None``; ``rag_context`` is
    only set when retrieval actually returned results.
    """

    model_config = _CAMEL

    role: Literal["assistant"] = "assistant"
    content: str = ""
    tools_used: list[str] | None = None
    tool_responses: list[ToolResponse] | None = None
    rag_context: list[str] | None = None
    yaml_blocks: list[str] | None = None


# ---------------------------------------------------------------------------
# Status snapshots
# ---------------------------------------------------------------------------
class LLMProviderStatus(BaseModel):
    model_config = _CAMEL

    provider: str
    model: str
    connected: bool
    error: str | None = None


class ToolStatus(BaseModel):
    """Which tool servers are registered and whether tool use is enabled."""

    model_config = _CAMEL

    enabled: bool
    servers: list[str] = Field(default_factory=list)
    tool_count: int = 0
