"""Context fusion: retrieved chunks + tool results + conversation history.

:class:`ContextFusionEngine` answers the three assistant tasks (general chat,
YAML generation, log explanation).  Every request is stateless: the client
sends the full history on each turn and the engine builds a fresh message
list from it.

Per-request flow
----------------
  1. RETRIEVE  -- optional and best-effort.  The last user message is the
                  query; a retrieval failure is logged and the turn goes on
                  without context.
  2. PROMPT    -- the task's fixed system prompt, preceded by any retrieved
                  context, becomes one leading system message.  Messages
                  tagged ``rag-context`` (injected on an earlier turn) are
                  folded into it and removed from the forwarded history.
                  A client ``system`` message without that tag is left in
                  place.
  3. DISPATCH  -- the tool loop when tools are enabled and available,
                  otherwise one direct LLM call without tools.
  4. NORMALIZE -- both paths produce an :class:`AssistantResponse`.

Initial vs. follow-up turns
---------------------------
YAML generation and log explanation synthesize their prompt only on the
initial turn.  Callers should send ``turn_kind`` explicitly; without it a
request holding exactly one ``user`` message is treated as initial.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

import structlog

from kb_assistant.models.conversation import (
    AssistantResponse,
    ChatMessage,
    MessageProvenance,
    ToolCall,
    TurnKind,
)
from kb_assistant.models.documents import FileFormat, SearchResult
from kb_assistant.services import system_prompts
from kb_assistant.utils.errors import AssistantError, ChatProcessingError

if TYPE_CHECKING:
    from kb_assistant.interfaces.llm_provider import ILLMProvider
    from kb_assistant.interfaces.tool_processing_service import IToolProcessingService
    from kb_assistant.services.knowledge_base import KnowledgeBaseService

logger = structlog.get_logger(logger_name=__name__)

_SECTION_SEPARATOR = "\n\n---\n\n"
_YAML_BLOCK_RE = re.compile(r"```(?:yaml|yml)\n([\s\S]*?)```")
_DEFAULT_LOG_REQUEST = "Identify any errors, warnings, or issues and provide troubleshooting guidance."


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------

def format_rag_context(results: list[SearchResult]) -> str:
    """Render search results as numbered documents for the system prompt."""
    sections = []
    for index, result in enumerate(results):
        meta = result.metadata
        score = f" (relevance: {result.score * 100:.1f}%)" if result.score else ""
        format_line = f"Format: {meta['format']}" if meta.get("format") else ""
        chunk_line = (
            f"Chunk: {int(meta['chunkIndex']) + 1}/{int(meta.get('totalChunks') or 0)}"
            if meta.get("chunkIndex") is not None
            else ""
        )
        sections.append(
            f"[Document {index + 1}{score}]\n"
            f"Source: {meta.get('fileName') or 'Unknown'}\n"
            f"{format_line}\n"
            f"{chunk_line}\n"
            f"\n"
            f"Content:\n"
            f"{result.content}"
        )
    return _SECTION_SEPARATOR.join(sections)


def format_yaml_examples(results: list[SearchResult]) -> str:
    """Render YAML search results as reference examples."""
    return _SECTION_SEPARATOR.join(
        f"Example {index + 1} - {result.metadata.get('fileName') or 'Unknown'}:\n"
        f"Kind: {result.metadata.get('kind') or 'Resource'}\n"
        f"ApiVersion: {result.metadata.get('apiVersion') or ''}\n"
        f"\n"
        f"{result.content}"
        for index, result in enumerate(results)
    )


def format_tool_usage(reply: str, tool_calls: list[ToolCall]) -> str:
    """Prefix *reply* with the names of the tools that produced it."""
    if not tool_calls:
        return reply
    names = ", ".join(call.function.name for call in tool_calls)
    return f"**Tools used:** {names}{_SECTION_SEPARATOR}{reply}"


def extract_yaml_blocks(content: str) -> list[str]:
    """Return the stripped bodies of fenced ```yaml / ```yml blocks."""
    return [match.strip() for match in _YAML_BLOCK_RE.findall(content)]


def resolve_turn_kind(messages: list[ChatMessage], turn_kind: TurnKind | None = None) -> TurnKind:
    """Return *turn_kind* when given, otherwise infer it from *messages*."""
    if turn_kind is not None:
        return turn_kind
    if len(messages) == 1 and messages[0].role == "user":
        return TurnKind.INITIAL
    return TurnKind.FOLLOWUP


def _last_user_content(messages: list[ChatMessage]) -> str | None:
    for message in reversed(messages):
        if message.role == "user":
            return message.content
    return None


def _require_query(messages: list[ChatMessage]) -> None:
    if not messages:
        raise ValueError("No query provided: messages must not be empty")
    if messages[-1].content is None:
        raise ValueError("No query provided: last message has no content")


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------

class ContextFusionEngine:
    """Builds prompts from history, retrieval and task context and dispatches them.

    Parameters
    ----------
    llm_provider:
        Used directly when tools are disabled or unavailable.
    knowledge_base:
        Optional; retrieval is skipped when ``None``.
    tool_service:
        Optional tool loop; tool use is skipped when ``None``.
    default_top_k:
        Number of chunks retrieved when the request does not say.
    """

    def __init__(
        self,
        llm_provider: ILLMProvider,
        knowledge_base: KnowledgeBaseService | None = None,
        tool_service: IToolProcessingService | None = None,
        default_top_k: int = 3,
    ) -> None:
        self._llm = llm_provider
        self._knowledge_base = knowledge_base
        self._tool_service = tool_service
        self._default_top_k = default_top_k

    # ------------------------------------------------------------------
    # General chat
    # ------------------------------------------------------------------

    async def send_chat_message(
        self,
        messages: list[ChatMessage],
        enable_tools: bool = False,
        enable_rag: bool = False,
        top_k: int | None = None,
        enabled_server_ids: list[str] | None = None,
    ) -> AssistantResponse:
        """Answer a general Kubernetes question.

        Raises
        ------
        ValueError
            If *messages* is empty or the last message has no content.
        ChatProcessingError
            If the LLM call or the tool loop fails.
        """
        _require_query(messages)
        logger.info(
            "chat_message_received",
            enable_tools=enable_tools,
            enable_rag=enable_rag,
            message_count=len(messages),
        )

        results: list[SearchResult] = []
        if enable_rag:
            results = await self._retrieve(messages, top_k)

        rag_messages = [
            m.content or "" for m in messages if m.provenance is MessageProvenance.RAG_CONTEXT
        ]
        if results:
            rag_messages.append(
                system_prompts.RAG_CONTEXT_TEMPLATE.format(context=format_rag_context(results))
            )
        history = [
            m
            for m in messages
            if m.provenance not in (MessageProvenance.RAG_CONTEXT, MessageProvenance.SYSTEM_PROMPT)
        ]
        system_content = _SECTION_SEPARATOR.join([*rag_messages, system_prompts.GENERAL_CHAT])
        conversation = [self._system_message(system_content), *history]
        rag_context = [r.content for r in results] or None

        try:
            if enable_tools and self._tool_service is not None:
                return await self._dispatch_tools(
                    self._tool_service, conversation, enabled_server_ids, rag_context
                )
            response = await self._llm.send_message(conversation, None)
        except AssistantError as exc:
            logger.error("chat_message_failed", error=str(exc))
            raise ChatProcessingError(
                message=f"Failed to process chat message: {exc.message}",
                provider_name=exc.provider_name,
            ) from exc

        return AssistantResponse(
            content=(response.message.content if response.message else None) or "",
            rag_context=rag_context,
        )

    # ------------------------------------------------------------------
    # YAML generation
    # ------------------------------------------------------------------

    async def generate_yaml(
        self,
        messages: list[ChatMessage],
        enable_rag: bool = False,
        top_k: int | None = None,
        turn_kind: TurnKind | None = None,
    ) -> AssistantResponse:
        """Generate a Kubernetes manifest and extract its YAML blocks.

        On the initial turn, YAML examples from the knowledge base (when
        enabled) are appended to the generation prompt.  Follow-up turns
        forward the history unchanged.
        """
        _require_query(messages)
        kind = resolve_turn_kind(messages, turn_kind)
        logger.info(
            "yaml_generation_started",
            turn_kind=kind.value,
            enable_rag=enable_rag,
            message_count=len(messages),
        )

        rag_context: list[str] | None = None
        if kind is TurnKind.INITIAL:
            system_content = system_prompts.YAML_GENERATION
            if enable_rag:
                results = await self._retrieve(
                    messages, top_k, filter={"format": FileFormat.YAML.value}
                )
                # The store filter is not trusted to be exact.
                examples = [r for r in results if r.metadata.get("format") == FileFormat.YAML.value]
                if examples:
                    rag_context = [r.content for r in examples]
                    system_content = (
                        f"{system_prompts.YAML_GENERATION}\n\n"
                        + system_prompts.YAML_EXAMPLES_TEMPLATE.format(
                            examples=format_yaml_examples(examples)
                        )
                    )
                    logger.info("yaml_examples_retrieved", count=len(examples))
            conversation = [self._system_message(system_content), *messages]
        else:
            conversation = list(messages)

        try:
            response = await self._llm.send_message(conversation, None)
        except AssistantError as exc:
            logger.error("yaml_generation_failed", error=str(exc))
            raise ChatProcessingError(
                message=f"Failed to generate YAML: {exc.message}",
                provider_name=exc.provider_name,
            ) from exc

        content = (response.message.content if response.message else None) or ""
        return AssistantResponse(
            content=content,
            yaml_blocks=extract_yaml_blocks(content),
            rag_context=rag_context,
        )

    # ------------------------------------------------------------------
    # Log explanation
    # ------------------------------------------------------------------

    async def explain_logs(
        self,
        messages: list[ChatMessage],
        resource_type: str,
        resource_name: str,
        namespace: str,
        log_type: str,
        turn_kind: TurnKind | None = None,
        enabled_server_ids: list[str] | None = None,
    ) -> AssistantResponse:
        """Fetch and analyze a resource's logs through the tool loop.

        The initial turn rewrites the conversation into a system message
        carrying the resource/namespace/log-type context and a user message
        asking for the logs.  Without a tool service the model answers
        directly.
        """
        _require_query(messages)
        kind = resolve_turn_kind(messages, turn_kind)
        logger.info(
            "log_explanation_started",
            resource=f"{resource_type}/{resource_name}",
            namespace=namespace,
            log_type=log_type,
            turn_kind=kind.value,
        )

        if kind is TurnKind.INITIAL:
            system_content = (
                f"{system_prompts.LOG_ANALYSIS}\n\n"
                + system_prompts.LOG_TOOL_INSTRUCTIONS.format(
                    resource_type=resource_type,
                    resource_name=resource_name,
                    namespace=namespace,
                    log_type=log_type,
                )
            )
            stderr_hint = " (previous/stderr logs)" if log_type == "stderr" else ""
            request = _last_user_content(messages) or _DEFAULT_LOG_REQUEST
            conversation = [
                self._system_message(system_content),
                ChatMessage(
                    role="user",
                    content=(
                        f'Please fetch the logs for pod "{resource_name}" in namespace '
                        f'"{namespace}"{stderr_hint} and analyze them. {request}'
                    ),
                ),
            ]
        else:
            conversation = list(messages)

        try:
            if self._tool_service is not None:
                return await self._dispatch_tools(
                    self._tool_service, conversation, enabled_server_ids, None
                )
            response = await self._llm.send_message(conversation, None)
        except AssistantError as exc:
            logger.error("log_explanation_failed", error=str(exc))
            raise ChatProcessingError(
                message=f"Failed to analyze logs: {exc.message}",
                provider_name=exc.provider_name,
            ) from exc

        return AssistantResponse(
            content=(response.message.content if response.message else None) or ""
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _retrieve(
        self,
        messages: list[ChatMessage],
        top_k: int | None,
        filter: dict[str, str] | None = None,
    ) -> list[SearchResult]:
        """Best-effort retrieval for the last user message."""
        if self._knowledge_base is None:
            return []
        query = _last_user_content(messages)
        if not query:
            return []
        try:
            results = await self._knowledge_base.search(
                query, top_k=top_k or self._default_top_k, filter=filter
            )
        except Exception as exc:
            logger.warning("rag_retrieval_failed", error=str(exc), exc_info=True)
            return []
        logger.info("rag_context_retrieved", chunks=len(results))
        return results

    async def _dispatch_tools(
        self,
        tool_service: IToolProcessingService,
        conversation: list[ChatMessage],
        enabled_server_ids: list[str] | None,
        rag_context: list[str] | None,
    ) -> AssistantResponse:
        logger.info(
            "tool_dispatch",
            available_tools=len(tool_service.get_available_tools()),
        )
        result = await tool_service.process_query(conversation, enabled_server_ids or [])
        return AssistantResponse(
            content=format_tool_usage(result.reply, result.tool_calls),
            tools_used=[call.function.name for call in result.tool_calls],
            tool_responses=list(result.tool_responses),
            rag_context=rag_context,
        )

    @staticmethod
    def _system_message(content: str) -> ChatMessage:
        return ChatMessage(
            role="system", content=content, provenance=MessageProvenance.SYSTEM_PROMPT
        )
