"""FastAPI routes for the knowledge-base assistant.

Endpoint                          Method  Description
--------------------------------  ------  ------------------------------------
/api/v1/health                    GET     Liveness check
/api/v1/chat                      POST    General chat (RAG and tools optional)
/api/v1/generate-yaml             POST    Kubernetes manifest generation
/api/v1/explain-logs              POST    Log fetch + analysis via tools
/api/v1/provider/status           GET     LLM provider connectivity
/api/v1/vector-store/status       GET     Embedding + vector store health
/api/v1/tools/status              GET     Tool service summary
/api/v1/tools                     GET     Registered tool descriptors
/api/v1/search                    POST    Semantic search of the knowledge base
/api/v1/documents                 GET     Logical documents (``?namespace=``)
/api/v1/documents/yaml            GET     YAML documents only
/api/v1/documents/upload          POST    Multi-file upload
/api/v1/documents/{file_name}     DELETE  Delete every chunk of one file

Services are read from ``app.state`` (populated at startup in
``kb_assistant.main``) through ``Annotated[..., Depends(...)]`` aliases.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, Any

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import ValidationError

from kb_assistant import __version__
from kb_assistant.api.schemas import (
    ChatRequest,
    DeleteResponse,
    DocumentListResponse,
    ErrorResponse,
    HealthResponse,
    LogExplainRequest,
    MessageInput,
    SearchRequest,
    SearchResponse,
    ToolsResponse,
    UploadRequest,
    UploadResponse,
    YamlGenerateRequest,
)
from kb_assistant.config.settings import Settings
from kb_assistant.models.conversation import (
    AssistantResponse,
    ChatMessage,
    LLMProviderStatus,
    ToolStatus,
)
from kb_assistant.models.documents import ChunkSettings, KnowledgeBaseStatus
from kb_assistant.services.assistant_status import AssistantStatusService
from kb_assistant.services.context_fusion import ContextFusionEngine
from kb_assistant.services.knowledge_base import KnowledgeBaseService
from kb_assistant.utils.errors import ProviderUnavailableError
from kb_assistant.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

router = APIRouter(prefix="/api/v1")

_CHAT_ROLES = frozenset({"user", "assistant", "system", "tool"})
_TASK_ROLES = frozenset({"user", "assistant", "system"})


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------


def _get_settings(request: Request) -> Settings:
    return request.app.state.settings


def _get_fusion_engine(request: Request) -> ContextFusionEngine:
    return request.app.state.fusion_engine


def _get_status_service(request: Request) -> AssistantStatusService:
    return request.app.state.status_service


def _get_knowledge_base(request: Request) -> KnowledgeBaseService:
    """Return the knowledge base; raises ProviderUnavailableError (503) when disabled."""
    knowledge_base = getattr(request.app.state, "knowledge_base", None)
    if knowledge_base is None:
        raise ProviderUnavailableError(
            "Knowledge base is not configured", provider_name="knowledge-base"
        )
    return knowledge_base


def _get_tool_service(request: Request) -> Any:
    """Return the tool service from application state, or ``None``."""
    return getattr(request.app.state, "tool_service", None)


SettingsDep = Annotated[Settings, Depends(_get_settings)]
FusionDep = Annotated[ContextFusionEngine, Depends(_get_fusion_engine)]
StatusDep = Annotated[AssistantStatusService, Depends(_get_status_service)]
KnowledgeBaseDep = Annotated[KnowledgeBaseService, Depends(_get_knowledge_base)]
ToolServiceDep = Annotated[Any, Depends(_get_tool_service)]


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _to_conversation(messages: list[MessageInput], allowed_roles: frozenset[str]) -> list[ChatMessage]:
    """Validate a client message list and convert it for the fusion engine.

    Rejects an empty list, unknown roles and a last message without
    content, all before any provider is called.
    """
    if not messages:
        raise HTTPException(status_code=400, detail="No query provided")
    for message in messages:
        if message.role not in allowed_roles:
            raise HTTPException(
                status_code=400,
                detail=f"Invalid message role '{message.role}'. "
                f"Allowed: {', '.join(sorted(allowed_roles))}",
            )
    if messages[-1].content is None:
        raise HTTPException(status_code=400, detail="No query provided")
    return [m.to_chat_message() for m in messages]


def _chunk_settings(body: UploadRequest, settings: Settings) -> ChunkSettings:
    """Merge the request's chunk settings over the configured defaults."""
    provided = body.chunk_settings
    values = {
        "max_chunk_length": settings.default_max_chunk_length,
        "chunk_overlap": settings.default_chunk_overlap,
        "delimiter": settings.default_chunk_delimiter,
        "oversized_policy": settings.default_oversized_policy,
    }
    if provided is not None:
        values.update(provided.model_dump(exclude_none=True))
    try:
        return ChunkSettings(**values)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=f"Invalid chunk settings: {exc}") from exc


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Health & status
# ---------------------------------------------------------------------------


@router.get("/health", response_model=HealthResponse, summary="Liveness check")
async def health() -> HealthResponse:
    return HealthResponse(status="ok", version=__version__)


@router.get("/provider/status", response_model=LLMProviderStatus, summary="LLM provider status")
async def provider_status(status_service: StatusDep) -> LLMProviderStatus:
    return await status_service.get_provider_status()


@router.get(
    "/vector-store/status",
    response_model=KnowledgeBaseStatus,
    response_model_exclude_none=True,
    summary="Knowledge-base status",
)
async def vector_store_status(request: Request) -> KnowledgeBaseStatus:
    """Report embedding and vector-store health; ``configured`` is false when RAG is off."""
    knowledge_base: KnowledgeBaseService | None = getattr(request.app.state, "knowledge_base", None)
    if knowledge_base is None:
        return KnowledgeBaseStatus(configured=False, timestamp=_now())
    return await knowledge_base.get_status()


@router.get("/tools/status", response_model=ToolStatus, summary="Tool service status")
async def tools_status(status_service: StatusDep) -> ToolStatus:
    return status_service.get_tool_status()


@router.get("/tools", response_model=ToolsResponse, summary="List available tools")
async def list_tools(tool_service: ToolServiceDep) -> ToolsResponse:
    if tool_service is None:
        return ToolsResponse(tools=[])
    return ToolsResponse(tools=tool_service.get_available_tools())


# ---------------------------------------------------------------------------
# Conversation endpoints
# ---------------------------------------------------------------------------


@router.post(
    "/chat",
    response_model=AssistantResponse,
    response_model_exclude_none=True,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    summary="General chat",
)
async def chat(body: ChatRequest, fusion: FusionDep) -> AssistantResponse:
    messages = _to_conversation(body.messages, _CHAT_ROLES)
    return await fusion.send_chat_message(
        messages,
        enable_tools=body.enable_mcp_tools,
        enable_rag=body.enable_rag,
        top_k=body.rag_config.top_k if body.rag_config else None,
        enabled_server_ids=body.enabled_server_ids,
    )


@router.post(
    "/generate-yaml",
    response_model=AssistantResponse,
    response_model_exclude_none=True,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    summary="Generate a Kubernetes manifest",
)
async def generate_yaml(body: YamlGenerateRequest, fusion: FusionDep) -> AssistantResponse:
    messages = _to_conversation(body.messages, _TASK_ROLES)
    return await fusion.generate_yaml(
        messages,
        enable_rag=body.enable_rag,
        top_k=body.rag_config.top_k if body.rag_config else None,
        turn_kind=body.turn_kind,
    )


@router.post(
    "/explain-logs",
    response_model=AssistantResponse,
    response_model_exclude_none=True,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    summary="Fetch and explain resource logs",
)
async def explain_logs(body: LogExplainRequest, fusion: FusionDep) -> AssistantResponse:
    messages = _to_conversation(body.messages, _TASK_ROLES)
    return await fusion.explain_logs(
        messages,
        resource_type=body.resource_type,
        resource_name=body.resource_name,
        namespace=body.namespace,
        log_type=body.log_type,
        turn_kind=body.turn_kind,
    )


# ---------------------------------------------------------------------------
# Knowledge base endpoints
# ---------------------------------------------------------------------------


@router.post(
    "/search",
    response_model=SearchResponse,
    responses={503: {"model": ErrorResponse}},
    summary="Search the knowledge base",
)
async def search(body: SearchRequest, knowledge_base: KnowledgeBaseDep) -> SearchResponse:
    results = await knowledge_base.search(
        body.query, top_k=body.top_k, filter=body.filter, namespace=body.namespace
    )
    return SearchResponse(results=results, total=len(results))


@router.get(
    "/documents",
    response_model=DocumentListResponse,
    response_model_exclude_none=True,
    responses={503: {"model": ErrorResponse}},
    summary="List uploaded documents",
)
async def list_documents(
    knowledge_base: KnowledgeBaseDep,
    namespace: Annotated[str | None, Query()] = None,
) -> DocumentListResponse:
    documents = await knowledge_base.list_documents(namespace)
    return DocumentListResponse(
        documents=documents, total_documents=len(documents), timestamp=_now()
    )


@router.get(
    "/documents/yaml",
    response_model=DocumentListResponse,
    response_model_exclude_none=True,
    responses={503: {"model": ErrorResponse}},
    summary="List uploaded YAML documents",
)
async def list_yaml_documents(
    knowledge_base: KnowledgeBaseDep,
    namespace: Annotated[str | None, Query()] = None,
) -> DocumentListResponse:
    documents = await knowledge_base.list_yaml_documents(namespace)
    return DocumentListResponse(
        documents=documents, total_documents=len(documents), timestamp=_now()
    )


@router.post(
    "/documents/upload",
    response_model=UploadResponse,
    responses={400: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
    summary="Upload documents",
)
async def upload_documents(
    body: UploadRequest,
    knowledge_base: KnowledgeBaseDep,
    settings: SettingsDep,
) -> UploadResponse:
    chunk_settings = _chunk_settings(body, settings)
    uploaded = await knowledge_base.upload_files(body.files, chunk_settings, body.namespace)
    failed = len(body.files) - len(uploaded)
    _logger.info("documents_uploaded", uploaded=len(uploaded), failed=failed)
    return UploadResponse(
        success=len(uploaded) > 0,
        uploaded_documents=uploaded,
        total_uploaded=len(uploaded),
        total_failed=failed,
    )


@router.delete(
    "/documents/{file_name:path}",
    response_model=DeleteResponse,
    responses={503: {"model": ErrorResponse}},
    summary="Delete a document",
)
async def delete_document(
    file_name: str,
    knowledge_base: KnowledgeBaseDep,
    namespace: Annotated[str | None, Query()] = None,
) -> DeleteResponse:
    result = await knowledge_base.delete_document(file_name, namespace)
    return DeleteResponse(deleted_count=result.deleted_count, file_name=file_name)
