"""Knowledge-base assistant FastAPI application entry point.

Wires providers and services together at startup and stores them on
``app.state`` for the routes.  Configuration comes from environment
variables and ``.env`` (see :class:`Settings`).  An invalid provider
selection raises :class:`ConfigurationError` during startup.

Run with ``python -m kb_assistant.main`` or ``uvicorn kb_assistant.main:app``.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

import structlog
import uvicorn
from fastapi import FastAPI

from kb_assistant import __version__
from kb_assistant.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
    register_exception_handlers,
)
from kb_assistant.api.routes import router as api_router
from kb_assistant.config.settings import Settings
from kb_assistant.providers.factory import (
    create_embedding_provider,
    create_llm_provider,
    create_vector_store,
)
from kb_assistant.providers.tools import ToolLoopService, ToolRegistry, register_knowledge_base_tool
from kb_assistant.services.assistant_status import AssistantStatusService
from kb_assistant.services.context_fusion import ContextFusionEngine
from kb_assistant.services.knowledge_base import KnowledgeBaseService
from kb_assistant.utils.logging import configure_logging, get_logger

_logger: structlog.BoundLogger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Full DI assembly for the FastAPI application
# ---------------------------------------------------------------------------


def build_components(app_settings: Settings) -> dict[str, Any]:
    """Construct every provider and service instance for the application.

    Returns a flat dict of named components to be stored on ``app.state``.
    The knowledge base is ``None`` when RAG is disabled and the tool service
    is ``None`` when tools are disabled.
    """
    llm = create_llm_provider(app_settings)

    knowledge_base: KnowledgeBaseService | None = None
    if app_settings.rag_enabled:
        knowledge_base = KnowledgeBaseService(
            embedding_provider=create_embedding_provider(app_settings),
            vector_store=create_vector_store(app_settings),
        )

    tool_service: ToolLoopService | None = None
    if app_settings.tools_enabled:
        registry = ToolRegistry()
        if knowledge_base is not None:
            register_knowledge_base_tool(registry, knowledge_base, app_settings.rag_top_k)
        tool_service = ToolLoopService(llm, registry, max_rounds=app_settings.tool_max_rounds)

    fusion_engine = ContextFusionEngine(
        llm_provider=llm,
        knowledge_base=knowledge_base,
        tool_service=tool_service,
        default_top_k=app_settings.rag_top_k,
    )

    return {
        "settings": app_settings,
        "llm_provider": llm,
        "knowledge_base": knowledge_base,
        "tool_service": tool_service,
        "fusion_engine": fusion_engine,
        "status_service": AssistantStatusService(llm, tool_service),
    }


# ---------------------------------------------------------------------------
# Application lifespan (startup / shutdown)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def _lifespan(application: FastAPI):  # noqa: ANN201
    """Load settings and initialise all providers and services on startup."""
    app_settings = Settings()
    configure_logging(
        log_level=app_settings.log_level,
        json_output=(app_settings.app_env == "production"),
    )
    components = build_components(app_settings)

    for key, value in components.items():
        setattr(application.state, key, value)

    _logger.info(
        "app_startup",
        version=__version__,
        environment=app_settings.app_env,
        llm_provider=components["llm_provider"].get_provider_name(),
        rag_enabled=components["knowledge_base"] is not None,
        tools_enabled=components["tool_service"] is not None,
    )

    yield

    _logger.info("app_shutdown")


# ---------------------------------------------------------------------------
# FastAPI application factory
# ---------------------------------------------------------------------------


def create_app() -> FastAPI:
    """Build and configure the FastAPI application."""
    application = FastAPI(
        title="Kubernetes Knowledge-Base Assistant API",
        version=__version__,
        description=(
            "Upload Kubernetes manifests and documentation into a vector store, "
            "then chat, generate YAML and explain logs with retrieved context "
            "and tool calls."
        ),
        lifespan=_lifespan,
    )

    # -- Middleware (last added = first executed) --
    application.add_middleware(ErrorHandlingMiddleware)
    application.add_middleware(RequestLoggingMiddleware)
    configure_cors(application)
    register_exception_handlers(application)

    application.include_router(api_router)
    return application


app = create_app()

# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    _settings = Settings()
    uvicorn.run(
        "kb_assistant.main:app",
        host=_settings.app_host,
        port=_settings.app_port,
        reload=(_settings.app_env == "development"),
    )
