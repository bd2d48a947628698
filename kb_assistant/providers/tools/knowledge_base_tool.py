"""Built-in ``search_knowledge_base`` tool backed by the knowledge base.

Lets the model pull documentation chunks on demand during a tool loop, in
addition to (or instead of) up-front retrieval.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from kb_assistant.services.context_fusion import format_rag_context
from kb_assistant.utils.errors import ToolExecutionError

if TYPE_CHECKING:
    from kb_assistant.providers.tools.tool_loop_service import ToolRegistry
    from kb_assistant.services.knowledge_base import KnowledgeBaseService

TOOL_NAME = "search_knowledge_base"
SERVER_ID = "knowledge-base"

_PARAMETERS: dict[str, Any] = {
    "type": "object",
    "properties": {
        "query": {"type": "string", "description": "What to look for in the uploaded documents."},
        "topK": {"type": "integer", "description": "Maximum number of chunks to return."},
        "format": {
            "type": "string",
            "enum": ["yaml", "pdf", "text", "markdown"],
            "description": "Only return chunks of this document format.",
        },
    },
    "required": ["query"],
}


def register_knowledge_base_tool(
    registry: ToolRegistry, knowledge_base: KnowledgeBaseService, default_top_k: int = 3
) -> None:
    """Register ``search_knowledge_base`` on *registry* under server ``knowledge-base``."""

    async def search_knowledge_base(arguments: dict[str, Any]) -> str:
        query = str(arguments.get("query") or "").strip()
        if not query:
            raise ToolExecutionError(message="query is required", provider_name=SERVER_ID)
        top_k = int(arguments.get("topK") or default_top_k)
        doc_format = arguments.get("format")
        results = await knowledge_base.search(
            query, top_k=top_k, filter={"format": doc_format} if doc_format else None
        )
        if not results:
            return "No matching documents found in the knowledge base."
        return format_rag_context(results)

    registry.register(
        TOOL_NAME,
        search_knowledge_base,
        description="Search the user's uploaded documentation and Kubernetes manifests.",
        parameters=_PARAMETERS,
        server_id=SERVER_ID,
    )
