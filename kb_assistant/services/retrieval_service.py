"""Semantic search over the knowledge base.

One embedding call for the query, one vector-store query, results returned
as the store ranked them.  Callers that need stricter metadata filtering
than the store's filter language offers post-filter the results themselves.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog

from kb_assistant.models.documents import SearchResult
from kb_assistant.utils.errors import AssistantError

if TYPE_CHECKING:
    from kb_assistant.interfaces.embedding_provider import IEmbeddingProvider
    from kb_assistant.interfaces.vector_store_provider import IVectorStoreProvider

logger = structlog.get_logger(logger_name=__name__)

DEFAULT_TOP_K = 3


class RetrievalService:
    """Embeds a query and returns the nearest stored chunks."""

    def __init__(
        self,
        embedding_provider: IEmbeddingProvider,
        vector_store: IVectorStoreProvider,
    ) -> None:
        self._embedding_provider = embedding_provider
        self._vector_store = vector_store

    async def search(
        self,
        query: str,
        top_k: int | None = None,
        filter: dict[str, Any] | None = None,
        namespace: str | None = None,
    ) -> list[SearchResult]:
        """Return up to *top_k* chunks most similar to *query*.

        Raises
        ------
        RAGError
            If embedding the query or querying the store fails.
        """
        top_k = top_k or DEFAULT_TOP_K
        try:
            embedding = await self._embedding_provider.embed(query)
            results = await self._vector_store.query(
                embedding, top_k=top_k, filter=filter, namespace=namespace
            )
        except AssistantError as exc:
            logger.error("knowledge_base_search_failed", error=str(exc), top_k=top_k)
            raise

        logger.info(
            "knowledge_base_search",
            query_length=len(query),
            top_k=top_k,
            filter=filter,
            results_count=len(results),
        )
        return results
