"""Pinecone vector store provider adapter.

Wraps the ``pinecone`` SDK index client to implement
:class:`IVectorStoreProvider`.  Chunk text is stored in the ``content``
metadata field because Pinecone keeps only vectors and metadata.

The SDK is synchronous; calls run in a worker thread so the event loop
stays responsive.  Deleting by metadata filter is only available on some
index types, so it is gated behind ``pinecone_supports_filtered_delete``.
"""

from __future__ import annotations

import asyncio
from typing import Any

import structlog
from pinecone import Pinecone

from kb_assistant.interfaces.vector_store_provider import IVectorStoreProvider
from kb_assistant.models.documents import IdPage, SearchResult, VectorDocument, VectorStoreStats
from kb_assistant.utils.errors import RAGError

logger = structlog.get_logger(logger_name=__name__)

_UPSERT_BATCH = 100
_MAX_LIST_LIMIT = 100


class PineconeProvider(IVectorStoreProvider):
    """Vector store provider backed by a Pinecone index."""

    def __init__(
        self,
        api_key: str,
        index_name: str,
        namespace: str = "",
        supports_filtered_delete: bool = False,
    ) -> None:
        self._index_name = index_name
        self._default_namespace = namespace
        self._filtered_delete = supports_filtered_delete
        self._client = Pinecone(api_key=api_key)
        self._index = self._client.Index(index_name)

    def _ns(self, namespace: str | None) -> str:
        return namespace if namespace is not None else self._default_namespace

    # ------------------------------------------------------------------
    # IVectorStoreProvider implementation
    # ------------------------------------------------------------------

    async def upsert(self, documents: list[VectorDocument], namespace: str | None = None) -> None:
        if not documents:
            return
        vectors = [
            {
                "id": d.id,
                "values": d.embedding,
                "metadata": {**self._clean_metadata(d.metadata), "content": d.content},
            }
            for d in documents
        ]
        try:
            for start in range(0, len(vectors), _UPSERT_BATCH):
                await asyncio.to_thread(
                    self._index.upsert,
                    vectors=vectors[start : start + _UPSERT_BATCH],
                    namespace=self._ns(namespace),
                )
            logger.info("pinecone_upsert", count=len(vectors), index=self._index_name)
        except Exception as exc:
            raise RAGError(
                message=f"Pinecone upsert failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    async def query(
        self,
        embedding: list[float],
        top_k: int = 3,
        filter: dict[str, Any] | None = None,
        namespace: str | None = None,
    ) -> list[SearchResult]:
        kwargs: dict[str, Any] = {
            "vector": embedding,
            "top_k": top_k,
            "include_metadata": True,
            "namespace": self._ns(namespace),
        }
        if filter:
            kwargs["filter"] = filter
        try:
            response = await asyncio.to_thread(self._index.query, **kwargs)
        except Exception as exc:
            raise RAGError(
                message=f"Pinecone query failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        results: list[SearchResult] = []
        for match in response.matches or []:
            metadata = dict(match.metadata or {})
            content = str(metadata.pop("content", ""))
            results.append(
                SearchResult(id=match.id, score=match.score, content=content, metadata=metadata)
            )
        logger.info("pinecone_query", top_k=top_k, results_count=len(results))
        return results

    async def delete(self, ids: list[str], namespace: str | None = None) -> None:
        if not ids:
            return
        try:
            await asyncio.to_thread(self._index.delete, ids=ids, namespace=self._ns(namespace))
            logger.info("pinecone_delete", count=len(ids))
        except Exception as exc:
            raise RAGError(
                message=f"Pinecone delete failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    async def list_ids(
        self,
        limit: int = 100,
        page_token: str | None = None,
        namespace: str | None = None,
    ) -> IdPage:
        """List one page of ids; *limit* is clamped to 1..100."""
        kwargs: dict[str, Any] = {
            "limit": max(1, min(limit, _MAX_LIST_LIMIT)),
            "namespace": self._ns(namespace),
        }
        if page_token:
            kwargs["pagination_token"] = page_token
        try:
            response = await asyncio.to_thread(self._index.list_paginated, **kwargs)
        except Exception as exc:
            raise RAGError(
                message=f"Pinecone list failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        ids = [v.id for v in response.vectors or []]
        pagination = getattr(response, "pagination", None)
        next_token = pagination.next if pagination is not None else None
        return IdPage(ids=ids, next_token=next_token or None)

    async def fetch_by_ids(
        self, ids: list[str], namespace: str | None = None
    ) -> list[VectorDocument]:
        if not ids:
            return []
        try:
            response = await asyncio.to_thread(
                self._index.fetch, ids=ids, namespace=self._ns(namespace)
            )
        except Exception as exc:
            raise RAGError(
                message=f"Pinecone fetch failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        documents: list[VectorDocument] = []
        for chunk_id, vector in (response.vectors or {}).items():
            metadata = dict(vector.metadata or {})
            content = str(metadata.pop("content", ""))
            documents.append(VectorDocument(id=chunk_id, content=content, metadata=metadata))
        return documents

    async def get_stats(self) -> VectorStoreStats:
        try:
            stats = await asyncio.to_thread(self._index.describe_index_stats)
        except Exception as exc:
            raise RAGError(
                message=f"Pinecone stats failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        return VectorStoreStats(
            total_documents=stats.total_vector_count or 0,
            dimensions=stats.dimension,
        )

    async def health_check(self) -> bool:
        try:
            await asyncio.to_thread(self._index.describe_index_stats)
            return True
        except Exception as exc:
            logger.warning("pinecone_health_check_failed", error=str(exc))
            return False

    def supports_filtered_delete(self) -> bool:
        return self._filtered_delete

    async def delete_by_filter(
        self, filter: dict[str, Any], namespace: str | None = None
    ) -> int:
        """Delete by metadata filter.

        Pinecone does not report how many vectors a filtered delete removed,
        and a metadata query is capped at 1000 matches, so the matching ids
        are counted by walking ``list_ids`` / ``fetch_by_ids`` first.
        """
        if not self._filtered_delete:
            return await super().delete_by_filter(filter, namespace)
        count = len(await self._matching_ids(filter, namespace))
        try:
            await asyncio.to_thread(
                self._index.delete, filter=filter, namespace=self._ns(namespace)
            )
        except Exception as exc:
            raise RAGError(
                message=f"Pinecone delete_by_filter failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        logger.info("pinecone_delete_by_filter", filter=filter, deleted_count=count)
        return count

    async def _matching_ids(self, filter: dict[str, Any], namespace: str | None) -> list[str]:
        matched: list[str] = []
        token: str | None = None
        while True:
            page = await self.list_ids(_MAX_LIST_LIMIT, token, namespace)
            for document in await self.fetch_by_ids(page.ids, namespace):
                if all(document.metadata.get(key) == value for key, value in filter.items()):
                    matched.append(document.id)
            if not page.next_token:
                return matched
            token = page.next_token

    def get_provider_name(self) -> str:
        return "pinecone"

    def get_index_name(self) -> str:
        return self._index_name

    @staticmethod
    def _clean_metadata(metadata: dict[str, Any]) -> dict[str, Any]:
        """Drop ``None`` values; Pinecone rejects null metadata."""
        return {key: value for key, value in metadata.items() if value is not None}
