"""Knowledge-base facade composing ingestion, catalog and retrieval.

The HTTP layer and the chat engine talk only to :class:`KnowledgeBaseService`;
it owns no logic beyond delegation and the health snapshot.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

import structlog

from kb_assistant.models.documents import (
    ChunkSettings,
    DeleteResult,
    EmbeddingProviderStatus,
    FileFormat,
    FileUpload,
    KnowledgeBaseStatus,
    LogicalDocument,
    SearchResult,
    UploadedDocument,
    VectorStoreStatus,
)
from kb_assistant.services.document_catalog import DocumentCatalog
from kb_assistant.services.ingestion.ingestion_service import DocumentIngestionPipeline
from kb_assistant.services.retrieval_service import RetrievalService
from kb_assistant.utils.errors import RAGError

if TYPE_CHECKING:
    from kb_assistant.interfaces.embedding_provider import IEmbeddingProvider
    from kb_assistant.interfaces.vector_store_provider import IVectorStoreProvider

logger = structlog.get_logger(logger_name=__name__)


class KnowledgeBaseService:
    """Single entry point for document upload, browsing, deletion and search.

    Parameters
    ----------
    embedding_provider:
        Shared by ingestion and retrieval.
    vector_store:
        Shared by ingestion, catalog and retrieval.
    pipeline, catalog, retrieval:
        Optional pre-built collaborators; built from the providers when
        omitted.
    """

    def __init__(
        self,
        embedding_provider: IEmbeddingProvider,
        vector_store: IVectorStoreProvider,
        pipeline: DocumentIngestionPipeline | None = None,
        catalog: DocumentCatalog | None = None,
        retrieval: RetrievalService | None = None,
    ) -> None:
        self._embedding_provider = embedding_provider
        self._vector_store = vector_store
        self._pipeline = pipeline or DocumentIngestionPipeline(embedding_provider, vector_store)
        self._catalog = catalog or DocumentCatalog(vector_store)
        self._retrieval = retrieval or RetrievalService(embedding_provider, vector_store)

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    async def upload_file(
        self,
        content: str,
        file_name: str,
        settings: ChunkSettings | None = None,
        namespace: str | None = None,
    ) -> UploadedDocument:
        return await self._pipeline.ingest(content, file_name, settings, namespace)

    async def upload_files(
        self,
        files: list[FileUpload],
        settings: ChunkSettings | None = None,
        namespace: str | None = None,
    ) -> list[UploadedDocument]:
        return await self._pipeline.ingest_all(files, settings, namespace)

    async def list_documents(self, namespace: str | None = None) -> list[LogicalDocument]:
        return await self._catalog.list_documents(namespace)

    async def list_yaml_documents(self, namespace: str | None = None) -> list[LogicalDocument]:
        documents = await self._catalog.list_documents(namespace)
        return [doc for doc in documents if doc.format is FileFormat.YAML]

    async def delete_document(
        self, file_name: str, namespace: str | None = None
    ) -> DeleteResult:
        return await self._catalog.delete_document(file_name, namespace)

    # ------------------------------------------------------------------
    # Retrieval
    # ------------------------------------------------------------------

    async def search(
        self,
        query: str,
        top_k: int | None = None,
        filter: dict[str, Any] | None = None,
        namespace: str | None = None,
    ) -> list[SearchResult]:
        return await self._retrieval.search(query, top_k=top_k, filter=filter, namespace=namespace)

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    async def get_status(self) -> KnowledgeBaseStatus:
        """Probe the embedding provider and the vector store.

        Stats are only requested from a healthy store; a stats failure is
        logged and leaves the counts empty.
        """
        embedding_test = await self._embedding_provider.test_connection()
        healthy = await self._vector_store.health_check()

        stats = None
        if healthy:
            try:
                stats = await self._vector_store.get_stats()
            except RAGError as exc:
                logger.warning("vector_store_stats_failed", error=str(exc))

        return KnowledgeBaseStatus(
            configured=True,
            embedding_provider=EmbeddingProviderStatus(
                id=self._embedding_provider.get_provider_name(),
                model=self._embedding_provider.get_model(),
                dimensions=self._embedding_provider.get_dimension(),
                connected=embedding_test.connected,
                error=embedding_test.error,
            ),
            vector_store=VectorStoreStatus(
                id=self._vector_store.get_provider_name(),
                index_name=self._vector_store.get_index_name(),
                connected=healthy,
                total_documents=stats.total_documents if stats else None,
                dimensions=stats.dimensions if stats else None,
                error=None if healthy else "Connection failed",
            ),
            timestamp=datetime.now(timezone.utc).isoformat(),
        )
