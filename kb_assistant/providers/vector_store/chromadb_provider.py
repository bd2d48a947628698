"""ChromaDB vector store provider adapter.

Wraps `chromadb.PersistentClient` to implement :class:`IVectorStoreProvider`.
Uses cosine distance for similarity search and stores pre-computed
embeddings only.  Fully local, no external service required.

Chroma has no namespaces; the *namespace* arguments are accepted for
interface compatibility and ignored.  Page tokens are stringified offsets.
"""

from __future__ import annotations

import os
from typing import Any

# Disable ChromaDB telemetry before importing chromadb.  The bundled PostHog
# client can be incompatible with the installed posthog version.
os.environ["ANONYMIZED_TELEMETRY"] = "False"

import posthog

posthog.disabled = True

import chromadb
import structlog

from kb_assistant.interfaces.vector_store_provider import IVectorStoreProvider
from kb_assistant.models.documents import IdPage, SearchResult, VectorDocument, VectorStoreStats
from kb_assistant.utils.errors import RAGError

logger = structlog.get_logger(logger_name=__name__)


class _NoopEmbeddingFunction(chromadb.EmbeddingFunction[list[str]]):
    """Embedding function that is never called.

    Every upsert and query passes pre-computed vectors, so Chroma must not
    download and load its default ONNX model on collection creation.
    """

    def __call__(self, input: list[str]) -> list[list[float]]:
        raise NotImplementedError(
            "Embeddings are pre-computed; ChromaDB's built-in embedding should never be called."
        )

    def name(self) -> str:
        return "noop_precomputed"


class ChromaDBProvider(IVectorStoreProvider):
    """Vector store provider backed by ChromaDB with local persistence.

    Chroma supports ``delete(where=...)`` natively, so deleting a logical
    document is a single filtered call rather than a full scan.
    """

    def __init__(
        self,
        persist_directory: str = "./data/chromadb",
        collection_name: str = "knowledge_base",
        expected_dimension: int | None = None,
    ) -> None:
        self._persist_directory = persist_directory
        self._collection_name = collection_name
        self._client = chromadb.PersistentClient(
            path=persist_directory,
            settings=chromadb.config.Settings(anonymized_telemetry=False),
        )
        # A collection created by an older chromadb with the default
        # embedding function rejects a different one; reopen without it.
        try:
            self._collection = self._client.get_or_create_collection(
                name=collection_name,
                metadata={"hnsw:space": "cosine"},
                embedding_function=_NoopEmbeddingFunction(),
            )
        except ValueError:
            self._collection = self._client.get_or_create_collection(
                name=collection_name,
                metadata={"hnsw:space": "cosine"},
            )

        if expected_dimension is not None:
            self._validate_embedding_dimensions(expected_dimension)

    # ------------------------------------------------------------------
    # Startup validation
    # ------------------------------------------------------------------

    def _validate_embedding_dimensions(self, expected_dim: int) -> None:
        """Fail fast if stored vectors do not match the embedding provider."""
        try:
            if self._collection.count() == 0:
                return

            sample = self._collection.peek(limit=1)
            embeddings = sample.get("embeddings") if sample else None
            if embeddings is None or len(embeddings) == 0:
                return

            stored_dim = len(embeddings[0])
            if stored_dim != expected_dim:
                logger.error(
                    "embedding_dimension_mismatch",
                    stored_dim=stored_dim,
                    expected_dim=expected_dim,
                )
                raise RAGError(
                    message=(
                        f"Embedding dimension mismatch: collection has {stored_dim}-dim "
                        f"vectors but the embedding provider produces {expected_dim}-dim vectors."
                    ),
                    provider_name="chromadb",
                )
            logger.info("embedding_dimension_validated", dimension=stored_dim)
        except RAGError:
            raise
        except Exception as exc:
            logger.warning("embedding_dimension_check_skipped", error=str(exc))

    # ------------------------------------------------------------------
    # IVectorStoreProvider implementation
    # ------------------------------------------------------------------

    async def upsert(self, documents: list[VectorDocument], namespace: str | None = None) -> None:
        if not documents:
            return
        try:
            self._collection.upsert(
                ids=[d.id for d in documents],
                embeddings=[d.embedding for d in documents],
                documents=[d.content for d in documents],
                metadatas=[self._clean_metadata(d.metadata) for d in documents],
            )
            logger.info("chromadb_upsert", count=len(documents), collection=self._collection_name)
        except Exception as exc:
            raise RAGError(
                message=f"ChromaDB upsert failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    async def query(
        self,
        embedding: list[float],
        top_k: int = 3,
        filter: dict[str, Any] | None = None,
        namespace: str | None = None,
    ) -> list[SearchResult]:
        """Return nearest chunks; cosine distance is converted to similarity."""
        try:
            kwargs: dict[str, Any] = {
                "query_embeddings": [embedding],
                "n_results": top_k,
                "include": ["documents", "metadatas", "distances"],
            }
            where = self._translate_filter(filter)
            if where:
                kwargs["where"] = where

            results = self._collection.query(**kwargs)
            ids = results["ids"][0] if results["ids"] else []
            if not ids:
                return []

            documents = results["documents"][0] if results["documents"] else [""] * len(ids)
            metadatas = results["metadatas"][0] if results["metadatas"] else [{}] * len(ids)
            distances = results["distances"][0] if results["distances"] else [None] * len(ids)

            matches = [
                SearchResult(
                    id=chunk_id,
                    score=None if distance is None else max(0.0, min(1.0, 1.0 - distance)),
                    content=text or "",
                    metadata=dict(meta or {}),
                )
                for chunk_id, text, meta, distance in zip(
                    ids, documents, metadatas, distances, strict=True
                )
            ]
            logger.info("chromadb_query", top_k=top_k, results_count=len(matches))
            return matches
        except Exception as exc:
            raise RAGError(
                message=f"ChromaDB query failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    async def delete(self, ids: list[str], namespace: str | None = None) -> None:
        if not ids:
            return
        try:
            self._collection.delete(ids=ids)
            logger.info("chromadb_delete", count=len(ids))
        except Exception as exc:
            raise RAGError(
                message=f"ChromaDB delete failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    async def list_ids(
        self,
        limit: int = 100,
        page_token: str | None = None,
        namespace: str | None = None,
    ) -> IdPage:
        offset = int(page_token) if page_token else 0
        try:
            page = self._collection.get(limit=limit, offset=offset, include=["metadatas"])
        except Exception as exc:
            raise RAGError(
                message=f"ChromaDB list_ids failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        ids = list(page["ids"] or [])
        next_token = str(offset + len(ids)) if len(ids) == limit else None
        return IdPage(ids=ids, next_token=next_token)

    async def fetch_by_ids(
        self, ids: list[str], namespace: str | None = None
    ) -> list[VectorDocument]:
        if not ids:
            return []
        try:
            page = self._collection.get(ids=ids, include=["documents", "metadatas"])
        except Exception as exc:
            raise RAGError(
                message=f"ChromaDB fetch failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        documents = page["documents"] or [""] * len(page["ids"])
        metadatas = page["metadatas"] or [{}] * len(page["ids"])
        return [
            VectorDocument(id=chunk_id, content=text or "", metadata=dict(meta or {}))
            for chunk_id, text, meta in zip(page["ids"], documents, metadatas, strict=True)
        ]

    async def get_stats(self) -> VectorStoreStats:
        try:
            count = self._collection.count()
            dimensions: int | None = None
            if count > 0:
                sample = self._collection.peek(limit=1)
                embeddings = sample.get("embeddings") if sample else None
                if embeddings is not None and len(embeddings) > 0:
                    dimensions = len(embeddings[0])
            return VectorStoreStats(total_documents=count, dimensions=dimensions)
        except Exception as exc:
            raise RAGError(
                message=f"ChromaDB get_stats failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    async def health_check(self) -> bool:
        try:
            self._client.heartbeat()
            return True
        except Exception as exc:
            logger.warning("chromadb_health_check_failed", error=str(exc))
            return False

    def supports_filtered_delete(self) -> bool:
        return True

    async def delete_by_filter(
        self, filter: dict[str, Any], namespace: str | None = None
    ) -> int:
        where = self._translate_filter(filter)
        try:
            existing = self._collection.get(where=where, include=["metadatas"])
            count = len(existing["ids"]) if existing["ids"] else 0
            if count > 0:
                self._collection.delete(where=where)
            logger.info("chromadb_delete_by_filter", filter=filter, deleted_count=count)
            return count
        except Exception as exc:
            raise RAGError(
                message=f"ChromaDB delete_by_filter failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    def get_provider_name(self) -> str:
        return "chromadb"

    def get_index_name(self) -> str:
        return self._collection_name

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _clean_metadata(metadata: dict[str, Any]) -> dict[str, str | int | float | bool]:
        """Drop ``None`` values; Chroma accepts only scalar metadata."""
        return {
            key: value
            for key, value in metadata.items()
            if isinstance(value, (str, int, float, bool))
        }

    @staticmethod
    def _translate_filter(filter: dict[str, Any] | None) -> dict[str, Any] | None:
        """Turn an equality map into a Chroma ``where`` clause.

        Chroma requires ``$and`` when more than one field is constrained.
        """
        if not filter:
            return None
        clauses = [{key: value} for key, value in filter.items()]
        if len(clauses) == 1:
            return clauses[0]
        return {"$and": clauses}
