"""Abstract base class for vector-store service providers.

Defines the contract for storing, querying, enumerating and deleting
embedded document chunks.  Implementations wrap ChromaDB (local) or
Pinecone (hosted); the catalog and retrieval services never import a
backend directly.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from kb_assistant.models.documents import IdPage, SearchResult, VectorDocument, VectorStoreStats


# Concrete implementations: ChromaDBProvider, PineconeProvider
# Located in: kb_assistant/providers/vector_store/
class IVectorStoreProvider(ABC):
    """Contract for vector-store services used by the knowledge base.

    All methods are async so network-backed stores do not block the event
    loop.  Metadata values are flat scalars (str, int, float, bool).

    **Filters** passed to :meth:`query` and :meth:`delete_by_filter` are
    simple equality maps such as ``{"format": "yaml"}``.  Providers
    translate them into their native filter language.

    **Deleting by metadata.**  Stores without a secondary index on metadata
    cannot delete "all chunks whose fileName is X" directly; callers must
    enumerate every id with :meth:`list_ids` / :meth:`fetch_by_ids`, which
    costs O(total chunks in the store).  Stores that can delete by filter
    report it through :meth:`supports_filtered_delete` and implement
    :meth:`delete_by_filter` as a single call.
    """

    @abstractmethod
    async def upsert(self, documents: list[VectorDocument], namespace: str | None = None) -> None:
        """Insert or replace chunks (id, content, embedding, metadata).

        Raises
        ------
        kb_assistant.utils.errors.RAGError
            If the store operation fails.
        """

    @abstractmethod
    async def query(
        self,
        embedding: list[float],
        top_k: int = 3,
        filter: dict[str, Any] | None = None,
        namespace: str | None = None,
    ) -> list[SearchResult]:
        """Return the *top_k* nearest chunks, best first.

        Parameters
        ----------
        embedding:
            The query vector.
        top_k:
            Maximum number of results.
        filter:
            Optional equality filter on metadata fields.

        Raises
        ------
        kb_assistant.utils.errors.RAGError
            If the query fails.
        """

    @abstractmethod
    async def delete(self, ids: list[str], namespace: str | None = None) -> None:
        """Delete chunks by id.  Unknown ids are ignored."""

    @abstractmethod
    async def list_ids(
        self,
        limit: int = 100,
        page_token: str | None = None,
        namespace: str | None = None,
    ) -> IdPage:
        """Return one page of chunk ids.

        Parameters
        ----------
        limit:
            Page size.  Providers may clamp it to their own maximum.
        page_token:
            Opaque token from the previous page, ``None`` for the first.

        Returns
        -------
        IdPage
            ``next_token`` is ``None`` on the last page.
        """

    @abstractmethod
    async def fetch_by_ids(
        self, ids: list[str], namespace: str | None = None
    ) -> list[VectorDocument]:
        """Fetch content and metadata for the given ids (embeddings may be empty)."""

    @abstractmethod
    async def get_stats(self) -> VectorStoreStats:
        """Return the total number of stored chunks and the vector dimension."""

    @abstractmethod
    async def health_check(self) -> bool:
        """Return ``True`` if the store answers.  Never raises."""

    def supports_filtered_delete(self) -> bool:
        """Return ``True`` if :meth:`delete_by_filter` is a native single call."""
        return False

    async def delete_by_filter(
        self, filter: dict[str, Any], namespace: str | None = None
    ) -> int:
        """Delete every chunk matching *filter* and return how many were removed.

        Only called when :meth:`supports_filtered_delete` is ``True``.
        """
        raise NotImplementedError(f"{self.get_provider_name()} cannot delete by filter")

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return the store id, e.g. ``"chromadb"`` or ``"pinecone"``."""

    @abstractmethod
    def get_index_name(self) -> str:
        """Return the collection or index name backing this store."""
