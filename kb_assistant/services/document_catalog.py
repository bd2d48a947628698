"""Logical-document view over the chunk store.

The vector store only knows chunks.  :class:`DocumentCatalog` rebuilds the
per-file view on demand by walking every stored id page by page, fetching
each page's metadata and folding chunks that share a ``fileName`` into one
:class:`LogicalDocument`.

Pagination is strictly sequential: each page's ``next_token`` gates the
next ``list_ids`` call.  A full walk costs O(total chunks in the store),
which is why deletion prefers the store's filtered delete when it has one.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import TYPE_CHECKING

import structlog

from kb_assistant.models.documents import DeleteResult, FileFormat, LogicalDocument, VectorDocument

if TYPE_CHECKING:
    from kb_assistant.interfaces.vector_store_provider import IVectorStoreProvider

logger = structlog.get_logger(logger_name=__name__)

_PAGE_SIZE = 100
_FETCH_BATCH = 100


def _as_format(value: object) -> FileFormat:
    try:
        return FileFormat(value)
    except ValueError:
        return FileFormat.TEXT


class DocumentCatalog:
    """Lists and deletes logical documents keyed by ``fileName``."""

    def __init__(self, vector_store: IVectorStoreProvider) -> None:
        self._vector_store = vector_store

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def list_documents(self, namespace: str | None = None) -> list[LogicalDocument]:
        """Return one :class:`LogicalDocument` per distinct ``fileName``.

        The first chunk seen for a file seeds its record (format, timestamps,
        format-specific fields); later chunks only add to ``chunk_count`` and
        ``total_size``.  Chunks without a ``fileName`` cannot be attributed
        and are skipped with a warning.
        """
        documents: dict[str, LogicalDocument] = {}
        scanned = 0
        orphaned = 0

        async for chunk in self._walk(namespace):
            scanned += 1
            file_name = chunk.metadata.get("fileName")
            if not file_name:
                orphaned += 1
                logger.warning("chunk_missing_file_name", chunk_id=chunk.id)
                continue

            existing = documents.get(file_name)
            if existing is not None:
                existing.chunk_count += 1
                existing.total_size += len(chunk.content)
                continue

            meta = chunk.metadata
            documents[file_name] = LogicalDocument(
                file_name=file_name,
                format=_as_format(meta.get("format") or FileFormat.TEXT.value),
                chunk_count=1,
                total_size=len(chunk.content),
                uploaded_at=meta.get("uploadedAt"),
                kind=meta.get("kind"),
                api_version=meta.get("apiVersion"),
                namespace=meta.get("namespace"),
                page_count=meta.get("pageCount"),
                author=meta.get("author"),
                line_count=meta.get("lineCount"),
            )

        logger.info(
            "documents_listed",
            documents=len(documents),
            chunks_scanned=scanned,
            chunks_orphaned=orphaned,
        )
        return list(documents.values())

    async def delete_document(
        self, file_name: str, namespace: str | None = None
    ) -> DeleteResult:
        """Delete every chunk of *file_name*.

        Uses the store's filtered delete when available; otherwise walks all
        chunks to collect matching ids and issues one bulk delete.  Zero
        matches is not an error.
        """
        if self._vector_store.supports_filtered_delete():
            deleted = await self._vector_store.delete_by_filter(
                {"fileName": file_name}, namespace=namespace
            )
            logger.info("document_deleted", file_name=file_name, deleted_count=deleted, path="filter")
            return DeleteResult(deleted_count=deleted)

        ids = [
            chunk.id
            async for chunk in self._walk(namespace)
            if chunk.metadata.get("fileName") == file_name
        ]
        if not ids:
            logger.warning("document_not_found", file_name=file_name)
            return DeleteResult(deleted_count=0)

        await self._vector_store.delete(ids, namespace=namespace)
        logger.info("document_deleted", file_name=file_name, deleted_count=len(ids), path="scan")
        return DeleteResult(deleted_count=len(ids))

    # ------------------------------------------------------------------
    # Pagination
    # ------------------------------------------------------------------

    async def _walk(self, namespace: str | None) -> AsyncIterator[VectorDocument]:
        """Yield every stored chunk, one ``list_ids`` page at a time."""
        page_token: str | None = None
        total_ids = 0

        while True:
            page = await self._vector_store.list_ids(_PAGE_SIZE, page_token, namespace)
            if not page.ids:
                break

            total_ids += len(page.ids)
            logger.debug("id_page_listed", count=len(page.ids), total=total_ids)

            for start in range(0, len(page.ids), _FETCH_BATCH):
                batch = page.ids[start : start + _FETCH_BATCH]
                for chunk in await self._vector_store.fetch_by_ids(batch, namespace):
                    yield chunk

            if not page.next_token:
                break
            page_token = page.next_token
