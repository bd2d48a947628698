"""Orchestrator for the document ingestion pipeline.

Pipeline stages: **detect -> describe -> chunk -> embed -> store**.

:class:`DocumentIngestionPipeline` coordinates four collaborators (the
metadata extractor, chunker, embedding provider and vector store) without
any of them knowing about each other:

    1. ``detect_format`` -- file extension to :class:`FileFormat`
    2. MetadataExtractor -- base + format-specific chunk metadata
    3. TextChunker -- delimiter-based chunks with overlap
    4. IEmbeddingProvider -- one ``embed_batch`` call for every chunk
    5. IVectorStoreProvider -- one ``upsert`` call for every chunk

Chunks are embedded and upserted in document order.  Any stage failing
aborts that file with an :class:`IngestionError`; :meth:`ingest_all`
isolates those failures so the remaining files still go through.
"""

from __future__ import annotations

import time
import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING

import structlog

from kb_assistant.models.documents import (
    ChunkSettings,
    FileUpload,
    UploadedDocument,
    VectorDocument,
)
from kb_assistant.services.ingestion.chunker import TextChunker
from kb_assistant.services.ingestion.metadata_extractor import MetadataExtractor, detect_format
from kb_assistant.utils.errors import IngestionError

if TYPE_CHECKING:
    from kb_assistant.interfaces.embedding_provider import IEmbeddingProvider
    from kb_assistant.interfaces.vector_store_provider import IVectorStoreProvider

logger = structlog.get_logger(logger_name=__name__)


class DocumentIngestionPipeline:
    """Turns uploaded files into embedded, stored chunks.

    Parameters
    ----------
    embedding_provider:
        Generates embedding vectors for chunk text.
    vector_store:
        Stores embedded chunks for retrieval.
    chunker:
        Splits content into chunks; a default :class:`TextChunker` is used
        when omitted.
    metadata_extractor:
        Produces the shared chunk metadata; defaults to a new
        :class:`MetadataExtractor`.
    """

    def __init__(
        self,
        embedding_provider: IEmbeddingProvider,
        vector_store: IVectorStoreProvider,
        chunker: TextChunker | None = None,
        metadata_extractor: MetadataExtractor | None = None,
    ) -> None:
        self._embedding_provider = embedding_provider
        self._vector_store = vector_store
        self._chunker = chunker or TextChunker()
        self._metadata_extractor = metadata_extractor or MetadataExtractor()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def ingest(
        self,
        content: str,
        file_name: str,
        settings: ChunkSettings | None = None,
        namespace: str | None = None,
    ) -> UploadedDocument:
        """Ingest a single file.

        Chunk ids are ``"{file_name}-{uuid4}"`` so re-uploading the same
        file name adds new chunks instead of overwriting old ones.

        Raises
        ------
        IngestionError
            If metadata extraction, chunking, embedding or the upsert fails.
        """
        settings = settings or ChunkSettings()
        start = time.monotonic()
        file_format = detect_format(file_name)
        logger.info("ingest_started", file_name=file_name, format=file_format.value)

        try:
            base_metadata = self._metadata_extractor.extract(content, file_name, file_format)
            chunks = self._chunker.chunk(content, settings)
            logger.info("document_chunked", file_name=file_name, chunk_count=len(chunks))

            if chunks:
                embeddings = await self._embedding_provider.embed_batch(chunks)
                if len(embeddings) != len(chunks):
                    raise IngestionError(
                        message=(
                            f"Embedding count mismatch for {file_name}: "
                            f"{len(embeddings)} vectors for {len(chunks)} chunks"
                        )
                    )
                documents = [
                    VectorDocument(
                        id=f"{file_name}-{uuid.uuid4()}",
                        content=chunk,
                        embedding=embeddings[index],
                        metadata={
                            **base_metadata,
                            "chunkIndex": index,
                            "totalChunks": len(chunks),
                        },
                    )
                    for index, chunk in enumerate(chunks)
                ]
                await self._vector_store.upsert(documents, namespace=namespace)
        except IngestionError:
            raise
        except Exception as exc:
            logger.error("ingest_failed", file_name=file_name, error=str(exc))
            raise IngestionError(message=f"Failed to ingest {file_name}: {exc}") from exc

        elapsed = round(time.monotonic() - start, 2)
        logger.info(
            "document_ingested",
            file_name=file_name,
            chunk_count=len(chunks),
            elapsed_s=elapsed,
        )
        return UploadedDocument(
            id=str(uuid.uuid4()),
            file_name=file_name,
            file_size=len(content),
            chunk_count=len(chunks),
            uploaded_at=datetime.now(timezone.utc).isoformat(),
        )

    async def ingest_all(
        self,
        files: list[FileUpload],
        settings: ChunkSettings | None = None,
        namespace: str | None = None,
    ) -> list[UploadedDocument]:
        """Ingest *files* one after another.

        A file that fails is logged and skipped.  The result holds only the
        successful uploads, so ``len(files) - len(result)`` is the failure
        count.
        """
        results: list[UploadedDocument] = []
        for upload in files:
            try:
                results.append(
                    await self.ingest(upload.content, upload.file_name, settings, namespace)
                )
            except IngestionError as exc:
                logger.error("ingest_file_skipped", file_name=upload.file_name, error=str(exc))

        logger.info("ingest_batch_complete", uploaded=len(results), requested=len(files))
        return results
