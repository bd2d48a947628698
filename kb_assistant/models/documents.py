"""Knowledge-base data models: chunks, search results and logical documents.

Defines Pydantic v2 models for the ingestion and retrieval layer.  Models
that cross the HTTP boundary serialize with camelCase aliases
(``fileName``, ``chunkCount``) while Python code uses snake_case names.

Lifecycle overview:

    1. INGESTION: an uploaded file is split by the chunker into text pieces.
    2. EMBEDDING: each piece is converted into a vector.
    3. STORAGE: one :class:`VectorDocument` per piece is upserted into the
       vector store with flat scalar metadata.
    4. BROWSING: the catalog folds stored chunks back into
       :class:`LogicalDocument` aggregates keyed by ``fileName``.
    5. RETRIEVAL: queries return :class:`SearchResult` objects.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

_CAMEL = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class FileFormat(str, Enum):
    """Document formats recognised by extension."""

    YAML = "yaml"
    PDF = "pdf"
    TEXT = "text"
    MARKDOWN = "markdown"


class OversizedPolicy(str, Enum):
    """What the chunker does with a single piece longer than the budget."""

    PRESERVE = "preserve"
    HARD_SPLIT = "hard_split"


# ---------------------------------------------------------------------------
# ChunkSettings -- value object controlling the chunker.
# ---------------------------------------------------------------------------
class ChunkSettings(BaseModel):
    """Chunking parameters for one upload.

    ``chunk_overlap`` must be strictly smaller than ``max_chunk_length``.
    With the default ``preserve`` policy a delimiter-separated piece that
    alone exceeds ``max_chunk_length`` becomes one oversized chunk.
    """

    model_config = _CAMEL

    max_chunk_length: int = Field(default=1000, ge=1, description="Maximum characters per chunk.")
    chunk_overlap: int = Field(
        default=200, ge=0, description="Characters of the previous chunk prepended to the next."
    )
    delimiter: str = Field(default="\n", min_length=1, description="Piece separator.")
    oversized_policy: OversizedPolicy = Field(
        default=OversizedPolicy.PRESERVE,
        description="Keep oversized pieces whole or cut them into max_chunk_length slices.",
    )

    @model_validator(mode="after")
    def _check_overlap(self) -> ChunkSettings:
        if self.chunk_overlap >= self.max_chunk_length:
            raise ValueError(
                f"chunk_overlap ({self.chunk_overlap}) must be smaller than "
                f"max_chunk_length ({self.max_chunk_length})"
            )
        return self


# ---------------------------------------------------------------------------
# VectorDocument -- one stored chunk.
# ---------------------------------------------------------------------------
class VectorDocument(BaseModel):
    """A chunk ready for upsert, or fetched back from the store.

    ``embedding`` is empty when a store returns metadata only.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Globally unique chunk id, never reused.")
    content: str = Field(default="", description="The chunk text.")
    embedding: list[float] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(
        default_factory=dict, description="Flat scalar metadata (fileName, format, ...)."
    )


class SearchResult(BaseModel):
    """A chunk returned from a similarity query."""

    model_config = _CAMEL

    id: str
    score: float | None = Field(default=None, description="Similarity score, higher is closer.")
    content: str = ""
    metadata: dict[str, Any] = Field(default_factory=dict)


class IdPage(BaseModel):
    """One page of chunk ids from ``IVectorStoreProvider.list_ids``."""

    model_config = ConfigDict(frozen=True)

    ids: list[str] = Field(default_factory=list)
    next_token: str | None = None


class VectorStoreStats(BaseModel):
    model_config = _CAMEL

    total_documents: int = 0
    dimensions: int | None = None


class ConnectionTestResult(BaseModel):
    model_config = _CAMEL

    connected: bool
    error: str | None = None


# ---------------------------------------------------------------------------
# LogicalDocument -- derived aggregate, never persisted.
# ---------------------------------------------------------------------------
class LogicalDocument(BaseModel):
    """All chunks sharing one ``fileName``, folded into a single record.

    Format-specific fields are populated from the first chunk seen:
    ``kind``/``api_version``/``namespace`` for YAML, ``page_count``/``author``
    for PDF, ``line_count`` for text and Markdown.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    file_name: str
    format: FileFormat = FileFormat.TEXT
    chunk_count: int = 0
    total_size: int = 0
    uploaded_at: str | None = None
    kind: str | None = None
    api_version: str | None = None
    namespace: str | None = None
    page_count: int | None = None
    author: str | None = None
    line_count: int | None = None


class FileUpload(BaseModel):
    """One file of an upload request."""

    model_config = _CAMEL

    file_name: str = Field(min_length=1)
    content: str


class UploadedDocument(BaseModel):
    """Result of ingesting one file."""

    model_config = _CAMEL

    id: str
    file_name: str
    file_size: int
    chunk_count: int
    uploaded_at: str


class DeleteResult(BaseModel):
    model_config = _CAMEL

    deleted_count: int = 0


# ---------------------------------------------------------------------------
# Status snapshots
# ---------------------------------------------------------------------------
class EmbeddingProviderStatus(BaseModel):
    model_config = _CAMEL

    id: str
    model: str
    dimensions: int
    connected: bool
    error: str | None = None


class VectorStoreStatus(BaseModel):
    model_config = _CAMEL

    id: str
    index_name: str | None = None
    connected: bool
    total_documents: int | None = None
    dimensions: int | None = None
    error: str | None = None


class KnowledgeBaseStatus(BaseModel):
    """Health snapshot of the embedding provider and vector store."""

    model_config = _CAMEL

    configured: bool
    embedding_provider: EmbeddingProviderStatus | None = None
    vector_store: VectorStoreStatus | None = None
    timestamp: str
