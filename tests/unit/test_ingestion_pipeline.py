"""Unit tests for DocumentIngestionPipeline -- chunk, embed, store."""

from __future__ import annotations

from unittest.mock import AsyncMock

import httpx
import pytest

from kb_assistant.models.documents import ChunkSettings, FileUpload
from kb_assistant.services.ingestion.ingestion_service import DocumentIngestionPipeline
from kb_assistant.utils.errors import IngestionError, RAGError

_SMALL = ChunkSettings(max_chunk_length=12, chunk_overlap=0)


@pytest.fixture
def pipeline(mock_embedding_provider, vector_store) -> DocumentIngestionPipeline:
    return DocumentIngestionPipeline(mock_embedding_provider, vector_store)


class TestIngest:
    @pytest.mark.asyncio
    async def test_chunks_stored_with_shared_and_positional_metadata(
        self, pipeline, vector_store
    ) -> None:
        result = await pipeline.ingest("first line\nsecond line\nthird", "notes.txt", _SMALL)

        assert result.file_name == "notes.txt"
        assert result.chunk_count == 3
        assert result.file_size == len("first line\nsecond line\nthird")

        stored = sorted(vector_store.documents.values(), key=lambda d: d.metadata["chunkIndex"])
        assert [d.content for d in stored] == ["first line", "second line", "third"]
        assert [d.metadata["chunkIndex"] for d in stored] == [0, 1, 2]
        assert {d.metadata["totalChunks"] for d in stored} == {3}
        assert {d.metadata["fileName"] for d in stored} == {"notes.txt"}
        assert {d.metadata["uploadedAt"] for d in stored} == {stored[0].metadata["uploadedAt"]}
        assert all(d.embedding == [0.1, 0.2, 0.3, 0.4] for d in stored)

    @pytest.mark.asyncio
    async def test_chunk_ids_are_unique_across_reuploads(self, pipeline, vector_store) -> None:
        await pipeline.ingest("same content", "dup.txt")
        await pipeline.ingest("same content", "dup.txt")

        assert len(vector_store.documents) == 2
        assert all(chunk_id.startswith("dup.txt-") for chunk_id in vector_store.documents)

    @pytest.mark.asyncio
    async def test_one_embedding_batch_per_file(
        self, pipeline, mock_embedding_provider
    ) -> None:
        await pipeline.ingest("first line\nsecond line\nthird", "notes.txt", _SMALL)

        mock_embedding_provider.embed_batch.assert_awaited_once_with(
            ["first line", "second line", "third"]
        )

    @pytest.mark.asyncio
    async def test_empty_file_stores_nothing(
        self, pipeline, vector_store, mock_embedding_provider
    ) -> None:
        result = await pipeline.ingest("", "empty.txt")

        assert result.chunk_count == 0
        assert vector_store.documents == {}
        mock_embedding_provider.embed_batch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_embedding_failure_raises_ingestion_error(
        self, pipeline, mock_embedding_provider, vector_store
    ) -> None:
        mock_embedding_provider.embed_batch = AsyncMock(
            side_effect=RAGError("rate limited", provider_name="openai")
        )

        with pytest.raises(IngestionError, match="Failed to ingest notes.txt"):
            await pipeline.ingest("text", "notes.txt")
        assert vector_store.documents == {}

    @pytest.mark.asyncio
    async def test_embedding_count_mismatch_raises(
        self, pipeline, mock_embedding_provider
    ) -> None:
        mock_embedding_provider.embed_batch = AsyncMock(return_value=[])

        with pytest.raises(IngestionError, match="mismatch"):
            await pipeline.ingest("text", "notes.txt")

    @pytest.mark.asyncio
    async def test_yaml_metadata_attached_to_every_chunk(self, pipeline, vector_store) -> None:
        manifest = "apiVersion: v1\nkind: ConfigMap\nmetadata:\n  name: settings\n"

        await pipeline.ingest(manifest, "cm.yaml", ChunkSettings(max_chunk_length=20, chunk_overlap=0))

        assert len(vector_store.documents) > 1
        for doc in vector_store.documents.values():
            assert doc.metadata["kind"] == "ConfigMap"
            assert doc.metadata["format"] == "yaml"


class TestIngestAll:
    @pytest.mark.asyncio
    async def test_failed_file_does_not_stop_siblings(
        self, pipeline, mock_embedding_provider
    ) -> None:
        calls = {"n": 0}

        async def flaky(texts: list[str]) -> list[list[float]]:
            calls["n"] += 1
            if calls["n"] == 2:
                raise RAGError("boom")
            return [[0.0] * 4 for _ in texts]

        mock_embedding_provider.embed_batch = AsyncMock(side_effect=flaky)
        files = [
            FileUpload(file_name="a.txt", content="alpha"),
            FileUpload(file_name="b.txt", content="beta"),
            FileUpload(file_name="c.txt", content="gamma"),
        ]

        results = await pipeline.ingest_all(files)

        assert [r.file_name for r in results] == ["a.txt", "c.txt"]

    @pytest.mark.asyncio
    async def test_transport_error_isolated_to_its_file(
        self, pipeline, mock_embedding_provider, vector_store
    ) -> None:
        calls = {"n": 0}

        async def first_call_fails(texts: list[str]) -> list[list[float]]:
            calls["n"] += 1
            if calls["n"] == 1:
                raise httpx.ConnectError("connection refused")
            return [[0.0] * 4 for _ in texts]

        mock_embedding_provider.embed_batch = AsyncMock(side_effect=first_call_fails)
        files = [
            FileUpload(file_name="a.txt", content="alpha"),
            FileUpload(file_name="b.txt", content="beta"),
        ]

        results = await pipeline.ingest_all(files)

        assert [r.file_name for r in results] == ["b.txt"]
        assert {d.metadata["fileName"] for d in vector_store.documents.values()} == {"b.txt"}

    @pytest.mark.asyncio
    async def test_unexpected_store_error_wrapped(self, pipeline, vector_store) -> None:
        vector_store.upsert = AsyncMock(side_effect=TypeError("bad metadata value"))

        with pytest.raises(IngestionError, match="bad metadata value") as excinfo:
            await pipeline.ingest("text", "notes.txt")
        assert isinstance(excinfo.value.__cause__, TypeError)
