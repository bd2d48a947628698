"""Unit tests for the ChromaDB vector store provider (real local client)."""

from __future__ import annotations

import pytest
import pytest_asyncio

from kb_assistant.models.documents import VectorDocument
from kb_assistant.providers.vector_store.chromadb_provider import ChromaDBProvider
from kb_assistant.utils.errors import RAGError


def _doc(chunk_id: str, embedding: list[float], **metadata) -> VectorDocument:
    return VectorDocument(
        id=chunk_id, content=f"content of {chunk_id}", embedding=embedding, metadata=metadata
    )


@pytest.fixture
def provider(tmp_path) -> ChromaDBProvider:
    return ChromaDBProvider(persist_directory=str(tmp_path / "chroma"), collection_name="test_kb")


@pytest_asyncio.fixture
async def seeded(provider) -> ChromaDBProvider:
    await provider.upsert(
        [
            _doc("a-1", [1.0, 0.0, 0.0], fileName="a.yaml", format="yaml", chunkIndex=0),
            _doc("b-1", [0.0, 1.0, 0.0], fileName="b.md", format="markdown", chunkIndex=0),
            _doc("a-2", [0.9, 0.1, 0.0], fileName="a.yaml", format="yaml", chunkIndex=1),
        ]
    )
    return provider


class TestChromaDBProvider:
    def test_identity(self, provider) -> None:
        assert provider.get_provider_name() == "chromadb"
        assert provider.get_index_name() == "test_kb"
        assert provider.supports_filtered_delete() is True

    @pytest.mark.asyncio
    async def test_query_orders_by_similarity(self, seeded) -> None:
        results = await seeded.query([1.0, 0.0, 0.0], top_k=2)

        assert [r.id for r in results] == ["a-1", "a-2"]
        assert results[0].score == pytest.approx(1.0)
        assert results[0].content == "content of a-1"
        assert results[0].metadata["fileName"] == "a.yaml"

    @pytest.mark.asyncio
    async def test_query_with_filter(self, seeded) -> None:
        results = await seeded.query([1.0, 0.0, 0.0], top_k=3, filter={"format": "markdown"})

        assert [r.id for r in results] == ["b-1"]

    @pytest.mark.asyncio
    async def test_list_ids_paginates(self, seeded) -> None:
        first = await seeded.list_ids(limit=2)
        second = await seeded.list_ids(limit=2, page_token=first.next_token)

        assert len(first.ids) == 2
        assert first.next_token == "2"
        assert len(second.ids) == 1
        assert second.next_token is None
        assert set(first.ids + second.ids) == {"a-1", "b-1", "a-2"}

    @pytest.mark.asyncio
    async def test_fetch_returns_content_and_metadata(self, seeded) -> None:
        documents = await seeded.fetch_by_ids(["b-1"])

        assert documents[0].content == "content of b-1"
        assert documents[0].metadata["format"] == "markdown"

    @pytest.mark.asyncio
    async def test_delete_by_filter_counts_removed_chunks(self, seeded) -> None:
        deleted = await seeded.delete_by_filter({"fileName": "a.yaml"})

        assert deleted == 2
        stats = await seeded.get_stats()
        assert stats.total_documents == 1
        assert stats.dimensions == 3

    @pytest.mark.asyncio
    async def test_none_metadata_values_dropped(self, provider) -> None:
        await provider.upsert([_doc("x-1", [0.0, 0.0, 1.0], fileName="x.txt", kind=None)])

        documents = await provider.fetch_by_ids(["x-1"])

        assert "kind" not in documents[0].metadata

    @pytest.mark.asyncio
    async def test_health_check(self, provider) -> None:
        assert await provider.health_check() is True

    @pytest.mark.asyncio
    async def test_dimension_mismatch_fails_fast(self, seeded, tmp_path) -> None:
        with pytest.raises(RAGError, match="dimension mismatch"):
            ChromaDBProvider(
                persist_directory=str(tmp_path / "chroma"),
                collection_name="test_kb",
                expected_dimension=8,
            )
