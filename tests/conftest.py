"""Shared pytest fixtures for the knowledge-base assistant test suite."""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from kb_assistant.config.settings import Settings
from kb_assistant.interfaces.embedding_provider import IEmbeddingProvider
from kb_assistant.interfaces.llm_provider import ILLMProvider
from kb_assistant.interfaces.vector_store_provider import IVectorStoreProvider
from kb_assistant.models.conversation import ChatMessage, LLMChoice, LLMResponse
from kb_assistant.models.documents import (
    ConnectionTestResult,
    IdPage,
    SearchResult,
    VectorDocument,
    VectorStoreStats,
)

# ---------------------------------------------------------------------------
# In-memory vector store
# ---------------------------------------------------------------------------


class InMemoryVectorStore(IVectorStoreProvider):
    """Dict-backed vector store with real pagination.

    ``page_size`` caps ``list_ids`` pages below the requested limit so the
    catalog's multi-page walk is exercised with few chunks.
    """

    def __init__(self, page_size: int = 100, filtered_delete: bool = False) -> None:
        self.documents: dict[str, VectorDocument] = {}
        self.page_size = page_size
        self.filtered_delete = filtered_delete
        self.list_calls = 0
        self.delete_calls: list[list[str]] = []

    async def upsert(self, documents: list[VectorDocument], namespace: str | None = None) -> None:
        for doc in documents:
            self.documents[doc.id] = doc

    async def query(
        self,
        embedding: list[float],
        top_k: int = 3,
        filter: dict[str, Any] | None = None,
        namespace: str | None = None,
    ) -> list[SearchResult]:
        matches = [d for d in self.documents.values() if self._matches(d, filter)]
        return [
            SearchResult(id=d.id, score=0.9, content=d.content, metadata=dict(d.metadata))
            for d in matches[:top_k]
        ]

    async def delete(self, ids: list[str], namespace: str | None = None) -> None:
        self.delete_calls.append(list(ids))
        for chunk_id in ids:
            self.documents.pop(chunk_id, None)

    async def list_ids(
        self,
        limit: int = 100,
        page_token: str | None = None,
        namespace: str | None = None,
    ) -> IdPage:
        self.list_calls += 1
        size = min(limit, self.page_size)
        offset = int(page_token) if page_token else 0
        ids = list(self.documents)[offset : offset + size]
        next_offset = offset + len(ids)
        has_more = next_offset < len(self.documents)
        return IdPage(ids=ids, next_token=str(next_offset) if has_more else None)

    async def fetch_by_ids(
        self, ids: list[str], namespace: str | None = None
    ) -> list[VectorDocument]:
        return [self.documents[i] for i in ids if i in self.documents]

    async def get_stats(self) -> VectorStoreStats:
        return VectorStoreStats(total_documents=len(self.documents), dimensions=4)

    async def health_check(self) -> bool:
        return True

    def supports_filtered_delete(self) -> bool:
        return self.filtered_delete

    async def delete_by_filter(self, filter: dict[str, Any], namespace: str | None = None) -> int:
        ids = [d.id for d in self.documents.values() if self._matches(d, filter)]
        for chunk_id in ids:
            del self.documents[chunk_id]
        return len(ids)

    def get_provider_name(self) -> str:
        return "memory"

    def get_index_name(self) -> str:
        return "test-index"

    @staticmethod
    def _matches(doc: VectorDocument, filter: dict[str, Any] | None) -> bool:
        return all(doc.metadata.get(k) == v for k, v in (filter or {}).items())


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def llm_reply(content: str | None, tool_calls: list | None = None) -> LLMResponse:
    """Build an :class:`LLMResponse` with one assistant choice."""
    return LLMResponse(
        choices=[
            LLMChoice(message=ChatMessage(role="assistant", content=content, tool_calls=tool_calls))
        ]
    )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _isolate_credential_env(monkeypatch) -> None:
    """Keep ambient provider credentials from leaking into Settings."""
    for name in (
        "OPENAI_API_KEY",
        "OPENAI_BASE_URL",
        "ANTHROPIC_API_KEY",
        "GEMINI_API_KEY",
        "PINECONE_API_KEY",
        "PINECONE_INDEX",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def settings() -> Settings:
    """Settings with test credentials; ignores any local .env file."""
    return Settings(
        _env_file=None,
        openai_api_key="sk-test",
        gemini_api_key="gm-test",
        anthropic_api_key="ak-test",
        embedding_dimensions=4,
    )


@pytest.fixture
def vector_store() -> InMemoryVectorStore:
    return InMemoryVectorStore()


@pytest.fixture
def mock_embedding_provider() -> MagicMock:
    mock = MagicMock(spec=IEmbeddingProvider)
    mock.embed = AsyncMock(return_value=[0.1, 0.2, 0.3, 0.4])
    mock.embed_batch = AsyncMock(side_effect=lambda texts: [[0.1, 0.2, 0.3, 0.4] for _ in texts])
    mock.test_connection = AsyncMock(return_value=ConnectionTestResult(connected=True))
    mock.get_dimension.return_value = 4
    mock.get_model.return_value = "text-embedding-3-small"
    mock.get_provider_name.return_value = "openai"
    mock.is_available.return_value = True
    return mock


@pytest.fixture
def mock_llm() -> MagicMock:
    mock = MagicMock(spec=ILLMProvider)
    mock.send_message = AsyncMock(return_value=llm_reply("Here is the answer."))
    mock.test_connection = AsyncMock(return_value=ConnectionTestResult(connected=True))
    mock.get_model.return_value = "gpt-4o-mini"
    mock.get_provider_name.return_value = "openai"
    mock.is_available.return_value = True
    return mock


@pytest.fixture
def make_vector_store():
    """Factory for stores with custom page size or filtered-delete support."""
    return InMemoryVectorStore


@pytest.fixture
def make_reply():
    return llm_reply
