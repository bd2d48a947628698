"""Unit tests for embedding provider adapters -- OpenAI, Gemini."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import openai
import pytest

from kb_assistant.config.settings import Settings
from kb_assistant.utils.errors import RAGError


def _settings(**overrides) -> Settings:
    defaults = {
        "_env_file": None,
        "openai_api_key": "sk-test",
        "gemini_api_key": "gm-test",
        "embedding_model": "text-embedding-3-small",
        "embedding_dimensions": 8,
    }
    defaults.update(overrides)
    return Settings(**defaults)


# ======================================================================
# OpenAI Embedding Provider
# ======================================================================


class TestOpenAIEmbeddingProvider:
    def test_metadata(self) -> None:
        from kb_assistant.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

        provider = OpenAIEmbeddingProvider(_settings())

        assert provider.get_provider_name() == "openai"
        assert provider.get_dimension() == 8
        assert provider.get_model() == "text-embedding-3-small"
        assert provider.is_available() is True
        assert OpenAIEmbeddingProvider(_settings(openai_api_key="")).is_available() is False

    @pytest.mark.asyncio
    async def test_embed_batch_requests_dimensions(self) -> None:
        from kb_assistant.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

        mock_response = MagicMock()
        mock_response.data = [MagicMock(embedding=[0.1] * 8), MagicMock(embedding=[0.2] * 8)]
        mock_response.usage = MagicMock(total_tokens=12)
        mock_client = AsyncMock()
        mock_client.embeddings.create = AsyncMock(return_value=mock_response)

        with patch(
            "kb_assistant.providers.embedding.openai_embedding_provider.openai.AsyncOpenAI",
            return_value=mock_client,
        ):
            provider = OpenAIEmbeddingProvider(_settings())
            result = await provider.embed_batch(["hello", "world"])

        assert result == [[0.1] * 8, [0.2] * 8]
        kwargs = mock_client.embeddings.create.await_args.kwargs
        assert kwargs["input"] == ["hello", "world"]
        assert kwargs["dimensions"] == 8

    @pytest.mark.asyncio
    async def test_legacy_model_omits_dimensions(self) -> None:
        from kb_assistant.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

        mock_response = MagicMock(data=[MagicMock(embedding=[0.0] * 8)], usage=None)
        mock_client = AsyncMock()
        mock_client.embeddings.create = AsyncMock(return_value=mock_response)

        with patch(
            "kb_assistant.providers.embedding.openai_embedding_provider.openai.AsyncOpenAI",
            return_value=mock_client,
        ):
            provider = OpenAIEmbeddingProvider(_settings(embedding_model="text-embedding-ada-002"))
            await provider.embed("hello")

        assert "dimensions" not in mock_client.embeddings.create.await_args.kwargs

    @pytest.mark.asyncio
    async def test_api_error_becomes_rag_error(self) -> None:
        from kb_assistant.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

        mock_client = AsyncMock()
        mock_client.embeddings.create = AsyncMock(
            side_effect=openai.APIConnectionError(
                request=httpx.Request("POST", "https://api.openai.com/v1/embeddings")
            )
        )

        with patch(
            "kb_assistant.providers.embedding.openai_embedding_provider.openai.AsyncOpenAI",
            return_value=mock_client,
        ):
            provider = OpenAIEmbeddingProvider(_settings())
            with pytest.raises(RAGError):
                await provider.embed("hello")
            status = await provider.test_connection()

        assert status.connected is False
        assert status.error

    @pytest.mark.asyncio
    async def test_empty_batch_skips_api(self) -> None:
        from kb_assistant.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

        mock_client = AsyncMock()
        with patch(
            "kb_assistant.providers.embedding.openai_embedding_provider.openai.AsyncOpenAI",
            return_value=mock_client,
        ):
            assert await OpenAIEmbeddingProvider(_settings()).embed_batch([]) == []
        mock_client.embeddings.create.assert_not_called()


# ======================================================================
# Gemini Embedding Provider
# ======================================================================


def _gemini_response(count: int) -> MagicMock:
    return MagicMock(embeddings=[MagicMock(values=[float(i)] * 8) for i in range(count)])


class TestGeminiEmbeddingProvider:
    @pytest.mark.asyncio
    async def test_texts_sent_in_batches_of_ten(self) -> None:
        from kb_assistant.providers.embedding.gemini_embedding_provider import GeminiEmbeddingProvider

        mock_client = MagicMock()
        mock_client.aio.models.embed_content = AsyncMock(
            side_effect=[_gemini_response(10), _gemini_response(10), _gemini_response(3)]
        )

        with patch(
            "kb_assistant.providers.embedding.gemini_embedding_provider.genai.Client",
            return_value=mock_client,
        ), patch(
            "kb_assistant.providers.embedding.gemini_embedding_provider.asyncio.sleep",
            new=AsyncMock(),
        ) as mock_sleep:
            provider = GeminiEmbeddingProvider(_settings(embedding_provider="gemini"))
            result = await provider.embed_batch([f"t{i}" for i in range(23)])

        assert len(result) == 23
        batch_sizes = [
            len(call.kwargs["contents"]) for call in mock_client.aio.models.embed_content.await_args_list
        ]
        assert batch_sizes == [10, 10, 3]
        assert mock_sleep.await_count == 2
        mock_sleep.assert_awaited_with(0.1)

    @pytest.mark.asyncio
    async def test_short_response_raises(self) -> None:
        from kb_assistant.providers.embedding.gemini_embedding_provider import GeminiEmbeddingProvider

        mock_client = MagicMock()
        mock_client.aio.models.embed_content = AsyncMock(return_value=_gemini_response(1))

        with patch(
            "kb_assistant.providers.embedding.gemini_embedding_provider.genai.Client",
            return_value=mock_client,
        ):
            provider = GeminiEmbeddingProvider(_settings())
            with pytest.raises(RAGError, match="returned 1 embeddings for 2 texts"):
                await provider.embed_batch(["a", "b"])

    @pytest.mark.asyncio
    async def test_connection_error_wrapped_in_rag_error(self) -> None:
        from kb_assistant.providers.embedding.gemini_embedding_provider import GeminiEmbeddingProvider

        mock_client = MagicMock()
        mock_client.aio.models.embed_content = AsyncMock(
            side_effect=httpx.ConnectError("connection refused")
        )

        with patch(
            "kb_assistant.providers.embedding.gemini_embedding_provider.genai.Client",
            return_value=mock_client,
        ):
            provider = GeminiEmbeddingProvider(_settings())
            with pytest.raises(RAGError, match="Gemini embedding request failed"):
                await provider.embed_batch(["a"])

    def test_metadata(self) -> None:
        from kb_assistant.providers.embedding.gemini_embedding_provider import GeminiEmbeddingProvider

        with patch("kb_assistant.providers.embedding.gemini_embedding_provider.genai.Client"):
            provider = GeminiEmbeddingProvider(_settings(embedding_model="gemini-embedding-001"))

        assert provider.get_provider_name() == "gemini"
        assert provider.get_model() == "gemini-embedding-001"
        assert provider.is_available() is True
