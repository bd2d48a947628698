"""Google Gemini embedding provider adapter.

Wraps the ``google-genai`` async client to implement
:class:`IEmbeddingProvider`.  The Gemini API limits request sizes and
rate-limits bursts, so texts are sent in small batches with a short pause
between consecutive batches.
"""

from __future__ import annotations

import asyncio

import httpx
import structlog
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from kb_assistant.config.settings import Settings
from kb_assistant.interfaces.embedding_provider import IEmbeddingProvider
from kb_assistant.models.documents import ConnectionTestResult
from kb_assistant.utils.errors import RAGError

logger = structlog.get_logger(logger_name=__name__)


class GeminiEmbeddingProvider(IEmbeddingProvider):
    """Embedding provider backed by Gemini ``embed_content``.

    Batches of ``embedding_batch_size`` texts (default 10) are embedded in
    order, sleeping ``embedding_batch_delay_ms`` (default 100 ms) between
    batches.  This is the pipeline's only backpressure mechanism.
    """

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._api_key = settings.gemini_api_key
        self._client = genai.Client(api_key=self._api_key)
        self._model = settings.embedding_model
        self._dimension = settings.embedding_dimensions
        self._batch_size = max(1, settings.embedding_batch_size)
        self._batch_delay = max(0, settings.embedding_batch_delay_ms) / 1000

    # ------------------------------------------------------------------
    # IEmbeddingProvider implementation
    # ------------------------------------------------------------------

    async def embed(self, text: str) -> list[float]:
        result = await self.embed_batch([text])
        return result[0]

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []

        config = types.EmbedContentConfig(output_dimensionality=self._dimension)
        all_embeddings: list[list[float]] = []
        try:
            for start in range(0, len(texts), self._batch_size):
                if start > 0 and self._batch_delay:
                    await asyncio.sleep(self._batch_delay)
                batch = texts[start : start + self._batch_size]
                response = await self._client.aio.models.embed_content(
                    model=self._model,
                    contents=batch,
                    config=config,
                )
                vectors = [list(e.values or []) for e in response.embeddings or []]
                if len(vectors) != len(batch):
                    raise RAGError(
                        message=(
                            f"Gemini returned {len(vectors)} embeddings for {len(batch)} texts"
                        ),
                        provider_name=self.get_provider_name(),
                    )
                all_embeddings.extend(vectors)
                logger.debug("gemini_embedding_batch", model=self._model, batch_size=len(batch))
        except genai_errors.APIError as exc:
            raise RAGError(
                message=f"Gemini embedding API error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        except httpx.HTTPError as exc:
            raise RAGError(
                message=f"Gemini embedding request failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        logger.info("gemini_embeddings_generated", model=self._model, count=len(all_embeddings))
        return all_embeddings

    async def test_connection(self) -> ConnectionTestResult:
        try:
            await self.embed("test")
            return ConnectionTestResult(connected=True)
        except RAGError as exc:
            return ConnectionTestResult(connected=False, error=exc.message)

    def get_dimension(self) -> int:
        return self._dimension

    def get_model(self) -> str:
        return self._model

    def get_provider_name(self) -> str:
        return "gemini"

    def is_available(self) -> bool:
        return bool(self._api_key)
