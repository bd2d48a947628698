"""Abstract base class for text-embedding service providers.

Defines the contract for generating embedding vectors from text.
Implementations wrap OpenAI ``text-embedding-3-small`` or Google Gemini
embedding models; the ingestion pipeline and retrieval service depend only
on this interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from kb_assistant.models.documents import ConnectionTestResult


# Concrete implementations:
#   OpenAIEmbeddingProvider  -- OpenAI / OpenAI-compatible embeddings API
#   GeminiEmbeddingProvider  -- Google Gemini via google-genai
# Located in: kb_assistant/providers/embedding/
class IEmbeddingProvider(ABC):
    """Contract for text-embedding services used by ingestion and retrieval."""

    @abstractmethod
    async def embed(self, text: str) -> list[float]:
        """Generate an embedding vector for a single text string.

        Parameters
        ----------
        text:
            The text string to embed (typically a search query).

        Returns
        -------
        list[float]
            The embedding vector with length equal to :meth:`get_dimension`.

        Raises
        ------
        kb_assistant.utils.errors.RAGError
            If the embedding API call fails.
        """

    @abstractmethod
    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Generate embedding vectors for a batch of texts.

        Parameters
        ----------
        texts:
            Zero or more strings.  Implementations handle sub-batching and
            inter-batch delays internally when the API has per-call limits.

        Returns
        -------
        list[list[float]]
            Vectors corresponding positionally to *texts*.

        Raises
        ------
        kb_assistant.utils.errors.RAGError
            If any embedding API call fails.
        """

    @abstractmethod
    async def test_connection(self) -> ConnectionTestResult:
        """Embed a probe string and report whether the provider answered.

        Never raises; failures are reported through ``error``.
        """

    @abstractmethod
    def get_dimension(self) -> int:
        """Return the dimensionality of the embedding vectors."""

    @abstractmethod
    def get_model(self) -> str:
        """Return the embedding model name, e.g. ``"text-embedding-3-small"``."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return the provider id, e.g. ``"openai"`` or ``"gemini"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if credentials are configured (no network call)."""
