"""Embedding provider implementations.

Two implementations of IEmbeddingProvider, selected by EMBEDDING_PROVIDER:
    - OpenAIEmbeddingProvider  -- text-embedding-3-small (1536 dims) by default.
    - GeminiEmbeddingProvider  -- Gemini embedding models via google-genai,
      batched 10 at a time with a short delay between batches.
"""

from kb_assistant.providers.embedding.gemini_embedding_provider import GeminiEmbeddingProvider
from kb_assistant.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

__all__ = ["GeminiEmbeddingProvider", "OpenAIEmbeddingProvider"]
