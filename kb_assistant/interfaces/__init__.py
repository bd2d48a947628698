"""Public interface definitions for all external collaborators.

Every external API or service is accessed through the abstract base classes
defined in this package.  Concrete adapters live in ``kb_assistant.providers``
and are selected by the factories in ``kb_assistant.providers.factory``.

CONCRETE PROVIDER MAP:
    Interface                  →  Concrete implementations
    ─────────────────────────────────────────────────────────────────────
    IEmbeddingProvider         →  OpenAIEmbeddingProvider, GeminiEmbeddingProvider
    IVectorStoreProvider       →  ChromaDBProvider, PineconeProvider
    ILLMProvider               →  OpenAILLMProvider, AnthropicLLMProvider,
                                  OllamaLLMProvider
    IToolProcessingService     →  ToolLoopService
"""

from kb_assistant.interfaces.embedding_provider import IEmbeddingProvider
from kb_assistant.interfaces.llm_provider import ILLMProvider
from kb_assistant.interfaces.tool_processing_service import IToolProcessingService
from kb_assistant.interfaces.vector_store_provider import IVectorStoreProvider

__all__ = [
    "IEmbeddingProvider",
    "ILLMProvider",
    "IToolProcessingService",
    "IVectorStoreProvider",
]
