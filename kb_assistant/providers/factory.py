"""Provider selection from :class:`Settings`.

Each factory validates the relevant settings group first, so an unknown id
or a missing key raises :class:`ConfigurationError` at startup instead of
on the first request.
"""

from __future__ import annotations

import structlog

from kb_assistant.config.settings import Settings
from kb_assistant.interfaces.embedding_provider import IEmbeddingProvider
from kb_assistant.interfaces.llm_provider import ILLMProvider
from kb_assistant.interfaces.vector_store_provider import IVectorStoreProvider

logger = structlog.get_logger(logger_name=__name__)


def create_llm_provider(settings: Settings) -> ILLMProvider:
    """Build the LLM provider named by ``llm_provider``.

    ``openai`` and ``gemini`` share the OpenAI-compatible adapter.
    """
    settings.validate_llm()
    provider = settings.llm_provider.lower()

    if provider == "claude":
        from kb_assistant.providers.llm.anthropic_provider import AnthropicLLMProvider

        llm: ILLMProvider = AnthropicLLMProvider(settings=settings)
    elif provider == "ollama":
        from kb_assistant.providers.llm.ollama_provider import OllamaLLMProvider

        llm = OllamaLLMProvider(settings=settings)
    else:
        from kb_assistant.providers.llm.openai_provider import OpenAILLMProvider

        llm = OpenAILLMProvider(settings=settings)

    logger.info("llm_provider_selected", provider=llm.get_provider_name(), model=llm.get_model())
    return llm


def create_embedding_provider(settings: Settings) -> IEmbeddingProvider:
    """Build the embedding provider named by ``embedding_provider``."""
    settings.validate_embedding()

    if settings.embedding_provider.lower() == "gemini":
        from kb_assistant.providers.embedding.gemini_embedding_provider import (
            GeminiEmbeddingProvider,
        )

        embedder: IEmbeddingProvider = GeminiEmbeddingProvider(settings=settings)
    else:
        from kb_assistant.providers.embedding.openai_embedding_provider import (
            OpenAIEmbeddingProvider,
        )

        embedder = OpenAIEmbeddingProvider(settings=settings)

    logger.info(
        "embedding_provider_selected",
        provider=embedder.get_provider_name(),
        model=embedder.get_model(),
        dimensions=embedder.get_dimension(),
    )
    return embedder


def create_vector_store(settings: Settings) -> IVectorStoreProvider:
    """Build the vector store named by ``vector_store`` (``chroma`` is an alias)."""
    settings.validate_vector_store()

    if settings.vector_store.lower() == "pinecone":
        from kb_assistant.providers.vector_store.pinecone_provider import PineconeProvider

        store: IVectorStoreProvider = PineconeProvider(
            api_key=settings.pinecone_api_key,
            index_name=settings.pinecone_index,
            namespace=settings.pinecone_namespace,
            supports_filtered_delete=settings.pinecone_supports_filtered_delete,
        )
    else:
        from kb_assistant.providers.vector_store.chromadb_provider import ChromaDBProvider

        store = ChromaDBProvider(
            persist_directory=settings.chromadb_persist_dir,
            collection_name=settings.chromadb_collection,
            expected_dimension=settings.embedding_dimensions,
        )

    logger.info(
        "vector_store_selected",
        provider=store.get_provider_name(),
        index=store.get_index_name(),
    )
    return store
