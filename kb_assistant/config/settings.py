"""Application settings loaded from environment variables via pydantic-settings.

# ─── HOW SETTINGS WORK ────────────────────────────────────────────────
#
# Settings are read from two sources (in priority order):
#
#   1. Environment variables, e.g. LLM_PROVIDER=claude
#   2. A .env file in the working directory (local development)
#
# Field ``openai_api_key`` maps to env var ``OPENAI_API_KEY``.  Defaults
# below apply when neither source sets a value.
#
# Provider ids are validated lazily by the validate_* methods, which the
# provider factories call at construction so a bad id fails at startup.
# ──────────────────────────────────────────────────────────────────────
"""

from pydantic_settings import BaseSettings, SettingsConfigDict

from kb_assistant.utils.errors import ConfigurationError

LLM_PROVIDER_IDS = frozenset({"openai", "gemini", "claude", "ollama"})
EMBEDDING_PROVIDER_IDS = frozenset({"openai", "gemini"})
VECTOR_STORE_IDS = frozenset({"pinecone", "chromadb", "chroma"})

_DEFAULT_LLM_MODELS: dict[str, str] = {
    "openai": "gpt-4o-mini",
    "gemini": "gemini-2.0-flash",
    "claude": "claude-sonnet-4-20250514",
    "ollama": "llama3.1",
}


class Settings(BaseSettings):
    """Knowledge-base assistant settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # === LLM ===
    llm_provider: str = "openai"
    llm_model: str = ""  # empty = provider default
    llm_temperature: float = 0.7
    llm_max_tokens: int = 1000
    openai_api_key: str = ""
    openai_base_url: str = ""  # OpenAI-compatible endpoints
    anthropic_api_key: str = ""
    gemini_api_key: str = ""
    gemini_openai_base_url: str = "https://generativelanguage.googleapis.com/v1beta/openai/"
    ollama_base_url: str = "http://localhost:11434"

    # === Embeddings ===
    embedding_provider: str = "openai"
    embedding_model: str = "text-embedding-3-small"
    embedding_dimensions: int = 1536
    embedding_batch_size: int = 10
    embedding_batch_delay_ms: int = 100

    # === Vector store ===
    vector_store: str = "chromadb"
    chromadb_persist_dir: str = "./data/chromadb"
    chromadb_collection: str = "knowledge_base"
    pinecone_api_key: str = ""
    pinecone_index: str = ""
    pinecone_namespace: str = ""
    pinecone_supports_filtered_delete: bool = False

    # === RAG ===
    rag_enabled: bool = True
    rag_top_k: int = 3

    # === Tools ===
    tools_enabled: bool = True
    tool_max_rounds: int = 5

    # === Chunking defaults ===
    default_max_chunk_length: int = 1000
    default_chunk_overlap: int = 200
    default_chunk_delimiter: str = "\n"
    default_oversized_policy: str = "preserve"

    # === App Config ===
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    app_env: str = "development"
    log_level: str = "INFO"

    # ------------------------------------------------------------------
    # Resolution helpers
    # ------------------------------------------------------------------

    def resolved_llm_model(self) -> str:
        """Return the configured LLM model or the provider's default."""
        return self.llm_model or _DEFAULT_LLM_MODELS.get(self.llm_provider.lower(), "")

    def llm_api_key(self) -> str:
        """Return the API key that belongs to the selected LLM provider."""
        return {
            "openai": self.openai_api_key,
            "gemini": self.gemini_api_key,
            "claude": self.anthropic_api_key,
        }.get(self.llm_provider.lower(), "")

    def embedding_api_key(self) -> str:
        """Return the API key that belongs to the selected embedding provider."""
        if self.embedding_provider.lower() == "gemini":
            return self.gemini_api_key
        return self.openai_api_key

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate_llm(self) -> None:
        """Raise ConfigurationError unless the LLM selection is usable."""
        provider = self.llm_provider.lower()
        if provider not in LLM_PROVIDER_IDS:
            raise ConfigurationError(
                f"Unsupported LLM provider '{self.llm_provider}'. "
                f"Supported providers: {', '.join(sorted(LLM_PROVIDER_IDS))}"
            )
        if provider != "ollama" and not self.llm_api_key():
            raise ConfigurationError(
                f"API key is required for LLM provider '{provider}'",
                provider_name=provider,
            )
        if not self.resolved_llm_model():
            raise ConfigurationError("LLM model is required", provider_name=provider)

    def validate_embedding(self) -> None:
        """Raise ConfigurationError unless the embedding selection is usable."""
        provider = self.embedding_provider.lower()
        if provider not in EMBEDDING_PROVIDER_IDS:
            raise ConfigurationError(
                f"Unsupported embedding provider '{self.embedding_provider}'. "
                f"Supported providers: {', '.join(sorted(EMBEDDING_PROVIDER_IDS))}"
            )
        if not self.embedding_api_key():
            raise ConfigurationError(
                f"API key is required for embedding provider '{provider}'",
                provider_name=provider,
            )
        if not self.embedding_model:
            raise ConfigurationError("Embedding model is required", provider_name=provider)
        if self.embedding_dimensions <= 0:
            raise ConfigurationError(
                "Embedding dimensions must be a positive integer", provider_name=provider
            )

    def validate_vector_store(self) -> None:
        """Raise ConfigurationError unless the vector store selection is usable."""
        store = self.vector_store.lower()
        if store not in VECTOR_STORE_IDS:
            raise ConfigurationError(
                f"Unsupported vector store: {self.vector_store}. "
                f"Supported: {', '.join(sorted(VECTOR_STORE_IDS))}"
            )
        if store == "pinecone" and not (self.pinecone_api_key and self.pinecone_index):
            raise ConfigurationError(
                "Pinecone requires PINECONE_API_KEY and PINECONE_INDEX",
                provider_name="pinecone",
            )
