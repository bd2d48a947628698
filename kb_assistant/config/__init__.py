"""Configuration module: exports Settings and the supported provider ids."""

from kb_assistant.config.settings import (
    EMBEDDING_PROVIDER_IDS,
    LLM_PROVIDER_IDS,
    VECTOR_STORE_IDS,
    Settings,
)

__all__ = ["EMBEDDING_PROVIDER_IDS", "LLM_PROVIDER_IDS", "Settings", "VECTOR_STORE_IDS"]
