"""Unit tests for Settings validation, provider factories and app assembly."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from kb_assistant.config.settings import Settings
from kb_assistant.providers.factory import (
    create_embedding_provider,
    create_llm_provider,
    create_vector_store,
)
from kb_assistant.utils.errors import ConfigurationError


def _settings(**overrides) -> Settings:
    defaults = {"_env_file": None, "openai_api_key": "sk-test"}
    defaults.update(overrides)
    return Settings(**defaults)


class TestSettings:
    def test_env_vars_override_defaults(self, monkeypatch) -> None:
        monkeypatch.setenv("LLM_PROVIDER", "claude")
        monkeypatch.setenv("RAG_TOP_K", "7")

        settings = Settings(_env_file=None)

        assert settings.llm_provider == "claude"
        assert settings.rag_top_k == 7

    def test_resolved_model_falls_back_to_provider_default(self) -> None:
        assert _settings(llm_provider="claude").resolved_llm_model() == "claude-sonnet-4-20250514"
        assert _settings(llm_model="gpt-4.1").resolved_llm_model() == "gpt-4.1"

    def test_unknown_llm_provider_rejected(self) -> None:
        with pytest.raises(ConfigurationError, match="Unsupported LLM provider 'mistral'"):
            _settings(llm_provider="mistral").validate_llm()

    def test_missing_api_key_rejected(self) -> None:
        with pytest.raises(ConfigurationError, match="API key is required"):
            _settings(llm_provider="claude").validate_llm()

    def test_ollama_needs_no_key(self) -> None:
        _settings(llm_provider="ollama", openai_api_key="").validate_llm()

    def test_unknown_embedding_provider_rejected(self) -> None:
        with pytest.raises(ConfigurationError, match="Unsupported embedding provider"):
            _settings(embedding_provider="cohere").validate_embedding()

    def test_non_positive_dimensions_rejected(self) -> None:
        with pytest.raises(ConfigurationError, match="positive integer"):
            _settings(embedding_dimensions=0).validate_embedding()

    def test_pinecone_requires_key_and_index(self) -> None:
        with pytest.raises(ConfigurationError, match="PINECONE_API_KEY"):
            _settings(vector_store="pinecone").validate_vector_store()

    def test_unknown_vector_store_rejected(self) -> None:
        with pytest.raises(ConfigurationError, match="Unsupported vector store"):
            _settings(vector_store="qdrant").validate_vector_store()


class TestFactories:
    def test_claude_selects_anthropic_adapter(self) -> None:
        with patch("kb_assistant.providers.llm.anthropic_provider.anthropic.AsyncAnthropic"):
            llm = create_llm_provider(_settings(llm_provider="claude", anthropic_api_key="ak"))

        assert llm.get_provider_name() == "claude"

    def test_ollama_selects_ollama_adapter(self) -> None:
        with patch("kb_assistant.providers.llm.ollama_provider.openai.AsyncOpenAI"):
            llm = create_llm_provider(_settings(llm_provider="ollama"))

        assert llm.get_provider_name() == "ollama"

    def test_invalid_llm_fails_before_construction(self) -> None:
        with pytest.raises(ConfigurationError):
            create_llm_provider(_settings(llm_provider="nope"))

    def test_gemini_embedding_selected(self) -> None:
        with patch("kb_assistant.providers.embedding.gemini_embedding_provider.genai.Client"):
            embedder = create_embedding_provider(
                _settings(embedding_provider="gemini", gemini_api_key="gm", embedding_dimensions=768)
            )

        assert embedder.get_provider_name() == "gemini"
        assert embedder.get_dimension() == 768

    def test_chroma_alias_builds_local_store(self, tmp_path) -> None:
        store = create_vector_store(
            _settings(vector_store="chroma", chromadb_persist_dir=str(tmp_path / "db"))
        )

        assert store.get_provider_name() == "chromadb"
        assert store.supports_filtered_delete() is True

    def test_pinecone_selected(self) -> None:
        with patch("kb_assistant.providers.vector_store.pinecone_provider.Pinecone"):
            store = create_vector_store(
                _settings(
                    vector_store="pinecone",
                    pinecone_api_key="pc",
                    pinecone_index="kb",
                    pinecone_supports_filtered_delete=True,
                )
            )

        assert store.get_provider_name() == "pinecone"
        assert store.get_index_name() == "kb"
        assert store.supports_filtered_delete() is True


class TestBuildComponents:
    def test_rag_and_tools_disabled(self) -> None:
        from kb_assistant.main import build_components

        with patch("kb_assistant.providers.llm.openai_provider.openai.AsyncOpenAI"):
            components = build_components(_settings(rag_enabled=False, tools_enabled=False))

        assert components["knowledge_base"] is None
        assert components["tool_service"] is None
        assert components["status_service"].get_tool_status().enabled is False

    def test_knowledge_base_tool_registered_when_both_enabled(self, tmp_path) -> None:
        from kb_assistant.main import build_components

        with patch("kb_assistant.providers.llm.openai_provider.openai.AsyncOpenAI"), patch(
            "kb_assistant.providers.embedding.openai_embedding_provider.openai.AsyncOpenAI"
        ):
            components = build_components(
                _settings(chromadb_persist_dir=str(tmp_path / "db"), embedding_dimensions=4)
            )

        assert components["knowledge_base"] is not None
        tools = components["tool_service"].get_available_tools()
        assert [t.name for t in tools] == ["search_knowledge_base"]
