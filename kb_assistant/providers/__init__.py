"""Concrete adapters for embedding, vector-store, LLM and tool backends."""
