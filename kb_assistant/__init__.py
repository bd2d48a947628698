"""Kubernetes knowledge-base assistant.

Ingests YAML, PDF, text and Markdown documents into a vector store and fuses
retrieved context with LLM conversations that may invoke external tools.
"""

__version__ = "0.1.0"
