"""Vector store provider implementations.

    - ChromaDBProvider  -- local persistent store; supports filtered delete.
    - PineconeProvider  -- hosted index; filtered delete only when the index
      type allows it (PINECONE_SUPPORTS_FILTERED_DELETE).

Selected by VECTOR_STORE through kb_assistant.providers.factory.
"""

from kb_assistant.providers.vector_store.chromadb_provider import ChromaDBProvider
from kb_assistant.providers.vector_store.pinecone_provider import PineconeProvider

__all__ = ["ChromaDBProvider", "PineconeProvider"]
