"""Document ingestion for the knowledge base.

Pipeline stages overview:

1. **Detect** (metadata_extractor.detect_format) -- file extension to format.

2. **Describe** (metadata_extractor.py / MetadataExtractor) -- shared chunk
   metadata; Kubernetes manifests contribute kind, apiVersion, namespace and
   friends.

3. **Chunk** (chunker.py / TextChunker) -- delimiter-based chunks under a
   character budget with overlap from the previous chunk.

4. **Embed** (via IEmbeddingProvider) -- one batch call per file.

5. **Store** (via IVectorStoreProvider) -- one upsert per file.

DocumentIngestionPipeline orchestrates all five stages.
"""

from kb_assistant.services.ingestion.chunker import TextChunker
from kb_assistant.services.ingestion.ingestion_service import DocumentIngestionPipeline
from kb_assistant.services.ingestion.metadata_extractor import MetadataExtractor, detect_format

__all__ = [
    "DocumentIngestionPipeline",
    "MetadataExtractor",
    "TextChunker",
    "detect_format",
]
