"""Application services: ingestion, catalog, retrieval and context fusion."""
