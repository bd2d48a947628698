"""HTTP boundary: FastAPI routes, schemas and middleware."""
