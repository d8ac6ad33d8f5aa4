"""FastAPI application exposing the sync layer."""
