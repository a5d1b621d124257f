"""
FastAPI REST API for the Livros book catalogue.

This package provides:
- CRUD endpoints for book records
- A MongoDB persistence layer (Motor)
- Environment-based configuration
"""
