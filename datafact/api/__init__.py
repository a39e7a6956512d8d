"""
FastAPI application layer for datafact.

Exposes the generation factory, form scraping/injection and persona lookups
over HTTP for no-code orchestration tools.
"""
