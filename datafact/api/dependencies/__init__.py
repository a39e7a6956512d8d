"""
FastAPI dependencies: bearer authorization, access to the shared services
built at startup, and the in-memory save-state cache.
"""
