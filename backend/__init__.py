"""
Backend package for the travel-planning API.

This package provides a FastAPI application with database, storage, queue
and provider abstractions; each falls back to an in-memory implementation
so the service runs locally without external accounts.
"""
