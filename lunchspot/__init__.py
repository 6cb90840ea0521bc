"""
Backend package for the lunch spot app.

This package provides a FastAPI application with a storage abstraction
(in-memory or SQLAlchemy) for users, food cards and favorites, plus bearer
token authentication.
"""
