# src/ebb_stage/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import removals_router

__all__ = ["removals_router"]
