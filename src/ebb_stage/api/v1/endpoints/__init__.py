# src/ebb_stage/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .removals import router as removals_router

__all__ = ["removals_router"]
