"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .removal import RemovalRequest, RemovalResponse

__all__ = ["RemovalRequest", "RemovalResponse"]
