# src/ebb_stage/services/__init__.py
"""Business logic services for the Ebb Stage service."""

from .errors import (
    CacheFailure,
    ChannelFailure,
    JobSinkFailure,
    RemovalError,
    StorageFailure,
)
from .feed import FeedManager
from .jobs import CeleryJobSink, InMemoryJobSink
from .removal import BatchedRemoveStatusService, RemovalResult
from .streaming import StreamingChannel

__all__ = [
    "BatchedRemoveStatusService", "RemovalResult",
    "FeedManager",
    "StreamingChannel",
    "CeleryJobSink", "InMemoryJobSink",
    "RemovalError", "StorageFailure", "CacheFailure", "ChannelFailure", "JobSinkFailure",
]
