"""Exceptions raised by the removal pipeline and its collaborators."""

from __future__ import annotations


class RemovalError(RuntimeError):
    """Base exception for status removal failures."""


class StorageFailure(RemovalError):
    """Raised when statuses cannot be loaded or deleted.

    Nothing has been retracted when this is raised; the whole call can be retried.
    """


class CacheFailure(RemovalError):
    """Raised by a timeline cache when a single unpush fails."""


class ChannelFailure(RemovalError):
    """Raised by a publish channel when a pipelined flush fails."""


class JobSinkFailure(RemovalError):
    """Raised when a bulk job submission is rejected or cannot reach the queue."""
