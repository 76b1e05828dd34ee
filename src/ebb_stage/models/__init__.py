# src/ebb_stage/models/__init__.py
"""SQLAlchemy models for the Ebb Stage service."""

from .account import Account, Follow
from .mention import Mention
from .status import Status, status_tag
from .stream_entry import StreamEntry
from .tag import Tag

__all__ = [
    "Account", "Follow",
    "Mention",
    "Status", "status_tag",
    "StreamEntry",
    "Tag",
]
