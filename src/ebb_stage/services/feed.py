"""Redis-backed home timelines.

Each timeline is a sorted set keyed ``{prefix}:{kind}:{account_id}`` whose
members are status ids scored by the same id. Reblogs are tracked in a
companion ``...:reblogs`` set mapping the original status id to the id of the
reblog that brought it into the timeline. Clients following a home timeline
live are told about removals on the account's own streaming channel.
"""

from __future__ import annotations

import logging
from typing import Protocol

import redis

from ebb_stage.core.settings import settings
from ebb_stage.services.encoding import encode_deletion_event
from ebb_stage.services.errors import CacheFailure
from ebb_stage.services.streaming import account_channel

logger = logging.getLogger(__name__)

HOME_TIMELINE = "home"


class TimelineEntry(Protocol):
    """The subset of a status the timeline cache needs."""

    id: int
    reblog_of_id: int | None


class TimelineCache(Protocol):
    """Contract for removing statuses from cached timelines."""

    def unpush(self, timeline_kind: str, recipient_id: int, status: TimelineEntry) -> bool: ...


class FeedManager:
    """Manage the cached timelines of local accounts."""

    def __init__(self, client: redis.Redis, prefix: str | None = None) -> None:
        self._redis = client
        self.prefix = prefix or settings.timeline_key_prefix

    def key(self, timeline_kind: str, account_id: int, subtype: str | None = None) -> str:
        """Return the Redis key of a timeline, or of one of its companion sets."""
        base = f"{self.prefix}:{timeline_kind}:{account_id}"
        return f"{base}:{subtype}" if subtype else base

    def unpush(self, timeline_kind: str, recipient_id: int, status: TimelineEntry) -> bool:
        """Remove ``status`` from a recipient's timeline.

        The deletion event is published on the recipient's channel even when
        the entry was already gone, so a live client drops it either way.

        Returns:
            True if the timeline held the status.

        Raises:
            CacheFailure: If Redis rejects the command.
        """
        timeline_key = self.key(timeline_kind, recipient_id)
        reblog_key = self.key(timeline_kind, recipient_id, "reblogs")
        try:
            if status.reblog_of_id is not None:
                # Only drop the tracking entry if this reblog is the one that inserted it.
                tracked = self._redis.zscore(reblog_key, status.reblog_of_id)
                if tracked is not None and int(tracked) == status.id:
                    self._redis.zrem(reblog_key, status.reblog_of_id)
            else:
                self._redis.zrem(reblog_key, status.id)
            removed = self._redis.zrem(timeline_key, status.id)
            self._redis.publish(account_channel(recipient_id), encode_deletion_event(status.id))
        except redis.RedisError as err:
            raise CacheFailure(
                f"Failed to unpush status {status.id} from {timeline_key}"
            ) from err

        return bool(removed)
