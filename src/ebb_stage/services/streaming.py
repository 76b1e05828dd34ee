"""Publish side of the live-update streaming channels."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import AbstractContextManager, contextmanager
from typing import Protocol

import redis

from ebb_stage.core.settings import settings
from ebb_stage.services.errors import ChannelFailure

logger = logging.getLogger(__name__)


def public_channel(*, local: bool = False) -> str:
    """Return the public timeline channel name."""
    name = f"{settings.streaming_channel_prefix}:public"
    return f"{name}:local" if local else name


def hashtag_channel(tag: str, *, local: bool = False) -> str:
    """Return the channel name of a hashtag timeline."""
    name = f"{settings.streaming_channel_prefix}:hashtag:{tag}"
    return f"{name}:local" if local else name


def account_channel(account_id: int) -> str:
    """Return the channel carrying an account's home timeline updates."""
    return f"{settings.streaming_channel_prefix}:{account_id}"


class Publisher(Protocol):
    """Anything that can queue a publish."""

    def publish(self, channel: str, payload: bytes) -> None: ...


class PublishChannel(Protocol):
    """Contract for the streaming transport."""

    def publish(self, channel: str, payload: bytes) -> None: ...

    def pipelined(self) -> AbstractContextManager[Publisher]: ...


class _PipelinePublisher:
    def __init__(self, pipeline: redis.client.Pipeline) -> None:
        self._pipeline = pipeline
        self.queued = 0

    def publish(self, channel: str, payload: bytes) -> None:
        self._pipeline.publish(channel, payload)
        self.queued += 1


class StreamingChannel:
    """Redis pub/sub publisher for streaming timelines."""

    def __init__(self, client: redis.Redis) -> None:
        self._redis = client

    def publish(self, channel: str, payload: bytes) -> None:
        """Publish a single payload immediately."""
        try:
            self._redis.publish(channel, payload)
        except redis.RedisError as err:
            raise ChannelFailure(f"Failed to publish to {channel}") from err

    @contextmanager
    def pipelined(self) -> Iterator[Publisher]:
        """Queue publishes and send them in one round trip when the block exits.

        Nothing is sent if the block raises.

        Raises:
            ChannelFailure: If the flush fails.
        """
        pipeline = self._redis.pipeline(transaction=False)
        publisher = _PipelinePublisher(pipeline)
        try:
            yield publisher
        except BaseException:
            pipeline.reset()
            raise
        try:
            pipeline.execute()
        except redis.RedisError as err:
            raise ChannelFailure(
                f"Failed to flush {publisher.queued} pipelined publishes"
            ) from err
        finally:
            pipeline.reset()
        logger.debug("Flushed %s pipelined publishes", publisher.queued)
