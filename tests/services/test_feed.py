# tests/services/test_feed.py
"""Tests for the Redis-backed home timeline cache."""

from unittest.mock import MagicMock

import pytest
import redis

from ebb_stage.services.encoding import encode_deletion_event
from ebb_stage.services.errors import CacheFailure
from ebb_stage.services.feed import FeedManager
from ebb_stage.services.removal import RemovedStatus


def _status(status_id: int, reblog_of_id: int | None = None) -> RemovedStatus:
    return RemovedStatus(
        id=status_id,
        account_id=1,
        account_username="author",
        local=True,
        uri=None,
        reblog_of_id=reblog_of_id,
    )


@pytest.fixture
def redis_client() -> MagicMock:
    client = MagicMock(spec=redis.Redis)
    client.zrem.return_value = 1
    return client


def test_key_layout(redis_client: MagicMock) -> None:
    feed = FeedManager(redis_client, prefix="feed")

    assert feed.key("home", 7) == "feed:home:7"
    assert feed.key("home", 7, "reblogs") == "feed:home:7:reblogs"


def test_unpush_original_clears_timeline_and_reblog_tracking(redis_client: MagicMock) -> None:
    feed = FeedManager(redis_client, prefix="feed")

    assert feed.unpush("home", 7, _status(42)) is True

    redis_client.zrem.assert_any_call("feed:home:7:reblogs", 42)
    redis_client.zrem.assert_any_call("feed:home:7", 42)
    redis_client.zscore.assert_not_called()


def test_unpush_reblog_drops_tracking_it_owns(redis_client: MagicMock) -> None:
    redis_client.zscore.return_value = 50.0
    feed = FeedManager(redis_client, prefix="feed")

    feed.unpush("home", 7, _status(50, reblog_of_id=42))

    redis_client.zscore.assert_called_once_with("feed:home:7:reblogs", 42)
    redis_client.zrem.assert_any_call("feed:home:7:reblogs", 42)
    redis_client.zrem.assert_any_call("feed:home:7", 50)


def test_unpush_reblog_keeps_tracking_owned_by_another_reblog(redis_client: MagicMock) -> None:
    redis_client.zscore.return_value = 61.0
    feed = FeedManager(redis_client, prefix="feed")

    feed.unpush("home", 7, _status(50, reblog_of_id=42))

    redis_client.zrem.assert_called_once_with("feed:home:7", 50)


def test_unpush_tells_live_home_stream(redis_client: MagicMock) -> None:
    feed = FeedManager(redis_client, prefix="feed")

    feed.unpush("home", 7, _status(50, reblog_of_id=42))

    redis_client.publish.assert_called_once_with("timeline:7", encode_deletion_event(50))


def test_unpush_missing_entry_returns_false(redis_client: MagicMock) -> None:
    redis_client.zrem.return_value = 0
    feed = FeedManager(redis_client, prefix="feed")

    assert feed.unpush("home", 7, _status(42)) is False
    redis_client.publish.assert_called_once_with("timeline:7", encode_deletion_event(42))


def test_unpush_publish_failure_is_a_cache_failure(redis_client: MagicMock) -> None:
    redis_client.publish.side_effect = redis.ConnectionError("connection reset")
    feed = FeedManager(redis_client, prefix="feed")

    with pytest.raises(CacheFailure):
        feed.unpush("home", 7, _status(42))


def test_unpush_wraps_redis_errors(redis_client: MagicMock) -> None:
    redis_client.zrem.side_effect = redis.ConnectionError("connection refused")
    feed = FeedManager(redis_client, prefix="feed")

    with pytest.raises(CacheFailure) as excinfo:
        feed.unpush("home", 7, _status(42))

    assert isinstance(excinfo.value.__cause__, redis.ConnectionError)
