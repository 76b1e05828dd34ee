"""Redis connection shared by timelines, streaming and job queues."""

from __future__ import annotations

import redis

from ebb_stage.core.settings import settings


class _RedisSingleton:
    _instance: redis.Redis | None = None

    @classmethod
    def get_instance(cls) -> redis.Redis:
        if cls._instance is None:
            cls._instance = redis.Redis.from_url(settings.redis_url)
        return cls._instance


def get_redis() -> redis.Redis:
    """Return the process-wide Redis client."""
    return _RedisSingleton.get_instance()
