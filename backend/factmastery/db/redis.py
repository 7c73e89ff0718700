"""
Redis Connection and Utilities

Provides Redis connection pooling and the list-backed queue that carries
goal completion signals to the external notification consumer.

Usage:
    from factmastery.db.redis import get_redis, SignalQueue

    # Get Redis connection
    redis = await get_redis()
    await redis.ping()

    # Publish a signal
    queue = SignalQueue()
    await queue.publish("daily_goals_completed", {"user_id": "u1"})
"""

import json
from typing import Any, Optional

import redis.asyncio as redis

from factmastery.config import settings, yaml_config


# Get Redis configuration from yaml config
redis_config: dict[str, Any] = yaml_config.get("redis", {})
MAX_CONNECTIONS: int = redis_config.get("max_connections", 10)
DEFAULT_SIGNAL_QUEUE: str = redis_config.get("signal_queue", "factmastery:signals")


# Connection pool (lazily initialized)
_redis_pool: Optional[redis.ConnectionPool] = None


async def get_redis_pool() -> redis.ConnectionPool:
    """Get or create the Redis connection pool."""
    global _redis_pool
    if _redis_pool is None:
        _redis_pool = redis.ConnectionPool.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            max_connections=MAX_CONNECTIONS,
        )
    return _redis_pool


async def get_redis() -> redis.Redis:
    """
    Get a Redis connection from the pool.

    Usage:
        redis = await get_redis()
        await redis.set("key", "value")
    """
    pool = await get_redis_pool()
    return redis.Redis(connection_pool=pool)


async def close_redis_pool() -> None:
    """Close the Redis connection pool."""
    global _redis_pool
    if _redis_pool is not None:
        await _redis_pool.disconnect()
        _redis_pool = None


class SignalQueue:
    """
    Redis list used as a FIFO signal queue.

    Producers RPUSH JSON messages ``{"type": str, "payload": dict}``; the
    consumer pops from the left.
    """

    def __init__(self, queue_name: str = DEFAULT_SIGNAL_QUEUE) -> None:
        self.queue_name = queue_name

    async def publish(self, signal_type: str, payload: dict[str, Any]) -> None:
        """Append a signal to the queue."""
        r = await get_redis()
        message = json.dumps({"type": signal_type, "payload": payload})
        await r.rpush(self.queue_name, message)

    async def pending(self) -> int:
        """Number of signals waiting to be consumed."""
        r = await get_redis()
        return await r.llen(self.queue_name)
