"""Shared Redis connection used by the token revocation list."""

from typing import Optional

import redis.asyncio as redis

from orgadmin.config import settings

_redis_client: Optional[redis.Redis] = None


async def get_redis() -> redis.Redis:
    """Get or create Redis client connection."""
    global _redis_client
    if _redis_client is None:
        _redis_client = redis.from_url(
            settings.redis_url,
            encoding="utf-8",
            decode_responses=True,
            max_connections=50,
        )
    return _redis_client


def set_redis(client: Optional[redis.Redis]) -> None:
    """Install a pre-built client (tests, alternative deployments)."""
    global _redis_client
    _redis_client = client


async def close_redis():
    """Close Redis connection (call on app shutdown)."""
    global _redis_client
    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None
