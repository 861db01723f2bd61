"""
Redis client initialization and connection management.

Redis holds the token revocation lists used by logout and user blocking.
"""

import redis.asyncio as redis
from rideshare.app.core.config import settings


redis_client = redis.from_url(
    settings.redis_url,
    decode_responses=settings.redis_decode_responses,
)


async def get_redis():
    """
    Get the shared Redis client.
    
    Usable as a FastAPI dependency; tests override it with an in-memory double.
    """
    return redis_client


async def ping_redis() -> bool:
    """Return True when Redis answers a PING."""
    try:
        return await redis_client.ping()
    except Exception:
        return False
