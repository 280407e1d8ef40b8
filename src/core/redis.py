"""Redis connection pool for the assessment draft buffer."""

import redis.asyncio as redis

from src.core.config import settings
from src.core.logging import get_logger

logger = get_logger(__name__)


async def create_redis_pool() -> redis.Redis:
    """Create the shared Redis client.

    Drafts are stored as orjson bytes, so responses are not decoded.

    Usage in lifespan:
        app.state.redis = await create_redis_pool()
        yield
        await app.state.redis.aclose()
    """
    return redis.Redis.from_url(
        settings.redis_url,
        decode_responses=False,
        max_connections=20,
    )


async def check_redis_health(pool: redis.Redis) -> bool:
    """Return True if Redis answers a ping."""
    try:
        await pool.ping()
        return True
    except Exception as e:
        logger.exception("redis_health_check_failed", error=str(e))
        return False
