"""Redis connection management for the recommendation cache."""

import redis.asyncio as redis
from redis.asyncio import Redis
from redis.exceptions import RedisError

from sakerec.core.config import get_settings
from sakerec.core.exceptions import ConfigurationError
from sakerec.core.logging import get_logger

logger = get_logger(__name__)

_redis_client: Redis | None = None


async def get_redis() -> Redis:
    """Get the shared Redis client, creating it on first use.

    Raises:
        ConfigurationError: If the configured ``redis_url`` cannot be parsed.
    """
    global _redis_client
    if _redis_client is None:
        redis_url = get_settings().redis_url
        try:
            _redis_client = redis.from_url(  # type: ignore[no-untyped-call]
                redis_url,
                encoding="utf-8",
                decode_responses=True,
            )
        except ValueError as e:
            raise ConfigurationError(
                f"Invalid redis_url: {e}",
                details={"setting": "redis_url"},
            ) from e
    return _redis_client


async def close_redis() -> None:
    """Close Redis connection."""
    global _redis_client
    if _redis_client is not None:
        await _redis_client.aclose()
        _redis_client = None


async def check_redis_connection() -> bool:
    """Check if Redis connection is healthy."""
    try:
        client = await get_redis()
        await client.ping()
        return True
    except (RedisError, OSError) as e:
        logger.warning("redis_health_check_failed", error=str(e))
        return False
