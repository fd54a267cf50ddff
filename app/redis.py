"""
Redis client configuration using redis-py (asyncio).
"""

from typing import Optional
import logging

from redis import asyncio as aioredis
from redis.asyncio.client import Redis

from app.config import settings

logger = logging.getLogger(__name__)

WEBHOOK_KEY_PREFIX = "cashfree:webhook:"


class RedisClient:
    """Async Redis client wrapper."""

    _client: Optional[Redis] = None

    @classmethod
    def get_client(cls) -> Optional[Redis]:
        """Get or create Redis client. Returns None when REDIS_URL is unset."""
        if cls._client is None:
            if not settings.redis_url:
                logger.warning("REDIS_URL not set. Webhook dedupe cache disabled.")
                return None

            cls._client = aioredis.from_url(
                settings.redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_timeout=5.0,
                health_check_interval=30
            )
            logger.info("Redis client initialized")

        return cls._client

    @classmethod
    async def close(cls):
        """Close Redis client."""
        if cls._client:
            await cls._client.close()
            cls._client = None
            logger.info("Redis client closed")


async def get_redis() -> Optional[Redis]:
    """Dependency for getting redis connection."""
    return RedisClient.get_client()


async def is_webhook_processed(delivery_key: str) -> bool:
    """
    Check the delivery cache for a webhook we already handled.

    Cache errors count as a miss; the PENDING status filters in the
    database remain the source of truth.
    """
    client = await get_redis()
    if client is None:
        return False
    try:
        return bool(await client.exists(WEBHOOK_KEY_PREFIX + delivery_key))
    except Exception as e:
        logger.warning(f"Webhook dedupe lookup failed for {delivery_key}: {e}")
        return False


async def mark_webhook_processed(delivery_key: str) -> None:
    """Remember a handled webhook delivery for the configured TTL."""
    client = await get_redis()
    if client is None:
        return
    try:
        await client.setex(
            WEBHOOK_KEY_PREFIX + delivery_key,
            settings.webhook_dedupe_ttl_seconds,
            "1",
        )
    except Exception as e:
        logger.warning(f"Failed to cache webhook delivery {delivery_key}: {e}")
