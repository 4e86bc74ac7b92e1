"""
Redis client wrapper.

Responsibilities:
- Create and manage a Redis connection
- Centralize Redis configuration
- Create stream consumer groups idempotently

NOTE:
- This module does NOT know about envelopes or correlation.
"""

from __future__ import annotations

import redis.asyncio as redis
from typing import Optional

from src.userservice.config.settings import settings
from src.userservice.logging.logger import setup_logger

logger = setup_logger(__name__)


class RedisClient:
    """
    Thin wrapper around redis.asyncio client.
    """

    def __init__(self) -> None:
        self._client: Optional[redis.Redis] = None

    async def connect(self) -> redis.Redis:
        """
        Initialize Redis connection if not already connected.
        """
        if self._client:
            return self._client

        logger.info(
            "Connecting to Redis | host=%s | port=%s | db=%s",
            settings.redis_host,
            settings.redis_port,
            settings.redis_db,
        )

        client = redis.Redis(
            host=settings.redis_host,
            port=settings.redis_port,
            db=settings.redis_db,
            decode_responses=True,  # stream fields are plain strings
        )

        try:
            await client.ping()
            logger.info("Redis connection established successfully")
        except Exception as exc:
            logger.error("Failed to connect to Redis", exc_info=exc)
            await client.aclose()
            raise

        self._client = client
        return self._client

    async def get_client(self) -> redis.Redis:
        """
        Get an active Redis client.
        """
        if not self._client:
            await self.connect()
        return self._client

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None
            logger.info("Redis connection closed")


async def ensure_consumer_group(client, stream_name: str, group_name: str) -> None:
    """
    Create the consumer group (and the stream) unless it already exists.
    """
    try:
        await client.xgroup_create(
            name=stream_name,
            groupname=group_name,
            id="0-0",
            mkstream=True,
        )
        logger.info("Redis consumer group created | stream=%s | group=%s", stream_name, group_name)
    except Exception as exc:
        if "BUSYGROUP" in str(exc):
            logger.debug("Redis consumer group already exists | stream=%s | group=%s", stream_name, group_name)
        else:
            raise
