"""Redis connection service for managing Redis client lifecycle and health checks."""

from typing import Any

import redis.asyncio as redis_async
from loguru import logger
from redis.asyncio.retry import Retry
from redis.backoff import ExponentialBackoff

from src.product_service.runtime.context import get_config


class RedisService:
    """Owns the shared async Redis client used by the cache and the event stream.

    Follows the same pattern as DbSessionService: built once at startup,
    handed out through ApplicationDependencies, closed on shutdown.
    """

    def __init__(self, client: redis_async.Redis | None = None):
        """Initialize the Redis service with connection pooling.

        Args:
            client: Pre-built client to use instead of one built from configuration.
        """
        config = get_config()
        redis_config = config.redis

        self._url = redis_config.url
        self._client: redis_async.Redis | None = client
        self._enabled = client is not None or redis_config.enabled

        if client is not None:
            return

        if not self._enabled:
            logger.info("Redis is disabled, service will not connect")
            return

        if not self._url:
            logger.warning("Redis URL not configured, service will not connect")
            self._enabled = False
            return

        logger.info(
            "Initializing Redis client with connection string: {}",
            redis_config.sanitized_connection_string,
        )

        try:
            self._client = redis_async.from_url(
                redis_config.connection_string,
                encoding="utf-8",
                decode_responses=redis_config.decode_responses,
                encoding_errors="replace",
                max_connections=redis_config.max_connections,
                socket_timeout=redis_config.socket_timeout,
                socket_connect_timeout=redis_config.socket_connect_timeout,
                socket_keepalive=True,
                health_check_interval=30,
                # 1s, 2s, 4s, ... capped at 10s
                retry=Retry(ExponentialBackoff(base=1, cap=10), retries=6),
                client_name="product_service",
            )
        except Exception as e:
            logger.error(
                "Failed to initialize Redis client",
                error_type=type(e).__name__,
                error_message=str(e),
            )
            self._enabled = False
            self._client = None
            if config.app.environment == "production":
                raise

    def get_client(self) -> redis_async.Redis | None:
        """Return the async client, or None when Redis is disabled or unavailable."""
        if not self._enabled or self._client is None:
            return None
        return self._client

    async def health_check(self) -> bool:
        """Return True if Redis answers PING."""
        if not self._enabled or self._client is None:
            return False

        try:
            await self._client.ping()
            return True
        except Exception as e:
            logger.error(
                "Redis health check failed",
                error_type=type(e).__name__,
                error_message=str(e),
            )
            return False

    async def get_info(self) -> dict[str, Any] | None:
        """Get Redis server information for monitoring."""
        if not self._enabled or self._client is None:
            return None

        try:
            info = await self._client.info()
            return {
                "version": info.get("redis_version"),
                "uptime_seconds": info.get("uptime_in_seconds"),
                "connected_clients": info.get("connected_clients"),
                "used_memory_human": info.get("used_memory_human"),
            }
        except Exception as e:
            logger.error(
                "Failed to get Redis info",
                error_type=type(e).__name__,
                error_message=str(e),
            )
            return None

    async def close(self) -> None:
        """Close the Redis connection and clean up resources."""
        if self._client is None:
            return
        try:
            logger.info("Closing Redis connection")
            await self._client.aclose()
        except Exception as e:
            logger.error(
                "Error closing Redis connection",
                error_type=type(e).__name__,
                error_message=str(e),
            )
        finally:
            self._client = None

    @property
    def is_enabled(self) -> bool:
        return self._enabled

    @property
    def url(self) -> str | None:
        return self._url
