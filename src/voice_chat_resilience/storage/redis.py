# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
RedisStorage for the Voice Chat Resilience Layer

This module provides a Redis-backed storage implementation so that the
error log and error metrics survive process restarts and can be shared by
several app processes.

Layout (all keys prefixed with the namespace):
    ``{ns}:log:{key}``    Redis list, newest entry last, trimmed with LTRIM
    ``{ns}:state:{key}``  JSON string holding a flat mapping
    ``{ns}:cache:{key}``  JSON string, removed by ``clear_cache``
"""

import asyncio
import json
import logging
import os
from typing import Any

from redis.asyncio import ConnectionPool, Redis
from redis.exceptions import (
    ConnectionError,
    RedisError,
    ResponseError,
    TimeoutError,
)

from ..exceptions import StorageError
from .base import BaseStorage, HealthCheckResult

logger = logging.getLogger(__name__)

_REDIS_ERRORS = (ConnectionError, TimeoutError, ResponseError, RedisError)


class RedisStorage(BaseStorage):
    """
    Redis storage implementation.

    Reads degrade gracefully: a Redis failure is logged and reported as
    "nothing stored". Writes raise ``StorageError`` so the caller can
    decide whether losing the write matters.
    """

    def __init__(
        self,
        redis_url: str | None = None,
        redis_client: Any | None = None,
        namespace: str = "voice_chat",
        key_ttl: int | None = None,
        max_connections: int = 10,
    ) -> None:
        """
        Initialize Redis storage.

        Args:
            redis_url: Redis connection URL. If not provided, falls back to REDIS_URL
                environment variable, then to "redis://localhost:6379".
            redis_client: Optional pre-configured Redis client
            namespace: Namespace prefix for keys
            key_ttl: Optional TTL in seconds applied to state and cache keys
            max_connections: Maximum connections in the pool

        Environment Variables:
            REDIS_URL: Default Redis connection URL when redis_url parameter is not provided.
        """
        super().__init__(namespace)
        self.redis_url = (
            redis_url or os.environ.get("REDIS_URL") or "redis://localhost:6379"
        )
        self.key_ttl = key_ttl
        self.max_connections = max_connections

        self._redis: Any | None = redis_client
        self._owned_redis = redis_client is None
        self._connection_lock = asyncio.Lock()

    def _key(self, kind: str, key: str) -> str:
        return f"{self.namespace}:{kind}:{key}"

    async def _ensure_connected(self) -> Any:
        if self._redis is not None:
            return self._redis
        async with self._connection_lock:
            if self._redis is None:
                pool = ConnectionPool.from_url(
                    self.redis_url,
                    max_connections=self.max_connections,
                    decode_responses=True,
                    socket_connect_timeout=5,
                    socket_timeout=5,
                    retry_on_timeout=True,
                )
                self._redis = Redis(connection_pool=pool)
                logger.info(f"Connected Redis storage (namespace={self.namespace})")
        return self._redis

    # === Bounded Logs ===

    async def append_log(
        self, key: str, entry: dict[str, Any], max_entries: int
    ) -> None:
        log_key = self._key("log", key)
        try:
            client = await self._ensure_connected()
            async with client.pipeline(transaction=True) as pipe:
                pipe.rpush(log_key, json.dumps(entry))
                pipe.ltrim(log_key, -max_entries, -1)
                await pipe.execute()
        except _REDIS_ERRORS as e:
            logger.error(f"Redis error appending to log {key}: {e}")
            raise StorageError(f"Failed to append to log {key}", "append_log") from e

    async def read_log(self, key: str) -> list[dict[str, Any]]:
        try:
            client = await self._ensure_connected()
            raw_entries = await client.lrange(self._key("log", key), 0, -1)
        except _REDIS_ERRORS as e:
            logger.error(f"Redis error reading log {key}: {e}")
            return []

        entries = []
        for raw in raw_entries:
            try:
                entries.append(json.loads(raw))
            except (TypeError, ValueError):
                logger.warning(f"Skipping corrupt entry in log {key}")
        return entries

    async def clear_log(self, key: str) -> None:
        try:
            client = await self._ensure_connected()
            await client.delete(self._key("log", key))
        except _REDIS_ERRORS as e:
            logger.error(f"Redis error clearing log {key}: {e}")
            raise StorageError(f"Failed to clear log {key}", "clear_log") from e

    # === State Blobs ===

    async def get_state(self, key: str) -> dict[str, Any] | None:
        try:
            client = await self._ensure_connected()
            raw = await client.get(self._key("state", key))
        except _REDIS_ERRORS as e:
            logger.error(f"Redis error getting state for {key}: {e}")
            return None
        if raw is None:
            return None
        try:
            state = json.loads(raw)
        except (TypeError, ValueError):
            logger.warning(f"Discarding corrupt state blob for {key}")
            return None
        return state if isinstance(state, dict) else None

    async def set_state(self, key: str, state: dict[str, Any]) -> None:
        try:
            client = await self._ensure_connected()
            await client.set(self._key("state", key), json.dumps(state), ex=self.key_ttl)
        except _REDIS_ERRORS as e:
            logger.error(f"Redis error setting state for {key}: {e}")
            raise StorageError(f"Failed to set state {key}", "set_state") from e

    async def delete_state(self, key: str) -> None:
        try:
            client = await self._ensure_connected()
            await client.delete(self._key("state", key))
        except _REDIS_ERRORS as e:
            logger.error(f"Redis error deleting state for {key}: {e}")
            raise StorageError(f"Failed to delete state {key}", "delete_state") from e

    # === Cache ===

    async def set_cache(self, key: str, value: Any) -> None:
        try:
            client = await self._ensure_connected()
            await client.set(self._key("cache", key), json.dumps(value), ex=self.key_ttl)
        except _REDIS_ERRORS as e:
            logger.error(f"Redis error caching {key}: {e}")
            raise StorageError(f"Failed to cache {key}", "set_cache") from e

    async def get_cache(self, key: str) -> Any | None:
        try:
            client = await self._ensure_connected()
            raw = await client.get(self._key("cache", key))
        except _REDIS_ERRORS as e:
            logger.error(f"Redis error reading cache {key}: {e}")
            return None
        return json.loads(raw) if raw is not None else None

    async def clear_cache(self) -> int:
        """Delete every cache key using SCAN so Redis is never blocked."""
        pattern = self._key("cache", "*")
        removed = 0
        try:
            client = await self._ensure_connected()
            batch: list[str] = []
            async for key in client.scan_iter(match=pattern, count=100):
                batch.append(key)
                if len(batch) >= 100:
                    removed += await client.delete(*batch)
                    batch = []
            if batch:
                removed += await client.delete(*batch)
        except _REDIS_ERRORS as e:
            logger.error(f"Redis error clearing cache: {e}")
            raise StorageError("Failed to clear cache", "clear_cache") from e
        logger.info(f"Cleared {removed} cache entries")
        return removed

    # === Lifecycle ===

    async def health_check(self) -> HealthCheckResult:
        try:
            client = await self._ensure_connected()
            await client.ping()
            return HealthCheckResult(
                healthy=True, backend_type="redis", namespace=self.namespace
            )
        except Exception as e:
            return HealthCheckResult(
                healthy=False,
                backend_type="redis",
                namespace=self.namespace,
                error=str(e),
            )

    async def close(self) -> None:
        if self._redis is not None and self._owned_redis:
            try:
                await self._redis.aclose()
            except _REDIS_ERRORS as e:
                logger.error(f"Error closing Redis connection: {e}")
            self._redis = None


__all__ = ["RedisStorage"]
