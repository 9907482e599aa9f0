"""
Shared redis client for the result cache and the session store.

The client is created on first use and pinged before it is handed out;
concurrent callers wait on the same attempt. After a failed attempt redis
is treated as unavailable until the retry cooldown has passed, so callers
fall back to live computation without paying a connect timeout each time.
"""
import asyncio
import logging
import time
from typing import Any, Callable, Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from src.core.config import RedisSettings, redis_settings

_log = logging.getLogger(__name__)

UNAVAILABLE_ERRORS = (RedisError, OSError, asyncio.TimeoutError)


class RedisConnection:

    def __init__(
        self,
        settings: RedisSettings,
        factory: Callable[..., Any] = aioredis.from_url,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.settings = settings
        self._factory = factory
        self._clock = clock
        self._client: Optional[aioredis.Redis] = None
        self._connecting: Optional[asyncio.Task] = None
        self._retry_at = 0.0

    @property
    def connected(self) -> bool:
        return self._client is not None

    async def _connect(self) -> Optional[aioredis.Redis]:
        url = self.settings.url
        _log.info(f"Connecting to Redis at {url}")
        client = self._factory(
            url,
            decode_responses=False,
            socket_connect_timeout=self.settings.connect_timeout_seconds,
            socket_timeout=self.settings.operation_timeout_seconds,
        )
        try:
            await asyncio.wait_for(client.ping(), timeout=self.settings.operation_timeout_seconds)
        except UNAVAILABLE_ERRORS as e:
            cooldown = self.settings.retry_cooldown_seconds
            self._retry_at = self._clock() + cooldown
            _log.error(f"Redis at {url} unavailable, using live computation for {cooldown}s ({e})")
            return None
        _log.info(f"Connected to Redis at {url}")
        return client

    async def get(self) -> Optional[aioredis.Redis]:
        """The shared client, or None while redis is unavailable."""
        if self._client is not None:
            return self._client
        if self._clock() < self._retry_at:
            return None
        if self._connecting is None:
            self._connecting = asyncio.create_task(self._connect())
        task = self._connecting
        try:
            client = await asyncio.shield(task)
        finally:
            if self._connecting is task and task.done():
                self._connecting = None
        if client is not None:
            self._client = client
        return client

    async def healthy(self) -> bool:
        client = await self.get()
        if client is None:
            return False
        try:
            await asyncio.wait_for(client.ping(), timeout=self.settings.operation_timeout_seconds)
        except UNAVAILABLE_ERRORS as e:
            _log.warning(f"Redis health check failed: {e}")
            return False
        return True

    async def close(self) -> None:
        task, self._connecting = self._connecting, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                _log.debug("Cancelled pending Redis connection attempt")
        client, self._client = self._client, None
        self._retry_at = 0.0
        if client is not None:
            _log.info("Closing Redis connection pool")
            try:
                await client.aclose()
            except RedisError as e:
                _log.warning(f"Error closing Redis connection: {e}")


connection = RedisConnection(redis_settings)


async def get_redis() -> Optional[aioredis.Redis]:
    return await connection.get()


async def close_redis() -> None:
    await connection.close()
