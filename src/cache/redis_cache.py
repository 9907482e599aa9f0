import asyncio
import logging
import pickle
from typing import Any, Awaitable, Callable, Dict, Optional

from redis.exceptions import RedisError

from src.cache.connection import get_redis
from src.cache.result_cache import DEFAULT_TTL_SECONDS

NAMESPACE = "tpe:"
OPERATION_TIMEOUT = 2.0

logger = logging.getLogger(__name__)


class RedisResultCache:
    """
    Result cache backed by Redis (pickled values, SETEX expiry).

    Redis being down, slow or returning garbage only costs a recomputation:
    lookups degrade to misses and writes are skipped. Concurrent computations
    of one key are still coalesced in-process.
    """

    def __init__(
        self,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        redis_getter: Callable[[], Awaitable[Any]] = get_redis,
    ):
        self.ttl_seconds = int(ttl_seconds)
        self._redis_getter = redis_getter
        self._in_flight: Dict[str, asyncio.Task] = {}

    @staticmethod
    def full_key(key: str) -> str:
        return f"{NAMESPACE}{key.removeprefix(NAMESPACE)}"

    async def get(self, key: str) -> Optional[Any]:
        redis_conn = await self._redis_getter()
        if not redis_conn:
            return None
        cache_key = self.full_key(key)
        try:
            cached = await asyncio.wait_for(redis_conn.get(cache_key), timeout=OPERATION_TIMEOUT)
        except asyncio.TimeoutError:
            logger.warning(f"Redis GET timed out for {cache_key}")
            return None
        except RedisError as e:
            logger.warning(f"Redis error during GET for {cache_key}: {e}")
            return None
        if cached is None:
            return None
        try:
            return pickle.loads(cached)
        except (pickle.UnpicklingError, TypeError, EOFError) as e:
            logger.warning(f"Failed to unpickle cached data for key {cache_key}: {e}")
            return None

    async def set(self, key: str, value: Any) -> None:
        if value is None:
            return
        redis_conn = await self._redis_getter()
        if not redis_conn:
            return
        cache_key = self.full_key(key)
        try:
            payload = pickle.dumps(value, protocol=5)
            await asyncio.wait_for(redis_conn.setex(cache_key, self.ttl_seconds, payload), timeout=OPERATION_TIMEOUT)
            logger.debug(f"Stored {cache_key} with TTL={self.ttl_seconds}")
        except (pickle.PicklingError, TypeError) as e:
            logger.warning(f"Failed to pickle value for {cache_key}: {e}. Result not cached.")
        except asyncio.TimeoutError:
            logger.warning(f"Redis SETEX timed out for {cache_key}. Result not cached.")
        except RedisError as e:
            logger.warning(f"Redis error during SETEX for {cache_key}: {e}. Result not cached.")

    async def get_or_compute(self, key: str, factory: Callable[[], Awaitable[Any]]) -> Any:
        cached = await self.get(key)
        if cached is not None:
            logger.debug(f"Cache hit: {key}")
            return cached
        task = self._in_flight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._compute(key, factory))
            self._in_flight[key] = task
        return await asyncio.shield(task)

    async def _compute(self, key: str, factory: Callable[[], Awaitable[Any]]) -> Any:
        try:
            value = await factory()
            await self.set(key, value)
            return value
        finally:
            self._in_flight.pop(key, None)

    async def invalidate(self, prefix: str = "") -> int:
        redis_conn = await self._redis_getter()
        if not redis_conn:
            logger.warning("Redis unavailable, cannot invalidate cache.")
            return 0
        pattern = f"{self.full_key(prefix)}*"
        deleted = await _unlink_all(redis_conn, pattern)
        logger.info(f"Invalidation complete for pattern '{pattern}'. Deleted {deleted} keys.")
        return deleted


async def _unlink_all(redis_conn, match_pattern: str) -> int:
    """Scans and unlinks keys matching a pattern; stops at the first failure."""
    deleted_count = 0
    try:
        async for key in redis_conn.scan_iter(match=match_pattern, count=100):
            try:
                deleted_count += await asyncio.wait_for(redis_conn.unlink(key), timeout=OPERATION_TIMEOUT)
            except asyncio.TimeoutError:
                logger.warning(f"Redis unlink timed out for key {key!r}. Stopping scan.")
                break
            except RedisError as e:
                logger.error(f"Redis error during unlink for key {key!r}: {e}. Stopping scan.")
                break
    except RedisError as e:
        logger.error(f"Redis error during SCAN for pattern '{match_pattern}': {e}")
    return deleted_count
