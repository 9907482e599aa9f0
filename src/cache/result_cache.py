import asyncio
import logging
import time
from collections import OrderedDict
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 50
DEFAULT_TTL_SECONDS = 24 * 60 * 60


class ResultCache:
    """
    In-process LRU cache with per-entry expiry.

    `get_or_compute` coalesces concurrent computations of the same key onto a
    single task; a failed computation is not stored and its error reaches
    every waiter.
    """

    def __init__(
        self,
        capacity: int = DEFAULT_CAPACITY,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.capacity = capacity
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: "OrderedDict[str, Tuple[float, Any]]" = OrderedDict()
        self._in_flight: Dict[str, asyncio.Task] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def _lookup(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if self._clock() >= expires_at:
            logger.debug(f"Cache entry expired: {key}")
            del self._entries[key]
            return None
        self._entries.move_to_end(key)
        return value

    def _store(self, key: str, value: Any) -> None:
        self._entries[key] = (self._clock() + self.ttl_seconds, value)
        self._entries.move_to_end(key)
        while len(self._entries) > self.capacity:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug(f"Evicted least recently used entry: {evicted}")

    async def get(self, key: str) -> Optional[Any]:
        return self._lookup(key)

    async def set(self, key: str, value: Any) -> None:
        if value is None:
            return
        self._store(key, value)

    async def get_or_compute(self, key: str, factory: Callable[[], Awaitable[Any]]) -> Any:
        value = self._lookup(key)
        if value is not None:
            logger.debug(f"Cache hit: {key}")
            return value

        task = self._in_flight.get(key)
        if task is None:
            logger.debug(f"Cache miss, computing: {key}")
            task = asyncio.ensure_future(self._compute(key, factory))
            self._in_flight[key] = task
        else:
            logger.debug(f"Joining in-flight computation: {key}")
        return await asyncio.shield(task)

    async def _compute(self, key: str, factory: Callable[[], Awaitable[Any]]) -> Any:
        try:
            value = await factory()
            if value is not None:
                self._store(key, value)
            return value
        finally:
            self._in_flight.pop(key, None)

    def invalidate(self, prefix: str = "") -> int:
        """Drops every entry whose key starts with `prefix`. Returns the count."""
        doomed = [key for key in self._entries if key.startswith(prefix)]
        for key in doomed:
            del self._entries[key]
        logger.info(f"Invalidated {len(doomed)} cache entries with prefix '{prefix}'")
        return len(doomed)

    def clear(self) -> None:
        self._entries.clear()
