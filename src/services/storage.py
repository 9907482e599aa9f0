import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from pydantic import ValidationError
from redis.exceptions import RedisError

from services.profile_engine.errors import PersistenceError
from services.profile_engine.models import PersonalityProfile, RefinementSessionState
from services.profile_engine.refinement import SessionStore, session_key
from src.cache.connection import get_redis
from src.cache.redis_cache import NAMESPACE, OPERATION_TIMEOUT

logger = logging.getLogger(__name__)

DEFAULT_SESSION_TTL_SECONDS = 7 * 24 * 60 * 60


def profile_key(user_id: str) -> str:
    return f"profile:{user_id}"


class InMemorySessionStore:
    """Dict-backed store; values are copied in and out."""

    def __init__(self):
        self._data: Dict[str, str] = {}

    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        raw = self._data.get(key)
        return json.loads(raw) if raw is not None else None

    async def put(self, key: str, value: Dict[str, Any]) -> None:
        try:
            self._data[key] = json.dumps(value)
        except (TypeError, ValueError) as e:
            raise PersistenceError(f"Value for {key} is not JSON serialisable: {e}") from e


class RedisSessionStore:
    """JSON documents under the ``tpe:`` namespace with a sliding TTL."""

    def __init__(
        self,
        ttl_seconds: int = DEFAULT_SESSION_TTL_SECONDS,
        redis_getter: Callable[[], Awaitable[Any]] = get_redis,
    ):
        self.ttl_seconds = int(ttl_seconds)
        self._redis_getter = redis_getter

    async def _conn(self):
        redis_conn = await self._redis_getter()
        if not redis_conn:
            raise PersistenceError("Redis connection unavailable")
        return redis_conn

    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        redis_conn = await self._conn()
        try:
            raw = await asyncio.wait_for(redis_conn.get(f"{NAMESPACE}{key}"), timeout=OPERATION_TIMEOUT)
        except asyncio.TimeoutError as e:
            raise PersistenceError(f"Redis GET timed out for {key}") from e
        except RedisError as e:
            raise PersistenceError(f"Redis error reading {key}: {e}") from e
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError as e:
            raise PersistenceError(f"Stored value for {key} is not valid JSON") from e

    async def put(self, key: str, value: Dict[str, Any]) -> None:
        redis_conn = await self._conn()
        try:
            payload = json.dumps(value)
            await asyncio.wait_for(
                redis_conn.setex(f"{NAMESPACE}{key}", self.ttl_seconds, payload), timeout=OPERATION_TIMEOUT
            )
        except (TypeError, ValueError) as e:
            raise PersistenceError(f"Value for {key} is not JSON serialisable: {e}") from e
        except asyncio.TimeoutError as e:
            raise PersistenceError(f"Redis SETEX timed out for {key}") from e
        except RedisError as e:
            raise PersistenceError(f"Redis error writing {key}: {e}") from e
        logger.debug(f"Stored {key} with TTL {self.ttl_seconds}s")


# --- Non-fatal helpers: persistence failures are logged, never raised ---

async def save_session(store: SessionStore, state: RefinementSessionState) -> bool:
    try:
        await store.put(session_key(state.session_id), state.model_dump(mode="json"))
        return True
    except PersistenceError as e:
        logger.warning(f"Could not save session {state.session_id}: {e}")
        return False


async def load_session(store: SessionStore, session_id: str) -> Optional[RefinementSessionState]:
    try:
        data = await store.get(session_key(session_id))
    except PersistenceError as e:
        logger.warning(f"Could not load session {session_id}: {e}")
        return None
    if data is None:
        return None
    try:
        return RefinementSessionState.model_validate(data)
    except ValidationError as e:
        logger.error(f"Stored session {session_id} is invalid: {e}")
        return None


async def save_profile(store: SessionStore, user_id: str, profile: PersonalityProfile) -> bool:
    try:
        await store.put(profile_key(user_id), profile.model_dump(mode="json"))
        return True
    except PersistenceError as e:
        logger.warning(f"Could not save profile for user {user_id}: {e}")
        return False


async def load_profile(store: SessionStore, user_id: str) -> Optional[PersonalityProfile]:
    try:
        data = await store.get(profile_key(user_id))
    except PersistenceError as e:
        logger.warning(f"Could not load profile for user {user_id}: {e}")
        return None
    if data is None:
        return None
    try:
        return PersonalityProfile.model_validate(data)
    except ValidationError as e:
        logger.error(f"Stored profile for user {user_id} is invalid: {e}")
        return None
