import logging
from typing import Optional

from services.profile_engine.clarification import ClarificationService
from services.profile_engine.engine import ProfileEngine
from src.cache.redis_cache import RedisResultCache
from src.cache.result_cache import ResultCache
from src.core.config import app_settings, cache_settings, llm_settings
from src.llm.client import LLMClient
from src.services.sessions import SessionRegistry
from src.services.storage import InMemorySessionStore, RedisSessionStore

logger = logging.getLogger(__name__)

_engine: Optional[ProfileEngine] = None
_registry: Optional[SessionRegistry] = None


def build_cache():
    if cache_settings.backend == "redis":
        return RedisResultCache(ttl_seconds=cache_settings.ttl_seconds)
    return ResultCache(capacity=cache_settings.capacity, ttl_seconds=cache_settings.ttl_seconds)


def build_store():
    if cache_settings.backend == "redis":
        return RedisSessionStore(ttl_seconds=app_settings.session_ttl_seconds)
    return InMemorySessionStore()


def build_engine() -> ProfileEngine:
    cache = build_cache()
    generator = LLMClient(llm_settings) if llm_settings.api_key else None
    if generator is None:
        logger.warning("LLM_API_KEY not set; clarification will use fallback questions only")
    return ProfileEngine(
        cache=cache,
        clarifier=ClarificationService(generator, cache=cache),
        store=build_store(),
    )


def get_profile_engine() -> ProfileEngine:
    global _engine
    if _engine is None:
        _engine = build_engine()
    return _engine


def get_session_registry() -> SessionRegistry:
    global _registry
    if _registry is None:
        engine = get_profile_engine()
        _registry = SessionRegistry(engine, engine.store, capacity=app_settings.live_sessions)
    return _registry
