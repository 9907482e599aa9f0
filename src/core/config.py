from typing import Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict
import os

# Load .env file if it exists, for local development
# In production, environment variables should be set directly.
if os.path.exists(".env"):
    from dotenv import load_dotenv
    load_dotenv()


class LLMSettings(BaseSettings):
    base_url: str = "https://api.openai.com/v1"
    api_key: Optional[str] = None
    model: str = "gpt-4o-mini"
    temperature: float = 0.7
    max_tokens: int = 2000
    timeout_seconds: float = 30.0
    max_attempts: int = 3

    model_config = SettingsConfigDict(env_prefix='LLM_')


class CacheSettings(BaseSettings):
    backend: Literal["memory", "redis"] = "memory"
    capacity: int = 50
    ttl_seconds: int = 86400

    model_config = SettingsConfigDict(env_prefix='CACHE_')


class RedisSettings(BaseSettings):
    url: str = "redis://localhost:6379/0"
    connect_timeout_seconds: float = 1.0
    operation_timeout_seconds: float = 2.0
    retry_cooldown_seconds: float = 30.0

    model_config = SettingsConfigDict(env_prefix='REDIS_')


class AppSettings(BaseSettings):
    log_level: str = "INFO"
    live_sessions: int = 500
    session_ttl_seconds: int = 7 * 86400

    model_config = SettingsConfigDict(env_prefix='TPE_')


# Instantiate settings
llm_settings = LLMSettings()
cache_settings = CacheSettings()
redis_settings = RedisSettings()
app_settings = AppSettings()
