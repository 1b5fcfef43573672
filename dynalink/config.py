"""Configuration management for the dynamic link service.

This module provides centralized configuration management using Pydantic BaseSettings
with environment variable support and caching for performance.

Flow Diagram: get_settings()
=============================
::
    ┌─────────────┐
    │  Call get_  │
    │  settings() │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Check cache  │
    │ (lru_cache)  │
    └──────┬──────┘
    HIT?  │
    ┌─────┴─────┐
    │ NO         │ YES
    ▼            ▼
┌─────────┐  ┌─────────┐
│ Create  │  │ Return  │
│ Settings│  │ cached  │
│ instance│  │ value   │
└─────────┘  └─────────┘

How to Use
===========
**Step 1: Import**::
    from dynalink.config import get_settings

**Step 2: Get settings**::
    settings = get_settings()
    ttl = settings.CACHE_TTL_SECONDS

**Step 3: Override through the environment**::
    CACHE_TTL_SECONDS=600 uvicorn dynalink.main:app

Key Behaviours
===============
- Settings are cached after first access for performance.
- Environment variables override defaults automatically.
- Interstitial timings are configuration, the client script only receives them.

Classes:
    Settings:  Pydantic model for all configuration values.

"""

__all__ = ["Settings", "get_settings"]

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    APP_NAME: str = "dynalink"
    APP_ENV: str = "development"
    BASE_URL: str = "http://localhost:8080"
    LOG_LEVEL: str = "INFO"

    # PostgreSQL
    DATABASE_URL: str = "postgresql+asyncpg://dynalink:dynalink@db:5432/dynalink"
    DATABASE_ECHO: bool = False

    # Redis
    REDIS_URL: str = "redis://redis:6379/0"
    REDIS_SOCKET_TIMEOUT_SECONDS: float = 0.5
    REDIS_CONNECT_TIMEOUT_SECONDS: float = 0.5

    # Resolution cache
    CACHE_KEY_PREFIX: str = "link"
    CACHE_TTL_SECONDS: int = 3600

    # Short code generation
    SHORT_CODE_LENGTH: int = 7
    SHORT_CODE_MAX_ATTEMPTS: int = 3

    # Interstitial client timings (milliseconds)
    INTERSTITIAL_OPEN_DELAY_MS: int = 500
    IOS_FALLBACK_DELAY_MS: int = 2000
    ANDROID_FALLBACK_DELAY_MS: int = 3000

    # Detached cache writes still pending at shutdown
    BACKGROUND_DRAIN_TIMEOUT_SECONDS: float = 2.0

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
