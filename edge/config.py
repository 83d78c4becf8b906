"""Configuration management for the edge redirect node.

This module provides centralized configuration management using Pydantic BaseSettings
with environment variable support and caching for performance.

Flow Diagram — get_settings()
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
**Step 1 — Import**::
    from edge.config import get_settings

**Step 2 — Get settings**::
    settings = get_settings()
    origin = settings.CORE_SERVICE_URL

Key Behaviours
===============
- Settings are cached after first access for performance.
- Environment variables override defaults automatically.
- Every option has a default, so an empty environment yields a working
  local-development node.

Classes:
    Settings:  Pydantic model for all configuration values.

"""

__all__ = ["Settings", "get_settings"]

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    APP_NAME: str = "edge-redirect-node"
    APP_ENV: str = "development"
    LOG_LEVEL: str = "INFO"

    # Origin service
    CORE_SERVICE_URL: str = "http://localhost:3000"
    ORIGIN_TIMEOUT_SECONDS: float = 5.0

    # Identity of this node; selects which mappings it caches
    EDGE_HOSTNAME: str = "localhost"

    # HTTP listener
    EDGE_HOST: str = "0.0.0.0"
    EDGE_PORT: int = 4000

    # Local store
    REDIS_URL: str = "redis://localhost:6379"
    PATHS_KEY_PREFIX: str = "paths"
    LOG_BUFFER_KEY_PREFIX: str = "access_logs_buffer"

    # Sync cadence
    SYNC_INTERVAL_SECONDS: float = 60.0

    # GeoIP2 / GeoLite2 database (.mmdb). Unset means every lookup is "Unknown".
    GEOIP_DATABASE_PATH: str | None = None

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
