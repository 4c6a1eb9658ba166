# src/app/core/config.py
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # App
    app_name: str = "Catalog Search API"
    app_version: str = "1.0.0"
    debug: bool = False

    # Primärspeicher (SQLAlchemy Async-URL)
    database_url: str = "sqlite+aiosqlite:///./catalog.db"

    # Cache: ohne redis_url wird ein prozesslokaler TTL-Cache verwendet
    redis_url: str | None = None
    cache_ttl_seconds: int = Field(default=3600, gt=0)
    cache_max_retries: int = Field(default=3, ge=1)
    cache_retry_delay_ms: int = Field(default=1000, ge=0)
    cache_exponential_backoff: bool = True

    # Suche: Timeout pro parallelem Zweig, None deaktiviert ihn
    search_branch_timeout_seconds: float | None = Field(default=30.0, gt=0)

    # CORS
    cors_origins: list[str] = Field(default=["*"])

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
