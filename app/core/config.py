# app/core/config.py
from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Centralized application settings loaded from environment.

    All values have defaults, so the service starts without a .env file.

    Optional env vars (.env):
      - DATABASE_URL (SQLAlchemy URL of the cart slot database)
      - CART_STORAGE_NAME (prefix of every cart storage key)
      - CART_STORAGE_BACKEND ('sql' or 'memory')
      - CART_REGISTRY_MAX_SIZE (open carts kept in memory before LRU eviction)
      - CORS_ORIGINS (JSON list of storefront origins)
      - LOG_LEVEL
    """

    PROJECT_NAME: str = "Storefront Cart API"
    API_V1_STR: str = "/api/v1"

    # Durable cart slots
    DATABASE_URL: str = "sqlite:///./cart.db"
    CART_STORAGE_NAME: str = "cart-storage"
    CART_STORAGE_BACKEND: Literal["sql", "memory"] = "sql"
    CART_REGISTRY_MAX_SIZE: int = Field(default=1000, ge=1)

    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings loader.
    Ensures we don't re-parse .env on every import / request.
    """
    return Settings()
