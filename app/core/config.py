# app/core/config.py

import os
from functools import lru_cache
from typing import Annotated, List
from pydantic import ConfigDict, BeforeValidator
from pydantic_settings import BaseSettings

DEFAULT_BOL_SYNC_INTERVAL_MINUTES = 5


def _parse_origin_list(value):
    if value in (None, "", []):
        return []
    if isinstance(value, str):
        return [origin.strip() for origin in value.split(",") if origin.strip()]
    if isinstance(value, (list, tuple, set)):
        return [str(origin).strip() for origin in value if str(origin).strip()]
    return []


def parse_interval_minutes(value) -> int:
    """Whole minutes from env/config; anything unusable falls back to the default."""
    try:
        minutes = int(str(value).strip())
    except (TypeError, ValueError):
        return DEFAULT_BOL_SYNC_INTERVAL_MINUTES
    return minutes if minutes > 0 else DEFAULT_BOL_SYNC_INTERVAL_MINUTES


class Settings(BaseSettings):
    """
    Application settings.
    Loads values from environment variables (.env file)
    """
    # Database settings
    DATABASE_URL: str = "sqlite+aiosqlite:///./fulfilment.db"

    # Security
    SECRET_KEY: str
    ALGORITHM: str = "HS256"

    # Bol.com Retailer API
    BOL_TOKEN_URL: str = "https://login.bol.com/token"
    BOL_API_BASE_URL: str = "https://api.bol.com/retailer"
    BOL_REQUEST_TIMEOUT: float = 30.0
    BOL_TOKEN_CACHE_TTL: int = 240  # seconds, 0 disables caching

    # Bol.com order sync job
    BOL_SYNC_ENABLED: bool = True
    BOL_SYNC_INTERVAL_MINUTES: Annotated[int, BeforeValidator(parse_interval_minutes)] = DEFAULT_BOL_SYNC_INTERVAL_MINUTES

    # Frontend
    CORS_ORIGINS: str = "http://localhost:3000"  # comma separated

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    RUN_MIGRATIONS: bool = False

    model_config = ConfigDict(
        env_file=os.environ.get('ENV_FILE', '.env') if os.path.exists('.env') else None,
        case_sensitive=True,
        extra="ignore",
    )


    @property
    def cors_origin_list(self) -> List[str]:
        return _parse_origin_list(self.CORS_ORIGINS)


@lru_cache()
def get_settings():
    """Cached settings to avoid loading .env file for every request"""
    return Settings()


def clear_settings_cache():
    """Clear the settings cache - useful when switching between environments"""
    get_settings.cache_clear()
