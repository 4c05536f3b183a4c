"""
Application configuration using Pydantic Settings
"""
from datetime import date, datetime
from functools import lru_cache
from zoneinfo import ZoneInfo

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables
    """
    # Backend data API (schedules, accounts)
    BACKEND_API_URL: str = "http://localhost:3000/api"
    BACKEND_API_TIMEOUT: float = 5.0

    # Application
    TIMEZONE: str = "UTC"
    BASE_CURRENCY: str = "USD"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Projection horizons
    ROLLING_WINDOW_DAYS: int = 30

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    def get_tz(self) -> ZoneInfo:
        return ZoneInfo(self.TIMEZONE)


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings instance (singleton)
    """
    return Settings()


def local_today() -> date:
    """Current calendar date in the configured timezone."""
    return datetime.now(tz=get_settings().get_tz()).date()
