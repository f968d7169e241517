"""
Engine configuration using Pydantic Settings
"""
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Engine settings loaded from environment variables
    """
    # Storage
    DATABASE_URL: str = "sqlite:///./stackr.db"
    STORE_BACKEND: str = "memory"  # "memory" | "sql"

    # Application
    TIMEZONE: str = "UTC"
    DEBUG: bool = False

    # Email (Resend HTTP API; logs only when the key is empty)
    RESEND_API_KEY: str = ""
    EMAIL_FROM: str = "Stackr <notifications@stackr.app>"
    EMAIL_API_URL: str = "https://api.resend.com/emails"

    # Web Push (VAPID)
    VAPID_PUBLIC_KEY: str = ""
    VAPID_PRIVATE_KEY: str = ""
    VAPID_MAILTO: str = "mailto:support@stackr.app"

    # Engine tuning
    SCORECARD_MAX_AGE_DAYS: int = 30
    SCORECARD_HISTORY_LIMIT: int = 6
    STATS_HISTORY_LIMIT: int = 12
    GUARDRAIL_WARNING_RATIO: float = 0.8

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    def get_sqlalchemy_url(self) -> str:
        """
        Convert DATABASE_URL to SQLAlchemy format (postgresql+psycopg://)
        """
        url = self.DATABASE_URL
        if url.startswith("postgresql://"):
            return url.replace("postgresql://", "postgresql+psycopg://", 1)
        return url


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings instance (singleton)
    """
    return Settings()
