"""Application configuration loaded from environment variables."""

from functools import lru_cache

from pydantic import ConfigDict, computed_field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Environment
    ENV: str = "dev"
    DEBUG: bool = False

    # CORS (comma separated origins)
    CORS_ORIGINS: str = ""

    # Database
    # SQLite file for local development, Postgres (postgresql+psycopg2://...) in production
    DATABASE_URL: str = "sqlite:///./data/leadly.db"

    @computed_field  # type: ignore[misc]
    @property
    def is_sqlite(self) -> bool:
        """Whether the configured database is SQLite."""
        return self.DATABASE_URL.startswith("sqlite")

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "human"  # "human" for dev, "json" for prod

    # Twilio (SMS delivery)
    TWILIO_ACCOUNT_SID: str = ""
    TWILIO_AUTH_TOKEN: str = ""
    TWILIO_PHONE_NUMBER: str = ""
    TWILIO_API_BASE: str = "https://api.twilio.com/2010-04-01"

    # SMTP Configuration (email delivery)
    SMTP_HOST: str = ""
    SMTP_PORT: int = 587
    SMTP_USER: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_FROM: str = "noreply@leadly.app"
    SMTP_USE_TLS: bool = True

    # Automation engine
    AUTOMATION_TEAM_NAME: str = "Leadly"
    AUTOMATION_BOOKING_LINK: str = "/booking"
    AUTOMATION_DEFAULT_EMAIL_SUBJECT: str = "Notification from Leadly"
    AUTOMATION_WEBHOOK_TIMEOUT: float = 30.0

    # Delayed action queue
    AUTOMATION_QUEUE_ENABLED: bool = False
    AUTOMATION_QUEUE_POLL_SECONDS: int = 60
    AUTOMATION_QUEUE_BATCH_SIZE: int = 100
    AUTOMATION_CRON_SECRET: str = ""

    model_config = ConfigDict(
        env_file=[".env", "../.env"],  # Try .env in current dir first, then parent dir
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",  # Ignore extra fields from .env that are not in Settings
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
