from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings

from app.exceptions import ConfigurationError

REQUIRED_SETTINGS = ("TELEGRAM_BOT_TOKEN", "TELEGRAM_API_ID", "TELEGRAM_API_HASH", "SECRET_KEY")


class Settings(BaseSettings):
    # === PUBLIC DATA (not secrets) ===
    API_V1_STR: str = "/api/v1"
    PROJECT_NAME: str = "Telegram Keyword Alerts"

    # === DATABASE SETTINGS (from .env) ===
    MONGODB_URL: str = Field(
        default="mongodb://localhost:27017/telegram-keyword-bot", description="MongoDB connection string"
    )

    # === APPLICATION SETTINGS ===
    ENVIRONMENT: str = Field(default="development", description="development, staging or production")
    LOG_LEVEL: str = Field(default="INFO")
    HTTP_HOST: str = Field(default="0.0.0.0")
    HTTP_PORT: int = Field(default=8001)

    # === KEYWORD MONITORING SETTINGS ===
    DEFAULT_CHARACTER_LIMIT: int = Field(default=100, ge=1, le=1000, description="Character limit for new users")
    MATCH_RETENTION_DAYS: int = Field(default=30, ge=1, description="Keyword matches older than this are pruned")
    CLEANUP_INTERVAL_HOURS: float = Field(default=24, gt=0, description="How often old matches are pruned")
    STATS_DEFAULT_DAYS: int = Field(default=7, ge=1, description="Default window for /stats")

    # === SECRETS (from .env) ===
    # Optional here so the package imports without a full environment;
    # validate_settings() enforces them at startup.
    TELEGRAM_BOT_TOKEN: Optional[str] = Field(default=None, description="Bot token from @BotFather")
    TELEGRAM_API_ID: Optional[int] = Field(default=None, description="Telegram API ID")
    TELEGRAM_API_HASH: Optional[str] = Field(default=None, description="Telegram API Hash")
    TELEGRAM_SESSION_NAME: str = Field(default="telegram_userbot_session")
    TELEGRAM_SESSION_STRING: Optional[str] = Field(
        default=None, description="Pre-authorised string session for the monitoring account"
    )
    SECRET_KEY: Optional[str] = Field(default=None, description="Secret key used to encrypt stored sessions")

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


def missing_required_settings(config: Settings) -> List[str]:
    """Return the names of required settings that are unset or empty"""
    return [name for name in REQUIRED_SETTINGS if not getattr(config, name)]


def validate_settings(config: Settings) -> None:
    """Abort startup when any required setting is missing"""
    missing = missing_required_settings(config)
    if missing:
        raise ConfigurationError(f"Missing required environment variables: {', '.join(missing)}", missing=missing)


settings = Settings()
