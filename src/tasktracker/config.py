"""Application configuration using environment variables."""

from functools import lru_cache
from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .utils.timezone import DEFAULT_TIMEZONE

# Resolve the project root once so that `.env` is discovered regardless of CWD
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


class Settings(BaseSettings):
    """Load configuration from environment variables and `.env`."""

    model_config = SettingsConfigDict(
        env_file=str(PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    database_path: Path = Field(
        default_factory=lambda: Path("data/tracker.db"),
        validation_alias=AliasChoices("DATABASE_PATH", "database_path"),
    )
    default_timezone: str = Field(
        default=DEFAULT_TIMEZONE,
        validation_alias=AliasChoices("DEFAULT_TIMEZONE", "default_timezone"),
    )
    overtime_grace_minutes: int = Field(
        default=60,
        ge=0,
        validation_alias=AliasChoices(
            "OVERTIME_GRACE_MINUTES", "overtime_grace_minutes"
        ),
    )

    cache_enabled: bool = Field(
        default=True,
        validation_alias=AliasChoices("CACHE_ENABLED", "cache_enabled"),
    )
    cache_ttl_seconds: int = Field(
        default=600,
        ge=0,
        validation_alias=AliasChoices("CACHE_TTL_SECONDS", "cache_ttl_seconds"),
    )

    # Google Calendar (tokens are produced by an external consent flow)
    google_token_dir: Path = Field(
        default_factory=lambda: Path("data/tokens"),
        validation_alias=AliasChoices("GOOGLE_TOKEN_DIR", "google_token_dir"),
    )
    calendar_id: str = Field(
        default="primary",
        validation_alias=AliasChoices("CALENDAR_ID", "calendar_id"),
    )

    log_settings_path: Path = Field(
        default_factory=lambda: Path("logging.conf"),
        validation_alias=AliasChoices("LOG_SETTINGS_PATH", "log_settings_path"),
    )
    log_dir: Path = Field(
        default_factory=lambda: Path("logs/app"),
        validation_alias=AliasChoices("LOG_DIR", "log_dir"),
    )

    @property
    def overtime_grace_ms(self) -> int:
        return self.overtime_grace_minutes * 60 * 1000


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached `Settings` instance."""

    return Settings()


__all__ = ["Settings", "get_settings", "PROJECT_ROOT"]
