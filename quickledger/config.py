from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import AnyHttpUrl, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Centralised application settings, sourced from environment variables or .env."""

    app_name: str = Field(default="QuickLedger")
    environment: str = Field(default="development", alias="ENVIRONMENT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    database_url: str = Field(alias="DATABASE_URL")
    direct_database_url: Optional[str] = Field(
        default=None,
        alias="DIRECT_DATABASE_URL",
        description="Optional direct Postgres connection string used for running migrations.",
    )
    auto_run_migrations: bool = Field(default=False, alias="AUTO_RUN_MIGRATIONS")

    telegram_bot_token: Optional[str] = Field(default=None, alias="TELEGRAM_BOT_TOKEN")
    telegram_webhook_secret: Optional[str] = Field(
        default=None, alias="TELEGRAM_WEBHOOK_SECRET"
    )
    backend_base_url: Optional[AnyHttpUrl] = Field(
        default=None,
        alias="BACKEND_BASE_URL",
        description="The public URL where FastAPI is reachable (used by Telegram webhooks).",
    )
    internal_backend_base_url: Optional[AnyHttpUrl] = Field(
        default=None,
        alias="INTERNAL_BACKEND_BASE_URL",
        description="Internal URL used by the bot to reach the API; falls back to BACKEND_BASE_URL.",
    )
    telegram_register_webhook_on_start: bool = Field(
        default=False, alias="TELEGRAM_REGISTER_WEBHOOK_ON_START"
    )

    ledger_timezone: str = Field(
        default="Asia/Taipei",
        alias="LEDGER_TIMEZONE",
        description="Time zone used for record ids, record dates and reply timestamps.",
    )
    lexicon_path: Optional[Path] = Field(
        default=None,
        alias="LEXICON_PATH",
        description="JSON lookup table replacing the bundled bank/keyword/currency lexicon.",
    )
    pending_backend: Literal["database", "memory"] = Field(
        default="database", alias="PENDING_BACKEND"
    )
    pending_ttl_seconds: int = Field(default=600, alias="PENDING_TTL_SECONDS", ge=30)
    event_dedup_ttl_seconds: int = Field(
        default=60 * 60 * 24,
        alias="EVENT_DEDUP_TTL_SECONDS",
        description="How long an inbound event id is remembered for duplicate suppression.",
        ge=60,
    )
    fuzzy_match_threshold: float = Field(
        default=0.6, alias="FUZZY_MATCH_THRESHOLD", gt=0.0, lt=1.0
    )
    category_menu_limit: int = Field(
        default=13,
        alias="CATEGORY_MENU_LIMIT",
        description="Maximum number of buttons on the category menu, cancel included.",
        ge=2,
        le=13,
    )
    max_remark_length: int = Field(default=20, alias="MAX_REMARK_LENGTH", ge=4)
    write_max_attempts: int = Field(default=3, alias="WRITE_MAX_ATTEMPTS", ge=1)
    write_backoff_base_seconds: float = Field(
        default=0.2, alias="WRITE_BACKOFF_BASE_SECONDS", ge=0
    )
    write_backoff_max_seconds: float = Field(
        default=2.0, alias="WRITE_BACKOFF_MAX_SECONDS", ge=0
    )

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Cached accessor so imports share a single settings instance."""
    return Settings()  # type: ignore[call-arg]
