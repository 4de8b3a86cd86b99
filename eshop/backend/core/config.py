"""
Configuration Management.

Secrets are read from config/.env and everything else from
config/settings/*.yaml. Code carries no hardcoded settings.

Secrets (.env):
    DB_PASSWORD, JWT_SECRET, SMTP_PASSWORD, TELEGRAM_BOT_TOKEN,
    FLEXIBEE_URL, FLEXIBEE_COMPANY, FLEXIBEE_USERNAME, FLEXIBEE_PASSWORD

Settings (YAML):
    application.yaml   - App identity, server, cors, pagination, checkout
    database.yaml      - Database connection settings
    logging.yaml       - Logging configuration
    features.yaml      - Feature flags
    security.yaml      - JWT, password policy, TOTP
    concurrency.yaml   - Pool sizes, semaphores, shutdown timing
    channels.yaml      - SMTP, Telegram, Messenger, FlexiBee, resilience
"""

from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from eshop.backend.core.config_schema import (
    ApplicationSchema,
    ChannelsSchema,
    ConcurrencySchema,
    DatabaseSchema,
    FeaturesSchema,
    LoggingSchema,
    SecuritySchema,
)


def find_project_root() -> Path:
    """Find project root by looking for .project_root marker file."""
    current = Path.cwd()
    while current != current.parent:
        if (current / ".project_root").exists():
            return current
        current = current.parent
    raise RuntimeError("Project root not found. Ensure .project_root file exists.")


def validate_project_root() -> Path:
    """
    Validate that the project root can be found.

    Entry scripts call this before loading configuration so a missing
    marker exits with a readable message.
    """
    try:
        return find_project_root()
    except RuntimeError as e:
        raise SystemExit(f"Error: {e}") from e


def load_yaml_config(filename: str) -> dict[str, Any]:
    """Load a YAML configuration file from config/settings/."""
    config_path = find_project_root() / "config" / "settings" / filename

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


class Settings(BaseSettings):
    """Secrets loaded from config/.env, plus TELEGRAM_POLL_INTERVAL (ms) overriding application.yaml."""

    db_password: str
    jwt_secret: str
    smtp_password: str = ""
    telegram_bot_token: str = ""
    flexibee_url: str = ""
    flexibee_company: str = ""
    flexibee_username: str = ""
    flexibee_password: str = ""
    telegram_poll_interval: int | None = None

    model_config = SettingsConfigDict(
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


def _load_validated(schema_cls: type, filename: str) -> Any:
    """Load YAML and validate against schema. Returns typed model instance."""
    raw = load_yaml_config(filename)
    try:
        return schema_cls(**raw)
    except ValidationError as e:
        raise ValueError(f"Invalid configuration in {filename}:\n{e}") from e


class AppConfig:
    """
    Application configuration loaded from YAML files.

    Every file is validated against its schema on load. Properties return
    typed pydantic models with attribute access.
    """

    def __init__(self) -> None:
        self._application = _load_validated(ApplicationSchema, "application.yaml")
        self._database = _load_validated(DatabaseSchema, "database.yaml")
        self._logging = _load_validated(LoggingSchema, "logging.yaml")
        self._features = _load_validated(FeaturesSchema, "features.yaml")
        self._security = _load_validated(SecuritySchema, "security.yaml")
        self._concurrency = _load_validated(ConcurrencySchema, "concurrency.yaml")
        self._channels = _load_validated(ChannelsSchema, "channels.yaml")

    @property
    def application(self) -> ApplicationSchema:
        """Application settings."""
        return self._application

    @property
    def database(self) -> DatabaseSchema:
        """Database settings."""
        return self._database

    @property
    def logging(self) -> LoggingSchema:
        """Logging settings."""
        return self._logging

    @property
    def features(self) -> FeaturesSchema:
        """Feature flags."""
        return self._features

    @property
    def security(self) -> SecuritySchema:
        """Security settings."""
        return self._security

    @property
    def concurrency(self) -> ConcurrencySchema:
        """Concurrency settings (pools, semaphores, shutdown)."""
        return self._concurrency

    @property
    def channels(self) -> ChannelsSchema:
        """Outbound channel and integration settings."""
        return self._channels


@lru_cache
def get_settings() -> Settings:
    """Get cached secrets instance. Resolves .env path from project root."""
    env_path = find_project_root() / "config" / ".env"
    return Settings(_env_file=str(env_path))


@lru_cache
def get_app_config() -> AppConfig:
    """Get cached application configuration."""
    return AppConfig()


def get_database_url(async_driver: bool = True) -> str:
    """
    Construct database URL from YAML config and secrets.

    Args:
        async_driver: Use asyncpg driver if True, psycopg2 if False.

    Returns:
        Database connection URL string.
    """
    db = get_app_config().database
    password = get_settings().db_password
    driver = "postgresql+asyncpg" if async_driver else "postgresql"
    return f"{driver}://{db.user}:{password}@{db.host}:{db.port}/{db.name}"


def get_server_base_url() -> tuple[str, float]:
    """
    Get the backend server base URL and timeout from application.yaml.

    Returns:
        Tuple of (base_url, timeout_seconds).
    """
    app = get_app_config().application
    base_url = f"http://{app.server.host}:{app.server.port}"
    return base_url, float(app.timeouts.external_api)


def get_telegram_poll_interval() -> float:
    """Seconds between Telegram poll passes. TELEGRAM_POLL_INTERVAL wins over the YAML value."""
    interval_ms = get_settings().telegram_poll_interval or get_app_config().application.telegram.poll_interval_ms
    return max(interval_ms, 1) / 1000
