"""
Startup Security Validation.

Checks security invariants before the application accepts traffic. If any
check fails, the application refuses to start with a clear error message.

Called during FastAPI lifespan initialization.
"""

from typing import Any

from eshop.backend.core.config import get_app_config, get_settings
from eshop.backend.core.logging import get_logger

logger = get_logger(__name__)


class StartupSecurityError(RuntimeError):
    """Raised when a startup security check fails."""


def run_startup_checks() -> None:
    """
    Validate all security invariants at startup.

    Raises:
        StartupSecurityError: If any check fails
    """
    app_config = get_app_config()
    settings = get_settings()
    environment = app_config.application.environment
    is_production = environment == "production"

    errors: list[str] = []

    _check_secret_strength(settings, app_config.security, errors)
    _check_channel_secrets(settings, app_config, errors)
    _check_production_safety(app_config, is_production, errors)

    if errors:
        for error in errors:
            logger.error("Startup security check failed", extra={"check": error})
        raise StartupSecurityError(
            f"Startup blocked: {len(errors)} security check(s) failed:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )

    logger.info(
        "Startup security checks passed",
        extra={"environment": environment, "checks_run": 3},
    )


def _check_secret_strength(settings: Any, security_config: Any, errors: list[str]) -> None:
    jwt_min = security_config.secrets_validation.jwt_secret_min_length
    if len(settings.jwt_secret) < jwt_min:
        errors.append(f"JWT_SECRET is {len(settings.jwt_secret)} chars, minimum is {jwt_min}")


def _check_channel_secrets(settings: Any, app_config: Any, errors: list[str]) -> None:
    """SMTP with a username needs SMTP_PASSWORD. The Telegram token may live in chat settings."""
    smtp = app_config.channels.smtp
    if app_config.features.channel_email_enabled and smtp.enabled and smtp.username and not settings.smtp_password:
        errors.append("channels.smtp is enabled with a username but SMTP_PASSWORD is empty")

    if app_config.features.channel_telegram_enabled and not settings.telegram_bot_token:
        logger.warning("TELEGRAM_BOT_TOKEN is empty, Telegram relies on the admin chat settings")


def _check_production_safety(app_config: Any, is_production: bool, errors: list[str]) -> None:
    if not is_production:
        return

    app = app_config.application
    if app.debug:
        errors.append("debug is true in production environment")

    if app_config.features.api_detailed_errors:
        errors.append("api_detailed_errors is true in production environment")

    if not app_config.features.admin_auth_enforced:
        errors.append("admin_auth_enforced is false in production environment")

    if app.docs_enabled:
        errors.append("docs_enabled is true in production environment")

    if app_config.features.security_cors_enforce_production and app_config.security.cors.enforce_in_production:
        localhost_origins = [o for o in app.cors.origins if "localhost" in o or "127.0.0.1" in o]
        if localhost_origins:
            errors.append(f"CORS origins contain localhost in production: {localhost_origins}")
