"""Service configuration read from the environment (and ``.env``) via pydantic-settings.

Nothing here imports from ``itineraries``; every other module may import
this one.
"""

from __future__ import annotations

import sys
from functools import lru_cache
from pathlib import Path

import structlog
from pydantic import Field, SecretStr, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = structlog.get_logger()


class Settings(BaseSettings):
    """Typed service settings.  Secrets are ``SecretStr`` so they never render."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    production: bool = False
    api_port: int = Field(default=8000, ge=1, le=65535)

    database_path: Path = Path("data/itineraries.db")
    audit_db_path: Path = Path("data/audit.db")

    # Realtime gateway; notices are skipped when the URL is empty.
    realtime_gateway_url: str = ""
    internal_service_secret: SecretStr = SecretStr("")
    realtime_timeout_seconds: float = Field(default=5.0, gt=0)

    # HMAC key for signed booking events.
    booking_webhook_secret: SecretStr = SecretStr("")

    sentry_dsn: str = ""

    @field_validator("realtime_gateway_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    def missing_secrets(self) -> list[str]:
        """Describe each secret that is required by the current settings but unset."""
        missing: list[str] = []
        if not self.booking_webhook_secret.get_secret_value():
            missing.append("BOOKING_WEBHOOK_SECRET is empty or not set")
        if self.realtime_gateway_url and not self.internal_service_secret.get_secret_value():
            missing.append("INTERNAL_SERVICE_SECRET is empty but REALTIME_GATEWAY_URL is set")
        return missing


@lru_cache
def get_settings() -> Settings:
    """Load settings once per process; tests reset with ``get_settings.cache_clear()``."""
    try:
        return Settings()
    except ValidationError as exc:
        # Input values are excluded so secrets stay out of the log.
        logger.error("settings_validation_failed", errors=exc.errors(include_input=False))
        sys.exit(1)


def validate_credentials(settings: Settings) -> None:
    """Refuse to start in production with required secrets missing.

    Outside production each gap is logged as a warning and startup continues.

    Args:
        settings: The loaded settings.
    """
    missing = settings.missing_secrets()
    if not missing:
        logger.info("credential_validation_passed")
        return

    if not settings.production:
        for detail in missing:
            logger.warning("credential_missing_dev", detail=detail)
        return

    for detail in missing:
        logger.error("credential_missing", detail=detail)
    lines = ["", "=== STARTUP FAILED ===", "Missing required credentials for production mode:"]
    lines += [f"  - {detail}" for detail in missing]
    lines += ["======================", ""]
    print("\n".join(lines), file=sys.stderr)
    sys.exit(1)
