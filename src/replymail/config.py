"""Centralized, typed configuration using pydantic-settings.

Provides a single ``Settings`` class backed by ``.env`` file and environment
variables, a cached ``get_settings()`` accessor, and a ``validate_settings()``
startup gate that enforces a usable incoming email address in production.

IMPORTANT: This module has ZERO imports from the ``replymail`` package to
prevent circular imports.  Only stdlib, pydantic, pydantic_settings, and
structlog are used.
"""

from __future__ import annotations

import sys
from functools import lru_cache
from pathlib import Path

import structlog
from pydantic import ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = structlog.get_logger()

WILDCARD_PLACEHOLDER = "%{key}"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and ``.env`` file.

    ``incoming_email_address`` is the reply address template.  The
    ``%{key}`` placeholder marks where the routing key is embedded, e.g.
    ``incoming+%{key}@example.com``.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_prefix="REPLYMAIL_",
    )

    # -- General ---------------------------------------------------------------
    production: bool = False
    host: str = "localhost"

    # -- Incoming email --------------------------------------------------------
    incoming_email_enabled: bool = True
    incoming_email_address: str = ""

    # -- Storage ---------------------------------------------------------------
    database_path: Path = Path("data/replymail.db")

    # -- Error tracking --------------------------------------------------------
    sentry_dsn: str = ""


@lru_cache
def get_settings() -> Settings:
    """Return a cached ``Settings`` instance.

    The ``@lru_cache`` decorator ensures environment variables are parsed
    exactly once.  Call ``get_settings.cache_clear()`` in tests to reset.

    Returns:
        The application ``Settings``.
    """
    try:
        return Settings()
    except ValidationError as exc:
        logger.error("settings_validation_failed", errors=exc.errors())
        sys.exit(1)


def validate_settings(settings: Settings) -> None:
    """Enforce a usable incoming email configuration at startup.

    In **production** mode the process exits when the reply address is
    missing or lacks the ``%{key}`` placeholder, since no routing key could
    ever be extracted.  In development each problem is logged as a warning.

    Args:
        settings: The loaded application settings.
    """
    errors: list[str] = []

    if not settings.incoming_email_enabled:
        errors.append("Incoming email is disabled (REPLYMAIL_INCOMING_EMAIL_ENABLED)")
    if not settings.incoming_email_address:
        errors.append("REPLYMAIL_INCOMING_EMAIL_ADDRESS is empty or not set")
    elif WILDCARD_PLACEHOLDER not in settings.incoming_email_address:
        errors.append(
            f"REPLYMAIL_INCOMING_EMAIL_ADDRESS has no {WILDCARD_PLACEHOLDER} placeholder"
        )

    if not errors:
        logger.info("settings_validation_passed")
        return

    if settings.production:
        for err in errors:
            logger.error("setting_invalid", detail=err)
        print("\n=== STARTUP FAILED ===", file=sys.stderr)
        print("Invalid incoming email configuration:", file=sys.stderr)
        for err in errors:
            print(f"  - {err}", file=sys.stderr)
        print("======================\n", file=sys.stderr)
        sys.exit(1)
    else:
        for err in errors:
            logger.warning("setting_invalid_dev", detail=err)
