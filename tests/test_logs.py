"""Tests for structlog configuration."""

from __future__ import annotations

import structlog

from replymail.observability.logs import configure_logging


def _teardown() -> None:
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()


def test_production_uses_json_renderer() -> None:
    try:
        configure_logging(production=True)
        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.processors.JSONRenderer)
    finally:
        _teardown()


def test_development_uses_console_renderer() -> None:
    try:
        configure_logging(production=False)
        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.dev.ConsoleRenderer)
    finally:
        _teardown()


def test_service_bound_to_context() -> None:
    try:
        configure_logging()
        assert structlog.contextvars.get_contextvars()["service"] == "replymail"
    finally:
        _teardown()
