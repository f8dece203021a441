"""Structured logging for the storefront service.

Checkout log lines carry gateway and guest-session identifiers, so every
event passes through ``redact_credentials`` before it is rendered.
"""

import logging
import logging.handlers
import os
import sys
from pathlib import Path
from typing import Any

import structlog

from storefront.config import Settings, load_settings

LOG_FILE = "storefront.log"
REDACTED = "[redacted]"

# Keys whose values must never reach a log sink
_CREDENTIAL_KEYS = frozenset(
    {
        "gateway_signature",
        "signature",
        "session_token",
        "buyer_token",
        "gateway_key_secret",
        "gateway_webhook_secret",
        "ithink_secret_key",
        "password",
    }
)

_LEVELS = {"production": "INFO", "staging": "INFO", "development": "DEBUG", "test": "WARNING"}


def log_level_for(settings: Settings) -> str:
    return os.getenv("LOG_LEVEL", _LEVELS.get(settings.environment, "INFO")).upper()


def redact_credentials(_logger, _method_name: str, event_dict: dict) -> dict:
    """structlog processor that masks signatures, tokens and secrets."""
    for key in _CREDENTIAL_KEYS.intersection(event_dict):
        if event_dict[key]:
            event_dict[key] = REDACTED
    return event_dict


def _handlers(level: str) -> list[logging.Handler]:
    console = logging.StreamHandler(sys.stdout)
    console.setLevel(level)

    log_dir = Path(os.getenv("LOG_DIR", "logs"))
    log_dir.mkdir(exist_ok=True)
    rotating = logging.handlers.RotatingFileHandler(
        filename=log_dir / LOG_FILE,
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
        encoding="utf-8",
    )
    rotating.setLevel(level)
    return [console, rotating]


def _renderer(settings: Settings):
    if settings.environment in ("production", "staging"):
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())


def configure_logging(settings: Settings | None = None) -> None:
    """Route stdlib and structlog output through the same handlers."""
    settings = settings or load_settings()
    level = log_level_for(settings)

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers = _handlers(level)
    # Gateway and carrier HTTP clients, and protean internals, are noisy below WARNING
    for noisy in ("urllib3", "requests", "protean"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            redact_credentials,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            _renderer(settings),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def add_context(**kwargs: Any) -> None:
    """Bind request-scoped values (request id, path) to every later log line."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()
