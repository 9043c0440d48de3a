# logging.py
"""JSON logging for the app, the CLI and the harvest.

structlog events and ordinary stdlib records (uvicorn, httpx) go through the
same ``ProcessorFormatter``, so every handler writes one JSON object per
line. Console and file handlers each have their own level; ``NONE`` turns a
handler off.
"""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

import structlog
from structlog.contextvars import merge_contextvars

from Rollkeeper.config import Settings

OFF = "NONE"
_SECRET_FIELDS = ("discord_bot_token", "discord_public_key")
_SECRET_SUFFIXES = ("_token", "_secret", "_key")
_THIRD_PARTY_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access", "httpx")


def _level(name: str | None, fallback: int) -> int:
    return getattr(logging, (name or "").upper(), fallback)


def _json_formatter() -> structlog.stdlib.ProcessorFormatter:
    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=[structlog.processors.add_log_level, merge_contextvars],
        processors=[
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.add_log_level,
            merge_contextvars,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
    )


def _handlers(settings: Settings, default_level: int) -> list[logging.Handler]:
    console = settings.logging_console if settings.logging_enabled else OFF
    to_file = settings.logging_file if settings.logging_enabled else OFF
    handlers: list[logging.Handler] = []

    if console.upper() != OFF:
        stream = logging.StreamHandler()
        stream.setLevel(_level(console, default_level))
        handlers.append(stream)

    if to_file.upper() != OFF:
        path = Path(settings.logging_file_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        rotating = RotatingFileHandler(
            path,
            maxBytes=settings.logging_max_bytes,
            backupCount=settings.logging_backup_count,
            encoding="utf-8",
        )
        rotating.setLevel(_level(to_file, default_level))
        handlers.append(rotating)

    formatter = _json_formatter()
    for h in handlers:
        h.setFormatter(formatter)
    return handlers or [logging.NullHandler()]


def setup_logging(settings: Settings | None = None) -> None:
    """Install the root handlers and configure structlog to feed them."""
    settings = settings or Settings()
    level = _level(settings.logging_level, logging.INFO)

    logging.captureWarnings(True)
    logging.basicConfig(level=level, handlers=_handlers(settings, level), force=True)
    for name in _THIRD_PARTY_LOGGERS:
        third_party = logging.getLogger(name)
        third_party.handlers = []
        third_party.propagate = True

    structlog.configure(
        processors=[
            merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def redact_settings(settings: Settings) -> dict:
    """Settings as a dict with tokens and keys replaced by ``[REDACTED]``."""
    return {
        k: "[REDACTED]" if k in _SECRET_FIELDS or k.endswith(_SECRET_SUFFIXES) else v
        for k, v in settings.model_dump().items()
    }
