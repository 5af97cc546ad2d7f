# logging.py

"""structlog setup for migration runs.

Every record, whether it comes from structlog or from stdlib loggers
(SQLAlchemy, ``warnings``), is rendered as one JSON object. Console output goes
to stderr so the summary the CLI prints on stdout stays machine readable.
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler

import structlog
from structlog.contextvars import merge_contextvars

from FedoraMigrate.config import Settings

DISABLED = "NONE"


def _level(name: str | None, default: int) -> int:
    return getattr(logging, (name or "").upper(), default)


def _enabled(name: str | None) -> bool:
    return (name or "").upper() != DISABLED


def _json_formatter() -> structlog.stdlib.ProcessorFormatter:
    return structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.add_log_level,
            merge_contextvars,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(sort_keys=True),
        ],
        foreign_pre_chain=[
            structlog.processors.add_log_level,
            merge_contextvars,
        ],
    )


def _handlers(settings: Settings | None, default: int) -> list[logging.Handler]:
    formatter = _json_formatter()
    handlers: list[logging.Handler] = []

    console = settings.logging_console if settings is not None else "INFO"
    if _enabled(console):
        handler = logging.StreamHandler(sys.stderr)
        handler.setLevel(_level(console, default))
        handler.setFormatter(formatter)
        handlers.append(handler)

    if settings is not None and _enabled(settings.logging_file):
        path = settings.logging_file_path
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        handler = RotatingFileHandler(
            path,
            maxBytes=settings.logging_max_bytes,
            backupCount=settings.logging_backup_count,
            encoding="utf-8",
        )
        handler.setLevel(_level(settings.logging_file, default))
        handler.setFormatter(formatter)
        handlers.append(handler)
    return handlers


def setup_logging(settings: Settings | None = None) -> None:
    """Route structlog and stdlib logging through JSON handlers.

    Without settings, INFO and above go to stderr. A level of ``NONE`` turns
    the console or file handler off; with both off nothing is configured to
    print (stdlib's last-resort handler still reports warnings and errors).
    """
    level = _level(settings.logging_level if settings else None, logging.INFO)
    logging.captureWarnings(True)
    # force=True replaces handlers from an earlier run in the same process
    logging.basicConfig(level=level, handlers=_handlers(settings, level), force=True)

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
