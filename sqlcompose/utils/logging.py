"""Logging for sqlcompose.

Loggers live under the ``sqlcompose`` namespace and stamp records with the correlation id
of the current context. Statement logs carry SQL text and parameter counts in
``extra_fields``; parameter values are never logged.
"""

from __future__ import annotations

import logging
import sys
from contextvars import ContextVar
from typing import TYPE_CHECKING, Any, Final

from sqlcompose._serialization import encode_json

if TYPE_CHECKING:
    from logging import LogRecord

__all__ = (
    "ROOT_LOGGER_NAME",
    "CorrelationIDFilter",
    "StructuredFormatter",
    "configure_logging",
    "correlation_id_var",
    "get_correlation_id",
    "get_logger",
    "log_with_context",
    "set_correlation_id",
)

ROOT_LOGGER_NAME: Final = "sqlcompose"
SIMPLE_FORMAT: Final = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"

correlation_id_var: ContextVar[str | None] = ContextVar("sqlcompose_correlation_id", default=None)


def set_correlation_id(correlation_id: str | None) -> None:
    """Tag every record logged in the current context; ``None`` clears the tag."""
    correlation_id_var.set(correlation_id)


def get_correlation_id() -> str | None:
    return correlation_id_var.get()


class CorrelationIDFilter(logging.Filter):
    """Copy the context's correlation id onto each record as ``correlation_id``."""

    def filter(self, record: LogRecord) -> bool:
        correlation_id = get_correlation_id()
        if correlation_id is not None:
            record.correlation_id = correlation_id  # type: ignore[attr-defined]
        return True


class StructuredFormatter(logging.Formatter):
    """Render records as one JSON object per line.

    Keys ``timestamp``, ``level``, ``logger``, ``message``, ``module``, ``function`` and
    ``line`` are always present, followed by ``correlation_id`` when one is set and the
    record's ``extra_fields``.
    """

    def format(self, record: LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        correlation_id = getattr(record, "correlation_id", None) or get_correlation_id()
        if correlation_id:
            entry["correlation_id"] = correlation_id
        entry.update(getattr(record, "extra_fields", None) or {})
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return encode_json(entry)


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a logger under the ``sqlcompose`` namespace.

    ``get_logger("core.cache")`` and ``get_logger("sqlcompose.core.cache")`` return the
    same logger; with no name the namespace root is returned.
    """
    if name is None or name == ROOT_LOGGER_NAME:
        return logging.getLogger(ROOT_LOGGER_NAME)
    if not name.startswith(f"{ROOT_LOGGER_NAME}."):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    logger = logging.getLogger(name)
    if not any(isinstance(existing, CorrelationIDFilter) for existing in logger.filters):
        logger.addFilter(CorrelationIDFilter())
    return logger


def configure_logging(
    level: str | int = "INFO",
    format_style: str = "structured",
    log_to_file: str | None = None,
    extra_handlers: list[logging.Handler] | None = None,
) -> None:
    """Route library logs to stdout, replacing handlers from an earlier call.

    Args:
        level: Level name or number applied to the ``sqlcompose`` logger.
        format_style: ``"structured"`` for JSON lines, ``"simple"`` for plain text.
        log_to_file: Also append structured records to this file.
        extra_handlers: Additional handlers attached as given.
    """
    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(level.upper() if isinstance(level, str) else level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    if format_style == "structured":
        console_handler.setFormatter(StructuredFormatter())
    else:
        console_handler.setFormatter(logging.Formatter(SIMPLE_FORMAT))
    root_logger.addHandler(console_handler)

    if log_to_file:
        file_handler = logging.FileHandler(log_to_file)
        file_handler.setFormatter(StructuredFormatter())
        root_logger.addHandler(file_handler)

    for handler in extra_handlers or ():
        root_logger.addHandler(handler)

    root_logger.propagate = False
    root_logger.debug(
        "Logging configured",
        extra={"extra_fields": {"format_style": format_style, "handlers": len(root_logger.handlers)}},
    )


def log_with_context(logger: logging.Logger, level: int, message: str, **extra_fields: Any) -> None:
    """Log ``message`` with ``extra_fields`` attached for the structured formatter."""
    if logger.isEnabledFor(level):
        logger.log(level, message, extra={"extra_fields": extra_fields}, stacklevel=2)
