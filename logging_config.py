from __future__ import annotations

import logging
from logging.config import dictConfig
from typing import Any, Iterable

from settings import get_settings

# Attributes passed via ``extra=`` that are rendered after the message.
CONTEXT_KEYS = (
    "sensor_id",
    "metric_type",
    "stat",
    "window_start",
    "window_end",
    "row_count",
    "result_count",
    "reason",
)

_LINE_FORMAT = "%(asctime)sZ | %(levelname)s | %(name)s | %(message)s"
_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"

_configured = False


class ContextualFormatter(logging.Formatter):
    """Formatter that appends ``key=value`` pairs for known context attributes."""

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
        style: str = "%",
        extra_keys: Iterable[str] | None = None,
    ) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt, style=style)
        self._keys = tuple(extra_keys) if extra_keys is not None else CONTEXT_KEYS

    def context_of(self, record: logging.LogRecord) -> str:
        pairs = (
            (key, getattr(record, key, None)) for key in self._keys
        )
        return " ".join(f"{key}={value}" for key, value in pairs if value is not None)

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = self.context_of(record)
        return f"{line} | {context}" if context else line


def build_logging_config(level: str | int) -> dict[str, Any]:
    """Return the ``dictConfig`` payload used by :func:`configure_logging`."""
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "contextual": {
                "()": ContextualFormatter,
                "fmt": _LINE_FORMAT,
                "datefmt": _DATE_FORMAT,
                "extra_keys": list(CONTEXT_KEYS),
            }
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "contextual",
                "level": level,
            }
        },
        "root": {"level": level, "handlers": ["console"]},
    }


def configure_logging(level: str | int | None = None) -> None:
    """Install the console handler once per process; later calls are no-ops."""
    global _configured
    if _configured:
        return
    dictConfig(build_logging_config(level if level is not None else get_settings().log_level))
    _configured = True
