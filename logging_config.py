from __future__ import annotations

import logging
import time
from logging.config import dictConfig
from typing import Iterable, Sequence

from settings import Settings, get_settings

_DEFAULT_EXTRA_KEYS = (
    "sensor",
    "url",
    "path",
    "status_code",
    "size",
    "elapsed_ms",
    "reason",
)

_configured = False


class ContextualFormatter(logging.Formatter):

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
        style: str = "%",
        extra_keys: Iterable[str] | None = None,
        utc: bool = True,
    ) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt, style=style)
        self._extra_keys: Sequence[str] = tuple(extra_keys or _DEFAULT_EXTRA_KEYS)
        if utc:
            self.converter = time.gmtime

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        context_parts: list[str] = []
        for key in self._extra_keys:
            if not hasattr(record, key):
                continue
            value = getattr(record, key, None)
            if value is None:
                continue
            context_parts.append(f"{key}={value}")
        if context_parts:
            return f"{message} | {' '.join(context_parts)}"
        return message


def build_format(hide_date: bool = False, hide_file: bool = False) -> str:
    parts: list[str] = []
    if not hide_date:
        parts.append("%(asctime)s.%(msecs)03dZ")
    parts.append("%(levelname)s")
    parts.append("%(name)s")
    if not hide_file:
        parts.append("%(filename)s:%(lineno)d")
    parts.append("%(message)s")
    return " | ".join(parts)


def configure_logging(settings: Settings | None = None, level: str | int | None = None) -> None:
    """Configure application-wide logging with contextual formatting."""
    global _configured
    if _configured:
        return

    settings = settings or get_settings()
    log_level = level if level is not None else settings.log_level

    handler: dict[str, object]
    if settings.hide_log:
        handler = {"class": "logging.NullHandler"}
    else:
        handler = {
            "class": "logging.StreamHandler",
            "level": log_level,
            "formatter": "contextual",
        }

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "contextual": {
                    "()": "logging_config.ContextualFormatter",
                    "fmt": build_format(settings.hide_log_date, settings.hide_log_file),
                    "datefmt": "%Y-%m-%dT%H:%M:%S",
                    "style": "%",
                    "extra_keys": list(_DEFAULT_EXTRA_KEYS),
                }
            },
            "handlers": {"default": handler},
            "root": {"handlers": ["default"], "level": log_level},
        }
    )

    _configured = True
