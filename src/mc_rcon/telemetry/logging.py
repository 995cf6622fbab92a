"""Logging setup for the CLI and long-running processes."""

from __future__ import annotations

import logging

from rich.logging import RichHandler

ROOT_LOGGER = "mc_rcon"


class ExtraFieldsFormatter(logging.Formatter):
    """Renders the structured ``extra={...}`` fields of a record after its message.

    The record itself is left untouched; other handlers see the plain event name.
    """

    _standard = frozenset(logging.LogRecord("", 0, "", 0, "", None, None).__dict__) | {"message", "asctime"}

    def formatMessage(self, record: logging.LogRecord) -> str:
        message = super().formatMessage(record)
        fields = {key: value for key, value in record.__dict__.items() if key not in self._standard}
        if not fields:
            return message
        rendered = " ".join(f"{key}={value!r}" for key, value in sorted(fields.items()))
        return f"{message} {rendered}"


def configure_logging(level: str = "INFO") -> logging.Logger:
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level.upper())
    if not any(isinstance(handler, RichHandler) for handler in logger.handlers):
        handler = RichHandler(rich_tracebacks=True, show_path=False)
        handler.setFormatter(ExtraFieldsFormatter())
        logger.addHandler(handler)
    return logger
