"""Logging setup for the dashboard process."""

from __future__ import annotations

import json
import logging
import os
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from .exceptions import ConfigError
from .redaction import sanitize_text


class JsonFormatter(logging.Formatter):
    """Simple JSON formatter for structured log lines."""

    def format(self, record: logging.LogRecord) -> str:
        event: dict[str, Any] = {
            "ts": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": sanitize_text(record.getMessage()),
        }
        if record.exc_info:
            event["exception"] = sanitize_text(self.formatException(record.exc_info))
        return json.dumps(event, default=str)


def _has_json_handler(logger: logging.Logger, log_file: Path | None) -> bool:
    """True when a handler from an earlier setup_logger call already targets log_file."""
    target = os.path.abspath(log_file) if log_file is not None else None
    for handler in logger.handlers:
        if not isinstance(handler.formatter, JsonFormatter):
            continue
        if isinstance(handler, logging.FileHandler):
            if handler.baseFilename == target:
                return True
        elif target is None and isinstance(handler, logging.StreamHandler):
            return True
    return False


def setup_logger(
    name: str = "jenkins_tui",
    level: int | str = logging.INFO,
    log_file: Path | None = None,
) -> logging.Logger:
    """Create and configure a process-wide logger.

    The terminal belongs to the dashboard while it runs, so when ``log_file``
    is given records are written there instead of to stderr. Handlers added
    by other code (pytest's capture handlers, for one) do not count as an
    earlier setup. Raises ConfigError when the log file cannot be opened.
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.propagate = False
    if _has_json_handler(logger, log_file):
        return logger

    handler: logging.Handler
    if log_file is not None:
        try:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            handler = logging.FileHandler(log_file, encoding="utf-8")
        except OSError as exc:
            raise ConfigError(f"Cannot open log file {log_file}: {exc}") from exc
    else:
        handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    logger.addHandler(handler)
    return logger
