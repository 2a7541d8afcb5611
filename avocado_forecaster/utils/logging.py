"""
Logging setup for the avocado demand forecaster.

``configure_logging(config)`` is called once per CLI command, before any
pipeline work.  Library modules only ever do ``logging.getLogger(__name__)``.

What it sets up:
  - a stdout handler, plus a file handler when ``log_file`` is set;
  - plain ``time [LEVEL] logger: message`` lines, or one JSON object per
    line when ``json_format = true``;
  - Python ``warnings`` (statsmodels / linearmodels estimation warnings that
    escape the order search) routed into the ``py.warnings`` logger, so
    they go through the same handlers (stdout and the log file) in the same
    format instead of printing raw to stderr;
  - ``QUIET_LOGGERS`` held at WARNING regardless of the configured level.

JSON line example::

    {"ts": "2026-02-24T15:00:00Z", "level": "INFO", "logger": "avocado_forecaster.pipeline.base",
     "msg": "Stage [compare] starting | run_slug=..."}
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from avocado_forecaster.config import LoggingConfig

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

QUIET_LOGGERS = ("matplotlib", "PIL", "fontTools", "statsmodels", "linearmodels")

# Attributes present on every LogRecord; anything else came from ``extra=``.
_RESERVED_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None)))


class _JsonFormatter(logging.Formatter):
    """One JSON object per record; ``extra=`` fields are merged at top level."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).strftime(
                LOG_DATE_FORMAT
            ),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        payload.update(
            (key, val)
            for key, val in record.__dict__.items()
            if key not in _RESERVED_ATTRS and not key.startswith("_")
        )
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def _build_formatter(json_format: bool) -> logging.Formatter:
    if json_format:
        return _JsonFormatter()
    return logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)


def _build_handlers(log_file: str | None) -> list[logging.Handler]:
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(path, encoding="utf-8"))
    return handlers


def configure_logging(config: "LoggingConfig") -> None:
    """Configure the root logger from the ``[logging]`` config section.

    Safe to call more than once: existing root handlers are replaced.
    """
    level = getattr(logging, config.level.upper(), logging.INFO)
    formatter = _build_formatter(config.json_format)

    handlers = _build_handlers(config.log_file)
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)

    logging.basicConfig(level=level, handlers=handlers, force=True)
    logging.captureWarnings(True)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
