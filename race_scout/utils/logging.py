"""
Root-logger setup for the race-scout CLI.

Library modules only ever do ``logger = logging.getLogger(__name__)``.  The
CLI calls ``configure_logging(config.logging)`` once per command, after the
config has loaded and before any scoring or batch work starts.

Output goes to stdout and, when ``log_file`` is set, to that file as well.
Both handlers share one formatter: plain text by default, or one JSON object
per line with ``json_format = true``::

    {"ts": "2026-02-24T15:00:00Z", "level": "WARNING",
     "logger": "race_scout.aggregation.batch", "msg": "...", "pair": "100:50"}
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from race_scout.config import LoggingConfig

TEXT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

# Attributes every LogRecord carries; anything else arrived via ``extra=``.
_STANDARD_RECORD_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__
) | {"message", "asctime"}


class JsonLineFormatter(logging.Formatter):
    """One JSON object per record: ts, level, logger, msg, then any extras."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).strftime(
                TIMESTAMP_FORMAT
            ),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        payload.update(
            (key, val)
            for key, val in record.__dict__.items()
            if key not in _STANDARD_RECORD_ATTRS and not key.startswith("_")
        )
        return json.dumps(payload, default=str)


def build_formatter(json_format: bool) -> logging.Formatter:
    if json_format:
        return JsonLineFormatter()
    return logging.Formatter(TEXT_FORMAT, datefmt=TIMESTAMP_FORMAT)


def build_handlers(config: "LoggingConfig") -> list[logging.Handler]:
    """Stdout handler plus an optional file handler, formatted per ``config``."""
    formatter = build_formatter(config.json_format)
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]

    if config.log_file:
        log_path = Path(config.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, encoding="utf-8"))

    for handler in handlers:
        handler.setFormatter(formatter)
    return handlers


def configure_logging(config: "LoggingConfig") -> None:
    """Replace the root logger's handlers according to ``config``.

    Args:
        config: The ``[logging]`` section of ``AppConfig``.
    """
    level = logging.getLevelName(config.level)
    logging.basicConfig(level=level, handlers=build_handlers(config), force=True)

    # asyncio reports slow callbacks at DEBUG; batch fan-out triggers it constantly
    logging.getLogger("asyncio").setLevel(logging.WARNING)
