"""
Tests for race_scout/utils/logging.py.

What we test
------------
  - JSON formatter emits ts / level / logger / msg plus ``extra`` fields.
  - build_formatter / build_handlers pick text or JSON and add a file handler
    only when log_file is set.
  - configure_logging sets the root level and adds a file handler on request.
"""

from __future__ import annotations

import json
import logging

import pytest

from race_scout.config import LoggingConfig
from race_scout.utils.logging import (
    JsonLineFormatter,
    build_formatter,
    build_handlers,
    configure_logging,
)


@pytest.fixture(autouse=True)
def _restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


class TestJsonFormatter:
    def test_fields(self):
        record = logging.LogRecord(
            "race_scout.cache.ttl_cache", logging.INFO, __file__, 1,
            "Cache sweep: removed %d expired entries", (3,), None,
        )
        record.pair = "100:50"
        payload = json.loads(JsonLineFormatter().format(record))
        assert payload["level"] == "INFO"
        assert payload["logger"] == "race_scout.cache.ttl_cache"
        assert payload["msg"] == "Cache sweep: removed 3 expired entries"
        assert payload["pair"] == "100:50"
        assert payload["ts"].endswith("Z")


class TestBuilders:
    def test_text_formatter_by_default(self):
        assert not isinstance(build_formatter(False), JsonLineFormatter)
        assert isinstance(build_formatter(True), JsonLineFormatter)

    def test_stdout_only_without_log_file(self):
        handlers = build_handlers(LoggingConfig())
        assert len(handlers) == 1
        assert isinstance(handlers[0], logging.StreamHandler)

    def test_file_handler_shares_formatter(self, tmp_path):
        config = LoggingConfig(log_file=str(tmp_path / "scout.log"), json_format=True)
        handlers = build_handlers(config)
        try:
            assert len(handlers) == 2
            assert isinstance(handlers[1], logging.FileHandler)
            assert handlers[0].formatter is handlers[1].formatter
        finally:
            for handler in handlers:
                handler.close()

class TestConfigureLogging:
    def test_root_level(self):
        configure_logging(LoggingConfig(level="WARNING"))
        assert logging.getLogger().level == logging.WARNING

    def test_file_handler(self, tmp_path):
        log_file = tmp_path / "logs" / "race_scout.log"
        configure_logging(LoggingConfig(level="INFO", log_file=str(log_file), json_format=True))
        logging.getLogger("race_scout.test").info("hello %s", "track")
        for handler in logging.getLogger().handlers:
            handler.flush()
        line = log_file.read_text(encoding="utf-8").strip().splitlines()[-1]
        assert json.loads(line)["msg"] == "hello track"
