"""
Tests for race_scout/cache/ttl_cache.py (CacheSweeper).

What we test
------------
  - run_once() sweeps and logs only when something was removed.
  - The background thread sweeps on its own and stops promptly.
  - start() is idempotent; stop() before start() is harmless.
  - Non-positive intervals are rejected.
  - from_config() takes its interval from CacheConfig.sweep_interval_s.
"""

from __future__ import annotations

import logging
import time

import pytest

from race_scout.cache.ttl_cache import CacheSweeper, TTLCache
from race_scout.config import CacheConfig


class FakeClock:
    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now


class TestRunOnce:
    def test_removes_expired(self):
        clock = FakeClock()
        cache = TTLCache(clock=clock)
        cache.set("a", 1, ttl=1)
        cache.set("b", 2, ttl=100)
        clock.now = 5
        assert CacheSweeper(cache).run_once() == 1
        assert cache.keys() == ["b"]

    def test_logs_removal_count(self, caplog):
        clock = FakeClock()
        cache = TTLCache(clock=clock)
        cache.set("a", 1, ttl=1)
        clock.now = 5
        with caplog.at_level(logging.INFO, logger="race_scout.cache.ttl_cache"):
            CacheSweeper(cache).run_once()
        assert "removed 1 expired entries" in caplog.text

    def test_silent_when_nothing_removed(self, caplog):
        with caplog.at_level(logging.INFO, logger="race_scout.cache.ttl_cache"):
            CacheSweeper(TTLCache()).run_once()
        assert "Cache sweep" not in caplog.text


class TestBackgroundThread:
    def test_sweeps_periodically(self):
        clock = FakeClock()
        cache = TTLCache(clock=clock)
        cache.set("a", 1, ttl=1)
        clock.now = 5
        sweeper = CacheSweeper(cache, interval_s=0.01)
        sweeper.start()
        try:
            deadline = time.monotonic() + 2.0
            while cache.size() and time.monotonic() < deadline:
                time.sleep(0.01)
        finally:
            sweeper.stop(timeout=2.0)
        assert cache.size() == 0

    def test_stop_is_prompt(self):
        sweeper = CacheSweeper(TTLCache(), interval_s=3600)
        sweeper.start()
        assert sweeper.running
        started = time.monotonic()
        sweeper.stop(timeout=5.0)
        assert time.monotonic() - started < 1.0
        assert not sweeper.running

    def test_start_twice_keeps_one_thread(self):
        sweeper = CacheSweeper(TTLCache(), interval_s=3600)
        sweeper.start()
        first = sweeper._thread
        sweeper.start()
        try:
            assert sweeper._thread is first
        finally:
            sweeper.stop(timeout=5.0)

    def test_restart_after_stop(self):
        sweeper = CacheSweeper(TTLCache(), interval_s=3600)
        sweeper.start()
        sweeper.stop(timeout=5.0)
        sweeper.start()
        try:
            assert sweeper.running
        finally:
            sweeper.stop(timeout=5.0)

    def test_stop_without_start(self):
        sweeper = CacheSweeper(TTLCache())
        sweeper.stop()
        assert not sweeper.running


class TestValidation:
    @pytest.mark.parametrize("interval", [0, -5])
    def test_bad_interval(self, interval):
        with pytest.raises(ValueError):
            CacheSweeper(TTLCache(), interval_s=interval)


class TestFromConfig:
    def test_default_interval(self):
        cache = TTLCache()
        sweeper = CacheSweeper.from_config(cache, CacheConfig())
        assert sweeper.interval_s == 300
        assert sweeper.cache is cache

    def test_configured_interval(self):
        sweeper = CacheSweeper.from_config(TTLCache(), CacheConfig(sweep_interval_s=42))
        assert sweeper.interval_s == 42
