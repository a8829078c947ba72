"""
Batch aggregator: statistics for many (series, track) pairs with minimal work.

Flow for ``batch_global_stats(pairs)``
--------------------------------------
1. De-duplicate the pairs (input order is kept for the result).
2. One cache lookup per distinct pair (``global_stats:{series}:{track}``).
3. One provider call per cache miss, at most ``batch_width`` in flight
   (``asyncio.Semaphore``).
4. A failing call resolves to ``DEFAULT_GLOBAL_STATS``, logged at WARNING and
   never cached; sibling calls are unaffected.
5. Results come back aligned with the input, each flagged ``from_cache``.

Blocking callers use ``fetch_global_stats(pairs)``, which wraps the
coroutine in ``asyncio.run``.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from race_scout.aggregation.provider import (
    PerformanceMetric,
    StatisticsProvider,
    global_stats_from_aggregate,
    user_history_from_metrics,
)
from race_scout.cache.keys import (
    batch_global_stats_key,
    global_stats_key,
    user_performance_key,
)
from race_scout.cache.ttl_cache import CacheStats, CacheSweeper, TTLCache
from race_scout.config import BatchConfig, CacheConfig
from race_scout.models.history import LicenseClass, UserHistory
from race_scout.models.opportunity import DEFAULT_GLOBAL_STATS, GlobalStats
from race_scout.scoring.confidence import confidence_level
from race_scout.taxonomy.scoring_taxonomy import ConfidenceLevel, MetricGrouping

logger = logging.getLogger(__name__)

Pair = tuple[int, int]


@dataclass(frozen=True)
class BatchGlobalStatsResult:
    """Global statistics for one requested pair.

    Attributes:
        series_id:  Requested series.
        track_id:   Requested track.
        stats:      Statistics (``DEFAULT_GLOBAL_STATS`` on failure).
        from_cache: ``True`` when served from the cache.
        failed:     ``True`` when the provider call raised.
    """

    series_id:  int
    track_id:   int
    stats:      GlobalStats
    from_cache: bool
    failed:     bool = False

    @property
    def pair(self) -> Pair:
        return (self.series_id, self.track_id)


@dataclass(frozen=True)
class BatchPerformanceResult:
    """A user's aggregates for one requested pair (zeros when never raced)."""

    user_id:            str
    series_id:          int
    track_id:           int
    race_count:         int
    avg_position_delta: float
    avg_incidents:      float
    consistency:        float
    confidence:         ConfidenceLevel
    from_cache:         bool


@dataclass(frozen=True)
class CacheMetrics:
    stats: CacheStats
    size:  int
    keys:  list[str]


class BatchAggregator:
    """Fetches statistics through a shared ``TTLCache`` with bounded fan-out.

    Args:
        provider:      Source of aggregated statistics.
        cache:         Shared cache; a private ``TTLCache`` when ``None``.
        batch_config:  Batch width, sample thresholds, prefetch size.
        cache_config:  TTL per key space.
    """

    def __init__(
        self,
        provider: StatisticsProvider,
        cache: Optional[TTLCache] = None,
        batch_config: Optional[BatchConfig] = None,
        cache_config: Optional[CacheConfig] = None,
    ) -> None:
        self.provider = provider
        self.cache = cache if cache is not None else TTLCache()
        self.batch_config = batch_config or BatchConfig()
        self.cache_config = cache_config or CacheConfig()

    # ── Global statistics ─────────────────────────────────────────────────────

    async def batch_global_stats(self, pairs: Sequence[Pair]) -> list[BatchGlobalStatsResult]:
        """Global statistics for every pair, aligned with ``pairs``."""
        distinct = list(dict.fromkeys(pairs))
        resolved: dict[Pair, BatchGlobalStatsResult] = {}
        misses: list[Pair] = []

        for series_id, track_id in distinct:
            cached = self.cache.get(global_stats_key(series_id, track_id))
            if cached is not None:
                resolved[(series_id, track_id)] = BatchGlobalStatsResult(
                    series_id=series_id, track_id=track_id, stats=cached, from_cache=True
                )
            else:
                misses.append((series_id, track_id))

        semaphore = asyncio.Semaphore(self.batch_config.batch_width)
        fetched = await asyncio.gather(*(self._fetch_one(pair, semaphore) for pair in misses))
        for result in fetched:
            resolved[result.pair] = result

        logger.debug(
            "Batch global stats: %d requested | %d distinct | %d cached | %d fetched | %d failed",
            len(pairs), len(distinct), len(distinct) - len(misses),
            len(misses), sum(r.failed for r in fetched),
        )
        return [resolved[pair] for pair in pairs]

    def fetch_global_stats(self, pairs: Sequence[Pair]) -> list[BatchGlobalStatsResult]:
        """Blocking wrapper around ``batch_global_stats``."""
        return asyncio.run(self.batch_global_stats(pairs))

    async def _fetch_one(
        self,
        pair: Pair,
        semaphore: asyncio.Semaphore,
    ) -> BatchGlobalStatsResult:
        series_id, track_id = pair
        async with semaphore:
            try:
                aggregate = await self.provider.get_global_series_track_stats(series_id, track_id)
                stats = global_stats_from_aggregate(aggregate, self.batch_config)
            except Exception as exc:
                logger.warning(
                    "Global stats fetch failed for series %d, track %d; using defaults: %s",
                    series_id, track_id, exc,
                )
                return BatchGlobalStatsResult(
                    series_id=series_id,
                    track_id=track_id,
                    stats=DEFAULT_GLOBAL_STATS,
                    from_cache=False,
                    failed=True,
                )

        self.cache.set(
            global_stats_key(series_id, track_id), stats, self.cache_config.global_stats_ttl_s
        )
        return BatchGlobalStatsResult(
            series_id=series_id, track_id=track_id, stats=stats, from_cache=False
        )

    # ── User performance ──────────────────────────────────────────────────────

    async def _user_metrics(
        self,
        user_id: str,
        group_by: MetricGrouping,
    ) -> tuple[list[PerformanceMetric], bool]:
        """All of a user's metrics for ``group_by``, and whether they were cached."""
        key = user_performance_key(user_id, group_by)
        cached = self.cache.get(key)
        if cached is not None:
            return cached, True
        metrics = await self.provider.get_performance_metrics(user_id, group_by)
        self.cache.set(key, metrics, self.cache_config.user_performance_ttl_s)
        return metrics, False

    async def batch_user_performance(
        self,
        user_id: str,
        pairs: Sequence[Pair],
    ) -> list[BatchPerformanceResult]:
        """The user's per-pair aggregates from one (cached) provider call.

        Pairs the user has never raced return zeros with ``NO_DATA``.

        Raises:
            Exception: Whatever the provider raises; nothing is substituted.
        """
        metrics, from_cache = await self._user_metrics(user_id, MetricGrouping.SERIES_TRACK)
        by_pair = {
            (m.series_id, m.track_id): m
            for m in metrics
            if m.series_id is not None and m.track_id is not None
        }

        results: list[BatchPerformanceResult] = []
        for series_id, track_id in pairs:
            m = by_pair.get((series_id, track_id))
            if m is None:
                results.append(BatchPerformanceResult(
                    user_id=user_id, series_id=series_id, track_id=track_id,
                    race_count=0, avg_position_delta=0.0, avg_incidents=0.0,
                    consistency=0.0, confidence=ConfidenceLevel.NO_DATA,
                    from_cache=from_cache,
                ))
                continue
            results.append(BatchPerformanceResult(
                user_id=user_id,
                series_id=series_id,
                track_id=track_id,
                race_count=m.race_count,
                avg_position_delta=m.position_delta,
                avg_incidents=m.avg_incidents,
                consistency=m.consistency,
                confidence=confidence_level(m.race_count),
                from_cache=from_cache,
            ))
        return results

    async def load_user_history(
        self,
        user_id: str,
        license_classes: Iterable[LicenseClass] = (),
    ) -> UserHistory:
        """Build a ``UserHistory`` from the user's cached per-pair and per-series metrics."""
        series_track, _ = await self._user_metrics(user_id, MetricGrouping.SERIES_TRACK)
        per_series, _ = await self._user_metrics(user_id, MetricGrouping.SERIES)
        return user_history_from_metrics(user_id, series_track, per_series, list(license_classes))

    async def prefetch_common_combinations(self, user_id: str) -> int:
        """Warm global stats for the user's most-raced pairs.

        Takes the top ``prefetch_limit`` pairs by race count.  A set already
        warmed within ``batch_ttl_s`` is skipped.  Failures are logged and
        never raised.

        Returns:
            Number of pairs fetched (0 when skipped or on failure).
        """
        try:
            metrics, _ = await self._user_metrics(user_id, MetricGrouping.SERIES_TRACK)
            ranked = sorted(
                (m for m in metrics
                 if m.series_id is not None and m.track_id is not None and m.race_count > 0),
                key=lambda m: m.race_count,
                reverse=True,
            )
            top = [(m.series_id, m.track_id) for m in ranked[: self.batch_config.prefetch_limit]]
            if not top:
                return 0

            key = batch_global_stats_key(top)
            if self.cache.get(key) is not None:
                logger.debug("Prefetch for user %s already warm (%d pairs)", user_id, len(top))
                return 0

            await self.batch_global_stats(top)
            self.cache.set(key, len(top), self.cache_config.batch_ttl_s)
            return len(top)
        except Exception as exc:
            logger.warning("Prefetch failed for user %s: %s", user_id, exc)
            return 0

    # ── Cache management ──────────────────────────────────────────────────────

    def cache_metrics(self) -> CacheMetrics:
        return CacheMetrics(
            stats=self.cache.stats(), size=self.cache.size(), keys=self.cache.keys()
        )

    def start_sweeper(self) -> CacheSweeper:
        """Start a background sweeper on the shared cache at ``sweep_interval_s``.

        The caller owns the returned sweeper and must ``stop()`` it.
        """
        sweeper = CacheSweeper.from_config(self.cache, self.cache_config)
        sweeper.start()
        return sweeper

    def clear_caches(self) -> None:
        self.cache.clear()
