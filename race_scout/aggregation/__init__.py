"""
Statistics aggregation: the provider interface and the batch layer over it.

Modules
-------
provider : StatisticsProvider ABC + PerformanceMetric / SeriesTrackAggregate
           + converters into GlobalStats / OverallStats / UserHistory.
batch    : BatchAggregator: cached, bounded-concurrency batch fetches with
           per-item fallback to default statistics.
"""
