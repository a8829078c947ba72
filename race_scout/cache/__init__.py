"""
Caching layer shared by the batch aggregator and the ranker.

Modules
-------
ttl_cache : TTLCache (get/set/delete/clear/sweep + stats) and CacheSweeper.
keys      : Key builders per key space + ttl_for().
"""
