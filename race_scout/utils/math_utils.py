"""
Numeric helpers shared by the scoring modules.

Both helpers let non-finite values through unchanged, so a caller's
``math.isfinite`` guard still sees a NaN that came from bad input instead of
a value that ``min``/``max`` silently replaced with a bound.
"""

from __future__ import annotations

import math


def clamp(value: float, lo: float, hi: float) -> float:
    """Clamp ``value`` to [lo, hi]; NaN and infinities are returned as-is."""
    if not math.isfinite(value):
        return value
    return max(lo, min(hi, value))


def round_half_up(value: float) -> int:
    """Round to the nearest int with halves going up (72.5 → 73, −2.5 → −2).

    Python's ``round()`` sends halves to the even neighbour, which would
    score a 72.5 average as 72.
    """
    return int(math.floor(value + 0.5))
