"""
Tests for race_scout/utils/math_utils.py.

What we test
------------
clamp():
  - Finite values are bounded; NaN and infinities pass through untouched.

round_half_up():
  - Exact halves round up, including negative halves; other values round
    to the nearest int.
"""

from __future__ import annotations

import math

import pytest

from race_scout.utils.math_utils import clamp, round_half_up


class TestClamp:
    @pytest.mark.parametrize("value, expected", [(-3.0, 0.0), (4.0, 4.0), (12.0, 10.0)])
    def test_finite_values_bounded(self, value, expected):
        assert clamp(value, 0.0, 10.0) == expected

    def test_nan_passes_through(self):
        assert math.isnan(clamp(math.nan, -5.0, 5.0))

    @pytest.mark.parametrize("value", [math.inf, -math.inf])
    def test_infinity_passes_through(self, value):
        assert clamp(value, -5.0, 5.0) == value


class TestRoundHalfUp:
    @pytest.mark.parametrize(
        "value, expected",
        [(72.5, 73), (87.5, 88), (0.5, 1), (2.5, 3), (-2.5, -2), (72.49, 72), (72.51, 73), (40.0, 40)],
    )
    def test_rounding(self, value, expected):
        assert round_half_up(value) == expected

    def test_returns_int(self):
        assert isinstance(round_half_up(12.5), int)
