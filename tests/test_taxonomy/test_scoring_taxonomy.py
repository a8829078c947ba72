"""Tests for scoring taxonomy integrity: enums, ordering, slugs."""

from __future__ import annotations

import pytest

from race_scout.taxonomy.scoring_taxonomy import (
    Category,
    ConfidenceLevel,
    GlobalStatsQuality,
    LicenseLevel,
    MetricGrouping,
    RecommendationMode,
    RiskLevel,
)


class TestRecommendationMode:
    def test_three_modes(self):
        assert {m.value for m in RecommendationMode} == {
            "balanced", "irating_push", "safety_recovery",
        }

    def test_string_lookup(self):
        assert RecommendationMode("irating_push") is RecommendationMode.IRATING_PUSH


class TestSlugEnums:
    @pytest.mark.parametrize(
        "enum_cls",
        [RecommendationMode, RiskLevel, ConfidenceLevel, GlobalStatsQuality, Category, MetricGrouping],
    )
    def test_lowercase_slugs(self, enum_cls):
        for member in enum_cls:
            assert " " not in member.value
            assert member.value == member.value.lower()

    def test_confidence_values(self):
        assert {m.value for m in ConfidenceLevel} == {"high", "estimated", "no_data"}


class TestLicenseLevel:
    def test_groups_ascend(self):
        groups = [level.group for level in LicenseLevel]
        assert groups == [1, 2, 3, 4, 5, 6]

    def test_rookie_lowest_pro_highest(self):
        assert LicenseLevel.ROOKIE.group == 1
        assert LicenseLevel.PRO.group == 6
