"""
Unit tests for quota_forecast module.
"""

from datetime import datetime, timedelta

import pytest

from conftest import CHECKED_AT, make_quota

from smart_routing.quota_forecast import RiskLevel, UsageSnapshot, forecast_quota, risk_level


def history(*calls):
    return [UsageSnapshot(date=CHECKED_AT - timedelta(days=len(calls) - i), calls=c) for i, c in enumerate(calls)]


class TestRiskLevel:
    """Tests for per-day risk classification."""

    @pytest.mark.parametrize(
        "remaining,expected",
        [
            (0, RiskLevel.CRITICAL),
            (-5, RiskLevel.CRITICAL),
            (5, RiskLevel.CRITICAL),
            (20, RiskLevel.HIGH),
            (40, RiskLevel.MEDIUM),
            (60, RiskLevel.LOW),
            (90, RiskLevel.NONE),
        ],
    )
    def test_thresholds(self, remaining, expected):
        assert risk_level(remaining, 100) == expected

    def test_zero_baseline(self):
        assert risk_level(10, 0) == RiskLevel.NONE


class TestForecastQuota:
    """Tests for forecast_quota."""

    def test_no_history_uses_floor_rate(self):
        forecast = forecast_quota(make_quota(100, 2700), [], horizon_days=14)

        assert len(forecast.points) == 14
        assert all(p.predicted_usage == 1 for p in forecast.points)
        assert forecast.points[-1].predicted_remaining == 86
        assert forecast.predicted_exhaustion is None
        assert forecast.confidence == 0.45

    def test_exhaustion_date(self):
        forecast = forecast_quota(make_quota(100, 2700), history(30, 30, 30), horizon_days=14)

        # 70, 40, 10, -20 -> exhausted on the fourth projected day
        assert forecast.predicted_exhaustion == CHECKED_AT + timedelta(days=3)
        assert forecast.points[3].predicted_remaining == 0
        assert forecast.points[3].risk_level == RiskLevel.CRITICAL
        assert forecast.confidence == 0.65
        assert len(forecast.recommendations) == 2

    def test_healthy_recommendation(self):
        forecast = forecast_quota(make_quota(1000, 2700), history(5, 5, 5, 5, 5, 5, 5))

        assert forecast.predicted_exhaustion is None
        assert forecast.confidence == 0.82
        assert forecast.recommendations == ["Quota forecast is healthy; keep hybrid mode and monitor weekly."]

    def test_only_trailing_samples_count(self):
        """Old spikes beyond the trailing window do not move the rate."""
        samples = history(*([1000] * 5 + [10] * 14))
        forecast = forecast_quota(make_quota(500, 2700), samples, horizon_days=3)

        assert forecast.points[0].predicted_usage == 10

    def test_average_is_rounded(self):
        forecast = forecast_quota(make_quota(100, 2700), history(2, 3), horizon_days=1)
        # mean 2.5 rounds to even
        assert forecast.points[0].predicted_usage == 2

    def test_start_override(self):
        start = datetime(2026, 1, 1)
        forecast = forecast_quota(make_quota(100, 2700), [], horizon_days=2, start=start)

        assert [p.date for p in forecast.points] == [start, start + timedelta(days=1)]

    def test_horizon_at_least_one(self):
        forecast = forecast_quota(make_quota(100, 2700), [], horizon_days=0)
        assert len(forecast.points) == 1
