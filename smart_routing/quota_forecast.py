"""
Subscription quota forecasting.

Projects remaining daily allowance forward from a trailing usage average
so the planner can see exhaustion coming before it happens.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum

from .types import AgentRole, QuotaStatus

# Trailing samples considered for the daily rate
MAX_HISTORY_SAMPLES = 14


class RiskLevel(str, Enum):
    """Discretized exhaustion risk for one projected day."""

    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass(frozen=True)
class UsageSnapshot:
    """Requests observed on one day, optionally broken down by role."""

    date: datetime
    calls: int
    by_role: dict[AgentRole, int] = field(default_factory=dict)


@dataclass(frozen=True)
class QuotaForecastPoint:
    """One projected day."""

    date: datetime
    predicted_usage: int
    predicted_remaining: int
    risk_level: RiskLevel


@dataclass(frozen=True)
class QuotaForecast:
    """Day-by-day projection with an optional exhaustion date."""

    confidence: float
    points: list[QuotaForecastPoint]
    recommendations: list[str]
    predicted_exhaustion: datetime | None = None

    @property
    def exhaustion_predicted(self) -> bool:
        return self.predicted_exhaustion is not None


def risk_level(remaining: int, baseline: int) -> RiskLevel:
    """Risk from remaining allowance relative to the starting allowance."""
    if remaining <= 0:
        return RiskLevel.CRITICAL
    if baseline <= 0:
        return RiskLevel.NONE
    pct = remaining / baseline
    if pct < 0.1:
        return RiskLevel.CRITICAL
    if pct < 0.25:
        return RiskLevel.HIGH
    if pct < 0.5:
        return RiskLevel.MEDIUM
    if pct < 0.75:
        return RiskLevel.LOW
    return RiskLevel.NONE


def forecast_confidence(sample_count: int) -> float:
    """Deeper history gives a more trustworthy rate."""
    if sample_count >= 7:
        return 0.82
    if sample_count >= 3:
        return 0.65
    return 0.45


def forecast_quota(
    quota: QuotaStatus,
    history: list[UsageSnapshot],
    horizon_days: int = 14,
    start: datetime | None = None,
) -> QuotaForecast:
    """
    Project daily remaining quota over a horizon.

    Args:
        quota: Current allowance snapshot
        history: Daily usage samples, oldest first; only the trailing 14 count
        horizon_days: Days to project (at least 1)
        start: Date of the first projected day (defaults to quota.last_checked_at)

    Returns:
        QuotaForecast with per-day points and recommendations
    """
    horizon_days = max(1, horizon_days)
    recent = history[-MAX_HISTORY_SAMPLES:]
    average = sum(s.calls for s in recent) / len(recent) if recent else 0.0
    daily_average = max(1, round(average))

    first_day = start if start is not None else quota.last_checked_at
    points: list[QuotaForecastPoint] = []
    predicted_exhaustion: datetime | None = None
    remaining = quota.daily_remaining

    for index in range(horizon_days):
        day = first_day + timedelta(days=index)
        remaining -= daily_average
        if predicted_exhaustion is None and remaining <= 0:
            predicted_exhaustion = day
        points.append(
            QuotaForecastPoint(
                date=day,
                predicted_usage=daily_average,
                predicted_remaining=max(0, remaining),
                risk_level=risk_level(remaining, quota.daily_remaining),
            )
        )

    if predicted_exhaustion is not None:
        recommendations = [
            "Shift high-volume roles to paygo or alternate providers.",
            "Increase fallback depth to reduce hard failures near quota exhaustion.",
        ]
    else:
        recommendations = ["Quota forecast is healthy; keep hybrid mode and monitor weekly."]

    return QuotaForecast(
        confidence=forecast_confidence(len(recent)),
        points=points,
        recommendations=recommendations,
        predicted_exhaustion=predicted_exhaustion,
    )


__all__ = [
    "QuotaForecast",
    "QuotaForecastPoint",
    "RiskLevel",
    "UsageSnapshot",
    "forecast_quota",
    "risk_level",
]
