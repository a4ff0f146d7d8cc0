"""
Routing experiments and canary trend decisions.

Subjects are bucketed into variants by a stable hash so repeat calls
always land in the same variant. Variant metrics accumulate in a rolling
window and are compared against a baseline variant to decide whether a
canary should be promoted, held or rolled back.
"""

from __future__ import annotations

import hashlib
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime

from .config import CanaryTrendConfig
from .types import (
    AgentModelAssignment,
    AgentRole,
    CanaryTrendSummary,
    InvalidAllocationError,
    Recommendation,
    RuntimeMetrics,
    UnknownExperimentError,
)

logger = logging.getLogger(__name__)

# Rows kept per (experiment, variant)
METRICS_WINDOW = 2_000


@dataclass(frozen=True)
class ExperimentVariant:
    """One arm of an experiment, optionally overriding some role assignments."""

    id: str
    description: str = ""
    assignment_overrides: dict[AgentRole, AgentModelAssignment] = field(default_factory=dict)


@dataclass(frozen=True)
class RoutingExperiment:
    """Named experiment with traffic allocation (percent) per variant id."""

    id: str
    name: str
    variants: list[ExperimentVariant]
    allocation: dict[str, float]
    started_at: datetime | None = None


@dataclass(frozen=True)
class ExperimentResult:
    """Aggregate metrics of one variant."""

    variant_id: str
    sample_count: int  # Recorded metric rows
    total_requests: int  # Sum of the rows' own sample counts
    avg_success_rate: float
    avg_latency_ms: float
    avg_cost_usd: float


@dataclass(frozen=True)
class CanaryVariantDecision:
    """Canary recommendation for one variant."""

    variant_id: str
    recommendation: Recommendation
    sample_count: int
    composite_score: float
    reasons: list[str]


def allocation_bucket(experiment_id: str, subject_id: str) -> int:
    """Stable bucket in [0, 100) for a subject within an experiment."""
    digest = hashlib.sha256(f"{experiment_id}|{subject_id}".encode()).hexdigest()
    return int(digest[:8], 16) % 100


class RoutingExperimentManager:
    """Registry of experiments and their per-variant metrics."""

    def __init__(self, metrics_window: int = METRICS_WINDOW):
        self.metrics_window = metrics_window
        self._experiments: dict[str, RoutingExperiment] = {}
        self._metrics: dict[tuple[str, str], list[RuntimeMetrics]] = {}

    def register(self, experiment: RoutingExperiment) -> None:
        """
        Register (or replace) an experiment.

        Raises:
            InvalidAllocationError: If there are no variants, the allocation
                names an unknown variant, or it does not sum to 100
        """
        if not experiment.variants:
            raise InvalidAllocationError(experiment.id, detail="has no variants")
        unknown = sorted(set(experiment.allocation) - {v.id for v in experiment.variants})
        if unknown:
            raise InvalidAllocationError(
                experiment.id, detail=f"allocation names unknown variants: {', '.join(unknown)}"
            )
        total = sum(experiment.allocation.values())
        if round(total) != 100:
            raise InvalidAllocationError(experiment.id, total)
        self._experiments[experiment.id] = experiment
        logger.info(
            f"Registered experiment {experiment.id} with variants "
            f"{[v.id for v in experiment.variants]}"
        )

    def get(self, experiment_id: str) -> RoutingExperiment:
        experiment = self._experiments.get(experiment_id)
        if experiment is None:
            raise UnknownExperimentError(experiment_id)
        return experiment

    def pick_variant(self, experiment_id: str, subject_id: str) -> ExperimentVariant:
        """
        Deterministically assign a subject to a variant.

        Raises:
            UnknownExperimentError: If the experiment is not registered
        """
        experiment = self.get(experiment_id)
        bucket = allocation_bucket(experiment_id, subject_id)
        cursor = 0.0
        for variant in experiment.variants:
            cursor += experiment.allocation.get(variant.id, 0)
            if bucket < cursor:
                return variant
        return experiment.variants[0]

    def apply_variant_overrides(
        self,
        assignments: dict[AgentRole, AgentModelAssignment],
        variant: ExperimentVariant,
    ) -> dict[AgentRole, AgentModelAssignment]:
        """Copy of the assignments with the variant's overrides applied."""
        output = dict(assignments)
        output.update(variant.assignment_overrides)
        return output

    def record_variant_metrics(
        self, experiment_id: str, variant_id: str, metrics: RuntimeMetrics
    ) -> None:
        rows = self._metrics.setdefault((experiment_id, variant_id), [])
        rows.append(metrics)
        if len(rows) > self.metrics_window:
            del rows[: len(rows) - self.metrics_window]

    def summarize(self, experiment_id: str) -> list[ExperimentResult]:
        """Per-variant averages in variant order; empty for unknown experiments."""
        experiment = self._experiments.get(experiment_id)
        if experiment is None:
            return []

        results = []
        for variant in experiment.variants:
            rows = self._metrics.get((experiment_id, variant.id), [])
            if not rows:
                results.append(ExperimentResult(variant.id, 0, 0, 0.0, 0.0, 0.0))
                continue
            count = len(rows)
            results.append(
                ExperimentResult(
                    variant_id=variant.id,
                    sample_count=count,
                    total_requests=sum(r.sample_count for r in rows),
                    avg_success_rate=sum(r.success_rate for r in rows) / count,
                    avg_latency_ms=sum(r.avg_latency_ms for r in rows) / count,
                    avg_cost_usd=sum(r.avg_cost_usd for r in rows) / count,
                )
            )
        return results


def evaluate_canary_trends(
    manager: RoutingExperimentManager,
    experiment_id: str,
    config: CanaryTrendConfig | None = None,
    baseline_variant_id: str | None = None,
) -> list[CanaryVariantDecision]:
    """
    Compare every variant to the baseline variant.

    The baseline is baseline_variant_id when it names a variant, else the
    first variant. Returns an empty list for unknown experiments.
    """
    cfg = config or CanaryTrendConfig()
    summary = manager.summarize(experiment_id)
    if not summary:
        return []

    baseline = next((r for r in summary if r.variant_id == baseline_variant_id), summary[0])

    decisions = []
    for row in summary:
        if row.variant_id == baseline.variant_id:
            decisions.append(
                CanaryVariantDecision(
                    row.variant_id, Recommendation.HOLD, row.sample_count, 0.0, ["Baseline variant."]
                )
            )
            continue

        if row.sample_count < cfg.min_samples or baseline.sample_count < cfg.min_samples:
            decisions.append(
                CanaryVariantDecision(
                    row.variant_id,
                    Recommendation.HOLD,
                    row.sample_count,
                    0.0,
                    [f"Insufficient samples: {row.sample_count}/{cfg.min_samples}"],
                )
            )
            continue

        success_delta = row.avg_success_rate - baseline.avg_success_rate
        latency_regression = (
            (row.avg_latency_ms - baseline.avg_latency_ms) / baseline.avg_latency_ms
            if baseline.avg_latency_ms > 0
            else 0.0
        )
        cost_increase = (
            (row.avg_cost_usd - baseline.avg_cost_usd) / baseline.avg_cost_usd
            if baseline.avg_cost_usd > 0
            else 0.0
        )
        composite = success_delta * 0.6 - latency_regression * 0.25 - cost_increase * 0.15

        if (
            success_delta <= -cfg.min_success_drop_pct
            or latency_regression >= cfg.max_latency_regression_pct
            or cost_increase >= cfg.max_cost_increase_pct
            or composite <= cfg.rollback_threshold
        ):
            recommendation = Recommendation.ROLLBACK
            reasons = ["Candidate regressed versus baseline."]
        elif composite >= cfg.promote_threshold and success_delta >= 0:
            recommendation = Recommendation.PROMOTE
            reasons = ["Candidate improved versus baseline."]
        else:
            recommendation = Recommendation.HOLD
            reasons = ["Trend is neutral."]

        decisions.append(
            CanaryVariantDecision(row.variant_id, recommendation, row.sample_count, composite, reasons)
        )

    for decision in decisions:
        logger.debug(
            f"Canary {experiment_id}/{decision.variant_id}: {decision.recommendation.value} "
            f"(composite={decision.composite_score:.3f})"
        )
    return decisions


def summarize_canary_trends(
    decisions: Iterable[CanaryVariantDecision],
    experiment_id: str | None = None,
) -> CanaryTrendSummary | None:
    """Reduce per-variant decisions to one plan-level action; None when empty."""
    decisions = list(decisions)
    if not decisions:
        return None

    promote = sum(1 for d in decisions if d.recommendation == Recommendation.PROMOTE)
    hold = sum(1 for d in decisions if d.recommendation == Recommendation.HOLD)
    rollback = sum(1 for d in decisions if d.recommendation == Recommendation.ROLLBACK)

    if rollback > 0:
        action = Recommendation.ROLLBACK
    elif promote > 0 and hold == 0:
        action = Recommendation.PROMOTE
    else:
        action = Recommendation.HOLD

    return CanaryTrendSummary(
        promote_count=promote,
        hold_count=hold,
        rollback_count=rollback,
        recommended_action=action,
        experiment_id=experiment_id,
    )


__all__ = [
    "CanaryVariantDecision",
    "ExperimentResult",
    "ExperimentVariant",
    "RoutingExperiment",
    "RoutingExperimentManager",
    "allocation_bucket",
    "evaluate_canary_trends",
    "summarize_canary_trends",
]
