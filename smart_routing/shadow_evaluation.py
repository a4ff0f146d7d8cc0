"""
Shadow evaluation: candidate vs baseline on live metrics.

Keeps the latest rolling snapshot per (role, model) and turns a pair of
snapshots into a promote / hold / rollback recommendation. A rollback is
expected to trip a time-boxed circuit breaker; that is left to the caller
(see runtime.evaluate_shadow_canary).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from .config import ShadowEvaluationConfig
from .types import (
    AgentRole,
    BillingMode,
    InsufficientMetricsError,
    Recommendation,
)

logger = logging.getLogger(__name__)

# Absorbs float error so a drop of exactly the threshold still counts
_EPSILON = 1e-9


@dataclass(frozen=True)
class ShadowMetrics:
    """Rolling performance snapshot for one model serving one role."""

    model: str
    role: AgentRole
    samples: int
    success_rate: float
    avg_latency_ms: float
    p95_latency_ms: float
    avg_cost_usd: float
    quality_score: float
    fallback_rate: float
    billing_mode: BillingMode | None = None


@dataclass(frozen=True)
class ShadowEvaluationResult:
    """Recommendation for a candidate with the metrics it was based on."""

    candidate_model: str
    baseline_model: str
    role: AgentRole
    candidate_metrics: ShadowMetrics
    baseline_metrics: ShadowMetrics
    recommendation: Recommendation
    confidence: float
    reasons: list[str] = field(default_factory=list)
    composite_score: float = 0.0


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


class ShadowEvaluationEngine:
    """
    Store of shadow metrics plus the comparison rules.

    Example:
        engine = ShadowEvaluationEngine()
        engine.record_metrics(candidate_snapshot)
        engine.record_metrics(baseline_snapshot)
        result = engine.evaluate_candidate("a/x", "b/y", AgentRole.FIXER)
    """

    def __init__(self, config: ShadowEvaluationConfig | None = None):
        self.config = config or ShadowEvaluationConfig()
        self._metrics: dict[tuple[AgentRole, str], ShadowMetrics] = {}

    def record_metrics(self, metrics: ShadowMetrics) -> None:
        """Overwrite the snapshot for (role, model)."""
        self._metrics[(metrics.role, metrics.model)] = metrics

    def get_metrics(self, role: AgentRole, model: str) -> ShadowMetrics | None:
        return self._metrics.get((role, model))

    def evaluate_candidate(
        self,
        candidate_model: str,
        baseline_model: str,
        role: AgentRole,
    ) -> ShadowEvaluationResult:
        """
        Compare a candidate to the baseline for one role.

        Raises:
            InsufficientMetricsError: If either model has no recorded snapshot
        """
        candidate = self._metrics.get((role, candidate_model))
        baseline = self._metrics.get((role, baseline_model))

        missing = []
        if candidate is None:
            missing.append(candidate_model)
        if baseline is None:
            missing.append(baseline_model)
        if missing:
            raise InsufficientMetricsError(role, missing)

        def result(
            recommendation: Recommendation,
            confidence: float,
            reasons: list[str],
            composite: float = 0.0,
        ) -> ShadowEvaluationResult:
            return ShadowEvaluationResult(
                candidate_model=candidate_model,
                baseline_model=baseline_model,
                role=role,
                candidate_metrics=candidate,
                baseline_metrics=baseline,
                recommendation=recommendation,
                confidence=confidence,
                reasons=reasons,
                composite_score=composite,
            )

        cfg = self.config
        if not cfg.enabled:
            return result(Recommendation.HOLD, 0.0, ["Shadow evaluation disabled."])

        min_samples = min(candidate.samples, baseline.samples)
        if min_samples < cfg.min_samples:
            return result(
                Recommendation.HOLD,
                0.0,
                [f"Insufficient samples: {min_samples}/{cfg.min_samples}"],
            )

        success_delta = candidate.success_rate - baseline.success_rate
        latency_delta = (
            (baseline.avg_latency_ms - candidate.avg_latency_ms) / baseline.avg_latency_ms
            if baseline.avg_latency_ms > 0
            else 0.0
        )
        cost_delta = (
            (baseline.avg_cost_usd - candidate.avg_cost_usd) / baseline.avg_cost_usd
            if baseline.avg_cost_usd > 0
            else 0.0
        )
        fallback_delta = baseline.fallback_rate - candidate.fallback_rate
        quality_delta = (candidate.quality_score - baseline.quality_score) / 100

        composite = (
            success_delta * 0.4
            + latency_delta * 0.2
            + cost_delta * 0.15
            + fallback_delta * 0.15
            + quality_delta * 0.1
        )

        hard_triggers: list[str] = []
        if success_delta <= -cfg.max_success_drop + _EPSILON:
            hard_triggers.append(f"Success rate dropped {-success_delta * 100:.1f} points")
        fallback_ceiling = max(cfg.min_fallback_ceiling, baseline.fallback_rate * cfg.fallback_regression_factor)
        if candidate.fallback_rate > fallback_ceiling:
            hard_triggers.append(
                f"Fallback rate {candidate.fallback_rate:.2f} exceeds ceiling {fallback_ceiling:.2f}"
            )
        if candidate.avg_latency_ms > baseline.avg_latency_ms * cfg.latency_regression_factor:
            hard_triggers.append(
                f"Latency {candidate.avg_latency_ms:.0f}ms exceeds "
                f"{cfg.latency_regression_factor:g}x baseline"
            )

        reasons: list[str] = []
        if hard_triggers or composite < -cfg.regression_threshold:
            recommendation = Recommendation.ROLLBACK
            reasons.append(f"Regression detected: {composite * 100:.1f}% composite change")
            reasons.extend(hard_triggers)
        elif composite > cfg.promote_threshold:
            recommendation = Recommendation.PROMOTE
            reasons.append(f"Candidate outperforms baseline by {composite * 100:.1f}%")
        else:
            recommendation = Recommendation.HOLD
            reasons.append(f"Performance change is neutral: {composite * 100:.1f}%")

        if latency_delta < -0.1:
            reasons.append("Latency regressed materially.")
        if cost_delta < -0.1:
            reasons.append("Cost increased materially.")
        if fallback_delta < -0.05:
            reasons.append("Fallback rate increased materially.")

        confidence = _clamp(min_samples / (cfg.min_samples * 2), 0.0, 1.0)

        logger.info(
            f"Shadow evaluation {role.value}: {candidate_model} vs {baseline_model} -> "
            f"{recommendation.value} (composite={composite:.3f})"
        )
        return result(recommendation, confidence, reasons, composite)


__all__ = [
    "ShadowEvaluationEngine",
    "ShadowEvaluationResult",
    "ShadowMetrics",
]
