"""
Unit tests for shadow_evaluation module.
"""

import pytest

from smart_routing.config import ShadowEvaluationConfig
from smart_routing.shadow_evaluation import ShadowEvaluationEngine, ShadowMetrics
from smart_routing.types import AgentRole, InsufficientMetricsError, Recommendation

ROLE = AgentRole.FIXER


def metrics(model, **overrides):
    fields = dict(
        model=model,
        role=ROLE,
        samples=60,
        success_rate=0.9,
        avg_latency_ms=1000.0,
        p95_latency_ms=2000.0,
        avg_cost_usd=0.01,
        quality_score=70.0,
        fallback_rate=0.05,
    )
    fields.update(overrides)
    return ShadowMetrics(**fields)


def evaluate(candidate, baseline, config=None):
    engine = ShadowEvaluationEngine(config)
    engine.record_metrics(candidate)
    engine.record_metrics(baseline)
    return engine.evaluate_candidate(candidate.model, baseline.model, ROLE)


class TestRecordMetrics:
    """Tests for the metrics store."""

    def test_overwrites_snapshot(self):
        engine = ShadowEvaluationEngine()
        engine.record_metrics(metrics("a/x", samples=10))
        engine.record_metrics(metrics("a/x", samples=50))

        assert engine.get_metrics(ROLE, "a/x").samples == 50

    def test_missing_metrics_raise(self):
        engine = ShadowEvaluationEngine()
        engine.record_metrics(metrics("a/x"))

        with pytest.raises(InsufficientMetricsError) as exc_info:
            engine.evaluate_candidate("a/x", "b/y", ROLE)

        assert exc_info.value.missing == ["b/y"]


class TestEvaluateCandidate:
    """Tests for promote/hold/rollback decisions."""

    def test_disabled_holds(self):
        result = evaluate(
            metrics("a/x", success_rate=0.5), metrics("b/y"), ShadowEvaluationConfig(enabled=False)
        )
        assert result.recommendation == Recommendation.HOLD
        assert result.confidence == 0

    def test_insufficient_candidate_samples(self):
        result = evaluate(metrics("a/x", samples=10, success_rate=0.2), metrics("b/y"))

        assert result.recommendation == Recommendation.HOLD
        assert result.reasons[0].startswith("Insufficient samples")

    def test_insufficient_baseline_samples(self):
        result = evaluate(metrics("a/x"), metrics("b/y", samples=5))
        assert result.recommendation == Recommendation.HOLD

    def test_clear_improvement_promotes(self):
        candidate = metrics("a/x", success_rate=0.97, avg_latency_ms=700.0, fallback_rate=0.02)
        result = evaluate(candidate, metrics("b/y"))

        assert result.recommendation == Recommendation.PROMOTE
        assert result.composite_score > 0.06

    def test_neutral_holds(self):
        result = evaluate(metrics("a/x", success_rate=0.91), metrics("b/y"))

        assert result.recommendation == Recommendation.HOLD
        assert result.reasons[0].startswith("Performance change is neutral")

    def test_success_drop_of_eight_points_rolls_back(self):
        """Exactly eight points down is enough, even with better latency and cost."""
        candidate = metrics("a/x", success_rate=0.82, avg_latency_ms=500.0, avg_cost_usd=0.001)
        result = evaluate(candidate, metrics("b/y"))

        assert result.recommendation == Recommendation.ROLLBACK

    def test_fallback_ceiling_rolls_back(self):
        result = evaluate(metrics("a/x", fallback_rate=0.21), metrics("b/y"))
        assert result.recommendation == Recommendation.ROLLBACK

    def test_latency_regression_rolls_back(self):
        result = evaluate(metrics("a/x", avg_latency_ms=1400.0), metrics("b/y"))

        assert result.recommendation == Recommendation.ROLLBACK
        assert "Latency regressed materially." in result.reasons

    def test_composite_drop_rolls_back(self):
        candidate = metrics("a/x", success_rate=0.85, avg_cost_usd=0.02, quality_score=40.0)
        result = evaluate(candidate, metrics("b/y"))

        assert result.recommendation == Recommendation.ROLLBACK
        assert "Cost increased materially." in result.reasons

    def test_confidence_scales_with_samples(self):
        half = evaluate(metrics("a/x", samples=30), metrics("b/y", samples=300))
        full = evaluate(metrics("a/x", samples=90), metrics("b/y", samples=300))

        assert half.confidence == pytest.approx(0.5)
        assert full.confidence == 1.0

    def test_zero_baseline_latency_and_cost(self):
        """Zero baselines contribute no relative delta."""
        baseline = metrics("b/y", avg_latency_ms=0.0, avg_cost_usd=0.0)
        result = evaluate(metrics("a/x", avg_latency_ms=0.0, avg_cost_usd=0.0), baseline)

        assert result.composite_score == pytest.approx(0.0)
        assert result.recommendation == Recommendation.HOLD
