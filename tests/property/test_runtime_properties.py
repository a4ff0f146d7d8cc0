"""
Property-based tests for the runtime feedback components.
"""

from hypothesis import given, settings
from hypothesis import strategies as st

from smart_routing.experiments import (
    ExperimentVariant,
    RoutingExperiment,
    RoutingExperimentManager,
    allocation_bucket,
)
from smart_routing.federated import FederatedUpdate, aggregate_federated_updates
from smart_routing.shadow_evaluation import ShadowEvaluationEngine, ShadowMetrics
from smart_routing.types import AgentRole, Recommendation

rates = st.floats(min_value=0.0, max_value=1.0, allow_nan=False)
latencies = st.floats(min_value=1.0, max_value=20_000.0, allow_nan=False)
costs = st.floats(min_value=0.0, max_value=5.0, allow_nan=False)


@st.composite
def shadow_metrics(draw, model, samples=st.integers(0, 500)):
    return ShadowMetrics(
        model=model,
        role=AgentRole.FIXER,
        samples=draw(samples),
        success_rate=draw(rates),
        avg_latency_ms=draw(latencies),
        p95_latency_ms=draw(latencies),
        avg_cost_usd=draw(costs),
        quality_score=draw(st.floats(min_value=0.0, max_value=100.0, allow_nan=False)),
        fallback_rate=draw(rates),
    )


def evaluate(candidate, baseline):
    engine = ShadowEvaluationEngine()
    engine.record_metrics(candidate)
    engine.record_metrics(baseline)
    return engine.evaluate_candidate(candidate.model, baseline.model, AgentRole.FIXER)


class TestShadowEvaluationProperties:
    """Invariants of shadow evaluation."""

    @given(shadow_metrics("cand/x"), shadow_metrics("base/y"))
    @settings(max_examples=200)
    def test_sample_gate(self, candidate, baseline):
        """Below the sample floor on either side the answer is always hold."""
        result = evaluate(candidate, baseline)

        if min(candidate.samples, baseline.samples) < 30:
            assert result.recommendation == Recommendation.HOLD
            assert result.confidence == 0.0
        assert 0.0 <= result.confidence <= 1.0

    @given(
        shadow_metrics("cand/x", samples=st.integers(30, 500)),
        shadow_metrics("base/y", samples=st.integers(30, 500)),
    )
    @settings(max_examples=200)
    def test_large_success_drop_always_rolls_back(self, candidate, baseline):
        """An eight-point success drop rolls back whatever else improved."""
        if baseline.success_rate - candidate.success_rate >= 0.08:
            assert evaluate(candidate, baseline).recommendation == Recommendation.ROLLBACK


class TestFederatedProperties:
    """Invariants of federated aggregation."""

    @given(
        st.dictionaries(st.text(min_size=1, max_size=8), st.floats(-10, 10, allow_nan=False), max_size=5),
        st.integers(0, 1000),
    )
    @settings(max_examples=100)
    def test_single_update_identity(self, rewards, samples):
        result = aggregate_federated_updates([FederatedUpdate(model_rewards=rewards, sample_count=samples)])

        assert result.participants == 1
        assert result.model_rewards.keys() == rewards.keys()
        for key, value in rewards.items():
            assert abs(result.model_rewards[key] - value) <= 1e-9 * max(1.0, abs(value))

    @given(
        st.lists(
            st.tuples(st.floats(-10, 10, allow_nan=False), st.integers(0, 1000)), min_size=1, max_size=6
        )
    )
    @settings(max_examples=100)
    def test_mean_within_bounds(self, rows):
        updates = [FederatedUpdate(model_rewards={"m": value}, sample_count=n) for value, n in rows]
        merged = aggregate_federated_updates(updates).model_rewards["m"]
        values = [value for value, _ in rows]

        assert min(values) - 1e-9 <= merged <= max(values) + 1e-9


class TestExperimentProperties:
    """Invariants of variant bucketing."""

    @given(st.text(max_size=30), st.text(max_size=30))
    @settings(max_examples=200)
    def test_bucket_stable_and_bounded(self, experiment_id, subject_id):
        bucket = allocation_bucket(experiment_id, subject_id)

        assert 0 <= bucket < 100
        assert bucket == allocation_bucket(experiment_id, subject_id)

    @given(st.integers(0, 100), st.text(max_size=20))
    @settings(max_examples=100)
    def test_pick_matches_allocation(self, control_share, subject_id):
        manager = RoutingExperimentManager()
        manager.register(
            RoutingExperiment(
                id="exp",
                name="split",
                variants=[ExperimentVariant("control"), ExperimentVariant("canary")],
                allocation={"control": control_share, "canary": 100 - control_share},
            )
        )
        variant = manager.pick_variant("exp", subject_id)
        expected = "control" if allocation_bucket("exp", subject_id) < control_share else "canary"

        assert variant.id == expected
