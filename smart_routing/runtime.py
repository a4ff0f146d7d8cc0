"""
Long-lived routing runtime.

Bundles the stateful stores (anomaly history and circuit breakers, cost
tracker, experiments, shadow metrics) into one handle that callers build
once and pass around. The functions here are the entry points periodic
jobs use to feed live metrics in and get canary decisions out.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from .anomaly import CircuitBreakerRegistry, RoutingAnomalyDetector
from .config import RoutingEngineConfig
from .cost_tracker import CostBudget, CostTracker
from .experiments import CanaryVariantDecision, RoutingExperimentManager, evaluate_canary_trends
from .shadow_evaluation import ShadowEvaluationEngine, ShadowEvaluationResult, ShadowMetrics
from .types import AgentRole, BillingMode, Recommendation, RuntimeMetrics

logger = logging.getLogger(__name__)


@dataclass
class RoutingRuntime:
    config: RoutingEngineConfig
    anomaly_detector: RoutingAnomalyDetector
    cost_tracker: CostTracker
    experiments: RoutingExperimentManager
    shadow: ShadowEvaluationEngine


def create_routing_runtime(
    config: RoutingEngineConfig | None = None,
    budget: CostBudget | None = None,
    clock: Callable[[], float] | None = None,
) -> RoutingRuntime:
    """Build a runtime with fresh stores."""
    config = config or RoutingEngineConfig()
    breakers = CircuitBreakerRegistry(
        default_ttl_seconds=config.circuit_breaker.default_ttl_seconds, clock=clock
    )
    return RoutingRuntime(
        config=config,
        anomaly_detector=RoutingAnomalyDetector(breakers=breakers),
        cost_tracker=CostTracker(budget),
        experiments=RoutingExperimentManager(),
        shadow=ShadowEvaluationEngine(config.shadow),
    )


@dataclass(frozen=True)
class RuntimeMetricIngest:
    """One metrics batch for a (role, model), optionally tagged to an experiment."""

    role: AgentRole
    model: str
    metrics: RuntimeMetrics
    quality_score: float
    billing_mode: BillingMode | None = None
    experiment_id: str | None = None
    variant_id: str | None = None
    subject_id: str | None = None


def ingest_runtime_metrics(runtime: RoutingRuntime, ingest: RuntimeMetricIngest) -> str | None:
    """
    Feed one metrics batch to the anomaly detector, shadow store and experiment.

    Returns:
        The experiment variant the batch was recorded under, if any

    Raises:
        ValueError: If an experiment is named without a variant or subject id
        UnknownExperimentError: If the variant must be picked for an unknown experiment
    """
    metrics = ingest.metrics
    runtime.anomaly_detector.record(ingest.role, ingest.model, metrics)
    runtime.shadow.record_metrics(
        ShadowMetrics(
            model=ingest.model,
            role=ingest.role,
            samples=metrics.sample_count,
            success_rate=metrics.success_rate,
            avg_latency_ms=metrics.avg_latency_ms,
            p95_latency_ms=metrics.p95_latency_ms,
            avg_cost_usd=metrics.avg_cost_usd,
            quality_score=ingest.quality_score,
            fallback_rate=metrics.fallback_rate,
            billing_mode=ingest.billing_mode,
        )
    )

    logger.debug(
        f"Ingested {metrics.sample_count} samples for {ingest.role.value} {ingest.model}"
    )

    if not ingest.experiment_id:
        return None

    variant_id = ingest.variant_id
    if not variant_id:
        if not ingest.subject_id:
            raise ValueError("subject_id or variant_id is required for experiment ingest")
        variant_id = runtime.experiments.pick_variant(ingest.experiment_id, ingest.subject_id).id

    runtime.experiments.record_variant_metrics(ingest.experiment_id, variant_id, metrics)
    return variant_id


def evaluate_shadow_canary(
    runtime: RoutingRuntime,
    candidate_model: str,
    baseline_model: str,
    role: AgentRole,
    circuit_breaker_ttl_seconds: float | None = None,
) -> ShadowEvaluationResult:
    """Shadow-evaluate a candidate and open its circuit on rollback."""
    evaluation = runtime.shadow.evaluate_candidate(candidate_model, baseline_model, role)

    if evaluation.recommendation == Recommendation.ROLLBACK:
        reason = evaluation.reasons[0] if evaluation.reasons else "shadow regression detected"
        runtime.anomaly_detector.open_circuit(
            role, candidate_model, reason, circuit_breaker_ttl_seconds
        )

    return evaluation


def evaluate_experiment_canary_trends(
    runtime: RoutingRuntime,
    experiment_id: str,
    baseline_variant_id: str | None = None,
) -> list[CanaryVariantDecision]:
    """Canary decisions for an experiment using the runtime's canary config."""
    return evaluate_canary_trends(
        runtime.experiments,
        experiment_id,
        config=runtime.config.canary,
        baseline_variant_id=baseline_variant_id,
    )


__all__ = [
    "RoutingRuntime",
    "RuntimeMetricIngest",
    "create_routing_runtime",
    "evaluate_experiment_canary_trends",
    "evaluate_shadow_canary",
    "ingest_runtime_metrics",
]
