"""
Plan assembly.

Runs the beam search baseline, overlays higher-precedence layers per role,
builds fallback chains and explanations, and summarizes the result into a
DynamicModelPlan.
"""

from __future__ import annotations

import hashlib
import json
import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from .beam_search import build_ranked_alternatives, select_with_beam_search, to_assignment
from .config import SelectionConfig
from .experiments import CanaryVariantDecision, summarize_canary_trends
from .explain import RoutingDecisionExplanation, explain_routing_decision
from .precedence import PrecedenceInputs, resolve_precedence
from .preferences import match_catalog_id, resolve_preferred_model
from .quota_forecast import QuotaForecast, UsageSnapshot, forecast_quota
from .scoring import score_candidate
from .types import (
    ROLE_ORDER,
    AgentModelAssignment,
    AgentResolutionProvenance,
    AgentRole,
    BillingMode,
    CandidateModel,
    DynamicModelPlan,
    ExternalModelSignal,
    ModelPreferences,
    MonthlyPacing,
    NoViableCandidateError,
    PlanScoringMeta,
    PlanSummary,
    QuotaPressure,
    QuotaStatus,
    Recommendation,
    ResolutionLayer,
    RoutingPolicy,
    ScoringContext,
)

logger = logging.getLogger(__name__)


@dataclass
class PlanResult:
    plan: DynamicModelPlan
    explanations: dict[AgentRole, RoutingDecisionExplanation | None]
    forecast: QuotaForecast


def _dedupe(models: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    ordered = []
    for model in models:
        if model not in seen:
            seen.add(model)
            ordered.append(model)
    return ordered


def select_free_tier_model(
    catalog: Sequence[CandidateModel], config: SelectionConfig
) -> str | None:
    """
    The deterministic free-tier fallback for this catalog.

    The configured model when the catalog has it, else the first zero-cost
    model of a free-tier provider by (provider, model) order.
    """
    if config.free_tier_model:
        matched = match_catalog_id(config.free_tier_model, [c.model_id for c in catalog])
        if matched:
            return matched

    free = sorted(
        (c for c in catalog if c.provider_id in config.free_tier_providers and c.is_free),
        key=lambda c: (c.provider_id, c.model_id),
    )
    return free[0].model_id if free else None


def build_chain(
    head: Sequence[str],
    alternatives: Sequence[str],
    free_tier_model: str | None,
    max_length: int,
) -> list[str]:
    """
    Deduplicated, bounded fallback chain.

    The free-tier model takes the last slot unless it is the primary or the
    chain has no room beyond the primary. Never longer than max_length.
    """
    max_length = max(1, max_length)
    chain = _dedupe([*head, *alternatives])
    if free_tier_model and max_length >= 2 and chain and chain[0] != free_tier_model:
        chain = [m for m in chain if m != free_tier_model][: max_length - 1]
        chain.append(free_tier_model)
        return chain
    return chain[:max_length]


def prioritize_rollback_chains(
    chains: dict[AgentRole, list[str]], safe_model: str | None
) -> list[AgentRole]:
    """
    Move a known-safe model right behind each primary.

    The safe model is used where a chain contains it; otherwise the chain's
    current second entry is kept there. Returns the roles whose chains were
    reprioritized.
    """
    updated = []
    for role in ROLE_ORDER:
        chain = chains.get(role)
        if not chain:
            continue
        primary = chain[0]
        preferred = safe_model if safe_model in chain else (chain[1] if len(chain) > 1 else None)
        if not preferred or preferred == primary:
            continue
        tail = [m for m in chain[1:] if m != preferred]
        chains[role] = _dedupe([primary, preferred, *tail])
        updated.append(role)
    return updated


def quota_pressure_for(
    forecast: QuotaForecast, quota_status: QuotaStatus, config: SelectionConfig
) -> QuotaPressure:
    if forecast.exhaustion_predicted:
        return QuotaPressure.CRITICAL
    if quota_status.daily_remaining < config.quota_warning_daily_remaining:
        return QuotaPressure.WARNING
    return QuotaPressure.HEALTHY


def estimate_daily_cost(
    agents: dict[AgentRole, AgentModelAssignment],
    catalog_by_id: dict[str, CandidateModel],
    tokens_per_role: int,
) -> float:
    """Expected USD per day for the paygo assignments."""
    total = 0.0
    for assignment in agents.values():
        if assignment.billing_mode != BillingMode.PAYGO:
            continue
        candidate = catalog_by_id.get(assignment.model)
        if candidate is not None:
            total += candidate.blended_cost * tokens_per_role / 1_000_000
    return round(total, 4)


def plan_digest(plan: DynamicModelPlan) -> str:
    """Stable SHA-256 over the canonical serialized plan."""
    canonical = json.dumps(plan.to_dict(), sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def build_routing_plan(
    catalog: Sequence[CandidateModel],
    policy: RoutingPolicy,
    quota_status: QuotaStatus,
    pacing: MonthlyPacing | None = None,
    model_preferences: ModelPreferences | None = None,
    external_signals: dict[str, ExternalModelSignal] | None = None,
    precedence: PrecedenceInputs | None = None,
    usage_history: list[UsageSnapshot] | None = None,
    config: SelectionConfig | None = None,
    canary_decisions: list[CanaryVariantDecision] | None = None,
    experiment_id: str | None = None,
) -> PlanResult:
    """
    Compute a complete routing plan for every role.

    Args:
        catalog: Candidate models to choose from
        policy: Billing constraint and budgets
        quota_status: Current subscription allowance
        pacing: Optional monthly spend pacing
        model_preferences: Optional per-role ordered model ids (pinned layer)
        external_signals: Optional quality/latency/price feed keyed by model id
        precedence: Optional host overrides, manual plans and system defaults
        usage_history: Daily usage samples for the quota forecast
        config: Selection tuning; defaults apply when omitted
        canary_decisions: Per-variant canary decisions to fold into the plan
        experiment_id: Experiment the canary decisions belong to

    Returns:
        PlanResult with the plan, per-role explanations and the quota forecast

    Raises:
        NoViableCandidateError: If any role cannot be assigned
    """
    cfg = config or SelectionConfig()
    precedence = precedence or PrecedenceInputs()
    catalog = list(catalog)
    if not catalog:
        raise NoViableCandidateError(ROLE_ORDER[0], "catalog is empty")

    base_context = ScoringContext(
        policy=policy,
        quota_status=quota_status,
        provider_usage={},
        pacing=pacing,
        model_preferences=model_preferences,
        external_signals=external_signals,
    )

    baseline = select_with_beam_search(ROLE_ORDER, catalog, cfg, base_context)

    catalog_by_id = {c.model_id: c for c in catalog}
    catalog_ids = [c.model_id for c in catalog]
    free_tier_model = select_free_tier_model(catalog, cfg)

    agents: dict[AgentRole, AgentModelAssignment] = {}
    chains: dict[AgentRole, list[str]] = {}
    provenance: dict[AgentRole, AgentResolutionProvenance] = {}
    explanations: dict[AgentRole, RoutingDecisionExplanation | None] = {}

    for role in ROLE_ORDER:
        dynamic = baseline[role]
        ranked = build_ranked_alternatives(
            role,
            catalog,
            base_context,
            max_alternatives=cfg.max_alternatives_per_agent,
            max_per_provider=cfg.max_per_provider_per_agent,
            max_providers=cfg.max_providers_per_agent,
        )

        layers = precedence.layers_for(
            role,
            dynamic_model=dynamic.model,
            pinned_model=resolve_preferred_model(role, model_preferences, catalog_ids),
        )
        resolution = resolve_precedence(role, layers, catalog_ids)
        if resolution is None:
            raise NoViableCandidateError(role, "no resolution layer names a catalog model")

        scored = score_candidate(catalog_by_id[resolution.model], role, base_context)
        if resolution.layer == ResolutionLayer.DYNAMIC_RECOMMENDATION:
            selected = dynamic
        else:
            selected = to_assignment(scored)
            logger.info(
                f"{role.value}: {resolution.layer.value} selects {selected.model} "
                f"over dynamic {dynamic.model}"
            )

        head = [selected.model]
        manual = precedence.manual_plans.get(role)
        if resolution.layer == ResolutionLayer.MANUAL_USER_PLAN and manual is not None:
            for model in manual.models[1:]:
                matched = match_catalog_id(model, catalog_ids)
                if matched:
                    head.append(matched)

        agents[role] = selected
        chains[role] = build_chain(
            head, [s.model_id for s in ranked], free_tier_model, cfg.max_chain_length
        )
        provenance[role] = AgentResolutionProvenance(
            winner_layer=resolution.layer, winner_model=selected.model
        )
        # Explain the assigned model, which need not be the top scorer
        explained = [scored, *(s for s in ranked if s.model_id != selected.model)]
        explanations[role] = explain_routing_decision(role, explained, alternatives=3)

    forecast = forecast_quota(quota_status, usage_history or [], cfg.forecast_horizon_days)

    policy_label = policy.mode.value
    if pacing is not None:
        policy_label = f"{policy_label};pacing:{pacing.mode.value}"

    distribution: dict[str, int] = {}
    for assignment in agents.values():
        provider = catalog_by_id[assignment.model].provider_id
        distribution[provider] = distribution.get(provider, 0) + 1

    summary = PlanSummary(
        policy=policy_label,
        provider_distribution=distribution,
        estimated_daily_cost_usd=estimate_daily_cost(
            agents, catalog_by_id, cfg.expected_daily_tokens_per_role
        ),
        quota_pressure=quota_pressure_for(forecast, quota_status, cfg),
    )

    canary_trend = summarize_canary_trends(canary_decisions or [], experiment_id)
    if canary_trend is not None:
        summary.canary_trend = canary_trend
        if canary_trend.recommended_action == Recommendation.ROLLBACK:
            for role in prioritize_rollback_chains(chains, free_tier_model):
                provenance[role] = AgentResolutionProvenance(
                    winner_layer=ResolutionLayer.PROVIDER_FALLBACK_POLICY,
                    winner_model=agents[role].model,
                )
            logger.warning(
                f"Canary rollback for experiment {experiment_id}: fallback chains reprioritized"
            )

    plan = DynamicModelPlan(
        agents=agents,
        chains=chains,
        provenance=provenance,
        scoring=PlanScoringMeta(),
        explanations={role: e.summary for role, e in explanations.items() if e is not None},
        summary=summary,
    )
    logger.info(
        f"Routing plan built: policy={policy_label} providers={dict(sorted(distribution.items()))} "
        f"pressure={summary.quota_pressure.value}"
    )
    return PlanResult(plan=plan, explanations=explanations, forecast=forecast)


__all__ = [
    "PlanResult",
    "build_chain",
    "build_routing_plan",
    "estimate_daily_cost",
    "plan_digest",
    "prioritize_rollback_chains",
    "select_free_tier_model",
]
