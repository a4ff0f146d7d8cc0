"""
Scoring engine: candidate x role x context -> scored candidate.

Scores are a linear sum of named, weighted components. Role behaviour is
driven entirely by the ROLE_WEIGHTS table; a new role is a new row, not a
new branch. Scoring is pure and deterministic: the same inputs always give
the same components in the same order.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError

from . import name_heuristics
from .types import (
    AccessMode,
    AgentRole,
    BillingMode,
    BudgetEnforcement,
    CandidateModel,
    ExternalModelSignal,
    ModelStatus,
    PacingMode,
    PolicyMode,
    ScoreComponent,
    ScoredCandidate,
    ScoreTier,
    ScoringContext,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RoleWeights:
    """Weight profile of a role over capability and cost dimensions."""

    reasoning: float
    toolcall: float
    attachment: float
    context: float
    speed: float
    cost: float


ROLE_WEIGHTS: dict[AgentRole, RoleWeights] = {
    AgentRole.ORCHESTRATOR: RoleWeights(reasoning=24, toolcall=20, attachment=2, context=12, speed=4, cost=4),
    AgentRole.ORACLE: RoleWeights(reasoning=28, toolcall=10, attachment=2, context=16, speed=2, cost=2),
    AgentRole.DESIGNER: RoleWeights(reasoning=10, toolcall=14, attachment=20, context=8, speed=4, cost=4),
    AgentRole.EXPLORER: RoleWeights(reasoning=2, toolcall=24, attachment=2, context=6, speed=18, cost=10),
    AgentRole.LIBRARIAN: RoleWeights(reasoning=8, toolcall=22, attachment=2, context=22, speed=6, cost=8),
    AgentRole.FIXER: RoleWeights(reasoning=10, toolcall=20, attachment=2, context=10, speed=14, cost=8),
}

# Roles whose output quality matters most when spend pacing trades quality for cost
ROLE_PACING_PRIORITY: dict[AgentRole, float] = {
    AgentRole.ORCHESTRATOR: 1.2,
    AgentRole.ORACLE: 1.2,
    AgentRole.DESIGNER: 1.0,
    AgentRole.EXPLORER: 0.85,
    AgentRole.LIBRARIAN: 0.85,
    AgentRole.FIXER: 0.85,
}

# Component weights
WEIGHT_ROLE_FIT = 1.0
WEIGHT_LATENCY_FIT = 0.6
WEIGHT_COST_FIT = 0.7
WEIGHT_BILLING_POLICY = 1.1
WEIGHT_QUOTA_PRESSURE = 0.9
WEIGHT_SPEND_PACING = 0.9
WEIGHT_QUOTA_PACING = 0.9
WEIGHT_DIVERSITY = 0.8
WEIGHT_MATURITY = 0.5
WEIGHT_PREFERENCE = 0.6
WEIGHT_EXTERNAL_SIGNAL = 1.0

# Tier cut-offs on the total score
TIER_THRESHOLDS: tuple[tuple[float, ScoreTier], ...] = (
    (80.0, ScoreTier.OPTIMAL),
    (55.0, ScoreTier.ACCEPTABLE),
    (35.0, ScoreTier.SUBOPTIMAL),
)

MAX_CONTEXT_TOKENS = 1_000_000

# Quota pressure once a hard-enforced allowance is used up
QUOTA_EXHAUSTED_HARD_PENALTY = 60.0


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def infer_billing_mode(candidate: CandidateModel) -> BillingMode:
    """Access-mode annotation wins; otherwise free models are subscription traffic."""
    if candidate.access_mode in (AccessMode.SUBSCRIPTION, AccessMode.VISIBLE):
        return BillingMode.SUBSCRIPTION
    if candidate.access_mode == AccessMode.PAID:
        return BillingMode.PAYGO
    return BillingMode.SUBSCRIPTION if candidate.is_free else BillingMode.PAYGO


def context_score(context_limit: int) -> float:
    return _clamp(min(context_limit, MAX_CONTEXT_TOKENS) / MAX_CONTEXT_TOKENS * 100, 0, 100)


def cost_score(candidate: CandidateModel) -> float:
    """Cheaper per token scores higher; free is the maximum."""
    blended = candidate.blended_cost
    if blended <= 0:
        return 100.0
    return _clamp(100 - blended * 3.5, 0, 100)


def billing_policy_score(billing_mode: BillingMode, context: ScoringContext) -> float:
    """Dominating penalty when the billing mode violates a strict policy."""
    mode = context.policy.mode
    if mode == PolicyMode.SUBSCRIPTION_ONLY:
        return 24.0 if billing_mode == BillingMode.SUBSCRIPTION else -200.0
    if mode == PolicyMode.PAYGO_ONLY:
        return 18.0 if billing_mode == BillingMode.PAYGO else -120.0
    return 10.0 if billing_mode == BillingMode.SUBSCRIPTION else 0.0


def remaining_quota_fraction(context: ScoringContext) -> float:
    """Smaller of the daily and monthly remaining fractions (1.0 without a budget)."""
    budget = context.policy.subscription_budget
    quota = context.quota_status
    daily = budget.daily_requests if budget else None
    monthly = budget.monthly_requests if budget else None

    daily_pct = quota.daily_remaining / daily if daily and daily > 0 else 1.0
    monthly_pct = quota.monthly_remaining / monthly if monthly and monthly > 0 else 1.0
    return min(daily_pct, monthly_pct)


def quota_pressure_score(billing_mode: BillingMode, context: ScoringContext) -> float:
    if billing_mode != BillingMode.SUBSCRIPTION:
        return 0.0
    pct = remaining_quota_fraction(context)
    budget = context.policy.subscription_budget
    if pct <= 0 and budget is not None and budget.enforcement == BudgetEnforcement.HARD:
        return -QUOTA_EXHAUSTED_HARD_PENALTY
    if pct < 0.1:
        return -36.0
    if pct < 0.25:
        return -24.0
    if pct < 0.5:
        return -10.0
    return 0.0


def diversity_score(candidate: CandidateModel, context: ScoringContext) -> float:
    usage = context.provider_usage.get(candidate.provider_id, 0)
    if usage >= 3:
        return -18.0
    if usage >= 2:
        return -8.0
    if usage == 0:
        return 6.0
    return 0.0


def maturity_score(candidate: CandidateModel) -> float:
    if name_heuristics.is_deprecated_by_name(candidate):
        return -80.0
    if candidate.status == ModelStatus.DEPRECATED:
        return -80.0
    if candidate.status == ModelStatus.ALPHA:
        return -8.0
    if candidate.status == ModelStatus.BETA:
        return 4.0
    return 10.0


def spend_pacing_score(candidate: CandidateModel, role: AgentRole, context: ScoringContext) -> float:
    """
    Degrade toward cheaper models as monthly spend approaches budget.

    Applies only to providers listed in the pacing settings. The pacing mode
    decides how hard quality is traded for cost.
    """
    pacing = context.pacing
    if pacing is None or candidate.provider_id not in pacing.providers:
        return 0.0

    budget = pacing.monthly_budget
    ratio = _clamp(pacing.monthly_used / budget, 0, 1.5) if budget and budget > 0 else 0.0

    cost = cost_score(candidate)
    quality = 100.0 if candidate.reasoning else 75.0 if candidate.toolcall else 45.0
    priority = ROLE_PACING_PRIORITY.get(role, 1.0)

    if pacing.mode == PacingMode.QUALITY_FIRST:
        quality_bonus = quality / 100 * 12 * priority
        if ratio >= 0.95:
            return quality_bonus - 16
        if ratio >= 0.85:
            return quality_bonus - 8
        return quality_bonus

    if pacing.mode == PacingMode.BALANCED:
        if ratio < 0.7:
            return 4.0
        pressure_penalty = (ratio - 0.7) * 30
        efficiency_bonus = cost / 100 * 10
        return efficiency_bonus - pressure_penalty

    economy_bonus = cost / 100 * 18
    quality_penalty = (100 - quality) / 100 * -4
    if ratio >= 0.6:
        return economy_bonus + quality_penalty + 4
    return economy_bonus + quality_penalty


def quota_pacing_score(candidate: CandidateModel, context: ScoringContext) -> float:
    """Shift quota-governed traffic from premium to economy models as the month drains."""
    if candidate.provider_id not in context.policy.quota_providers:
        return 0.0
    budget = context.policy.subscription_budget
    monthly = budget.monthly_requests if budget else None
    if not monthly or monthly <= 0:
        return 0.0

    remaining = _clamp(context.quota_status.monthly_remaining / monthly, 0, 1)
    premium = name_heuristics.is_premium(candidate)
    economy = name_heuristics.is_economy(candidate)

    if remaining > 0.5:
        return 8.0 if premium else 2.0 if economy else 4.0
    if remaining > 0.25:
        return 2.0 if premium else 6.0 if economy else 3.0
    if remaining > 0.1:
        return -8.0 if premium else 9.0 if economy else 1.0
    return -16.0 if premium else 12.0 if economy else -2.0


def lookup_external_signal(
    candidate: CandidateModel,
    signals: Mapping[str, ExternalModelSignal] | None,
) -> ExternalModelSignal | None:
    """Find a signal by full model id, then by the id without provider prefix."""
    if not signals:
        return None
    full_key = candidate.model_id.lower()
    if full_key in signals:
        return signals[full_key]
    _, _, bare = full_key.partition("/")
    if bare and bare in signals:
        return signals[bare]
    return None


def external_signal_score(
    candidate: CandidateModel,
    signals: Mapping[str, ExternalModelSignal] | None,
) -> float:
    """Quality/coding boost minus latency and price penalties; 0 without a signal."""
    signal = lookup_external_signal(candidate, signals)
    if signal is None:
        return 0.0

    quality_boost = (signal.quality_score or 0.0) * 0.12
    coding_boost = (signal.coding_score or 0.0) * 0.18
    latency_penalty = min(signal.latency_seconds or 0.0, 25.0) * 0.7

    if signal.input_price_per_1m is not None and signal.output_price_per_1m is not None:
        blended_price = signal.input_price_per_1m * 0.75 + signal.output_price_per_1m * 0.25
    elif signal.input_price_per_1m is not None:
        blended_price = signal.input_price_per_1m
    else:
        blended_price = signal.output_price_per_1m or 0.0
    price_penalty = min(blended_price, 30.0) * 0.08

    return quality_boost + coding_boost - latency_penalty - price_penalty


def parse_external_signals(raw: Any) -> dict[str, ExternalModelSignal]:
    """
    Parse a loosely typed signal feed keyed by model id.

    Entries that fail validation are dropped and simply contribute no boost.
    Keys are lower-cased to match lookup.
    """
    if not isinstance(raw, Mapping):
        return {}

    parsed: dict[str, ExternalModelSignal] = {}
    for key, value in raw.items():
        if not isinstance(key, str):
            continue
        if isinstance(value, ExternalModelSignal):
            parsed[key.lower()] = value
            continue
        if not isinstance(value, Mapping):
            logger.debug(f"Ignoring non-mapping external signal for {key!r}")
            continue
        try:
            parsed[key.lower()] = ExternalModelSignal.model_validate(value)
        except ValidationError as e:
            logger.debug(f"Ignoring malformed external signal for {key!r}: {e.error_count()} errors")
    return parsed


def tier_for(total_score: float) -> ScoreTier:
    for threshold, tier in TIER_THRESHOLDS:
        if total_score >= threshold:
            return tier
    return ScoreTier.UNSUITABLE


def score_candidate(
    candidate: CandidateModel,
    role: AgentRole,
    context: ScoringContext,
) -> ScoredCandidate:
    """
    Score one candidate for one role.

    Args:
        candidate: Catalog entry to score
        role: Role the candidate would serve
        context: Policy, quota and in-progress plan state

    Returns:
        ScoredCandidate with its component breakdown and tier
    """
    weights = ROLE_WEIGHTS[role]
    billing_mode = infer_billing_mode(candidate)

    reasoning_base = 100.0 if candidate.reasoning else 0.0
    toolcall_base = 100.0 if candidate.toolcall else 0.0
    attachment_base = 100.0 if candidate.attachment else 0.0
    context_base = context_score(candidate.context_limit)
    speed_base = name_heuristics.speed_score(candidate)
    cost_base = cost_score(candidate)

    role_fit = (
        reasoning_base * weights.reasoning / 100
        + toolcall_base * weights.toolcall / 100
        + attachment_base * weights.attachment / 100
        + context_base * weights.context / 100
    )

    components = (
        ScoreComponent(
            "roleFit", WEIGHT_ROLE_FIT, 0.0, role_fit, f"Role capability alignment for {role.value}"
        ),
        ScoreComponent(
            "latencyFit",
            WEIGHT_LATENCY_FIT,
            speed_base,
            speed_base * weights.speed / 100,
            "Speed preference for this role",
        ),
        ScoreComponent(
            "costFit",
            WEIGHT_COST_FIT,
            cost_base,
            cost_base * weights.cost / 100,
            "Cost efficiency contribution",
        ),
        ScoreComponent(
            "billingPolicyFit",
            WEIGHT_BILLING_POLICY,
            0.0,
            billing_policy_score(billing_mode, context),
            f"Policy {context.policy.mode.value} vs {billing_mode.value}",
        ),
        ScoreComponent(
            "quotaPressure",
            WEIGHT_QUOTA_PRESSURE,
            remaining_quota_fraction(context),
            quota_pressure_score(billing_mode, context),
            "Subscription quota pressure impact",
        ),
        ScoreComponent(
            "spendPacing",
            WEIGHT_SPEND_PACING,
            0.0,
            spend_pacing_score(candidate, role, context),
            "Monthly spend pacing adjustment",
        ),
        ScoreComponent(
            "quotaPacing",
            WEIGHT_QUOTA_PACING,
            0.0,
            quota_pacing_score(candidate, context),
            "Monthly quota pacing adjustment",
        ),
        ScoreComponent(
            "diversityAdjustment",
            WEIGHT_DIVERSITY,
            float(context.provider_usage.get(candidate.provider_id, 0)),
            diversity_score(candidate, context),
            "Provider concentration balancing",
        ),
        ScoreComponent(
            "modelMaturity",
            WEIGHT_MATURITY,
            0.0,
            maturity_score(candidate),
            "Model status and maturity score",
        ),
        ScoreComponent(
            "modelPreference",
            WEIGHT_PREFERENCE,
            0.0,
            name_heuristics.version_affinity_score(candidate),
            "Version-aware model preference adjustment",
        ),
        ScoreComponent(
            "externalSignal",
            WEIGHT_EXTERNAL_SIGNAL,
            0.0,
            external_signal_score(candidate, context.external_signals),
            "External quality, latency and price signal",
        ),
    )

    total = sum(c.contribution for c in components)
    total = round(total, 3)

    return ScoredCandidate(
        role=role,
        candidate=candidate,
        billing_mode=billing_mode,
        total_score=total,
        components=components,
        tier=tier_for(total),
    )


def candidate_sort_key(scored: ScoredCandidate) -> tuple[float, str, str]:
    """Score descending, then provider id, then model id."""
    return (-scored.total_score, scored.provider_id, scored.model_id)


def rank_candidates(
    candidates: Iterable[CandidateModel],
    role: AgentRole,
    context: ScoringContext,
) -> list[ScoredCandidate]:
    """Score every candidate for the role and sort with a full tie-break."""
    scored = [score_candidate(c, role, context) for c in candidates]
    scored.sort(key=candidate_sort_key)
    return scored


def assignment_confidence(scored: ScoredCandidate) -> float:
    """Map a total score onto [0, 1]."""
    return _clamp(scored.total_score / 120, 0.0, 1.0)


def assignment_reasoning(scored: ScoredCandidate) -> str:
    """Short rationale: the leading three components."""
    return ", ".join(f"{c.name}:{c.normalized_score:.1f}" for c in scored.components[:3])


__all__ = [
    "ROLE_PACING_PRIORITY",
    "ROLE_WEIGHTS",
    "RoleWeights",
    "QUOTA_EXHAUSTED_HARD_PENALTY",
    "TIER_THRESHOLDS",
    "assignment_confidence",
    "assignment_reasoning",
    "candidate_sort_key",
    "external_signal_score",
    "infer_billing_mode",
    "parse_external_signals",
    "quota_pressure_score",
    "rank_candidates",
    "remaining_quota_fraction",
    "score_candidate",
    "tier_for",
]
