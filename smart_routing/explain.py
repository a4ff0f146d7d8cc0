"""
Human-readable explanations of routing decisions.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from .types import AgentRole, BillingMode, ScoredCandidate


@dataclass(frozen=True)
class AlternativeExplanation:
    model: str
    billing_mode: BillingMode
    score: float
    tradeoff: str


@dataclass(frozen=True)
class RoutingDecisionExplanation:
    """Why the selected candidate won, and what the runners-up trade off."""

    selected_model: str
    selected_billing_mode: BillingMode
    score: float
    summary: str
    top_factors: list[str]
    alternatives: list[AlternativeExplanation] = field(default_factory=list)


def top_factors(scored: ScoredCandidate, limit: int = 3) -> list[str]:
    """Components with the largest absolute weighted contribution."""
    ranked = sorted(scored.components, key=lambda c: abs(c.contribution), reverse=True)
    return [f"{c.name}={c.normalized_score:.1f}" for c in ranked[:limit]]


def tradeoff_text(winner: ScoredCandidate, other: ScoredCandidate) -> str:
    delta = winner.total_score - other.total_score
    if delta <= -8:
        return "alternative scores higher; selection came from precedence or provider balance"
    if delta < 8:
        return "near tie; pick based on latency/cost preference"
    if delta < 20:
        return "moderate score gap with meaningful tradeoffs"
    return "clear score gap; alternative is fallback-only"


def explain_routing_decision(
    role: AgentRole,
    ranked: list[ScoredCandidate],
    alternatives: int = 3,
) -> RoutingDecisionExplanation | None:
    """
    Explain the head of a candidate list (the selected model first).

    Args:
        role: Role the ranking is for
        ranked: Selected candidate, then runners-up best first
        alternatives: Number of runners-up to describe

    Returns:
        The explanation, or None for an empty ranking
    """
    if not ranked:
        return None
    selected = ranked[0]

    return RoutingDecisionExplanation(
        selected_model=selected.model_id,
        selected_billing_mode=selected.billing_mode,
        score=selected.total_score,
        summary=(
            f"{selected.model_id} selected for {role.value} with score "
            f"{selected.total_score:.1f} ({selected.tier.value})."
        ),
        top_factors=top_factors(selected),
        alternatives=[
            AlternativeExplanation(
                model=other.model_id,
                billing_mode=other.billing_mode,
                score=other.total_score,
                tradeoff=tradeoff_text(selected, other),
            )
            for other in ranked[1 : 1 + alternatives]
        ],
    )


__all__ = [
    "AlternativeExplanation",
    "RoutingDecisionExplanation",
    "explain_routing_decision",
    "top_factors",
    "tradeoff_text",
]
