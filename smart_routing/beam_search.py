"""
Beam search planner.

Plans all roles jointly: each role's candidates are first bounded to a few
representatives per provider, then a fixed-width frontier of PartialPlan
records is expanded role by role and re-ranked by cumulative score plus a
provider-diversity bonus.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from .config import SelectionConfig
from .scoring import (
    assignment_confidence,
    assignment_reasoning,
    candidate_sort_key,
    rank_candidates,
)
from .types import (
    AgentModelAssignment,
    AgentRole,
    CandidateModel,
    NoViableCandidateError,
    PartialPlan,
    ScoredCandidate,
    ScoringContext,
)

logger = logging.getLogger(__name__)


def diversity_bonus(provider_usage: dict[str, int]) -> float:
    """
    1 minus the normalized variance of provider usage, floored at 0.

    Returns 0 for an empty plan; 1 when every used provider carries the
    same number of roles.
    """
    counts = list(provider_usage.values())
    if not counts:
        return 0.0
    ideal = sum(counts) / len(counts)
    if ideal <= 0:
        return 0.0
    variance = sum((count - ideal) ** 2 for count in counts) / len(counts)
    return max(0.0, 1 - variance / (ideal * ideal))


def rank_provider_representatives(
    candidates: Iterable[CandidateModel],
    role: AgentRole,
    context: ScoringContext,
    max_per_provider: int = 2,
    max_providers: int | None = None,
) -> list[ScoredCandidate]:
    """
    Keep the best few candidates per provider.

    Providers participate in order of their best candidate's score, capped
    at max_providers (None means no cap). The result is re-sorted with the
    full score/provider/model tie-break.
    """
    ranked = rank_candidates(candidates, role, context)

    grouped: dict[str, list[ScoredCandidate]] = {}
    for scored in ranked:
        items = grouped.setdefault(scored.provider_id, [])
        if len(items) < max_per_provider:
            items.append(scored)

    # Ranked input means each group's head is its top score
    providers = sorted(grouped.items(), key=lambda item: (-item[1][0].total_score, item[0]))
    if max_providers is not None:
        providers = providers[: max(1, max_providers)]

    representatives = [scored for _, items in providers for scored in items]
    representatives.sort(key=candidate_sort_key)
    return representatives


def to_assignment(scored: ScoredCandidate) -> AgentModelAssignment:
    """Turn a scored candidate into a final assignment."""
    return AgentModelAssignment(
        model=scored.model_id,
        billing_mode=scored.billing_mode,
        confidence=assignment_confidence(scored),
        reasoning=assignment_reasoning(scored),
    )


def _plan_rank_key(
    plan: PartialPlan, roles: Sequence[AgentRole], diversity_weight: float
) -> tuple[float, tuple[str, ...]]:
    ranking_score = plan.total_score + diversity_bonus(plan.provider_usage) * diversity_weight
    signature = tuple(plan.assignments[r].model for r in roles if r in plan.assignments)
    return (-ranking_score, signature)


def select_with_beam_search(
    roles: Sequence[AgentRole],
    candidates: Sequence[CandidateModel],
    config: SelectionConfig,
    context: ScoringContext,
) -> dict[AgentRole, AgentModelAssignment]:
    """
    Pick one model per role with a bounded beam search.

    Args:
        roles: Roles to plan, in planning order
        candidates: Catalog to choose from
        config: Beam width, diversity weight and representative bounds
        context: Base scoring context; each partial plan gets its own usage copy

    Returns:
        Role -> assignment for every role

    Raises:
        NoViableCandidateError: If some role has no representative candidate
    """
    beam: list[PartialPlan] = [
        PartialPlan(assignments={}, provider_usage=dict(context.provider_usage), total_score=0.0)
    ]

    for role in roles:
        next_beam: list[PartialPlan] = []

        for plan in beam:
            plan_context = context.with_usage(plan.provider_usage)
            ranked = rank_provider_representatives(
                candidates,
                role,
                plan_context,
                max_per_provider=config.max_per_provider_per_agent,
                max_providers=config.max_providers_per_agent,
            )
            if not ranked:
                raise NoViableCandidateError(role, "catalog has no enabled candidates")

            for scored in ranked[: config.beam_width]:
                provider_usage = dict(plan.provider_usage)
                provider_usage[scored.provider_id] = provider_usage.get(scored.provider_id, 0) + 1
                assignments = dict(plan.assignments)
                assignments[role] = to_assignment(scored)
                next_beam.append(
                    PartialPlan(
                        assignments=assignments,
                        provider_usage=provider_usage,
                        total_score=plan.total_score + scored.total_score,
                    )
                )

        next_beam.sort(key=lambda p: _plan_rank_key(p, roles, config.diversity_weight))
        beam = next_beam[: config.beam_width]
        logger.debug(
            f"Beam step {role.value}: {len(next_beam)} expansions, "
            f"best={beam[0].total_score:.3f}"
        )

    winner = beam[0]
    logger.debug(f"Beam search winner: total={winner.total_score:.3f} usage={winner.provider_usage}")
    return {role: winner.assignments[role] for role in roles}


def build_ranked_alternatives(
    role: AgentRole,
    candidates: Iterable[CandidateModel],
    context: ScoringContext,
    max_alternatives: int,
    max_per_provider: int = 2,
    max_providers: int | None = None,
) -> list[ScoredCandidate]:
    """Ranked representative pool for one role, used for chains and explanations."""
    ranked = rank_provider_representatives(
        candidates,
        role,
        context,
        max_per_provider=max_per_provider,
        max_providers=max_providers,
    )
    return ranked[:max_alternatives]


__all__ = [
    "build_ranked_alternatives",
    "diversity_bonus",
    "rank_provider_representatives",
    "select_with_beam_search",
    "to_assignment",
]
