"""
Shared type definitions for the smart routing engine.

Catalog entries, routing policy inputs, scoring records and the final
plan shape. Boundary records parsed from loosely typed external data
(ranking feeds, manual plans) are pydantic models; everything else is a
plain dataclass.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel


class AgentRole(str, Enum):
    """Fixed functional roles that each need a model assignment."""

    ORCHESTRATOR = "orchestrator"
    ORACLE = "oracle"
    DESIGNER = "designer"
    EXPLORER = "explorer"
    LIBRARIAN = "librarian"
    FIXER = "fixer"


# Planning order for the beam search
ROLE_ORDER: tuple[AgentRole, ...] = (
    AgentRole.ORCHESTRATOR,
    AgentRole.ORACLE,
    AgentRole.DESIGNER,
    AgentRole.EXPLORER,
    AgentRole.LIBRARIAN,
    AgentRole.FIXER,
)


class BillingMode(str, Enum):
    """How traffic to a model is paid for."""

    SUBSCRIPTION = "subscription"  # Quota-governed allowance
    PAYGO = "paygo"  # Metered per token


class ModelStatus(str, Enum):
    """Release maturity reported by the catalog."""

    ACTIVE = "active"
    BETA = "beta"
    ALPHA = "alpha"
    DEPRECATED = "deprecated"


class AccessMode(str, Enum):
    """Upstream access annotation for quota-governed providers."""

    SUBSCRIPTION = "subscription"
    PAID = "paid"
    VISIBLE = "visible"


class PolicyMode(str, Enum):
    """Billing-mode constraint of a routing policy."""

    SUBSCRIPTION_ONLY = "subscription-only"
    HYBRID = "hybrid"
    PAYGO_ONLY = "paygo-only"


class PacingMode(str, Enum):
    """Monthly spend pacing preference."""

    QUALITY_FIRST = "quality-first"
    BALANCED = "balanced"
    ECONOMY = "economy"


class ScoreTier(str, Enum):
    """Discretized score band."""

    OPTIMAL = "optimal"
    ACCEPTABLE = "acceptable"
    SUBOPTIMAL = "suboptimal"
    UNSUITABLE = "unsuitable"


class Recommendation(str, Enum):
    """Rollout decision for a candidate or variant."""

    PROMOTE = "promote"
    HOLD = "hold"
    ROLLBACK = "rollback"


class ResolutionLayer(str, Enum):
    """Resolution layers, declared from highest to lowest precedence."""

    HOST_OVERRIDE = "host-direct-override"
    MANUAL_USER_PLAN = "manual-user-plan"
    PINNED_MODEL = "pinned-model"
    DYNAMIC_RECOMMENDATION = "dynamic-recommendation"
    PROVIDER_FALLBACK_POLICY = "provider-fallback-policy"
    SYSTEM_DEFAULT = "system-default"


class BudgetEnforcement(str, Enum):
    """How a budget breach affects routing."""

    HARD = "hard"  # Breach blocks
    SOFT = "soft"  # Breach is reported, never blocks
    WARN = "warn"


class QuotaPressure(str, Enum):
    """Plan-level quota pressure class."""

    HEALTHY = "healthy"
    WARNING = "warning"
    CRITICAL = "critical"


# =============================================================================
# Catalog and policy inputs
# =============================================================================


@dataclass(frozen=True)
class CandidateModel:
    """A normalized (provider, model) pair offered by the catalog."""

    provider_id: str
    model_id: str  # Fully qualified, e.g. "openai/gpt-5.3-codex"
    name: str = ""
    status: ModelStatus = ModelStatus.ACTIVE
    context_limit: int = 0
    output_limit: int = 0
    reasoning: bool = False
    toolcall: bool = False
    attachment: bool = False
    cost_input: float | None = None  # USD per 1M input tokens
    cost_output: float | None = None  # USD per 1M output tokens
    access_mode: AccessMode | None = None
    daily_request_limit: int | None = None

    @property
    def display_name(self) -> str:
        """Name used for heuristics and reports."""
        return self.name or self.model_id

    @property
    def blended_cost(self) -> float:
        """Blended USD per 1M tokens (70% input, 30% output)."""
        return (self.cost_input or 0.0) * 0.7 + (self.cost_output or 0.0) * 0.3

    @property
    def is_free(self) -> bool:
        """True when neither input nor output tokens are billed."""
        return (self.cost_input or 0.0) == 0 and (self.cost_output or 0.0) == 0


@dataclass(frozen=True)
class SubscriptionBudget:
    """Request allowance for quota-governed traffic."""

    daily_requests: int | None = None
    monthly_requests: int | None = None
    enforcement: BudgetEnforcement = BudgetEnforcement.SOFT


@dataclass(frozen=True)
class PaygoBudget:
    """Spend ceiling for metered traffic."""

    daily_usd_limit: float | None = None
    monthly_usd_limit: float | None = None


@dataclass(frozen=True)
class RoutingPolicy:
    """Billing constraint and budgets that apply to one planning call."""

    mode: PolicyMode = PolicyMode.HYBRID
    subscription_budget: SubscriptionBudget | None = None
    paygo_budget: PaygoBudget | None = None
    # Providers whose monthly allowance drives the quota pacing term
    quota_providers: tuple[str, ...] = ("nanogpt",)


@dataclass(frozen=True)
class QuotaStatus:
    """Remaining subscription allowance at a point in time."""

    daily_remaining: int
    monthly_remaining: int
    last_checked_at: datetime


@dataclass(frozen=True)
class MonthlyPacing:
    """Monthly spend pacing for metered providers."""

    mode: PacingMode = PacingMode.BALANCED
    monthly_budget: float | None = None
    monthly_used: float = 0.0
    providers: tuple[str, ...] = ("chutes",)


class ExternalModelSignal(BaseModel):
    """Quality, latency and price signal from an external ranking feed."""

    quality_score: float | None = None
    coding_score: float | None = None
    latency_seconds: float | None = None
    input_price_per_1m: float | None = None
    output_price_per_1m: float | None = None
    source: str = "merged"


class ManualAgentConfig(BaseModel):
    """A user's hand-written plan for one role: primary plus fallbacks."""

    primary: str
    fallback1: str | None = None
    fallback2: str | None = None
    fallback3: str | None = None

    @property
    def models(self) -> list[str]:
        """Primary followed by the configured fallbacks, in order."""
        ordered = [self.primary, self.fallback1, self.fallback2, self.fallback3]
        return [m for m in ordered if m]


ModelPreferences = dict[AgentRole, list[str]]


@dataclass
class ScoringContext:
    """
    Everything the scorer needs besides the candidate and role.

    provider_usage is mutated during a planning pass: the beam search hands
    each partial plan its own copy.
    """

    policy: RoutingPolicy
    quota_status: QuotaStatus
    provider_usage: dict[str, int] = field(default_factory=dict)
    pacing: MonthlyPacing | None = None
    model_preferences: ModelPreferences | None = None
    external_signals: dict[str, ExternalModelSignal] | None = None

    def with_usage(self, provider_usage: dict[str, int]) -> ScoringContext:
        """Copy of this context bound to a different provider usage map."""
        return ScoringContext(
            policy=self.policy,
            quota_status=self.quota_status,
            provider_usage=provider_usage,
            pacing=self.pacing,
            model_preferences=self.model_preferences,
            external_signals=self.external_signals,
        )


# =============================================================================
# Scoring and planning records
# =============================================================================


@dataclass(frozen=True)
class ScoreComponent:
    """One named, weighted term of a candidate's score."""

    name: str
    weight: float
    value: float
    normalized_score: float
    description: str

    @property
    def contribution(self) -> float:
        """Weighted contribution to the total score."""
        return self.normalized_score * self.weight


@dataclass(frozen=True)
class ScoredCandidate:
    """A candidate bound to a role with its score breakdown."""

    role: AgentRole
    candidate: CandidateModel
    billing_mode: BillingMode
    total_score: float
    components: tuple[ScoreComponent, ...]
    tier: ScoreTier

    @property
    def model_id(self) -> str:
        return self.candidate.model_id

    @property
    def provider_id(self) -> str:
        return self.candidate.provider_id


@dataclass(frozen=True)
class AgentModelAssignment:
    """Final model choice for one role."""

    model: str
    billing_mode: BillingMode
    confidence: float
    reasoning: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "model": self.model,
            "billing_mode": self.billing_mode.value,
            "confidence": self.confidence,
            "reasoning": self.reasoning,
        }


@dataclass
class PartialPlan:
    """Search state: tentative assignments for the roles planned so far."""

    assignments: dict[AgentRole, AgentModelAssignment] = field(default_factory=dict)
    provider_usage: dict[str, int] = field(default_factory=dict)
    total_score: float = 0.0


@dataclass(frozen=True)
class AgentResolutionProvenance:
    """Which resolution layer produced a role's winning model."""

    winner_layer: ResolutionLayer
    winner_model: str

    def to_dict(self) -> dict[str, str]:
        return {"winner_layer": self.winner_layer.value, "winner_model": self.winner_model}


@dataclass(frozen=True)
class PlanScoringMeta:
    """Scoring engine metadata attached to a plan."""

    engine_version: str = "v3"
    shadow_compared: bool = False


@dataclass(frozen=True)
class CanaryTrendSummary:
    """Plan-level reduction of per-variant canary decisions."""

    promote_count: int
    hold_count: int
    rollback_count: int
    recommended_action: Recommendation
    experiment_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "experiment_id": self.experiment_id,
            "promote_count": self.promote_count,
            "hold_count": self.hold_count,
            "rollback_count": self.rollback_count,
            "recommended_action": self.recommended_action.value,
        }


@dataclass
class PlanSummary:
    """Operator-facing summary of a plan."""

    policy: str
    provider_distribution: dict[str, int]
    estimated_daily_cost_usd: float
    quota_pressure: QuotaPressure
    canary_trend: CanaryTrendSummary | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "policy": self.policy,
            "provider_distribution": dict(sorted(self.provider_distribution.items())),
            "estimated_daily_cost_usd": self.estimated_daily_cost_usd,
            "quota_pressure": self.quota_pressure.value,
            "canary_trend": self.canary_trend.to_dict() if self.canary_trend else None,
        }


@dataclass
class DynamicModelPlan:
    """Top-level planning output consumed by config writers and explain views."""

    agents: dict[AgentRole, AgentModelAssignment]
    chains: dict[AgentRole, list[str]]
    provenance: dict[AgentRole, AgentResolutionProvenance]
    scoring: PlanScoringMeta
    explanations: dict[AgentRole, str]
    summary: PlanSummary

    def to_dict(self) -> dict[str, Any]:
        """Serialize in role order so the output is stable."""
        return {
            "agents": {r.value: self.agents[r].to_dict() for r in ROLE_ORDER if r in self.agents},
            "chains": {r.value: list(self.chains[r]) for r in ROLE_ORDER if r in self.chains},
            "provenance": {
                r.value: self.provenance[r].to_dict() for r in ROLE_ORDER if r in self.provenance
            },
            "scoring": {
                "engine_version": self.scoring.engine_version,
                "shadow_compared": self.scoring.shadow_compared,
            },
            "explanations": {
                r.value: self.explanations[r] for r in ROLE_ORDER if r in self.explanations
            },
            "summary": self.summary.to_dict(),
        }


@dataclass(frozen=True)
class RuntimeMetrics:
    """Aggregated live metrics for a batch of routed calls."""

    success_rate: float
    avg_latency_ms: float
    p95_latency_ms: float
    avg_cost_usd: float
    fallback_rate: float
    sample_count: int


# =============================================================================
# Errors
# =============================================================================


class RoutingError(Exception):
    """Base class for routing engine errors."""

    pass


class NoViableCandidateError(RoutingError):
    """A role has no candidate to assign; the whole planning call fails."""

    def __init__(self, role: AgentRole, detail: str = ""):
        self.role = role
        message = f"No viable candidate for role '{role.value}'"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class InsufficientMetricsError(RoutingError):
    """Shadow comparison requested without metrics on both sides."""

    def __init__(self, role: AgentRole, missing: list[str]):
        self.role = role
        self.missing = missing
        super().__init__(
            f"Insufficient metrics for evaluation of role '{role.value}': "
            f"no snapshot for {', '.join(missing)}"
        )


class UnknownExperimentError(RoutingError, KeyError):
    """Experiment id has not been registered."""

    def __init__(self, experiment_id: str):
        self.experiment_id = experiment_id
        super().__init__(f"Unknown experiment: {experiment_id}")

    def __str__(self) -> str:
        return self.args[0]


class InvalidAllocationError(RoutingError, ValueError):
    """Experiment variants and traffic allocation are inconsistent."""

    def __init__(self, experiment_id: str, total: float | None = None, detail: str | None = None):
        self.experiment_id = experiment_id
        self.total = total
        if detail is None:
            detail = f"allocation must sum to 100, got {total:g}"
        super().__init__(f"Experiment '{experiment_id}' {detail}")
