"""
Smart routing: multi-agent model routing decisions.

Chooses a model and a fallback chain for each agent role from a catalog of
candidates, under billing policy, quota and spend constraints, with:
- Role-weighted candidate scoring and joint beam search across roles
- Precedence of host overrides, manual plans and pinned models
- Quota forecasting and spend tracking
- Shadow evaluation, experiments and canary trend decisions
- Adaptive Q-learning and federated merging of learning updates
"""

__version__ = "0.3.0"

# Anomaly detection and circuit breakers
from .anomaly import (
    AnomalySeverity,
    AnomalyType,
    CircuitBreakerRegistry,
    DetectedAnomaly,
    RoutingAnomalyDetector,
)

# Beam search planner
from .beam_search import (
    build_ranked_alternatives,
    diversity_bonus,
    rank_provider_representatives,
    select_with_beam_search,
)

# Configuration
from .config import (
    CanaryTrendConfig,
    CircuitBreakerConfig,
    QLearningConfig,
    RoutingEngineConfig,
    SelectionConfig,
    ShadowEvaluationConfig,
    default_config,
)

# Cost tracking
from .cost_tracker import (
    BudgetAlert,
    BudgetCheck,
    BudgetEnforcement,
    CostBudget,
    CostOptimizationSuggestion,
    CostTracker,
    CostUsageSnapshot,
)

# Experiments and canaries
from .experiments import (
    CanaryVariantDecision,
    ExperimentResult,
    ExperimentVariant,
    RoutingExperiment,
    RoutingExperimentManager,
    evaluate_canary_trends,
    summarize_canary_trends,
)

# Explanations
from .explain import RoutingDecisionExplanation, explain_routing_decision

# Federated learning
from .federated import (
    AggregatedFederatedUpdate,
    FederatedAggregator,
    FederatedUpdate,
    aggregate_federated_updates,
)

# Hot swap
from .hot_swap import HotSwapEvent, HotSwapManager, RuntimeRoutingConfig

# Planning
from .planner import PlanResult, build_routing_plan, plan_digest
from .precedence import PrecedenceInputs, PrecedenceResolution, resolve_precedence
from .preferences import normalize_model_preferences, resolve_preferred_model

# Quota forecasting
from .quota_forecast import QuotaForecast, QuotaForecastPoint, UsageSnapshot, forecast_quota

# Reinforcement learning
from .rl_agent import (
    RoutingAction,
    RoutingQAgent,
    RoutingReward,
    RoutingState,
    quota_bucket,
    task_bucket,
)

# Runtime
from .runtime import (
    RoutingRuntime,
    RuntimeMetricIngest,
    create_routing_runtime,
    evaluate_experiment_canary_trends,
    evaluate_shadow_canary,
    ingest_runtime_metrics,
)

# Scoring
from .scoring import ROLE_WEIGHTS, parse_external_signals, rank_candidates, score_candidate

# Shadow evaluation
from .shadow_evaluation import ShadowEvaluationEngine, ShadowEvaluationResult, ShadowMetrics

# Types and errors
from .types import (
    ROLE_ORDER,
    AccessMode,
    AgentModelAssignment,
    AgentRole,
    BillingMode,
    CandidateModel,
    DynamicModelPlan,
    ExternalModelSignal,
    InsufficientMetricsError,
    InvalidAllocationError,
    ManualAgentConfig,
    ModelStatus,
    MonthlyPacing,
    NoViableCandidateError,
    PacingMode,
    PaygoBudget,
    PolicyMode,
    QuotaPressure,
    QuotaStatus,
    Recommendation,
    ResolutionLayer,
    RoutingError,
    RoutingPolicy,
    RuntimeMetrics,
    ScoredCandidate,
    ScoreTier,
    ScoringContext,
    SubscriptionBudget,
    UnknownExperimentError,
)

__all__ = [
    "__version__",
    # Anomaly
    "AnomalySeverity",
    "AnomalyType",
    "CircuitBreakerRegistry",
    "DetectedAnomaly",
    "RoutingAnomalyDetector",
    # Beam search
    "build_ranked_alternatives",
    "diversity_bonus",
    "rank_provider_representatives",
    "select_with_beam_search",
    # Config
    "CanaryTrendConfig",
    "CircuitBreakerConfig",
    "QLearningConfig",
    "RoutingEngineConfig",
    "SelectionConfig",
    "ShadowEvaluationConfig",
    "default_config",
    # Cost
    "BudgetAlert",
    "BudgetCheck",
    "BudgetEnforcement",
    "CostBudget",
    "CostOptimizationSuggestion",
    "CostTracker",
    "CostUsageSnapshot",
    # Experiments
    "CanaryVariantDecision",
    "ExperimentResult",
    "ExperimentVariant",
    "RoutingExperiment",
    "RoutingExperimentManager",
    "evaluate_canary_trends",
    "summarize_canary_trends",
    # Explain
    "RoutingDecisionExplanation",
    "explain_routing_decision",
    # Federated
    "AggregatedFederatedUpdate",
    "FederatedAggregator",
    "FederatedUpdate",
    "aggregate_federated_updates",
    # Hot swap
    "HotSwapEvent",
    "HotSwapManager",
    "RuntimeRoutingConfig",
    # Planning
    "PlanResult",
    "PrecedenceInputs",
    "PrecedenceResolution",
    "build_routing_plan",
    "normalize_model_preferences",
    "plan_digest",
    "resolve_precedence",
    "resolve_preferred_model",
    # Quota
    "QuotaForecast",
    "QuotaForecastPoint",
    "UsageSnapshot",
    "forecast_quota",
    # RL
    "RoutingAction",
    "RoutingQAgent",
    "RoutingReward",
    "RoutingState",
    "quota_bucket",
    "task_bucket",
    # Runtime
    "RoutingRuntime",
    "RuntimeMetricIngest",
    "create_routing_runtime",
    "evaluate_experiment_canary_trends",
    "evaluate_shadow_canary",
    "ingest_runtime_metrics",
    # Scoring
    "ROLE_WEIGHTS",
    "parse_external_signals",
    "rank_candidates",
    "score_candidate",
    # Shadow
    "ShadowEvaluationEngine",
    "ShadowEvaluationResult",
    "ShadowMetrics",
    # Types
    "ROLE_ORDER",
    "AccessMode",
    "AgentModelAssignment",
    "AgentRole",
    "BillingMode",
    "CandidateModel",
    "DynamicModelPlan",
    "ExternalModelSignal",
    "InsufficientMetricsError",
    "InvalidAllocationError",
    "ManualAgentConfig",
    "ModelStatus",
    "MonthlyPacing",
    "NoViableCandidateError",
    "PacingMode",
    "PaygoBudget",
    "PolicyMode",
    "QuotaPressure",
    "QuotaStatus",
    "Recommendation",
    "ResolutionLayer",
    "RoutingError",
    "RoutingPolicy",
    "RuntimeMetrics",
    "ScoredCandidate",
    "ScoreTier",
    "ScoringContext",
    "SubscriptionBudget",
    "UnknownExperimentError",
]
