"""
Configuration for the smart routing engine.

Every product-tuned threshold (beam width, diversity weight, shadow
regression limits, canary thresholds, learning rates) lives here as a
named field so callers can override it without touching the algorithms.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any


@dataclass
class SelectionConfig:
    """Configuration for the beam search planner and chain building."""

    beam_width: int = 5
    diversity_weight: float = 10.0
    max_alternatives_per_agent: int = 5
    max_per_provider_per_agent: int = 2
    max_providers_per_agent: int = 6
    max_chain_length: int = 7
    # Deterministic free-tier fallback appended to every chain
    free_tier_model: str = "opencode/big-pickle"
    free_tier_providers: tuple[str, ...] = ("opencode",)
    # Rough daily volume per role used for the plan's cost estimate
    expected_daily_tokens_per_role: int = 100_000
    # Daily remaining requests below which quota pressure is "warning"
    quota_warning_daily_remaining: int = 50
    forecast_horizon_days: int = 14

    def __post_init__(self) -> None:
        """Chains need room for a primary plus the free-tier tail."""
        if self.max_chain_length < 2:
            raise ValueError(
                f"SelectionConfig.max_chain_length must be at least 2, got {self.max_chain_length}"
            )
        if self.beam_width < 1:
            raise ValueError(f"SelectionConfig.beam_width must be at least 1, got {self.beam_width}")


@dataclass
class ShadowEvaluationConfig:
    """Configuration for candidate-vs-baseline shadow evaluation."""

    enabled: bool = True
    min_samples: int = 30
    regression_threshold: float = 0.08
    promote_threshold: float = 0.06
    max_success_drop: float = 0.08
    min_fallback_ceiling: float = 0.2
    fallback_regression_factor: float = 1.6
    latency_regression_factor: float = 1.35


@dataclass
class CanaryTrendConfig:
    """Configuration for per-variant experiment canary decisions."""

    min_samples: int = 30
    promote_threshold: float = 0.05
    rollback_threshold: float = -0.08
    max_latency_regression_pct: float = 0.2
    max_cost_increase_pct: float = 0.2
    min_success_drop_pct: float = 0.05


@dataclass
class QLearningConfig:
    """Configuration for the tabular routing agent."""

    alpha: float = 0.12
    gamma: float = 0.9
    epsilon: float = 0.08


@dataclass
class CircuitBreakerConfig:
    """Configuration for rollback circuit breakers."""

    default_ttl_seconds: float = 15 * 60


@dataclass
class RoutingEngineConfig:
    """
    Complete routing engine configuration.

    Nested sections mirror the components that consume them.
    """

    selection: SelectionConfig = field(default_factory=SelectionConfig)
    shadow: ShadowEvaluationConfig = field(default_factory=ShadowEvaluationConfig)
    canary: CanaryTrendConfig = field(default_factory=CanaryTrendConfig)
    learning: QLearningConfig = field(default_factory=QLearningConfig)
    circuit_breaker: CircuitBreakerConfig = field(default_factory=CircuitBreakerConfig)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RoutingEngineConfig:
        """Build from a plain mapping; missing sections keep their defaults."""
        selection_data = dict(data.get("selection", {}))
        # JSON has no tuples
        for key in ("free_tier_providers",):
            if key in selection_data:
                selection_data[key] = tuple(selection_data[key])

        return cls(
            selection=SelectionConfig(**selection_data),
            shadow=ShadowEvaluationConfig(**data.get("shadow", {})),
            canary=CanaryTrendConfig(**data.get("canary", {})),
            learning=QLearningConfig(**data.get("learning", {})),
            circuit_breaker=CircuitBreakerConfig(**data.get("circuit_breaker", {})),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-compatible mapping."""
        data = asdict(self)
        data["selection"]["free_tier_providers"] = list(self.selection.free_tier_providers)
        return data


# Default configuration instance
default_config = RoutingEngineConfig()
