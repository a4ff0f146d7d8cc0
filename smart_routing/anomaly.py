"""
Runtime anomaly detection and rollback circuit breakers.

The detector compares the latest metrics batch for a (role, model) with
the average of the batches before it. Circuit breakers block a (role,
model) for a fixed time after a rollback.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from .types import AgentRole, RuntimeMetrics

logger = logging.getLogger(__name__)

HISTORY_WINDOW = 40
MIN_HISTORY = 8


class AnomalyType(str, Enum):
    LATENCY_SPIKE = "latency-spike"
    ERROR_SPIKE = "error-spike"
    COST_SPIKE = "cost-spike"
    FALLBACK_SPIKE = "fallback-spike"


class AnomalySeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass(frozen=True)
class DetectedAnomaly:
    role: AgentRole
    model: str
    severity: AnomalySeverity
    type: AnomalyType
    message: str


@dataclass(frozen=True)
class CircuitBreakerState:
    blocked_until: float  # Clock seconds
    reason: str


class CircuitBreakerRegistry:
    """Time-boxed blocks on (role, model) pairs."""

    def __init__(self, default_ttl_seconds: float = 15 * 60, clock: Callable[[], float] | None = None):
        self.default_ttl_seconds = default_ttl_seconds
        self._clock = clock or time.time
        self._breakers: dict[tuple[AgentRole, str], CircuitBreakerState] = {}

    def open(self, role: AgentRole, model: str, reason: str, ttl_seconds: float | None = None) -> None:
        ttl = self.default_ttl_seconds if ttl_seconds is None else ttl_seconds
        self._breakers[(role, model)] = CircuitBreakerState(
            blocked_until=self._clock() + ttl, reason=reason
        )
        logger.warning(f"Circuit opened for {role.value} {model} ({ttl:.0f}s): {reason}")

    def is_open(self, role: AgentRole, model: str) -> bool:
        """True while the block is active; expired blocks are dropped."""
        state = self._breakers.get((role, model))
        if state is None:
            return False
        if self._clock() >= state.blocked_until:
            del self._breakers[(role, model)]
            logger.info(f"Circuit closed for {role.value} {model}")
            return False
        return True

    def state(self, role: AgentRole, model: str) -> CircuitBreakerState | None:
        return self._breakers.get((role, model)) if self.is_open(role, model) else None


def _mean(values: list[float]) -> float:
    return sum(values) / len(values)


class RoutingAnomalyDetector:
    """Rolling metric history per (role, model) with spike detection."""

    def __init__(
        self,
        history_window: int = HISTORY_WINDOW,
        breakers: CircuitBreakerRegistry | None = None,
    ):
        self.history_window = history_window
        self.breakers = breakers or CircuitBreakerRegistry()
        self._history: dict[tuple[AgentRole, str], list[RuntimeMetrics]] = {}

    def record(self, role: AgentRole, model: str, metrics: RuntimeMetrics) -> None:
        rows = self._history.setdefault((role, model), [])
        rows.append(metrics)
        if len(rows) > self.history_window:
            del rows[: len(rows) - self.history_window]

    def detect(self, role: AgentRole, model: str) -> list[DetectedAnomaly]:
        """Spikes in the latest batch relative to the earlier ones."""
        samples = self._history.get((role, model), [])
        if len(samples) < MIN_HISTORY:
            return []

        latest = samples[-1]
        baseline = samples[:-1]
        avg_latency = _mean([s.avg_latency_ms for s in baseline])
        avg_cost = _mean([s.avg_cost_usd for s in baseline])
        avg_fallback = _mean([s.fallback_rate for s in baseline])
        avg_success = _mean([s.success_rate for s in baseline])

        anomalies: list[DetectedAnomaly] = []
        if avg_latency > 0 and latest.avg_latency_ms > avg_latency * 1.8:
            anomalies.append(
                DetectedAnomaly(
                    role,
                    model,
                    AnomalySeverity.HIGH,
                    AnomalyType.LATENCY_SPIKE,
                    f"Latency spiked {latest.avg_latency_ms / avg_latency:.2f}x",
                )
            )
        if avg_cost > 0 and latest.avg_cost_usd > avg_cost * 1.7:
            anomalies.append(
                DetectedAnomaly(
                    role,
                    model,
                    AnomalySeverity.MEDIUM,
                    AnomalyType.COST_SPIKE,
                    f"Cost spiked {latest.avg_cost_usd / avg_cost:.2f}x",
                )
            )
        if latest.fallback_rate > max(0.25, avg_fallback * 1.8):
            anomalies.append(
                DetectedAnomaly(
                    role,
                    model,
                    AnomalySeverity.CRITICAL,
                    AnomalyType.FALLBACK_SPIKE,
                    f"Fallback rate rose to {latest.fallback_rate * 100:.1f}%",
                )
            )
        if latest.success_rate < min(0.85, avg_success - 0.1):
            anomalies.append(
                DetectedAnomaly(
                    role,
                    model,
                    AnomalySeverity.HIGH,
                    AnomalyType.ERROR_SPIKE,
                    f"Success rate dropped to {latest.success_rate * 100:.1f}%",
                )
            )

        for anomaly in anomalies:
            logger.warning(f"Anomaly for {role.value} {model}: {anomaly.message}")
        return anomalies

    def open_circuit(self, role: AgentRole, model: str, reason: str, ttl_seconds: float | None = None) -> None:
        self.breakers.open(role, model, reason, ttl_seconds)

    def is_circuit_open(self, role: AgentRole, model: str) -> bool:
        return self.breakers.is_open(role, model)


__all__ = [
    "AnomalySeverity",
    "AnomalyType",
    "CircuitBreakerRegistry",
    "CircuitBreakerState",
    "DetectedAnomaly",
    "RoutingAnomalyDetector",
]
