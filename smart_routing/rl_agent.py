"""
Tabular Q-learning over routing decisions.

State is (role, quota bucket, task bucket); an action is (model, billing
mode). Selection is epsilon-greedy and the random source is injectable so
runs can be reproduced.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from enum import Enum

from .config import QLearningConfig
from .scoring import ROLE_WEIGHTS
from .types import AgentRole, BillingMode


class QuotaBucket(str, Enum):
    CRITICAL = "critical"
    LOW = "low"
    HEALTHY = "healthy"


class TaskBucket(str, Enum):
    REASONING = "reasoning"
    SPEED = "speed"
    BALANCED = "balanced"


@dataclass(frozen=True)
class RoutingState:
    role: AgentRole
    quota_bucket: QuotaBucket
    task_bucket: TaskBucket

    @property
    def key(self) -> str:
        return f"{self.role.value}|{self.quota_bucket.value}|{self.task_bucket.value}"


@dataclass(frozen=True)
class RoutingAction:
    model: str
    billing_mode: BillingMode

    @property
    def key(self) -> str:
        return f"{self.model}|{self.billing_mode.value}"


@dataclass(frozen=True)
class RoutingReward:
    """Reward terms; the scalar reward is success + quality - latency - cost."""

    success: float
    latency_penalty: float = 0.0
    cost_penalty: float = 0.0
    quality_bonus: float = 0.0

    @property
    def value(self) -> float:
        return self.success + self.quality_bonus - self.latency_penalty - self.cost_penalty


def quota_bucket(remaining_fraction: float) -> QuotaBucket:
    """Discretize the remaining subscription fraction."""
    if remaining_fraction < 0.1:
        return QuotaBucket.CRITICAL
    if remaining_fraction < 0.3:
        return QuotaBucket.LOW
    return QuotaBucket.HEALTHY


def task_bucket(role: AgentRole) -> TaskBucket:
    """Classify a role by the dominant dimension of its weight profile."""
    weights = ROLE_WEIGHTS[role]
    if weights.reasoning >= 20:
        return TaskBucket.REASONING
    if weights.speed >= 14:
        return TaskBucket.SPEED
    return TaskBucket.BALANCED


class RoutingQAgent:
    """
    Epsilon-greedy tabular Q-learner.

    Example:
        agent = RoutingQAgent(rng=random.Random(7))
        action = agent.select(state, actions)
        agent.update(state, action, reward, next_state, actions)
    """

    def __init__(
        self,
        alpha: float = 0.12,
        gamma: float = 0.9,
        epsilon: float = 0.08,
        rng: random.Random | None = None,
    ):
        self.alpha = alpha
        self.gamma = gamma
        self.epsilon = epsilon
        self._rng = rng or random.Random()
        self._table: dict[str, dict[str, float]] = {}

    @classmethod
    def from_config(cls, config: QLearningConfig, rng: random.Random | None = None) -> RoutingQAgent:
        return cls(alpha=config.alpha, gamma=config.gamma, epsilon=config.epsilon, rng=rng)

    def q_value(self, state: RoutingState, action: RoutingAction) -> float:
        return self._table.get(state.key, {}).get(action.key, 0.0)

    def select(self, state: RoutingState, actions: list[RoutingAction]) -> RoutingAction:
        """
        Explore with probability epsilon, else exploit the best-known action.

        An unseen state exploits to the first offered action. Ties keep the
        offered order.

        Raises:
            ValueError: If no actions are offered
        """
        if not actions:
            raise ValueError("RoutingQAgent.select requires at least one action")

        if self._rng.random() < self.epsilon:
            return actions[self._rng.randrange(len(actions))]

        row = self._table.get(state.key)
        if row is None:
            return actions[0]
        return max(actions, key=lambda a: row.get(a.key, 0.0))

    def update(
        self,
        state: RoutingState,
        action: RoutingAction,
        reward: RoutingReward,
        next_state: RoutingState,
        available_next_actions: list[RoutingAction],
    ) -> float:
        """
        Apply one Q-learning step and return the new value.

        The bootstrap term is floored at 0 so unexplored next states never
        drag the estimate down.
        """
        row = self._table.setdefault(state.key, {})
        current = row.get(action.key, 0.0)

        next_row = self._table.get(next_state.key)
        max_next = 0.0
        if next_row is not None:
            max_next = max([0.0] + [next_row.get(a.key, 0.0) for a in available_next_actions])

        updated = current + self.alpha * (reward.value + self.gamma * max_next - current)
        row[action.key] = updated
        return updated

    def snapshot(self) -> dict[str, dict[str, float]]:
        """Flat export: state key -> action key -> value."""
        return {state: dict(row) for state, row in self._table.items()}


__all__ = [
    "QuotaBucket",
    "RoutingAction",
    "RoutingQAgent",
    "RoutingReward",
    "RoutingState",
    "TaskBucket",
    "quota_bucket",
    "task_bucket",
]
