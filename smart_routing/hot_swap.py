"""
Versioned runtime routing configuration with change notification.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from .types import ROLE_ORDER, AgentModelAssignment, AgentRole, DynamicModelPlan

logger = logging.getLogger(__name__)


@dataclass
class RuntimeRoutingConfig:
    version: int
    assignments: dict[AgentRole, AgentModelAssignment] = field(default_factory=dict)
    fallback_chains: dict[AgentRole, list[str]] = field(default_factory=dict)

    @classmethod
    def from_plan(cls, plan: DynamicModelPlan, version: int = 0) -> RuntimeRoutingConfig:
        return cls(
            version=version,
            assignments=dict(plan.agents),
            fallback_chains={role: list(chain) for role, chain in plan.chains.items()},
        )


@dataclass(frozen=True)
class HotSwapEvent:
    from_version: int
    to_version: int
    changed_roles: list[AgentRole]


HotSwapSubscriber = Callable[[HotSwapEvent], None]


class HotSwapManager:
    """
    Holds the live routing config and swaps it atomically for callers.

    Subscribers are notified after every apply, in subscription order.
    """

    def __init__(self, initial: RuntimeRoutingConfig):
        self._config = copy.deepcopy(initial)
        self._subscribers: list[HotSwapSubscriber] = []

    def current(self) -> RuntimeRoutingConfig:
        """Independent copy of the live config."""
        return copy.deepcopy(self._config)

    def subscribe(self, callback: HotSwapSubscriber) -> Callable[[], None]:
        """Register a subscriber; returns a function that unsubscribes it."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def apply(
        self,
        assignments: dict[AgentRole, AgentModelAssignment],
        fallback_chains: dict[AgentRole, list[str]],
    ) -> RuntimeRoutingConfig:
        """Install a new config under the next version number."""
        from_version = self._config.version
        to_version = from_version + 1

        changed = [
            role
            for role in ROLE_ORDER
            if role in assignments
            and (
                role not in self._config.assignments
                or self._config.assignments[role].model != assignments[role].model
            )
        ]

        self._config = RuntimeRoutingConfig(
            version=to_version,
            assignments=copy.deepcopy(assignments),
            fallback_chains=copy.deepcopy(fallback_chains),
        )
        logger.info(
            f"Routing config v{from_version} -> v{to_version}, "
            f"changed roles: {[r.value for r in changed]}"
        )

        event = HotSwapEvent(from_version=from_version, to_version=to_version, changed_roles=changed)
        for subscriber in list(self._subscribers):
            subscriber(event)

        return self.current()


__all__ = [
    "HotSwapEvent",
    "HotSwapManager",
    "HotSwapSubscriber",
    "RuntimeRoutingConfig",
]
