"""Sample-weighted merging of per-participant learning updates."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field


@dataclass(frozen=True)
class FederatedUpdate:
    """One participant's observed rewards and feature adjustments."""

    model_rewards: dict[str, float] = field(default_factory=dict)
    feature_adjustments: dict[str, float] = field(default_factory=dict)
    sample_count: int = 0


@dataclass(frozen=True)
class AggregatedFederatedUpdate:
    model_rewards: dict[str, float]
    feature_adjustments: dict[str, float]
    participants: int


def _weighted_mean(rows: list[tuple[float, float]]) -> float:
    total_weight = sum(weight for _, weight in rows)
    if total_weight <= 0:
        return 0.0
    return sum(value * weight for value, weight in rows) / total_weight


def _merge(updates: Sequence[FederatedUpdate], attr: str) -> dict[str, float]:
    # Key order: first appearance across participants
    keys: dict[str, None] = {}
    for update in updates:
        keys.update(dict.fromkeys(getattr(update, attr)))

    merged: dict[str, float] = {}
    for key in keys:
        rows = [
            (getattr(u, attr)[key], float(max(1, u.sample_count)))
            for u in updates
            if key in getattr(u, attr)
        ]
        merged[key] = _weighted_mean(rows)
    return merged


def aggregate_federated_updates(updates: Sequence[FederatedUpdate]) -> AggregatedFederatedUpdate:
    """
    Sample-weighted mean per key present in any participant.

    Participants lacking a key contribute nothing to it; every participant
    weighs at least 1.
    """
    if not updates:
        return AggregatedFederatedUpdate(model_rewards={}, feature_adjustments={}, participants=0)

    return AggregatedFederatedUpdate(
        model_rewards=_merge(updates, "model_rewards"),
        feature_adjustments=_merge(updates, "feature_adjustments"),
        participants=len(updates),
    )


class FederatedAggregator:
    """Stateless wrapper kept for callers that pass an aggregator by handle."""

    def aggregate(self, updates: Sequence[FederatedUpdate]) -> AggregatedFederatedUpdate:
        return aggregate_federated_updates(updates)


__all__ = [
    "AggregatedFederatedUpdate",
    "FederatedAggregator",
    "FederatedUpdate",
    "aggregate_federated_updates",
]
