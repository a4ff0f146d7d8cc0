"""
Precedence resolution across model-selection layers.

Layers, highest first: host override, manual user plan, pinned model,
dynamic recommendation, provider fallback policy, system default. The
highest layer that names a catalog-present model wins, so a user's
explicit choice is never replaced by the scorer.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from .preferences import match_catalog_id
from .types import AgentRole, ManualAgentConfig, ResolutionLayer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PrecedenceResolution:
    layer: ResolutionLayer
    model: str  # Catalog spelling of the winning id


@dataclass
class PrecedenceInputs:
    """User- and host-supplied layers that sit above the scorer."""

    host_overrides: dict[AgentRole, str] = field(default_factory=dict)
    manual_plans: dict[AgentRole, ManualAgentConfig] = field(default_factory=dict)
    system_defaults: dict[AgentRole, str] = field(default_factory=dict)

    def layers_for(
        self,
        role: AgentRole,
        dynamic_model: str | None,
        pinned_model: str | None = None,
        fallback_policy_model: str | None = None,
    ) -> dict[ResolutionLayer, str | None]:
        """Every layer's proposal for one role (None where a layer is silent)."""
        manual = self.manual_plans.get(role)
        return {
            ResolutionLayer.HOST_OVERRIDE: self.host_overrides.get(role),
            ResolutionLayer.MANUAL_USER_PLAN: manual.primary if manual else None,
            ResolutionLayer.PINNED_MODEL: pinned_model,
            ResolutionLayer.DYNAMIC_RECOMMENDATION: dynamic_model,
            ResolutionLayer.PROVIDER_FALLBACK_POLICY: fallback_policy_model,
            ResolutionLayer.SYSTEM_DEFAULT: self.system_defaults.get(role),
        }


def resolve_precedence(
    role: AgentRole,
    layers: Mapping[ResolutionLayer, str | None],
    catalog_ids: Iterable[str],
) -> PrecedenceResolution | None:
    """
    Pick the highest-precedence layer whose model the catalog offers.

    Args:
        role: Role being resolved (for logging)
        layers: Layer -> proposed model id; missing or None means no proposal
        catalog_ids: Model ids present in the catalog

    Returns:
        The winning layer and model, or None if no layer names a catalog model
    """
    catalog_ids = list(catalog_ids)
    for layer in ResolutionLayer:
        proposed = layers.get(layer)
        if not proposed:
            continue
        matched = match_catalog_id(proposed, catalog_ids)
        if matched is None:
            logger.warning(
                f"Ignoring {layer.value} model {proposed!r} for {role.value}: not in catalog"
            )
            continue
        logger.debug(f"Resolved {role.value} via {layer.value}: {matched}")
        return PrecedenceResolution(layer=layer, model=matched)
    return None


__all__ = [
    "PrecedenceInputs",
    "PrecedenceResolution",
    "resolve_precedence",
]
