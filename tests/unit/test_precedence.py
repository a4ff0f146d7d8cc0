"""
Unit tests for precedence module.
"""

import pytest

from smart_routing.precedence import PrecedenceInputs, resolve_precedence
from smart_routing.types import AgentRole, ManualAgentConfig, ResolutionLayer

CATALOG_IDS = ["nanogpt/gpt-4o", "openai/gpt-5.3-codex", "opencode/big-pickle"]


class TestResolvePrecedence:
    """Tests for layer resolution."""

    def test_highest_layer_wins(self):
        layers = {
            ResolutionLayer.SYSTEM_DEFAULT: "opencode/big-pickle",
            ResolutionLayer.DYNAMIC_RECOMMENDATION: "nanogpt/gpt-4o",
            ResolutionLayer.MANUAL_USER_PLAN: "openai/gpt-5.3-codex",
        }
        resolution = resolve_precedence(AgentRole.ORACLE, layers, CATALOG_IDS)

        assert resolution.layer == ResolutionLayer.MANUAL_USER_PLAN
        assert resolution.model == "openai/gpt-5.3-codex"

    def test_skips_models_not_in_catalog(self, caplog):
        layers = {
            ResolutionLayer.HOST_OVERRIDE: "ghost/model",
            ResolutionLayer.DYNAMIC_RECOMMENDATION: "nanogpt/gpt-4o",
        }
        with caplog.at_level("WARNING"):
            resolution = resolve_precedence(AgentRole.FIXER, layers, CATALOG_IDS)

        assert resolution.layer == ResolutionLayer.DYNAMIC_RECOMMENDATION
        assert "ghost/model" in caplog.text

    def test_returns_catalog_spelling(self):
        layers = {ResolutionLayer.PINNED_MODEL: "NanoGPT/GPT-4o"}
        resolution = resolve_precedence(AgentRole.FIXER, layers, CATALOG_IDS)

        assert resolution.model == "nanogpt/gpt-4o"

    def test_no_layer_matches(self):
        assert resolve_precedence(AgentRole.FIXER, {}, CATALOG_IDS) is None
        assert resolve_precedence(AgentRole.FIXER, {ResolutionLayer.SYSTEM_DEFAULT: None}, CATALOG_IDS) is None


class TestPrecedenceInputs:
    """Tests for assembling per-role layers."""

    def test_layers_for(self):
        inputs = PrecedenceInputs(
            host_overrides={AgentRole.ORACLE: "openai/gpt-5.3-codex"},
            manual_plans={AgentRole.ORACLE: ManualAgentConfig(primary="nanogpt/gpt-4o")},
            system_defaults={AgentRole.ORACLE: "opencode/big-pickle"},
        )
        layers = inputs.layers_for(AgentRole.ORACLE, "dyn/model", pinned_model="pin/model")

        assert layers == {
            ResolutionLayer.HOST_OVERRIDE: "openai/gpt-5.3-codex",
            ResolutionLayer.MANUAL_USER_PLAN: "nanogpt/gpt-4o",
            ResolutionLayer.PINNED_MODEL: "pin/model",
            ResolutionLayer.DYNAMIC_RECOMMENDATION: "dyn/model",
            ResolutionLayer.PROVIDER_FALLBACK_POLICY: None,
            ResolutionLayer.SYSTEM_DEFAULT: "opencode/big-pickle",
        }

    def test_other_roles_silent(self):
        inputs = PrecedenceInputs(host_overrides={AgentRole.ORACLE: "openai/gpt-5.3-codex"})
        layers = inputs.layers_for(AgentRole.FIXER, "nanogpt/gpt-4o")

        assert resolve_precedence(AgentRole.FIXER, layers, CATALOG_IDS).layer == (
            ResolutionLayer.DYNAMIC_RECOMMENDATION
        )

    def test_manual_plan_models(self):
        manual = ManualAgentConfig(primary="a/x", fallback2="b/y")
        assert manual.models == ["a/x", "b/y"]

    @pytest.mark.parametrize("layer", list(ResolutionLayer))
    def test_each_layer_resolvable(self, layer):
        resolution = resolve_precedence(AgentRole.DESIGNER, {layer: "opencode/big-pickle"}, CATALOG_IDS)
        assert resolution.layer == layer
