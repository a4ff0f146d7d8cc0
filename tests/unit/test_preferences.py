"""
Unit tests for preferences module.
"""

from smart_routing.preferences import (
    match_catalog_id,
    normalize_model_preferences,
    resolve_preferred_model,
)
from smart_routing.types import AgentRole

CATALOG_IDS = ["nanogpt/gpt-4o", "openai/gpt-5.3-codex", "opencode/big-pickle"]


class TestNormalizeModelPreferences:
    """Tests for preference normalization."""

    def test_not_a_mapping(self):
        assert normalize_model_preferences(["a/b"]) is None
        assert normalize_model_preferences(None) is None

    def test_drops_malformed_entries(self):
        raw = {
            "oracle": [" openai/gpt-5.3-codex ", "no-provider", 42, "has space/x y", "openai/gpt-5.3-codex"],
            "unknown-role": ["a/b"],
            "fixer": "nanogpt/gpt-4o",
        }

        assert normalize_model_preferences(raw) == {AgentRole.ORACLE: ["openai/gpt-5.3-codex"]}

    def test_empty_after_filtering(self):
        assert normalize_model_preferences({"oracle": ["bad"]}) is None

    def test_accepts_enum_keys(self):
        normalized = normalize_model_preferences({AgentRole.FIXER: ("a/x", "b/y")})
        assert normalized == {AgentRole.FIXER: ["a/x", "b/y"]}


class TestResolvePreferredModel:
    """Tests for resolving preferences against the catalog."""

    def test_first_available_wins(self):
        preferences = {AgentRole.ORACLE: ["ghost/model", "OpenAI/GPT-5.3-Codex", "nanogpt/gpt-4o"]}
        assert resolve_preferred_model(AgentRole.ORACLE, preferences, CATALOG_IDS) == "openai/gpt-5.3-codex"

    def test_no_preferences(self):
        assert resolve_preferred_model(AgentRole.ORACLE, None, CATALOG_IDS) is None
        assert resolve_preferred_model(AgentRole.ORACLE, {AgentRole.FIXER: ["nanogpt/gpt-4o"]}, CATALOG_IDS) is None

    def test_nothing_available(self):
        assert resolve_preferred_model(AgentRole.ORACLE, {AgentRole.ORACLE: ["ghost/x"]}, CATALOG_IDS) is None

    def test_match_catalog_id(self):
        assert match_catalog_id("OPENCODE/Big-Pickle", CATALOG_IDS) == "opencode/big-pickle"
        assert match_catalog_id("ghost/x", CATALOG_IDS) is None
