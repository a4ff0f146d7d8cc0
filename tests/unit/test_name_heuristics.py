"""
Unit tests for name_heuristics module.
"""

import pytest

from conftest import make_candidate

from smart_routing.name_heuristics import (
    is_deprecated_by_name,
    is_economy,
    is_premium,
    matched_affinities,
    speed_score,
    version_affinity_score,
)


class TestSpeedScore:
    """Tests for the speed tier heuristic."""

    @pytest.mark.parametrize(
        "model_id,expected",
        [
            ("google/gemini-2.5-flash", 85.0),
            ("openai/gpt-5.1-codex-mini", 85.0),
            ("openai/gpt-3.5-turbo", 70.0),
            ("anthropic/claude-opus-4", 35.0),
            ("openai/gpt-4o", 55.0),
        ],
    )
    def test_tiers(self, model_id, expected):
        assert speed_score(make_candidate(model_id)) == expected

    def test_provider_prefix_ignored(self):
        """A provider called nanogpt does not make every model fast."""
        assert speed_score(make_candidate("nanogpt/gpt-4o")) == 55.0
        assert not is_economy(make_candidate("nanogpt/gpt-4o"))

    def test_display_name_counts(self):
        candidate = make_candidate("acme/model-x", name="Model X Flash")
        assert speed_score(candidate) == 85.0


class TestTiers:
    """Tests for premium and economy detection."""

    @pytest.mark.parametrize(
        "model_id", ["openai/gpt-5.3-codex", "anthropic/claude-opus-4", "google/gemini-2.5-pro"]
    )
    def test_premium(self, model_id):
        assert is_premium(make_candidate(model_id))

    @pytest.mark.parametrize("model_id", ["nanogpt/gpt-4o-mini", "mistral/mistral-small"])
    def test_economy(self, model_id):
        assert is_economy(make_candidate(model_id))

    def test_neither(self):
        candidate = make_candidate("chutes/kimi-k2.5")
        assert not is_premium(candidate)
        assert not is_economy(candidate)


class TestVersionAffinity:
    """Tests for generation nudges."""

    def test_newer_generation_boosted(self):
        assert version_affinity_score(make_candidate("google/gemini-3-pro")) == 14

    def test_superseded_release_penalized(self):
        candidate = make_candidate("google/gemini-2.5-flash")

        assert version_affinity_score(candidate) == -6
        assert [a.label for a in matched_affinities(candidate)] == ["gemini-2.5-flash superseded"]

    def test_no_match(self):
        assert version_affinity_score(make_candidate("openai/gpt-4o")) == 0

    def test_deprecated_by_name(self):
        assert is_deprecated_by_name(make_candidate("acme/Old-Model-DEPRECATED"))
        assert not is_deprecated_by_name(make_candidate("acme/model"))
