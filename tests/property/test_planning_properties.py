"""
Property-based tests for plan construction.

Random catalogs, policies and quota levels must always produce a complete,
deterministic plan whose chains respect their structural invariants.
"""

from hypothesis import given, settings
from hypothesis import strategies as st

from conftest import make_candidate, make_context, make_policy, make_quota

from smart_routing.config import SelectionConfig
from smart_routing.planner import build_chain, build_routing_plan, plan_digest, select_free_tier_model
from smart_routing.scoring import assignment_confidence, quota_pressure_score, rank_candidates
from smart_routing.types import ROLE_ORDER, AgentRole, BillingMode, PolicyMode

PROVIDERS = ["nanogpt", "openai", "chutes", "opencode", "google"]
NAMES = ["gpt-4o", "gpt-4o-mini", "gpt-5.3-codex", "kimi-k2.5", "big-pickle", "gemini-3-flash", "glm-5"]

prices = st.one_of(st.just(0.0), st.floats(min_value=0.05, max_value=30.0, allow_nan=False))

candidate_strategy = st.builds(
    lambda provider, name, cost_in, cost_out, reasoning, toolcall, attachment, context: make_candidate(
        f"{provider}/{name}",
        cost_in,
        cost_out,
        reasoning=reasoning,
        toolcall=toolcall,
        attachment=attachment,
        context_limit=context,
    ),
    st.sampled_from(PROVIDERS),
    st.sampled_from(NAMES),
    prices,
    prices,
    st.booleans(),
    st.booleans(),
    st.booleans(),
    st.sampled_from([8_000, 32_000, 128_000, 400_000]),
)

catalog_strategy = st.lists(
    candidate_strategy, min_size=1, max_size=10, unique_by=lambda c: c.model_id
)
policy_modes = st.sampled_from(list(PolicyMode))
quota_levels = st.tuples(st.integers(0, 120), st.integers(0, 3000))


class TestPlanProperties:
    """Invariants of build_routing_plan."""

    @given(catalog_strategy, policy_modes, quota_levels)
    @settings(max_examples=60, deadline=None)
    def test_every_role_assigned_from_catalog(self, catalog, mode, quota):
        """Every role gets a catalog model with a clamped confidence."""
        plan = build_routing_plan(catalog, make_policy(mode), make_quota(*quota)).plan
        catalog_ids = {c.model_id for c in catalog}

        assert list(plan.agents) == list(ROLE_ORDER)
        for assignment in plan.agents.values():
            assert assignment.model in catalog_ids
            assert 0.0 <= assignment.confidence <= 1.0

    @given(catalog_strategy, policy_modes, quota_levels)
    @settings(max_examples=60, deadline=None)
    def test_chain_invariants(self, catalog, mode, quota):
        """Chains start at the primary, never repeat, stay bounded, end on the free tier."""
        config = SelectionConfig()
        plan = build_routing_plan(catalog, make_policy(mode), make_quota(*quota), config=config).plan
        free_tier = select_free_tier_model(catalog, config)

        for role, chain in plan.chains.items():
            assert chain[0] == plan.agents[role].model
            assert len(chain) == len(set(chain))
            assert len(chain) <= config.max_chain_length
            if free_tier is not None:
                assert free_tier in chain
                if chain[0] != free_tier:
                    assert chain[-1] == free_tier

    @given(catalog_strategy, policy_modes, quota_levels)
    @settings(max_examples=40, deadline=None)
    def test_deterministic(self, catalog, mode, quota):
        """Identical inputs give byte-identical plans, whatever the catalog order."""
        first = build_routing_plan(catalog, make_policy(mode), make_quota(*quota)).plan
        second = build_routing_plan(list(reversed(catalog)), make_policy(mode), make_quota(*quota)).plan

        assert plan_digest(first) == plan_digest(second)

    @given(catalog_strategy, quota_levels)
    @settings(max_examples=40, deadline=None)
    def test_provenance_matches_assignments(self, catalog, quota):
        plan = build_routing_plan(catalog, make_policy(), make_quota(*quota)).plan

        for role, record in plan.provenance.items():
            assert record.winner_model == plan.agents[role].model


class TestChainProperties:
    """Invariants of build_chain in isolation."""

    @given(
        st.lists(st.sampled_from(NAMES), min_size=1, max_size=4),
        st.lists(st.sampled_from(NAMES), max_size=8),
        st.one_of(st.none(), st.sampled_from(NAMES)),
        st.integers(min_value=2, max_value=8),
    )
    @settings(max_examples=200)
    def test_build_chain(self, head, alternatives, free_tier, max_length):
        chain = build_chain(head, alternatives, free_tier, max_length)

        assert chain[0] == head[0]
        assert len(chain) == len(set(chain))
        assert len(chain) <= max_length
        if free_tier is not None and head[0] != free_tier:
            assert chain[-1] == free_tier


class TestScoringProperties:
    """Invariants of the scorer."""

    @given(catalog_strategy, st.sampled_from(list(AgentRole)), policy_modes)
    @settings(max_examples=60, deadline=None)
    def test_confidence_clamped(self, catalog, role, mode):
        for scored in rank_candidates(catalog, role, make_context(mode)):
            assert 0.0 <= assignment_confidence(scored) <= 1.0

    @given(st.integers(0, 120), st.integers(0, 120))
    @settings(max_examples=100)
    def test_quota_pressure_monotonic(self, low, high):
        """Less remaining quota never scores better."""
        low, high = sorted((low, high))
        low_score = quota_pressure_score(BillingMode.SUBSCRIPTION, make_context(daily=low, monthly=3000))
        high_score = quota_pressure_score(BillingMode.SUBSCRIPTION, make_context(daily=high, monthly=3000))

        assert low_score <= high_score
