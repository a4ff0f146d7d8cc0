"""
Pytest configuration and fixtures for smart routing tests.
"""

import sys
from datetime import datetime
from pathlib import Path

import pytest

# Add project root to path so we can import smart_routing without installing
sys.path.insert(0, str(Path(__file__).parent.parent))

from smart_routing.types import (
    BudgetEnforcement,
    CandidateModel,
    PolicyMode,
    QuotaStatus,
    RoutingPolicy,
    ScoringContext,
    SubscriptionBudget,
)

CHECKED_AT = datetime(2026, 3, 2, 9, 0, 0)


def make_candidate(model_id: str, cost_input: float = 0.0, cost_output: float = 0.0, **overrides):
    """Build a catalog entry with capable defaults."""
    provider_id = model_id.split("/", 1)[0]
    fields = dict(
        provider_id=provider_id,
        model_id=model_id,
        name=model_id.split("/", 1)[1],
        context_limit=200_000,
        output_limit=32_000,
        reasoning=True,
        toolcall=True,
        attachment=False,
        cost_input=cost_input,
        cost_output=cost_output,
    )
    fields.update(overrides)
    return CandidateModel(**fields)


def make_catalog():
    """Two free same-provider, two mid-cost same-provider, one cheap, one free fourth provider."""
    return [
        make_candidate("nanogpt/gpt-4o"),
        make_candidate("nanogpt/gpt-4o-mini"),
        make_candidate("openai/gpt-5.3-codex", 4.0, 12.0),
        make_candidate("openai/gpt-5.1-codex-mini", 1.0, 3.0),
        make_candidate("chutes/kimi-k2.5", 0.2, 0.5),
        make_candidate("opencode/big-pickle"),
    ]


def make_policy(mode: PolicyMode = PolicyMode.HYBRID) -> RoutingPolicy:
    return RoutingPolicy(
        mode=mode,
        subscription_budget=SubscriptionBudget(
            daily_requests=120, monthly_requests=3000, enforcement=BudgetEnforcement.SOFT
        ),
    )


def make_quota(daily: int = 100, monthly: int = 2700) -> QuotaStatus:
    return QuotaStatus(daily_remaining=daily, monthly_remaining=monthly, last_checked_at=CHECKED_AT)


def make_context(
    mode: PolicyMode = PolicyMode.HYBRID, daily: int = 100, monthly: int = 2700, **overrides
) -> ScoringContext:
    return ScoringContext(policy=make_policy(mode), quota_status=make_quota(daily, monthly), **overrides)


@pytest.fixture
def catalog():
    """Six-candidate catalog across four providers."""
    return make_catalog()


@pytest.fixture
def healthy_quota():
    return make_quota()


@pytest.fixture
def hybrid_context():
    """Hybrid policy with a healthy quota."""
    return make_context()


# Markers
def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "hypothesis: property-based tests"
    )
    config.addinivalue_line(
        "markers", "slow: tests that take >1s"
    )
