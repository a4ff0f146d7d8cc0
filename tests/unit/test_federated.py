"""
Unit tests for federated module.
"""

import pytest

from smart_routing.federated import (
    FederatedAggregator,
    FederatedUpdate,
    aggregate_federated_updates,
)


class TestAggregateFederatedUpdates:
    """Tests for sample-weighted merging."""

    def test_empty(self):
        result = aggregate_federated_updates([])

        assert result.participants == 0
        assert result.model_rewards == {}
        assert result.feature_adjustments == {}

    def test_weighted_by_samples(self):
        result = aggregate_federated_updates(
            [
                FederatedUpdate(model_rewards={"a/x": 1.0}, sample_count=30),
                FederatedUpdate(model_rewards={"a/x": 0.0}, sample_count=10),
            ]
        )

        assert result.model_rewards["a/x"] == pytest.approx(0.75)
        assert result.participants == 2

    def test_missing_keys_do_not_dilute(self):
        result = aggregate_federated_updates(
            [
                FederatedUpdate(feature_adjustments={"speed": 0.4}, sample_count=5),
                FederatedUpdate(feature_adjustments={"cost": -0.2}, sample_count=50),
            ]
        )

        assert result.feature_adjustments == {"speed": pytest.approx(0.4), "cost": pytest.approx(-0.2)}
        assert list(result.feature_adjustments) == ["speed", "cost"]

    def test_zero_samples_weigh_one(self):
        result = aggregate_federated_updates(
            [
                FederatedUpdate(model_rewards={"a/x": 1.0}, sample_count=0),
                FederatedUpdate(model_rewards={"a/x": 0.0}, sample_count=1),
            ]
        )

        assert result.model_rewards["a/x"] == pytest.approx(0.5)

    def test_aggregator_delegates(self):
        update = FederatedUpdate(model_rewards={"a/x": 0.3}, sample_count=4)
        assert FederatedAggregator().aggregate([update]) == aggregate_federated_updates([update])
