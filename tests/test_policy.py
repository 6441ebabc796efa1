"""
Tests for the detection policy.
"""

import pytest

from models.policy import (
    ALL_GROUPS,
    DEFAULT_THRESHOLD,
    DetectionPolicy,
    PolicyError,
    group_for_category,
)


class TestGroupForCategory:
    @pytest.mark.parametrize("category,group", [
        ("person", "person"),
        ("car", "vehicle"),
        ("truck", "vehicle"),
        ("bus", "vehicle"),
        ("bicycle", "vehicle"),
        ("motorcycle", "vehicle"),
        ("dog", "other"),
        ("traffic light", "other"),
    ])
    def test_mapping(self, category, group):
        assert group_for_category(category) == group


class TestDetectionPolicy:
    def test_defaults(self):
        policy = DetectionPolicy()
        assert policy.confidence_threshold == DEFAULT_THRESHOLD == 0.65
        assert policy.enabled_groups == ALL_GROUPS

    @pytest.mark.parametrize("threshold", [0.1, 0.95])
    def test_threshold_bounds_inclusive(self, threshold):
        assert DetectionPolicy(confidence_threshold=threshold).confidence_threshold == threshold

    @pytest.mark.parametrize("threshold", [0.0, 0.09, 0.96, 1.0])
    def test_threshold_out_of_range(self, threshold):
        with pytest.raises(PolicyError):
            DetectionPolicy(confidence_threshold=threshold)

    def test_unknown_group_rejected(self):
        with pytest.raises(PolicyError):
            DetectionPolicy(enabled_groups={"person", "animal"})

    def test_policy_error_is_value_error(self):
        assert issubclass(PolicyError, ValueError)

    def test_allows(self):
        policy = DetectionPolicy(enabled_groups={"person"})
        assert policy.allows("person")
        assert not policy.allows("car")
        assert not policy.allows("dog")

    def test_with_group_returns_new_policy(self):
        policy = DetectionPolicy()
        updated = policy.with_group("vehicle", False)

        assert not updated.is_enabled("vehicle")
        assert policy.is_enabled("vehicle")

    def test_with_group_unknown(self):
        with pytest.raises(PolicyError):
            DetectionPolicy().with_group("animal", True)

    def test_updated_partial(self):
        policy = DetectionPolicy().updated(confidence_threshold=0.8)
        assert policy.confidence_threshold == 0.8
        assert policy.enabled_groups == ALL_GROUPS

        policy = policy.updated(groups={"person": False, "other": False})
        assert policy.confidence_threshold == 0.8
        assert policy.enabled_groups == frozenset({"vehicle"})

    def test_updated_invalid_keeps_original(self):
        policy = DetectionPolicy()
        with pytest.raises(PolicyError):
            policy.updated(confidence_threshold=0.99)
        assert policy.confidence_threshold == 0.65

    def test_dict_roundtrip(self):
        policy = DetectionPolicy(confidence_threshold=0.5, enabled_groups={"vehicle", "person"})
        data = policy.to_dict()

        assert data == {"confidence_threshold": 0.5, "enabled_groups": ["person", "vehicle"]}
        assert DetectionPolicy.from_dict(data) == policy
