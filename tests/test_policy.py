import pytest

from sherpa_scaler.policy import (
    DEFAULT_MAX_COUNT,
    DEFAULT_MIN_COUNT,
    DEFAULT_SCALE_IN_COUNT,
    DEFAULT_SCALE_IN_CPU_PERCENTAGE_THRESHOLD,
    DEFAULT_SCALE_IN_MEMORY_PERCENTAGE_THRESHOLD,
    DEFAULT_SCALE_OUT_COUNT,
    DEFAULT_SCALE_OUT_CPU_PERCENTAGE_THRESHOLD,
    DEFAULT_SCALE_OUT_MEMORY_PERCENTAGE_THRESHOLD,
    GroupScalingPolicy,
    PolicyBackend,
    PolicyValidationError,
    merge_with_defaults,
    validate,
)


def test_validate_rejects_default_policy():
    with pytest.raises(PolicyValidationError, match="please specify non-default scaling policy"):
        validate(GroupScalingPolicy())


def test_validate_accepts_enabled_policy():
    policy = GroupScalingPolicy(enabled=True)
    assert validate(policy) is None


def test_validation_error_is_value_error():
    with pytest.raises(ValueError):
        validate(GroupScalingPolicy())


def test_merge_with_defaults():
    policy = GroupScalingPolicy(enabled=True)
    merge_with_defaults(policy)
    assert policy == GroupScalingPolicy(
        enabled=True,
        min_count=DEFAULT_MIN_COUNT,
        max_count=DEFAULT_MAX_COUNT,
        scale_in_count=DEFAULT_SCALE_IN_COUNT,
        scale_out_count=DEFAULT_SCALE_OUT_COUNT,
        scale_out_cpu_percentage_threshold=DEFAULT_SCALE_OUT_CPU_PERCENTAGE_THRESHOLD,
        scale_in_cpu_percentage_threshold=DEFAULT_SCALE_IN_CPU_PERCENTAGE_THRESHOLD,
        scale_out_memory_percentage_threshold=DEFAULT_SCALE_OUT_MEMORY_PERCENTAGE_THRESHOLD,
        scale_in_memory_percentage_threshold=DEFAULT_SCALE_IN_MEMORY_PERCENTAGE_THRESHOLD,
    )


def test_merge_with_defaults_keeps_set_values():
    policy = GroupScalingPolicy(enabled=True, max_count=16, scale_out_memory_percentage_threshold=75)
    merged = merge_with_defaults(policy)
    assert merged is policy
    assert policy.max_count == 16
    assert policy.scale_out_memory_percentage_threshold == 75
    assert policy.min_count == DEFAULT_MIN_COUNT


def test_to_dict_uses_wire_names():
    policy = GroupScalingPolicy(enabled=True, max_count=16, min_count=4)
    data = policy.to_dict()
    assert data["Enabled"] is True
    assert data["MaxCount"] == 16
    assert data["MinCount"] == 4
    assert set(data) == {
        "Enabled",
        "MinCount",
        "MaxCount",
        "ScaleOutCount",
        "ScaleInCount",
        "ScaleOutCPUPercentageThreshold",
        "ScaleOutMemoryPercentageThreshold",
        "ScaleInCPUPercentageThreshold",
        "ScaleInMemoryPercentageThreshold",
    }


def test_round_trip():
    policy = GroupScalingPolicy(
        enabled=True,
        max_count=16,
        min_count=4,
        scale_out_count=2,
        scale_in_count=2,
        scale_out_cpu_percentage_threshold=75,
        scale_out_memory_percentage_threshold=75,
        scale_in_cpu_percentage_threshold=30,
        scale_in_memory_percentage_threshold=30,
    )
    assert GroupScalingPolicy.from_dict(policy.to_dict()) == policy


def test_from_dict_ignores_unknown_and_matches_case_insensitively():
    policy = GroupScalingPolicy.from_dict({"maxcount": 10, "Unknown": "x", "Enabled": True})
    assert policy == GroupScalingPolicy(enabled=True, max_count=10)


def test_from_dict_none_gives_zero_policy():
    assert GroupScalingPolicy.from_dict(None) == GroupScalingPolicy()


@pytest.mark.parametrize("data", [{"MaxCount": "ten"}, {"Enabled": 1}, {"MinCount": 2.5}, [1, 2]])
def test_from_dict_rejects_wrong_types(data):
    with pytest.raises(ValueError):
        GroupScalingPolicy.from_dict(data)


def test_backend_is_abstract():
    with pytest.raises(TypeError):
        PolicyBackend()