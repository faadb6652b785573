"""Group scaling policies, their defaults and the storage backend interface."""

from __future__ import annotations

import abc
from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from typing import Any

DEFAULT_MIN_COUNT = 2
DEFAULT_MAX_COUNT = 10
DEFAULT_SCALE_OUT_COUNT = 1
DEFAULT_SCALE_IN_COUNT = 1
DEFAULT_SCALE_OUT_CPU_PERCENTAGE_THRESHOLD = 80
DEFAULT_SCALE_OUT_MEMORY_PERCENTAGE_THRESHOLD = 80
DEFAULT_SCALE_IN_CPU_PERCENTAGE_THRESHOLD = 20
DEFAULT_SCALE_IN_MEMORY_PERCENTAGE_THRESHOLD = 20


def _int_field(json_name: str) -> Any:
    return field(default=0, metadata={"json": json_name})


@dataclass
class GroupScalingPolicy:
    """The configurable options of a task group scaling policy."""

    enabled: bool = field(default=False, metadata={"json": "Enabled"})
    min_count: int = _int_field("MinCount")
    max_count: int = _int_field("MaxCount")
    scale_out_count: int = _int_field("ScaleOutCount")
    scale_in_count: int = _int_field("ScaleInCount")
    scale_out_cpu_percentage_threshold: int = _int_field("ScaleOutCPUPercentageThreshold")
    scale_out_memory_percentage_threshold: int = _int_field("ScaleOutMemoryPercentageThreshold")
    scale_in_cpu_percentage_threshold: int = _int_field("ScaleInCPUPercentageThreshold")
    scale_in_memory_percentage_threshold: int = _int_field("ScaleInMemoryPercentageThreshold")

    def to_dict(self) -> dict[str, Any]:
        """Return the policy as a JSON-ready mapping using the wire field names."""
        return {f.metadata["json"]: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> GroupScalingPolicy:
        """Build a policy from decoded JSON; unknown keys are ignored, missing ones stay zero."""
        policy = cls()
        if data is None:
            return policy
        if not isinstance(data, Mapping):
            raise ValueError(f"cannot decode {type(data).__name__} into a scaling policy")

        by_name = {f.metadata["json"]: f for f in fields(cls)}
        by_lower = {name.lower(): f for name, f in by_name.items()}

        for key, value in data.items():
            target = by_name.get(key) or by_lower.get(str(key).lower())
            if target is None or value is None:
                continue
            expected = type(target.default)
            if expected is bool:
                valid = isinstance(value, bool)
            else:
                valid = isinstance(value, int) and not isinstance(value, bool)
            if not valid:
                raise ValueError(
                    f"cannot decode {value!r} into field {target.metadata['json']} "
                    f"of type {expected.__name__}"
                )
            setattr(policy, target.name, value)
        return policy


class PolicyValidationError(ValueError):
    """Raised when a policy holds nothing but default values."""


def validate(policy: GroupScalingPolicy) -> None:
    """Reject a policy whose counts and enabled flag are all left at their zero values."""
    if (
        policy.min_count == 0
        and policy.max_count == 0
        and not policy.enabled
        and policy.scale_in_count == 0
        and policy.scale_out_count == 0
    ):
        raise PolicyValidationError("please specify non-default scaling policy")


_DEFAULTS = (
    ("min_count", DEFAULT_MIN_COUNT),
    ("max_count", DEFAULT_MAX_COUNT),
    ("scale_out_count", DEFAULT_SCALE_OUT_COUNT),
    ("scale_in_count", DEFAULT_SCALE_IN_COUNT),
    ("scale_out_cpu_percentage_threshold", DEFAULT_SCALE_OUT_CPU_PERCENTAGE_THRESHOLD),
    ("scale_out_memory_percentage_threshold", DEFAULT_SCALE_OUT_MEMORY_PERCENTAGE_THRESHOLD),
    ("scale_in_cpu_percentage_threshold", DEFAULT_SCALE_IN_CPU_PERCENTAGE_THRESHOLD),
    ("scale_in_memory_percentage_threshold", DEFAULT_SCALE_IN_MEMORY_PERCENTAGE_THRESHOLD),
)


def merge_with_defaults(policy: GroupScalingPolicy) -> GroupScalingPolicy:
    """Fill every zero-valued field of the policy with its default, in place."""
    for name, default in _DEFAULTS:
        if getattr(policy, name) == 0:
            setattr(policy, name, default)
    return policy


class PolicyBackend(abc.ABC):
    """Durable storage for job scaling policies."""

    @abc.abstractmethod
    def put_job_policy(self, job: str, policies: Mapping[str, GroupScalingPolicy]) -> None:
        """Insert or replace the policies of every group of a job."""

    @abc.abstractmethod
    def put_job_group_policy(self, job: str, group: str, policy: GroupScalingPolicy) -> None:
        """Insert or replace the policy of one task group."""

    @abc.abstractmethod
    def get_policies(self) -> dict[str, dict[str, GroupScalingPolicy]] | None:
        """Return all stored policies keyed by job then group."""

    @abc.abstractmethod
    def get_job_policy(self, job: str) -> dict[str, GroupScalingPolicy] | None:
        """Return the group policies of a job, or None when there are none."""

    @abc.abstractmethod
    def get_job_group_policy(self, job: str, group: str) -> GroupScalingPolicy | None:
        """Return the policy of a task group, or None when there is none."""

    @abc.abstractmethod
    def delete_job_policy(self, job: str) -> None:
        """Delete every group policy of a job."""

    @abc.abstractmethod
    def delete_job_group_policy(self, job: str, group: str) -> None:
        """Delete the policy of one task group."""