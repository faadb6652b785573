"""A thread-safe, in-process policy backend."""

from __future__ import annotations

import threading
from collections.abc import Mapping

from sherpa_scaler.policy import GroupScalingPolicy, PolicyBackend


class MemoryPolicyBackend(PolicyBackend):
    """Keeps scaling policies in memory for the life of the process."""

    def __init__(self) -> None:
        self._policies: dict[str, dict[str, GroupScalingPolicy]] = {}
        self._lock = threading.Lock()

    def get_policies(self) -> dict[str, dict[str, GroupScalingPolicy]]:
        with self._lock:
            return {job: dict(groups) for job, groups in self._policies.items()}

    def get_job_policy(self, job: str) -> dict[str, GroupScalingPolicy] | None:
        with self._lock:
            groups = self._policies.get(job)
            return dict(groups) if groups is not None else None

    def get_job_group_policy(self, job: str, group: str) -> GroupScalingPolicy | None:
        with self._lock:
            return self._policies.get(job, {}).get(group)

    def put_job_policy(self, job: str, policies: Mapping[str, GroupScalingPolicy]) -> None:
        with self._lock:
            # A job policy replaces whatever groups were stored for the job.
            self._policies[job] = dict(policies)

    def put_job_group_policy(self, job: str, group: str, policy: GroupScalingPolicy) -> None:
        with self._lock:
            self._policies.setdefault(job, {})[group] = policy

    def delete_job_group_policy(self, job: str, group: str) -> None:
        with self._lock:
            self._policies.get(job, {}).pop(group, None)

    def delete_job_policy(self, job: str) -> None:
        with self._lock:
            self._policies.pop(job, None)