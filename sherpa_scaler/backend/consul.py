"""A policy backend that stores policies in the Consul key/value store."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping

from sherpa_scaler.consul import ConsulError, ConsulKV, new_consul_client
from sherpa_scaler.policy import GroupScalingPolicy, PolicyBackend

BASE_KV_PATH = "policies/"
_KV_SET = "set"


def _encode(policy: GroupScalingPolicy) -> bytes:
    return json.dumps(policy.to_dict(), separators=(",", ":")).encode("utf-8")


def _decode(value: bytes) -> GroupScalingPolicy:
    try:
        return GroupScalingPolicy.from_dict(json.loads(value))
    except ValueError as exc:
        raise ConsulError(f"failed to unmarshal Consul KV value: {exc}") from exc


class ConsulPolicyBackend(PolicyBackend):
    """Keeps scaling policies under ``<path>policies/<job>/<group>`` in Consul."""

    def __init__(
        self,
        logger: logging.Logger | None = None,
        path: str = "sherpa/",
        kv: ConsulKV | None = None,
    ):
        self.logger = logger or logging.getLogger(__name__)
        self.path = path + BASE_KV_PATH
        self.kv = kv if kv is not None else new_consul_client()

    def _key(self, job: str, group: str) -> str:
        return f"{self.path}{job}/{group}"

    def get_policies(self) -> dict[str, dict[str, GroupScalingPolicy]] | None:
        pairs = self.kv.list(self.path)
        if pairs is None:
            return None
        out: dict[str, dict[str, GroupScalingPolicy]] = {}
        for pair in pairs:
            policy = _decode(pair.value)
            *_, job, group = pair.key.split("/")
            out[job] = {group: policy}
        return out

    def get_job_policy(self, job: str) -> dict[str, GroupScalingPolicy] | None:
        pairs = self.kv.list(self.path + job)
        if pairs is None:
            return None
        return {pair.key.split("/")[-1]: _decode(pair.value) for pair in pairs}

    def get_job_group_policy(self, job: str, group: str) -> GroupScalingPolicy | None:
        pair = self.kv.get(self._key(job, group))
        if pair is None:
            return None
        return _decode(pair.value)

    def put_job_policy(self, job: str, policies: Mapping[str, GroupScalingPolicy]) -> None:
        operations = [
            (_KV_SET, self._key(job, group), _encode(policy))
            for group, policy in policies.items()
        ]
        if not self.kv.txn(operations):
            raise ConsulError("failed to write job policy Consul transaction")

    def put_job_group_policy(self, job: str, group: str, policy: GroupScalingPolicy) -> None:
        self.kv.put(self._key(job, group), _encode(policy))

    def delete_job_policy(self, job: str) -> None:
        self.kv.delete_tree(self.path + job)

    def delete_job_group_policy(self, job: str, group: str) -> None:
        self.kv.delete(self._key(job, group))