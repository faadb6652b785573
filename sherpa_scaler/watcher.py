"""Builds scaling policies from the meta stanzas of Nomad task groups."""

from __future__ import annotations

import logging
import re
import threading
from collections.abc import Mapping

from sherpa_scaler.nomad import NomadClient, NomadError
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
)

META_KEY_ENABLED = "sherpa_enabled"
META_KEY_MAX_COUNT = "sherpa_max_count"
META_KEY_MIN_COUNT = "sherpa_min_count"
META_KEY_SCALE_IN_COUNT = "sherpa_scale_in_count"
META_KEY_SCALE_OUT_COUNT = "sherpa_scale_out_count"
META_KEY_SCALE_OUT_CPU_PERCENTAGE_THRESHOLD = "sherpa_scale_out_cpu_percentage_threshold"
META_KEY_SCALE_OUT_MEMORY_PERCENTAGE_THRESHOLD = "sherpa_scale_out_memory_percentage_threshold"
META_KEY_SCALE_IN_CPU_PERCENTAGE_THRESHOLD = "sherpa_scale_in_cpu_percentage_threshold"
META_KEY_SCALE_IN_MEMORY_PERCENTAGE_THRESHOLD = "sherpa_scale_in_memory_percentage_threshold"

_WAIT_TIME = 300.0
_ERROR_BACKOFF = 10.0

_TRUE = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE = {"0", "f", "F", "FALSE", "false", "False"}
_INT_RE = re.compile(r"[+-]?[0-9]+")
_INT_MIN, _INT_MAX = -(2**63), 2**63 - 1

# Meta key, policy attribute, default value and a name used in conversion errors.
_INT_FIELDS = (
    (META_KEY_MAX_COUNT, "max_count", DEFAULT_MAX_COUNT, "max count"),
    (META_KEY_MIN_COUNT, "min_count", DEFAULT_MIN_COUNT, "min count"),
    (META_KEY_SCALE_IN_COUNT, "scale_in_count", DEFAULT_SCALE_IN_COUNT, "scale in"),
    (META_KEY_SCALE_OUT_COUNT, "scale_out_count", DEFAULT_SCALE_OUT_COUNT, "scale out"),
    (
        META_KEY_SCALE_OUT_CPU_PERCENTAGE_THRESHOLD,
        "scale_out_cpu_percentage_threshold",
        DEFAULT_SCALE_OUT_CPU_PERCENTAGE_THRESHOLD,
        "scale out CPU",
    ),
    (
        META_KEY_SCALE_OUT_MEMORY_PERCENTAGE_THRESHOLD,
        "scale_out_memory_percentage_threshold",
        DEFAULT_SCALE_OUT_MEMORY_PERCENTAGE_THRESHOLD,
        "scale out memory",
    ),
    (
        META_KEY_SCALE_IN_CPU_PERCENTAGE_THRESHOLD,
        "scale_in_cpu_percentage_threshold",
        DEFAULT_SCALE_IN_CPU_PERCENTAGE_THRESHOLD,
        "scale in CPU",
    ),
    (
        META_KEY_SCALE_IN_MEMORY_PERCENTAGE_THRESHOLD,
        "scale_in_memory_percentage_threshold",
        DEFAULT_SCALE_IN_MEMORY_PERCENTAGE_THRESHOLD,
        "scale in memory",
    ),
)


def _parse_int(text: str) -> int:
    if not _INT_RE.fullmatch(text):
        raise ValueError(f"invalid syntax: {text!r}")
    value = int(text)
    if not _INT_MIN <= value <= _INT_MAX:
        raise ValueError(f"value out of range: {text!r}")
    return value


class MetaWatcher:
    """Long-polls Nomad for job changes and stores policies found in group meta."""

    def __init__(
        self,
        logger: logging.Logger | None,
        nomad: NomadClient | None,
        policies: PolicyBackend | None,
    ):
        self.logger = logger or logging.getLogger(__name__)
        self.nomad = nomad
        self.policies = policies
        self.last_change_index = 0
        self._stop = threading.Event()
        self._workers: list[threading.Thread] = []

    def run(self) -> None:
        """Watch the job list until stopped, reading the meta of every changed job."""
        self.logger.info("starting Sherpa Nomad meta policy engine")
        self._stop.clear()

        max_found = 0
        wait_index = 0

        while not self._stop.is_set():
            try:
                jobs, last_index = self.nomad.list_jobs(wait_index, _WAIT_TIME)
            except NomadError as exc:
                self.logger.error("failed to call Nomad API for job listing: %s", exc)
                self._stop.wait(_ERROR_BACKOFF)
                continue

            if not self.index_has_change(last_index, wait_index):
                self.logger.debug("meta watcher last index has not changed")
                continue
            self.logger.debug(
                "meta watcher last index has changed old=%d new=%d", wait_index, last_index
            )

            for job in jobs:
                # Compare against the highest job index already processed so every job
                # modified since then is picked up.
                if not self.index_has_change(job.modify_index, self.last_change_index):
                    continue
                self.logger.debug(
                    "job modify index is greater than last recorded job=%s old=%d new=%d",
                    job.id,
                    self.last_change_index,
                    job.modify_index,
                )
                max_found = self.max_found(job.modify_index, max_found)
                self._spawn(job.id)

            wait_index = last_index
            self.last_change_index = max_found

        for worker in self._workers:
            worker.join()
        self._workers.clear()

    def stop(self) -> None:
        """Ask the watch loop to finish after its current poll."""
        self._stop.set()

    def _spawn(self, job_id: str) -> None:
        self._workers = [w for w in self._workers if w.is_alive()]
        worker = threading.Thread(target=self.read_job_meta, args=(job_id,), daemon=True)
        self._workers.append(worker)
        worker.start()

    def read_job_meta(self, job_id: str) -> None:
        """Store a policy for every task group of the job whose meta enables one."""
        self.logger.debug("reading job group meta stanzas job=%s", job_id)
        try:
            groups = self.nomad.job_info(job_id)
        except NomadError as exc:
            self.logger.error("failed to call Nomad API for job information: %s", exc)
            return

        for group in groups:
            if not self.has_meta_keys(group.meta):
                continue
            policy = self.policy_from_meta(group.meta)
            try:
                self.policies.put_job_group_policy(job_id, group.name, policy)
            except Exception as exc:
                self.logger.error(
                    "failed to add job group policy from Nomad meta job=%s group=%s: %s",
                    job_id,
                    group.name,
                    exc,
                )

    def policy_from_meta(self, meta: Mapping[str, str]) -> GroupScalingPolicy:
        """Build a policy from meta values, using defaults for missing or bad ones."""
        policy = GroupScalingPolicy(enabled=self._enabled(meta))
        for key, attr, default, label in _INT_FIELDS:
            setattr(policy, attr, self._int_or_default(meta, key, default, label))
        return policy

    def _enabled(self, meta: Mapping[str, str]) -> bool:
        value = meta.get(META_KEY_ENABLED)
        if value is None:
            return False
        if value in _TRUE:
            return True
        if value in _FALSE:
            return False
        self.logger.error("failed to convert enabled meta value %r to bool", value)
        return False

    def _int_or_default(
        self, meta: Mapping[str, str], key: str, default: int, label: str
    ) -> int:
        value = meta.get(key)
        if value is None:
            return default
        try:
            return _parse_int(value)
        except ValueError as exc:
            self.logger.error("failed to convert %s meta value to int: %s", label, exc)
            return default

    def has_meta_keys(self, meta: Mapping[str, str] | None) -> bool:
        """Report whether the meta stanza carries the enabling key."""
        return bool(meta) and META_KEY_ENABLED in meta

    def index_has_change(self, new: int, old: int) -> bool:
        """Report whether the new index is strictly greater than the old one."""
        return new > old

    def max_found(self, new: int, old: int) -> int:
        """Return the larger of two indexes."""
        return new if new > old else old