"""A small client for the parts of the Nomad HTTP API used here."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import requests

_DEFAULT_ADDR = "http://127.0.0.1:4646"
_TRUE = {"1", "t", "T", "TRUE", "true", "True"}


class NomadError(Exception):
    """Raised when Nomad cannot be reached or answers with an unexpected status."""


@dataclass
class JobStub:
    """A job as listed by Nomad."""

    id: str = ""
    name: str = ""
    type: str = ""
    status: str = ""
    modify_index: int = 0
    job_modify_index: int = 0

    @classmethod
    def _from_json(cls, data: Mapping[str, Any]) -> JobStub:
        return cls(
            id=data.get("ID") or "",
            name=data.get("Name") or "",
            type=data.get("Type") or "",
            status=data.get("Status") or "",
            modify_index=int(data.get("ModifyIndex") or 0),
            job_modify_index=int(data.get("JobModifyIndex") or 0),
        )


@dataclass
class TaskGroup:
    """A task group of a job, with its meta stanza."""

    name: str = ""
    count: int = 0
    meta: dict[str, str] = field(default_factory=dict)

    @classmethod
    def _from_json(cls, data: Mapping[str, Any]) -> TaskGroup:
        return cls(
            name=data.get("Name") or "",
            count=int(data.get("Count") or 0),
            meta=dict(data.get("Meta") or {}),
        )


class NomadClient:
    """Access to one Nomad agent."""

    def __init__(
        self,
        address: str,
        token: str | None = None,
        session: requests.Session | None = None,
    ):
        self.address = address
        self.token = token
        self.session = session or requests.Session()

    def _get(self, path: str, params: dict[str, str] | None = None) -> requests.Response:
        headers = {"X-Nomad-Token": self.token} if self.token else {}
        try:
            resp = self.session.get(
                f"{self.address.rstrip('/')}{path}", params=params, headers=headers
            )
        except requests.RequestException as exc:
            raise NomadError(str(exc)) from exc
        if resp.status_code != 200:
            raise NomadError(f"Unexpected response code: {resp.status_code} ({resp.text})")
        return resp

    def list_jobs(
        self, wait_index: int = 0, wait_time: float | None = None
    ) -> tuple[list[JobStub], int]:
        """List jobs, blocking until the index passes ``wait_index``; returns jobs and last index."""
        params: dict[str, str] = {}
        if wait_index:
            params["index"] = str(wait_index)
        if wait_time is not None:
            params["wait"] = f"{int(wait_time * 1000)}ms"
        resp = self._get("/v1/jobs", params)
        try:
            jobs = [JobStub._from_json(item) for item in resp.json() or []]
        except ValueError as exc:
            raise NomadError(f"failed to decode job list: {exc}") from exc
        try:
            last_index = int(resp.headers.get("X-Nomad-Index", "0"))
        except ValueError as exc:
            raise NomadError(f"invalid X-Nomad-Index header: {exc}") from exc
        return jobs, last_index

    def job_info(self, job_id: str) -> list[TaskGroup]:
        """Return the task groups of a job."""
        resp = self._get(f"/v1/job/{job_id}")
        try:
            data = resp.json() or {}
        except ValueError as exc:
            raise NomadError(f"failed to decode job: {exc}") from exc
        return [TaskGroup._from_json(group) for group in data.get("TaskGroups") or []]


def new_nomad_client(environ: Mapping[str, str] | None = None) -> NomadClient:
    """Build a client from the standard NOMAD_* environment variables."""
    env = os.environ if environ is None else environ
    session = requests.Session()

    ca_cert = env.get("NOMAD_CACERT")
    if ca_cert:
        session.verify = ca_cert
    if env.get("NOMAD_SKIP_VERIFY", "").strip() in _TRUE:
        session.verify = False

    client_cert = env.get("NOMAD_CLIENT_CERT")
    client_key = env.get("NOMAD_CLIENT_KEY")
    if client_cert and client_key:
        session.cert = (client_cert, client_key)

    return NomadClient(
        env.get("NOMAD_ADDR") or _DEFAULT_ADDR,
        token=env.get("NOMAD_TOKEN") or None,
        session=session,
    )