"""HTTP client for the scaling server API."""

from __future__ import annotations

import json
import os
import uuid
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, TypeVar
from urllib.parse import urlencode, urlsplit, urlunsplit

import requests

from sherpa_scaler.config.client import ClientConfig
from sherpa_scaler.policy import GroupScalingPolicy

DEFAULT_ADDRESS = "http://127.0.0.1:8000"
_CONNECT_TIMEOUT = 10.0

_T = TypeVar("_T")


class APIError(Exception):
    """Raised when a call to the server fails or returns an unexpected answer."""


@dataclass
class TLSConfig:
    """Paths of the TLS material used by the client."""

    ca_cert: str = ""
    client_cert: str = ""
    client_cert_key: str = ""


@dataclass
class ApiConfig:
    """Server address, TLS settings and the HTTP session used to reach the server."""

    address: str = DEFAULT_ADDRESS
    tls_config: TLSConfig | None = field(default_factory=TLSConfig)
    session: requests.Session = field(
        default_factory=requests.Session, repr=False, compare=False
    )

    def configure_tls(self) -> None:
        """Apply the client certificate and CA settings to the session."""
        tls = self.tls_config
        if tls is None:
            return

        client_cert: tuple[str, str] | None = None
        if tls.client_cert or tls.client_cert_key:
            if not (tls.client_cert and tls.client_cert_key):
                raise APIError("client cert and client key must be provided")
            for path in (tls.client_cert, tls.client_cert_key):
                if not os.path.isfile(path):
                    raise APIError(f"open {path}: no such file or directory")
            client_cert = (tls.client_cert, tls.client_cert_key)

        if tls.ca_cert:
            if not os.path.exists(tls.ca_cert):
                raise APIError(f"open {tls.ca_cert}: no such file or directory")
            self.session.verify = tls.ca_cert

        if client_cert is not None:
            self.session.cert = client_cert


def default_config(cfg: ClientConfig) -> ApiConfig:
    """Build an API configuration, taking any values set in the client configuration."""
    config = ApiConfig()
    tls = config.tls_config
    assert tls is not None
    if cfg.addr:
        config.address = cfg.addr
    if cfg.ca_path:
        tls.ca_cert = cfg.ca_path
    if cfg.cert_path:
        tls.client_cert = cfg.cert_path
    if cfg.cert_key_path:
        tls.client_cert_key = cfg.cert_key_path
    return config


@dataclass
class QueryOptions:
    """Query-string parameters attached to a request."""

    params: dict[str, str] = field(default_factory=dict)


def _encode_json(obj: Any) -> bytes:
    return (json.dumps(obj, separators=(",", ":")) + "\n").encode("utf-8")


@dataclass
class Request:
    """A request under construction: method, URL, parameters and body."""

    method: str
    url: str
    params: dict[str, str] = field(default_factory=dict)
    body: bytes | None = None
    obj: Any = None

    def set_query_options(self, options: QueryOptions | None) -> None:
        """Add the parameters of the query options to the request."""
        if options is None:
            return
        self.params.update(options.params or {})

    def to_http(self) -> requests.PreparedRequest:
        """Encode parameters and body and return a request ready to send."""
        parts = urlsplit(self.url)
        query = urlencode(sorted(self.params.items()))
        url = urlunsplit((parts.scheme, parts.netloc, parts.path or "/", query, ""))
        if self.body is None and self.obj is not None:
            self.body = _encode_json(self.obj)
        return requests.Request(self.method, url, data=self.body).prepare()


def _field(data: Any, name: str, default: Any = None) -> Any:
    """Look a JSON field up by name, falling back to a case-insensitive match."""
    if not isinstance(data, Mapping):
        return default
    if name in data:
        value = data[name]
    else:
        lowered = name.lower()
        value = next((v for k, v in data.items() if str(k).lower() == lowered), None)
    return default if value is None else value


def _convert(builder: Callable[[Any], _T], data: Any) -> _T:
    try:
        return builder(data)
    except (ValueError, TypeError, AttributeError) as exc:
        raise APIError(f"failed to decode response: {exc}") from exc


class Client:
    """Entry point to the server API."""

    def __init__(self, config: ApiConfig):
        try:
            urlsplit(config.address).port
        except ValueError as exc:
            raise APIError(f"invalid address '{config.address}': {exc}") from exc
        config.configure_tls()
        self.config = config

    def policies(self) -> Policies:
        """Return the scaling policy endpoints."""
        return Policies(self)

    def scale(self) -> Scale:
        """Return the scaling endpoints."""
        return Scale(self)

    def system(self) -> System:
        """Return the system endpoints."""
        return System(self)

    def _new_request(self, method: str, path: str) -> Request:
        base = urlsplit(self.config.address)
        target = urlsplit(path)
        url = urlunsplit((base.scheme, base.netloc, target.path, "", ""))
        return Request(method=method, url=url)

    def _send(self, req: Request, expected: int) -> requests.Response:
        prepared = req.to_http()
        try:
            resp = self.config.session.send(prepared, timeout=(_CONNECT_TIMEOUT, None))
        except requests.RequestException as exc:
            raise APIError(str(exc)) from exc
        if resp.status_code != expected:
            text = resp.text
            resp.close()
            raise APIError(f"unexpected response code {resp.status_code}: {text}".strip())
        return resp

    @staticmethod
    def _decode(resp: requests.Response) -> Any:
        try:
            return resp.json()
        except ValueError as exc:
            raise APIError(f"failed to decode response: {exc}") from exc
        finally:
            resp.close()

    def _get(self, path: str) -> Any:
        return self._decode(self._send(self._new_request("GET", path), 200))

    def _put(self, path: str, obj: Any, options: QueryOptions | None) -> Any:
        req = self._new_request("PUT", path)
        req.set_query_options(options)
        req.obj = obj
        return self._decode(self._send(req, 200))

    def _post(self, path: str, obj: Any) -> None:
        req = self._new_request("POST", path)
        req.obj = obj
        self._send(req, 201).close()

    def _delete(self, path: str) -> None:
        self._send(self._new_request("DELETE", path), 204).close()


class JobGroupPolicy(GroupScalingPolicy):
    """A task group scaling policy as exchanged with the server."""


def _policy_or_none(data: Any) -> JobGroupPolicy | None:
    return None if data is None else JobGroupPolicy.from_dict(data)


def _job_policies(data: Any) -> dict[str, JobGroupPolicy | None]:
    return {group: _policy_or_none(pol) for group, pol in (data or {}).items()}


class Policies:
    """Endpoints for reading and writing scaling policies."""

    def __init__(self, client: Client):
        self._client = client

    def list(self) -> dict[str, dict[str, JobGroupPolicy | None]]:
        """Return every policy keyed by job then group."""
        data = self._client._get("/v1/policies")
        return _convert(
            lambda d: {job: _job_policies(groups) for job, groups in (d or {}).items()}, data
        )

    def read_job_policy(self, job: str) -> dict[str, JobGroupPolicy | None]:
        """Return the group policies of a job."""
        return _convert(_job_policies, self._client._get(f"/v1/policy/{job}"))

    def read_job_group_policy(self, job: str, group: str) -> JobGroupPolicy:
        """Return the policy of one task group."""
        data = self._client._get(f"/v1/policy/{job}/{group}")
        return _convert(JobGroupPolicy.from_dict, data)

    def write_job_policy(self, job: str, policy: bytes | str) -> None:
        """Upload a JSON document holding the policies of every group of a job."""
        try:
            data = json.loads(policy)
            if data is not None and not isinstance(data, Mapping):
                raise ValueError(f"cannot decode {type(data).__name__} into a job policy")
            req = None
            if data is not None:
                req = {
                    group: (None if pol is None else JobGroupPolicy.from_dict(pol).to_dict())
                    for group, pol in data.items()
                }
        except ValueError as exc:
            raise APIError(f"failed to unmarshal request body: {exc}") from exc
        self._client._post(f"/v1/policy/{job}", req)

    def write_job_group_policy(self, job: str, group: str, policy: bytes | str) -> None:
        """Upload a JSON document holding the policy of one task group."""
        try:
            req = JobGroupPolicy.from_dict(json.loads(policy))
        except ValueError as exc:
            raise APIError(f"failed to unmarshal request body: {exc}") from exc
        self._client._post(f"/v1/policy/{job}/{group}", req.to_dict())

    def delete_job_policy(self, job: str) -> None:
        """Delete every group policy of a job."""
        self._client._delete(f"/v1/policy/{job}")

    def delete_job_group_policy(self, job: str, group: str) -> None:
        """Delete the policy of one task group."""
        self._client._delete(f"/v1/policy/{job}/{group}")


@dataclass
class ScaleResponse:
    """The identifier of a scaling action and the evaluation it created."""

    id: uuid.UUID = field(default_factory=lambda: uuid.UUID(int=0))
    evaluation_id: str = ""

    @classmethod
    def _from_json(cls, data: Any) -> ScaleResponse:
        raw = _field(data, "ID", "")
        return cls(
            id=uuid.UUID(raw) if raw else uuid.UUID(int=0),
            evaluation_id=_field(data, "EvaluationID", ""),
        )


@dataclass
class EventDetails:
    """The change made to a group by a scaling event."""

    count: int = 0
    direction: str = ""


@dataclass
class ScalingEvent:
    """A recorded scaling action on one job group."""

    eval_id: str = ""
    source: str = ""
    time: int = 0
    status: str = ""
    details: EventDetails = field(default_factory=EventDetails)

    @classmethod
    def _from_json(cls, data: Any) -> ScalingEvent | None:
        if data is None:
            return None
        details = _field(data, "Details", {})
        return cls(
            eval_id=_field(data, "EvalID", ""),
            source=_field(data, "Source", ""),
            time=int(_field(data, "Time", 0)),
            status=_field(data, "Status", ""),
            details=EventDetails(
                count=int(_field(details, "Count", 0)),
                direction=_field(details, "Direction", ""),
            ),
        )


def _group_events(data: Any) -> dict[str, ScalingEvent | None]:
    return {group: ScalingEvent._from_json(event) for group, event in (data or {}).items()}


class Scale:
    """Endpoints for triggering scaling and reading its status."""

    def __init__(self, client: Client):
        self._client = client

    def _scale(self, direction: str, job: str, group: str, count: int) -> ScaleResponse:
        options = QueryOptions()
        if count > 0:
            options.params["count"] = str(count)
        data = self._client._put(f"/v1/scale/{direction}/{job}/{group}", None, options)
        return _convert(ScaleResponse._from_json, data)

    def job_group_out(self, job: str, group: str, count: int) -> ScaleResponse:
        """Scale a job group out; a count of zero lets the server decide."""
        return self._scale("out", job, group, count)

    def job_group_in(self, job: str, group: str, count: int) -> ScaleResponse:
        """Scale a job group in; a count of zero lets the server decide."""
        return self._scale("in", job, group, count)

    def list(self) -> dict[uuid.UUID, dict[str, ScalingEvent | None]]:
        """Return every recorded scaling event keyed by scaling ID then job group."""
        data = self._client._get("/v1/scale/status")
        return _convert(
            lambda d: {uuid.UUID(key): _group_events(ev) for key, ev in (d or {}).items()},
            data,
        )

    def info(self, scale_id: str) -> dict[str, ScalingEvent | None]:
        """Return the events of one scaling action keyed by job group."""
        return _convert(_group_events, self._client._get(f"/v1/scale/status/{scale_id}"))


@dataclass
class HealthResponse:
    """Health status of a server."""

    status: str = ""


@dataclass
class InfoResponse:
    """How a server is configured."""

    nomad_address: str = ""
    policy_engine: str = ""
    storage_backend: str = ""
    internal_auto_scaling_engine: bool = False
    strict_policy_checking: bool = False


@dataclass
class LeaderResponse:
    """High-availability status and the current leader."""

    is_self: bool = False
    ha_enabled: bool = False
    leader_address: str = ""
    leader_cluster_address: str = ""


def _labels(data: Any) -> dict[str, str]:
    return {_field(label, "Name", ""): _field(label, "Value", "") for label in data or []}


@dataclass
class _GaugeValue:
    name: str = ""
    hash: str = ""
    value: float = 0.0
    labels: dict[str, str] = field(default_factory=dict)

    @classmethod
    def _from_json(cls, data: Any) -> _GaugeValue:
        return cls(
            name=_field(data, "Name", ""),
            hash=_field(data, "Hash", ""),
            value=float(_field(data, "Value", 0.0)),
            labels=_labels(_field(data, "Labels", [])),
        )


@dataclass
class _SampledValue:
    name: str = ""
    hash: str = ""
    count: int = 0
    rate: float = 0.0
    sum: float = 0.0
    min: float = 0.0
    max: float = 0.0
    mean: float = 0.0
    stddev: float = 0.0
    labels: dict[str, str] = field(default_factory=dict)

    @classmethod
    def _from_json(cls, data: Any) -> _SampledValue:
        return cls(
            name=_field(data, "Name", ""),
            hash=_field(data, "Hash", ""),
            count=int(_field(data, "Count", 0)),
            rate=float(_field(data, "Rate", 0.0)),
            sum=float(_field(data, "Sum", 0.0)),
            min=float(_field(data, "Min", 0.0)),
            max=float(_field(data, "Max", 0.0)),
            mean=float(_field(data, "Mean", 0.0)),
            stddev=float(_field(data, "Stddev", 0.0)),
            labels=_labels(_field(data, "Labels", [])),
        )


@dataclass
class MetricsSummary:
    """A snapshot of a server's gauges, counters and samples."""

    timestamp: str = ""
    gauges: list[_GaugeValue] = field(default_factory=list)
    counters: list[_SampledValue] = field(default_factory=list)
    samples: list[_SampledValue] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> MetricsSummary:
        """Build a summary from its decoded JSON form."""
        return cls(
            timestamp=_field(data, "Timestamp", ""),
            gauges=[_GaugeValue._from_json(g) for g in _field(data, "Gauges", [])],
            counters=[_SampledValue._from_json(c) for c in _field(data, "Counters", [])],
            samples=[_SampledValue._from_json(s) for s in _field(data, "Samples", [])],
        )


class System:
    """Endpoints describing the server itself."""

    def __init__(self, client: Client):
        self._client = client

    def health(self) -> HealthResponse:
        """Return the server health."""
        data = self._client._get("/v1/system/health")
        return _convert(lambda d: HealthResponse(status=_field(d, "Status", "")), data)

    def info(self) -> InfoResponse:
        """Return the server configuration summary."""
        data = self._client._get("/v1/system/info")
        return _convert(
            lambda d: InfoResponse(
                nomad_address=_field(d, "NomadAddress", ""),
                policy_engine=_field(d, "PolicyEngine", ""),
                storage_backend=_field(d, "StorageBackend", ""),
                internal_auto_scaling_engine=bool(_field(d, "InternalAutoScalingEngine", False)),
                strict_policy_checking=bool(_field(d, "StrictPolicyChecking", False)),
            ),
            data,
        )

    def metrics(self) -> MetricsSummary:
        """Return the server metrics."""
        return _convert(MetricsSummary.from_dict, self._client._get("/v1/system/metrics"))

    def leader(self) -> LeaderResponse:
        """Return the high-availability status of the server."""
        data = self._client._get("/v1/system/leader")
        return _convert(
            lambda d: LeaderResponse(
                is_self=bool(_field(d, "IsSelf", False)),
                ha_enabled=bool(_field(d, "HAEnabled", False)),
                leader_address=_field(d, "LeaderAddress", ""),
                leader_cluster_address=_field(d, "LeaderClusterAddress", ""),
            ),
            data,
        )