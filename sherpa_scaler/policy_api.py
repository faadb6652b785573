"""HTTP handlers for reading, writing and deleting scaling policies."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Union

from sherpa_scaler.policy import (
    GroupScalingPolicy,
    PolicyBackend,
    PolicyValidationError,
    merge_with_defaults,
    validate,
)

READ_BODY_FAILURE_MSG = "failed to read request body"
MARSHAL_RESP_FAILURE_MSG = "failed to marshall HTTP response"

_JSON_CONTENT_TYPE = "application/json; charset=utf-8"
_TEXT_CONTENT_TYPE = "text/plain; charset=utf-8"

Body = Union[bytes, str, Any]


@dataclass
class Response:
    """Status, headers and body of an HTTP answer."""

    status: int
    body: bytes = b""
    headers: dict[str, str] = field(default_factory=dict)


def _json_response(payload: Any, status: int = 200) -> Response:
    body = json.dumps(payload, separators=(",", ":")).encode("utf-8")
    return Response(status=status, body=body, headers={"Content-Type": _JSON_CONTENT_TYPE})


def _error_response(message: str, status: int) -> Response:
    return Response(
        status=status,
        body=(message + "\n").encode("utf-8"),
        headers={"Content-Type": _TEXT_CONTENT_TYPE, "X-Content-Type-Options": "nosniff"},
    )


def _not_found() -> Response:
    return _error_response("404 page not found", 404)


def _policy_json(policy: GroupScalingPolicy | None) -> dict[str, Any] | None:
    return None if policy is None else policy.to_dict()


def _job_json(groups: Mapping[str, GroupScalingPolicy | None]) -> dict[str, Any]:
    return {group: _policy_json(policy) for group, policy in groups.items()}


def _read_body(body: Body) -> bytes | str:
    if isinstance(body, (bytes, bytearray, str)):
        return bytes(body) if isinstance(body, bytearray) else body
    if body is None:
        return b""
    return body.read()


def _load_json(body: bytes | str) -> Any:
    try:
        return json.loads(body)
    except ValueError as exc:
        raise ValueError(f"failed to unmarshal request body: {exc}") from exc


def _validate_and_merge(policy: GroupScalingPolicy) -> GroupScalingPolicy:
    try:
        validate(policy)
    except PolicyValidationError as exc:
        raise PolicyValidationError(f"failed to validate policy document: {exc}") from exc
    return merge_with_defaults(policy)


def decode_group_policy(body: bytes | str) -> GroupScalingPolicy:
    """Decode, validate and default-fill a task group policy document."""
    data = _load_json(body)
    try:
        policy = GroupScalingPolicy.from_dict(data)
    except ValueError as exc:
        raise ValueError(f"failed to unmarshal request body: {exc}") from exc
    return _validate_and_merge(policy)


def decode_job_policy(body: bytes | str) -> dict[str, GroupScalingPolicy]:
    """Decode, validate and default-fill a document of group policies keyed by group."""
    data = _load_json(body)
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise ValueError(
            f"failed to unmarshal request body: cannot decode {type(data).__name__} "
            "into a job policy"
        )
    try:
        policies = {group: GroupScalingPolicy.from_dict(pol) for group, pol in data.items()}
    except ValueError as exc:
        raise ValueError(f"failed to unmarshal request body: {exc}") from exc
    for policy in policies.values():
        _validate_and_merge(policy)
    return policies


class PolicyServer:
    """Serves the policy endpoints on top of a policy backend."""

    def __init__(self, logger: logging.Logger | None, backend: PolicyBackend):
        self.logger = logger or logging.getLogger(__name__)
        self.backend = backend

    def get_job_policies(self) -> Response:
        """Answer with every stored policy."""
        try:
            policies = self.backend.get_policies()
        except Exception as exc:
            self.logger.error("failed to call policy backend: %s", exc)
            return _error_response(str(exc), 500)

        try:
            payload = (
                None
                if policies is None
                else {job: _job_json(groups) for job, groups in policies.items()}
            )
            return _json_response(payload)
        except (TypeError, ValueError) as exc:
            self.logger.error("failed to format HTTP response: %s", exc)
            return _error_response(str(exc), 500)

    def get_job_policy(self, job: str) -> Response:
        """Answer with the group policies of one job."""
        try:
            policies = self.backend.get_job_policy(job)
        except Exception as exc:
            self.logger.error("failed to call policy backend: %s", exc)
            return _error_response(str(exc), 500)

        if policies is None:
            return _not_found()

        try:
            return _json_response(_job_json(policies))
        except (TypeError, ValueError) as exc:
            self.logger.error("%s: %s", READ_BODY_FAILURE_MSG, exc)
            return _error_response(READ_BODY_FAILURE_MSG, 500)

    def get_job_group_policy(self, job: str, group: str) -> Response:
        """Answer with the policy of one task group."""
        try:
            policy = self.backend.get_job_group_policy(job, group)
        except Exception as exc:
            self.logger.error("failed to call policy backend: %s", exc)
            return _error_response(str(exc), 500)

        if policy is None or policy == GroupScalingPolicy():
            return _not_found()

        try:
            return _json_response(policy.to_dict())
        except (TypeError, ValueError) as exc:
            self.logger.error("%s: %s", MARSHAL_RESP_FAILURE_MSG, exc)
            return _error_response(MARSHAL_RESP_FAILURE_MSG, 500)

    def put_job_policy(self, job: str, body: Body) -> Response:
        """Store the group policies of a job from a JSON request body."""
        try:
            raw = _read_body(body)
        except OSError:
            self.logger.error(READ_BODY_FAILURE_MSG)
            return _error_response(READ_BODY_FAILURE_MSG, 500)

        try:
            policies = decode_job_policy(raw)
        except ValueError as exc:
            self.logger.error("failed to decode request body: %s", exc)
            return _error_response(str(exc), 422)

        try:
            self.backend.put_job_policy(job, policies)
        except Exception as exc:
            self.logger.error("failed to call policy backend: %s", exc)
            return _error_response(str(exc), 500)
        return Response(status=201)

    def put_job_group_policy(self, job: str, group: str, body: Body) -> Response:
        """Store the policy of one task group from a JSON request body."""
        try:
            raw = _read_body(body)
        except OSError:
            self.logger.error(READ_BODY_FAILURE_MSG)
            return _error_response(READ_BODY_FAILURE_MSG, 500)

        try:
            policy = decode_group_policy(raw)
        except ValueError as exc:
            self.logger.error("failed to decode request body: %s", exc)
            return _error_response(str(exc), 422)

        try:
            self.backend.put_job_group_policy(job, group, policy)
        except Exception as exc:
            return _error_response(str(exc), 500)
        return Response(status=201)

    def delete_job_group_policy(self, job: str, group: str) -> Response:
        """Delete the policy of one task group."""
        try:
            self.backend.delete_job_group_policy(job, group)
        except Exception as exc:
            return _error_response(str(exc), 422)
        return Response(status=204)

    def delete_job_policy(self, job: str) -> Response:
        """Delete every group policy of a job."""
        try:
            self.backend.delete_job_policy(job)
        except Exception as exc:
            return _error_response(str(exc), 500)
        return Response(status=204)