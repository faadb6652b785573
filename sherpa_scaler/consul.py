"""A small client for the Consul key/value HTTP API."""

from __future__ import annotations

import base64
import os
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

import requests

_DEFAULT_ADDR = "127.0.0.1:8500"
_TRUE = {"1", "t", "T", "TRUE", "true", "True"}


class ConsulError(Exception):
    """Raised when Consul cannot be reached or answers with an unexpected status."""


@dataclass
class KVPair:
    """One key and its value as stored in Consul."""

    key: str
    value: bytes = b""
    flags: int = 0
    modify_index: int = 0

    @classmethod
    def _from_json(cls, data: Mapping[str, Any]) -> KVPair:
        raw = data.get("Value")
        return cls(
            key=data.get("Key", ""),
            value=base64.b64decode(raw) if raw else b"",
            flags=data.get("Flags", 0) or 0,
            modify_index=data.get("ModifyIndex", 0) or 0,
        )


class ConsulKV:
    """Access to the key/value store of one Consul agent."""

    def __init__(
        self,
        address: str,
        token: str | None = None,
        session: requests.Session | None = None,
    ):
        self.address = address.rstrip("/")
        self.token = token
        self.session = session or requests.Session()

    def _request(self, method: str, path: str, **kwargs: Any) -> requests.Response:
        headers = kwargs.pop("headers", {})
        if self.token:
            headers["X-Consul-Token"] = self.token
        try:
            return self.session.request(
                method, f"{self.address}{path}", headers=headers, **kwargs
            )
        except requests.RequestException as exc:
            raise ConsulError(str(exc)) from exc

    @staticmethod
    def _unexpected(resp: requests.Response) -> ConsulError:
        return ConsulError(f"Unexpected response code: {resp.status_code} ({resp.text})")

    @staticmethod
    def _kv_path(key: str) -> str:
        return "/v1/kv/" + quote(key, safe="/")

    def list(self, prefix: str) -> list[KVPair] | None:
        """Return every pair under the prefix, or None when there are none."""
        resp = self._request("GET", self._kv_path(prefix), params={"recurse": ""})
        if resp.status_code == 404:
            return None
        if resp.status_code != 200:
            raise self._unexpected(resp)
        return [KVPair._from_json(item) for item in resp.json() or []]

    def get(self, key: str) -> KVPair | None:
        """Return the pair stored at the key, or None when it is absent."""
        resp = self._request("GET", self._kv_path(key))
        if resp.status_code == 404:
            return None
        if resp.status_code != 200:
            raise self._unexpected(resp)
        items = resp.json() or []
        return KVPair._from_json(items[0]) if items else None

    def put(self, key: str, value: bytes) -> bool:
        """Store the value at the key."""
        resp = self._request("PUT", self._kv_path(key), data=value)
        if resp.status_code != 200:
            raise self._unexpected(resp)
        return bool(resp.json())

    def delete(self, key: str) -> bool:
        """Delete a single key."""
        resp = self._request("DELETE", self._kv_path(key))
        if resp.status_code != 200:
            raise self._unexpected(resp)
        return bool(resp.json())

    def delete_tree(self, prefix: str) -> bool:
        """Delete every key under the prefix."""
        resp = self._request("DELETE", self._kv_path(prefix), params={"recurse": ""})
        if resp.status_code != 200:
            raise self._unexpected(resp)
        return bool(resp.json())

    def txn(self, operations: Iterable[tuple[str, str, bytes | None]]) -> bool:
        """Apply ``(verb, key, value)`` operations atomically; False if rolled back."""
        body = []
        for verb, key, value in operations:
            op: dict[str, Any] = {"Verb": verb, "Key": key}
            if value is not None:
                op["Value"] = base64.b64encode(value).decode("ascii")
            body.append({"KV": op})
        resp = self._request("PUT", "/v1/txn", json=body)
        if resp.status_code == 200:
            return True
        if resp.status_code == 409:
            return False
        raise self._unexpected(resp)


def new_consul_client(environ: Mapping[str, str] | None = None) -> ConsulKV:
    """Build a KV client from the standard CONSUL_HTTP_* environment variables."""
    env = os.environ if environ is None else environ
    addr = env.get("CONSUL_HTTP_ADDR") or _DEFAULT_ADDR
    scheme = "http"
    for prefix in ("https://", "http://"):
        if addr.startswith(prefix):
            scheme = prefix[:-3]
            addr = addr[len(prefix):]
            break
    if env.get("CONSUL_HTTP_SSL", "").strip() in _TRUE:
        scheme = "https"

    session = requests.Session()
    verify = env.get("CONSUL_HTTP_SSL_VERIFY", "").strip()
    if verify and verify not in _TRUE:
        session.verify = False

    return ConsulKV(f"{scheme}://{addr}", token=env.get("CONSUL_HTTP_TOKEN") or None, session=session)