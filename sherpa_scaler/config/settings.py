"""Layered settings: command-line flags over environment variables over defaults."""

from __future__ import annotations

import argparse
import os
from collections.abc import Mapping
from typing import Any

_TRUE = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE = {"0", "f", "F", "FALSE", "false", "False"}


def _parse_bool(text: str) -> bool:
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ValueError(f"invalid boolean value: {text!r}")


def _flag_bool(text: str) -> bool:
    try:
        return _parse_bool(text)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def _to_str(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _to_int(value: Any) -> int:
    if value is None:
        return 0
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip(), 0)
    except ValueError:
        return 0


def _to_bool(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    try:
        return _parse_bool(str(value).strip())
    except ValueError:
        return False


class Settings:
    """Registry of configuration keys resolved from flags, environment and defaults."""

    def __init__(self, prefix: str = "sherpa", environ: Mapping[str, str] | None = None):
        self.prefix = prefix.upper()
        self._environ = os.environ if environ is None else environ
        self._defaults: dict[str, Any] = {}
        self._dests: dict[str, str] = {}
        self._flag_values: dict[str, Any] = {}

    def env_name(self, key: str) -> str:
        """Return the environment variable consulted for a key."""
        return f"{self.prefix}_{key}".upper().replace("-", "_")

    def add_flag(self, parser: Any, key: str, default: Any, description: str) -> None:
        """Register ``--key`` on the parser and record the key's default."""
        dest = key.replace("-", "_")
        kwargs: dict[str, Any] = {
            "dest": dest,
            "default": argparse.SUPPRESS,
            "help": f"{description} (default: {_to_str(default)!r})",
        }
        if isinstance(default, bool):
            kwargs.update(nargs="?", const=True, type=_flag_bool, metavar="BOOL")
        elif isinstance(default, int):
            kwargs["type"] = int
        else:
            kwargs["type"] = str
        parser.add_argument(f"--{key}", **kwargs)
        self._defaults[key] = default
        self._dests[key] = dest

    def load(self, namespace: argparse.Namespace) -> None:
        """Take the values of flags that were given on the command line."""
        for key, dest in self._dests.items():
            if hasattr(namespace, dest):
                self._flag_values[key] = getattr(namespace, dest)

    def _lookup(self, key: str) -> Any:
        if key in self._flag_values:
            return self._flag_values[key]
        env_value = self._environ.get(self.env_name(key))
        if env_value:
            return env_value
        return self._defaults.get(key)

    def get_str(self, key: str) -> str:
        """Return the key's value as a string, or an empty string when unknown."""
        return _to_str(self._lookup(key))

    def get_int(self, key: str) -> int:
        """Return the key's value as an int, or 0 when unknown or unparsable."""
        return _to_int(self._lookup(key))

    def get_bool(self, key: str) -> bool:
        """Return the key's value as a bool, or False when unknown or unparsable."""
        return _to_bool(self._lookup(key))