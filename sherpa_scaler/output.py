"""Column formatting and timestamp helpers for command output."""

from __future__ import annotations

import time
from collections.abc import Iterable
from datetime import datetime, timedelta, timezone

_DELIM = "|"
_EMPTY = "<none>"
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_ROUND_NS = 10_000_000


def _columnize(lines: Iterable[str], glue: str) -> str:
    rows = [
        [cell.strip() or _EMPTY for cell in line.split(_DELIM)]
        for line in lines
    ]
    widths: list[int] = []
    for row in rows:
        for index, cell in enumerate(row):
            if index < len(widths):
                widths[index] = max(widths[index], len(cell))
            else:
                widths.append(len(cell))

    rendered = []
    for row in rows:
        *head, last = row
        padded = [f"{cell:<{widths[index]}}{glue}" for index, cell in enumerate(head)]
        rendered.append("".join(padded) + last)
    return "\n".join(rendered)


def format_list(lines: Iterable[str]) -> str:
    """Align pipe-delimited rows into space-separated columns."""
    return _columnize(lines, "  ")


def format_kv(lines: Iterable[str]) -> str:
    """Align pipe-delimited key/value rows as ``key = value``."""
    return _columnize(lines, " = ")


def _round_nanos(timestamp: int) -> int:
    return (timestamp + _ROUND_NS // 2) // _ROUND_NS * _ROUND_NS


def unix_nano_to_human_utc(timestamp: int) -> datetime:
    """Convert a Unix nanosecond timestamp to a UTC datetime rounded to 10ms."""
    rounded = _round_nanos(timestamp)
    return _EPOCH + timedelta(microseconds=rounded // 1000)


def format_timestamp(timestamp: int) -> str:
    """Render a Unix nanosecond timestamp as ``YYYY-MM-DD HH:MM:SS.ff +0000 UTC``."""
    rounded = _round_nanos(timestamp)
    seconds, nanos = divmod(rounded, 1_000_000_000)
    moment = _EPOCH + timedelta(seconds=seconds)
    fraction = f"{nanos:09d}".rstrip("0")
    suffix = f".{fraction}" if fraction else ""
    return f"{moment:%Y-%m-%d %H:%M:%S}{suffix} +0000 UTC"


def generate_event_timestamp() -> int:
    """Return the current UTC time as Unix nanoseconds, used for all event records."""
    return time.time_ns()