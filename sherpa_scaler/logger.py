"""Log levels, log formats and the setup of process-wide logging."""

from __future__ import annotations

import enum
import json
import logging
import sys
from datetime import datetime

from sherpa_scaler.config.log import LogConfig

_PACKAGE = __name__.partition(".")[0]


class LogFormat(enum.IntEnum):
    """How log records are rendered."""

    AUTO = 0
    ZEROLOG = 1
    HUMAN = 2

    def __str__(self) -> str:
        return self.name.lower()


class Level(enum.IntEnum):
    """The supported log levels, from the most to the least verbose."""

    DEBUG = -1
    INFO = 0
    WARN = 1
    ERROR = 2
    FATAL = 3

    def __str__(self) -> str:
        return self.name.lower()


_STDLIB_LEVELS = {
    Level.DEBUG: logging.DEBUG,
    Level.INFO: logging.INFO,
    Level.WARN: logging.WARNING,
    Level.ERROR: logging.ERROR,
    Level.FATAL: logging.CRITICAL,
}


def _quote(text: str) -> str:
    return json.dumps(text)


def get_log_format(name: str) -> LogFormat:
    """Parse a log format name; ``json`` is accepted as an alias of ``zerolog``."""
    lowered = name.lower()
    if lowered == "auto":
        return LogFormat.AUTO
    if lowered in ("json", "zerolog"):
        return LogFormat.ZEROLOG
    if lowered == "human":
        return LogFormat.HUMAN
    raise ValueError(f"unsupported log format: {_quote(name)}")


def log_levels() -> list[Level]:
    """Return every supported level in order of increasing severity."""
    return sorted(Level)


def log_level_names() -> list[str]:
    """Return the names of every supported level in order of increasing severity."""
    return [str(level) for level in log_levels()]


def set_log_level(name: str) -> Level:
    """Set the process-wide log level from its name and return it."""
    try:
        level = Level[name.lower()]
    except KeyError:
        raise ValueError(
            f"unsupported error level: {_quote(name)} "
            f"(supported levels: {' '.join(log_level_names())})"
        ) from None
    logging.getLogger().setLevel(_STDLIB_LEVELS[level])
    return level


def _format_time(created: float) -> str:
    moment = datetime.fromtimestamp(created).astimezone()
    offset = moment.utcoffset()
    if not offset:
        zone = "Z"
    else:
        total = int(offset.total_seconds())
        sign = "+" if total >= 0 else "-"
        total = abs(total)
        zone = f"{sign}{total // 3600:02d}:{total % 3600 // 60:02d}"
    return f"{moment:%Y-%m-%dT%H:%M:%S}.{moment.microsecond * 1000:09d}{zone}"


def _level_name(levelno: int) -> str:
    if levelno >= logging.CRITICAL:
        return "fatal"
    if levelno >= logging.ERROR:
        return "error"
    if levelno >= logging.WARNING:
        return "warn"
    if levelno >= logging.INFO:
        return "info"
    return "debug"


class _JSONFormatter(logging.Formatter):
    def __init__(self, caller: bool):
        super().__init__()
        self._caller = caller

    def format(self, record: logging.LogRecord) -> str:
        entry = {"level": _level_name(record.levelno), "time": _format_time(record.created)}
        if self._caller:
            entry["caller"] = f"{record.pathname}:{record.lineno}"
        message = record.getMessage()
        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"
        entry["message"] = message
        return json.dumps(entry)


_SHORT_LEVELS = {"debug": "DBG", "info": "INF", "warn": "WRN", "error": "ERR", "fatal": "FTL"}
_LEVEL_COLOURS = {"debug": "33", "info": "32", "warn": "31", "error": "1;31", "fatal": "1;31"}


class _HumanFormatter(logging.Formatter):
    def __init__(self, caller: bool, colour: bool):
        super().__init__()
        self._caller = caller
        self._colour = colour

    def _paint(self, text: str, code: str) -> str:
        return f"\x1b[{code}m{text}\x1b[0m" if self._colour else text

    def format(self, record: logging.LogRecord) -> str:
        moment = datetime.fromtimestamp(record.created).astimezone()
        hour = moment.hour % 12 or 12
        stamp = f"{hour}:{moment.minute:02d}{'PM' if moment.hour >= 12 else 'AM'}"
        name = _level_name(record.levelno)
        parts = [
            self._paint(stamp, "90"),
            self._paint(_SHORT_LEVELS[name], _LEVEL_COLOURS[name]),
        ]
        if self._caller:
            parts.append(self._paint(f"{record.pathname}:{record.lineno}", "1") + " >")
        message = record.getMessage()
        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"
        parts.append(message)
        return " ".join(parts)


class _PackageFilter(logging.Filter):
    """Drops records of other libraries unless everything is to be let through."""

    def __init__(self, allow_all: bool):
        super().__init__()
        self._allow_all = allow_all

    def filter(self, record: logging.LogRecord) -> bool:
        if self._allow_all:
            return True
        return record.name == _PACKAGE or record.name.startswith(_PACKAGE + ".")


def _stdout_is_terminal() -> bool:
    stream = sys.stdout
    if stream is None:
        return False
    try:
        return bool(stream.isatty())
    except (AttributeError, ValueError):
        return False


def setup(config: LogConfig) -> logging.Logger:
    """Configure the root logger from the logging configuration and return it."""
    try:
        level = set_log_level(config.log_level)
    except ValueError as exc:
        raise ValueError(f"unable to set log level: {exc}") from exc

    try:
        log_format = get_log_format(config.log_format)
    except ValueError as exc:
        raise ValueError(f"unable to parse log format: {exc}") from exc

    if log_format is LogFormat.AUTO:
        log_format = LogFormat.HUMAN if _stdout_is_terminal() else LogFormat.ZEROLOG

    formatter: logging.Formatter
    if log_format is LogFormat.ZEROLOG:
        formatter = _JSONFormatter(caller=config.enable_dev)
    else:
        formatter = _HumanFormatter(caller=config.enable_dev, colour=config.use_color)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)
    # Other libraries' records are noise except when debugging.
    handler.addFilter(_PackageFilter(allow_all=level is Level.DEBUG))

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    return root