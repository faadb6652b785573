"""Configuration of server logging."""

from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import Any

from sherpa_scaler.config.settings import Settings

KEY_LOG_LEVEL = "log-level"
KEY_LOG_FORMAT = "log-format"
KEY_LOG_ENABLE_DEV = "log-enable-dev"
KEY_LOG_USE_COLOR = "log-use-color"


@dataclass
class LogConfig:
    """Level, format and presentation of log output."""

    log_level: str = ""
    log_format: str = ""
    enable_dev: bool = False
    use_color: bool = False


def _stderr_is_terminal() -> bool:
    stream = sys.stderr
    if stream is None:
        return False
    try:
        return bool(stream.isatty())
    except (AttributeError, ValueError):
        return False


def register_config(parser: Any, settings: Settings) -> None:
    """Register the logging flags on the parser."""
    settings.add_flag(parser, KEY_LOG_LEVEL, "info", "Change the level used for logging")
    settings.add_flag(
        parser,
        KEY_LOG_FORMAT,
        "auto",
        'Specify the log format ("auto", "zerolog" or "human")',
    )
    settings.add_flag(parser, KEY_LOG_ENABLE_DEV, False, "Log with file:line of the caller")
    settings.add_flag(
        parser,
        KEY_LOG_USE_COLOR,
        _stderr_is_terminal(),
        "Use ANSI colors in logging output",
    )


def get_config(settings: Settings) -> LogConfig:
    """Resolve the logging configuration from the settings."""
    return LogConfig(
        log_level=settings.get_str(KEY_LOG_LEVEL),
        log_format=settings.get_str(KEY_LOG_FORMAT),
        enable_dev=settings.get_bool(KEY_LOG_ENABLE_DEV),
        use_color=settings.get_bool(KEY_LOG_USE_COLOR),
    )