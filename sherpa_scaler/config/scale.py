"""Configuration of the scale commands."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from sherpa_scaler.config.settings import Settings

KEY_SCALE_COUNT = "count"
KEY_SCALE_GROUP_NAME = "group-name"


@dataclass
class ScaleConfig:
    """The change count and job group of a scaling action."""

    count: int = 0
    group_name: str = ""


def register_config(parser: Any, settings: Settings) -> None:
    """Register the scale flags on the parser."""
    settings.add_flag(
        parser,
        KEY_SCALE_COUNT,
        0,
        "The number by which to increment or decrement the job group",
    )
    settings.add_flag(parser, KEY_SCALE_GROUP_NAME, "", "The job group name to scale (required)")


def get_config(settings: Settings) -> ScaleConfig:
    """Resolve the scale configuration from the settings."""
    return ScaleConfig(
        count=settings.get_int(KEY_SCALE_COUNT),
        group_name=settings.get_str(KEY_SCALE_GROUP_NAME),
    )