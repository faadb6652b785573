"""Configuration of the policy commands."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from sherpa_scaler.config.settings import Settings

KEY_POLICY_GROUP_NAME = "policy-group-name"


@dataclass
class PolicyConfig:
    """The job group the policy commands act on, if any."""

    group_name: str = ""


def register_config(parser: Any, settings: Settings) -> None:
    """Register the policy flags on the parser."""
    settings.add_flag(parser, KEY_POLICY_GROUP_NAME, "", "The job group to interact with")


def get_config(settings: Settings) -> PolicyConfig:
    """Resolve the policy configuration from the settings."""
    return PolicyConfig(group_name=settings.get_str(KEY_POLICY_GROUP_NAME))