"""The ``policy`` command and its subcommands."""

from __future__ import annotations

import argparse
import functools
from collections.abc import Mapping
from typing import Any

from sherpa_scaler import api
from sherpa_scaler.config import client as client_config
from sherpa_scaler.config import policy as policy_config
from sherpa_scaler.config.settings import Settings
from sherpa_scaler.output import format_list

EX_OK = 0
EX_USAGE = 64
EX_SOFTWARE = 70

_LIST_HEADER = "Job:Group|Enabled|MinCount|MaxCount|ScaleInCount|ScaleOutCount"
_READ_HEADER = "Group|Enabled|MinCount|MaxCount|ScaleInCount|ScaleOutCount"

_EXAMPLE_COUNTS = (
    '{"Enabled":true,"MaxCount":16,"MinCount":4,"ScaleOutCount":2,"ScaleInCount":2,'
)
_EXAMPLE_THRESHOLDS = (
    '"ScaleOutCPUPercentageThreshold":75,"ScaleOutMemoryPercentageThreshold":75,'
    '"ScaleInCPUPercentageThreshold":30,"ScaleInMemoryPercentageThreshold":30}'
)


def _print_usage(parser: argparse.ArgumentParser, _args: argparse.Namespace) -> int:
    parser.print_usage()
    return EX_OK


def register(subparsers: Any, settings: Settings) -> argparse.ArgumentParser:
    """Add the ``policy`` command and its subcommands."""
    parser = subparsers.add_parser("policy", help="Interact with scaling policies")
    parser.set_defaults(func=functools.partial(_print_usage, parser), settings=settings)
    commands = parser.add_subparsers(title="commands")

    leaves = (
        ("list", "Lists all scaling policies", run_list, False),
        ("delete", "Deletes a scaling policy from Sherpa", run_delete, True),
        ("write", "Uploads a policy from file", run_write, True),
        ("init", "Creates an example job group scaling policy", run_init, False),
        ("read", "Details the scaling policy", run_read, False),
    )
    for name, description, func, takes_group in leaves:
        leaf = commands.add_parser(name, help=description, description=description)
        leaf.add_argument("args", nargs="*", metavar="ARG")
        if takes_group:
            policy_config.register_config(leaf, settings)
        leaf.set_defaults(func=func, settings=settings)
    return parser


def example_policy() -> str:
    """Return an example job group scaling policy document."""
    return _EXAMPLE_COUNTS + _EXAMPLE_THRESHOLDS


def _bool(value: bool) -> str:
    return "true" if value else "false"


def _row(name: str, policy: api.GroupScalingPolicy) -> str:
    return "|".join(
        [
            name,
            _bool(policy.enabled),
            str(policy.min_count),
            str(policy.max_count),
            str(policy.scale_in_count),
            str(policy.scale_out_count),
        ]
    )


def format_policy_list(
    policies: Mapping[str, Mapping[str, api.GroupScalingPolicy | None]],
) -> str:
    """Render every job group policy as a table, or an empty string when there are none."""
    rows = [
        _row(f"{job}:{group}", policy)
        for job, groups in policies.items()
        for group, policy in groups.items()
        if policy is not None
    ]
    return format_list([_LIST_HEADER, *rows]) if rows else ""


def format_job_policy(policies: Mapping[str, api.GroupScalingPolicy | None]) -> str:
    """Render the group policies of one job as a table, or an empty string when there are none."""
    rows = [_row(group, policy) for group, policy in policies.items() if policy is not None]
    return format_list([_READ_HEADER, *rows]) if rows else ""


def _settings(args: argparse.Namespace) -> Settings:
    settings: Settings = args.settings
    settings.load(args)
    return settings


def _client(settings: Settings) -> api.Client | None:
    try:
        return api.Client(api.default_config(client_config.get_config(settings)))
    except api.APIError as exc:
        print("Error setting up Sherpa client:", exc)
        return None


def _positional(args: argparse.Namespace) -> list[str]:
    return list(getattr(args, "args", None) or [])


def _check_count(given: list[str], expected: int, unit: str) -> bool:
    if len(given) < expected:
        print(f"Not enough arguments, expected {expected}{unit} got", len(given))
        return False
    if len(given) > expected:
        print(f"Too many arguments, expected {expected}{unit} got", len(given))
        return False
    return True


def run_list(args: argparse.Namespace) -> int:
    """List every scaling policy held by the server."""
    given = _positional(args)
    if given:
        print("Too many arguments, expected 0 args got", len(given))
        return EX_USAGE

    client = _client(_settings(args))
    if client is None:
        return EX_SOFTWARE

    try:
        policies = client.policies().list()
    except api.APIError as exc:
        print("Error querying policy list:", exc)
        return EX_SOFTWARE

    if not policies:
        return EX_OK
    print(format_policy_list(policies))
    return EX_OK


def run_read(args: argparse.Namespace) -> int:
    """Show the group policies of one job."""
    given = _positional(args)
    if not _check_count(given, 1, ""):
        return EX_USAGE

    client = _client(_settings(args))
    if client is None:
        return EX_SOFTWARE

    job = given[0].strip().lower()
    try:
        policies = client.policies().read_job_policy(job)
    except api.APIError as exc:
        print("Error reading scaling policy:", exc)
        return EX_SOFTWARE

    if not policies:
        return EX_OK
    print(format_job_policy(policies))
    return EX_OK


def run_write(args: argparse.Namespace) -> int:
    """Upload a job or job group policy read from a file."""
    given = _positional(args)
    if not _check_count(given, 2, " args"):
        return EX_USAGE

    path = given[1].strip()
    try:
        with open(path, "rb") as handle:
            document = handle.read()
    except OSError as exc:
        print("Error reading scaling policy file:", exc)
        return EX_SOFTWARE

    settings = _settings(args)
    client = _client(settings)
    if client is None:
        return EX_SOFTWARE

    name = given[0].lower().strip()
    group = policy_config.get_config(settings).group_name
    try:
        if group:
            client.policies().write_job_group_policy(name, group, document)
        else:
            client.policies().write_job_policy(name, document)
    except api.APIError as exc:
        kind = "job group" if group else "job"
        print(f"Error writing {kind} scaling policy:", exc)
        return EX_SOFTWARE

    print("Successfully wrote job group scaling policy" if group else
          "Successfully wrote job scaling policy")
    return EX_OK


def run_delete(args: argparse.Namespace) -> int:
    """Delete a job or job group policy."""
    given = _positional(args)
    if not _check_count(given, 1, " arg"):
        return EX_USAGE

    settings = _settings(args)
    client = _client(settings)
    if client is None:
        return EX_SOFTWARE

    name = given[0].lower().strip()
    group = policy_config.get_config(settings).group_name
    try:
        if group:
            client.policies().delete_job_group_policy(name, group)
        else:
            client.policies().delete_job_policy(name)
    except api.APIError as exc:
        kind = "job group" if group else "job"
        print(f"Error deleting {kind} scaling policy:", exc)
        return EX_SOFTWARE

    print("Successfully deleted job group scaling policy" if group else
          "Successfully deleted job scaling policy")
    return EX_OK


def run_init(args: argparse.Namespace) -> int:
    """Print an example job group scaling policy."""
    print(example_policy())
    return EX_OK