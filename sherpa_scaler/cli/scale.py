"""The ``scale`` command and its subcommands."""

from __future__ import annotations

import argparse
import functools
from collections.abc import Mapping
from typing import Any
from uuid import UUID

from sherpa_scaler import api
from sherpa_scaler.cli.policy import EX_OK, EX_SOFTWARE, EX_USAGE
from sherpa_scaler.config import client as client_config
from sherpa_scaler.config import scale as scale_config
from sherpa_scaler.config.settings import Settings
from sherpa_scaler.output import format_kv, format_list, format_timestamp

_LIST_HEADER = "ID|Job:Group|Status|Time"
_INFO_HEADER = "Job:Group|ChangeCount|Direction"


def _print_usage(parser: argparse.ArgumentParser, _args: argparse.Namespace) -> int:
    parser.print_usage()
    return EX_OK


def register(subparsers: Any, settings: Settings) -> argparse.ArgumentParser:
    """Add the ``scale`` command and its subcommands."""
    parser = subparsers.add_parser(
        "scale", help="Perform scaling actions against a Nomad job and check scaling status"
    )
    parser.set_defaults(func=functools.partial(_print_usage, parser), settings=settings)
    commands = parser.add_subparsers(title="commands")

    leaves = (
        ("in", "Perform scaling in actions on Nomad jobs and groups", run_in),
        ("status", "Display the status output for scaling activities", run_status),
    )
    for name, description, func in leaves:
        leaf = commands.add_parser(name, help=description, description=description)
        leaf.add_argument("args", nargs="*", metavar="ARG")
        scale_config.register_config(leaf, settings)
        leaf.set_defaults(func=func, settings=settings)
    return parser


def format_scale_response(response: api.ScaleResponse) -> str:
    """Render the identifiers of a scaling action as key/value lines."""
    return format_kv([f"ID|{response.id}", f"EvalID|{response.evaluation_id}"])


def format_status_list(
    events: Mapping[UUID, Mapping[str, api.ScalingEvent | None]],
) -> str:
    """Render every scaling event as a table, or an empty string when there are none."""
    rows = [
        f"{scale_id}|{job_group}|{event.status}|{format_timestamp(event.time)}"
        for scale_id, groups in events.items()
        for job_group, event in groups.items()
        if event is not None
    ]
    return format_list([_LIST_HEADER, *rows]) if rows else ""


def format_status_info(scale_id: str, events: Mapping[str, api.ScalingEvent | None]) -> str:
    """Render the summary and the per-group changes of one scaling action."""
    header: list[str] = []
    rows = [_INFO_HEADER]
    for job_group, event in events.items():
        if event is None:
            continue
        rows.append(f"{job_group}|{event.details.count}|{event.details.direction}")
        if not header:
            header = [
                f"ID|{scale_id}",
                f"EvalID|{event.eval_id}",
                f"Status|{event.status}",
                f"Source|{event.source}",
                f"Time|{format_timestamp(event.time)}",
            ]
    return f"{format_kv(header)}\n\n{format_list(rows)}"


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


def run_in(args: argparse.Namespace) -> int:
    """Scale a job group in."""
    given = _positional(args)
    if len(given) < 1:
        print("Not enough arguments, expected 1 arg got", len(given))
        return EX_USAGE
    if len(given) > 1:
        print("Too many arguments, expected 1 arg got", len(given))
        return EX_USAGE

    settings = _settings(args)
    config = scale_config.get_config(settings)

    client = _client(settings)
    if client is None:
        return EX_SOFTWARE

    if not config.group_name:
        print("Please specify a job group to scale")
        return EX_USAGE

    try:
        response = client.scale().job_group_in(given[0], config.group_name, config.count)
    except api.APIError as exc:
        print("Error scaling in job group:", exc)
        return EX_SOFTWARE

    print(format_scale_response(response))
    return EX_OK


def run_status(args: argparse.Namespace) -> int:
    """List scaling events, or show those of one scaling action."""
    given = _positional(args)
    if len(given) > 1:
        print("Too many arguments, expected 1 or 0, got", len(given))
        return EX_USAGE

    client = _client(_settings(args))
    if client is None:
        return EX_SOFTWARE

    if not given:
        try:
            events = client.scale().list()
        except api.APIError as exc:
            print("Error getting scaling list:", exc)
            return EX_SOFTWARE
        rendered = format_status_list(events)
        if rendered:
            print(rendered)
        return EX_OK

    scale_id = given[0]
    try:
        group_events = client.scale().info(scale_id)
    except api.APIError as exc:
        print("Error getting scaling info:", exc)
        return EX_SOFTWARE
    print(format_status_info(scale_id, group_events))
    return EX_OK