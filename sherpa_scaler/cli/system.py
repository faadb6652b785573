"""The ``system`` command and its subcommands."""

from __future__ import annotations

import argparse
import functools
import math
import struct
from typing import Any

from sherpa_scaler import api
from sherpa_scaler.cli.policy import EX_OK, EX_SOFTWARE
from sherpa_scaler.config import client as client_config
from sherpa_scaler.config.settings import Settings
from sherpa_scaler.output import format_list

_METRICS_HEADER = "Name|Type|Value"


def _print_usage(parser: argparse.ArgumentParser, _args: argparse.Namespace) -> int:
    parser.print_usage()
    return EX_OK


def register(subparsers: Any, settings: Settings) -> argparse.ArgumentParser:
    """Add the ``system`` command and its subcommands."""
    parser = subparsers.add_parser(
        "system", help="Retrieve system information about a Sherpa server"
    )
    parser.set_defaults(func=functools.partial(_print_usage, parser), settings=settings)
    commands = parser.add_subparsers(title="commands")

    leaves = (
        ("info", "Retrieve information about a Sherpa server", run_info),
        ("leader", "Check the HA status and current leader", run_leader),
        ("metrics", "Retrieve metrics from a Sherpa server", run_metrics),
        ("health", "Retrieve health information of a Sherpa server", run_health),
    )
    for name, description, func in leaves:
        leaf = commands.add_parser(name, help=description, description=description)
        leaf.add_argument("args", nargs="*", metavar="ARG")
        leaf.set_defaults(func=func, settings=settings)
    return parser


def _bool(value: bool) -> str:
    return "true" if value else "false"


def _to_single(value: float) -> float:
    return struct.unpack("f", struct.pack("f", value))[0]


def _format_float(value: float, single: bool = False) -> str:
    """Render a float with the shortest digits, switching to exponent form like ``%g``."""
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    if value == 0:
        return "-0" if math.copysign(1.0, value) < 0 else "0"

    target = _to_single(value) if single else value
    text = f"{target:.16e}"
    for precision in range(17):
        candidate = f"{target:.{precision}e}"
        back = float(candidate)
        if (_to_single(back) if single else back) == target:
            text = candidate
            break

    mantissa, exp_text = text.split("e")
    exponent = int(exp_text)
    sign = "-" if mantissa.startswith("-") else ""
    digits = mantissa.lstrip("-").replace(".", "").rstrip("0") or "0"

    if exponent < -4 or exponent >= 6:
        body = digits[0] + (f".{digits[1:]}" if len(digits) > 1 else "")
        exp_sign = "-" if exponent < 0 else "+"
        return f"{sign}{body}e{exp_sign}{abs(exponent):02d}"
    if exponent >= 0:
        whole = digits[: exponent + 1].ljust(exponent + 1, "0")
        fraction = digits[exponent + 1 :]
        return f"{sign}{whole}" + (f".{fraction}" if fraction else "")
    return f"{sign}0.{'0' * (-exponent - 1)}{digits}"


def format_info(info: api.InfoResponse) -> str:
    """Render the server configuration summary as a table."""
    return format_list(
        [
            f"Nomad Address|{info.nomad_address}",
            f"Policy Engine|{info.policy_engine}",
            f"Storage Backend|{info.storage_backend}",
            f"Internal AutoScaling Engine|{_bool(info.internal_auto_scaling_engine)}",
            f"Strict Policy Checking|{_bool(info.strict_policy_checking)}",
        ]
    )


def format_leader(leader: api.LeaderResponse) -> str:
    """Render the high-availability status as a table."""
    return format_list(
        [
            f"Is Self|{_bool(leader.is_self)}",
            f"Leader Address|{leader.leader_address}",
            f"Leader Cluster Address|{leader.leader_cluster_address}",
            f"HA Enabled|{_bool(leader.ha_enabled)}",
        ]
    )


def format_metrics(metrics: api.MetricsSummary) -> str:
    """Render every metric as a table, or an empty string when there are none."""
    rows = [f"{g.name}|Gauge|{_format_float(g.value, single=True)}" for g in metrics.gauges]
    rows += [f"{c.name}|Counter|{_format_float(c.mean)}" for c in metrics.counters]
    rows += [f"{s.name}|Counter|{_format_float(s.mean)}" for s in metrics.samples]
    return format_list([_METRICS_HEADER, *rows]) if rows else ""


def _client(args: argparse.Namespace) -> api.Client | None:
    settings: Settings = args.settings
    settings.load(args)
    try:
        return api.Client(api.default_config(client_config.get_config(settings)))
    except api.APIError as exc:
        print("Error setting up Sherpa client:", exc)
        return None


def run_health(args: argparse.Namespace) -> int:
    """Print the health status of the server."""
    client = _client(args)
    if client is None:
        return EX_SOFTWARE
    try:
        health = client.system().health()
    except api.APIError as exc:
        print("Error calling server health:", exc)
        return EX_SOFTWARE
    print("Sherpa server status:", health.status)
    return EX_OK


def run_info(args: argparse.Namespace) -> int:
    """Print how the server is configured."""
    client = _client(args)
    if client is None:
        return EX_SOFTWARE
    try:
        info = client.system().info()
    except api.APIError as exc:
        print("Error calling server info:", exc)
        return EX_SOFTWARE
    print(format_info(info))
    return EX_OK


def run_leader(args: argparse.Namespace) -> int:
    """Print the high-availability status and current leader."""
    client = _client(args)
    if client is None:
        return EX_SOFTWARE
    try:
        leader = client.system().leader()
    except api.APIError as exc:
        print("Error calling server info:", exc)
        return EX_SOFTWARE
    print(format_leader(leader))
    return EX_OK


def run_metrics(args: argparse.Namespace) -> int:
    """Print the server metrics, if there are any yet."""
    client = _client(args)
    if client is None:
        return EX_SOFTWARE
    try:
        metrics = client.system().metrics()
    except api.APIError as exc:
        print("Error calling server metrics:", exc)
        return EX_SOFTWARE
    rendered = format_metrics(metrics)
    if rendered:
        print(rendered)
    return EX_OK