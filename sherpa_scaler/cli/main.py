"""The ``sherpa`` command line entry point."""

from __future__ import annotations

import argparse
import functools
import os
from collections.abc import Mapping, Sequence
from importlib import metadata

from sherpa_scaler.cli import policy, scale, system
from sherpa_scaler.cli.policy import EX_OK
from sherpa_scaler.config import client as client_config
from sherpa_scaler.config.settings import Settings

_DESCRIPTION = (
    "Sherpa is a fast and flexible job scaler for HashiCorp Nomad, capable of\n"
    "running in a number of different modes to suit your needs."
)


def _version() -> str:
    try:
        return metadata.version("sherpa_scaler")
    except metadata.PackageNotFoundError:
        return "0.0.0+dev"


def _print_help(parser: argparse.ArgumentParser, _args: argparse.Namespace) -> int:
    parser.print_help()
    return EX_OK


def build_parser(environ: Mapping[str, str] | None = None) -> argparse.ArgumentParser:
    """Build the command parser, reading settings from ``environ`` or the process environment."""
    settings = Settings("SHERPA", os.environ if environ is None else environ)
    parser = argparse.ArgumentParser(
        prog="sherpa",
        description=_DESCRIPTION,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s version {_version()}"
    )
    client_config.register_config(parser, settings)
    parser.set_defaults(func=functools.partial(_print_help, parser), settings=settings)

    commands = parser.add_subparsers(title="commands")
    system.register(commands, settings)
    scale.register(commands, settings)
    policy.register(commands, settings)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the command line and return its exit status."""
    parser = build_parser()
    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    raise SystemExit(main())