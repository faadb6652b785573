"""Configuration of the HTTP client used by the command line."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from sherpa_scaler.config.settings import Settings

KEY_ADDR = "addr"
DEFAULT_ADDR = "http://127.0.0.1:8000"
KEY_CLIENT_CERT_PATH = "client-cert-path"
KEY_CLIENT_CERT_KEY_PATH = "client-cert-key-path"
KEY_CA_PATH = "client-ca-path"


@dataclass
class ClientConfig:
    """Address and TLS material for talking to a server."""

    addr: str = ""
    cert_path: str = ""
    cert_key_path: str = ""
    ca_path: str = ""


def register_config(parser: Any, settings: Settings) -> None:
    """Register the client flags on the parser."""
    settings.add_flag(parser, KEY_ADDR, DEFAULT_ADDR, "The HTTP(S) address of the sherpa server")
    settings.add_flag(
        parser,
        KEY_CLIENT_CERT_PATH,
        "",
        "Path to a PEM encoded client certificate for TLS authentication to the Sherpa server",
    )
    settings.add_flag(
        parser,
        KEY_CLIENT_CERT_KEY_PATH,
        "",
        "Path to an unencrypted PEM encoded private key matching the client certificate",
    )
    settings.add_flag(
        parser,
        KEY_CA_PATH,
        "",
        "Path to a PEM encoded CA cert file to use to verify the Sherpa server SSL certificate",
    )


def get_config(settings: Settings) -> ClientConfig:
    """Resolve the client configuration from the settings."""
    return ClientConfig(
        addr=settings.get_str(KEY_ADDR),
        cert_path=settings.get_str(KEY_CLIENT_CERT_PATH),
        cert_key_path=settings.get_str(KEY_CLIENT_CERT_KEY_PATH),
        ca_path=settings.get_str(KEY_CA_PATH),
    )