"""Configuration of the server: listener, policy engines, TLS, telemetry and clustering."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from sherpa_scaler.config.settings import Settings

DEFAULT_BIND_ADDR = "127.0.0.1"
DEFAULT_BIND_PORT = 8000
DEFAULT_STORAGE_CONSUL_PATH = "sherpa/"
DEFAULT_AUTOSCALER_EVALUATION_INTERVAL = 60
DEFAULT_AUTOSCALER_THREADS = 3
DEFAULT_CLUSTER_ADVERTISE_ADDR = "http://127.0.0.1:8000"

KEY_BIND_ADDR = "bind-addr"
KEY_BIND_PORT = "bind-port"
KEY_AUTOSCALER_ENABLED = "autoscaler-enabled"
KEY_AUTOSCALER_EVALUATION_INTERVAL = "autoscaler-evaluation-interval"
KEY_AUTOSCALER_THREADS = "autoscaler-num-threads"
KEY_POLICY_ENGINE_API_ENABLED = "policy-engine-api-enabled"
KEY_POLICY_ENGINE_NOMAD_META_ENABLED = "policy-engine-nomad-meta-enabled"
KEY_POLICY_ENGINE_STRICT_CHECKING_ENABLED = "policy-engine-strict-checking-enabled"
KEY_STORAGE_CONSUL_ENABLED = "storage-consul-enabled"
KEY_STORAGE_CONSUL_PATH = "storage-consul-path"
KEY_UI = "ui"

KEY_TLS_CERT_PATH = "tls-cert-path"
KEY_TLS_CERT_KEY_PATH = "tls-cert-key-path"

KEY_TELEMETRY_STATSITE_ADDRESS = "telemetry-statsite-address"
KEY_TELEMETRY_STATSD_ADDRESS = "telemetry-statsd-address"

KEY_CLUSTER_ADVERTISE_ADDR = "cluster-advertise-addr"
KEY_CLUSTER_NAME = "cluster-name"


@dataclass
class ServerConfig:
    """Core server options."""

    bind: str = ""
    consul_storage_backend_path: str = ""
    port: int = 0
    api_policy_engine: bool = False
    nomad_meta_policy_engine: bool = False
    strict_policy_checking: bool = False
    internal_autoscaler: bool = False
    consul_storage_backend: bool = False
    ui: bool = False
    internal_autoscaler_eval_period: int = 0
    internal_autoscaler_num_threads: int = 0

    def log_fields(self) -> dict[str, Any]:
        """Return the configuration as structured logging fields."""
        return {
            KEY_BIND_ADDR: self.bind,
            KEY_BIND_PORT: self.port,
            KEY_POLICY_ENGINE_API_ENABLED: self.api_policy_engine,
            KEY_POLICY_ENGINE_NOMAD_META_ENABLED: self.nomad_meta_policy_engine,
            KEY_POLICY_ENGINE_STRICT_CHECKING_ENABLED: self.strict_policy_checking,
            KEY_AUTOSCALER_ENABLED: self.internal_autoscaler,
            KEY_AUTOSCALER_EVALUATION_INTERVAL: self.internal_autoscaler_eval_period,
            KEY_AUTOSCALER_THREADS: self.internal_autoscaler_num_threads,
            KEY_STORAGE_CONSUL_ENABLED: self.consul_storage_backend,
            KEY_STORAGE_CONSUL_PATH: self.consul_storage_backend_path,
            KEY_UI: self.ui,
        }


@dataclass
class ServerTLSConfig:
    """Certificate and key served by the HTTP listener."""

    cert_path: str = ""
    cert_key_path: str = ""

    def log_fields(self) -> dict[str, Any]:
        """Return the configuration as structured logging fields."""
        return {
            KEY_TLS_CERT_PATH: self.cert_path,
            KEY_TLS_CERT_KEY_PATH: self.cert_key_path,
        }


@dataclass
class TelemetryConfig:
    """Addresses of metric sinks."""

    statsite_addr: str = ""
    statsd_addr: str = ""

    def log_fields(self) -> dict[str, Any]:
        """Return the configuration as structured logging fields."""
        return {
            KEY_TELEMETRY_STATSITE_ADDRESS: self.statsite_addr,
            KEY_TELEMETRY_STATSD_ADDRESS: self.statsd_addr,
        }


@dataclass
class ClusterConfig:
    """Identity and advertised address of the server within a cluster."""

    addr: str = ""
    name: str = ""

    def log_fields(self) -> dict[str, Any]:
        """Return the configuration as structured logging fields."""
        return {
            KEY_CLUSTER_ADVERTISE_ADDR: self.addr,
            KEY_CLUSTER_NAME: self.name,
        }


def register_config(parser: Any, settings: Settings) -> None:
    """Register the core server flags on the parser."""
    flags = (
        (KEY_BIND_ADDR, DEFAULT_BIND_ADDR, "The HTTP server address to bind to"),
        (KEY_BIND_PORT, DEFAULT_BIND_PORT, "The HTTP server port to bind to"),
        (
            KEY_POLICY_ENGINE_API_ENABLED,
            True,
            "Enable the Sherpa API to manage scaling policies",
        ),
        (
            KEY_POLICY_ENGINE_NOMAD_META_ENABLED,
            False,
            "Enable Nomad job meta lookups to manage scaling policies",
        ),
        (
            KEY_POLICY_ENGINE_STRICT_CHECKING_ENABLED,
            True,
            "When enabled, all scaling activities must pass through policy checks",
        ),
        (KEY_AUTOSCALER_ENABLED, False, "Enable the internal autoscaling engine"),
        (
            KEY_AUTOSCALER_EVALUATION_INTERVAL,
            DEFAULT_AUTOSCALER_EVALUATION_INTERVAL,
            "The time period in seconds between autoscaling evaluation runs",
        ),
        (
            KEY_AUTOSCALER_THREADS,
            DEFAULT_AUTOSCALER_THREADS,
            "Specifies the number of parallel autoscaler threads to run",
        ),
        (
            KEY_STORAGE_CONSUL_ENABLED,
            False,
            "Use Consul as a storage backend when using the API policy engine",
        ),
        (
            KEY_STORAGE_CONSUL_PATH,
            DEFAULT_STORAGE_CONSUL_PATH,
            "The Consul KV base path that will be used to store policies and state",
        ),
        (KEY_UI, False, "Run the Sherpa user interface"),
    )
    for key, default, description in flags:
        settings.add_flag(parser, key, default, description)


def register_tls_config(parser: Any, settings: Settings) -> None:
    """Register the server TLS flags on the parser."""
    settings.add_flag(
        parser, KEY_TLS_CERT_PATH, "", "Path to the TLS certificate for the Sherpa server"
    )
    settings.add_flag(
        parser,
        KEY_TLS_CERT_KEY_PATH,
        "",
        "Path to the TLS certificate key for the Sherpa server",
    )


def register_telemetry_config(parser: Any, settings: Settings) -> None:
    """Register the telemetry flags on the parser."""
    settings.add_flag(
        parser,
        KEY_TELEMETRY_STATSITE_ADDRESS,
        "",
        "Specifies the address of a statsite server to forward metrics data to",
    )
    settings.add_flag(
        parser,
        KEY_TELEMETRY_STATSD_ADDRESS,
        "",
        "Specifies the address of a statsd server to forward metrics to",
    )


def register_cluster_config(parser: Any, settings: Settings) -> None:
    """Register the cluster flags on the parser."""
    settings.add_flag(
        parser,
        KEY_CLUSTER_ADVERTISE_ADDR,
        DEFAULT_CLUSTER_ADVERTISE_ADDR,
        "The Sherpa server advertise address used for NAT traversal on HTTP redirects",
    )
    settings.add_flag(
        parser, KEY_CLUSTER_NAME, "", "Specifies the identifier for the Sherpa cluster"
    )


def get_config(settings: Settings) -> ServerConfig:
    """Resolve the core server configuration from the settings."""
    return ServerConfig(
        bind=settings.get_str(KEY_BIND_ADDR),
        # The port is a 16-bit value; wider numbers wrap around.
        port=settings.get_int(KEY_BIND_PORT) & 0xFFFF,
        api_policy_engine=settings.get_bool(KEY_POLICY_ENGINE_API_ENABLED),
        nomad_meta_policy_engine=settings.get_bool(KEY_POLICY_ENGINE_NOMAD_META_ENABLED),
        strict_policy_checking=settings.get_bool(KEY_POLICY_ENGINE_STRICT_CHECKING_ENABLED),
        internal_autoscaler=settings.get_bool(KEY_AUTOSCALER_ENABLED),
        internal_autoscaler_eval_period=settings.get_int(KEY_AUTOSCALER_EVALUATION_INTERVAL),
        internal_autoscaler_num_threads=settings.get_int(KEY_AUTOSCALER_THREADS),
        consul_storage_backend=settings.get_bool(KEY_STORAGE_CONSUL_ENABLED),
        consul_storage_backend_path=settings.get_str(KEY_STORAGE_CONSUL_PATH),
        ui=settings.get_bool(KEY_UI),
    )


def get_tls_config(settings: Settings) -> ServerTLSConfig:
    """Resolve the server TLS configuration from the settings."""
    return ServerTLSConfig(
        cert_path=settings.get_str(KEY_TLS_CERT_PATH),
        cert_key_path=settings.get_str(KEY_TLS_CERT_KEY_PATH),
    )


def get_telemetry_config(settings: Settings) -> TelemetryConfig:
    """Resolve the telemetry configuration from the settings."""
    return TelemetryConfig(
        statsite_addr=settings.get_str(KEY_TELEMETRY_STATSITE_ADDRESS),
        statsd_addr=settings.get_str(KEY_TELEMETRY_STATSD_ADDRESS),
    )


def get_cluster_config(settings: Settings) -> ClusterConfig:
    """Resolve the cluster configuration from the settings."""
    return ClusterConfig(
        addr=settings.get_str(KEY_CLUSTER_ADVERTISE_ADDR),
        name=settings.get_str(KEY_CLUSTER_NAME),
    )