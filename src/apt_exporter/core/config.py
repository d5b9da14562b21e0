"""Configuration module for the APT exporter."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from apt_exporter.core.errors import ConfigError

DEFAULT_LISTEN_ADDRESS = ":9509"
DEFAULT_TELEMETRY_PATH = "/metrics"
DEFAULT_POLL_INTERVAL = 1.0
DEFAULT_COMMAND_TIMEOUT = 120.0


@dataclass(frozen=True)
class AptPaths:
    """Filesystem locations APT uses to signal state changes."""

    apt_binary: Path = Path("/usr/bin/apt")
    history_log: Path = Path("/var/log/apt/history.log")
    periodic_dir: Path = Path("/var/lib/apt/periodic")
    stamp_names: tuple[str, ...] = ("update-stamp", "update-success-stamp")
    reboot_marker: Path = Path("/run/reboot-required")

    @property
    def stamps(self) -> tuple[Path, ...]:
        """Full paths of the periodic update stamps."""
        return tuple(self.periodic_dir / name for name in self.stamp_names)


@dataclass(frozen=True)
class ExporterConfig:
    """Runtime configuration for the exporter."""

    listen_address: str = DEFAULT_LISTEN_ADDRESS
    telemetry_path: str = DEFAULT_TELEMETRY_PATH
    poll_interval: float = DEFAULT_POLL_INTERVAL
    command_timeout: float = DEFAULT_COMMAND_TIMEOUT
    paths: AptPaths = field(default_factory=AptPaths)

    def __post_init__(self) -> None:
        if not self.telemetry_path.startswith("/") or self.telemetry_path == "/":
            raise ConfigError(
                "Telemetry path must start with '/' and differ from the landing page",
                option="--web.telemetry-path",
                value=self.telemetry_path,
            )
        if self.poll_interval <= 0:
            raise ConfigError(
                "Poll interval must be positive",
                option="--watch.poll-interval",
                value=self.poll_interval,
            )
        parse_listen_address(self.listen_address)

    @property
    def bind(self) -> tuple[str, int]:
        return parse_listen_address(self.listen_address)


def parse_listen_address(address: str) -> tuple[str, int]:
    """Split a `host:port` listen address.

    An empty host binds every interface. IPv6 hosts may be bracketed.

    Args:
        address: The address, e.g. ":9509" or "127.0.0.1:9509".

    Returns:
        A (host, port) tuple.

    Raises:
        ConfigError: If the address has no valid port.
    """
    host, sep, port = address.rpartition(":")
    if not sep:
        raise ConfigError(
            "Listen address must be of the form [host]:port",
            option="--web.listen-address",
            value=address,
        )

    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]

    try:
        port_number = int(port)
    except ValueError:
        raise ConfigError(
            "Port must be a number",
            option="--web.listen-address",
            value=address,
        ) from None

    if not 0 <= port_number <= 65535:
        raise ConfigError(
            "Port must be between 0 and 65535",
            option="--web.listen-address",
            value=address,
        )

    return host, port_number
