"""
Configuration management for the VATSIM exporter.

The listen address is the only setting read from the environment
(``VATSIM_EXPORTER_LISTEN``, optionally via a ``.env`` file). Everything
else is a fixed operating constant kept here so the numbers live in one place.
"""

import os
from dataclasses import dataclass
from typing import Tuple

from dotenv import load_dotenv

load_dotenv()

DEFAULT_LISTEN = '[::]:9185'


def parse_listen_address(value: str) -> Tuple[str, int]:
    """
    Parse '[v6addr]:port' or 'host:port' into (host, port).

    Raises ValueError for anything else, since the server cannot start
    without a usable address.
    """
    value = (value or '').strip()
    if value.startswith('['):
        host, sep, port = value[1:].partition(']:')
    else:
        host, sep, port = value.rpartition(':')
    if not sep or not host or not port.isdigit():
        raise ValueError(f'Invalid listen address: {value!r}')

    port_number = int(port)
    if not 0 < port_number < 65536:
        raise ValueError(f'Listen port out of range: {port_number}')
    return host, port_number


@dataclass(frozen=True)
class ServerConfig:
    """HTTP listener configuration."""
    listen: str = os.getenv('VATSIM_EXPORTER_LISTEN') or DEFAULT_LISTEN

    @property
    def host(self) -> str:
        return parse_listen_address(self.listen)[0]

    @property
    def port(self) -> int:
        return parse_listen_address(self.listen)[1]


@dataclass(frozen=True)
class UpstreamConfig:
    """VATSIM status feed settings."""
    url: str = 'https://data.vatsim.net/v3/vatsim-data.json'
    timeout_seconds: float = 5.0
    # Cached snapshot is refreshed on the next request once older than this
    staleness_window_seconds: float = 40.0


@dataclass(frozen=True)
class MetricsConfig:
    """Metric registry settings."""
    namespace: str = 'vatsim'
    # Label sets not written for this long are dropped from the exposition
    idle_timeout_seconds: float = 40.0


@dataclass(frozen=True)
class AppConfig:
    """Main application configuration."""
    server: ServerConfig
    upstream: UpstreamConfig
    metrics: MetricsConfig


def load_config() -> AppConfig:
    """Load and validate all configuration."""
    server = ServerConfig()
    # Fail at startup rather than on first bind
    parse_listen_address(server.listen)
    return AppConfig(
        server=server,
        upstream=UpstreamConfig(),
        metrics=MetricsConfig(),
    )


# Singleton instance
config = load_config()
