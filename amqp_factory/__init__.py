"""Resolve AMQP connection settings and open connections with py-amqp."""

from .config_errors import (
    ConfigMissingError,
    ConfigurationError,
    ConfigURLError,
    ConfigValueError,
)
from .connection import SocketConnection, StreamConnection
from .factory import (
    ConnectionConfig,
    ConnectionFactory,
    build_config,
    build_connection,
    create_connection,
)
from .resolver import parse_url, resolve
from .settings import (
    DEFAULT_SETTINGS,
    AMQPSettings,
    ConnectionSettings,
    TransportType,
    load_settings,
    with_defaults,
)
from .ssl_config import SSLOptions, TLSVersion

__version__ = "0.1.0"

__all__ = [
    "DEFAULT_SETTINGS",
    "AMQPSettings",
    "ConfigMissingError",
    "ConfigURLError",
    "ConfigValueError",
    "ConfigurationError",
    "ConnectionConfig",
    "ConnectionFactory",
    "ConnectionSettings",
    "SSLOptions",
    "SocketConnection",
    "StreamConnection",
    "TLSVersion",
    "TransportType",
    "build_config",
    "build_connection",
    "create_connection",
    "load_settings",
    "parse_url",
    "resolve",
    "with_defaults",
]
