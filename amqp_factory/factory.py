"""Connection construction on top of the py-amqp client.

``build_config`` turns validated settings into a transport-agnostic
``ConnectionConfig``; ``create_connection`` hands that config to the client
and returns its connection object. ``build_connection`` does both, and
``ConnectionFactory`` keeps resolved settings around for repeated use.

Errors raised by the client while connecting (unreachable host, refused
login, TLS handshake failure, ...) reach the caller unchanged.
"""

from collections.abc import Mapping

import typing as t
from loguru import logger
from pydantic import BaseModel, ConfigDict, SecretStr

from .config_errors import ConfigValueError
from .connection import SocketConnection, StreamConnection
from .resolver import resolve
from .settings import (
    ConnectionSettings,
    TransportType,
    load_settings,
    parse_transport,
)
from .ssl_config import SSLOptions, TLSVersion

LOGIN_METHOD = "AMQPLAIN"
LOGIN_RESPONSE = ""
LOCALE = "en_EN"

CONNECTION_CLASSES: dict[TransportType, type[StreamConnection | SocketConnection]] = {
    TransportType.STREAM: StreamConnection,
    TransportType.SOCKET: SocketConnection,
}


class ConnectionConfig(BaseModel):
    """Everything the client needs to open one connection."""

    model_config = ConfigDict(frozen=True)

    io_type: TransportType
    host: str
    port: int
    user: str
    password: SecretStr
    vhost: str

    # Protocol constants
    insist: bool = False
    login_method: str = LOGIN_METHOD
    login_response: str = LOGIN_RESPONSE
    locale: str = LOCALE

    connection_timeout: float
    read_timeout: float
    keepalive: bool
    heartbeat: int
    channel_rpc_timeout: float
    is_lazy: bool

    # TLS
    is_secure: bool = False
    ssl_ca_cert: str | None = None
    ssl_ca_path: str | None = None
    ssl_cert: str | None = None
    ssl_key: str | None = None
    ssl_verify: bool | None = None
    ssl_verify_name: bool | None = None
    ssl_passphrase: str | None = None
    ssl_ciphers: str | None = None
    ssl_security_level: int | None = None
    ssl_crypto_method: TLSVersion | None = None

    @property
    def address(self) -> str:
        """``host:port`` as the client expects it, bracketing IPv6 hosts."""
        if ":" in self.host:
            return f"[{self.host}]:{self.port}"
        return f"{self.host}:{self.port}"

    def ssl_options(self) -> SSLOptions:
        return SSLOptions(
            cafile=self.ssl_ca_cert,
            capath=self.ssl_ca_path,
            local_cert=self.ssl_cert,
            local_pk=self.ssl_key,
            verify_peer=True if self.ssl_verify is None else self.ssl_verify,
            verify_peer_name=True if self.ssl_verify_name is None else self.ssl_verify_name,
            passphrase=self.ssl_passphrase,
            ciphers=self.ssl_ciphers,
            security_level=self.ssl_security_level,
            crypto_method=self.ssl_crypto_method,
        )


def build_config(
    transport: TransportType | str | None,
    settings: ConnectionSettings | Mapping[str, t.Any],
) -> ConnectionConfig:
    """Build the client configuration for ``settings``.

    Args:
        transport: Transport variant. ``None`` uses the settings' ``type``.
        settings: Resolved settings, validated here if given as a mapping.

    Raises:
        ConfigurationError: the settings are incomplete or invalid, or TLS
            is requested over the socket transport.
    """
    settings = load_settings(settings)
    io_type = settings.type if transport is None else parse_transport(transport)

    values: dict[str, t.Any] = {
        "io_type": io_type,
        "host": settings.host,
        "port": settings.port,
        "user": settings.user,
        "password": settings.password,
        "vhost": settings.vhost,
        "insist": False,
        "login_method": LOGIN_METHOD,
        "login_response": LOGIN_RESPONSE,
        "locale": LOCALE,
        "connection_timeout": settings.connection_timeout,
        "read_timeout": settings.read_write_timeout,
        "keepalive": settings.keepalive,
        "heartbeat": settings.heartbeat,
        "channel_rpc_timeout": settings.channel_rpc_timeout,
        "is_lazy": settings.is_lazy,
    }

    ssl_options = settings.ssl_options
    if ssl_options is not None:
        if io_type is TransportType.SOCKET:
            raise ConfigValueError(
                "ssl_options",
                ssl_options,
                "TLS is only available with the stream transport",
            )
        values |= {
            "is_secure": True,
            "ssl_ca_cert": ssl_options.cafile,
            "ssl_ca_path": ssl_options.capath,
            "ssl_cert": ssl_options.local_cert,
            "ssl_key": ssl_options.local_pk,
            "ssl_verify": ssl_options.verify_peer,
            "ssl_verify_name": ssl_options.verify_peer_name,
            "ssl_passphrase": ssl_options.passphrase,
            "ssl_ciphers": ssl_options.ciphers,
            "ssl_security_level": ssl_options.security_level,
            "ssl_crypto_method": ssl_options.crypto_method,
        }

    return ConnectionConfig(**values)


def create_connection(config: ConnectionConfig) -> StreamConnection | SocketConnection:
    """Create a client connection from ``config``.

    The connection is opened before returning unless ``config.is_lazy``;
    a lazy connection opens on its first ``connect()``.
    """
    connection_cls = CONNECTION_CLASSES[config.io_type]
    kwargs: dict[str, t.Any] = {
        "host": config.address,
        "userid": config.user,
        "password": config.password.get_secret_value(),
        "login_method": config.login_method,
        "login_response": config.login_response or None,
        "virtual_host": config.vhost,
        "locale": config.locale,
        "connect_timeout": config.connection_timeout,
        "read_timeout": config.read_timeout,
        "write_timeout": config.read_timeout,
        "heartbeat": config.heartbeat,
        "keepalive": config.keepalive,
        "channel_rpc_timeout": config.channel_rpc_timeout,
    }
    if config.is_secure:
        kwargs["ssl"] = config.ssl_options().create_ssl_context()
        kwargs["server_hostname"] = config.host

    logger.debug(
        f"Creating {config.io_type.value} AMQP connection to "
        f"{config.address}/{config.vhost} as {config.user} "
        f"(secure={config.is_secure}, lazy={config.is_lazy})"
    )
    connection = connection_cls(**kwargs)
    if not config.is_lazy:
        connection.connect()
        logger.debug(f"AMQP connection to {config.address} established")
    return connection


def build_connection(
    transport: TransportType | str | None,
    settings: ConnectionSettings | Mapping[str, t.Any],
) -> StreamConnection | SocketConnection:
    """Build the client configuration for ``settings`` and connect with it."""
    return create_connection(build_config(transport, settings))


class ConnectionFactory:
    """Creates connections from one set of raw settings.

    The settings (including a ``url`` key, if any) are resolved and validated
    when the factory is built, so configuration errors surface early. Each
    ``create_connection`` call makes a single new connection attempt.
    """

    def __init__(
        self,
        transport: TransportType | str | None,
        settings: Mapping[str, t.Any],
    ) -> None:
        self._transport = None if transport is None else parse_transport(transport)
        self._settings = load_settings(resolve(settings))

    @property
    def transport(self) -> TransportType:
        return self._transport or self._settings.type

    @property
    def settings(self) -> ConnectionSettings:
        return self._settings

    def create_connection(self) -> StreamConnection | SocketConnection:
        return build_connection(self.transport, self._settings)
