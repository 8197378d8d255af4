"""Connection settings models.

``ConnectionSettings`` is the validated, immutable form of a canonical
settings map (see ``amqp_factory.resolver.resolve``). ``AMQPSettings`` reads
the same keys from ``AMQP_*`` environment variables and supplies defaults.
"""

from collections.abc import Mapping
from enum import Enum

import typing as t
from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    SecretStr,
    ValidationError,
    field_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

from .config_errors import ConfigMissingError, ConfigurationError, ConfigValueError
from .ssl_config import SSLOptions


class TransportType(str, Enum):
    """I/O transport used by the AMQP client."""

    STREAM = "stream"
    SOCKET = "socket"

    @classmethod
    def _missing_(cls, value: object) -> "TransportType | None":
        if isinstance(value, str):
            for member in cls:
                if member.value == value.lower():
                    return member
        return None


def parse_transport(value: "TransportType | str") -> TransportType:
    """Return the transport variant named by ``value`` (case-insensitive)."""
    try:
        return TransportType(value)
    except ValueError as e:
        raise ConfigValueError(
            "type",
            value,
            f"Unknown transport '{value}', expected one of: "
            + ", ".join(member.value for member in TransportType),
        ) from e


def normalize_transport_type(value: t.Any) -> t.Any:
    if isinstance(value, str) and not isinstance(value, TransportType):
        return value.lower()
    return value


DEFAULT_SETTINGS: dict[str, t.Any] = {
    "type": TransportType.STREAM,
    "host": "localhost",
    "port": 5672,
    "user": "guest",
    "password": "guest",
    "vhost": "/",
    "connection_timeout": 3.0,
    "read_write_timeout": 3.0,
    "keepalive": False,
    "heartbeat": 0,
    "channel_rpc_timeout": 0.0,
    "is_lazy": False,
    "ssl_options": None,
}

# Settings keys that may arrive under another name, e.g. ``?lazy=1``.
_FIELD_ALIASES = {"lazy": "is_lazy"}


class ConnectionSettings(BaseModel):
    """Validated settings of one broker connection.

    Every field except ``ssl_options`` is required. Values arriving as
    strings from a URL query (``"6"``, ``"1"``) are coerced to their types.
    Keys that are not fields are ignored.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    type: TransportType
    host: str = Field(min_length=1)
    port: int = Field(ge=1, le=65535)
    user: str
    password: SecretStr
    vhost: str
    connection_timeout: float = Field(ge=0)
    read_write_timeout: float = Field(ge=0)
    keepalive: bool
    heartbeat: int = Field(ge=0)
    channel_rpc_timeout: float = Field(ge=0)
    # The URL query spells it ``lazy``; when both are given the query wins.
    is_lazy: bool = Field(validation_alias=AliasChoices("lazy", "is_lazy"))
    ssl_options: SSLOptions | None = None

    normalize_type = field_validator("type", mode="before")(normalize_transport_type)

    @field_validator("ssl_options", mode="before")
    @classmethod
    def empty_ssl_options_mean_no_tls(cls, value: t.Any) -> t.Any:
        # An empty TLS section means no TLS.
        if value == {} or value == "":
            return None
        return value

    @property
    def is_secure(self) -> bool:
        return self.ssl_options is not None


def _field_name(loc: tuple[int | str, ...]) -> str:
    parts = [str(part) for part in loc]
    if parts:
        parts[0] = _FIELD_ALIASES.get(parts[0], parts[0])
    return ".".join(parts) or "settings"


def load_settings(
    settings: "ConnectionSettings | Mapping[str, t.Any]",
) -> ConnectionSettings:
    """Validate a canonical settings map into ``ConnectionSettings``.

    Raises:
        ConfigMissingError: a required setting is absent.
        ConfigValueError: a setting is invalid, or the map still carries an
            unresolved ``url``.
    """
    if isinstance(settings, ConnectionSettings):
        return settings
    if not isinstance(settings, Mapping):
        raise ConfigurationError(
            f"Connection settings must be a mapping, got {type(settings).__name__}"
        )

    if settings.get("url"):
        raise ConfigValueError(
            "url",
            settings["url"],
            "Connection settings carry an unresolved 'url'; resolve them first",
        )

    try:
        return ConnectionSettings.model_validate(dict(settings))
    except ValidationError as e:
        error = e.errors()[0]
        field_name = _field_name(tuple(error["loc"]))
        if error["type"] == "missing":
            raise ConfigMissingError(field_name, context="connection settings") from e
        raise ConfigValueError(
            field_name,
            error.get("input"),
            f"Invalid value for '{field_name}': {error['msg']}",
        ) from e


def with_defaults(settings: Mapping[str, t.Any]) -> dict[str, t.Any]:
    """Return ``settings`` layered over ``DEFAULT_SETTINGS``."""
    return DEFAULT_SETTINGS | dict(settings)


class AMQPSettings(BaseSettings):
    """Connection settings read from ``AMQP_*`` environment variables.

    Nested TLS options use a double underscore, e.g.
    ``AMQP_SSL_OPTIONS__CAFILE=/etc/ssl/ca.pem``.
    """

    model_config = SettingsConfigDict(
        env_prefix="AMQP_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    url: str | None = None
    type: TransportType = DEFAULT_SETTINGS["type"]
    host: str = DEFAULT_SETTINGS["host"]
    port: int = DEFAULT_SETTINGS["port"]
    user: str = DEFAULT_SETTINGS["user"]
    password: SecretStr = SecretStr(DEFAULT_SETTINGS["password"])
    vhost: str = DEFAULT_SETTINGS["vhost"]
    connection_timeout: float = DEFAULT_SETTINGS["connection_timeout"]
    read_write_timeout: float = DEFAULT_SETTINGS["read_write_timeout"]
    keepalive: bool = DEFAULT_SETTINGS["keepalive"]
    heartbeat: int = DEFAULT_SETTINGS["heartbeat"]
    channel_rpc_timeout: float = DEFAULT_SETTINGS["channel_rpc_timeout"]
    is_lazy: bool = DEFAULT_SETTINGS["is_lazy"]
    ssl_options: SSLOptions | None = None

    normalize_type = field_validator("type", mode="before")(normalize_transport_type)

    def to_raw(self) -> dict[str, t.Any]:
        """Raw settings map for ``resolve``; ``url`` is present only if set."""
        raw = self.model_dump(exclude={"password", "url"})
        raw["password"] = self.password.get_secret_value()
        if self.url:
            raw["url"] = self.url
        return raw
