"""SSL/TLS options for AMQP connections.

The presence of an ``SSLOptions`` value on the connection settings switches
the connection to TLS. The options are turned into an ``ssl.SSLContext`` only
when a connection is actually opened.
"""

import ssl
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Any

from .config_errors import ConfigValueError


class TLSVersion(str, Enum):
    """Supported minimum TLS versions."""

    TLS_1_0 = "TLSv1.0"
    TLS_1_1 = "TLSv1.1"
    TLS_1_2 = "TLSv1.2"
    TLS_1_3 = "TLSv1.3"


_MINIMUM_VERSIONS = {
    TLSVersion.TLS_1_0: ssl.TLSVersion.TLSv1,
    TLSVersion.TLS_1_1: ssl.TLSVersion.TLSv1_1,
    TLSVersion.TLS_1_2: ssl.TLSVersion.TLSv1_2,
    TLSVersion.TLS_1_3: ssl.TLSVersion.TLSv1_3,
}


class SSLOptions(BaseModel):
    """TLS settings of a broker connection.

    Field names follow the ``ssl_options`` keys of the connection settings.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    # Certificate authorities
    cafile: str | None = Field(
        default=None,
        description="Path to a CA certificate bundle",
    )
    capath: str | None = Field(
        default=None,
        description="Directory of hashed CA certificates",
    )

    # Client certificate
    local_cert: str | None = Field(
        default=None,
        description="Path to the client certificate",
    )
    local_pk: str | None = Field(
        default=None,
        description="Path to the client private key",
    )
    passphrase: str | None = Field(
        default=None,
        description="Passphrase of the client private key",
    )

    # Verification
    verify_peer: bool = Field(
        default=True,
        description="Verify the broker certificate",
    )
    verify_peer_name: bool = Field(
        default=True,
        description="Verify the broker host name against its certificate",
    )

    # Protocol
    ciphers: str | None = Field(default=None, description="OpenSSL cipher list")
    security_level: int | None = Field(
        default=None,
        ge=0,
        le=5,
        description="OpenSSL security level",
    )
    crypto_method: TLSVersion | None = Field(
        default=None,
        description="Minimum TLS version to negotiate",
    )

    @field_validator("crypto_method", mode="before")
    @classmethod
    def normalize_crypto_method(cls, value: Any) -> Any:
        if isinstance(value, str) and not isinstance(value, TLSVersion):
            for version in TLSVersion:
                if value.lower() == version.value.lower():
                    return version
        return value

    def validate_files(self) -> list[str]:
        """Check that the configured certificate files exist.

        Returns:
            List of validation errors, empty if valid.
        """
        errors = [
            f"SSL file not found: {path_attr}"
            for path_attr in (self.cafile, self.local_cert, self.local_pk)
            if path_attr and not Path(path_attr).is_file()
        ]
        if self.capath and not Path(self.capath).is_dir():
            errors.append(f"SSL directory not found: {self.capath}")
        return errors

    def cipher_string(self) -> str | None:
        """Cipher list with the security level appended, if either is set."""
        if self.security_level is None:
            return self.ciphers
        return f"{self.ciphers or 'DEFAULT'}:@SECLEVEL={self.security_level}"

    def create_ssl_context(self) -> ssl.SSLContext:
        """Create a client SSL context from these options.

        Raises:
            ConfigValueError: a configured certificate file does not exist.
        """
        errors = self.validate_files()
        if errors:
            raise ConfigValueError("ssl_options", self, "; ".join(errors))

        context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
        if self.crypto_method is not None:
            context.minimum_version = _MINIMUM_VERSIONS[self.crypto_method]

        # check_hostname must be cleared before verify_mode can be CERT_NONE
        if self.verify_peer:
            context.check_hostname = self.verify_peer_name
            context.verify_mode = ssl.CERT_REQUIRED
        else:
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE

        if self.cafile or self.capath:
            context.load_verify_locations(cafile=self.cafile, capath=self.capath)
        elif self.verify_peer:
            context.load_default_certs(ssl.Purpose.SERVER_AUTH)

        if self.local_cert:
            context.load_cert_chain(
                self.local_cert,
                self.local_pk,
                password=self.passphrase,
            )

        ciphers = self.cipher_string()
        if ciphers:
            context.set_ciphers(ciphers)

        return context
