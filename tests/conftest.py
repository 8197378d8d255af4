"""Configuration for pytest testing framework."""

import typing as t

import pytest
from _pytest.python import Function


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest."""
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line(
        "markers", "integration: mark test as requiring external integration"
    )
    config.addinivalue_line(
        "markers", "external: mark test as requiring external service"
    )


def pytest_runtest_setup(item: Function) -> None:
    """Setup for each test."""
    # Skip integration tests by default unless specifically requested
    if item.get_closest_marker("integration") or item.get_closest_marker("external"):
        if not item.config.getoption("--run-external", default=False):
            pytest.skip(
                "Skipping external integration test. Use --run-external to run."
            )


def pytest_addoption(parser: pytest.Parser) -> None:
    """Add command-line options."""
    parser.addoption(
        "--run-external",
        action="store_true",
        default=False,
        help="Run tests that require a running AMQP broker",
    )


@pytest.fixture
def base_settings() -> dict[str, t.Any]:
    """A complete raw settings map without a URL."""
    return {
        "type": "stream",
        "host": "localhost",
        "port": 5672,
        "user": "guest",
        "password": "guest",
        "vhost": "/",
        "connection_timeout": 3,
        "read_write_timeout": 3,
        "keepalive": False,
        "heartbeat": 0,
        "channel_rpc_timeout": 0.0,
        "is_lazy": False,
        "ssl_options": None,
    }


@pytest.fixture
def ssl_settings(base_settings: dict[str, t.Any]) -> dict[str, t.Any]:
    """Raw settings with every TLS option set."""
    return base_settings | {
        "ssl_options": {
            "cafile": "/etc/ssl/ca.pem",
            "capath": "/etc/ssl/certs",
            "local_cert": "/etc/ssl/client.pem",
            "local_pk": "/etc/ssl/client.key",
            "verify_peer": True,
            "verify_peer_name": False,
            "passphrase": "s3cret",
            "ciphers": "ECDHE+AESGCM",
            "security_level": 2,
            "crypto_method": "TLSv1.2",
        },
    }
