"""Transport variants of the py-amqp connection.

``StreamConnection`` uses the client's regular transport and supports TLS
through a prepared ``ssl.SSLContext``. ``SocketConnection`` always talks
plain TCP. Both toggle ``SO_KEEPALIVE`` once connected and open
``RPCTimeoutChannel`` channels, which bound each synchronous channel RPC
wait by the configured ``channel_rpc_timeout``.
"""

import socket
from ssl import SSLContext, SSLSocket

import amqp
import typing as t
from amqp.transport import SSLTransport, TCPTransport
from loguru import logger


class ContextSSLTransport(SSLTransport):
    """SSL transport that wraps the socket with a ready-made ``SSLContext``."""

    def __init__(
        self,
        host: str,
        connect_timeout: float | None = None,
        ssl: SSLContext | None = None,
        server_hostname: str | None = None,
        **kwargs: t.Any,
    ) -> None:
        self._context = ssl
        self._server_hostname = server_hostname
        super().__init__(host, connect_timeout=connect_timeout, ssl=None, **kwargs)

    def _wrap_socket(
        self,
        sock: socket.socket,
        context: t.Any = None,
        **sslopts: t.Any,
    ) -> SSLSocket:
        if self._context is None:
            return super()._wrap_socket(sock, context=context, **sslopts)
        return self._context.wrap_socket(
            sock,
            server_hostname=self._server_hostname,
            do_handshake_on_connect=False,
            suppress_ragged_eofs=True,
        )


class RPCTimeoutChannel(amqp.Channel):  # type: ignore[misc]
    """Channel whose synchronous RPC waits default to the connection's timeout."""

    def wait(
        self,
        method: t.Any,
        callback: t.Callable[..., t.Any] | None = None,
        timeout: float | None = None,
        returns_tuple: bool = False,
    ) -> t.Any:
        if timeout is None:
            # 0 means wait forever.
            timeout = getattr(self.connection, "channel_rpc_timeout", 0.0) or None
        return super().wait(
            method, callback=callback, timeout=timeout, returns_tuple=returns_tuple
        )


class _ConnectionBase(amqp.Connection):  # type: ignore[misc]
    Channel = RPCTimeoutChannel

    def __init__(
        self,
        *args: t.Any,
        keepalive: bool = False,
        channel_rpc_timeout: float = 0.0,
        server_hostname: str | None = None,
        **kwargs: t.Any,
    ) -> None:
        super().__init__(*args, **kwargs)
        self.keepalive = keepalive
        self.channel_rpc_timeout = channel_rpc_timeout
        self.server_hostname = server_hostname

    def connect(self, callback: t.Callable[[], t.Any] | None = None) -> t.Any:
        result = super().connect(callback)
        sock = getattr(self.transport, "sock", None)
        if sock is not None:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_KEEPALIVE, int(self.keepalive))
        return result


class StreamConnection(_ConnectionBase):
    """Connection over the client's default stream transport."""

    def Transport(  # noqa: N802
        self,
        host: str,
        connect_timeout: float | None,
        ssl: t.Any = False,
        read_timeout: float | None = None,
        write_timeout: float | None = None,
        socket_settings: dict[int, int] | None = None,
        **kwargs: t.Any,
    ) -> t.Any:
        if isinstance(ssl, SSLContext):
            logger.debug(f"Opening TLS transport to {host}")
            return ContextSSLTransport(
                host,
                connect_timeout=connect_timeout,
                ssl=ssl,
                server_hostname=self.server_hostname,
                read_timeout=read_timeout,
                write_timeout=write_timeout,
                socket_settings=socket_settings,
                **kwargs,
            )
        return super().Transport(
            host,
            connect_timeout,
            ssl=ssl,
            read_timeout=read_timeout,
            write_timeout=write_timeout,
            socket_settings=socket_settings,
            **kwargs,
        )


class SocketConnection(_ConnectionBase):
    """Connection over a plain TCP socket; TLS is not available."""

    def Transport(  # noqa: N802
        self,
        host: str,
        connect_timeout: float | None,
        ssl: t.Any = False,
        read_timeout: float | None = None,
        write_timeout: float | None = None,
        socket_settings: dict[int, int] | None = None,
        **kwargs: t.Any,
    ) -> t.Any:
        return TCPTransport(
            host,
            connect_timeout=connect_timeout,
            read_timeout=read_timeout,
            write_timeout=write_timeout,
            socket_settings=socket_settings,
            **kwargs,
        )
