"""Address resolution and authenticated connections to a server."""

import asyncio
import contextlib
import socket
import ssl
import weakref
from dataclasses import dataclass

from cryptography import x509
from cryptography.hazmat.primitives import serialization

__all__ = [
    "ClientConfig",
    "Connection",
    "get_socket_addr",
    "configure_client",
    "connect_to_endpoint",
    "establish_connection",
]

ALPN_PROTOCOLS = ["hq-29"]
SERVER_NAME = "localhost"


@dataclass
class ClientConfig:
    """TLS settings and keep-alive interval (milliseconds) for a client."""

    ssl_context: ssl.SSLContext
    keep_alive: int
    server_name: str = SERVER_NAME


def get_socket_addr(host: str) -> tuple[str, int]:
    """Resolve ``host:port`` to the first matching ``(address, port)``."""
    name, sep, port_text = host.rpartition(":")
    if not sep or not name:
        raise ValueError(f"invalid socket address {host!r}")
    name = name.strip("[]")
    try:
        port = int(port_text)
    except ValueError:
        raise ValueError(f"invalid port in socket address {host!r}") from None
    infos = socket.getaddrinfo(name, port, type=socket.SOCK_STREAM)
    if not infos:
        raise OSError("Address not available")
    address = infos[0][4]
    return address[0], address[1]


def configure_client(root_store: list[x509.Certificate], keep_alive: int) -> ClientConfig:
    """Build a client configuration trusting the certificates in ``root_store``."""
    context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
    cadata = "".join(
        cert.public_bytes(serialization.Encoding.PEM).decode("ascii") for cert in root_store
    )
    context.load_verify_locations(cadata=cadata)
    context.set_alpn_protocols(ALPN_PROTOCOLS)
    return ClientConfig(ssl_context=context, keep_alive=keep_alive)


class Connection:
    """An authenticated connection on which bidirectional streams are opened."""

    def __init__(self, config: ClientConfig, addr: tuple[str, int]) -> None:
        self.config = config
        self.remote_address = addr
        self._writers: "weakref.WeakSet[asyncio.StreamWriter]" = weakref.WeakSet()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def open_bi(self) -> tuple[asyncio.StreamReader, asyncio.StreamWriter]:
        """Open a new bidirectional stream to the server."""
        if self._closed:
            raise ConnectionError("connection is closed")
        host, port = self.remote_address
        reader, writer = await asyncio.open_connection(
            host,
            port,
            ssl=self.config.ssl_context,
            server_hostname=self.config.server_name,
        )
        self._enable_keep_alive(writer)
        self._writers.add(writer)
        return reader, writer

    def _enable_keep_alive(self, writer: asyncio.StreamWriter) -> None:
        sock = writer.get_extra_info("socket")
        if sock is None:
            return
        with contextlib.suppress(OSError):
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_KEEPALIVE, 1)
            seconds = max(1, self.config.keep_alive // 1000)
            if hasattr(socket, "TCP_KEEPIDLE"):
                sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_KEEPIDLE, seconds)
            if hasattr(socket, "TCP_KEEPINTVL"):
                sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_KEEPINTVL, seconds)

    def close(self) -> None:
        """Close the connection and every stream opened on it."""
        self._closed = True
        for writer in list(self._writers):
            writer.close()
        self._writers.clear()


async def connect_to_endpoint(config: ClientConfig, addr: tuple[str, int]) -> Connection:
    """Connect to ``addr``, checking that the server's handshake succeeds."""
    connection = Connection(config, addr)
    _, writer = await connection.open_bi()
    writer.close()
    with contextlib.suppress(OSError, ssl.SSLError):
        await writer.wait_closed()
    return connection


async def establish_connection(
    host: str, root_store: list[x509.Certificate], keep_alive: int
) -> Connection:
    """Resolve ``host`` and connect to it, trusting ``root_store``."""
    addr = get_socket_addr(host)
    config = configure_client(root_store, keep_alive)
    return await connect_to_endpoint(config, addr)