"""Entry point for connecting to a server and opening streams on it."""

import os
from dataclasses import dataclass, field
from datetime import timedelta

from cryptography import x509

from selium.crypto import load_root_store
from selium.durations import to_millis
from selium.net import Connection, establish_connection
from selium.streams import PublisherBuilder, StreamCommon, SubscriberBuilder

__all__ = [
    "KEEP_ALIVE_DEFAULT",
    "ClientBuilder",
    "ConnectableClientBuilder",
    "Client",
    "client",
]

KEEP_ALIVE_DEFAULT = 5_000
"""The default keep-alive interval for a client connection, in milliseconds."""


@dataclass
class ClientBuilder:
    """A client still waiting for its certificate authority.

    Configure the keep-alive interval here, then call
    :meth:`with_certificate_authority` to get a builder that can connect.
    """

    keep_alive_ms: int = KEEP_ALIVE_DEFAULT

    def keep_alive(self, interval: int | timedelta) -> "ClientBuilder":
        """Override the keep-alive interval, given in milliseconds or as a timedelta.

        Raises ``ValueError`` if the interval is negative or too large.
        """
        self.keep_alive_ms = to_millis(interval)
        return self

    def with_certificate_authority(
        self, ca_path: str | os.PathLike
    ) -> "ConnectableClientBuilder":
        """Load the CA certificates used to authenticate the server.

        Raises :class:`selium.crypto.CertificateError` if the file holds no
        valid certificate, and ``OSError`` if it cannot be read.
        """
        root_store = load_root_store(ca_path)
        return ConnectableClientBuilder(
            keep_alive_ms=self.keep_alive_ms, root_store=root_store
        )


@dataclass
class ConnectableClientBuilder:
    """A fully configured client, ready to connect."""

    keep_alive_ms: int
    root_store: list[x509.Certificate] = field(default_factory=list)

    async def connect(self, addr: str) -> "Client":
        """Connect to the server at ``addr`` (``host:port``).

        Raises ``ValueError`` for a malformed address and ``OSError`` if the
        connection cannot be established.
        """
        connection = await establish_connection(addr, self.root_store, self.keep_alive_ms)
        return Client(connection)


@dataclass
class Client:
    """An authenticated connection from which streams are opened.

    Any number of publishers and subscribers may be opened from one client.
    """

    connection: Connection

    def subscriber(self, topic: str) -> SubscriberBuilder:
        """Start building a subscriber stream on ``topic``."""
        return SubscriberBuilder(self.connection, StreamCommon(topic))

    def publisher(self, topic: str) -> PublisherBuilder:
        """Start building a publisher stream on ``topic``."""
        return PublisherBuilder(self.connection, StreamCommon(topic))

    def close(self) -> None:
        """Close the connection and every stream opened on it."""
        self.connection.close()

    def __enter__(self) -> "Client":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def client() -> ClientBuilder:
    """Return a client builder in its initial state."""
    return ClientBuilder()