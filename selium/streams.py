"""Builders for publisher and subscriber streams, and the streams themselves."""

import copy
from collections.abc import AsyncIterable, Iterable
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Generic, TypeVar

from selium.bistream import BiStream
from selium.codecs import MessageDecoder, MessageEncoder
from selium.durations import to_millis
from selium.protocol import (
    Message,
    Operation,
    PublisherPayload,
    RegisterPublisher,
    RegisterSubscriber,
    SubscriberPayload,
)

__all__ = [
    "RETENTION_POLICY_DEFAULT",
    "StreamCommon",
    "PublisherBuilder",
    "ConfiguredPublisherBuilder",
    "SubscriberBuilder",
    "ConfiguredSubscriberBuilder",
    "Publisher",
    "Subscriber",
]

RETENTION_POLICY_DEFAULT = 0

T = TypeVar("T")


@dataclass
class StreamCommon:
    """Settings shared by every kind of stream."""

    topic: str
    retention_policy: int = RETENTION_POLICY_DEFAULT
    operations: list[Operation] = field(default_factory=list)

    def map(self, module_path: str) -> None:
        self.operations.append(Operation.map(module_path))

    def filter(self, module_path: str) -> None:
        self.operations.append(Operation.filter(module_path))

    def retain(self, policy: int | timedelta) -> None:
        """Set the retention policy in milliseconds."""
        self.retention_policy = to_millis(policy)


@dataclass
class PublisherBuilder:
    """A publisher stream still waiting for its encoder."""

    connection: Any
    common: StreamCommon

    def with_encoder(self, encoder: MessageEncoder[T]) -> "ConfiguredPublisherBuilder":
        return ConfiguredPublisherBuilder(self.connection, self.common, encoder)


@dataclass
class ConfiguredPublisherBuilder:
    """A publisher stream ready to be opened."""

    connection: Any
    common: StreamCommon
    encoder: MessageEncoder

    def retain(self, policy: int | timedelta) -> "ConfiguredPublisherBuilder":
        self.common.retain(policy)
        return self

    def map(self, module_path: str) -> "ConfiguredPublisherBuilder":
        self.common.map(module_path)
        return self

    def filter(self, module_path: str) -> "ConfiguredPublisherBuilder":
        self.common.filter(module_path)
        return self

    async def open(self) -> "Publisher":
        headers = PublisherPayload(
            topic=self.common.topic,
            retention_policy=self.common.retention_policy,
            operations=list(self.common.operations),
        )
        return await Publisher.spawn(self.connection, headers, self.encoder)


@dataclass
class SubscriberBuilder:
    """A subscriber stream still waiting for its decoder."""

    connection: Any
    common: StreamCommon

    def with_decoder(self, decoder: MessageDecoder[T]) -> "ConfiguredSubscriberBuilder":
        return ConfiguredSubscriberBuilder(self.connection, self.common, decoder)


@dataclass
class ConfiguredSubscriberBuilder:
    """A subscriber stream ready to be opened."""

    connection: Any
    common: StreamCommon
    decoder: MessageDecoder

    def retain(self, policy: int | timedelta) -> "ConfiguredSubscriberBuilder":
        self.common.retain(policy)
        return self

    def map(self, module_path: str) -> "ConfiguredSubscriberBuilder":
        self.common.map(module_path)
        return self

    def filter(self, module_path: str) -> "ConfiguredSubscriberBuilder":
        self.common.filter(module_path)
        return self

    async def open(self) -> "Subscriber":
        headers = SubscriberPayload(
            topic=self.common.topic,
            retention_policy=self.common.retention_policy,
            operations=list(self.common.operations),
        )
        return await Subscriber.spawn(self.connection, headers, self.decoder)


class Publisher(Generic[T]):
    """Encodes items and sends them to a topic."""

    def __init__(
        self,
        connection: Any,
        stream: BiStream,
        headers: PublisherPayload,
        encoder: MessageEncoder[T],
    ) -> None:
        self._connection = connection
        self._stream = stream
        self.headers = headers
        self._encoder = encoder

    @classmethod
    async def spawn(
        cls, connection: Any, headers: PublisherPayload, encoder: MessageEncoder[T]
    ) -> "Publisher[T]":
        """Open a stream on ``connection`` and register it as a publisher."""
        stream = await BiStream.open(connection)
        await stream.send(RegisterPublisher(copy.deepcopy(headers)))
        return cls(connection, stream, headers, encoder)

    async def send(self, item: T) -> None:
        await self._stream.send(Message(self._encoder.encode(item)))

    async def send_all(self, items: Iterable[T] | AsyncIterable[T]) -> None:
        if isinstance(items, AsyncIterable):
            async for item in items:
                await self.send(item)
        else:
            for item in items:
                await self.send(item)

    async def duplicate(self) -> "Publisher[T]":
        """Open another publisher on the same connection with the same settings."""
        return await Publisher.spawn(
            self._connection, copy.deepcopy(self.headers), copy.copy(self._encoder)
        )

    async def finish(self) -> None:
        """Flush everything sent and close the stream."""
        await self._stream.finish()
        await self._stream.close()


class Subscriber(Generic[T]):
    """Receives messages from a topic and decodes them."""

    def __init__(self, stream: BiStream, decoder: MessageDecoder[T]) -> None:
        self._stream = stream
        self._decoder = decoder

    @classmethod
    async def spawn(
        cls, connection: Any, headers: SubscriberPayload, decoder: MessageDecoder[T]
    ) -> "Subscriber[T]":
        """Open a stream on ``connection`` and register it as a subscriber."""
        stream = await BiStream.open(connection)
        await stream.send(RegisterSubscriber(headers))
        await stream.finish()
        return cls(stream, decoder)

    async def receive(self) -> T | None:
        """Return the next decoded item, or None when the stream has ended.

        A frame other than a message also ends the stream. Decoding errors
        are raised.
        """
        frame = await self._stream.receive()
        if not isinstance(frame, Message):
            return None
        return self._decoder.decode(frame.data)

    async def close(self) -> None:
        await self._stream.close()

    def __aiter__(self) -> "Subscriber[T]":
        return self

    async def __anext__(self) -> T:
        item = await self.receive()
        if item is None:
            raise StopAsyncIteration
        return item