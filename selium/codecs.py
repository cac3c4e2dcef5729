"""Codecs that turn message items into bytes for the wire and back.

Messages travel as opaque bytes; the server never looks inside them. A
publisher encodes each item with a :class:`MessageEncoder`, and a
subscriber decodes each payload with a :class:`MessageDecoder`. Custom
formats are made by subclassing either or both.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from selium import bincode

__all__ = ["MessageEncoder", "MessageDecoder", "StringCodec", "BincodeCodec"]

T = TypeVar("T")


class MessageEncoder(ABC, Generic[T]):
    """Turns an item into the bytes sent over the wire."""

    @abstractmethod
    def encode(self, item: T) -> bytes:
        """Encode ``item`` into bytes."""


class MessageDecoder(ABC, Generic[T]):
    """Turns bytes received from the wire back into an item."""

    @abstractmethod
    def decode(self, buffer: bytes | bytearray | memoryview) -> T:
        """Decode an item from ``buffer``."""


@dataclass(frozen=True)
class StringCodec(MessageEncoder[str], MessageDecoder[str]):
    """Encodes and decodes UTF-8 text payloads."""

    def encode(self, item: str) -> bytes:
        return item.encode("utf-8")

    def decode(self, buffer: bytes | bytearray | memoryview) -> str:
        """Decode the buffer as UTF-8; invalid input raises UnicodeDecodeError."""
        return bytes(buffer).decode("utf-8")


@dataclass(frozen=True)
class BincodeCodec(MessageEncoder[T], MessageDecoder[T]):
    """Encodes and decodes items in the bincode binary layout.

    ``type_`` names what ``decode`` builds; it is not needed for encoding.
    """

    type_: Any = None

    def encode(self, item: T) -> bytes:
        return bincode.serialize(item)

    def decode(self, buffer: bytes | bytearray | memoryview) -> T:
        if self.type_ is None:
            raise TypeError("BincodeCodec needs a target type to decode")
        return bincode.deserialize(buffer, self.type_)