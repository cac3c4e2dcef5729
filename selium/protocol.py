"""Wire protocol shared by the client and the server.

Every frame on the wire is an eight byte big-endian payload length, a one
byte frame type, and the payload itself. Registration payloads are encoded
with :mod:`selium.bincode`; message payloads are raw bytes.
"""

import enum
import struct
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import ClassVar

from selium import bincode

__all__ = [
    "ProtocolError",
    "OperationKind",
    "Operation",
    "PublisherPayload",
    "SubscriberPayload",
    "FrameType",
    "Frame",
    "RegisterPublisher",
    "RegisterSubscriber",
    "Message",
    "MessageCodec",
]

_HEADER = struct.Struct(">QB")


class ProtocolError(Exception):
    """Raised when bytes on the wire do not form a valid frame."""


class OperationKind(enum.IntEnum):
    """Kinds of stream operation, in their wire order."""

    MAP = 0
    FILTER = 1


@dataclass(frozen=True)
class Operation:
    """A processing step applied to a stream, naming a module path."""

    kind: OperationKind
    module_path: str

    @classmethod
    def map(cls, module_path: str) -> "Operation":
        return cls(OperationKind.MAP, module_path)

    @classmethod
    def filter(cls, module_path: str) -> "Operation":
        return cls(OperationKind.FILTER, module_path)


@dataclass
class PublisherPayload:
    """Headers sent when registering a publisher."""

    topic: str
    retention_policy: int = 0
    operations: list[Operation] = field(default_factory=list)


@dataclass
class SubscriberPayload:
    """Headers sent when registering a subscriber."""

    topic: str
    retention_policy: int = 0
    operations: list[Operation] = field(default_factory=list)


class FrameType(enum.IntEnum):
    REGISTER_PUBLISHER = 0x0
    REGISTER_SUBSCRIBER = 0x1
    MESSAGE = 0x2


class Frame(ABC):
    """A single unit of data exchanged over a stream."""

    frame_type: ClassVar[FrameType]

    @abstractmethod
    def payload_bytes(self) -> bytes:
        """Return the encoded payload of this frame."""

    def length(self) -> int:
        """Return the length of the encoded payload in bytes."""
        return len(self.payload_bytes())

    def topic(self) -> str | None:
        """Return the topic named by a registration frame, or None."""
        return None

    @classmethod
    def from_parts(cls, message_type: int, data: bytes) -> "Frame":
        """Build a frame from its type byte and payload bytes."""
        try:
            kind = FrameType(message_type)
        except ValueError:
            raise ProtocolError("Unknown message type") from None

        data = bytes(data)
        if kind is FrameType.MESSAGE:
            return Message(data)
        try:
            if kind is FrameType.REGISTER_PUBLISHER:
                return RegisterPublisher(bincode.deserialize(data, PublisherPayload))
            return RegisterSubscriber(bincode.deserialize(data, SubscriberPayload))
        except ValueError as exc:
            raise ProtocolError(f"Malformed {kind.name.lower()} payload: {exc}") from exc


@dataclass
class RegisterPublisher(Frame):
    payload: PublisherPayload
    frame_type: ClassVar[FrameType] = FrameType.REGISTER_PUBLISHER

    def payload_bytes(self) -> bytes:
        return bincode.serialize(self.payload)

    def topic(self) -> str | None:
        return self.payload.topic


@dataclass
class RegisterSubscriber(Frame):
    payload: SubscriberPayload
    frame_type: ClassVar[FrameType] = FrameType.REGISTER_SUBSCRIBER

    def payload_bytes(self) -> bytes:
        return bincode.serialize(self.payload)

    def topic(self) -> str | None:
        return self.payload.topic


@dataclass
class Message(Frame):
    data: bytes
    frame_type: ClassVar[FrameType] = FrameType.MESSAGE

    def payload_bytes(self) -> bytes:
        return bytes(self.data)


class MessageCodec:
    """Encodes frames to wire bytes and decodes them from a growing buffer."""

    header_size: ClassVar[int] = _HEADER.size

    def encode(self, frame: Frame) -> bytes:
        payload = frame.payload_bytes()
        return _HEADER.pack(len(payload), frame.frame_type) + payload

    def decode(self, buffer: bytearray) -> Frame | None:
        """Take one frame off the front of ``buffer``.

        Returns None, leaving the buffer untouched, while the frame is
        incomplete. The frame's bytes are removed from the buffer before the
        payload is parsed, so a malformed frame is consumed as well.
        """
        if len(buffer) < _HEADER.size:
            return None
        length, message_type = _HEADER.unpack_from(buffer)
        end = _HEADER.size + length
        if len(buffer) < end:
            return None
        data = bytes(buffer[_HEADER.size:end])
        del buffer[:end]
        return Frame.from_parts(message_type, data)