"""A framed bidirectional stream carrying protocol frames."""

import asyncio
import contextlib
import ssl
from typing import Protocol

from selium.protocol import Frame, MessageCodec, ProtocolError

__all__ = ["BiStream"]

_READ_SIZE = 64 * 1024


class _Opener(Protocol):
    async def open_bi(self) -> tuple[asyncio.StreamReader, asyncio.StreamWriter]: ...


class BiStream:
    """Sends and receives :class:`Frame` values over a reader/writer pair."""

    def __init__(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        codec: MessageCodec | None = None,
    ) -> None:
        self._reader = reader
        self._writer = writer
        self._codec = codec or MessageCodec()
        self._buffer = bytearray()
        self._finished = False

    @classmethod
    async def open(cls, connection: _Opener) -> "BiStream":
        """Open a new stream on ``connection``."""
        reader, writer = await connection.open_bi()
        return cls(reader, writer)

    async def send(self, frame: Frame) -> None:
        """Write ``frame`` and wait until it is flushed."""
        if self._finished:
            raise RuntimeError("cannot send on a finished stream")
        self._writer.write(self._codec.encode(frame))
        await self._writer.drain()

    async def receive(self) -> Frame | None:
        """Return the next frame, or None once the peer has finished sending.

        Raises :class:`ProtocolError` if the stream ends inside a frame.
        """
        while True:
            frame = self._codec.decode(self._buffer)
            if frame is not None:
                return frame
            data = await self._reader.read(_READ_SIZE)
            if not data:
                if self._buffer:
                    raise ProtocolError("bytes remaining on stream")
                return None
            self._buffer += data

    async def finish(self) -> None:
        """Flush and stop sending; the receiving side stays open."""
        if self._finished:
            return
        await self._writer.drain()
        if self._writer.can_write_eof():
            self._writer.write_eof()
        self._finished = True

    async def close(self) -> None:
        """Close both directions of the stream."""
        self._finished = True
        self._writer.close()
        with contextlib.suppress(OSError, ssl.SSLError):
            await self._writer.wait_closed()

    def __aiter__(self) -> "BiStream":
        return self

    async def __anext__(self) -> Frame:
        frame = await self.receive()
        if frame is None:
            raise StopAsyncIteration
        return frame