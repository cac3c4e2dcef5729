"""A topic: forwards every message from its publishers to all its subscribers."""

import asyncio
import enum
import logging
from dataclasses import dataclass
from typing import Any

from selium.server.fanout import FanoutMany

__all__ = ["SOCK_CHANNEL_SIZE", "SocketKind", "Socket", "Topic"]

log = logging.getLogger(__name__)

SOCK_CHANNEL_SIZE = 100

_CLOSED = object()
_END = object()


class SocketKind(enum.Enum):
    STREAM = "stream"
    SINK = "sink"


@dataclass(frozen=True)
class Socket:
    """A publisher stream or a subscriber sink handed to a topic."""

    kind: SocketKind
    value: Any

    @classmethod
    def stream(cls, value: Any) -> "Socket":
        return cls(SocketKind.STREAM, value)

    @classmethod
    def sink(cls, value: Any) -> "Socket":
        return cls(SocketKind.SINK, value)


class _SocketSender:
    """The handle through which sockets are added to a running topic."""

    def __init__(self, queue: asyncio.Queue) -> None:
        self._queue = queue
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def send(self, socket: Socket) -> None:
        if self._closed:
            raise RuntimeError("topic is closed")
        await self._queue.put(socket)

    async def close(self) -> None:
        """Stop the topic once it reaches this point in its queue."""
        if not self._closed:
            self._closed = True
            await self._queue.put(_CLOSED)


async def _next_item(stream: Any) -> Any:
    try:
        return await stream.__anext__()
    except StopAsyncIteration:
        return _END


class Topic:
    """Reads items from every publisher stream and fans them out to every sink."""

    def __init__(self, queue: asyncio.Queue) -> None:
        self._queue = queue
        self._sink: FanoutMany = FanoutMany()
        self._next_stream_id = 0
        self._next_sink_id = 0

    @classmethod
    def pair(cls) -> tuple["Topic", _SocketSender]:
        """Return a new topic and the sender used to feed it sockets."""
        queue: asyncio.Queue = asyncio.Queue(SOCK_CHANNEL_SIZE)
        return cls(queue), _SocketSender(queue)

    def _schedule(self, reads: dict, key: int, stream: Any) -> None:
        reads[asyncio.ensure_future(_next_item(stream))] = (key, stream)

    async def run(self) -> None:
        """Forward items until the sender is closed."""
        reads: dict[asyncio.Future, tuple[int, Any]] = {}
        get_task: asyncio.Future | None = None
        try:
            while True:
                if get_task is None:
                    get_task = asyncio.ensure_future(self._queue.get())
                done, _ = await asyncio.wait(
                    {get_task, *reads}, return_when=asyncio.FIRST_COMPLETED
                )
                if get_task in done:
                    sock = get_task.result()
                    get_task = None
                    if sock is _CLOSED:
                        return
                    if sock.kind is SocketKind.STREAM:
                        self._schedule(reads, self._next_stream_id, aiter(sock.value))
                        self._next_stream_id += 1
                    else:
                        self._sink.insert(self._next_sink_id, sock.value)
                        self._next_sink_id += 1

                delivered = False
                for task in done:
                    entry = reads.pop(task, None)
                    if entry is None:
                        continue
                    key, stream = entry
                    try:
                        item = task.result()
                    except Exception as exc:
                        log.error("Received invalid message from stream: %r", exc)
                    else:
                        if item is _END:
                            continue
                        await self._sink.send(item)
                        delivered = True
                    self._schedule(reads, key, stream)
                if delivered:
                    await self._sink.flush()
        finally:
            pending = list(reads)
            if get_task is not None:
                pending.append(get_task)
            for task in pending:
                task.cancel()