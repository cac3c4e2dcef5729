"""Asynchronous sinks and the adapters that wrap them."""

import inspect
import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import Any, Generic, TypeVar

__all__ = ["Sink", "MapSink", "Filter", "Ordered"]

log = logging.getLogger(__name__)

T = TypeVar("T")
U = TypeVar("U")


async def _resolve(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


class Sink(ABC, Generic[T]):
    """Something items are sent into, then flushed and closed."""

    @abstractmethod
    async def send(self, item: T) -> None:
        """Send one item."""

    async def flush(self) -> None:
        """Make sure everything sent has been delivered."""

    async def close(self) -> None:
        """Flush and stop accepting items."""

    def map(self, f: Callable[[Any], Any]) -> "MapSink":
        """Return a sink that transforms items with ``f`` before sending them here."""
        return MapSink(self, f)

    def filter(self, predicate: Callable[[T], bool | Awaitable[bool]]) -> "Filter[T]":
        """Return a sink that only passes on items accepted by ``predicate``."""
        return Filter(self, predicate)

    def ordered(self, last_sent: int) -> "Ordered[T]":
        """Return a sink that reorders ``(sequence, item)`` pairs before sending."""
        return Ordered(self, last_sent)


class MapSink(Sink[U], Generic[U, T]):
    """Applies a function, plain or async, to every item before sending it on."""

    def __init__(self, sink: Sink[T], f: Callable[[U], T | Awaitable[T]]) -> None:
        self.sink = sink
        self._f = f

    async def send(self, item: U) -> None:
        await self.sink.send(await _resolve(self._f(item)))

    async def flush(self) -> None:
        await self.sink.flush()

    async def close(self) -> None:
        await self.sink.close()


class Filter(Sink[T]):
    """Passes on only the items for which the predicate, plain or async, is true."""

    def __init__(self, sink: Sink[T], predicate: Callable[[T], bool | Awaitable[bool]]) -> None:
        self.sink = sink
        self._predicate = predicate

    async def send(self, item: T) -> None:
        if await _resolve(self._predicate(item)):
            await self.sink.send(item)

    async def flush(self) -> None:
        await self.sink.flush()

    async def close(self) -> None:
        await self.sink.close()


class Ordered(Sink[tuple[int, T]]):
    """Sends ``(sequence, item)`` pairs on in sequence order.

    The next expected item is sent at once. Items older than the last one
    sent go straight through. Any other item is held back until flushing,
    when held items are released for as long as the sequence is unbroken.
    """

    def __init__(self, sink: Sink[T], last_sent: int = 0) -> None:
        self.sink = sink
        self.last_sent = last_sent
        self._cache: dict[int, T] = {}
        log.debug("Ordering messages starting from %d", last_sent)

    @property
    def held(self) -> dict[int, T]:
        """A copy of the items waiting for earlier sequence numbers."""
        return dict(self._cache)

    async def send(self, entry: tuple[int, T]) -> None:
        seq, item = entry
        if seq == self.last_sent + 1:
            self.last_sent = seq
            log.debug("Sending ordered message: %d", seq)
            await self.sink.send(item)
        elif seq < self.last_sent:
            log.debug("Sending sequence %d out of order (last sent=%d)", seq, self.last_sent)
            await self.sink.send(item)
        else:
            log.debug("Caching ordered message: %d - waiting for %d", seq, self.last_sent + 1)
            self._cache[seq] = item

    async def _send_cached(self) -> None:
        while self.last_sent + 1 in self._cache:
            seq = self.last_sent + 1
            log.debug("Sending ordered message from cache: %d", seq)
            await self.sink.send(self._cache.pop(seq))
            self.last_sent = seq

    async def flush(self) -> None:
        await self._send_cached()
        await self.sink.flush()

    async def close(self) -> None:
        await self._send_cached()
        await self.sink.close()

    def __aiter__(self):
        return self.sink.__aiter__()