"""A sink that copies every item to many keyed sinks."""

import logging
from collections.abc import Hashable, Iterable
from typing import Any, Generic, TypeVar

from selium.server.sinks import Sink

__all__ = ["FanoutMany"]

log = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
T = TypeVar("T")


class FanoutMany(Sink[T], Generic[K, T]):
    """Sends each item to every sink it holds.

    A sink that raises while sending, flushing or closing is evicted and
    the others carry on, so the fanout itself never fails. Sinks without a
    ``flush`` or ``close`` method are treated as having nothing to do.
    """

    def __init__(self, entries: Iterable[tuple[K, Any]] | None = None) -> None:
        self._entries: dict[K, Any] = {}
        if entries is not None:
            for key, sink in entries:
                self.insert(key, sink)

    def insert(self, key: K, sink: Any) -> Any | None:
        """Add ``sink`` under ``key``, returning the sink it replaces, if any."""
        previous = self._entries.pop(key, None)
        self._entries[key] = sink
        return previous

    def remove(self, key: K) -> Any | None:
        """Remove and return the sink under ``key``, or None."""
        return self._entries.pop(key, None)

    def extend(self, items: Iterable[tuple[K, Any]]) -> None:
        """Add every ``(key, sink)`` pair from ``items``."""
        self._entries.update(items)

    def _evict(self, key: K, sink: Any) -> None:
        if self._entries.get(key) is sink:
            del self._entries[key]

    async def send(self, item: T) -> None:
        for key, sink in list(self._entries.items()):
            try:
                await sink.send(item)
            except Exception as exc:
                log.error("Evicting broken sink from FanoutMany.send with err: %r", exc)
                self._evict(key, sink)

    async def _call_each(self, name: str) -> None:
        for key, sink in list(self._entries.items()):
            method = getattr(sink, name, None)
            if method is None:
                continue
            try:
                await method()
            except Exception as exc:
                log.debug("Evicting broken sink from FanoutMany.%s with err: %r", name, exc)
                self._evict(key, sink)

    async def flush(self) -> None:
        await self._call_each("flush")

    async def close(self) -> None:
        await self._call_each("close")

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries