"""Unbuffered producer/consumer handoff for record fragments.

``RecordChannel`` is a rendezvous: ``send()`` returns only once the
consumer has taken the fragment, so at most one fragment is ever in
flight and the consumer's write rate paces the producer's database reads.

The stream ends with exactly one terminal item, either a clean close or
an ``ErrorFragment``, so the consumer can tell "table exhausted" from
"stream failed".

Usage:
    channel = RecordChannel()

    async def produce():
        try:
            await channel.send("INSERT ...;\\n")
        except Exception as e:
            await channel.fail(str(e))
        else:
            await channel.close()

    async for fragment in channel:
        write(fragment)
"""

import asyncio
from dataclasses import dataclass


@dataclass(frozen=True)
class ErrorFragment:
    """Terminal item signalling that the producer failed."""

    reason: str


_CLOSED = object()


class ChannelClosedError(RuntimeError):
    """Raised when sending on a channel that was already closed."""


class RecordChannel:
    """Rendezvous channel between one producer task and one consumer."""

    def __init__(self) -> None:
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=1)
        self._closed = False
        self.error: ErrorFragment | None = None

    async def _handoff(self, item: object) -> None:
        await self._queue.put(item)
        # Wait for the consumer to take it
        await self._queue.join()

    async def send(self, fragment: str) -> None:
        """Hand one fragment to the consumer, blocking until it is taken."""
        if self._closed:
            raise ChannelClosedError("send on closed channel")
        await self._handoff(fragment)

    async def close(self) -> None:
        """End the stream normally."""
        if self._closed:
            return
        self._closed = True
        await self._queue.put(_CLOSED)

    async def fail(self, reason: str) -> None:
        """End the stream with an error fragment."""
        if self._closed:
            return
        self._closed = True
        await self._queue.put(ErrorFragment(reason))

    async def receive(self) -> str | ErrorFragment | None:
        """Take the next item; None once the stream closed normally."""
        item = await self._queue.get()
        self._queue.task_done()
        if item is _CLOSED:
            return None
        return item

    def __aiter__(self) -> "RecordChannel":
        return self

    async def __anext__(self) -> str:
        """Yield fragments; the error fragment is stored on ``self.error``."""
        item = await self.receive()
        if item is None:
            raise StopAsyncIteration
        if isinstance(item, ErrorFragment):
            self.error = item
            raise StopAsyncIteration
        return item
