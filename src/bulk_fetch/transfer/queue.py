"""
Work queue shared by one producer and many workers.

Wraps asyncio.Queue with an explicit end-of-input signal, so a consumer can
tell "empty, more is coming" (get() waits) from "empty and done" (get()
returns None).
"""

import asyncio
from typing import Generic, Iterable, Optional, TypeVar

from bulk_fetch.errors import QueueClosedError

T = TypeVar("T")


class _Closed:
    """End-of-input marker. Never handed to consumers."""

    def __repr__(self) -> str:
        return "<closed>"


_CLOSED = _Closed()


class WorkQueue(Generic[T]):
    """
    Single-producer / multi-consumer queue with close semantics.

    Usage:
        queue = WorkQueue()
        producer = asyncio.create_task(queue.enqueue_all(names))
        while (name := await queue.get()) is not None:
            ...

    Args:
        maxsize: Bound on buffered items (0 = unbounded). With a bound,
            put() waits for consumers to make room.
    """

    def __init__(self, maxsize: int = 0):
        # Capacity is tracked separately so the close marker never waits for room
        self._queue: asyncio.Queue = asyncio.Queue()
        self._slots: Optional[asyncio.Semaphore] = (
            asyncio.Semaphore(maxsize) if maxsize > 0 else None
        )
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def put(self, item: T) -> None:
        if self._closed:
            raise QueueClosedError("Cannot put to a closed work queue")
        if self._slots is not None:
            await self._slots.acquire()
            if self._closed:
                self._slots.release()
                raise QueueClosedError("Cannot put to a closed work queue")
        self._queue.put_nowait(item)

    def close(self) -> None:
        """
        Signal end of input. Must be called exactly once, after the last put.

        Raises:
            QueueClosedError: If already closed
        """
        if self._closed:
            raise QueueClosedError("Work queue closed twice")
        self._closed = True
        self._queue.put_nowait(_CLOSED)

    async def get(self) -> Optional[T]:
        """
        Take the next item.

        Returns:
            The next item, or None once the queue is closed and drained
        """
        item = await self._queue.get()
        if item is _CLOSED:
            # Leave the marker for the other consumers
            self._queue.put_nowait(_CLOSED)
            return None
        if self._slots is not None:
            self._slots.release()
        return item

    async def enqueue_all(self, items: Iterable[T]) -> int:
        """
        Push every item in order, then close the queue.

        The queue is closed even if iterating items fails, so consumers never
        wait forever.

        Returns:
            Number of items pushed
        """
        count = 0
        try:
            for item in items:
                await self.put(item)
                count += 1
        finally:
            self.close()
        return count
