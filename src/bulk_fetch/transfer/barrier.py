"""
Completion barrier for a fixed set of concurrent units.

A counting barrier: units are registered before they start and each signals
done exactly once. wait() returns when the count drops to zero.
"""

import asyncio
from typing import Any, Coroutine, List, Optional, TypeVar

T = TypeVar("T")


class CompletionBarrier:
    """
    Count-down barrier for asyncio tasks.

    Prefer spawn(), which registers the unit and signals done from the
    task's done callback, so the count always matches the units that ran:

        barrier = CompletionBarrier()
        barrier.spawn(producer())
        for i in range(workers):
            barrier.spawn(worker(i))
        await barrier.wait()

    add()/done() are available for units managed by hand.
    """

    def __init__(self) -> None:
        self._pending = 0
        self._released = asyncio.Event()
        self._released.set()
        self._tasks: List[asyncio.Task] = []

    @property
    def pending(self) -> int:
        return self._pending

    @property
    def tasks(self) -> List[asyncio.Task]:
        return list(self._tasks)

    def add(self, count: int = 1) -> None:
        if count < 0:
            raise ValueError("count must be non-negative")
        if count == 0:
            return
        self._pending += count
        self._released.clear()

    def done(self) -> None:
        """
        Signal that one registered unit finished.

        Raises:
            RuntimeError: If more done() calls than registered units
        """
        if self._pending <= 0:
            raise RuntimeError("CompletionBarrier.done() called more times than add()")
        self._pending -= 1
        if self._pending == 0:
            self._released.set()

    def spawn(
        self, coro: Coroutine[Any, Any, T], name: Optional[str] = None
    ) -> "asyncio.Task[T]":
        """Register one unit and run coro as a task that always signals done."""
        self.add()
        task = asyncio.create_task(coro, name=name)
        # Done callbacks fire on every exit path, including cancel-before-start
        task.add_done_callback(lambda _task: self.done())
        self._tasks.append(task)
        return task

    async def wait(self) -> None:
        """Block until every registered unit has signalled done."""
        await self._released.wait()
