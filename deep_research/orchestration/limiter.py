"""
Admission gate bounding concurrent LLM and search calls.

One limiter is shared by every invocation of a research session, so the
bound holds across the whole recursion tree rather than per level. Its
capacity is mutable: a task that holds a slot and recurses raises the
capacity by one for the duration of the recursive call, giving its own
children room to run without starving the rest of the tree.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from contextlib import contextmanager
from typing import Any, Awaitable, Callable, Iterator, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ConcurrencyLimiter:
    """
    Counting semaphore with an adjustable limit.

    Waiters are admitted in FIFO order whenever a slot frees up or the
    capacity grows. Lowering the capacity never interrupts running tasks;
    it only delays admission until the active count drops below it.

    Usage:
        limiter = ConcurrencyLimiter(2)
        result = await limiter.schedule(fetch, url)

        with limiter.expanded():
            await recurse()
    """

    def __init__(self, concurrency: int):
        if concurrency < 1:
            raise ValueError("Concurrency must be at least 1")
        self._capacity = concurrency
        self._active = 0
        self._waiters: deque[asyncio.Future] = deque()

    @property
    def capacity(self) -> int:
        """Current number of tasks allowed to run at once."""
        return self._capacity

    @capacity.setter
    def capacity(self, value: int) -> None:
        if value < 1:
            raise ValueError("Concurrency must be at least 1")
        self._capacity = value
        self._wake()

    @property
    def active_count(self) -> int:
        """Number of tasks currently holding a slot."""
        return self._active

    @property
    def pending_count(self) -> int:
        """Number of tasks waiting for a slot."""
        return sum(1 for waiter in self._waiters if not waiter.done())

    def _wake(self) -> None:
        while self._waiters and self._active < self._capacity:
            waiter = self._waiters.popleft()
            if waiter.done():
                continue
            self._active += 1
            waiter.set_result(None)

    async def acquire(self) -> None:
        """Wait for a free slot and take it."""
        if self._active < self._capacity and not self._waiters:
            self._active += 1
            return

        waiter = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        try:
            await waiter
        except asyncio.CancelledError:
            if waiter.done() and not waiter.cancelled():
                # The slot was handed over just before cancellation
                self.release()
            raise

    def release(self) -> None:
        """Give a slot back and admit the next waiter."""
        if self._active <= 0:
            raise RuntimeError("release() called more times than acquire()")
        self._active -= 1
        self._wake()

    async def __aenter__(self) -> ConcurrencyLimiter:
        await self.acquire()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.release()

    async def schedule(
        self,
        fn: Callable[..., Awaitable[T]],
        *args: Any,
        **kwargs: Any,
    ) -> T:
        """
        Run `fn(*args, **kwargs)` once a slot is available.

        The slot is released when the call returns or raises.

        Returns:
            Whatever `fn` returns
        """
        async with self:
            return await fn(*args, **kwargs)

    @contextmanager
    def expanded(self, extra: int = 1) -> Iterator[None]:
        """Raise the capacity by `extra` for the duration of the block."""
        self.capacity = self._capacity + extra
        logger.debug(f"Concurrency raised to {self._capacity}")
        try:
            yield
        finally:
            self.capacity = self._capacity - extra
            logger.debug(f"Concurrency lowered to {self._capacity}")
