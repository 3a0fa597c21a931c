"""
Reader/Writer Lock for asyncio

Many readers may hold the lock together; a writer holds it alone.

Waiters are granted strictly in arrival order: a writer waiting behind
active readers blocks every reader that arrives after it, so a steady
stream of balance queries cannot starve mutations.

Releasing never suspends. A task that releases the write lock keeps
running until its next await, which lets callers do follow-up work
(e.g. enter the transaction log's queue) before any other task observes
the new state.
"""

import asyncio
from collections import deque
from contextlib import asynccontextmanager
from typing import AsyncIterator


class ReadWriteLock:
    """FIFO reader/writer lock for tasks on one event loop."""

    def __init__(self):
        self._readers = 0
        self._writer = False
        self._waiters: deque[tuple[bool, asyncio.Future]] = deque()

    @property
    def readers(self) -> int:
        """Number of tasks currently holding the read lock."""
        return self._readers

    @property
    def write_locked(self) -> bool:
        return self._writer

    async def acquire_read(self) -> None:
        if not self._writer and not self._waiters:
            self._readers += 1
            return
        await self._wait(is_write=False)

    async def acquire_write(self) -> None:
        if not self._writer and self._readers == 0 and not self._waiters:
            self._writer = True
            return
        await self._wait(is_write=True)

    def release_read(self) -> None:
        if self._readers <= 0:
            raise RuntimeError("release_read() called without a read lock held")
        self._readers -= 1
        self._wake()

    def release_write(self) -> None:
        if not self._writer:
            raise RuntimeError("release_write() called without the write lock held")
        self._writer = False
        self._wake()

    @asynccontextmanager
    async def read(self) -> AsyncIterator[None]:
        """Hold the read lock for the duration of the block."""
        await self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    @asynccontextmanager
    async def write(self) -> AsyncIterator[None]:
        """Hold the write lock for the duration of the block."""
        await self.acquire_write()
        try:
            yield
        finally:
            self.release_write()

    async def _wait(self, is_write: bool) -> None:
        future = asyncio.get_running_loop().create_future()
        entry = (is_write, future)
        self._waiters.append(entry)
        try:
            await future
        except asyncio.CancelledError:
            if future.done() and not future.cancelled():
                # Granted just before the cancellation landed: hand it back.
                if is_write:
                    self.release_write()
                else:
                    self.release_read()
            else:
                if entry in self._waiters:
                    self._waiters.remove(entry)
                self._wake()
            raise

    def _wake(self) -> None:
        while self._waiters:
            is_write, future = self._waiters[0]
            if future.done():
                self._waiters.popleft()
                continue
            if is_write:
                if self._writer or self._readers:
                    return
                self._waiters.popleft()
                self._writer = True
                future.set_result(None)
                return
            if self._writer:
                return
            self._waiters.popleft()
            self._readers += 1
            future.set_result(None)
