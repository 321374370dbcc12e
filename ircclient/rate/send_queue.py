"""FIFO outbound queue drained under flood control."""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import Awaitable, Callable
from typing import Any

from ..logs.logger import logger
from .flood_preventer import FloodPreventer

WriteFn = Callable[[bytes], Awaitable[None]]


class SendQueue:
    """Buffers serialized lines and writes them as the limiter permits.

    ``enqueue`` is synchronous and never drops or reorders a line. The drain
    task is the only writer; a write failure stops it and is reported through
    ``on_error``.
    """

    def __init__(
        self,
        write: WriteFn,
        preventer: FloodPreventer | None = None,
        *,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        on_error: Callable[[BaseException], Any] | None = None,
        label: str | None = None,
    ) -> None:
        self._write = write
        self.preventer = preventer or FloodPreventer()
        self._sleep = sleep
        self._on_error = on_error
        self.label = label
        self._lines: deque[bytes] = deque()
        self._wakeup = asyncio.Event()
        self._idle = asyncio.Event()
        self._idle.set()
        self._task: asyncio.Task[None] | None = None
        self.closed = False

    def __len__(self) -> int:
        return len(self._lines)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self.closed = False
        self._task = asyncio.get_running_loop().create_task(self._drain())

    def enqueue(self, line: bytes) -> None:
        if self.closed:
            logger.log_event(
                "flood",
                "enqueue_after_close",
                level=logging.DEBUG,
                connection=self.label,
                line=line,
            )
            return
        self._lines.append(line)
        self._idle.clear()
        self._wakeup.set()

    async def _drain(self) -> None:
        try:
            while True:
                if not self._lines:
                    self._idle.set()
                    self._wakeup.clear()
                    await self._wakeup.wait()
                    continue
                delay = self.preventer.get_send_delay()
                if delay > 0:
                    logger.log_event(
                        "flood",
                        "throttled",
                        level=logging.DEBUG,
                        connection=self.label,
                        delay=round(delay, 3),
                        pending=len(self._lines),
                    )
                    await self._sleep(delay)
                    continue
                line = self._lines.popleft()
                self.preventer.message_sent()
                await self._write(line)
        except asyncio.CancelledError:
            raise
        except Exception as e:  # noqa: BLE001
            logger.log_event(
                "flood",
                "write_failed",
                level=logging.WARNING,
                connection=self.label,
                error=str(e),
                error_type=type(e).__name__,
            )
            self._lines.clear()
            self._idle.set()
            if self._on_error is not None:
                self._on_error(e)

    async def join(self, timeout: float | None = None) -> bool:
        """Wait until every queued line has been written. False on timeout."""
        try:
            await asyncio.wait_for(self._idle.wait(), timeout=timeout)
        except TimeoutError:
            return False
        return True

    def close(self) -> None:
        """Discard pending lines and cancel the drain task."""
        self.closed = True
        dropped = len(self._lines)
        self._lines.clear()
        self._idle.set()
        if self._task is not None and not self._task.done():
            self._task.cancel()
        if dropped:
            logger.log_event(
                "flood",
                "queue_cleared",
                level=logging.DEBUG,
                connection=self.label,
                dropped=dropped,
            )

    async def wait_closed(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        try:
            await task
        except asyncio.CancelledError:
            pass
