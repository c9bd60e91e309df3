"""Multiplex timer ticks, terminal input, and follow-up events into one queue."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Any

from .exceptions import EventSourceClosed
from .keys import KeyPress, Resize, TerminalEvent


@dataclass(frozen=True, slots=True)
class Tick:
    pass


@dataclass(frozen=True, slots=True)
class RefreshJobsForServer:
    pass


@dataclass(frozen=True, slots=True)
class RefreshLogsForJob:
    pass


Event = Tick | KeyPress | Resize | RefreshJobsForServer | RefreshLogsForJob


async def _read_next(stream: AsyncIterator[TerminalEvent]) -> TerminalEvent | None:
    """Next input event, or None once the stream is exhausted."""
    try:
        return await anext(stream)
    except StopAsyncIteration:
        return None


class EventSource:
    """Background producer feeding an unbounded queue read by the main loop.

    Each turn the producer races the tick timer, the next terminal input
    event, and the close signal. Only key presses and resizes are forwarded.
    The queue is unbounded, so neither the producer nor push_event ever
    blocks.
    """

    def __init__(
        self,
        tick_rate_seconds: float,
        input_stream: AsyncIterator[TerminalEvent] | None = None,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self.tick_rate_seconds = tick_rate_seconds
        self.input_stream = input_stream
        self.logger = logger or logging.getLogger("jenkins_tui.events")
        self._queue: asyncio.Queue[Event] = asyncio.Queue()
        self._closed = asyncio.Event()
        self._task: asyncio.Task[None] | None = None

    async def __aenter__(self) -> EventSource:
        self.start()
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, exc_tb: Any) -> None:
        await self.close()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self._run(), name="jenkins-tui-events")

    async def next(self) -> Event:
        """Wait for the next event in arrival order."""
        if not self._queue.empty():
            return self._queue.get_nowait()
        if self.closed or self._task is None:
            raise EventSourceClosed("Event source is closed")

        getter = asyncio.create_task(self._queue.get())
        done, _ = await asyncio.wait(
            {getter, self._task}, return_when=asyncio.FIRST_COMPLETED
        )
        if getter in done:
            return getter.result()
        getter.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await getter
        error = self._task.exception()
        if error is not None:
            raise EventSourceClosed(f"Event producer failed: {error}") from error
        raise EventSourceClosed("Event producer stopped")

    def push_event(self, event: Event) -> None:
        """Queue a follow-up event for a later loop turn."""
        if self.closed:
            raise EventSourceClosed("Cannot push events to a closed event source")
        self._queue.put_nowait(event)

    async def close(self) -> None:
        """Signal the producer to stop and wait until it has released its tasks."""
        self._closed.set()
        task = self._task
        if task is None:
            return
        if not task.done():
            with contextlib.suppress(asyncio.CancelledError):
                await task
        elif not task.cancelled() and task.exception() is not None:
            # Already raised to the consumer through next().
            self.logger.debug("Event producer had failed: %r", task.exception())

    def _forward(self, event: TerminalEvent) -> None:
        if isinstance(event, (KeyPress, Resize)):
            self._queue.put_nowait(event)
        else:
            self.logger.debug("Discarding terminal event %r", event)

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        next_tick = loop.time()
        closed_wait = asyncio.create_task(self._closed.wait())
        read: asyncio.Task[TerminalEvent | None] | None = None
        if self.input_stream is not None:
            read = asyncio.create_task(_read_next(self.input_stream))
        timer: asyncio.Task[None] | None = None
        try:
            while True:
                timer = asyncio.create_task(asyncio.sleep(max(0.0, next_tick - loop.time())))
                waiting: set[asyncio.Task[Any]] = {closed_wait, timer}
                if read is not None:
                    waiting.add(read)
                done, _ = await asyncio.wait(waiting, return_when=asyncio.FIRST_COMPLETED)

                if closed_wait in done:
                    break
                if timer in done:
                    self._queue.put_nowait(Tick())
                    # Missed ticks are skipped rather than delivered in a burst.
                    next_tick = max(next_tick + self.tick_rate_seconds, loop.time())
                else:
                    timer.cancel()
                if read is not None and read in done:
                    event = read.result()
                    if event is None:
                        self.logger.debug("Terminal input stream ended")
                        read = None
                    else:
                        self._forward(event)
                        read = asyncio.create_task(_read_next(self.input_stream))
        finally:
            for task in (timer, read, closed_wait):
                if task is not None and not task.done():
                    task.cancel()
                    with contextlib.suppress(asyncio.CancelledError):
                        await task
