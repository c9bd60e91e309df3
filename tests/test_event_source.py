"""Tests for the tick/input/follow-up event multiplexer."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator

import pytest

from jenkins_tui.events import EventSource, RefreshJobsForServer, RefreshLogsForJob, Tick
from jenkins_tui.exceptions import EventSourceClosed
from jenkins_tui.keys import FocusChange, Key, KeyPress, MouseInput, Paste, Resize, TerminalEvent


async def _stream(*events: TerminalEvent) -> AsyncIterator[TerminalEvent]:
    for event in events:
        yield event


async def _collect_non_ticks(source: EventSource, count: int) -> list[object]:
    collected: list[object] = []
    while len(collected) < count:
        event = await asyncio.wait_for(source.next(), timeout=2.0)
        if not isinstance(event, Tick):
            collected.append(event)
    return collected


def test_ticks_arrive_periodically() -> None:
    async def scenario() -> list[object]:
        async with EventSource(0.01) as source:
            return [await asyncio.wait_for(source.next(), timeout=2.0) for _ in range(3)]

    events = asyncio.run(scenario())
    assert all(isinstance(event, Tick) for event in events)


def test_only_key_presses_and_resizes_are_forwarded_in_order() -> None:
    stream = _stream(
        FocusChange(gained=True),
        KeyPress(Key("j")),
        MouseInput("\x1b[<0;1;1M"),
        Resize(120, 40),
        Paste("pasted"),
        KeyPress(Key("q")),
    )

    async def scenario() -> list[object]:
        async with EventSource(60.0, stream) as source:
            return await _collect_non_ticks(source, 3)

    assert asyncio.run(scenario()) == [
        KeyPress(Key("j")),
        Resize(120, 40),
        KeyPress(Key("q")),
    ]


def test_pushed_events_are_delivered() -> None:
    async def scenario() -> list[object]:
        async with EventSource(60.0) as source:
            source.push_event(RefreshJobsForServer())
            source.push_event(RefreshLogsForJob())
            return await _collect_non_ticks(source, 2)

    assert asyncio.run(scenario()) == [RefreshJobsForServer(), RefreshLogsForJob()]


def test_close_stops_producer_and_releases_pending_read() -> None:
    state = {"finalized": False}

    async def blocking_stream() -> AsyncIterator[TerminalEvent]:
        try:
            await asyncio.Event().wait()
            yield KeyPress(Key("never"))
        finally:
            state["finalized"] = True

    async def scenario() -> EventSource:
        source = EventSource(60.0, blocking_stream())
        source.start()
        await asyncio.wait_for(source.next(), timeout=2.0)
        await asyncio.wait_for(source.close(), timeout=2.0)
        return source

    source = asyncio.run(scenario())
    assert source.closed is True
    assert state["finalized"] is True
    assert source._task is not None and source._task.done()


def test_closed_source_rejects_reads_and_pushes() -> None:
    async def scenario() -> None:
        source = EventSource(60.0)
        source.start()
        await source.close()
        # The first tick may already be buffered; drain it before expecting closure.
        while True:
            try:
                source._queue.get_nowait()
            except asyncio.QueueEmpty:
                break
        with pytest.raises(EventSourceClosed):
            await source.next()
        with pytest.raises(EventSourceClosed):
            source.push_event(RefreshJobsForServer())

    asyncio.run(scenario())


def test_failing_input_stream_surfaces_on_next() -> None:
    async def broken_stream() -> AsyncIterator[TerminalEvent]:
        raise OSError("tty went away")
        yield KeyPress(Key("unreachable"))  # pragma: no cover

    async def scenario() -> None:
        async with EventSource(60.0, broken_stream()) as source:
            with pytest.raises(EventSourceClosed):
                for _ in range(5):
                    await asyncio.wait_for(source.next(), timeout=2.0)

    asyncio.run(scenario())
