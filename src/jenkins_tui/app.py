"""Main event loop tying the event source, key handling, and fetches together."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

from rich.console import Console
from rich.live import Live

from .config import Settings
from .dashboard import log_viewport_size, render
from .events import EventSource, RefreshJobsForServer, RefreshLogsForJob, Tick
from .exceptions import JenkinsAPIError
from .handler import handle_key_event
from .keys import KeyPress, Resize
from .pipeline import FetchPipeline
from .state import AppState
from .terminal import TerminalInput


def apply_terminal_size(state: AppState, width: int, height: int) -> None:
    state.set_terminal_size(width, height)
    state.log_scroll.set_viewport(*log_viewport_size(width, height))


async def _run_fetch(
    fetch_name: str,
    fetch: Callable[[], Awaitable[None]],
    state: AppState,
    logger: logging.Logger,
) -> None:
    try:
        await fetch()
    except JenkinsAPIError as exc:
        logger.warning("%s failed: %s", fetch_name, exc)
        state.set_status(f"{fetch_name} failed: {exc}")


async def run_event_loop(
    state: AppState,
    pipeline: FetchPipeline,
    events: EventSource,
    draw: Callable[[AppState], None],
    logger: logging.Logger,
) -> None:
    """Draw, wait for an event, handle it; repeat until the state stops running.

    Fetch failures are reported on the status line and leave the state as it
    was. ConfigError from a manual server reload propagates.
    """
    while state.running:
        draw(state)
        event = await events.next()
        if isinstance(event, Tick):
            continue
        if isinstance(event, KeyPress):
            follow_up = handle_key_event(event.key, state, pipeline.refresh_servers)
            if follow_up is not None and state.running:
                events.push_event(follow_up)
        elif isinstance(event, Resize):
            apply_terminal_size(state, event.width, event.height)
        elif isinstance(event, RefreshJobsForServer):
            await _run_fetch("Job refresh", pipeline.refresh_jobs, state, logger)
        elif isinstance(event, RefreshLogsForJob):
            await _run_fetch("Log refresh", pipeline.refresh_logs, state, logger)


async def run_dashboard(
    state: AppState,
    pipeline: FetchPipeline,
    settings: Settings,
    console: Console,
    logger: logging.Logger,
) -> None:
    """Own the terminal for the lifetime of the dashboard."""
    apply_terminal_size(state, console.size.width, console.size.height)
    try:
        async with TerminalInput(logger=logger.getChild("terminal")) as terminal_input:
            async with EventSource(
                settings.tick_rate_seconds,
                terminal_input,
                logger=logger.getChild("events"),
            ) as events:
                with Live(
                    render(state),
                    console=console,
                    screen=True,
                    auto_refresh=False,
                ) as live:
                    await run_event_loop(
                        state,
                        pipeline,
                        events,
                        lambda current: live.update(render(current), refresh=True),
                        logger,
                    )
    finally:
        await pipeline.aclose()
