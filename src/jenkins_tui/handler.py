"""Map key presses onto state changes and follow-up events."""

from __future__ import annotations

from collections.abc import Callable

from .events import Event, RefreshJobsForServer, RefreshLogsForJob
from .keys import Key
from .state import PANE_JOBS, PANE_LOGS, PANE_SERVERS, AppState, log_lines

DOWN_KEYS = ("j", "down")
UP_KEYS = ("k", "up")
LEFT_KEYS = ("h", "left")
RIGHT_KEYS = ("l", "right")


def _is_quit(key: Key) -> bool:
    if key.ctrl:
        return key.code == "c"
    return key.code in ("esc", "q")


def handle_key_event(
    key: Key,
    state: AppState,
    reload_servers: Callable[[], None],
) -> Event | None:
    """Apply one key press to the state.

    Returns the event to queue for the next loop turn, if the key calls for a
    fetch. ``reload_servers`` runs inline for `r` in the servers pane.
    """
    if key.alt:
        return None

    if _is_quit(key):
        state.quit()
    elif not key.ctrl and len(key.code) == 1 and key.code in "0123456789":
        state.set_active_pane(int(key.code))

    if key.ctrl:
        return None

    if state.active_pane == PANE_SERVERS:
        return _handle_servers_pane(key, state, reload_servers)
    if state.active_pane == PANE_JOBS:
        return _handle_jobs_pane(key, state)
    if state.active_pane == PANE_LOGS:
        _handle_logs_pane(key, state)
    return None


def _handle_servers_pane(
    key: Key,
    state: AppState,
    reload_servers: Callable[[], None],
) -> Event | None:
    if key.code in DOWN_KEYS:
        state.select_next_server()
        return RefreshJobsForServer()
    if key.code in UP_KEYS:
        state.select_previous_server()
        return RefreshJobsForServer()
    if key.code == "r":
        reload_servers()
    return None


def _handle_jobs_pane(key: Key, state: AppState) -> Event | None:
    current = state.get_current_server_jobs()
    if current is None:
        return None
    cache, _ = current
    if key.code in DOWN_KEYS:
        cache.selection.select_next(len(cache.jobs))
        return RefreshLogsForJob()
    if key.code in UP_KEYS:
        cache.selection.select_previous(len(cache.jobs))
        return RefreshLogsForJob()
    if key.code == "r":
        return RefreshJobsForServer()
    return None


def _handle_logs_pane(key: Key, state: AppState) -> None:
    job = state.current_job()
    if job is None:
        return
    scroll = state.log_scroll
    rows = log_lines(job.logs, wrap=state.wrap_logs, width=scroll.page_width)
    if key.code in DOWN_KEYS:
        scroll.scroll_down(len(rows))
    elif key.code in UP_KEYS:
        scroll.scroll_up()
    elif key.code in LEFT_KEYS:
        scroll.scroll_left()
    elif key.code in RIGHT_KEYS:
        if not state.wrap_logs:
            scroll.scroll_right(max((len(row) for row in rows), default=0))
    elif key.code == "pagedown":
        scroll.page_down(len(rows))
    elif key.code == "pageup":
        scroll.page_up()
    elif key.code == "w":
        state.wrap_logs = not state.wrap_logs
        scroll.reset()
