"""Rich rendering of the three panes and the status bar."""

from __future__ import annotations

from rich.layout import Layout
from rich.panel import Panel
from rich.text import Text

from .models import BuildState
from .state import PANE_JOBS, PANE_LOGS, PANE_SERVERS, AppState, log_lines

ACCENT_STYLE = "magenta"
HIGHLIGHT_SYMBOL = ">> "
STATUS_HEIGHT = 3
# Jobs take the top fifth of the right column, logs the rest.
JOBS_RATIO = 1
LOGS_RATIO = 4

_STATE_STYLES = {
    BuildState.SUCCESS: "green",
    BuildState.FAILURE: "red",
    BuildState.UNKNOWN: "yellow",
}


def _pane_sizes(width: int, height: int) -> dict[str, tuple[int, int]]:
    main_height = max(0, height - STATUS_HEIGHT)
    servers_width = width // 3
    right_width = width - servers_width
    jobs_height = main_height * JOBS_RATIO // (JOBS_RATIO + LOGS_RATIO)
    return {
        "servers": (servers_width, main_height),
        "jobs": (right_width, jobs_height),
        "logs": (right_width, main_height - jobs_height),
    }


def log_viewport_size(width: int, height: int) -> tuple[int, int]:
    """Inner (border-less) size of the log pane for a terminal size."""
    logs_width, logs_height = _pane_sizes(width, height)["logs"]
    return max(1, logs_width - 2), max(1, logs_height - 2)


def _visible_window(count: int, selected: int | None, rows: int) -> range:
    rows = max(1, rows)
    if count <= rows:
        return range(count)
    start = 0 if selected is None else max(0, min(selected - rows + 1, count - rows))
    return range(start, start + rows)


def _pane(body: Text, *, title: str, active: bool) -> Panel:
    return Panel(
        body,
        title=title,
        title_align="left",
        border_style=ACCENT_STYLE if active else "white",
    )


def _build_servers_panel(state: AppState, inner_rows: int) -> Panel:
    names = state.server_names()
    selected = state.selected_server_index()
    text = Text(no_wrap=True, overflow="ellipsis")
    for i in _visible_window(len(names), selected, inner_rows):
        if i == selected:
            text.append(f"{HIGHLIGHT_SYMBOL}{names[i]}\n", style=ACCENT_STYLE)
        else:
            text.append(f"{' ' * len(HIGHLIGHT_SYMBOL)}{names[i]}\n")
    return _pane(text, title="Server List [1]", active=state.active_pane == PANE_SERVERS)


def _build_jobs_panel(state: AppState, inner_rows: int) -> Panel:
    text = Text(no_wrap=True, overflow="ellipsis")
    current = state.get_current_server_jobs()
    if current is not None:
        cache, _ = current
        selected = cache.selection.selected
        for i in _visible_window(len(cache.jobs), selected, inner_rows):
            job = cache.jobs[i]
            prefix = HIGHLIGHT_SYMBOL if i == selected else " " * len(HIGHLIGHT_SYMBOL)
            text.append(f"{prefix}{job.label}\n", style=_STATE_STYLES[job.state])
    return _pane(text, title="Job List [2]", active=state.active_pane == PANE_JOBS)


def _build_logs_panel(state: AppState) -> Panel:
    text = Text(no_wrap=True, overflow="crop")
    job = state.current_job()
    if job is not None and job.logs:
        scroll = state.log_scroll
        rows = log_lines(job.logs, wrap=state.wrap_logs, width=scroll.page_width)
        visible = rows[scroll.y : scroll.y + scroll.page_size]
        x = 0 if state.wrap_logs else scroll.x
        text.append("\n".join(row[x : x + scroll.page_width] for row in visible))
    return _pane(text, title="Job Logs [3]", active=state.active_pane == PANE_LOGS)


def _build_status_panel(state: AppState) -> Panel:
    status = Text(state.status, no_wrap=True, overflow="ellipsis")
    return Panel(status, title="Status", title_align="left")


def render(state: AppState) -> Layout:
    """Build one frame from a read-only view of the state."""
    width, height = state.terminal_size
    sizes = _pane_sizes(width, height)

    root = Layout(name="root")
    main = Layout(name="main", ratio=1)
    right = Layout(name="right", ratio=2)
    right.split_column(
        Layout(_build_jobs_panel(state, sizes["jobs"][1] - 2), name="jobs", ratio=JOBS_RATIO),
        Layout(_build_logs_panel(state), name="logs", ratio=LOGS_RATIO),
    )
    main.split_row(
        Layout(_build_servers_panel(state, sizes["servers"][1] - 2), name="servers", ratio=1),
        right,
    )
    root.split_column(
        main,
        Layout(_build_status_panel(state), name="status", size=STATUS_HEIGHT),
    )
    return root
