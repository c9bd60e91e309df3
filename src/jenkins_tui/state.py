"""Pane, selection, and job-cache state owned by the main loop."""

from __future__ import annotations

from dataclasses import dataclass, field

from .models import BuildRecord, ServerDescriptor

PANE_SERVERS = 1
PANE_JOBS = 2
PANE_LOGS = 3
VALID_PANES = (PANE_SERVERS, PANE_JOBS, PANE_LOGS)

INITIAL_STATUS = "ESC, CTRL+C, or q to exit app"


def step_selection(current: int | None, length: int, step: int) -> int | None:
    """Move a list cursor by ``step`` without wrapping.

    Nothing is selectable in an empty list. From no selection, any move lands
    on the first entry; otherwise the cursor holds at either boundary.
    """
    if length <= 0:
        return None
    if current is None:
        return 0
    return max(0, min(current + step, length - 1))


@dataclass
class ListSelection:
    """Optional selected index into a list."""

    selected: int | None = None

    def select_next(self, length: int) -> None:
        self.selected = step_selection(self.selected, length, 1)

    def select_previous(self, length: int) -> None:
        self.selected = step_selection(self.selected, length, -1)

    def clear(self) -> None:
        self.selected = None


@dataclass
class LogScroll:
    """Scroll offsets of the log pane, bounded by the content passed in."""

    x: int = 0
    y: int = 0
    page_width: int = 80
    page_size: int = 10

    def set_viewport(self, width: int, height: int) -> None:
        self.page_width = max(1, width)
        self.page_size = max(1, height)

    def _max_y(self, content_lines: int) -> int:
        return max(0, content_lines - self.page_size)

    def _max_x(self, content_width: int) -> int:
        return max(0, content_width - self.page_width)

    def scroll_down(self, content_lines: int) -> None:
        self.y = min(self.y + 1, self._max_y(content_lines))

    def scroll_up(self) -> None:
        self.y = max(self.y - 1, 0)

    def page_down(self, content_lines: int) -> None:
        self.y = min(self.y + self.page_size, self._max_y(content_lines))

    def page_up(self) -> None:
        self.y = max(self.y - self.page_size, 0)

    def scroll_right(self, content_width: int) -> None:
        self.x = min(self.x + 1, self._max_x(content_width))

    def scroll_left(self) -> None:
        self.x = max(self.x - 1, 0)

    def reset(self) -> None:
        self.x = 0
        self.y = 0


@dataclass
class JobCache:
    """Cached builds of one server plus the selected build."""

    jobs: list[BuildRecord] = field(default_factory=list)
    selection: ListSelection = field(default_factory=ListSelection)

    @property
    def selected_job(self) -> BuildRecord | None:
        if self.selection.selected is None or self.selection.selected >= len(self.jobs):
            return None
        return self.jobs[self.selection.selected]


@dataclass
class AppState:
    """Authoritative mutable state; only the main loop touches it.

    Job caches and the server selection are keyed by server name, so a
    reload that reorders or shrinks the server set cannot make a cached job
    list point at a different server.
    """

    running: bool = True
    status: str = INITIAL_STATUS
    active_pane: int = PANE_SERVERS

    servers: dict[str, ServerDescriptor] = field(default_factory=dict)
    selected_server: str | None = None
    job_cache: dict[str, JobCache] = field(default_factory=dict)

    log_scroll: LogScroll = field(default_factory=LogScroll)
    wrap_logs: bool = False
    terminal_size: tuple[int, int] = (80, 24)

    def set_status(self, status: str) -> None:
        """Overwrite the status line.

        Only the last write before a frame is rendered is ever seen; earlier
        messages from the same loop turn are replaced, not queued.
        """
        self.status = status

    def set_active_pane(self, pane: int) -> None:
        if pane not in VALID_PANES:
            self.set_status(f"{pane} is an invalid pane number")
            return
        self.set_status(f"Setting active pane to {pane}")
        self.active_pane = pane

    def quit(self) -> None:
        self.set_status("Quitting")
        self.running = False

    def server_names(self) -> list[str]:
        return list(self.servers)

    def selected_server_index(self) -> int | None:
        if self.selected_server is None:
            return None
        try:
            return self.server_names().index(self.selected_server)
        except ValueError:
            return None

    def current_server(self) -> ServerDescriptor | None:
        if self.selected_server is None:
            return None
        return self.servers.get(self.selected_server)

    def _move_server_selection(self, step: int) -> None:
        names = self.server_names()
        index = step_selection(self.selected_server_index(), len(names), step)
        self.selected_server = None if index is None else names[index]

    def select_next_server(self) -> None:
        self._move_server_selection(1)

    def select_previous_server(self) -> None:
        self._move_server_selection(-1)

    def replace_servers(self, servers: dict[str, ServerDescriptor]) -> list[ServerDescriptor]:
        """Swap in a freshly loaded server set.

        Clears the server selection and every job cache. Returns the
        descriptors that were replaced so their clients can be closed.
        """
        retired = list(self.servers.values())
        self.servers = dict(sorted(servers.items()))
        self.selected_server = None
        self.job_cache.clear()
        self.log_scroll.reset()
        return retired

    def replace_jobs(self, server_name: str, jobs: list[BuildRecord]) -> JobCache:
        cache = JobCache(jobs=list(jobs))
        self.job_cache[server_name] = cache
        return cache

    def get_current_server_jobs(self) -> tuple[JobCache, ServerDescriptor] | None:
        """Job cache and descriptor of the selected server, if both exist."""
        server = self.current_server()
        if server is None:
            return None
        cache = self.job_cache.get(server.name)
        if cache is None:
            return None
        return cache, server

    def current_job(self) -> BuildRecord | None:
        current = self.get_current_server_jobs()
        if current is None:
            return None
        return current[0].selected_job

    def set_terminal_size(self, width: int, height: int) -> None:
        self.terminal_size = (width, height)


def log_lines(logs: str, *, wrap: bool, width: int) -> list[str]:
    """Split log text into display rows, folding long lines when wrapping."""
    lines = logs.expandtabs().splitlines()
    if not wrap:
        return lines
    width = max(1, width)
    rows: list[str] = []
    for line in lines:
        if not line:
            rows.append("")
            continue
        rows.extend(line[i : i + width] for i in range(0, len(line), width))
    return rows
