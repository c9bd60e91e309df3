"""Tests for server/job/log refreshes and the main loop's failure handling."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

import httpx
import pytest

from jenkins_tui.app import run_event_loop
from jenkins_tui.events import Event, Tick
from jenkins_tui.exceptions import ConfigError, JenkinsRequestError
from jenkins_tui.jenkins_client import JenkinsClient
from jenkins_tui.keys import Key, KeyPress
from jenkins_tui.models import ServerDescriptor
from jenkins_tui.pipeline import FetchPipeline
from jenkins_tui.state import AppState

CONFIG = """\
[job_builder]
ignore_cache=True
keep_descriptions=False

[serverB]
url=https://b.example.com/
user=bob
password=pw-b

[serverA]
url=https://a.example.com/
user=alice
password=pw-a
"""


def _atom(*entries: tuple[str, str, str]) -> str:
    body = "".join(
        f"""
  <entry>
    <title>{title}</title>
    <link rel="alternate" type="text/html" href="{link}"/>
    <id>{link}</id>
    <updated>{updated}</updated>
  </entry>"""
        for title, link, updated in entries
    )
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        '<feed xmlns="http://www.w3.org/2005/Atom"><title>All builds</title>'
        f"{body}\n</feed>\n"
    )


def _write_config(tmp_path: Path, text: str = CONFIG) -> Path:
    path = tmp_path / "jenkins_jobs.ini"
    path.write_text(text, encoding="utf-8")
    return path


def _pipeline(
    tmp_path: Path,
    handler: Callable[[httpx.Request], Any],
    *,
    state: AppState | None = None,
) -> FetchPipeline:
    logger = logging.getLogger("test.pipeline")
    client = JenkinsClient(logger, transport=httpx.MockTransport(handler))
    return FetchPipeline(state or AppState(), _write_config(tmp_path), logger, client=client)


def _unreachable(request: httpx.Request) -> httpx.Response:
    raise AssertionError(f"unexpected request to {request.url}")


def test_refresh_servers_orders_by_name_and_skips_incomplete_sections(tmp_path: Path) -> None:
    pipeline = _pipeline(tmp_path, _unreachable)
    pipeline.refresh_servers()

    assert pipeline.state.server_names() == ["serverA", "serverB"]
    assert pipeline.state.selected_server is None
    assert pipeline.state.status == "Found 2 servers"


def test_refresh_servers_with_missing_file_raises_config_error(tmp_path: Path) -> None:
    logger = logging.getLogger("test.pipeline")
    pipeline = FetchPipeline(AppState(), tmp_path / "absent.ini", logger)
    with pytest.raises(ConfigError):
        pipeline.refresh_servers()


def test_refresh_jobs_fetches_only_selected_server_and_counts_skipped(tmp_path: Path) -> None:
    hosts: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        hosts.append(request.url.host)
        return httpx.Response(
            200,
            text=_atom(
                ("app #7 (stable)", "https://a.example.com/job/app/7/", "2026-02-24T10:00:00Z"),
                ("Some unrelated announcement", "https://a.example.com/x", "2026-02-24T11:00:00Z"),
            ),
        )

    pipeline = _pipeline(tmp_path, handler)
    pipeline.refresh_servers()
    pipeline.state.select_next_server()

    asyncio.run(pipeline.refresh_jobs())

    assert hosts == ["a.example.com"]
    cache = pipeline.state.job_cache["serverA"]
    assert [job.label for job in cache.jobs] == ["app #7"]
    assert cache.selection.selected is None
    assert "serverB" not in pipeline.state.job_cache
    assert "(1 feed entries skipped)" in pipeline.state.status
    assert "pw-a" not in pipeline.state.status


def test_refresh_jobs_without_selection_is_a_no_op(tmp_path: Path) -> None:
    pipeline = _pipeline(tmp_path, _unreachable)
    pipeline.refresh_servers()

    asyncio.run(pipeline.refresh_jobs())

    assert pipeline.state.job_cache == {}
    assert pipeline.state.status == "Found 2 servers"


def _feed_with_two_builds(request: httpx.Request) -> httpx.Response:
    return httpx.Response(
        200,
        text=_atom(
            ("app #1 (broken)", "https://a.example.com/job/app/1/", "2026-02-24T10:00:00Z"),
            ("app #2 (back to normal)", "https://a.example.com/job/app/2/", "2026-02-24T11:00:00Z"),
        ),
    )


def test_refresh_logs_replaces_previous_text(tmp_path: Path) -> None:
    bodies = iter(["first run\n", "second run\n"])

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/rssAll"):
            return _feed_with_two_builds(request)
        return httpx.Response(200, text=next(bodies))

    pipeline = _pipeline(tmp_path, handler)
    pipeline.refresh_servers()
    pipeline.state.select_next_server()

    async def scenario() -> None:
        await pipeline.refresh_jobs()
        pipeline.state.job_cache["serverA"].selection.select_next(2)
        await pipeline.refresh_logs()
        await pipeline.refresh_logs()
        await pipeline.aclose()

    asyncio.run(scenario())

    job = pipeline.state.current_job()
    assert job is not None
    assert job.label == "app #1"
    assert job.logs == "second run\n"
    assert pipeline.state.status == "Fetched logs for app #1"


def test_concurrent_log_fetches_keep_each_record_intact(tmp_path: Path) -> None:
    async def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path.endswith("/rssAll"):
            return _feed_with_two_builds(request)
        # The first build answers last.
        await asyncio.sleep(0.05 if "/app/1/" in path else 0.0)
        return httpx.Response(200, text=f"log for {path}\n")

    pipeline = _pipeline(tmp_path, handler)
    pipeline.refresh_servers()
    pipeline.state.select_next_server()

    async def scenario() -> None:
        await pipeline.refresh_jobs()
        await asyncio.gather(
            pipeline.refresh_logs("serverA", 0),
            pipeline.refresh_logs("serverA", 1),
        )
        await pipeline.aclose()

    asyncio.run(scenario())

    jobs = pipeline.state.job_cache["serverA"].jobs
    assert jobs[0].logs == "log for /job/app/1/consoleText\n"
    assert jobs[1].logs == "log for /job/app/2/consoleText\n"


def test_reload_invalidates_selection_and_closes_retired_clients(tmp_path: Path) -> None:
    pipeline = _pipeline(tmp_path, _feed_with_two_builds)
    pipeline.refresh_servers()
    pipeline.state.select_next_server()
    asyncio.run(pipeline.refresh_jobs())
    old_server = pipeline.state.servers["serverA"]
    assert old_server.has_client

    pipeline.refresh_servers()

    assert pipeline.state.selected_server is None
    assert pipeline.state.job_cache == {}
    assert pipeline.state.servers["serverA"] is not old_server

    asyncio.run(pipeline.aclose())
    assert not old_server.has_client


def test_refresh_jobs_propagates_request_errors_without_touching_state(tmp_path: Path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, text="down for maintenance")

    pipeline = _pipeline(tmp_path, handler)
    pipeline.refresh_servers()
    pipeline.state.select_next_server()

    with pytest.raises(JenkinsRequestError) as exc_info:
        asyncio.run(pipeline.refresh_jobs())

    assert exc_info.value.category == "http"
    assert pipeline.state.job_cache == {}
    assert pipeline.state.status == "Found 2 servers"


def test_builds_fetched_across_a_reload_are_discarded(tmp_path: Path) -> None:
    pipeline: FetchPipeline | None = None

    def handler(request: httpx.Request) -> httpx.Response:
        assert pipeline is not None
        state = pipeline.state
        old = state.servers["serverA"]
        state.servers["serverA"] = ServerDescriptor(
            name="serverA", url=old.url, user=old.user, password="rotated"
        )
        return _feed_with_two_builds(request)

    pipeline = _pipeline(tmp_path, handler)
    pipeline.refresh_servers()
    pipeline.state.select_next_server()

    asyncio.run(pipeline.refresh_jobs())

    assert pipeline.state.job_cache == {}
    assert pipeline.state.status == "Found 2 servers"


class _ScriptedEvents:
    """Stand-in event source replaying a fixed script, then quitting."""

    def __init__(self, state: AppState, *events: Event) -> None:
        self.state = state
        self.pending: list[Event] = list(events)

    async def next(self) -> Event:
        if not self.pending:
            self.state.quit()
            return Tick()
        return self.pending.pop(0)

    def push_event(self, event: Event) -> None:
        self.pending.append(event)


def test_failed_fetch_in_main_loop_sets_status_and_keeps_state(tmp_path: Path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    pipeline = _pipeline(tmp_path, handler)
    pipeline.refresh_servers()
    state = pipeline.state
    statuses: list[str] = []
    events = _ScriptedEvents(state, KeyPress(Key("j")), Tick())

    asyncio.run(
        run_event_loop(
            state,
            pipeline,
            events,  # type: ignore[arg-type]
            lambda current: statuses.append(current.status),
            logging.getLogger("test.pipeline.loop"),
        )
    )

    assert state.selected_server == "serverA"
    assert state.job_cache == {}
    assert any(status.startswith("Job refresh failed:") for status in statuses)
    assert state.status == "Quitting"
    assert state.running is False
