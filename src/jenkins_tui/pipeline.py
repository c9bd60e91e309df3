"""Fetch operations that refresh servers, build lists, and build logs."""

from __future__ import annotations

import logging
from pathlib import Path

from .config import read_jenkins_config_file
from .feed import BuildFeedParser
from .jenkins_client import JenkinsClient
from .models import ServerDescriptor
from .state import AppState


class FetchPipeline:
    """Single-attempt fetches whose results are written into AppState.

    Every operation replaces what it refreshes wholesale, so repeating one is
    harmless. Network failures surface as JenkinsAPIError and leave the state
    untouched.
    """

    def __init__(
        self,
        state: AppState,
        config_path: Path | str,
        logger: logging.Logger,
        *,
        client: JenkinsClient | None = None,
        feed_parser: BuildFeedParser | None = None,
    ) -> None:
        self.state = state
        self.config_path = Path(config_path)
        self.logger = logger
        self.client = client or JenkinsClient(logger)
        self.feed_parser = feed_parser or BuildFeedParser(logger.getChild("feed"))
        self._retired: list[ServerDescriptor] = []

    def refresh_servers(self) -> None:
        """Re-read the Jenkins config and replace the server set.

        Synchronous: it is a local file read and runs directly from a key
        press. Raises ConfigError when the file cannot be read or parsed.
        """
        self.state.set_status("Reading JJB config file for servers")
        servers = read_jenkins_config_file(self.config_path)
        self._retired.extend(self.state.replace_servers(servers))
        self.logger.info(
            "Loaded %d servers from %s: %s",
            len(servers),
            self.config_path,
            [server.safe_summary() for server in servers.values()],
        )
        self.state.set_status(f"Found {len(servers)} servers")

    async def refresh_jobs(self, server_name: str | None = None) -> None:
        """Fetch the build feed of a server (default: the selected one)."""
        name = server_name if server_name is not None else self.state.selected_server
        if name is None:
            return
        server = self.state.servers.get(name)
        if server is None:
            return

        document = await self.client.fetch_build_feed(server)
        result = self.feed_parser.parse_document(document)
        if self.state.servers.get(name) is not server:
            self.logger.info("Discarding builds for %s: server set was reloaded", name)
            return

        self.state.replace_jobs(name, result.records)
        self.logger.info(
            "Fetched %d builds from %s (%d feed entries skipped)",
            len(result.records),
            name,
            result.dropped,
        )
        status = f"Fetched {len(result.records)} builds from {server}"
        if result.dropped:
            status += f" ({result.dropped} feed entries skipped)"
        self.state.set_status(status)

    async def refresh_logs(
        self,
        server_name: str | None = None,
        job_index: int | None = None,
    ) -> None:
        """Hydrate the console text of one build (default: the selected one)."""
        name = server_name if server_name is not None else self.state.selected_server
        if name is None:
            return
        server = self.state.servers.get(name)
        cache = self.state.job_cache.get(name)
        if server is None or cache is None:
            return
        index = job_index if job_index is not None else cache.selection.selected
        if index is None or not 0 <= index < len(cache.jobs):
            return

        record = cache.jobs[index]
        logs = await self.client.fetch_console_text(server, record)
        record.logs = logs
        if self.state.current_job() is record:
            self.state.log_scroll.reset()
        self.logger.info("Fetched %d bytes of logs for %s", len(logs), record.label)
        self.state.set_status(f"Fetched logs for {record.label}")

    async def aclose(self) -> None:
        """Close every HTTP client created during the session."""
        descriptors = [*self._retired, *self.state.servers.values()]
        self._retired = []
        for server in descriptors:
            await server.aclose()
