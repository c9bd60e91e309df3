"""Authenticated Jenkins HTTP access for build feeds and console logs."""

from __future__ import annotations

import logging

import httpx

from .exceptions import JenkinsRequestError
from .models import BuildRecord, ServerDescriptor
from .redaction import sanitize_text

FEED_PATH = "rssAll"
CONSOLE_TEXT_PATH = "consoleText"


def _with_trailing_slash(url: str) -> str:
    return url if url.endswith("/") else f"{url}/"


def feed_url(server: ServerDescriptor) -> str:
    """URL of the server-wide build feed, kept under any path prefix."""
    return str(httpx.URL(_with_trailing_slash(server.url)).join(FEED_PATH))


def console_text_url(record: BuildRecord) -> str:
    return str(httpx.URL(_with_trailing_slash(record.link)).join(CONSOLE_TEXT_PATH))


class JenkinsClient:
    """Single-attempt GET requests against Jenkins servers with basic auth.

    Each ServerDescriptor owns one lazily created AsyncClient; this class only
    decides the URLs and maps transport/HTTP failures onto JenkinsRequestError.
    """

    def __init__(
        self,
        logger: logging.Logger,
        *,
        timeout_seconds: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.logger = logger
        self.timeout_seconds = timeout_seconds
        self.transport = transport

    async def request_with_auth(self, server: ServerDescriptor, url: str) -> httpx.Response:
        client = server.client(timeout=self.timeout_seconds, transport=self.transport)
        self.logger.debug("GET %s (server=%s)", url, server.name)
        try:
            response = await client.get(url)
        except httpx.HTTPError as exc:
            raise JenkinsRequestError(
                f"Request to {server.name} failed ({type(exc).__name__}): "
                f"{sanitize_text(str(exc))}",
                category="transport",
            ) from exc

        status = response.status_code
        if status in (401, 403):
            raise JenkinsRequestError(
                f"Authentication failed for {server.name} with status {status}. "
                "Verify user and password.",
                category="auth",
                status_code=status,
            )
        if not response.is_success:
            raise JenkinsRequestError(
                f"Jenkins {server.name} returned {status} for {url}: "
                f"{sanitize_text(response.text[:300])}",
                category="http",
                status_code=status,
            )
        return response

    async def fetch_build_feed(self, server: ServerDescriptor) -> str:
        """Return the raw `rssAll` feed document for a server."""
        response = await self.request_with_auth(server, feed_url(server))
        return response.text

    async def fetch_console_text(self, server: ServerDescriptor, record: BuildRecord) -> str:
        """Return the plain-text console log of one build."""
        response = await self.request_with_auth(server, console_text_url(record))
        return response.text
