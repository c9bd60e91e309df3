"""Typed models for Jenkins servers and build records."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Any

import httpx
from pydantic import BaseModel, Field, PrivateAttr, field_validator

from .redaction import sanitize_for_logging


class BuildState(str, Enum):
    """Outcome of a build as reported by the feed title."""

    SUCCESS = "success"
    FAILURE = "failure"
    UNKNOWN = "unknown"


class BuildRecord(BaseModel):
    """One historical build extracted from a feed entry."""

    name: str = Field(description="Job name")
    build_number: int = Field(ge=0, description="Job build number")
    state: BuildState
    updated: datetime = Field(description="When the build info was last updated")
    link: str = Field(description="URL of the build page")
    logs: str = Field(default="", description="Console text, empty until hydrated")

    @field_validator("updated")
    @classmethod
    def ensure_offset(cls, value: datetime) -> datetime:
        """Treat naive feed timestamps as UTC so ordering stays total."""
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value

    @property
    def label(self) -> str:
        return f"{self.name} #{self.build_number}"

    def __str__(self) -> str:
        return self.label


class ServerDescriptor(BaseModel):
    """Connection info for one Jenkins server plus its reusable HTTP client."""

    name: str
    url: str
    user: str
    password: str = Field(repr=False)

    _client: httpx.AsyncClient | None = PrivateAttr(default=None)

    def __str__(self) -> str:
        return f"{self.user}:{'x' * len(self.password)}@{self.url}"

    @property
    def has_client(self) -> bool:
        return self._client is not None

    def client(
        self,
        *,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> httpx.AsyncClient:
        """Return the server's HTTP client, creating it on first use."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                auth=httpx.BasicAuth(self.user, self.password),
                timeout=timeout,
                transport=transport,
                headers={"User-Agent": "jenkins-tui"},
            )
        return self._client

    async def aclose(self) -> None:
        """Close the HTTP client if one was created."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def safe_summary(self) -> dict[str, Any]:
        """Return descriptor fields with credentials redacted."""
        return sanitize_for_logging(self.model_dump())
