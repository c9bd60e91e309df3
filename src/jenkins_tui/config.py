"""Typed settings and Jenkins Job Builder config loading."""

from __future__ import annotations

import configparser
from pathlib import Path
from typing import Any, Literal

from pydantic import Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigError
from .models import ServerDescriptor

DEFAULT_JENKINS_CONFIG_PATH = Path("~/.config/jenkins_jobs/jenkins_jobs.ini").expanduser()
DEFAULT_LOG_FILE = Path("~/.local/state/jenkins_tui/jenkins_tui.log").expanduser()

_REQUIRED_SERVER_KEYS = ("url", "user", "password")


class Settings(BaseSettings):
    """Runtime settings loaded from environment variables and `.env`."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    tick_rate_ms: int = Field(default=250, alias="JENKINS_TUI_TICK_RATE_MS")
    request_timeout_seconds: float | None = Field(
        default=None,
        alias="JENKINS_TUI_REQUEST_TIMEOUT_SECONDS",
    )
    log_file: Path = Field(default=DEFAULT_LOG_FILE, alias="JENKINS_TUI_LOG_FILE")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        alias="JENKINS_TUI_LOG_LEVEL",
    )

    @field_validator("request_timeout_seconds", mode="before")
    @classmethod
    def empty_string_to_none(cls, value: Any) -> Any:
        """Treat an empty env-string timeout as unset."""
        if isinstance(value, str) and value.strip() == "":
            return None
        return value

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().upper()
        return value

    @model_validator(mode="after")
    def validate_ranges(self) -> Settings:
        if self.tick_rate_ms <= 0:
            raise ValueError("JENKINS_TUI_TICK_RATE_MS must be > 0.")
        if self.request_timeout_seconds is not None and self.request_timeout_seconds <= 0:
            raise ValueError("JENKINS_TUI_REQUEST_TIMEOUT_SECONDS must be > 0 when set.")
        self.log_file = self.log_file.expanduser()
        return self

    @property
    def tick_rate_seconds(self) -> float:
        return self.tick_rate_ms / 1000.0

    def safe_summary(self) -> dict[str, Any]:
        """Return a settings summary for the startup log line."""
        return {
            "tick_rate_ms": self.tick_rate_ms,
            "request_timeout_seconds": self.request_timeout_seconds,
            "log_file": str(self.log_file),
            "log_level": self.log_level,
        }


def load_settings() -> Settings:
    """Load and validate settings, raising ConfigError on failure."""
    try:
        return Settings()
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc
    except OSError as exc:
        raise ConfigError(f"Failed reading environment/.env: {exc}") from exc


def read_jenkins_config_file(path: Path | str) -> dict[str, ServerDescriptor]:
    """Read a JJB ini file into server descriptors ordered by section name.

    Sections missing any of ``url``, ``user`` or ``password`` (for example
    ``[job_builder]``) are skipped.
    """
    config_path = Path(path).expanduser()
    parser = configparser.ConfigParser(interpolation=None)
    try:
        with config_path.open(encoding="utf-8") as fh:
            parser.read_file(fh)
    except OSError as exc:
        raise ConfigError(f"Failed reading Jenkins config {config_path}: {exc}") from exc
    except configparser.Error as exc:
        raise ConfigError(f"Malformed Jenkins config {config_path}: {exc}") from exc

    servers: dict[str, ServerDescriptor] = {}
    for section in sorted(parser.sections()):
        values = parser[section]
        if not all(values.get(key) for key in _REQUIRED_SERVER_KEYS):
            continue
        servers[section] = ServerDescriptor(
            name=section,
            url=values["url"],
            user=values["user"],
            password=values["password"],
        )
    return servers
