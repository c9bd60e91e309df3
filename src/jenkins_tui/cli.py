"""CLI entry point: load config, then run the dashboard until the operator quits."""

from __future__ import annotations

import argparse
import asyncio
import sys
from collections.abc import Sequence
from pathlib import Path

from rich.console import Console

from .app import run_dashboard
from .config import DEFAULT_JENKINS_CONFIG_PATH, load_settings
from .exceptions import ConfigError
from .jenkins_client import JenkinsClient
from .log_setup import setup_logger
from .pipeline import FetchPipeline
from .state import AppState


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments."""
    parser = argparse.ArgumentParser(
        description="Browse Jenkins build history and build logs in the terminal.",
    )
    parser.add_argument(
        "-j",
        "--jenkins-config-path",
        type=Path,
        default=DEFAULT_JENKINS_CONFIG_PATH,
        help="Jenkins Job Builder ini file listing servers (default: %(default)s).",
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    """Run the dashboard and return the process exit code."""
    args = parse_args(argv)
    console = Console()

    try:
        settings = load_settings()
    except ConfigError as exc:
        Console(stderr=True).print(f"[red]Configuration failure:[/red] {exc}")
        return 2

    try:
        logger = setup_logger(level=settings.log_level, log_file=settings.log_file)
    except ConfigError as exc:
        Console(stderr=True).print(f"[red]Configuration failure:[/red] {exc}")
        return 2
    logger.info("Starting jenkins-tui with settings %s", settings.safe_summary())

    state = AppState()
    pipeline = FetchPipeline(
        state,
        args.jenkins_config_path,
        logger,
        client=JenkinsClient(logger, timeout_seconds=settings.request_timeout_seconds),
    )
    try:
        pipeline.refresh_servers()
    except ConfigError as exc:
        logger.error("Configuration failure: %s", exc)
        Console(stderr=True).print(f"[red]Configuration failure:[/red] {exc}")
        return 2

    if not sys.stdin.isatty():
        console.print("[yellow]jenkins-tui requires an interactive terminal[/yellow]")
        return 1

    try:
        asyncio.run(run_dashboard(state, pipeline, settings, console, logger))
    except ConfigError as exc:
        logger.error("Server reload failed: %s", exc)
        Console(stderr=True).print(f"[red]Configuration failure:[/red] {exc}")
        return 2
    except Exception as exc:  # pragma: no cover - last-resort exit path
        logger.exception("Unexpected failure: %s", exc)
        Console(stderr=True).print(f"[red]Unexpected failure:[/red] {exc}")
        return 99

    logger.info("Exiting normally")
    return 0


if __name__ == "__main__":
    sys.exit(main())
