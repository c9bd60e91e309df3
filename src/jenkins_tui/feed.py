"""Extract build records from Jenkins `rssAll` feed documents."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from operator import attrgetter
from typing import Any

import feedparser
from dateutil import parser as date_parser

from .exceptions import FeedEntryError, JenkinsRequestError
from .models import BuildRecord, BuildState

# Only the status word is case-insensitive; job names keep their case.
BUILD_TITLE_RE = re.compile(
    r"(?P<name>.*) #(?P<build_number>\d+) "
    r"\((?P<build_state>(?i:stable|broken|back to normal))"
)

_STATE_BY_PHRASE = {
    "stable": BuildState.SUCCESS,
    "back to normal": BuildState.SUCCESS,
    "broken": BuildState.FAILURE,
}


@dataclass
class FeedParseResult:
    """Build records extracted from one feed, oldest first."""

    records: list[BuildRecord] = field(default_factory=list)
    dropped: int = 0


def build_state_from_phrase(phrase: str) -> BuildState:
    return _STATE_BY_PHRASE.get(phrase.lower(), BuildState.UNKNOWN)


def build_record_from_entry(
    title: str,
    link: str | None,
    updated: datetime | str | None,
) -> BuildRecord:
    """Turn one entry's title/link/updated into a BuildRecord.

    Raises FeedEntryError when the entry does not describe a finished build.
    """
    match = BUILD_TITLE_RE.match(title or "")
    if match is None:
        raise FeedEntryError(f"Entry title does not describe a build: {title!r}")
    state = build_state_from_phrase(match.group("build_state"))
    if state is BuildState.UNKNOWN:
        raise FeedEntryError(f"Unrecognized build status in title: {title!r}")
    if not link:
        raise FeedEntryError(f"Entry has no link: {title!r}")
    if updated is None or updated == "":
        raise FeedEntryError(f"Entry has no updated timestamp: {title!r}")
    if isinstance(updated, str):
        try:
            updated = date_parser.parse(updated)
        except (ValueError, OverflowError) as exc:
            raise FeedEntryError(f"Unparseable updated timestamp {updated!r}") from exc
    return BuildRecord(
        name=match.group("name"),
        build_number=int(match.group("build_number")),
        state=state,
        updated=updated,
        link=link,
    )


def parse_entry(
    title: str,
    link: str | None,
    updated: datetime | str | None,
) -> BuildRecord | None:
    """Like build_record_from_entry, but returns None for non-build entries."""
    try:
        return build_record_from_entry(title, link, updated)
    except FeedEntryError:
        return None


class BuildFeedParser:
    """Parse feed documents into ordered build records."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self.logger = logger or logging.getLogger("jenkins_tui.feed")

    def parse_document(self, document: str) -> FeedParseResult:
        """Decode a feed document and extract its build records."""
        # Bytes keep feedparser from treating the text as a URL or file path.
        parsed = feedparser.parse(document.encode("utf-8"))
        if parsed.bozo and not parsed.entries:
            raise JenkinsRequestError(
                f"Response is not a feed document: {parsed.get('bozo_exception')}",
                category="decode",
            )
        return self.parse_entries(parsed.entries)

    def parse_entries(self, entries: Iterable[Mapping[str, Any]]) -> FeedParseResult:
        result = FeedParseResult()
        for entry in entries:
            try:
                record = build_record_from_entry(
                    entry.get("title", ""),
                    entry.get("link"),
                    entry.get("updated"),
                )
            except FeedEntryError as exc:
                result.dropped += 1
                self.logger.debug("Skipping feed entry: %s", exc)
                continue
            result.records.append(record)
        result.records.sort(key=attrgetter("updated"))
        return result
