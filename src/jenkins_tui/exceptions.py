"""Application exception classes."""


class ConfigError(Exception):
    """Raised when configuration is invalid, unreadable, or incomplete."""


class JenkinsAPIError(Exception):
    """Raised when Jenkins requests fail or return undecodable data."""


class JenkinsRequestError(JenkinsAPIError):
    """Raised for Jenkins request failures with category/status metadata."""

    def __init__(
        self,
        message: str,
        *,
        category: str = "unknown",
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.category = category
        self.status_code = status_code


class FeedEntryError(Exception):
    """Raised when a feed entry does not describe a build."""


class EventSourceClosed(Exception):
    """Raised when reading from or pushing to a closed event source."""
