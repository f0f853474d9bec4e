"""Exceptions raised by the article cache and its collaborators."""

from __future__ import annotations


class FeedReaderError(Exception):
    """Base class for all feed reader errors."""


class FetchError(FeedReaderError):
    """A feed could not be retrieved or parsed.

    Attributes:
        description: Human-readable summary of what failed
        cause: The underlying exception or error message, if any
    """

    def __init__(self, description: str, cause: BaseException | str | None = None):
        super().__init__(description)
        self.description = description
        self.cause = cause

    def __str__(self) -> str:
        if self.cause is None:
            return self.description
        return f"{self.description} - {self.cause}"


class CacheLoadError(FeedReaderError):
    """The persisted cache file exists but cannot be read or parsed."""


class CacheSaveError(FeedReaderError):
    """The cache file could not be written."""
