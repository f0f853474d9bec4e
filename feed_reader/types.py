"""
Core data types for the feed reader.

This module defines the records shared by the cache and its callers:
- Article: A single feed item with normalized text fields
- Feed: A subscription URL together with its content filters
- CacheEntry: The stored articles for one feed and their expiry time
- FeedResult: The outcome of reading one feed, as shown to the user
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable


@dataclass(frozen=True)
class Article:
    """Represents a single article belonging to a feed.

    Attributes:
        title: The article headline
        description: Plain-text summary, already stripped of HTML
        content: Formatted Markdown body of the article
    """
    title: str
    description: str = ""
    content: str = ""


@dataclass(frozen=True)
class Feed:
    """A subscribed feed as seen by the cache.

    Word sets are stored as frozensets; any iterable of strings is accepted.
    Empty sets mean "no restriction".

    Attributes:
        url: The feed URL, used as the cache key
        whitelist_words: Keep only articles mentioning one of these words
        blacklist_words: Drop articles mentioning any of these words
    """
    url: str
    whitelist_words: frozenset[str] = field(default_factory=frozenset)
    blacklist_words: frozenset[str] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        object.__setattr__(self, "whitelist_words", _word_set(self.whitelist_words))
        object.__setattr__(self, "blacklist_words", _word_set(self.blacklist_words))

    @property
    def has_filters(self) -> bool:
        return bool(self.whitelist_words or self.blacklist_words)


@dataclass(frozen=True)
class CacheEntry:
    """Articles fetched for one feed and the moment they go stale.

    Entries are replaced as a whole on refresh, never updated in place.

    Attributes:
        articles: Articles in feed order
        expire: Timezone-aware UTC timestamp after which the entry is stale
    """
    articles: tuple[Article, ...]
    expire: datetime


@dataclass
class FeedResult:
    """Outcome of reading a single feed.

    Either articles is populated (success) or error is set (failure).

    Attributes:
        feed: The feed that was read
        articles: The (possibly filtered) articles
        error: "description - cause" message if the read failed, None otherwise
    """
    feed: Feed
    articles: list[Article] = field(default_factory=list)
    error: str | None = None


def _word_set(words: Iterable[str] | None) -> frozenset[str]:
    if not words:
        return frozenset()
    if isinstance(words, str):
        return frozenset([words])
    return frozenset(word for word in words if word)
