"""
Per-feed article cache.

This module provides the Cache store, which serves previously fetched
articles until they expire and pulls fresh ones otherwise, and CacheIndex,
an optional JSONL log of cache hits, misses and fetch failures used for
debugging.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
import json
import logging
from pathlib import Path
import threading
from typing import Any, Callable

from .errors import FetchError
from .fetcher import fetch_feed_articles
from .filters import filter_articles
from .logging_utils import log_event
from .persistence import load_content, save_content
from .types import Article, CacheEntry, Feed


DEFAULT_CACHE_DURATION = timedelta(hours=24)

Fetcher = Callable[[str], list[Article]]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CacheIndex:
    """Tracks cache operations in a JSONL index file.

    Each cache operation (hit, miss, expired, fetch_failed) is logged as a
    JSON line with timestamp, feed URL and operation details. Write errors
    are logged and otherwise ignored.

    Attributes:
        path: Full path to the index file
        enabled: Whether index writing is enabled
    """

    def __init__(self, path: Path, enabled: bool = True, logger: logging.Logger | None = None):
        self.path = path
        self.enabled = enabled
        self._logger = logger or logging.getLogger("feed_reader.cache.index")
        self._lock = threading.Lock()

    def append(self, payload: dict[str, Any]) -> None:
        """Append an entry to the cache index.

        Adds a timestamp if not present and writes the entry as a JSON line.

        Args:
            payload: Dictionary containing cache operation details including
                     url, kind, article count, error, etc.
        """
        if not self.enabled:
            return
        payload = dict(payload)
        payload.setdefault("timestamp", utcnow().isoformat())
        line = json.dumps(payload, ensure_ascii=True)
        try:
            with self._lock:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                with self.path.open("a", encoding="utf-8") as handle:
                    handle.write(line)
                    handle.write("\n")
        except OSError as exc:
            log_event(
                self._logger,
                "Cache index write failed",
                level=logging.WARNING,
                event="cache_index_failed",
                path=str(self.path),
                error=f"{type(exc).__name__}: {exc}",
            )


class Cache:
    """Keyed store of fetched articles, one entry per feed URL.

    Lookups are safe to issue from several threads at once. The mapping is
    only touched under a lock; network fetches run outside of it so a slow
    feed never blocks lookups of other feeds. Two concurrent refreshes of
    the same feed both fetch and the last one to finish is kept.

    Attributes:
        path: Location of the persisted cache file
        duration: How long a fetched entry stays fresh
        content: Mapping of feed URL to CacheEntry
    """

    def __init__(
        self,
        path: Path | str,
        duration: timedelta = DEFAULT_CACHE_DURATION,
        fetcher: Fetcher | None = None,
        index: CacheIndex | None = None,
        logger: logging.Logger | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.path = Path(path)
        self.duration = duration
        self.content: dict[str, CacheEntry] = {}
        self._fetch = fetcher or fetch_feed_articles
        self._index = index
        self._logger = logger or logging.getLogger("feed_reader.cache")
        self._clock = clock
        self._lock = threading.Lock()

    def load(self) -> None:
        """Restore the cache from its file.

        A missing file leaves the cache empty.

        Raises:
            CacheLoadError: If the file exists but is unreadable or malformed
        """
        content = load_content(self.path)
        with self._lock:
            self.content = content
        log_event(self._logger, "Cache loaded", event="cache_loaded", path=str(self.path), feeds=len(content))

    def save(self) -> None:
        """Write the whole cache to its file.

        Raises:
            CacheSaveError: If the file cannot be written; memory is untouched
        """
        with self._lock:
            save_content(self.path, self.content)
            count = len(self.content)
        log_event(self._logger, "Cache saved", event="cache_saved", path=str(self.path), feeds=count)

    def get_articles(self, feed: Feed, apply_filters: bool = False) -> list[Article]:
        """Return the articles of a feed, fetching them if needed.

        Stored articles are served while their entry has not expired;
        otherwise the feed is fetched and its entry replaced. Filtering only
        affects the returned list, the stored entry always keeps every
        fetched article.

        Args:
            feed: The feed to read
            apply_filters: Whether to apply the feed's whitelist/blacklist

        Returns:
            Articles in feed order, filtered if requested

        Raises:
            FetchError: If a refresh was needed and failed; any previously
                stored entry for the feed is kept
        """
        with self._lock:
            entry = self.content.get(feed.url)

        if entry is not None and entry.expire > self._clock():
            self._record("cache_hit", feed.url, articles=len(entry.articles))
            articles = entry.articles
        else:
            self._record("cache_miss" if entry is None else "cache_expired", feed.url)
            articles = self._refresh(feed.url)

        if apply_filters and feed.has_filters:
            return filter_articles(articles, feed.whitelist_words, feed.blacklist_words)
        return list(articles)

    def downloaded_urls(self) -> list[str]:
        """Return the URLs of all feeds that have cached articles."""
        with self._lock:
            return sorted(self.content)

    def _refresh(self, url: str) -> tuple[Article, ...]:
        try:
            articles = tuple(self._fetch(url))
        except FetchError as exc:
            self._record("fetch_failed", url, level=logging.WARNING, error=str(exc))
            raise
        except Exception as exc:  # noqa: BLE001
            error = FetchError("Failed to fetch the articles", exc)
            self._record("fetch_failed", url, level=logging.WARNING, error=str(error))
            raise error from exc

        entry = CacheEntry(articles=articles, expire=self._clock() + self.duration)
        with self._lock:
            self.content[url] = entry
        return articles

    def _record(self, kind: str, url: str, level: int = logging.DEBUG, **fields: Any) -> None:
        log_event(self._logger, kind.replace("_", " ").capitalize(), level=level, event=kind, url=url, **fields)
        if self._index is not None:
            self._index.append({"kind": kind, "url": url, **fields})
