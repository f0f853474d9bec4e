"""
Feed Reader - terminal RSS/Atom reader with a persistent article cache.

This package keeps fetched feed articles in a keyed, expiring cache that
is restored from disk at start-up and written back on exit, so browsing
a feed does not re-download it on every view.

Main entry point is the CLI via `feed-reader read` command.

Example:
    $ feed-reader read -f https://example.com/feed.xml -w python
"""

__all__ = [
    "__version__",
    "Article",
    "Cache",
    "CacheEntry",
    "DEFAULT_CACHE_DURATION",
    "Feed",
    "FetchError",
    "filter_articles",
]
__version__ = "0.1.0"

from .cache import DEFAULT_CACHE_DURATION, Cache
from .errors import FetchError
from .filters import filter_articles
from .types import Article, CacheEntry, Feed
