"""Tests for the per-feed article cache."""

from __future__ import annotations

from datetime import timedelta
import json
import logging
import threading

import pytest

from feed_reader.cache import DEFAULT_CACHE_DURATION, Cache, CacheIndex
from feed_reader.errors import FetchError
from feed_reader.types import Article, CacheEntry, Feed

from conftest import SAMPLE_ARTICLES, FakeFetcher

FEED_URL = "https://primordialsoup.info/feed"


def _cache(tmp_path, fetcher, clock, **kwargs) -> Cache:
    return Cache(tmp_path / "cache.json", fetcher=fetcher, clock=clock, **kwargs)


def test_miss_fetches_once_and_stores_entry(tmp_path, fetcher, clock):
    cache = _cache(tmp_path, fetcher, clock)

    articles = cache.get_articles(Feed(url=FEED_URL))

    assert fetcher.calls == [FEED_URL]
    assert articles == SAMPLE_ARTICLES
    entry = cache.content[FEED_URL]
    assert entry.articles == tuple(SAMPLE_ARTICLES)
    assert entry.expire == clock.now + DEFAULT_CACHE_DURATION


def test_fresh_entry_is_served_without_fetching(tmp_path, fetcher, clock):
    cache = _cache(tmp_path, fetcher, clock)
    stored = (Article(title="Stored"),)
    cache.content[FEED_URL] = CacheEntry(articles=stored, expire=clock.now + timedelta(minutes=1))

    articles = cache.get_articles(Feed(url=FEED_URL))

    assert fetcher.calls == []
    assert articles == list(stored)


def test_expired_entry_is_refreshed(tmp_path, fetcher, clock):
    cache = _cache(tmp_path, fetcher, clock)
    old_expire = clock.now - 2 * DEFAULT_CACHE_DURATION
    cache.content[FEED_URL] = CacheEntry(articles=(Article(title="Old"),), expire=old_expire)

    articles = cache.get_articles(Feed(url=FEED_URL))

    assert fetcher.calls == [FEED_URL]
    assert articles == SAMPLE_ARTICLES
    assert cache.content[FEED_URL].expire > old_expire


def test_entry_expiring_exactly_now_is_stale(tmp_path, fetcher, clock):
    cache = _cache(tmp_path, fetcher, clock)
    cache.content[FEED_URL] = CacheEntry(articles=(), expire=clock.now)

    cache.get_articles(Feed(url=FEED_URL))

    assert fetcher.calls == [FEED_URL]


def test_custom_duration_sets_expiry(tmp_path, fetcher, clock):
    cache = _cache(tmp_path, fetcher, clock, duration=timedelta(minutes=5))

    cache.get_articles(Feed(url=FEED_URL))

    assert cache.content[FEED_URL].expire == clock.now + timedelta(minutes=5)


def test_failed_refresh_keeps_previous_entry(tmp_path, clock):
    fetcher = FakeFetcher(error=FetchError("Failed to fetch the feed", "timeout"))
    cache = _cache(tmp_path, fetcher, clock)
    previous = CacheEntry(articles=(Article(title="Keep me"),), expire=clock.now - timedelta(hours=1))
    cache.content[FEED_URL] = previous

    with pytest.raises(FetchError) as excinfo:
        cache.get_articles(Feed(url=FEED_URL))

    assert str(excinfo.value) == "Failed to fetch the feed - timeout"
    assert cache.content[FEED_URL] is previous


def test_failed_fetch_on_miss_stores_nothing(tmp_path, clock):
    fetcher = FakeFetcher(error=FetchError("Failed to parse the articles"))
    cache = _cache(tmp_path, fetcher, clock)

    with pytest.raises(FetchError):
        cache.get_articles(Feed(url=FEED_URL))

    assert cache.content == {}


def test_unexpected_fetcher_exception_is_wrapped(tmp_path, clock):
    cause = RuntimeError("boom")
    cache = _cache(tmp_path, FakeFetcher(error=cause), clock)

    with pytest.raises(FetchError) as excinfo:
        cache.get_articles(Feed(url=FEED_URL))

    assert excinfo.value.description == "Failed to fetch the articles"
    assert excinfo.value.cause is cause
    assert excinfo.value.__cause__ is cause


def test_filters_do_not_change_stored_articles(tmp_path, fetcher, clock):
    cache = _cache(tmp_path, fetcher, clock)
    feed = Feed(url=FEED_URL, whitelist_words=["Samuel"])

    for _ in range(3):
        filtered = cache.get_articles(feed, apply_filters=True)
        assert [a.title for a in filtered] == ["Samuel joins the team", "Weekly digest"]

    assert cache.content[FEED_URL].articles == tuple(SAMPLE_ARTICLES)
    assert len(fetcher.calls) == 1


def test_whitelist_and_blacklist_results(tmp_path, fetcher, clock):
    cache = _cache(tmp_path, fetcher, clock)
    raw = cache.get_articles(Feed(url=FEED_URL))

    whitelisted = cache.get_articles(Feed(url=FEED_URL, whitelist_words=["samuel"]), apply_filters=True)
    blacklisted = cache.get_articles(Feed(url=FEED_URL, blacklist_words=["Samuel"]), apply_filters=True)

    assert 0 < len(whitelisted) < len(raw)
    assert 0 < len(blacklisted) < len(raw)
    assert not set(whitelisted) & set(blacklisted)


def test_filters_ignored_when_not_requested(tmp_path, fetcher, clock):
    cache = _cache(tmp_path, fetcher, clock)

    articles = cache.get_articles(Feed(url=FEED_URL, blacklist_words=["samuel"]), apply_filters=False)

    assert articles == SAMPLE_ARTICLES


def test_returned_list_does_not_alias_storage(tmp_path, fetcher, clock):
    cache = _cache(tmp_path, fetcher, clock)

    articles = cache.get_articles(Feed(url=FEED_URL))
    articles.clear()

    assert cache.get_articles(Feed(url=FEED_URL)) == SAMPLE_ARTICLES


def test_concurrent_misses_on_distinct_feeds(tmp_path, fetcher, clock):
    cache = _cache(tmp_path, fetcher, clock)
    feeds = [Feed(url=f"https://example.com/{i}.xml") for i in range(16)]
    errors: list[BaseException] = []

    def _read(feed: Feed) -> None:
        try:
            cache.get_articles(feed)
        except BaseException as exc:  # noqa: BLE001
            errors.append(exc)

    threads = [threading.Thread(target=_read, args=(feed,)) for feed in feeds]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=10)

    assert errors == []
    assert len(cache.content) == len(feeds)
    assert sorted(fetcher.calls) == sorted(feed.url for feed in feeds)


def test_slow_fetch_does_not_block_other_feeds(tmp_path, clock):
    release = threading.Event()
    fast_done = threading.Event()

    def fetcher(url: str) -> list[Article]:
        if url.endswith("slow"):
            assert release.wait(timeout=5)
        return [Article(title=url)]

    cache = _cache(tmp_path, fetcher, clock)
    slow = threading.Thread(target=cache.get_articles, args=(Feed(url="https://example.com/slow"),))
    slow.start()

    def _fast() -> None:
        cache.get_articles(Feed(url="https://example.com/fast"))
        fast_done.set()

    fast = threading.Thread(target=_fast)
    fast.start()

    assert fast_done.wait(timeout=5)
    release.set()
    slow.join(timeout=5)
    assert cache.downloaded_urls() == ["https://example.com/fast", "https://example.com/slow"]


def test_cache_index_records_operations(tmp_path, fetcher, clock):
    index = CacheIndex(tmp_path / "index.jsonl")
    cache = _cache(tmp_path, fetcher, clock, index=index)

    cache.get_articles(Feed(url=FEED_URL))
    cache.get_articles(Feed(url=FEED_URL))

    lines = [json.loads(line) for line in index.path.read_text(encoding="utf-8").splitlines()]
    assert [line["kind"] for line in lines] == ["cache_miss", "cache_hit"]
    assert lines[1]["articles"] == len(SAMPLE_ARTICLES)
    assert all("timestamp" in line for line in lines)


def test_disabled_cache_index_writes_nothing(tmp_path):
    index = CacheIndex(tmp_path / "index.jsonl", enabled=False)

    index.append({"kind": "cache_hit", "url": FEED_URL})

    assert not index.path.exists()


def test_unwritable_index_does_not_mask_fetch_error(tmp_path, clock, caplog):
    index_path = tmp_path / "index.jsonl"
    index_path.mkdir()
    fetcher = FakeFetcher(error=FetchError("Failed to fetch the feed", "timeout"))
    index = CacheIndex(index_path, logger=logging.getLogger("test_cache_index"))
    cache = _cache(tmp_path, fetcher, clock, index=index)

    with caplog.at_level(logging.WARNING, logger="test_cache_index"):
        with pytest.raises(FetchError) as excinfo:
            cache.get_articles(Feed(url=FEED_URL))

    assert str(excinfo.value) == "Failed to fetch the feed - timeout"
    assert any(getattr(record, "event", None) == "cache_index_failed" for record in caplog.records)


def test_unwritable_index_still_serves_articles(tmp_path, fetcher, clock):
    index_path = tmp_path / "index.jsonl"
    index_path.mkdir()
    cache = _cache(tmp_path, fetcher, clock, index=CacheIndex(index_path))

    assert cache.get_articles(Feed(url=FEED_URL)) == SAMPLE_ARTICLES
    assert cache.get_articles(Feed(url=FEED_URL)) == SAMPLE_ARTICLES
    assert fetcher.calls == [FEED_URL]
