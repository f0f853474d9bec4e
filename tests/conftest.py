from __future__ import annotations

from datetime import datetime, timezone

import pytest

from feed_reader.types import Article


SAMPLE_ARTICLES = [
    Article(title="Samuel joins the team", description="A new hire", content="# Samuel joins"),
    Article(title="Release notes", description="Version 2.0 is out", content="Bug fixes"),
    Article(title="Weekly digest", description="Links of the week", content="Mentions SAMUEL once"),
    Article(title="Conference recap", description="Talks and slides", content="Nothing else"),
]


class FakeFetcher:
    """Fetcher stand-in that counts calls per URL."""

    def __init__(self, articles=None, error=None):
        self.articles = list(articles if articles is not None else SAMPLE_ARTICLES)
        self.error = error
        self.calls: list[str] = []

    def __call__(self, url: str) -> list[Article]:
        self.calls.append(url)
        if self.error is not None:
            raise self.error
        return list(self.articles)


class FakeClock:
    def __init__(self, now: datetime | None = None):
        self.now = now or datetime(2026, 10, 17, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
