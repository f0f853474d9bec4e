from __future__ import annotations

from typing import Iterable, Sequence

from .types import Article


def filter_articles(
    articles: Sequence[Article],
    whitelist_words: Iterable[str],
    blacklist_words: Iterable[str],
) -> list[Article]:
    """Apply whitelist and blacklist word filters to a list of articles.

    A word matches an article when it occurs, ignoring case, anywhere in the
    article's title, description or content. With a non-empty whitelist an
    article must match at least one whitelist word; with a non-empty
    blacklist it must match none of the blacklist words. Input order is kept
    and the input sequence is never modified.

    Args:
        articles: Articles in feed order
        whitelist_words: Words of which at least one must be present
        blacklist_words: Words of which none may be present

    Returns:
        A new list with the surviving articles, possibly empty
    """
    whitelist = _normalize(whitelist_words)
    blacklist = _normalize(blacklist_words)

    kept: list[Article] = []
    for article in articles:
        haystack = _searchable_text(article)
        if whitelist and not _contains_any(haystack, whitelist):
            continue
        if blacklist and _contains_any(haystack, blacklist):
            continue
        kept.append(article)
    return kept


def _searchable_text(article: Article) -> str:
    return (article.title + article.description + article.content).lower()


def _contains_any(haystack: str, words: list[str]) -> bool:
    for word in words:
        if word in haystack:
            return True
    return False


def _normalize(words: Iterable[str]) -> list[str]:
    return [word.lower() for word in words if word]
