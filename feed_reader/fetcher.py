"""
Feed retrieval and article normalization.

This module is the network side of the cache: it downloads a feed with
httpx, parses it with feedparser and turns every entry into an Article
with a plain-text description and a Markdown body.
"""

from __future__ import annotations

from dataclasses import dataclass
import time
from typing import Any, Mapping

from bs4 import BeautifulSoup
import feedparser
import httpx

from .config import FetchConfig
from .errors import FetchError
from .types import Article


@dataclass
class FetchResult:
    """Result of an HTTP fetch operation.

    Either text will be populated (success) or error will be populated (failure),
    but never both. status_code may be None for network-level failures.

    Attributes:
        url: The URL that was fetched
        status_code: HTTP status code, or None if request failed before getting response
        text: The response body text, or None on error
        error: Error message if fetch failed, None on success
    """
    url: str
    status_code: int | None
    text: str | None
    error: str | None


def fetch_url(
    url: str,
    timeout: float,
    retries: int,
    user_agent: str,
    trust_env: bool,
) -> FetchResult:
    """Fetch a URL using httpx with retry logic.

    Uses a synchronous HTTP client that follows redirects and respects
    system proxy settings when trust_env is enabled.

    Args:
        url: The URL to fetch
        timeout: Request timeout in seconds
        retries: Number of retry attempts after initial failure
        user_agent: User-Agent header string
        trust_env: Whether to respect system proxy settings from environment

    Returns:
        FetchResult with text on success or error message on failure
    """
    headers = {"User-Agent": user_agent}
    last_error: str | None = None

    for attempt in range(retries + 1):
        try:
            with httpx.Client(
                timeout=timeout,
                headers=headers,
                follow_redirects=True,
                trust_env=trust_env,
            ) as client:
                resp = client.get(url)
                return FetchResult(url=url, status_code=resp.status_code, text=resp.text, error=None)
        except Exception as exc:  # noqa: BLE001
            last_error = f"{type(exc).__name__}: {exc}"
            if attempt < retries:
                # Back-off: 0.5s, 1.0s, 1.5s...
                time.sleep(0.5 * (attempt + 1))

    return FetchResult(url=url, status_code=None, text=None, error=last_error)


def fetch_feed_articles(url: str, cfg: FetchConfig | None = None) -> list[Article]:
    """Download and parse a feed into articles.

    Args:
        url: The feed URL
        cfg: Fetch settings; defaults are used when omitted

    Returns:
        Articles in feed order

    Raises:
        FetchError: If the feed cannot be downloaded or parsed
    """
    cfg = cfg or FetchConfig()
    result = fetch_url(
        url,
        timeout=cfg.timeout_seconds,
        retries=cfg.retries,
        user_agent=cfg.user_agent,
        trust_env=cfg.trust_env,
    )
    if result.error:
        raise FetchError("Failed to fetch the feed", result.error)
    if result.status_code is not None and result.status_code >= 400:
        raise FetchError("Failed to fetch the feed", f"HTTP {result.status_code}")
    return parse_feed(result.text or "")


def parse_feed(text: str) -> list[Article]:
    """Parse RSS/Atom text into articles.

    feedparser is lenient, so a document it flags as malformed is only
    rejected when no entries could be recovered from it.

    Raises:
        FetchError: If the document is not a usable feed
    """
    parsed = feedparser.parse(text)
    if parsed.get("bozo") and not parsed.entries:
        raise FetchError("Failed to parse the articles", parsed.get("bozo_exception"))

    return [
        Article(
            title=entry.get("title", ""),
            description=html_to_text(entry.get("summary") or entry.get("description")),
            content=markdownize(entry),
        )
        for entry in parsed.entries
    ]


def html_to_text(html: str | None) -> str:
    """Convert an HTML fragment to plain text.

    Removes script/style tags and blank lines.

    Args:
        html: The HTML content, may be None

    Returns:
        Plain text, or an empty string if there is nothing to show
    """
    if not html:
        return ""
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style", "noscript"]):
        tag.decompose()
    text = soup.get_text(separator="\n")
    return "\n".join([line.strip() for line in text.splitlines() if line.strip()])


def markdownize(entry: Mapping[str, Any]) -> str:
    """Render a feed entry as a Markdown document.

    The body comes from the full entry content when the feed provides it,
    falling back to the summary.

    Args:
        entry: A feedparser entry

    Returns:
        Markdown text with the title, byline, body and link
    """
    parts: list[str] = []

    title = entry.get("title")
    if title:
        parts.append(f"# {title}")

    byline = _byline(entry)
    if byline:
        parts.append(f"*{byline}*")

    body = html_to_text(_entry_body(entry))
    if body:
        parts.append(body)

    link = entry.get("link")
    if link:
        parts.append(f"[Link]({link})")

    return "\n\n".join(parts)


def _entry_body(entry: Mapping[str, Any]) -> str | None:
    contents = entry.get("content") or []
    values = [item.get("value") for item in contents if item.get("value")]
    if values:
        return "\n".join(values)
    return entry.get("summary") or entry.get("description")


def _byline(entry: Mapping[str, Any]) -> str:
    published = entry.get("published") or entry.get("updated")
    author = entry.get("author")
    if published and author:
        return f"{published} by {author}"
    return published or (f"by {author}" if author else "")
