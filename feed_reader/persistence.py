"""
Whole-file persistence of the article cache.

The cache is stored as a single UTF-8 JSON object keyed by feed URL:

    {
      "https://example.com/feed.xml": {
        "articles": [{"title": "...", "description": "...", "content": "..."}],
        "expire": "2026-10-17T12:00:00.123456+00:00"
      }
    }

Loading and saving always handle the complete mapping in one step.
"""

from __future__ import annotations

from datetime import datetime, timezone
import json
import os
from pathlib import Path
import tempfile
from typing import Any, Mapping

from .errors import CacheLoadError, CacheSaveError
from .types import Article, CacheEntry


def load_content(path: Path) -> dict[str, CacheEntry]:
    """Read the persisted cache mapping from disk.

    Args:
        path: Location of the cache file

    Returns:
        Mapping of feed URL to CacheEntry; empty if the file does not exist

    Raises:
        CacheLoadError: If the file exists but cannot be read or parsed
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except FileNotFoundError:
        return {}
    except (OSError, UnicodeDecodeError, ValueError) as exc:
        raise CacheLoadError(f"Cannot read cache file {path}: {exc}") from exc

    try:
        return _decode_content(raw)
    except (AttributeError, KeyError, TypeError, ValueError) as exc:
        raise CacheLoadError(f"Malformed cache file {path}: {exc}") from exc


def save_content(path: Path, content: Mapping[str, CacheEntry]) -> None:
    """Write the full cache mapping to disk, replacing any previous file.

    The mapping is written to a temporary file next to path and moved over
    it, so a failed write leaves the previous file intact.

    Args:
        path: Location of the cache file
        content: Mapping of feed URL to CacheEntry

    Raises:
        CacheSaveError: If the file cannot be written
    """
    data = _encode_content(content)
    tmp_name: str | None = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
        ) as f:
            tmp_name = f.name
            json.dump(data, f, indent=2, ensure_ascii=False)
        os.replace(tmp_name, path)
        tmp_name = None
    except OSError as exc:
        raise CacheSaveError(f"Cannot write cache file {path}: {exc}") from exc
    finally:
        if tmp_name is not None:
            _remove_quietly(tmp_name)


def _remove_quietly(name: str) -> None:
    try:
        os.remove(name)
    except OSError:
        pass


def _encode_content(content: Mapping[str, CacheEntry]) -> dict[str, Any]:
    return {
        url: {
            "articles": [
                {
                    "title": article.title,
                    "description": article.description,
                    "content": article.content,
                }
                for article in entry.articles
            ],
            "expire": entry.expire.isoformat(),
        }
        for url, entry in content.items()
    }


def _decode_content(raw: Any) -> dict[str, CacheEntry]:
    if not isinstance(raw, dict):
        raise TypeError(f"expected a JSON object, got {type(raw).__name__}")

    content: dict[str, CacheEntry] = {}
    for url, item in raw.items():
        articles = tuple(_decode_article(article) for article in item["articles"])
        content[url] = CacheEntry(articles=articles, expire=_parse_expire(item["expire"]))
    return content


def _decode_article(raw: Mapping[str, Any]) -> Article:
    fields = {name: raw.get(name, "") for name in ("title", "description", "content")}
    for name, value in fields.items():
        if not isinstance(value, str):
            raise TypeError(f"article {name} must be a string")
    return Article(**fields)


def _parse_expire(value: str) -> datetime:
    expire = datetime.fromisoformat(value)
    # Older files may carry naive timestamps; those were written in UTC
    if expire.tzinfo is None:
        expire = expire.replace(tzinfo=timezone.utc)
    return expire
