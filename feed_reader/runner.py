"""
Read orchestration for the feed reader.

This module coordinates one reading session:
1. Open the cache file (a corrupt file is reported, then ignored)
2. Read every requested feed concurrently through the cache
3. Render the results
4. Save the cache back to disk

Each feed read is an independent unit of work, so a slow or failing feed
does not hold up the others.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
import logging
from functools import partial
from pathlib import Path

from rich.console import Console
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
)

from .cache import Cache, CacheIndex
from .config import AppConfig, get_cache_duration, get_cache_path
from .errors import CacheLoadError, CacheSaveError, FetchError
from .fetcher import fetch_feed_articles
from .logging_utils import log_event, setup_logging
from .renderer import render_markdown
from .types import Feed, FeedResult


@dataclass
class ReadStats:
    """Counters for one reading session."""

    total: int = 0
    success: int = 0
    failed: int = 0
    articles: int = 0


def open_cache(cfg: AppConfig, logger: logging.Logger | None = None) -> Cache:
    """Build the cache described by the config and restore it from disk.

    An unreadable cache file is logged and the session starts with an
    empty cache; the file is overwritten on the next save.

    Args:
        cfg: Application configuration
        logger: Logger for events

    Returns:
        A loaded Cache instance
    """
    path = get_cache_path(cfg.cache)
    index = None
    if cfg.cache.write_index:
        index = CacheIndex(path.parent / cfg.cache.index_filename)

    cache = Cache(
        path,
        duration=get_cache_duration(cfg.cache),
        fetcher=partial(fetch_feed_articles, cfg=cfg.fetch),
        index=index,
        logger=logger.getChild("cache") if logger else None,
    )
    try:
        cache.load()
    except CacheLoadError as exc:
        log_event(logger, "Cache load failed, starting empty", level=logging.WARNING, event="cache_load_failed", error=str(exc))
    return cache


def read_feeds(
    feeds: list[Feed],
    cache: Cache,
    apply_filters: bool = True,
    stats: ReadStats | None = None,
    progress: Progress | None = None,
    read_task: int | None = None,
) -> list[FeedResult]:
    """Read all feeds through the cache concurrently.

    Args:
        feeds: Feeds to read
        cache: The article cache
        apply_filters: Whether to apply each feed's word filters
        stats: Optional statistics object to update
        progress: Optional Rich progress bar
        read_task: Task ID for progress updates

    Returns:
        FeedResult objects in the same order as feeds
    """
    return asyncio.run(
        _read_feeds_async(feeds, cache, apply_filters, stats or ReadStats(), progress, read_task)
    )


async def _read_feeds_async(
    feeds: list[Feed],
    cache: Cache,
    apply_filters: bool,
    stats: ReadStats,
    progress: Progress | None = None,
    read_task: int | None = None,
) -> list[FeedResult]:
    stats_lock = asyncio.Lock()

    async def _read_single(feed: Feed) -> FeedResult:
        try:
            articles = await asyncio.to_thread(cache.get_articles, feed, apply_filters)
            result = FeedResult(feed=feed, articles=articles)
        except FetchError as exc:
            result = FeedResult(feed=feed, error=str(exc))

        async with stats_lock:
            stats.total += 1
            if result.error:
                stats.failed += 1
            else:
                stats.success += 1
                stats.articles += len(result.articles)
            if progress and read_task is not None:
                progress.advance(read_task, 1)
        return result

    tasks = [asyncio.create_task(_read_single(feed)) for feed in feeds]
    return await asyncio.gather(*tasks)


def run_read(
    feeds: list[Feed],
    cfg: AppConfig,
    apply_filters: bool = True,
    output_path: Path | None = None,
    show_progress: bool = True,
    console: Console | None = None,
) -> list[FeedResult]:
    """Run a complete reading session.

    Args:
        feeds: Feeds to read
        cfg: Application configuration
        apply_filters: Whether to apply each feed's word filters
        output_path: Optional Markdown file to write the results to
        show_progress: Whether to display a progress bar
        console: Rich console for output (creates default if None)

    Returns:
        FeedResult objects in the same order as feeds
    """
    console = console or Console()
    logger = setup_logging(cfg.logging, get_cache_path(cfg.cache).parent)
    cache = open_cache(cfg, logger)
    stats = ReadStats()

    if show_progress:
        progress = Progress(
            SpinnerColumn(),
            TextColumn("{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            console=console,
            transient=True,
        )
        with progress:
            read_task = progress.add_task("Read feeds", total=len(feeds))
            results = read_feeds(feeds, cache, apply_filters, stats, progress, read_task)
    else:
        results = read_feeds(feeds, cache, apply_filters, stats)

    for result in results:
        if result.error:
            log_event(logger, f"{result.feed.url}: {result.error}", level=logging.WARNING, event="feed_failed", url=result.feed.url)

    text = render_markdown(results, title="Feeds", output_path=output_path)
    if output_path is None:
        console.print(text, markup=False, highlight=False)
    _render_read_stats(stats, console)

    try:
        cache.save()
    except CacheSaveError as exc:
        log_event(logger, "Cache save failed", level=logging.ERROR, event="cache_save_failed", error=str(exc))
    return results


def _render_read_stats(stats: ReadStats, console: Console) -> None:
    """Display read statistics to the console."""
    console.print(
        "[bold]Read summary[/bold]: "
        f"feeds={stats.total}, success={stats.success}, failed={stats.failed}, "
        f"articles={stats.articles}"
    )
