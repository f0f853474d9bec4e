"""
Command-line interface for the feed reader.

Uses Typer to provide a CLI with options for the main configuration
settings. Configuration is read from an optional YAML file and then
overridden by command-line options.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .cache import Cache, utcnow
from .config import AppConfig, get_cache_path, load_config
from .errors import CacheLoadError
from .runner import run_read
from .types import Feed

app = typer.Typer(add_completion=False)
console = Console()


def _load_config(config: Path | None, cache_path: Path | None) -> AppConfig:
    cfg = load_config(str(config) if config else None)
    if cache_path is not None:
        cfg.cache.path = str(cache_path)
    return cfg


@app.command()
def read(
    feed: list[str] = typer.Option(..., "--feed", "-f", help="Feed URL, may be repeated."),
    whitelist: list[str] = typer.Option([], "--whitelist", "-w", help="Keep only articles with this word."),
    blacklist: list[str] = typer.Option([], "--blacklist", "-b", help="Drop articles with this word."),
    filters: bool = typer.Option(True, "--filters/--no-filters", help="Apply word filters."),
    config: Path | None = typer.Option(None, "--config", "-c", exists=True, readable=True),
    cache_path: Path | None = typer.Option(None, "--cache-path", help="Cache file location."),
    cache_hours: float | None = typer.Option(None, "--cache-hours", help="Hours before cached articles go stale."),
    output: Path | None = typer.Option(None, "--output", "-o", help="Write Markdown to this file."),
    progress: bool = typer.Option(True, "--progress/--no-progress"),
    log_level: str | None = typer.Option(None, "--log-level", help="Logging level."),
):
    """Read one or more feeds, serving cached articles while they are fresh.

    Args:
        feed: Feed URLs to read
        whitelist: Words of which an article must contain at least one
        blacklist: Words an article must not contain
        filters: Whether to apply the word filters
        config: Optional path to YAML config file
        cache_path: Override the cache file location
        cache_hours: Override the cache duration
        output: Optional Markdown output file
        progress: Whether to show progress bar
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    cfg = _load_config(config, cache_path)
    if cache_hours is not None:
        cfg.cache.duration_hours = cache_hours
    if log_level:
        cfg.logging.level = log_level

    feeds = [Feed(url=url, whitelist_words=whitelist, blacklist_words=blacklist) for url in feed]
    results = run_read(feeds, cfg, apply_filters=filters, output_path=output, show_progress=progress, console=console)
    if output is not None:
        console.print(f"Articles written: {output}")
    if results and all(result.error for result in results):
        raise typer.Exit(code=1)


@app.command("cache")
def show_cache(
    config: Path | None = typer.Option(None, "--config", "-c", exists=True, readable=True),
    cache_path: Path | None = typer.Option(None, "--cache-path", help="Cache file location."),
):
    """List the feeds stored in the cache and whether they are still fresh."""
    cfg = _load_config(config, cache_path)
    cache = Cache(get_cache_path(cfg.cache))
    try:
        cache.load()
    except CacheLoadError as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(code=1)

    now = utcnow()
    table = Table(title=f"Cache: {cache.path}")
    table.add_column("Feed")
    table.add_column("Articles", justify="right")
    table.add_column("Expires")
    table.add_column("Status")
    for url in cache.downloaded_urls():
        entry = cache.content[url]
        status = "fresh" if entry.expire > now else "stale"
        table.add_row(url, str(len(entry.articles)), entry.expire.isoformat(timespec="seconds"), status)
    console.print(table)


if __name__ == "__main__":
    app()
