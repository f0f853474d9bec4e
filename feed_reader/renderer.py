from __future__ import annotations

from pathlib import Path

from .types import FeedResult


def render_markdown(results: list[FeedResult], title: str, output_path: Path | None = None) -> str:
    """Render feed results as a Markdown document.

    One section per feed, in the order the feeds were requested, with one
    heading per article followed by its plain-text description. Feeds that
    failed to load show their error instead.

    Args:
        results: FeedResult objects to render
        title: Document title for the top-level heading
        output_path: Optional path where the Markdown file will be written

    Returns:
        The rendered Markdown text
    """
    total = sum(len(result.articles) for result in results)
    lines = [f"# {title}", "", f"Feeds: {len(results)}, articles: {total}", ""]
    for result in results:
        lines.append(f"## {result.feed.url}")
        lines.append("")
        if result.error:
            lines.append(f"> {result.error}")
            lines.append("")
            continue
        if not result.articles:
            lines.append("_No articles_")
            lines.append("")
            continue
        for article in result.articles:
            lines.append(f"### {article.title or '(untitled)'}")
            if article.description:
                lines.append("")
                lines.append(article.description)
            lines.append("")

    text = "\n".join(lines)
    if output_path is not None:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(text, encoding="utf-8")
    return text
