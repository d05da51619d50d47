"""Crawler registry.

Usage:
    from recommender.crawlers import get_crawler

    crawler = get_crawler("linkareer", settings)
    activities = await crawler.crawl_recent()
"""

from pathlib import Path

from recommender.core.config import Settings
from recommender.crawlers.base import ActivityCrawler

__all__ = ["ActivityCrawler", "available_crawlers", "get_crawler"]

_SOURCES = ("linkareer", "manual")


def get_crawler(
    name: str,
    settings: Settings,
    path: str | Path | None = None,
) -> ActivityCrawler:
    """Instantiate a crawler by source name.

    Args:
        name: Source identifier (linkareer, manual).
        settings: Loaded settings (crawler sections).
        path: Input file for the manual source.

    Raises:
        ValueError: If the source is unknown or manual has no file.
    """
    if name == "linkareer":
        from recommender.crawlers.linkareer import LinkareerCrawler

        return LinkareerCrawler(settings.crawlers.linkareer)
    if name == "manual":
        if path is None:
            msg = "the manual source requires an activity file"
            raise ValueError(msg)
        from recommender.crawlers.manual import FileCrawler

        return FileCrawler(path)

    valid = ", ".join(sorted(_SOURCES))
    msg = f"Unknown crawler source '{name}'. Available: {valid}"
    raise ValueError(msg)


def available_crawlers() -> list[str]:
    """Return sorted list of crawler source names."""
    return sorted(_SOURCES)
