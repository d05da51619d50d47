"""Abstract base class for external activity crawlers."""

from abc import ABC, abstractmethod

from recommender.core.schemas import ActivityType, ExternalActivity


class ActivityCrawler(ABC):
    """Base class that every crawler source must implement."""

    @property
    @abstractmethod
    def source_name(self) -> str:
        """Unique identifier for this source (e.g. 'linkareer')."""

    @property
    def default_type(self) -> ActivityType:
        """Activity type for crawled rows that do not carry one."""
        return ActivityType.OTHER

    @abstractmethod
    async def crawl_all(self) -> list[ExternalActivity]:
        """Crawl every activity the source exposes."""

    @abstractmethod
    async def crawl_recent(self) -> list[ExternalActivity]:
        """Crawl only the most recent activities."""
