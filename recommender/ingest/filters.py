"""Filter chain for crawled activities.

Filter order:
  1. RequireTitleFilter     — drop rows with a blank title
  2. DeduplicationFilter    — in-memory within run, by (source, external_id)
  3. AlreadyIngestedFilter  — DB lookup, persistent cross-run
"""

import logging
import sqlite3
from collections.abc import Callable

from recommender.core.db import is_activity_ingested
from recommender.core.schemas import ExternalActivity

logger = logging.getLogger(__name__)

# A filter is a callable that takes activities and returns a subset.
Filter = Callable[[list[ExternalActivity]], list[ExternalActivity]]


class RequireTitleFilter:
    """Remove activities whose title is blank."""

    def __call__(self, activities: list[ExternalActivity]) -> list[ExternalActivity]:
        result = [a for a in activities if a.title.strip()]
        dropped = len(activities) - len(result)
        if dropped:
            logger.debug("RequireTitleFilter: removed %d activities", dropped)
        return result


class DeduplicationFilter:
    """Remove duplicates by (source, external_id) within a single run.

    Rows without an external_id cannot be matched and always pass.
    Stateful: tracks seen IDs across calls within the same filter instance.
    """

    def __init__(self) -> None:
        self._seen: set[tuple[str, str]] = set()

    def __call__(self, activities: list[ExternalActivity]) -> list[ExternalActivity]:
        result: list[ExternalActivity] = []
        for a in activities:
            if a.external_id is None:
                result.append(a)
                continue
            key = (a.source, a.external_id)
            if key not in self._seen:
                self._seen.add(key)
                result.append(a)
        deduped = len(activities) - len(result)
        if deduped:
            logger.debug("DeduplicationFilter: removed %d duplicates", deduped)
        return result


class AlreadyIngestedFilter:
    """Remove activities already stored in the catalog."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def __call__(self, activities: list[ExternalActivity]) -> list[ExternalActivity]:
        result = [
            a for a in activities
            if a.external_id is None
            or not is_activity_ingested(self._conn, a.source, a.external_id)
        ]
        seen = len(activities) - len(result)
        if seen:
            logger.debug("AlreadyIngestedFilter: removed %d stored activities", seen)
        return result


def run_filter_chain(
    activities: list[ExternalActivity],
    filters: list[Filter],
) -> list[ExternalActivity]:
    """Apply filters in order, returning the surviving activities."""
    result = activities
    for f in filters:
        result = f(result)
    return result
