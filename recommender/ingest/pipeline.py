"""Ingest pipeline: wires crawler, filter chain, catalog write and run record.

Data flow:
  1. Crawler → raw external activities (full or recent crawl)
  2. Filter chain → new, well-formed activities
  3. Catalog upsert (activity + tags)
  4. Ingest run record
"""

import logging
import sqlite3
from datetime import datetime
from typing import Any

from recommender.core.db import insert_ingest_run, upsert_external_activity
from recommender.crawlers.base import ActivityCrawler
from recommender.ingest.filters import (
    AlreadyIngestedFilter,
    DeduplicationFilter,
    Filter,
    RequireTitleFilter,
    run_filter_chain,
)

logger = logging.getLogger(__name__)

MODES = ("total", "partial")


class IngestResult:
    """Summary of a single ingest run."""

    def __init__(
        self,
        source: str,
        mode: str,
        raw_count: int,
        filtered_count: int,
        new_count: int,
    ) -> None:
        self.source = source
        self.mode = mode
        self.raw_count = raw_count
        self.filtered_count = filtered_count
        self.new_count = new_count

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": self.source,
            "mode": self.mode,
            "raw_count": self.raw_count,
            "filtered_count": self.filtered_count,
            "new_count": self.new_count,
        }


async def run_ingest(
    crawler: ActivityCrawler,
    conn: sqlite3.Connection,
    mode: str = "partial",
) -> IngestResult:
    """Crawl one source and store the new activities.

    Raises:
        ValueError: If mode is not 'total' or 'partial'.
    """
    if mode not in MODES:
        msg = f"Unknown ingest mode '{mode}'. Valid: {', '.join(MODES)}"
        raise ValueError(msg)

    source = crawler.source_name
    started_at = datetime.now()

    logger.info("Crawling '%s' (%s)", source, mode)
    raw = await (crawler.crawl_all() if mode == "total" else crawler.crawl_recent())
    logger.info("Raw activities: %d", len(raw))

    filtered = run_filter_chain(raw, _build_filters(conn))
    logger.info("After filtering: %d", len(filtered))

    new_count = 0
    for activity in filtered:
        if upsert_external_activity(conn, activity, default_type=crawler.default_type):
            new_count += 1

    insert_ingest_run(
        conn,
        source=source,
        mode=mode,
        raw_count=len(raw),
        filtered_count=len(filtered),
        new_count=new_count,
        started_at=started_at,
        finished_at=datetime.now(),
    )

    logger.info(
        "Ingest '%s': %d raw, %d filtered, %d new",
        source, len(raw), len(filtered), new_count,
    )
    return IngestResult(
        source=source,
        mode=mode,
        raw_count=len(raw),
        filtered_count=len(filtered),
        new_count=new_count,
    )


def _build_filters(conn: sqlite3.Connection) -> list[Filter]:
    """Build the filter chain for one ingest run."""
    return [
        RequireTitleFilter(),
        DeduplicationFilter(),
        AlreadyIngestedFilter(conn),
    ]
