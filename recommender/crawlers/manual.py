"""Manual activity input from a JSON or YAML file.

Accepted shapes: a list of activity objects, or ``{"activities": [...]}``.
Each object needs a ``title``; ``type``, ``summary``, ``content``,
``is_campus``, ``tags``, ``url`` and ``external_id`` are optional. A row
without ``external_id`` is keyed by its title, so re-ingesting the same
file adds nothing new.
"""

import hashlib
import json
import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from recommender.core.schemas import ActivityType, ExternalActivity
from recommender.crawlers.base import ActivityCrawler

logger = logging.getLogger(__name__)


def load_activity_rows(path: str | Path) -> list[dict[str, Any]]:
    """Read raw activity rows from a .json, .yaml or .yml file."""
    path = Path(path)
    if not path.exists():
        msg = f"Activity file not found: {path}"
        raise FileNotFoundError(msg)

    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        data = json.loads(text)
    elif path.suffix.lower() in (".yaml", ".yml"):
        data = yaml.safe_load(text)
    else:
        msg = f"Unsupported activity file type '{path.suffix}' (use .json, .yaml or .yml)"
        raise ValueError(msg)

    if isinstance(data, dict):
        data = data.get("activities")
    if not isinstance(data, list):
        msg = "Activity file must contain a list or an 'activities' list"
        raise ValueError(msg)
    return [row for row in data if isinstance(row, dict)]


class FileCrawler(ActivityCrawler):
    """Treats a local activity file as a crawl source."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    @property
    def source_name(self) -> str:
        return "manual"

    async def crawl_all(self) -> list[ExternalActivity]:
        activities: list[ExternalActivity] = []
        for row in load_activity_rows(self._path):
            activity = self._parse_row(row)
            if activity is not None:
                activities.append(activity)
        logger.info("Loaded %d activities from %s", len(activities), self._path)
        return activities

    async def crawl_recent(self) -> list[ExternalActivity]:
        # A file has no notion of "recent".
        return await self.crawl_all()

    def _derived_id(self, title: str) -> str:
        # Rows without an id are keyed by title so re-ingesting a file is idempotent.
        digest = hashlib.sha1(f"{self.source_name}:{title}".encode("utf-8")).hexdigest()
        return f"title-{digest[:16]}"

    def _parse_row(self, row: dict[str, Any]) -> ExternalActivity | None:
        title = str(row.get("title") or "").strip()
        if not title:
            logger.warning("Skipping activity row without title: %s", row)
            return None
        try:
            return ExternalActivity(
                source=self.source_name,
                title=title,
                external_id=(
                    str(row["external_id"]) if row.get("external_id") else self._derived_id(title)
                ),
                summary=str(row.get("summary") or ""),
                content=str(row.get("content") or ""),
                url=str(row.get("url") or ""),
                organization_name=str(row.get("organization_name") or ""),
                field=str(row.get("field") or ""),
                type=ActivityType.parse(row.get("type")),
                is_campus=bool(row.get("is_campus", False)),
                tags=tuple(str(t) for t in row.get("tags") or ()),
            )
        except (ValidationError, ValueError):
            logger.warning("Skipping invalid activity row: %s", row, exc_info=True)
            return None
