"""Linkareer contest crawler.

Runs the external crawler scripts (``total_linkareer.py`` for a full crawl,
``partial_linkareer.py`` for the ~30 newest contests) and parses the JSON
array they print on stdout. Each row carries ``id``, ``title``,
``recruitCloseAt`` (epoch millis), ``organizationName`` and ``field``.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from recommender.core.config import LinkareerCrawlerConfig
from recommender.core.schemas import ActivityType, ExternalActivity
from recommender.crawlers.base import ActivityCrawler

logger = logging.getLogger(__name__)

TOTAL_SCRIPT = "total_linkareer.py"
PARTIAL_SCRIPT = "partial_linkareer.py"


def parse_linkareer_row(raw: dict[str, Any]) -> ExternalActivity | None:
    """Convert one crawler row into an ExternalActivity. None if unusable."""
    title = raw.get("title")
    if title is None or not str(title).strip():
        return None

    external_id = raw.get("id")
    try:
        return ExternalActivity(
            source="linkareer",
            title=str(title).strip(),
            external_id=str(external_id) if external_id is not None else None,
            recruit_close_at=_millis(raw.get("recruitCloseAt")),
            organization_name=str(raw.get("organizationName") or ""),
            field=str(raw.get("field") or ""),
            url=str(raw.get("url") or ""),
            type=ActivityType.CONTEST,
        )
    except ValidationError:
        logger.warning("Failed to parse Linkareer row: %s", raw, exc_info=True)
        return None


def _millis(value: Any) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class LinkareerCrawler(ActivityCrawler):
    """Crawls Linkareer contests through the external crawler scripts."""

    def __init__(self, config: LinkareerCrawlerConfig) -> None:
        self._config = config

    @property
    def source_name(self) -> str:
        return "linkareer"

    @property
    def default_type(self) -> ActivityType:
        return ActivityType.CONTEST

    async def crawl_all(self) -> list[ExternalActivity]:
        return await self._run_script(TOTAL_SCRIPT)

    async def crawl_recent(self) -> list[ExternalActivity]:
        return await self._run_script(PARTIAL_SCRIPT)

    async def _run_script(self, script_name: str) -> list[ExternalActivity]:
        """Run one crawler script. Returns [] on any script failure."""
        script_path = Path(self._config.script_dir) / script_name
        logger.info("Executing crawler script: %s", script_path)

        try:
            process = await asyncio.create_subprocess_exec(
                self._config.python_path,
                str(script_path),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
            )
        except OSError:
            logger.error("Error executing crawler script: %s", script_path, exc_info=True)
            return []

        try:
            stdout, _ = await asyncio.wait_for(
                process.communicate(), timeout=self._config.timeout_s,
            )
        except asyncio.TimeoutError:
            logger.error(
                "Crawler script timed out after %.0fs: %s", self._config.timeout_s, script_path,
            )
            process.kill()
            await process.wait()
            return []

        output = stdout.decode("utf-8", errors="replace").strip()
        if process.returncode != 0:
            logger.error("Crawler script failed with exit code %s", process.returncode)
            logger.error("Output: %s", output)
            return []
        if not output:
            logger.warning("Crawler script returned empty output")
            return []

        try:
            rows = json.loads(output)
        except json.JSONDecodeError:
            logger.error("Crawler output is not valid JSON: %.200s", output)
            return []
        if not isinstance(rows, list):
            logger.error("Crawler output is not a JSON array")
            return []

        activities = [
            a for a in (parse_linkareer_row(r) for r in rows if isinstance(r, dict))
            if a is not None
        ]
        logger.info("Crawled %d activities from %s", len(activities), script_name)
        return activities
