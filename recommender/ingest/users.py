"""Seed users and their tag interests from a YAML or JSON file."""

import json
import logging
import sqlite3
from pathlib import Path

import yaml

from recommender.core.db import add_user, set_user_interest, user_exists

logger = logging.getLogger(__name__)


def import_users(conn: sqlite3.Connection, path: str | Path) -> int:
    """Create users and their interests from a file.

    Shape::

        users:
          - id: 1
            name: Kim
            interests: {AI: 2.0, 개발: 1.0}

    Existing user ids are kept; their interests are overwritten per tag.
    Returns the number of users processed.
    """
    path = Path(path)
    if not path.exists():
        msg = f"Users file not found: {path}"
        raise FileNotFoundError(msg)

    text = path.read_text(encoding="utf-8")
    data = json.loads(text) if path.suffix.lower() == ".json" else yaml.safe_load(text)
    users = data.get("users") if isinstance(data, dict) else data
    if not isinstance(users, list):
        msg = "Users file must contain a 'users' list"
        raise ValueError(msg)

    count = 0
    for entry in users:
        if not isinstance(entry, dict):
            msg = f"Invalid user entry: {entry!r}"
            raise ValueError(msg)
        user_id = entry.get("id")
        if user_id is None or not user_exists(conn, int(user_id)):
            user_id = add_user(conn, name=str(entry.get("name") or ""), user_id=user_id)
        for tag_name, score in (entry.get("interests") or {}).items():
            set_user_interest(conn, int(user_id), str(tag_name), float(score))
        count += 1

    logger.info("Imported %d users from %s", count, path)
    return count
