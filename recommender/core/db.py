"""SQLite catalog layer: activities, tags, user interests, and ingest runs.

The ranking engine only uses the read functions (fetch_candidates,
get_activity, get_tag_name, fetch_user_interests, user_exists).
Write functions back the ingest pipeline and the CLI seeding commands.
"""

import sqlite3
from datetime import datetime
from pathlib import Path

from recommender.core.schemas import (
    Activity,
    ActivityStatus,
    ActivityType,
    ExternalActivity,
    Tag,
    UserInterest,
)

_TAGS_TABLE = """
CREATE TABLE IF NOT EXISTS tags (
    id      INTEGER PRIMARY KEY AUTOINCREMENT,
    name    TEXT NOT NULL UNIQUE
);
"""

_ACTIVITIES_TABLE = """
CREATE TABLE IF NOT EXISTS activities (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    title           TEXT    NOT NULL,
    summary         TEXT    NOT NULL DEFAULT '',
    content         TEXT    NOT NULL DEFAULT '',
    type            TEXT    NOT NULL DEFAULT 'OTHER',
    is_campus       INTEGER NOT NULL DEFAULT 0,
    status          TEXT    NOT NULL DEFAULT 'OPEN',
    url             TEXT    NOT NULL DEFAULT '',
    source          TEXT    NOT NULL DEFAULT 'manual',
    external_id     TEXT,
    recruit_close_at TEXT,
    created_at      TEXT    NOT NULL,
    UNIQUE(source, external_id)
);
"""

_ACTIVITY_TAGS_TABLE = """
CREATE TABLE IF NOT EXISTS activity_tags (
    activity_id INTEGER NOT NULL REFERENCES activities(id),
    tag_id      INTEGER NOT NULL REFERENCES tags(id),
    position    INTEGER NOT NULL DEFAULT 0,
    PRIMARY KEY (activity_id, tag_id)
);
"""

_USERS_TABLE = """
CREATE TABLE IF NOT EXISTS users (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    name        TEXT NOT NULL DEFAULT '',
    created_at  TEXT NOT NULL
);
"""

_USER_INTERESTS_TABLE = """
CREATE TABLE IF NOT EXISTS user_interests (
    user_id     INTEGER NOT NULL REFERENCES users(id),
    tag_id      INTEGER NOT NULL REFERENCES tags(id),
    score       REAL    NOT NULL DEFAULT 1.0,
    PRIMARY KEY (user_id, tag_id)
);
"""

_INGEST_RUNS_TABLE = """
CREATE TABLE IF NOT EXISTS ingest_runs (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    source          TEXT NOT NULL,
    mode            TEXT NOT NULL,
    raw_count       INTEGER NOT NULL,
    filtered_count  INTEGER NOT NULL,
    new_count       INTEGER NOT NULL,
    started_at      TEXT NOT NULL,
    finished_at     TEXT NOT NULL
);
"""

_ACTIVITY_COLUMNS = (
    "a.id, a.title, a.summary, a.content, a.type, a.is_campus, a.status, "
    "a.url, a.source, a.external_id, a.created_at"
)


def init_db(path: str | Path) -> sqlite3.Connection:
    """Create the database and tables, returning a connection."""
    if str(path) != ":memory:":
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path))
    conn.row_factory = sqlite3.Row
    conn.create_function("py_lower", 1, _py_lower, deterministic=True)
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")
    for ddl in (
        _TAGS_TABLE,
        _ACTIVITIES_TABLE,
        _ACTIVITY_TAGS_TABLE,
        _USERS_TABLE,
        _USER_INTERESTS_TABLE,
        _INGEST_RUNS_TABLE,
    ):
        conn.execute(ddl)
    conn.commit()
    return conn


# ---------------------------------------------------------------------------
# Reads (catalog accessor)
# ---------------------------------------------------------------------------


def fetch_candidates(
    conn: sqlite3.Connection,
    *,
    text: str | None = None,
    activity_type: ActivityType | None = None,
    is_campus: bool | None = None,
    status: ActivityStatus | None = None,
    page: int = 0,
    size: int = 10,
) -> list[Activity]:
    """Return one newest-first page of activities matching the filters.

    ``text`` is a case-insensitive substring match against the title,
    the content, or any tag name. None filters are not applied.
    """
    clauses: list[str] = []
    params: list[object] = []

    if text is not None and text.strip():
        pattern = f"%{_escape_like(text.strip().lower())}%"
        clauses.append(
            "(py_lower(a.title) LIKE ? ESCAPE '\\' OR py_lower(a.content) LIKE ? ESCAPE '\\'"
            " OR EXISTS ("
            " SELECT 1 FROM activity_tags atg JOIN tags t ON t.id = atg.tag_id"
            " WHERE atg.activity_id = a.id AND py_lower(t.name) LIKE ? ESCAPE '\\'))"
        )
        params.extend([pattern, pattern, pattern])
    if activity_type is not None:
        clauses.append("a.type = ?")
        params.append(activity_type.value)
    if is_campus is not None:
        clauses.append("a.is_campus = ?")
        params.append(int(is_campus))
    if status is not None:
        clauses.append("a.status = ?")
        params.append(status.value)

    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
    params.extend([size, page * size])
    rows = conn.execute(
        f"""
        SELECT {_ACTIVITY_COLUMNS} FROM activities a
        {where}
        ORDER BY a.created_at DESC, a.id DESC
        LIMIT ? OFFSET ?
        """,
        params,
    ).fetchall()
    return _rows_to_activities(conn, rows)


def get_activity(conn: sqlite3.Connection, activity_id: int) -> Activity | None:
    """Look up a single activity by id."""
    row = conn.execute(
        f"SELECT {_ACTIVITY_COLUMNS} FROM activities a WHERE a.id = ?",
        (activity_id,),
    ).fetchone()
    if row is None:
        return None
    return _rows_to_activities(conn, [row])[0]


def get_tag_name(conn: sqlite3.Connection, tag_id: int) -> str | None:
    row = conn.execute("SELECT name FROM tags WHERE id = ?", (tag_id,)).fetchone()
    return None if row is None else row["name"]


def fetch_user_interests(conn: sqlite3.Connection, user_id: int) -> list[UserInterest]:
    """Return a user's interests, strongest first."""
    rows = conn.execute(
        """
        SELECT user_id, tag_id, score FROM user_interests
        WHERE user_id = ?
        ORDER BY score DESC, tag_id ASC
        """,
        (user_id,),
    ).fetchall()
    return [
        UserInterest(user_id=r["user_id"], tag_id=r["tag_id"], score=r["score"])
        for r in rows
    ]


def user_exists(conn: sqlite3.Connection, user_id: int) -> bool:
    row = conn.execute("SELECT 1 FROM users WHERE id = ? LIMIT 1", (user_id,)).fetchone()
    return row is not None


def is_activity_ingested(
    conn: sqlite3.Connection,
    source: str,
    external_id: str,
) -> bool:
    """Check if an external activity is already stored for this source."""
    row = conn.execute(
        "SELECT 1 FROM activities WHERE source = ? AND external_id = ? LIMIT 1",
        (source, external_id),
    ).fetchone()
    return row is not None


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------


def get_or_create_tag(conn: sqlite3.Connection, name: str) -> int:
    """Return the id of the tag with this name, creating it if needed."""
    name = name.strip()
    if not name:
        msg = "tag name must not be empty"
        raise ValueError(msg)
    conn.execute("INSERT OR IGNORE INTO tags (name) VALUES (?)", (name,))
    row = conn.execute("SELECT id FROM tags WHERE name = ?", (name,)).fetchone()
    return int(row["id"])


def insert_activity(
    conn: sqlite3.Connection,
    *,
    title: str,
    summary: str = "",
    content: str = "",
    activity_type: ActivityType = ActivityType.OTHER,
    is_campus: bool = False,
    status: ActivityStatus = ActivityStatus.OPEN,
    url: str = "",
    source: str = "manual",
    external_id: str | None = None,
    recruit_close_at: datetime | None = None,
    created_at: datetime | None = None,
    tags: list[str] | tuple[str, ...] = (),
) -> int:
    """Insert an activity with its tags. Returns the new row ID."""
    cursor = conn.execute(
        """
        INSERT INTO activities
            (title, summary, content, type, is_campus, status, url, source,
             external_id, recruit_close_at, created_at)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            title,
            summary,
            content,
            activity_type.value,
            int(is_campus),
            status.value,
            url,
            source,
            external_id,
            _iso(recruit_close_at) if recruit_close_at else None,
            _iso(created_at or datetime.now()),
        ),
    )
    activity_id = int(cursor.lastrowid or 0)
    seen: set[int] = set()
    for position, name in enumerate(t for t in tags if t.strip()):
        tag_id = get_or_create_tag(conn, name)
        if tag_id in seen:
            continue
        seen.add(tag_id)
        conn.execute(
            "INSERT INTO activity_tags (activity_id, tag_id, position) VALUES (?, ?, ?)",
            (activity_id, tag_id, position),
        )
    conn.commit()
    return activity_id


def upsert_external_activity(
    conn: sqlite3.Connection,
    external: ExternalActivity,
    default_type: ActivityType = ActivityType.OTHER,
) -> bool:
    """Insert a crawled activity, ignoring if (source, external_id) already exists.

    Returns True if a new row was inserted, False if it was a duplicate.
    """
    tags = list(external.tags)
    if external.field.strip() and external.field.strip() not in tags:
        tags.append(external.field.strip())
    try:
        insert_activity(
            conn,
            title=external.title.strip(),
            summary=external.summary or external.organization_name,
            content=external.content,
            activity_type=external.type or default_type,
            is_campus=external.is_campus,
            url=external.url_or_default(),
            source=external.source,
            external_id=external.external_id,
            recruit_close_at=external.recruit_close_at,
            tags=tags,
        )
        return True
    except sqlite3.IntegrityError:
        conn.rollback()
        return False


def add_user(conn: sqlite3.Connection, name: str = "", user_id: int | None = None) -> int:
    """Create a user row. Returns the user ID."""
    cursor = conn.execute(
        "INSERT INTO users (id, name, created_at) VALUES (?, ?, ?)",
        (user_id, name, _iso(datetime.now())),
    )
    conn.commit()
    return int(cursor.lastrowid or 0)


def set_user_interest(
    conn: sqlite3.Connection,
    user_id: int,
    tag_name: str,
    score: float,
) -> int:
    """Set a user's affinity for a tag (created on demand). Returns the tag ID."""
    tag_id = get_or_create_tag(conn, tag_name)
    conn.execute(
        """
        INSERT INTO user_interests (user_id, tag_id, score) VALUES (?, ?, ?)
        ON CONFLICT(user_id, tag_id) DO UPDATE SET score = excluded.score
        """,
        (user_id, tag_id, score),
    )
    conn.commit()
    return tag_id


def insert_ingest_run(
    conn: sqlite3.Connection,
    source: str,
    mode: str,
    raw_count: int,
    filtered_count: int,
    new_count: int,
    started_at: datetime,
    finished_at: datetime,
) -> int:
    """Record a completed ingest run. Returns the row ID."""
    cursor = conn.execute(
        """
        INSERT INTO ingest_runs
            (source, mode, raw_count, filtered_count, new_count, started_at, finished_at)
        VALUES (?, ?, ?, ?, ?, ?, ?)
        """,
        (
            source,
            mode,
            raw_count,
            filtered_count,
            new_count,
            _iso(started_at),
            _iso(finished_at),
        ),
    )
    conn.commit()
    return cursor.lastrowid or 0


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _iso(value: datetime) -> str:
    # Fixed-width timestamps so lexical order == chronological order.
    return value.isoformat(timespec="microseconds")


def _py_lower(value: str | None) -> str | None:
    # SQLite lower() and LIKE only fold ASCII letters.
    return value.lower() if value is not None else None


def _escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _rows_to_activities(
    conn: sqlite3.Connection,
    rows: list[sqlite3.Row],
) -> list[Activity]:
    if not rows:
        return []
    tags_by_activity = _load_tags(conn, [r["id"] for r in rows])
    return [
        Activity(
            id=r["id"],
            title=r["title"],
            summary=r["summary"],
            content=r["content"],
            type=ActivityType(r["type"]),
            is_campus=bool(r["is_campus"]),
            status=ActivityStatus(r["status"]),
            url=r["url"],
            source=r["source"],
            external_id=r["external_id"],
            created_at=datetime.fromisoformat(r["created_at"]),
            tags=tags_by_activity.get(r["id"], ()),
        )
        for r in rows
    ]


def _load_tags(
    conn: sqlite3.Connection,
    activity_ids: list[int],
) -> dict[int, tuple[Tag, ...]]:
    placeholders = ", ".join("?" for _ in activity_ids)
    rows = conn.execute(
        f"""
        SELECT atg.activity_id, t.id, t.name FROM activity_tags atg
        JOIN tags t ON t.id = atg.tag_id
        WHERE atg.activity_id IN ({placeholders})
        ORDER BY atg.activity_id, atg.position
        """,
        activity_ids,
    ).fetchall()
    grouped: dict[int, list[Tag]] = {}
    for r in rows:
        grouped.setdefault(r["activity_id"], []).append(Tag(id=r["id"], name=r["name"]))
    return {k: tuple(v) for k, v in grouped.items()}
