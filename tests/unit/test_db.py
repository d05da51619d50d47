"""Tests for the catalog layer: init, candidate fetch, tags, users, ingest writes."""

from datetime import datetime

import pytest

from recommender.core.db import (
    add_user,
    fetch_candidates,
    fetch_user_interests,
    get_activity,
    get_or_create_tag,
    get_tag_name,
    init_db,
    insert_activity,
    insert_ingest_run,
    is_activity_ingested,
    set_user_interest,
    upsert_external_activity,
    user_exists,
)
from recommender.core.schemas import ActivityStatus, ActivityType, ExternalActivity


def _external(external_id: str | None = "1", **kw: object) -> ExternalActivity:
    defaults: dict[str, object] = {
        "source": "linkareer",
        "title": "AI 공모전",
        "external_id": external_id,
    }
    defaults.update(kw)
    return ExternalActivity(**defaults)  # type: ignore[arg-type]


class TestInitDb:
    def test_creates_tables(self, db) -> None:  # type: ignore[no-untyped-def]
        tables = {
            row[0]
            for row in db.execute(
                "SELECT name FROM sqlite_master WHERE type='table'"
            ).fetchall()
        }
        assert {
            "activities",
            "tags",
            "activity_tags",
            "users",
            "user_interests",
            "ingest_runs",
        } <= tables

    def test_idempotent(self, tmp_path) -> None:  # type: ignore[no-untyped-def]
        """Calling init_db twice on the same path doesn't error."""
        p = tmp_path / "double.db"
        init_db(p).close()
        init_db(p).close()

    def test_in_memory(self) -> None:
        conn = init_db(":memory:")
        assert fetch_candidates(conn) == []
        conn.close()

    def test_creates_parent_dir(self, tmp_path) -> None:  # type: ignore[no-untyped-def]
        p = tmp_path / "nested" / "dir" / "catalog.db"
        init_db(p).close()
        assert p.exists()


class TestFetchCandidates:
    def test_newest_first(self, db, add_activity) -> None:  # type: ignore[no-untyped-def]
        first = add_activity("old")
        second = add_activity("mid")
        third = add_activity("new")
        assert [a.id for a in fetch_candidates(db)] == [third, second, first]

    def test_same_timestamp_breaks_tie_by_id(self, db) -> None:  # type: ignore[no-untyped-def]
        ts = datetime(2024, 1, 1)
        a = insert_activity(db, title="a", created_at=ts)
        b = insert_activity(db, title="b", created_at=ts)
        assert [x.id for x in fetch_candidates(db)] == [b, a]

    def test_page_and_size(self, db, add_activity) -> None:  # type: ignore[no-untyped-def]
        ids = [add_activity(f"a{i}") for i in range(5)]
        assert [a.id for a in fetch_candidates(db, page=0, size=2)] == [ids[4], ids[3]]
        assert [a.id for a in fetch_candidates(db, page=2, size=2)] == [ids[0]]

    def test_type_filter(self, db, add_activity) -> None:  # type: ignore[no-untyped-def]
        add_activity("contest", activity_type=ActivityType.CONTEST)
        study = add_activity("study", activity_type=ActivityType.STUDY)
        result = fetch_candidates(db, activity_type=ActivityType.STUDY)
        assert [a.id for a in result] == [study]

    def test_campus_filter(self, db, add_activity) -> None:  # type: ignore[no-untyped-def]
        campus = add_activity("campus", is_campus=True)
        add_activity("outside")
        assert [a.id for a in fetch_candidates(db, is_campus=True)] == [campus]
        assert len(fetch_candidates(db, is_campus=False)) == 1

    def test_status_filter(self, db, add_activity) -> None:  # type: ignore[no-untyped-def]
        add_activity("closed", status=ActivityStatus.CLOSED)
        open_id = add_activity("open")
        assert [a.id for a in fetch_candidates(db, status=ActivityStatus.OPEN)] == [open_id]

    def test_text_matches_title_content_and_tag(  # type: ignore[no-untyped-def]
        self, db, add_activity,
    ) -> None:
        by_title = add_activity("AI 공모전")
        by_content = add_activity("주말 모임", content="ai 논문을 읽습니다")
        by_tag = add_activity("해커톤", tags=("AI",))
        add_activity("디자인 스터디")
        ids = {a.id for a in fetch_candidates(db, text="ai")}
        assert ids == {by_title, by_content, by_tag}

    def test_text_escapes_like_wildcards(self, db, add_activity) -> None:  # type: ignore[no-untyped-def]
        add_activity("100% 참여")
        add_activity("1000명 모집")
        assert [a.title for a in fetch_candidates(db, text="100%")] == ["100% 참여"]

    def test_text_folds_non_ascii_case(self, db, add_activity) -> None:  # type: ignore[no-untyped-def]
        by_title = add_activity("Ärzte ohne Grenzen")
        by_tag = add_activity("봉사", tags=("ÉCOLE",))
        assert [a.id for a in fetch_candidates(db, text="ärzte")] == [by_title]
        assert [a.id for a in fetch_candidates(db, text="École")] == [by_tag]

    def test_tags_in_insert_order(self, db, add_activity) -> None:  # type: ignore[no-untyped-def]
        add_activity("t", tags=("개발", "AI", "개발", " "))
        (activity,) = fetch_candidates(db)
        assert activity.tag_names == ["개발", "AI"]


class TestActivityLookup:
    def test_get_activity(self, db, add_activity) -> None:  # type: ignore[no-untyped-def]
        activity_id = add_activity("AI", activity_type=ActivityType.STUDY, tags=("AI",))
        activity = get_activity(db, activity_id)
        assert activity is not None
        assert activity.type is ActivityType.STUDY
        assert activity.tag_names == ["AI"]

    def test_get_activity_missing(self, db) -> None:  # type: ignore[no-untyped-def]
        assert get_activity(db, 999) is None

    def test_tag_names(self, db) -> None:  # type: ignore[no-untyped-def]
        tag_id = get_or_create_tag(db, " AI ")
        assert get_or_create_tag(db, "AI") == tag_id
        assert get_tag_name(db, tag_id) == "AI"
        assert get_tag_name(db, 999) is None

    def test_blank_tag_rejected(self, db) -> None:  # type: ignore[no-untyped-def]
        with pytest.raises(ValueError, match="tag name"):
            get_or_create_tag(db, "  ")


class TestUsers:
    def test_add_and_exists(self, db) -> None:  # type: ignore[no-untyped-def]
        user_id = add_user(db, "Kim")
        assert user_exists(db, user_id)
        assert not user_exists(db, user_id + 1)

    def test_explicit_id(self, db) -> None:  # type: ignore[no-untyped-def]
        assert add_user(db, "Lee", user_id=42) == 42
        assert user_exists(db, 42)

    def test_interests_strongest_first(self, db) -> None:  # type: ignore[no-untyped-def]
        user_id = add_user(db)
        set_user_interest(db, user_id, "디자인", 0.5)
        ai = set_user_interest(db, user_id, "AI", 2.0)
        interests = fetch_user_interests(db, user_id)
        assert [i.tag_id for i in interests][0] == ai
        assert [i.score for i in interests] == [2.0, 0.5]

    def test_interest_overwritten(self, db) -> None:  # type: ignore[no-untyped-def]
        user_id = add_user(db)
        set_user_interest(db, user_id, "AI", 1.0)
        set_user_interest(db, user_id, "AI", 3.0)
        interests = fetch_user_interests(db, user_id)
        assert len(interests) == 1
        assert interests[0].score == 3.0

    def test_no_interests(self, db) -> None:  # type: ignore[no-untyped-def]
        assert fetch_user_interests(db, add_user(db)) == []


class TestUpsertExternalActivity:
    def test_insert_new(self, db) -> None:  # type: ignore[no-untyped-def]
        assert upsert_external_activity(db, _external("1")) is True
        assert is_activity_ingested(db, "linkareer", "1")

    def test_duplicate_ignored(self, db) -> None:  # type: ignore[no-untyped-def]
        upsert_external_activity(db, _external("1"))
        assert upsert_external_activity(db, _external("1")) is False
        count = db.execute("SELECT COUNT(*) FROM activities").fetchone()[0]
        assert count == 1

    def test_same_id_different_source(self, db) -> None:  # type: ignore[no-untyped-def]
        upsert_external_activity(db, _external("1"))
        assert upsert_external_activity(db, _external("1", source="manual")) is True

    def test_mapping_defaults(self, db) -> None:  # type: ignore[no-untyped-def]
        upsert_external_activity(
            db,
            _external("55", organization_name="링커리어", field="IT/소프트웨어"),
            default_type=ActivityType.CONTEST,
        )
        (activity,) = fetch_candidates(db)
        assert activity.type is ActivityType.CONTEST
        assert activity.summary == "링커리어"
        assert activity.tag_names == ["IT/소프트웨어"]
        assert activity.url == "https://linkareer.com/activity/55"
        assert activity.source == "linkareer"
        assert activity.external_id == "55"

    def test_explicit_type_wins(self, db) -> None:  # type: ignore[no-untyped-def]
        upsert_external_activity(
            db, _external("2", type=ActivityType.STUDY), default_type=ActivityType.CONTEST,
        )
        (activity,) = fetch_candidates(db)
        assert activity.type is ActivityType.STUDY

    def test_rows_without_external_id_always_insert(self, db) -> None:  # type: ignore[no-untyped-def]
        assert upsert_external_activity(db, _external(None)) is True
        assert upsert_external_activity(db, _external(None)) is True


class TestInsertIngestRun:
    def test_insert(self, db) -> None:  # type: ignore[no-untyped-def]
        run_id = insert_ingest_run(
            db,
            source="linkareer",
            mode="partial",
            raw_count=30,
            filtered_count=12,
            new_count=10,
            started_at=datetime(2024, 1, 1, 9, 0),
            finished_at=datetime(2024, 1, 1, 9, 1),
        )
        assert run_id > 0
        row = db.execute("SELECT * FROM ingest_runs WHERE id = ?", (run_id,)).fetchone()
        assert row["new_count"] == 10
        assert row["mode"] == "partial"
