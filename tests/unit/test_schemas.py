"""Tests for core data models."""

from datetime import datetime

import pytest
from pydantic import ValidationError

from recommender.core.errors import InvalidArgumentError
from recommender.core.schemas import (
    Activity,
    ActivityRecommendation,
    ActivityType,
    ExternalActivity,
    Tag,
)


class TestActivityType:
    def test_parse_case_insensitive(self) -> None:
        assert ActivityType.parse("study") is ActivityType.STUDY
        assert ActivityType.parse(" Contest ") is ActivityType.CONTEST

    def test_parse_none_and_blank(self) -> None:
        assert ActivityType.parse(None) is None
        assert ActivityType.parse("   ") is None

    def test_parse_passthrough(self) -> None:
        assert ActivityType.parse(ActivityType.JOB) is ActivityType.JOB

    def test_parse_unknown_raises(self) -> None:
        with pytest.raises(InvalidArgumentError, match="Unknown activity type 'party'"):
            ActivityType.parse("party")

    def test_parse_non_string_raises(self) -> None:
        with pytest.raises(InvalidArgumentError, match="must be a string, got int"):
            ActivityType.parse(1)  # type: ignore[arg-type]

    def test_invalid_argument_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            ActivityType.parse("party")


class TestActivity:
    def test_defaults(self) -> None:
        a = Activity(id=1, title="AI 스터디")
        assert a.type is ActivityType.OTHER
        assert a.is_campus is False
        assert a.tags == ()
        assert isinstance(a.created_at, datetime)

    def test_tag_names(self) -> None:
        a = Activity(id=1, title="t", tags=(Tag(id=1, name="AI"), Tag(id=2, name="개발")))
        assert a.tag_names == ["AI", "개발"]

    def test_frozen(self) -> None:
        a = Activity(id=1, title="t")
        with pytest.raises(ValidationError):
            a.title = "changed"  # type: ignore[misc]


class TestActivityRecommendation:
    def test_optional_signals_default_absent(self) -> None:
        r = ActivityRecommendation(activity=Activity(id=1, title="t"), recommendation_score=10.0)
        assert r.role_fit_score is None
        assert r.expected_score_increase is None


class TestExternalActivity:
    def test_url_or_default_keeps_crawled_url(self) -> None:
        e = ExternalActivity(source="linkareer", title="t", external_id="7", url="https://x/7")
        assert e.url_or_default() == "https://x/7"

    def test_url_or_default_linkareer(self) -> None:
        e = ExternalActivity(source="linkareer", title="t", external_id="12345")
        assert e.url_or_default() == "https://linkareer.com/activity/12345"

    def test_url_or_default_other_source(self) -> None:
        e = ExternalActivity(source="manual", title="t", external_id="1")
        assert e.url_or_default() == ""

    def test_recruit_close_at_from_millis(self) -> None:
        e = ExternalActivity(source="linkareer", title="t", recruit_close_at=1_700_000_000_000)
        assert e.recruit_close_at is not None
        assert e.recruit_close_at.year == 2023
