"""Core data models for the activity recommender."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from recommender.core.errors import InvalidArgumentError


class ActivityType(str, Enum):
    STUDY = "STUDY"
    CONTEST = "CONTEST"
    JOB = "JOB"
    CLUB = "CLUB"
    OTHER = "OTHER"

    @classmethod
    def parse(cls, value: "str | ActivityType | None") -> "ActivityType | None":
        """Parse a case-insensitive type name. None and blank map to None."""
        if value is None or isinstance(value, ActivityType):
            return value
        if not isinstance(value, str):
            msg = f"Activity type must be a string, got {type(value).__name__}"
            raise InvalidArgumentError(msg)
        if not value.strip():
            return None
        try:
            return cls(value.strip().upper())
        except ValueError:
            valid = ", ".join(t.value for t in cls)
            msg = f"Unknown activity type '{value}'. Valid: {valid}"
            raise InvalidArgumentError(msg) from None


class ActivityStatus(str, Enum):
    OPEN = "OPEN"
    CLOSED = "CLOSED"


class Tag(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str


class Activity(BaseModel):
    """A recommendable catalog item.

    Frozen: the ranking engine only reads activities.
    """

    model_config = ConfigDict(frozen=True)

    id: int
    title: str
    summary: str = ""
    content: str = ""
    type: ActivityType = ActivityType.OTHER
    is_campus: bool = False
    status: ActivityStatus = ActivityStatus.OPEN
    url: str = ""
    source: str = "manual"
    external_id: str | None = None
    created_at: datetime = Field(default_factory=datetime.now)
    tags: tuple[Tag, ...] = ()

    @property
    def tag_names(self) -> list[str]:
        return [t.name for t in self.tags if t.name]


class UserInterest(BaseModel):
    """Affinity of one user for one tag. Higher score = stronger interest."""

    model_config = ConfigDict(frozen=True)

    user_id: int
    tag_id: int
    score: float


class ScoredActivity(BaseModel):
    """Wrapper that pairs a frozen Activity with a single relevance score."""

    model_config = ConfigDict(frozen=True)

    activity: Activity
    score: float


class ActivityRecommendation(BaseModel):
    """Score-annotated recommendation (blended score plus its components)."""

    model_config = ConfigDict(frozen=True)

    activity: Activity
    recommendation_score: float
    interest_score: float = 0.0
    embedding_score: float = 0.0
    role_fit_score: float | None = None
    expected_score_increase: float | None = None


class ExternalActivity(BaseModel):
    """An activity discovered by a crawler, before it enters the catalog.

    Keyed by (source, external_id); optional fields fall back to the
    ingest mapping defaults.
    """

    model_config = ConfigDict(frozen=True)

    source: str
    title: str
    external_id: str | None = None
    recruit_close_at: datetime | None = None
    organization_name: str = ""
    field: str = ""
    url: str = ""
    summary: str = ""
    content: str = ""
    type: ActivityType | None = None
    is_campus: bool = False
    tags: tuple[str, ...] = ()

    def url_or_default(self) -> str:
        """Return the crawled URL, or the source's canonical activity URL."""
        if self.url.strip():
            return self.url
        if self.source.lower() == "linkareer" and self.external_id:
            return f"https://linkareer.com/activity/{self.external_id}"
        return ""
