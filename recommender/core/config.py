"""Configuration models and YAML loader for the activity recommender."""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator

DEFAULT_SYNONYMS: dict[str, list[str]] = {
    "개발": ["프로그래밍", "코딩", "소프트웨어"],
    "디자인": ["UI", "UX", "그래픽"],
    "마케팅": ["홍보", "광고", "브랜딩"],
    "스터디": ["공부", "학습", "연구"],
    "취업": ["채용", "구직", "인턴"],
    "창업": ["스타트업", "사업", "비즈니스"],
}


class DatabaseConfig(BaseModel):
    """Database configuration."""

    path: str = "data/catalog.db"


class ScoringConfig(BaseModel):
    """Weights for keyword relevance and interest affinity scoring."""

    title_contains_bonus: float = 2.0
    content_contains_bonus: float = 1.0
    title_exact_bonus: float = 3.0
    tag_contains_bonus: float = 1.5
    interest_tag_weight: float = 0.3
    study_bonus: float = 0.2
    contest_bonus: float = 0.1
    campus_bonus: float = 0.1


class BlendingConfig(BaseModel):
    """Constants for the three blended-score policies."""

    # Semantic search, embedding path with a user who has interests
    search_embedding_weight: float = Field(default=0.7, ge=0.0, le=1.0)
    search_interest_weight: float = Field(default=0.3, ge=0.0, le=1.0)
    search_interest_scale: float = 30.0
    # Semantic search, keyword fallback path
    keyword_interest_weight: float = 0.3
    # Score-annotated recommendations
    interest_scale: float = 100.0
    role_embedding_weight: float = 0.5
    role_fit_weight: float = 0.3
    role_interest_weight: float = 0.2
    no_role_embedding_weight: float = 0.7
    no_role_interest_weight: float = 0.3
    expected_increase: dict[str, float] = Field(
        default_factory=lambda: {"CONTEST": 3.0, "STUDY": 2.0, "JOB": 1.5},
    )
    expected_increase_default: float = 1.0
    expected_increase_tag_multiplier: float = 1.1


class RankingConfig(BaseModel):
    """Candidate sizing and embedding-path knobs."""

    default_limit: int = Field(default=10, ge=1)
    recommend_overfetch: int = Field(default=2, ge=1)
    embedding_overfetch: int = Field(default=3, ge=1)
    keyword_overfetch: int = Field(default=2, ge=1)
    scored_overfetch: int = Field(default=2, ge=1)
    similarity_threshold: float = Field(default=0.30, ge=-1.0, le=1.0)
    content_prefix_chars: int = Field(default=500, ge=0)
    embedding_concurrency: int = Field(default=4, ge=1, le=64)


class EmbeddingConfig(BaseModel):
    """Embedding provider selection. provider=None disables the embedding path."""

    provider: str | None = "gemini"
    model: str | None = None


class RoleFitConfig(BaseModel):
    """LLM-backed role-fit scorer."""

    enabled: bool = True
    provider: str = "gemini"
    model: str | None = None


class LinkareerCrawlerConfig(BaseModel):
    script_dir: str = "../crawlers/linkareer"
    python_path: str = "python3"
    timeout_s: float = Field(default=600.0, gt=0)


class CrawlersConfig(BaseModel):
    linkareer: LinkareerCrawlerConfig = Field(default_factory=LinkareerCrawlerConfig)


class Settings(BaseModel):
    """Top-level settings loaded from YAML."""

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    scoring: ScoringConfig = Field(default_factory=ScoringConfig)
    blending: BlendingConfig = Field(default_factory=BlendingConfig)
    ranking: RankingConfig = Field(default_factory=RankingConfig)
    embedding: EmbeddingConfig = Field(default_factory=EmbeddingConfig)
    role_fit: RoleFitConfig = Field(default_factory=RoleFitConfig)
    crawlers: CrawlersConfig = Field(default_factory=CrawlersConfig)
    synonyms: dict[str, list[str]] = Field(
        default_factory=lambda: {k: list(v) for k, v in DEFAULT_SYNONYMS.items()},
    )

    @field_validator("synonyms")
    @classmethod
    def synonym_keys_not_blank(cls, v: dict[str, list[str]]) -> dict[str, list[str]]:
        for key in v:
            if not key.strip():
                msg = "synonym group keys must not be blank"
                raise ValueError(msg)
        return v

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Settings":
        """Load settings from a YAML file."""
        path = Path(path)
        if not path.exists():
            msg = f"Config file not found: {path}"
            raise FileNotFoundError(msg)
        raw: dict[str, Any] = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        return cls.model_validate(raw)
