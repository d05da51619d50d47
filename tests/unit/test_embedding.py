"""Tests for cosine similarity and the embedding similarity scorer."""

import math

import pytest

from recommender.core.config import RankingConfig
from recommender.core.errors import ProviderError
from recommender.core.schemas import Activity, Tag
from recommender.ranking.embedding import (
    EmbeddingSimilarityScorer,
    compose_activity_text,
    cosine_similarity,
)


def _activity(activity_id: int, title: str, **kw: object) -> Activity:
    return Activity(id=activity_id, title=title, **kw)  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# cosine_similarity
# ---------------------------------------------------------------------------
class TestCosineSimilarity:
    def test_identical(self) -> None:
        assert cosine_similarity([1.0, 2.0, 3.0], [1.0, 2.0, 3.0]) == pytest.approx(1.0)

    def test_orthogonal(self) -> None:
        assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)

    def test_opposite(self) -> None:
        assert cosine_similarity([1.0, 1.0], [-1.0, -1.0]) == pytest.approx(-1.0)

    def test_empty(self) -> None:
        assert cosine_similarity([], []) == 0.0

    def test_length_mismatch(self) -> None:
        assert cosine_similarity([1.0, 2.0], [1.0]) == 0.0

    def test_zero_vector(self) -> None:
        assert cosine_similarity([0.0, 0.0], [1.0, 1.0]) == 0.0

    def test_non_finite(self) -> None:
        assert cosine_similarity([math.nan, 1.0], [1.0, 1.0]) == 0.0


class TestComposeActivityText:
    def test_joins_fields(self) -> None:
        activity = _activity(
            1,
            "AI 공모전",
            summary="링커리어",
            content="딥러닝 모델을 만듭니다",
            tags=(Tag(id=1, name="AI"), Tag(id=2, name="개발")),
        )
        assert compose_activity_text(activity) == "AI 공모전 링커리어 딥러닝 모델을 만듭니다 AI 개발"

    def test_content_prefix(self) -> None:
        activity = _activity(1, "t", content="x" * 1000)
        assert compose_activity_text(activity, content_prefix_chars=10) == "t " + "x" * 10

    def test_skips_blank_parts(self) -> None:
        assert compose_activity_text(_activity(1, "제목", summary="  ")) == "제목"


# ---------------------------------------------------------------------------
# EmbeddingSimilarityScorer
# ---------------------------------------------------------------------------
class TestEmbeddingSimilarityScorer:
    def _scorer(self, embedder, **kw: object) -> EmbeddingSimilarityScorer:
        return EmbeddingSimilarityScorer(embedder, RankingConfig(**kw))  # type: ignore[arg-type]

    def test_scores_above_threshold_only(self, make_embedder) -> None:  # type: ignore[no-untyped-def]
        embedder = make_embedder(["ai", "디자인"])
        activities = [_activity(1, "AI 공모전"), _activity(2, "디자인 스터디")]
        result = self._scorer(embedder).score("AI", activities)
        assert [r.activity.id for r in result] == [1]
        assert result[0].score == pytest.approx(100.0)

    def test_keeps_candidate_order(self, make_embedder) -> None:  # type: ignore[no-untyped-def]
        embedder = make_embedder(["ai", "디자인"])
        activities = [
            _activity(1, "AI 디자인"),
            _activity(2, "AI 해커톤"),
        ]
        result = self._scorer(embedder).score("AI", activities)
        assert [r.activity.id for r in result] == [1, 2]
        assert result[0].score < result[1].score

    def test_custom_threshold(self, make_embedder) -> None:  # type: ignore[no-untyped-def]
        embedder = make_embedder(["ai", "디자인"])
        # "AI 디자인" sits at ~0.71 similarity to "AI"
        activities = [_activity(1, "AI 디자인"), _activity(2, "AI 해커톤")]
        result = self._scorer(embedder, similarity_threshold=0.8).score("AI", activities)
        assert [r.activity.id for r in result] == [2]

    def test_query_failure_propagates(self, make_embedder) -> None:  # type: ignore[no-untyped-def]
        embedder = make_embedder(["ai"], fail_on=("쿼리",))
        with pytest.raises(ProviderError):
            self._scorer(embedder).score("쿼리", [_activity(1, "AI")])

    def test_activity_failure_skips_activity(self, make_embedder) -> None:  # type: ignore[no-untyped-def]
        embedder = make_embedder(["ai"], fail_on=("고장",))
        activities = [_activity(1, "AI 고장"), _activity(2, "AI 공모전")]
        result = self._scorer(embedder).score("AI", activities)
        assert [r.activity.id for r in result] == [2]

    def test_distinct_texts_embedded_once(self, make_embedder) -> None:  # type: ignore[no-untyped-def]
        embedder = make_embedder(["ai"])
        activities = [_activity(1, "AI"), _activity(2, "AI"), _activity(3, "AI 공모전")]
        vectors = self._scorer(embedder).embed_activities(activities)
        assert set(vectors) == {1, 2, 3}
        assert sorted(embedder.calls) == ["AI", "AI 공모전"]

    def test_concurrency_one(self, make_embedder) -> None:  # type: ignore[no-untyped-def]
        embedder = make_embedder(["ai"])
        activities = [_activity(i, f"AI {i}") for i in range(1, 6)]
        vectors = self._scorer(embedder, embedding_concurrency=1).embed_activities(activities)
        assert len(vectors) == 5

    def test_no_candidates(self, make_embedder) -> None:  # type: ignore[no-untyped-def]
        embedder = make_embedder(["ai"])
        assert self._scorer(embedder).score("AI", []) == []

    def test_similarities_raw_values(self, make_embedder) -> None:  # type: ignore[no-untyped-def]
        embedder = make_embedder(["ai", "디자인"])
        scorer = self._scorer(embedder)
        sims = scorer.similarities(
            scorer.embed_query("AI"), [_activity(1, "AI"), _activity(2, "디자인")],
        )
        assert sims[1] == pytest.approx(1.0)
        assert sims[2] == pytest.approx(0.0, abs=0.001)
