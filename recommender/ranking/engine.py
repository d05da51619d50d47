"""Ranking engine: recommendations, semantic search, trending and similar activities.

Three independent blended-score policies:
  1. recommend              — interest affinity only, trending backfill
  2. search                 — embedding path, degrading to keyword path
  3. recommend_with_scores  — embedding + role fit + interest, per-signal fallback

Every request is stateless: candidates are pulled from the catalog, scored
per activity, folded into an id → score association, stable-sorted and
truncated. Only caller errors (InvalidArgumentError) reach the caller;
provider failures degrade to fewer or lower-quality results.
"""

import logging
import math
import sqlite3
from collections.abc import Iterable, Sequence
from enum import Enum

from recommender.core.config import BlendingConfig, Settings
from recommender.core.db import (
    fetch_candidates,
    fetch_user_interests,
    get_activity,
    get_tag_name,
    user_exists,
)
from recommender.core.errors import InvalidArgumentError
from recommender.core.schemas import (
    Activity,
    ActivityRecommendation,
    ActivityType,
    ScoredActivity,
    UserInterest,
)
from recommender.providers import get_embedding_provider
from recommender.providers.base import EmbeddingProvider
from recommender.ranking.embedding import EmbeddingSimilarityScorer
from recommender.ranking.interest import interest_affinity
from recommender.ranking.keyword import keyword_score
from recommender.ranking.role_fit import RoleFitScorer, build_role_fit_scorer
from recommender.ranking.terms import TermExpander

logger = logging.getLogger(__name__)

ScoreFold = tuple[tuple[int, float], ...]


class SearchStage(Enum):
    """States of the semantic search degradation machine.

    TRY_EMBEDDING → DONE         (≥1 embedding result)
    TRY_EMBEDDING → TRY_KEYWORD  (provider error, no provider, or no result)
    TRY_KEYWORD   → DONE
    """

    TRY_EMBEDDING = "try_embedding"
    TRY_KEYWORD = "try_keyword"
    DONE = "done"


# ---------------------------------------------------------------------------
# Pure scoring helpers
# ---------------------------------------------------------------------------


def finite(value: float) -> float:
    """Map NaN/inf to 0.0 so a broken signal contributes nothing."""
    return value if math.isfinite(value) else 0.0


def round_one(value: float) -> float:
    """Round half-up to one decimal place."""
    return math.floor(value * 10.0 + 0.5) / 10.0


def fold_scores(pairs: Iterable[tuple[int, float]]) -> ScoreFold:
    """Sum scores per activity id, keeping first-seen order."""
    totals: dict[int, float] = {}
    for activity_id, score in pairs:
        totals[activity_id] = totals.get(activity_id, 0.0) + finite(score)
    return tuple(totals.items())


def blend_recommendation_score(
    embedding_score: float,
    interest_score: float,
    role_fit_score: float | None,
    config: BlendingConfig,
) -> float:
    """Blend the 0-100 signals into one recommendation score (1 decimal)."""
    if role_fit_score is not None:
        blended = (
            config.role_embedding_weight * embedding_score
            + config.role_fit_weight * role_fit_score
            + config.role_interest_weight * interest_score
        )
    else:
        blended = (
            config.no_role_embedding_weight * embedding_score
            + config.no_role_interest_weight * interest_score
        )
    return round_one(finite(blended))


def expected_score_increase(activity: Activity, config: BlendingConfig) -> float:
    """Heuristic gain in role fit from completing the activity (1 decimal)."""
    base = config.expected_increase.get(activity.type.value, config.expected_increase_default)
    if activity.tags:
        base *= config.expected_increase_tag_multiplier
    return round_one(base)


def _top(results: Sequence[ScoredActivity], limit: int) -> list[ScoredActivity]:
    # Ties on score stay in catalog order (created_at DESC, id DESC).
    newest_first = sorted(
        results, key=lambda r: (r.activity.created_at, r.activity.id), reverse=True
    )
    return sorted(newest_first, key=lambda r: r.score, reverse=True)[:limit]


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


class RankingEngine:
    """Orchestrates the catalog, the scorers and the blending policies.

    Usage::

        engine = RankingEngine.from_settings(conn, settings)
        engine.search("AI 공모전", limit=5, user_id=1)
    """

    def __init__(
        self,
        conn: sqlite3.Connection,
        settings: Settings,
        embedder: EmbeddingProvider | None = None,
        role_fit: RoleFitScorer | None = None,
    ) -> None:
        self._conn = conn
        self._scoring = settings.scoring
        self._blending = settings.blending
        self._ranking = settings.ranking
        self._expander = TermExpander(settings.synonyms)
        self._similarity = (
            EmbeddingSimilarityScorer(embedder, settings.ranking, settings.embedding.model)
            if embedder is not None
            else None
        )
        self._role_fit = role_fit

    @classmethod
    def from_settings(cls, conn: sqlite3.Connection, settings: Settings) -> "RankingEngine":
        """Build an engine with the providers named in settings."""
        embedder = (
            get_embedding_provider(settings.embedding.provider)
            if settings.embedding.provider
            else None
        )
        role_fit = build_role_fit_scorer(conn, settings.role_fit)
        return cls(conn, settings, embedder=embedder, role_fit=role_fit)

    @property
    def expander(self) -> TermExpander:
        return self._expander

    # -- interest-based recommendation --------------------------------------

    def recommend(
        self,
        user_id: int,
        limit: int | None = None,
        activity_type: str | ActivityType | None = None,
        campus_only: bool | None = None,
    ) -> list[Activity]:
        """Recommend activities ranked by interest affinity.

        Users without interests get trending activities. Short result sets
        are topped up from trending, skipping already-selected activities.
        """
        limit = self._limit(limit)
        kind = ActivityType.parse(activity_type)
        self._require_user(user_id)

        interests = fetch_user_interests(self._conn, user_id)
        if not interests:
            logger.info("User %d has no interests — returning trending", user_id)
            return self.trending(limit, kind)

        candidates = fetch_candidates(
            self._conn,
            activity_type=kind,
            is_campus=True if campus_only else None,
            size=limit * self._ranking.recommend_overfetch,
        )
        by_id = {a.id: a for a in candidates}
        scores = fold_scores(
            (a.id, interest_affinity(a, interests, self._scoring)) for a in candidates
        )
        ranked = sorted(scores, key=lambda p: p[1], reverse=True)
        selected = [by_id[activity_id] for activity_id, score in ranked if score > 0][:limit]

        if len(selected) < limit:
            selected = self._backfill(selected, limit, kind)

        logger.info("Recommended %d activities for user %d", len(selected), user_id)
        return selected

    # -- semantic search ----------------------------------------------------

    def search(
        self,
        query: str,
        limit: int | None = None,
        user_id: int | None = None,
    ) -> list[ScoredActivity]:
        """Semantic search with graceful degradation to keyword matching.

        An unknown ``user_id`` simply contributes no interests.

        Raises:
            InvalidArgumentError: If the query is blank.
        """
        if query is None or not query.strip():
            msg = "search query must not be blank"
            raise InvalidArgumentError(msg)
        limit = self._limit(limit)
        interests = fetch_user_interests(self._conn, user_id) if user_id is not None else []

        results: list[ScoredActivity] = []
        stage = SearchStage.TRY_EMBEDDING
        while stage is not SearchStage.DONE:
            if stage is SearchStage.TRY_EMBEDDING:
                results = self._embedding_search(query, limit, interests)
                if results:
                    logger.info("Search '%s': %d embedding results", query, len(results))
                    stage = SearchStage.DONE
                else:
                    stage = SearchStage.TRY_KEYWORD
            elif stage is SearchStage.TRY_KEYWORD:
                results = self._keyword_search(query, limit, interests)
                logger.info("Search '%s': %d keyword results", query, len(results))
                stage = SearchStage.DONE

        return results

    def _embedding_search(
        self,
        query: str,
        limit: int,
        interests: Sequence[UserInterest],
    ) -> list[ScoredActivity]:
        """Embedding path. Returns [] on any provider failure."""
        if self._similarity is None:
            logger.debug("No embedding provider configured — skipping embedding path")
            return []

        candidates = fetch_candidates(
            self._conn, size=limit * self._ranking.embedding_overfetch,
        )
        try:
            scored = self._similarity.score(query, candidates)
        except Exception:
            logger.warning(
                "Embedding search failed for '%s' — falling back to keyword search",
                query,
                exc_info=True,
            )
            return []

        if interests:
            b = self._blending
            scored = [
                ScoredActivity(
                    activity=s.activity,
                    score=finite(
                        b.search_embedding_weight * s.score
                        + b.search_interest_weight
                        * (
                            interest_affinity(s.activity, interests, self._scoring)
                            * b.search_interest_scale
                        )
                    ),
                )
                for s in scored
            ]
        return _top(scored, limit)

    def _keyword_search(
        self,
        query: str,
        limit: int,
        interests: Sequence[UserInterest],
    ) -> list[ScoredActivity]:
        """Keyword path: expand terms, score per term, sum per activity id."""
        terms = self._expander.expand(query)
        page_size = limit * self._ranking.keyword_overfetch

        by_id: dict[int, Activity] = {}
        pairs: list[tuple[int, float]] = []
        for term in terms:
            for activity in fetch_candidates(self._conn, text=term, size=page_size):
                by_id.setdefault(activity.id, activity)
                pairs.append((activity.id, keyword_score(activity, term, self._scoring)))

        totals = fold_scores(pairs)
        if interests:
            weight = self._blending.keyword_interest_weight
            totals = tuple(
                (
                    activity_id,
                    score
                    + finite(interest_affinity(by_id[activity_id], interests, self._scoring))
                    * weight,
                )
                for activity_id, score in totals
            )

        results = [ScoredActivity(activity=by_id[i], score=s) for i, s in totals]
        return _top(results, limit)

    # -- trending / similar ---------------------------------------------------

    def trending(
        self,
        limit: int | None = None,
        activity_type: str | ActivityType | None = None,
    ) -> list[Activity]:
        """Newest activities, optionally of one type. No scoring."""
        return fetch_candidates(
            self._conn,
            activity_type=ActivityType.parse(activity_type),
            size=self._limit(limit),
        )

    def similar_to(self, activity_id: int, limit: int | None = None) -> list[Activity]:
        """Newest activities sharing the type and campus flag, excluding itself.

        Raises:
            InvalidArgumentError: If the activity does not exist.
        """
        limit = self._limit(limit)
        target = get_activity(self._conn, activity_id) if activity_id is not None else None
        if target is None:
            msg = f"Activity not found: {activity_id}"
            raise InvalidArgumentError(msg)

        candidates = fetch_candidates(
            self._conn,
            activity_type=target.type,
            is_campus=target.is_campus,
            size=limit + 1,
        )
        return [a for a in candidates if a.id != target.id][:limit]

    # -- score-annotated recommendation --------------------------------------

    def recommend_with_scores(
        self,
        user_id: int,
        limit: int | None = None,
        activity_type: str | ActivityType | None = None,
        campus_only: bool | None = None,
        target_role: str | None = None,
    ) -> list[ActivityRecommendation]:
        """Recommendations annotated with blended, role-fit and gain scores.

        A failing signal is dropped (embedding → 0, role fit → absent); a
        candidate whose scoring fails outright is skipped.
        """
        limit = self._limit(limit)
        self._require_user(user_id)
        role = target_role.strip() if target_role and target_role.strip() else None

        candidates = self.recommend(
            user_id,
            limit * self._ranking.scored_overfetch,
            activity_type,
            campus_only,
        )
        interests = fetch_user_interests(self._conn, user_id)
        role_fit = self._role_fit_score(user_id, role) if role else None
        similarities = self._profile_similarities(role, interests, candidates)

        recommendations: list[ActivityRecommendation] = []
        for activity in candidates:
            try:
                recommendations.append(
                    self._annotate(
                        activity,
                        interests,
                        similarities.get(activity.id, 0.0),
                        role_fit,
                        role,
                    )
                )
            except Exception:
                logger.warning(
                    "Failed to score activity %d — skipping", activity.id, exc_info=True,
                )

        recommendations.sort(key=lambda r: r.recommendation_score, reverse=True)
        return recommendations[:limit]

    def _annotate(
        self,
        activity: Activity,
        interests: Sequence[UserInterest],
        similarity: float,
        role_fit: float | None,
        role: str | None,
    ) -> ActivityRecommendation:
        interest_score = finite(
            interest_affinity(activity, interests, self._scoring) * self._blending.interest_scale
        )
        embedding_score = finite(similarity * 100.0)
        return ActivityRecommendation(
            activity=activity,
            recommendation_score=blend_recommendation_score(
                embedding_score, interest_score, role_fit, self._blending,
            ),
            interest_score=interest_score,
            embedding_score=embedding_score,
            role_fit_score=role_fit,
            expected_score_increase=(
                expected_score_increase(activity, self._blending) if role else None
            ),
        )

    def _role_fit_score(self, user_id: int, role: str) -> float | None:
        if self._role_fit is None:
            return None
        try:
            fit = self._role_fit.score(user_id, role)
        except Exception as e:
            logger.warning(
                "Failed to calculate role fit for user %d and role '%s': %s",
                user_id, role, e,
            )
            return None
        if not math.isfinite(fit):
            logger.warning("Role fit for user %d is not finite — ignoring", user_id)
            return None
        return fit

    def _profile_similarities(
        self,
        role: str | None,
        interests: Sequence[UserInterest],
        candidates: Sequence[Activity],
    ) -> dict[int, float]:
        """Cosine similarity of each candidate to the user's profile query."""
        if self._similarity is None or not candidates:
            return {}

        parts = [role] if role else []
        for interest in interests:
            name = get_tag_name(self._conn, interest.tag_id)
            if name:
                parts.append(name)
        user_query = " ".join(parts).strip()
        if not user_query:
            return {}

        try:
            query_vector = self._similarity.embed_query(user_query)
        except Exception as e:
            logger.warning("Profile embedding failed — embedding scores set to 0: %s", e)
            return {}
        return self._similarity.similarities(query_vector, candidates)

    # -- helpers ----------------------------------------------------------------

    def _backfill(
        self,
        selected: list[Activity],
        limit: int,
        kind: ActivityType | None,
    ) -> list[Activity]:
        chosen = {a.id for a in selected}
        result = list(selected)
        for activity in self.trending(limit + len(selected), kind):
            if len(result) >= limit:
                break
            if activity.id not in chosen:
                chosen.add(activity.id)
                result.append(activity)
        return result

    def _require_user(self, user_id: int | None) -> None:
        if user_id is None or not user_exists(self._conn, user_id):
            msg = f"User not found: {user_id}"
            raise InvalidArgumentError(msg)

    def _limit(self, limit: int | None) -> int:
        if limit is None or limit <= 0:
            return self._ranking.default_limit
        return limit
