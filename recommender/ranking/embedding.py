"""Embedding similarity scoring against an external embedding provider.

One embedding per distinct text per request. The query embedding is a hard
prerequisite: if it fails the exception propagates so the caller can degrade.
Per-activity failures are logged and that activity is skipped.
"""

import logging
import math
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor

import numpy as np

from recommender.core.config import RankingConfig
from recommender.core.schemas import Activity, ScoredActivity
from recommender.providers.base import EmbeddingProvider

logger = logging.getLogger(__name__)


def cosine_similarity(v1: Sequence[float], v2: Sequence[float]) -> float:
    """Cosine similarity in [-1, 1]; 0.0 for empty, zero-norm or mismatched vectors."""
    if len(v1) == 0 or len(v2) == 0 or len(v1) != len(v2):
        return 0.0
    a = np.asarray(v1, dtype=float)
    b = np.asarray(v2, dtype=float)
    norm_product = float(np.linalg.norm(a) * np.linalg.norm(b))
    if norm_product == 0.0 or not math.isfinite(norm_product):
        return 0.0
    similarity = float(np.dot(a, b) / norm_product)
    return similarity if math.isfinite(similarity) else 0.0


def compose_activity_text(activity: Activity, content_prefix_chars: int = 500) -> str:
    """Title, summary, content prefix and tag names, space-joined."""
    parts = [
        activity.title,
        activity.summary,
        activity.content[:content_prefix_chars],
        *activity.tag_names,
    ]
    return " ".join(p.strip() for p in parts if p and p.strip())


class EmbeddingSimilarityScorer:
    """Scores activities by cosine similarity to a query embedding.

    Activity embeddings are requested concurrently, bounded by
    ``RankingConfig.embedding_concurrency``.
    """

    def __init__(
        self,
        provider: EmbeddingProvider,
        config: RankingConfig,
        model: str | None = None,
    ) -> None:
        self._provider = provider
        self._config = config
        self._model = model

    def embed_query(self, text: str) -> list[float]:
        """Embed the query text. Provider errors propagate."""
        return self._provider.embed(text, self._model)

    def embed_activities(self, activities: Sequence[Activity]) -> dict[int, list[float]]:
        """Embed each activity's composed text; failed activities are absent.

        Identical texts are embedded once.
        """
        texts = {
            a.id: compose_activity_text(a, self._config.content_prefix_chars)
            for a in activities
        }
        distinct = [t for t in dict.fromkeys(texts.values()) if t]
        if not distinct:
            return {}

        workers = min(self._config.embedding_concurrency, len(distinct))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="embed") as pool:
            vectors = dict(zip(distinct, pool.map(self._embed_or_none, distinct)))

        result: dict[int, list[float]] = {}
        for activity_id, text in texts.items():
            vector = vectors.get(text)
            if vector is None:
                logger.warning("Skipping activity %d: no embedding available", activity_id)
                continue
            result[activity_id] = vector
        return result

    def similarities(
        self,
        query_vector: Sequence[float],
        activities: Sequence[Activity],
    ) -> dict[int, float]:
        """Raw cosine similarity per activity id (failed activities absent)."""
        vectors = self.embed_activities(activities)
        return {
            activity_id: cosine_similarity(query_vector, vector)
            for activity_id, vector in vectors.items()
        }

    def score(self, query: str, activities: Sequence[Activity]) -> list[ScoredActivity]:
        """Return activities with similarity above the threshold, scored 0-100.

        Output keeps candidate order; activities at or below the threshold are
        dropped, not scored as zero.

        Raises:
            Exception: Whatever the provider raised for the query embedding.
        """
        query_vector = self.embed_query(query)
        sims = self.similarities(query_vector, activities)

        threshold = self._config.similarity_threshold
        scored = [
            ScoredActivity(activity=a, score=sims[a.id] * 100.0)
            for a in activities
            if a.id in sims and sims[a.id] > threshold
        ]
        logger.debug(
            "Embedding path: %d/%d activities above %.2f",
            len(scored), len(activities), threshold,
        )
        return scored

    def _embed_or_none(self, text: str) -> list[float] | None:
        try:
            return self._provider.embed(text, self._model)
        except Exception as e:
            logger.warning("Embedding request failed: %s", e)
            return None
