"""Role-fit scoring: 0-100 compatibility between a user and a target job role."""

import logging
import sqlite3
from abc import ABC, abstractmethod

from recommender.core.config import RoleFitConfig
from recommender.core.db import fetch_user_interests, get_tag_name
from recommender.providers import get_llm_provider
from recommender.providers.base import LLMProvider, parse_json_response

logger = logging.getLogger(__name__)

_ROLE_FIT_SYSTEM_PROMPT = (
    "You are a career advisor evaluating how well a student fits a target job role.\n\n"
    "Given the student's interest topics (with affinity weights, higher = stronger) "
    "and a target role, score the fit on a 0-100 scale:\n"
    "  90-100: Interests cover the role's core skills and domain\n"
    "  70-89:  Strong overlap, minor gaps\n"
    "  50-69:  Partial overlap\n"
    "  30-49:  Weak overlap\n"
    "  0-29:   Unrelated interests\n\n"
    "If the target role is not a recognizable job role, set \"recognized\" to false.\n\n"
    'Return ONLY a JSON object (no markdown, no explanation):\n'
    '{"recognized": <true|false>, "score": <integer 0-100>, '
    '"reasoning": "<1-2 sentence explanation>"}'
)


class RoleFitScorer(ABC):
    """Black-box role-fit scorer."""

    @abstractmethod
    def score(self, user_id: int, target_role: str) -> float:
        """Return a 0-100 fit score for (user, target role).

        Raises:
            ValueError: If the role is blank or unrecognized.
            Exception: Any backend failure; callers treat it as an absent signal.
        """


def _build_user_prompt(target_role: str, interests: list[tuple[str, float]]) -> str:
    if interests:
        lines = "\n".join(f"- {name} (weight {weight:g})" for name, weight in interests)
    else:
        lines = "- none recorded"
    return f"TARGET ROLE\n{target_role}\n\nSTUDENT INTERESTS\n{lines}\n"


def _parse_role_fit(raw_text: str) -> tuple[float, str]:
    """Parse the LLM JSON answer into (score, reasoning). Clamps score to 0-100."""
    data = parse_json_response(raw_text)

    if data.get("recognized") is False:
        msg = f"Unrecognized target role: {data.get('reasoning', '')}".strip()
        raise ValueError(msg)
    if "score" not in data:
        msg = "LLM response missing 'score' field"
        raise ValueError(msg)

    score = max(0.0, min(100.0, float(data["score"])))
    return score, str(data.get("reasoning", ""))


class LLMRoleFitScorer(RoleFitScorer):
    """Asks a chat LLM to rate a user's interest profile against a role."""

    def __init__(
        self,
        conn: sqlite3.Connection,
        provider: LLMProvider,
        model: str | None = None,
    ) -> None:
        self._conn = conn
        self._provider = provider
        self._model = model

    def score(self, user_id: int, target_role: str) -> float:
        if not target_role or not target_role.strip():
            msg = "target role must not be blank"
            raise ValueError(msg)

        interests: list[tuple[str, float]] = []
        for interest in fetch_user_interests(self._conn, user_id):
            name = get_tag_name(self._conn, interest.tag_id)
            if name:
                interests.append((name, interest.score))
        prompt = _build_user_prompt(target_role.strip(), interests)
        raw = self._provider.complete(
            prompt, model=self._model, system=_ROLE_FIT_SYSTEM_PROMPT,
        )
        fit, reasoning = _parse_role_fit(raw)
        logger.debug("Role fit for user %d / '%s': %.1f (%s)", user_id, target_role, fit, reasoning)
        return fit


def build_role_fit_scorer(
    conn: sqlite3.Connection,
    config: RoleFitConfig,
) -> RoleFitScorer | None:
    """Create the configured role-fit scorer, or None when disabled."""
    if not config.enabled:
        return None
    return LLMRoleFitScorer(conn, get_llm_provider(config.provider), config.model)
