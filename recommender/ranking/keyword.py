"""Keyword relevance scoring: substring matches on title, content and tags.

Per term (case-insensitive):
  +title_contains_bonus   if the title contains the term
  +content_contains_bonus if the content contains the term
  +title_exact_bonus      if the title equals the term (stacks with contains)
  +tag_contains_bonus     for every tag whose name contains the term

The search engine sums per-term scores for each activity, so a query that
hits through both its literal form and a synonym outranks a single hit.
"""

from recommender.core.config import ScoringConfig
from recommender.core.schemas import Activity


def keyword_score(activity: Activity, term: str, config: ScoringConfig) -> float:
    """Score one activity against one term."""
    needle = term.lower().strip()
    if not needle:
        return 0.0

    score = 0.0
    title = activity.title.lower()
    content = activity.content.lower()

    if needle in title:
        score += config.title_contains_bonus
    if needle in content:
        score += config.content_contains_bonus
    if title.strip() == needle:
        score += config.title_exact_bonus

    for name in activity.tag_names:
        if needle in name.lower():
            score += config.tag_contains_bonus

    return score
