"""Interest affinity: how well an activity's tags match a user's interests."""

from collections.abc import Sequence

from recommender.core.config import ScoringConfig
from recommender.core.schemas import Activity, ActivityType, UserInterest


def interest_affinity(
    activity: Activity,
    interests: Sequence[UserInterest],
    config: ScoringConfig,
) -> float:
    """Return the raw (unscaled) affinity of a user for an activity.

    Every (activity tag, user interest) pair sharing a tag id adds
    ``interest.score * interest_tag_weight``; STUDY, CONTEST and campus
    activities get small flat bonuses. A user without interests scores 0.

    The output stays on a ~0-2 scale; callers apply their own multipliers.
    """
    if not interests:
        return 0.0

    score = 0.0
    for tag in activity.tags:
        for interest in interests:
            if tag.id == interest.tag_id:
                score += interest.score * config.interest_tag_weight

    if activity.type is ActivityType.STUDY:
        score += config.study_bonus
    elif activity.type is ActivityType.CONTEST:
        score += config.contest_bonus

    if activity.is_campus:
        score += config.campus_bonus

    return score
