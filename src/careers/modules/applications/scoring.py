"""
Competence Scorer

Turns a free-form skill rating map into a 0-100 suitability score:
the sum of ratings as a percentage of the maximum (5 per skill).

Only the proportional policy is implemented. Some historical intake forms
scored 100 only when every rating equalled 5 and 0 otherwise; that rule is
not supported.
"""

import math
from collections.abc import Mapping
from numbers import Real
from typing import Any

MAX_RATING = 5

# Keys the intake forms store alongside ratings (requirement notes, headers)
META_KEYS = frozenset(
    {
        "exigences",
        "exigences:",
        "compétences",
        "competences",
        "requirements",
        "requirements:",
    }
)


def is_meta_key(key: Any) -> bool:
    """True when `key` names a non-rating entry."""
    return str(key).strip().lower() in META_KEYS


def _is_rating(value: Any) -> bool:
    # bool is a Real subclass but never a rating
    if isinstance(value, bool) or not isinstance(value, Real):
        return False
    return math.isfinite(value)


def extract_ratings(skills: Mapping[str, Any] | None) -> list[float]:
    """Numeric ratings of `skills`, meta entries and non-numeric values dropped."""
    if not skills:
        return []
    return [
        float(value)
        for key, value in skills.items()
        if not is_meta_key(key) and _is_rating(value)
    ]


def compute_score(skills: Mapping[str, Any] | None) -> int:
    """
    Compute the competence score for a skill rating map.

    Args:
        skills: Mapping of skill label to rating (0-5)

    Returns:
        Integer score in [0, 100]; 0 when no rating remains after filtering
    """
    ratings = extract_ratings(skills)
    if not ratings:
        return 0

    percentage = 100 * sum(ratings) / (MAX_RATING * len(ratings))
    # Round half up (62.5 -> 63)
    score = math.floor(percentage + 0.5)
    return max(0, min(100, score))
