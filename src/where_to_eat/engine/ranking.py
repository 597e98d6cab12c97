"""Value scoring and ranking of candidates against a travel-time ceiling.

A closer good venue usually beats a slightly better one far away, so the
rating is discounted by a time factor. Exceptional venues (very high ratings
backed by many reviews, or award references) get a bonus and a gentler
penalty past the ceiling, and are allowed to exceed it.
"""

from __future__ import annotations

import logging
from typing import Iterable, List

from where_to_eat.core.models import Candidate
from where_to_eat.engine.aggregation import round2

logger = logging.getLogger(__name__)

EXCEPTIONAL_THRESHOLD = 4.8
EXCEPTIONAL_MIN_REVIEWS = 500
NEAR_PERFECT_THRESHOLD = 4.9
NEAR_PERFECT_MIN_REVIEWS = 200
AWARD_KEYWORDS = ("michelin", "james beard", "award", "starred")

EXCEPTIONAL_BONUS = 0.2
CEILING_FACTOR = 0.7
MIN_TIME_FACTOR = 0.3


def is_exceptional(
    candidate: Candidate,
    threshold: float = EXCEPTIONAL_THRESHOLD,
    min_reviews: int = EXCEPTIONAL_MIN_REVIEWS,
) -> bool:
    score = candidate.score
    total_reviews = candidate.total_reviews

    if score >= threshold and total_reviews >= min_reviews:
        return True
    if score >= NEAR_PERFECT_THRESHOLD and total_reviews >= NEAR_PERFECT_MIN_REVIEWS:
        return True

    name = (candidate.name or "").lower()
    return any(keyword in name for keyword in AWARD_KEYWORDS)


def time_factor(travel_time_min: float, max_travel_time_min: float, exceptional: bool) -> float:
    if max_travel_time_min <= 0:
        raise ValueError("max_travel_time_min must be positive")

    if travel_time_min <= max_travel_time_min:
        factor = 1 - (travel_time_min / max_travel_time_min) * 0.3
    else:
        overtime = travel_time_min - max_travel_time_min
        slope = 0.1 if exceptional else 0.4
        factor = CEILING_FACTOR - (overtime / max_travel_time_min) * slope
    return max(MIN_TIME_FACTOR, factor)


def value_score(rating: float, travel_time_min: float, max_travel_time_min: float, exceptional: bool) -> float:
    effective_rating = rating + EXCEPTIONAL_BONUS if exceptional else rating
    return round2(effective_rating * time_factor(travel_time_min, max_travel_time_min, exceptional))


def rank_candidate(candidate: Candidate, max_travel_time_min: float) -> Candidate:
    """Set the exceptional flag and value score in place; returns the candidate."""
    candidate.is_exceptional = is_exceptional(candidate)
    if candidate.travel_time_min is None:
        candidate.value_score = None
    else:
        candidate.value_score = value_score(
            candidate.score,
            candidate.travel_time_min,
            max_travel_time_min,
            candidate.is_exceptional,
        )
    return candidate


def rank_and_filter(candidates: Iterable[Candidate], max_travel_time_min: float) -> List[Candidate]:
    """Open venues within reach (or exceptional), best value first.

    ``sorted`` is stable, so equal value scores keep their input order. Venues
    with unknown travel time are kept and sort as zero value.
    """
    kept: List[Candidate] = []
    for candidate in candidates:
        if not candidate.status.is_open:
            logger.debug("Dropping %s: closed", candidate.name)
            continue
        if (
            candidate.travel_time_min is not None
            and candidate.travel_time_min > max_travel_time_min
            and not candidate.is_exceptional
        ):
            logger.debug("Dropping %s: %s min exceeds ceiling", candidate.name, candidate.travel_time_min)
            continue
        kept.append(candidate)
    return sorted(kept, key=lambda candidate: candidate.value_score or 0.0, reverse=True)
