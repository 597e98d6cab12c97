"""Rating aggregation strategies and the confidence heuristic."""

from __future__ import annotations

import logging
import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Callable, Dict, List, Mapping, Optional, Sequence

from where_to_eat.core.models import AggregateResult, RatingSignal, WeightingConfig, WeightingStrategy

logger = logging.getLogger(__name__)

DEFAULT_PLATFORM_WEIGHTS: Dict[str, float] = {
    "google": 1.0,
    "yelp": 1.0,
    "tripadvisor": 1.0,
    "foursquare": 0.9,
    "zomato": 0.8,
}

STRATEGY_DESCRIPTIONS: Dict[WeightingStrategy, str] = {
    WeightingStrategy.SIMPLE_AVERAGE: "Equal weight to all platforms. Simple but ignores review volume.",
    WeightingStrategy.REVIEW_COUNT_WEIGHTED: "Platforms with more reviews have more influence. Favors popular spots.",
    WeightingStrategy.BAYESIAN_AVERAGE: "Adjusts for low review counts. Prevents 5-star with 2 reviews from dominating.",
    WeightingStrategy.CONFIDENCE_WEIGHTED: "Uses log-scale review counts. Balanced approach to volume vs. rating.",
    WeightingStrategy.PLATFORM_TRUST: "You assign custom weights per platform based on your trust level.",
}


def round2(value: float) -> float:
    """Round half-up to two decimals (``round`` would use banker's rounding)."""
    return float(Decimal(repr(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def _weighted_mean(signals: Sequence[RatingSignal], weights: Sequence[float]) -> float:
    total_weight = sum(weights)
    if total_weight <= 0:
        return simple_average(signals)
    return sum(signal.rating * weight for signal, weight in zip(signals, weights)) / total_weight


def simple_average(signals: Sequence[RatingSignal]) -> float:
    if not signals:
        return 0.0
    return sum(signal.rating for signal in signals) / len(signals)


def review_count_weighted(signals: Sequence[RatingSignal]) -> float:
    if not signals:
        return 0.0
    total_reviews = sum(signal.review_count for signal in signals)
    if total_reviews == 0:
        return simple_average(signals)
    return sum(signal.rating * signal.review_count for signal in signals) / total_reviews


def bayesian_average(signals: Sequence[RatingSignal], prior: float = 3.5, min_reviews: float = 10.0) -> float:
    """Shrink each source toward ``prior`` by its own review count, then average.

    ``min_reviews`` is the pseudo-count C in ``(C * prior + n * rating) / (C + n)``.
    """
    if not signals:
        return 0.0
    shrunk: List[float] = []
    for signal in signals:
        n = signal.review_count
        denominator = min_reviews + n
        shrunk.append(signal.rating if denominator <= 0 else (min_reviews * prior + n * signal.rating) / denominator)
    return sum(shrunk) / len(shrunk)


def confidence_weighted(signals: Sequence[RatingSignal]) -> float:
    if not signals:
        return 0.0
    weights = [math.log10(signal.review_count + 1) + 1 for signal in signals]
    return _weighted_mean(signals, weights)


def platform_trust(signals: Sequence[RatingSignal], platform_weights: Optional[Mapping[str, float]] = None) -> float:
    if not signals:
        return 0.0
    table = DEFAULT_PLATFORM_WEIGHTS if platform_weights is None else platform_weights
    weights = [float(table.get(signal.source, 1.0)) for signal in signals]
    return _weighted_mean(signals, weights)


_STRATEGIES: Dict[WeightingStrategy, Callable[[Sequence[RatingSignal], WeightingConfig], float]] = {
    WeightingStrategy.SIMPLE_AVERAGE: lambda signals, _: simple_average(signals),
    WeightingStrategy.REVIEW_COUNT_WEIGHTED: lambda signals, _: review_count_weighted(signals),
    WeightingStrategy.BAYESIAN_AVERAGE: lambda signals, config: bayesian_average(
        signals, config.bayesian_prior, config.bayesian_min_reviews
    ),
    WeightingStrategy.CONFIDENCE_WEIGHTED: lambda signals, _: confidence_weighted(signals),
    WeightingStrategy.PLATFORM_TRUST: lambda signals, config: platform_trust(signals, config.platform_weights),
}


def aggregate(signals: Sequence[RatingSignal], config: Optional[WeightingConfig] = None) -> float:
    """Combine rating signals into one score under the configured strategy."""
    if not signals:
        return 0.0
    config = config or WeightingConfig()
    strategy = _STRATEGIES.get(WeightingStrategy(config.strategy), _STRATEGIES[WeightingStrategy.SIMPLE_AVERAGE])
    return round2(strategy(signals, config))


def confidence(signals: Sequence[RatingSignal]) -> float:
    """Heuristic 0-1 trust in an aggregate: source count, review volume, agreement."""
    if not signals:
        return 0.0

    source_factor = min(len(signals) / 4, 1.0)

    total_reviews = sum(signal.review_count for signal in signals)
    volume_factor = min(math.log10(total_reviews + 1) / 3, 1.0)

    ratings = [signal.rating for signal in signals]
    mean = sum(ratings) / len(ratings)
    variance = sum((rating - mean) ** 2 for rating in ratings) / len(ratings)
    consistency_factor = max(0.0, 1 - variance / 2)

    return round2(source_factor * 0.3 + volume_factor * 0.4 + consistency_factor * 0.3)


def aggregate_result(signals: Sequence[RatingSignal], config: Optional[WeightingConfig] = None) -> AggregateResult:
    return AggregateResult(score=aggregate(signals, config), confidence=confidence(signals))


def describe_strategy(strategy: WeightingStrategy) -> str:
    return STRATEGY_DESCRIPTIONS[WeightingStrategy(strategy)]
