"""Core data models shared by the rating aggregation pipeline."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional


@dataclass(frozen=True, slots=True)
class RatingSignal:
    """One review source's rating for a venue, normalised to a 0-5 scale."""

    source: str
    rating: float
    review_count: int = 0
    url: Optional[str] = None
    observed_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if not 0.0 <= self.rating <= 5.0:
            raise ValueError(f"rating must be within [0, 5], got {self.rating!r}")
        if self.review_count < 0:
            raise ValueError(f"review_count must be non-negative, got {self.review_count!r}")


@dataclass(frozen=True, slots=True)
class SourceFailure:
    """A lookup that could not complete. Adapters hand it back instead of raising."""

    source: str
    message: str


@dataclass(frozen=True, slots=True)
class AggregateResult:
    score: float = 0.0
    confidence: float = 0.0


class WeightingStrategy(str, enum.Enum):
    SIMPLE_AVERAGE = "simple_average"
    REVIEW_COUNT_WEIGHTED = "review_count_weighted"
    BAYESIAN_AVERAGE = "bayesian_average"
    CONFIDENCE_WEIGHTED = "confidence_weighted"
    PLATFORM_TRUST = "platform_trust"


@dataclass(frozen=True, slots=True)
class WeightingConfig:
    strategy: WeightingStrategy = WeightingStrategy.BAYESIAN_AVERAGE
    bayesian_prior: float = 3.5
    bayesian_min_reviews: float = 10.0
    platform_weights: Optional[Dict[str, float]] = None


@dataclass(frozen=True, slots=True)
class TimeOfWeek:
    """A point in the weekly cycle. ``day`` uses 0 for Sunday, as Google Places does."""

    day: int
    minutes: int


@dataclass(frozen=True, slots=True)
class OpeningPeriod:
    """One recurring weekly interval. A period without ``close`` never closes."""

    open: TimeOfWeek
    close: Optional[TimeOfWeek] = None


@dataclass(frozen=True, slots=True)
class OpenStatus:
    is_open: bool
    open_until: Optional[str] = None


@dataclass(slots=True)
class Candidate:
    """A venue flowing through aggregate -> geo/time -> open-status -> rank."""

    id: str
    name: str
    address: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    signals: List[RatingSignal] = field(default_factory=list)
    aggregate: AggregateResult = field(default_factory=AggregateResult)
    distance_km: Optional[float] = None
    travel_time_min: Optional[float] = None
    walk_time_min: Optional[int] = None
    drive_time_min: Optional[int] = None
    price_level: Optional[str] = None
    hours: Optional[Any] = field(default=None, repr=False)
    open_now_hint: Optional[bool] = None
    status: OpenStatus = field(default_factory=lambda: OpenStatus(is_open=True))
    value_score: Optional[float] = None
    is_exceptional: bool = False

    @property
    def score(self) -> float:
        return self.aggregate.score

    @property
    def total_reviews(self) -> int:
        return sum(signal.review_count for signal in self.signals)


@dataclass(slots=True)
class FetchResult:
    """Outcome of one orchestrated fetch across every configured adapter."""

    signals: List[RatingSignal] = field(default_factory=list)
    errors: Dict[str, str] = field(default_factory=dict)
    absent: Dict[str, str] = field(default_factory=dict)
