"""Shared capability interface for review source adapters."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Optional, Union

import requests

from where_to_eat.core.models import RatingSignal, SourceFailure

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 10
USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

FetchOutcome = Union[RatingSignal, SourceFailure, None]


class SourceRateLimited(RuntimeError):
    """Raised from ``lookup`` when the source answered 429."""


class SourceAdapter(ABC):
    """Looks up one venue on one review source.

    ``fetch`` never raises. A venue the source does not know comes back as
    ``None``; throttling, HTTP failures and unparsable payloads come back as a
    ``SourceFailure`` carrying the reason. Subclasses implement ``lookup`` and
    may raise freely from it.
    """

    source: str = ""

    def __init__(self, session: Optional[requests.Session] = None) -> None:
        self.session = session or requests.Session()

    def fetch(self, name: str, location: str) -> FetchOutcome:
        try:
            signal = self.lookup(name, location)
        except SourceRateLimited as exc:
            logger.info("%s rate limited the lookup for %r: %s", self.source, name, exc)
            return SourceFailure(self.source, str(exc) or "rate limited")
        except Exception as exc:  # noqa: BLE001
            logger.warning("%s lookup failed for %r in %r: %s", self.source, name, location, exc)
            return SourceFailure(self.source, str(exc) or type(exc).__name__)
        if signal is None:
            logger.info("%s: no results for %r in %r", self.source, name, location)
        return signal

    @abstractmethod
    def lookup(self, name: str, location: str) -> Optional[RatingSignal]:
        """Return a rating signal for the venue or ``None`` when it is not found."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(source={self.source!r})"


def build_signal(source: str, rating: Any, review_count: Any, url: Optional[str] = None) -> Optional[RatingSignal]:
    """Build a signal from loosely typed vendor fields; ``None`` when the rating is unusable."""
    rating_val = safe_float(rating)
    if rating_val is None or rating_val <= 0 or rating_val > 5:
        return None
    return RatingSignal(
        source=source,
        rating=rating_val,
        review_count=max(safe_int(review_count) or 0, 0),
        url=url,
        observed_at=datetime.now(timezone.utc),
    )


def safe_float(value: Any) -> Optional[float]:
    try:
        if value is None:
            return None
        return float(value)
    except (TypeError, ValueError):
        return None


def safe_int(value: Any) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, (int, float)):
        return int(value)

    if isinstance(value, str):
        digits = "".join(ch for ch in value if ch.isdigit())
        if digits:
            try:
                return int(digits)
            except ValueError:
                return None
    return None
