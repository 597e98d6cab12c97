"""TripAdvisor Content API adapter."""

import logging
from typing import Optional

import requests

from where_to_eat.core.models import RatingSignal
from where_to_eat.core.rate_limit import RateLimiter
from where_to_eat.vendors.base import REQUEST_TIMEOUT, SourceAdapter, SourceRateLimited, build_signal

logger = logging.getLogger(__name__)
_BASE_URL = "https://api.content.tripadvisor.com/api/v1/location"


class TripAdvisorAdapter(SourceAdapter):
    """Two calls per lookup (search, then details), spaced by a shared rate limiter."""

    source = "tripadvisor"

    def __init__(
        self,
        api_key: str,
        rate_limiter: Optional[RateLimiter] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        super().__init__(session)
        self.api_key = api_key
        self.rate_limiter = rate_limiter

    def _get(self, url: str, params: dict) -> Optional[dict]:
        if self.rate_limiter is not None:
            self.rate_limiter.wait()
        response = self.session.get(
            url,
            params={"key": self.api_key, "language": "en", **params},
            headers={"Accept": "application/json"},
            timeout=REQUEST_TIMEOUT,
        )
        if response.status_code == 429:
            raise SourceRateLimited(f"TripAdvisor returned 429 for {url}")
        response.raise_for_status()
        return response.json()

    def lookup(self, name: str, location: str) -> Optional[RatingSignal]:
        search = self._get(
            f"{_BASE_URL}/search",
            {"searchQuery": f"{name} restaurant {location}".strip(), "category": "restaurants"},
        )
        if not search or not search.get("data"):
            return None

        location_id = search["data"][0].get("location_id")
        if not location_id:
            return None

        details = self._get(f"{_BASE_URL}/{location_id}/details", {})
        if not details:
            return None

        signal = build_signal(self.source, details.get("rating"), details.get("num_reviews"), url=details.get("web_url"))
        if signal is not None:
            logger.info("TripAdvisor found: %s - %s (%s reviews)", details.get("name"), signal.rating, signal.review_count)
        return signal
