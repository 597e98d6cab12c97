"""Foursquare Places v3 adapter."""

import logging
from typing import Optional

import requests

from where_to_eat.core.models import RatingSignal
from where_to_eat.vendors.base import REQUEST_TIMEOUT, SourceAdapter, SourceRateLimited, build_signal, safe_float

logger = logging.getLogger(__name__)
_SEARCH_URL = "https://api.foursquare.com/v3/places/search"
_RESTAURANT_CATEGORY = "13065"


class FoursquareAdapter(SourceAdapter):
    """Foursquare rates venues out of 10; signals are rescaled to 5."""

    source = "foursquare"

    def __init__(self, api_key: str, session: Optional[requests.Session] = None) -> None:
        super().__init__(session)
        self.api_key = api_key if api_key.startswith("fsq") else f"fsq{api_key}"

    def lookup(self, name: str, location: str) -> Optional[RatingSignal]:
        params = {
            "query": name,
            "near": location,
            "categories": _RESTAURANT_CATEGORY,
            "limit": 1,
            "fields": "fsq_id,name,rating,stats,location,link",
        }
        response = self.session.get(
            _SEARCH_URL,
            params=params,
            headers={"Authorization": self.api_key, "Accept": "application/json"},
            timeout=REQUEST_TIMEOUT,
        )
        if response.status_code == 429:
            raise SourceRateLimited("Foursquare returned 429")
        response.raise_for_status()

        results = response.json().get("results") or []
        if not results:
            return None

        place = results[0]
        raw_rating = safe_float(place.get("rating"))
        if raw_rating is None:
            return None
        stats = place.get("stats") or {}
        logger.info("Foursquare found: %s - %s/10 (%s ratings)", place.get("name"), raw_rating, stats.get("total_ratings"))
        return build_signal(self.source, raw_rating / 2, stats.get("total_ratings"))
