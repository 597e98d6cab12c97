"""Yelp Fusion API adapter."""

import logging
from typing import Optional

import requests

from where_to_eat.core.models import RatingSignal
from where_to_eat.vendors.base import REQUEST_TIMEOUT, SourceAdapter, SourceRateLimited, build_signal

logger = logging.getLogger(__name__)
_SEARCH_URL = "https://api.yelp.com/v3/businesses/search"


class YelpAdapter(SourceAdapter):
    source = "yelp"

    def __init__(self, api_key: str, session: Optional[requests.Session] = None) -> None:
        super().__init__(session)
        self.api_key = api_key

    def lookup(self, name: str, location: str) -> Optional[RatingSignal]:
        params = {
            "term": name,
            "location": location,
            "limit": 1,
            "categories": "restaurants,food",
        }
        response = self.session.get(
            _SEARCH_URL,
            params=params,
            headers={"Authorization": f"Bearer {self.api_key}"},
            timeout=REQUEST_TIMEOUT,
        )
        if response.status_code == 429:
            raise SourceRateLimited("Yelp returned 429")
        response.raise_for_status()

        businesses = response.json().get("businesses") or []
        if not businesses:
            return None

        business = businesses[0]
        logger.info(
            "Yelp found: %s - %s (%s reviews)",
            business.get("name"),
            business.get("rating"),
            business.get("review_count"),
        )
        return build_signal(self.source, business.get("rating"), business.get("review_count"), url=business.get("url"))
