"""SerpAPI Google Maps adapter for Google ratings."""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional

from serpapi import GoogleSearch

from where_to_eat.core.models import RatingSignal
from where_to_eat.vendors.base import SourceAdapter, build_signal

logger = logging.getLogger(__name__)


def build_serpapi_params(query: str, api_key: str) -> Dict[str, Any]:
    """Construct SerpAPI request parameters for the Google Maps engine."""
    if not query or not query.strip():
        raise ValueError("Query must be provided for SerpAPI lookups.")

    return {
        "engine": "google_maps",
        "q": query.strip(),
        "api_key": api_key,
        "type": "search",
    }


def extract_places(data: Optional[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Pull place dicts out of a SerpAPI Google Maps payload."""
    if not data:
        return []

    items = list(_extract_items(data))
    if not items:
        place_results = data.get("place_results")
        if isinstance(place_results, list):
            items = place_results
        elif isinstance(place_results, dict):
            items = [place_results]
    return [item for item in items if isinstance(item, dict)]


def _extract_items(data: Dict[str, Any]) -> Iterable[Any]:
    """SerpAPI sometimes returns local_results as a list or nested dict."""
    local_results = data.get("local_results")
    if isinstance(local_results, list):
        return local_results
    if isinstance(local_results, dict):
        logger.debug("local_results is dict with keys: %s", list(local_results.keys())[:10])
        candidate_lists = [
            local_results.get("places"),
            local_results.get("results"),
            local_results.get("local_results"),
        ]
        for maybe in candidate_lists:
            if isinstance(maybe, list):
                return maybe
    return []


class GoogleMapsAdapter(SourceAdapter):
    """Reads the first Google Maps match's rating through SerpAPI.

    SerpAPI charges per request, so this adapter makes exactly one call per lookup.
    """

    source = "google"

    def __init__(self, api_key: str, *, search_factory: Callable[[Dict[str, Any]], Any] = GoogleSearch) -> None:
        super().__init__()
        self.api_key = api_key
        self._search_factory = search_factory

    def lookup(self, name: str, location: str) -> Optional[RatingSignal]:
        query = " ".join(filter(None, [name, location]))
        params = build_serpapi_params(query, self.api_key)
        logger.info("Calling SerpAPI for query=%s", query)
        data = self._search_factory(params).get_dict()
        if not data:
            raise ValueError("SerpAPI returned an empty payload.")
        if "error" in data:
            message = str(data.get("error") or "")
            if "hasn't returned any results" in message:
                return None
            raise RuntimeError(f"SerpAPI returned an error response: {message}")

        places = extract_places(data)
        if not places:
            logger.warning("SerpAPI response missing local_results iterable. keys=%s", list(data.keys())[:10])
            return None

        first = places[0]
        return build_signal(
            self.source,
            first.get("rating"),
            first.get("reviews_count") or first.get("reviews"),
            url=first.get("link") or first.get("website"),
        )
