"""Client utilities for the Google Places API."""

import logging
from typing import Any, Dict, List, Optional, Tuple

import requests

logger = logging.getLogger(__name__)
_SESSION = requests.Session()
_BASE_URL = "https://maps.googleapis.com/maps/api/place"
_DETAIL_FIELDS = "place_id,name,formatted_address,geometry,rating,user_ratings_total,price_level,opening_hours,types,website"


class GooglePlacesError(RuntimeError):
    """Raised when the Places API returns a non-successful response."""


def _get(endpoint: str, params: Dict[str, Any], *, allowed: Tuple[str, ...] = ("OK", "ZERO_RESULTS")) -> Dict[str, Any]:
    if not params.get("key"):
        raise GooglePlacesError("GOOGLE_API_KEY is not configured")
    response = _SESSION.get(f"{_BASE_URL}/{endpoint}/json", params=params, timeout=10)
    response.raise_for_status()
    payload = response.json()
    status = payload.get("status")
    if status not in allowed:
        logger.error("%s failed: status=%s, error_message=%s", endpoint, status, payload.get("error_message"))
        raise GooglePlacesError(payload.get("error_message") or status)
    return payload


def nearby_search(
    latitude: float,
    longitude: float,
    api_key: str,
    *,
    radius: int = 5000,
    place_type: str = "restaurant",
    keyword: Optional[str] = None,
    open_now: bool = False,
) -> List[Dict[str, Any]]:
    params: Dict[str, Any] = {
        "location": f"{latitude},{longitude}",
        "radius": radius,
        "type": place_type,
        "key": api_key,
    }
    if keyword:
        params["keyword"] = keyword
    if open_now:
        params["opennow"] = "true"
    payload = _get("nearbysearch", params)
    return payload.get("results", [])


def text_search(
    query: str,
    api_key: str,
    location: Optional[Tuple[float, float]] = None,
    pagetoken: Optional[str] = None,
) -> Dict[str, Any]:
    params: Dict[str, Any] = {"query": f"{query} restaurant", "type": "restaurant", "key": api_key}
    if location:
        params["location"] = f"{location[0]},{location[1]}"
        params["radius"] = 50000
    if pagetoken:
        params["pagetoken"] = pagetoken
    return _get("textsearch", params)


def place_details(place_id: str, api_key: str) -> Dict[str, Any]:
    params = {"place_id": place_id, "key": api_key, "fields": _DETAIL_FIELDS}
    payload = _get("details", params)
    return payload.get("result", {})
