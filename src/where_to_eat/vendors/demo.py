"""Offline fixture collaborators so the full pipeline runs without API keys.

``DemoPlaces`` stands in for the ``google_places`` module and ``DemoAdapter``
for the live review sources. Both serve a handful of New York venues with
free-text weekly hours.
"""

import logging
import re
from typing import Any, Dict, List, Optional, Tuple

from where_to_eat.core.config import ALL_SOURCES
from where_to_eat.core.models import RatingSignal
from where_to_eat.vendors.base import SourceAdapter, build_signal

logger = logging.getLogger(__name__)

_WEEKNIGHTS = ("Mon", "Tue", "Wed", "Thu")


def _week(weeknights: str, fri: str, sat: str, sun: str) -> List[str]:
    return [f"{day}: {weeknights}" for day in _WEEKNIGHTS] + [f"Fri: {fri}", f"Sat: {sat}", f"Sun: {sun}"]


DEMO_VENUES: Dict[str, Dict[str, Any]] = {
    "joes-pizza": {
        "name": "Joe's Pizza",
        "vicinity": "7 Carmine St, New York",
        "lat": 40.7308,
        "lng": -73.9894,
        "price_level": 1,
        "hours": _week("10:00 AM - 2:00 AM", "10:00 AM - 4:00 AM", "10:00 AM - 4:00 AM", "10:00 AM - 2:00 AM"),
        "ratings": {"google": (4.5, 2847), "yelp": (4.0, 1523), "tripadvisor": (4.5, 892), "foursquare": (4.3, 456)},
    },
    "shake-shack": {
        "name": "Shake Shack",
        "vicinity": "Madison Square Park, New York",
        "lat": 40.7415,
        "lng": -73.9880,
        "price_level": 2,
        "hours": _week("11:00 AM - 10:00 PM", "11:00 AM - 11:00 PM", "11:00 AM - 11:00 PM", "11:00 AM - 10:00 PM"),
        "ratings": {"google": (4.3, 5621), "yelp": (4.0, 3892), "tripadvisor": (4.0, 2145), "foursquare": (4.1, 1823)},
    },
    "katzs-deli": {
        "name": "Katz's Deli",
        "vicinity": "205 E Houston St, New York",
        "lat": 40.7223,
        "lng": -73.9874,
        "price_level": 2,
        "hours": [
            "Mon: 8:00 AM - 10:45 PM",
            "Tue: 8:00 AM - 10:45 PM",
            "Wed: 8:00 AM - 10:45 PM",
            "Thu: 8:00 AM - 2:45 AM",
            "Fri: 8:00 AM - 2:45 AM",
            "Sat: Open 24 hours",
            "Sun: Open 24 hours",
        ],
        "ratings": {"google": (4.6, 18234), "yelp": (4.0, 8921), "tripadvisor": (4.5, 12453), "foursquare": (4.7, 3421)},
    },
    "le-bernardin": {
        "name": "Le Bernardin",
        "vicinity": "155 W 51st St, New York",
        "lat": 40.7615,
        "lng": -73.9819,
        "price_level": 4,
        "hours": [f"{day}: 12:00 PM - 2:30 PM, 5:15 PM - 10:30 PM" for day in (*_WEEKNIGHTS, "Fri")]
        + ["Sat: Closed", "Sun: Closed"],
        "ratings": {"google": (4.8, 4521), "yelp": (4.5, 2834), "tripadvisor": (4.9, 8234), "foursquare": (4.8, 1245)},
    },
    "eleven-madison-park": {
        "name": "Eleven Madison Park",
        "vicinity": "11 Madison Ave, New York",
        "lat": 40.7416,
        "lng": -73.9872,
        "price_level": 4,
        "hours": ["Mon: Closed", "Tue: Closed"]
        + [f"{day}: 5:30 PM - 10:00 PM" for day in ("Wed", "Thu", "Fri", "Sat", "Sun")],
        "ratings": {"google": (4.7, 3892), "yelp": (4.5, 1923), "tripadvisor": (4.8, 5621), "foursquare": (4.9, 987)},
    },
    "tacos-el-bronco": {
        "name": "Tacos El Bronco",
        "vicinity": "W 44th St, New York",
        "lat": 40.7580,
        "lng": -73.9855,
        "price_level": 1,
        "hours": _week("9:00 AM - 12:00 AM", "9:00 AM - 3:00 AM", "9:00 AM - 3:00 AM", "9:00 AM - 12:00 AM"),
        "ratings": {"google": (4.6, 1234), "yelp": (4.5, 892), "foursquare": (4.4, 345)},
    },
    "russ-and-daughters": {
        "name": "Russ & Daughters",
        "vicinity": "179 E Houston St, New York",
        "lat": 40.7223,
        "lng": -73.9880,
        "price_level": 2,
        "hours": _week("8:00 AM - 6:00 PM", "8:00 AM - 5:00 PM", "Closed", "8:00 AM - 5:30 PM"),
        "ratings": {"google": (4.7, 5234), "yelp": (4.5, 3421), "tripadvisor": (4.5, 2145), "foursquare": (4.6, 1823)},
    },
    "di-fara-pizza": {
        "name": "Di Fara Pizza",
        "vicinity": "1424 Avenue J, Brooklyn",
        "lat": 40.6250,
        "lng": -73.9615,
        "price_level": 2,
        "hours": ["Mon: Closed", "Tue: Closed"]
        + [f"{day}: 12:00 PM - 8:00 PM" for day in ("Wed", "Thu", "Fri", "Sat")]
        + ["Sun: 1:00 PM - 8:00 PM"],
        "ratings": {"google": (4.4, 3892), "yelp": (4.0, 2567), "tripadvisor": (4.5, 1234), "foursquare": (4.6, 892)},
    },
}


def _compact(text: str) -> str:
    return re.sub(r"[^a-z0-9]+", "", (text or "").lower())


def find_venue(query: str) -> Optional[Tuple[str, Dict[str, Any]]]:
    """Match a free-text query against the fixture venues by name."""
    needle = _compact(query)
    if not needle:
        return None
    for key, venue in DEMO_VENUES.items():
        name = _compact(venue["name"])
        if name in needle or needle in name or _compact(key) in needle:
            return key, venue
    return None


def _place(key: str, venue: Dict[str, Any]) -> Dict[str, Any]:
    rating, reviews = venue["ratings"]["google"]
    return {
        "place_id": f"demo-{key}",
        "name": venue["name"],
        "vicinity": venue["vicinity"],
        "rating": rating,
        "user_ratings_total": reviews,
        "price_level": venue["price_level"],
        "geometry": {"location": {"lat": venue["lat"], "lng": venue["lng"]}},
        "opening_hours": {"weekday_text": list(venue["hours"])},
    }


class DemoPlaces:
    """Same call shapes as ``where_to_eat.vendors.google_places``, served from fixtures."""

    def nearby_search(
        self,
        latitude: float,
        longitude: float,
        api_key: str,
        *,
        radius: int = 5000,
        place_type: str = "restaurant",
        keyword: Optional[str] = None,
        open_now: bool = False,
    ) -> List[Dict[str, Any]]:
        # Radius and open_now are left to the ranking stage so the demo shows its filtering.
        logger.info("Demo nearby search at %s,%s", latitude, longitude)
        return [_place(key, venue) for key, venue in DEMO_VENUES.items()]

    def text_search(
        self,
        query: str,
        api_key: str,
        location: Optional[Tuple[float, float]] = None,
        pagetoken: Optional[str] = None,
    ) -> Dict[str, Any]:
        match = find_venue(query)
        if match is None:
            return {"status": "ZERO_RESULTS", "results": []}
        return {"status": "OK", "results": [_place(*match)]}

    def place_details(self, place_id: str, api_key: str) -> Dict[str, Any]:
        key = place_id[len("demo-") :] if place_id.startswith("demo-") else place_id
        venue = DEMO_VENUES.get(key)
        return _place(key, venue) if venue else {}


class DemoAdapter(SourceAdapter):
    """Serves one source's fixture rating; unknown venues are simply not found."""

    def __init__(self, source: str) -> None:
        super().__init__()
        self.source = source

    def lookup(self, name: str, location: str) -> Optional[RatingSignal]:
        match = find_venue(name)
        if match is None:
            return None
        rated = match[1]["ratings"].get(self.source)
        if rated is None:
            return None
        rating, reviews = rated
        return build_signal(self.source, rating, reviews, url=f"https://{self.source}.com")


def demo_adapters() -> Dict[str, SourceAdapter]:
    return {source: DemoAdapter(source) for source in ALL_SOURCES}
