"""Utilities for turning Google Places results into candidates and candidates into JSON."""

import logging
from typing import Any, Dict, Iterable, List, Optional

from where_to_eat.core.models import Candidate, RatingSignal
from where_to_eat.vendors.base import build_signal, safe_float, safe_int

logger = logging.getLogger(__name__)


def place_to_candidate(place: Dict[str, Any]) -> Candidate:
    location = place.get("geometry", {}).get("location", {})
    opening_hours = place.get("opening_hours") or {}
    return Candidate(
        id=place.get("place_id") or place.get("name", ""),
        name=place.get("name", ""),
        address=place.get("vicinity") or place.get("formatted_address"),
        latitude=safe_float(location.get("lat")),
        longitude=safe_float(location.get("lng")),
        price_level=price_symbols(place.get("price_level")),
        hours=opening_hours if (opening_hours.get("periods") or opening_hours.get("weekday_text")) else None,
        open_now_hint=opening_hours.get("open_now"),
    )


def price_symbols(level: Any) -> Optional[str]:
    """Google's 0-4 price level as dollar signs; ``None`` when unknown or free."""
    value = safe_int(level)
    if not value or value < 0:
        return None
    return "$" * min(value, 4)


def google_signal_from_place(place: Dict[str, Any]) -> Optional[RatingSignal]:
    """Places results already carry Google's rating, so no separate lookup is needed."""
    return build_signal("google", place.get("rating"), place.get("user_ratings_total"))


def signal_to_dict(signal: RatingSignal) -> Dict[str, Any]:
    entry: Dict[str, Any] = {
        "platform": signal.source,
        "rating": signal.rating,
        "reviewCount": signal.review_count,
    }
    if signal.url:
        entry["url"] = signal.url
    if signal.observed_at:
        entry["lastUpdated"] = signal.observed_at.isoformat()
    return entry


def candidate_to_dict(candidate: Candidate) -> Dict[str, Any]:
    return {
        "id": candidate.id,
        "name": candidate.name,
        "address": candidate.address,
        "latitude": candidate.latitude,
        "longitude": candidate.longitude,
        "reviews": [signal_to_dict(signal) for signal in candidate.signals],
        "aggregatedScore": candidate.aggregate.score,
        "confidence": candidate.aggregate.confidence,
        "distanceKm": candidate.distance_km,
        "travelTimeMin": candidate.travel_time_min,
        "walkTimeMin": candidate.walk_time_min,
        "driveTimeMin": candidate.drive_time_min,
        "priceLevel": candidate.price_level,
        "isOpen": candidate.status.is_open,
        "openUntil": candidate.status.open_until,
        "valueScore": candidate.value_score,
        "isExceptional": candidate.is_exceptional,
    }


def candidates_to_dicts(candidates: Iterable[Candidate]) -> List[Dict[str, Any]]:
    return [candidate_to_dict(candidate) for candidate in candidates]
