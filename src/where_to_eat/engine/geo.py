"""Distance and travel-time estimates between the user and a venue."""

from __future__ import annotations

import math

EARTH_RADIUS_KM = 6371.0
WALK_SPEED_KMH = 5.0
DRIVE_SPEED_KMH = 25.0  # urban average
RADIUS_METERS_PER_20_MIN = 8000


def distance_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance using the haversine formula."""
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def estimate_walk_time(km: float) -> int:
    return round(km / WALK_SPEED_KMH * 60)


def estimate_drive_time(km: float) -> int:
    return round(km / DRIVE_SPEED_KMH * 60)


def search_radius_meters(max_travel_min: float) -> int:
    """Nearby-search radius that roughly matches the travel ceiling at urban speeds."""
    return round(max_travel_min / 20 * RADIUS_METERS_PER_20_MIN)
