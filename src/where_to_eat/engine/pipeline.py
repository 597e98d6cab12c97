"""Search pipeline: fetch -> aggregate -> geo/time -> open status -> rank."""

from __future__ import annotations

import logging
import re
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

import requests

from where_to_eat.core.config import ALL_SOURCES, Settings, get_settings
from where_to_eat.core.models import (
    Candidate,
    FetchResult,
    OpenStatus,
    RatingSignal,
    WeightingConfig,
    WeightingStrategy,
)
from where_to_eat.core.rate_limit import RateLimiter
from where_to_eat.engine import geo, hours
from where_to_eat.engine.aggregation import aggregate_result
from where_to_eat.engine.dayparts import NOW, UnknownDaypartError, resolve_planned_time
from where_to_eat.engine.orchestrator import fetch_all
from where_to_eat.engine.ranking import rank_and_filter, rank_candidate
from where_to_eat.etl.transform import candidate_to_dict, candidates_to_dicts, google_signal_from_place, place_to_candidate
from where_to_eat.vendors import google_places
from where_to_eat.vendors.base import SourceAdapter
from where_to_eat.vendors.demo import DemoPlaces, demo_adapters
from where_to_eat.vendors.registry import build_adapters

logger = logging.getLogger(__name__)

NEARBY_SENTINEL = "nearby"
PLACES_ERRORS = (google_places.GooglePlacesError, requests.RequestException)


class MalformedInputError(ValueError):
    """Raised for requests that cannot be served; no fetch work has started."""


class UpstreamDependencyError(RuntimeError):
    """Raised when the nearby-venue discovery service itself fails."""


@dataclass
class SearchRequest:
    query: str = ""
    location: str = ""
    user_lat: Optional[float] = None
    user_lon: Optional[float] = None
    weighting: WeightingConfig = field(default_factory=WeightingConfig)
    max_travel_time_min: float = 20.0
    planned_time: str = NOW
    sources: Optional[Tuple[str, ...]] = None

    @property
    def is_nearby(self) -> bool:
        return not self.query or not self.query.strip() or self.query.strip().lower() == NEARBY_SENTINEL

    @property
    def has_coordinates(self) -> bool:
        return self.user_lat is not None and self.user_lon is not None


@dataclass
class SearchResponse:
    candidates: List[Candidate]
    errors: Dict[str, str] = field(default_factory=dict)
    sources_searched: List[str] = field(default_factory=list)
    sources_found: List[str] = field(default_factory=list)
    total_found: int = 0
    nearby: bool = False
    planned_for: Optional[datetime] = None
    is_demo: bool = False

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any]
        if self.nearby:
            payload = {
                "restaurants": candidates_to_dicts(self.candidates),
                "totalFound": self.total_found,
                "filteredCount": len(self.candidates),
            }
        else:
            payload = {
                "restaurant": candidate_to_dict(self.candidates[0]) if self.candidates else None,
                "platformsSearched": self.sources_searched,
                "platformsFound": self.sources_found,
            }
        if self.planned_for is not None:
            payload["plannedFor"] = self.planned_for.isoformat()
        if self.errors:
            payload["errors"] = self.errors
        if self.is_demo:
            payload["isDemo"] = True
        return payload


def _number(payload: Mapping[str, Any], key: str, default: Optional[float] = None) -> Optional[float]:
    raw = payload.get(key)
    if raw is None or raw == "":
        return default
    if isinstance(raw, bool):
        raise MalformedInputError(f"{key} must be numeric")
    try:
        return float(raw)
    except (TypeError, ValueError) as exc:
        raise MalformedInputError(f"{key} must be numeric") from exc


def parse_weighting_config(raw: Optional[Mapping[str, Any]]) -> WeightingConfig:
    """Build a ``WeightingConfig`` from the camelCase JSON accepted by the HTTP entrypoint."""
    if not raw:
        return WeightingConfig()
    try:
        strategy = WeightingStrategy(raw.get("strategy") or WeightingStrategy.BAYESIAN_AVERAGE.value)
    except ValueError as exc:
        valid = ", ".join(item.value for item in WeightingStrategy)
        raise MalformedInputError(f"unknown weighting strategy {raw.get('strategy')!r}; expected one of: {valid}") from exc

    weights = raw.get("platformWeights")
    if weights is not None:
        if not isinstance(weights, Mapping):
            raise MalformedInputError("platformWeights must be an object of source -> weight")
        weights = {str(source): _number(weights, source, 1.0) for source in weights}

    return WeightingConfig(
        strategy=strategy,
        bayesian_prior=_number(raw, "bayesianPrior", 3.5),
        bayesian_min_reviews=_number(raw, "bayesianMinReviews", 10.0),
        platform_weights=weights,
    )


def parse_search_request(payload: Mapping[str, Any], default_max_travel: float = 20.0) -> SearchRequest:
    platforms = payload.get("platforms")
    if platforms is not None and not isinstance(platforms, (list, tuple)):
        raise MalformedInputError("platforms must be a list of source ids")
    return SearchRequest(
        query=str(payload.get("query") or "").strip(),
        location=str(payload.get("location") or "").strip(),
        user_lat=_number(payload, "userLat"),
        user_lon=_number(payload, "userLon"),
        weighting=parse_weighting_config(payload.get("weightingConfig")),
        max_travel_time_min=_number(payload, "maxTravelTimeMin", default_max_travel),
        planned_time=str(payload.get("plannedTime") or NOW),
        sources=tuple(str(source).lower() for source in platforms) if platforms else None,
    )


def _slug(*parts: str) -> str:
    return re.sub(r"\s+", "-", "-".join(part for part in parts if part)).lower()


class SearchService:
    """Runs specific-venue and nearby searches against the configured sources.

    Build one per process: the adapters it holds, including the TripAdvisor
    rate limiter, are meant to be shared by every request.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        adapters: Optional[Mapping[str, SourceAdapter]] = None,
        *,
        places: Any = google_places,
        clock: Callable[[], datetime] = datetime.now,
        is_demo: bool = False,
    ) -> None:
        self.settings = settings or get_settings()
        self.tripadvisor_limiter = RateLimiter(self.settings.tripadvisor_min_interval_seconds)
        if adapters is None:
            adapters = build_adapters(self.settings, tripadvisor_limiter=self.tripadvisor_limiter)
        self.adapters: Dict[str, SourceAdapter] = dict(adapters)
        self.places = places
        self._clock = clock
        self.is_demo = is_demo

    @classmethod
    def demo(cls, settings: Optional[Settings] = None, *, clock: Callable[[], datetime] = datetime.now) -> "SearchService":
        """A service wired to fixture venues and ratings; it makes no network calls."""
        settings = settings or Settings()
        return cls(
            replace(settings, google_api_key=settings.google_api_key or "demo"),
            demo_adapters(),
            places=DemoPlaces(),
            clock=clock,
            is_demo=True,
        )

    # ---------- Validation ----------

    def _validate(self, request: SearchRequest) -> datetime:
        if request.max_travel_time_min is None or request.max_travel_time_min <= 0:
            raise MalformedInputError("maxTravelTimeMin must be a positive number")
        if request.is_nearby and not request.has_coordinates:
            raise MalformedInputError("Location is required for nearby search")
        if request.sources:
            unknown = [source for source in request.sources if source not in ALL_SOURCES]
            if unknown:
                raise MalformedInputError(f"unknown platforms: {', '.join(unknown)}")
        try:
            return resolve_planned_time(request.planned_time, self._clock())
        except UnknownDaypartError as exc:
            raise MalformedInputError(str(exc)) from exc

    def _selected_sources(self, request: SearchRequest) -> List[str]:
        return list(request.sources or ALL_SOURCES)

    def _selected_adapters(self, request: SearchRequest) -> Dict[str, SourceAdapter]:
        wanted = self._selected_sources(request)
        return {source: adapter for source, adapter in self.adapters.items() if source in wanted}

    # ---------- Per-candidate stages ----------

    def _apply_geo(self, candidate: Candidate, request: SearchRequest) -> None:
        if not request.has_coordinates or candidate.latitude is None or candidate.longitude is None:
            return
        km = geo.distance_km(request.user_lat, request.user_lon, candidate.latitude, candidate.longitude)
        candidate.distance_km = round(km, 1)
        candidate.walk_time_min = geo.estimate_walk_time(km)
        candidate.drive_time_min = geo.estimate_drive_time(km)
        candidate.travel_time_min = candidate.drive_time_min

    @staticmethod
    def _open_status(candidate: Candidate, at: datetime, is_now: bool) -> OpenStatus:
        if candidate.hours:
            return hours.resolve(candidate.hours, at)
        if is_now and candidate.open_now_hint is not None:
            return OpenStatus(is_open=bool(candidate.open_now_hint))
        return hours.resolve(None, at)

    def _enrich(
        self,
        candidate: Candidate,
        signals: Sequence[RatingSignal],
        request: SearchRequest,
        at: datetime,
    ) -> Candidate:
        candidate.signals = list(signals)
        candidate.aggregate = aggregate_result(candidate.signals, request.weighting)
        self._apply_geo(candidate, request)
        candidate.status = self._open_status(candidate, at, request.planned_time.strip().lower() == NOW)
        return rank_candidate(candidate, request.max_travel_time_min)

    def _opening_hours(self, place_id: Optional[str]) -> Optional[Dict[str, Any]]:
        if not place_id:
            return None
        try:
            details = self.places.place_details(place_id, self.settings.google_api_key)
        except PLACES_ERRORS as exc:
            logger.warning("Failed to fetch opening hours for %s: %s", place_id, exc)
            return None
        opening_hours = details.get("opening_hours") or {}
        if opening_hours.get("periods") or opening_hours.get("weekday_text"):
            return opening_hours
        return None

    # ---------- Specific venue ----------

    def _locate_venue(self, request: SearchRequest) -> Optional[Dict[str, Any]]:
        if not self.settings.google_api_key:
            return None
        coords = (request.user_lat, request.user_lon) if request.has_coordinates else None
        query = " ".join(filter(None, [request.query, request.location]))
        try:
            results = self.places.text_search(query, self.settings.google_api_key, location=coords).get("results", [])
        except PLACES_ERRORS as exc:
            logger.warning("Venue lookup failed for %r: %s", query, exc)
            return None
        return results[0] if results else None

    def search_venue(self, request: SearchRequest) -> SearchResponse:
        at = self._validate(request)
        adapters = self._selected_adapters(request)
        logger.info("Searching %r in %r across %s", request.query, request.location, ", ".join(adapters) or "no sources")

        candidate = Candidate(id=_slug(request.query, request.location), name=request.query, address=request.location)
        place = self._locate_venue(request)
        if place:
            located = place_to_candidate(place)
            candidate.id = located.id
            candidate.address = located.address or candidate.address
            candidate.latitude, candidate.longitude = located.latitude, located.longitude
            candidate.open_now_hint = located.open_now_hint
            candidate.price_level = located.price_level
            candidate.hours = located.hours or self._opening_hours(place.get("place_id"))

        fetched = fetch_all(adapters, request.query, request.location, self.settings.source_timeout_ms)
        self._enrich(candidate, fetched.signals, request, at)

        return SearchResponse(
            candidates=[candidate],
            errors=dict(fetched.errors),
            sources_searched=self._selected_sources(request),
            sources_found=[signal.source for signal in fetched.signals],
            total_found=1,
            planned_for=at,
            is_demo=self.is_demo,
        )

    # ---------- Nearby ----------

    def _process_place(
        self,
        place: Dict[str, Any],
        adapters: Mapping[str, SourceAdapter],
        request: SearchRequest,
        at: datetime,
        include_google: bool,
    ) -> Tuple[Candidate, FetchResult]:
        candidate = place_to_candidate(place)
        if candidate.hours is None:
            candidate.hours = self._opening_hours(place.get("place_id"))

        fetched = fetch_all(adapters, candidate.name, candidate.address or request.location, self.settings.source_timeout_ms)
        signals: List[RatingSignal] = []
        google_signal = google_signal_from_place(place) if include_google else None
        if google_signal is not None:
            signals.append(google_signal)
        signals.extend(fetched.signals)

        self._enrich(candidate, signals, request, at)
        return candidate, fetched

    def search_nearby(self, request: SearchRequest) -> SearchResponse:
        at = self._validate(request)
        radius = geo.search_radius_meters(request.max_travel_time_min)
        is_now = request.planned_time.strip().lower() == NOW
        logger.info("Nearby search at %s,%s radius=%sm planned_for=%s", request.user_lat, request.user_lon, radius, at)

        try:
            places = self.places.nearby_search(
                request.user_lat,
                request.user_lon,
                self.settings.google_api_key,
                radius=radius,
                open_now=is_now,
            )
        except PLACES_ERRORS as exc:
            raise UpstreamDependencyError(f"Places search failed: {exc}") from exc

        selected = places[: self.settings.max_nearby_venues]
        sources = self._selected_sources(request)
        adapters = {source: adapter for source, adapter in self._selected_adapters(request).items() if source != "google"}
        include_google = "google" in sources

        outcomes: List[Tuple[Candidate, FetchResult]] = []
        if selected:
            with ThreadPoolExecutor(max_workers=len(selected), thread_name_prefix="venue") as pool:
                outcomes = list(
                    pool.map(lambda place: self._process_place(place, adapters, request, at, include_google), selected)
                )

        errors: Dict[str, str] = {}
        for candidate, fetched in outcomes:
            for source, message in fetched.errors.items():
                errors[f"{candidate.name}: {source}"] = message

        ranked = rank_and_filter([candidate for candidate, _ in outcomes], request.max_travel_time_min)
        logger.info("Nearby search kept %d of %d venues", len(ranked), len(places))
        return SearchResponse(
            candidates=ranked,
            errors=errors,
            sources_searched=sources,
            total_found=len(places),
            nearby=True,
            planned_for=at,
            is_demo=self.is_demo,
        )

    def search(self, request: SearchRequest) -> SearchResponse:
        if request.is_nearby:
            return self.search_nearby(request)
        return self.search_venue(request)
