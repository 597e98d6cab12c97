from datetime import datetime

import pytest
import requests

from where_to_eat.core.models import RatingSignal, WeightingStrategy
from where_to_eat.engine import pipeline
from where_to_eat.vendors.google_places import GooglePlacesError
from where_to_eat.vendors.yelp import YelpAdapter

MONDAY_NOON = datetime(2024, 1, 1, 12, 0)
USER = (30.0, -97.0)


class StaticAdapter:
    def __init__(self, source, rating, count):
        self.source = source
        self.rating = rating
        self.count = count
        self.calls = []

    def fetch(self, name, location):
        self.calls.append(name)
        return RatingSignal(source=self.source, rating=self.rating, review_count=self.count)


class RaisingAdapter:
    source = "tripadvisor"

    def fetch(self, name, location):
        raise RuntimeError("quota exceeded")


class FakePlaces:
    def __init__(self, nearby=None, text=None, details=None, error=None):
        self.nearby = nearby or []
        self.text = text or {"results": []}
        self.details = details or {}
        self.error = error
        self.nearby_calls = []
        self.text_calls = []

    def nearby_search(self, latitude, longitude, api_key, *, radius=5000, place_type="restaurant", keyword=None, open_now=False):
        self.nearby_calls.append({"lat": latitude, "lng": longitude, "radius": radius, "open_now": open_now})
        if self.error:
            raise self.error
        return self.nearby

    def text_search(self, query, api_key, location=None, pagetoken=None):
        self.text_calls.append((query, location))
        return self.text

    def place_details(self, place_id, api_key):
        return self.details.get(place_id, {})


def place(place_id, name, lat, lng, rating, reviews, open_now=True):
    return {
        "place_id": place_id,
        "name": name,
        "vicinity": f"{name} street",
        "rating": rating,
        "user_ratings_total": reviews,
        "geometry": {"location": {"lat": lat, "lng": lng}},
        "opening_hours": {"open_now": open_now},
    }


def make_service(settings, places, adapters):
    return pipeline.SearchService(settings, adapters, places=places, clock=lambda: MONDAY_NOON)


class TestParsing:
    def test_parse_search_request(self):
        request = pipeline.parse_search_request(
            {
                "query": "nearby",
                "userLat": "30.0",
                "userLon": -97.0,
                "maxTravelTimeMin": 15,
                "plannedTime": "dinner",
                "platforms": ["Google", "yelp"],
                "weightingConfig": {"strategy": "platform_trust", "platformWeights": {"yelp": 2}},
            }
        )
        assert request.is_nearby
        assert request.user_lat == 30.0
        assert request.max_travel_time_min == 15
        assert request.planned_time == "dinner"
        assert request.sources == ("google", "yelp")
        assert request.weighting.strategy is WeightingStrategy.PLATFORM_TRUST
        assert request.weighting.platform_weights == {"yelp": 2.0}

    def test_defaults(self):
        request = pipeline.parse_search_request({"query": "Uchi"}, default_max_travel=25)
        assert not request.is_nearby
        assert request.max_travel_time_min == 25
        assert request.weighting.strategy is WeightingStrategy.BAYESIAN_AVERAGE
        assert request.sources is None

    @pytest.mark.parametrize(
        "payload",
        [
            {"userLat": "north"},
            {"weightingConfig": {"strategy": "vibes"}},
            {"platforms": "google"},
            {"weightingConfig": {"platformWeights": [1, 2]}},
        ],
    )
    def test_malformed_payloads(self, payload):
        with pytest.raises(pipeline.MalformedInputError):
            pipeline.parse_search_request(payload)


class TestValidation:
    def test_nearby_without_coordinates_fails_before_fetch(self, settings):
        places = FakePlaces()
        yelp = StaticAdapter("yelp", 4.0, 10)
        service = make_service(settings, places, {"yelp": yelp})

        with pytest.raises(pipeline.MalformedInputError):
            service.search(pipeline.SearchRequest(query="nearby"))
        assert places.nearby_calls == []
        assert yelp.calls == []

    @pytest.mark.parametrize(
        "request_kwargs",
        [
            {"max_travel_time_min": 0},
            {"planned_time": "brunch"},
            {"sources": ("google", "zagat")},
        ],
    )
    def test_invalid_requests(self, settings, request_kwargs):
        yelp = StaticAdapter("yelp", 4.0, 10)
        service = make_service(settings, FakePlaces(), {"yelp": yelp})
        with pytest.raises(pipeline.MalformedInputError):
            service.search(pipeline.SearchRequest(query="Uchi", location="Austin", **request_kwargs))
        assert yelp.calls == []


class TestNearby:
    def test_ranks_and_filters(self, settings):
        places = FakePlaces(
            nearby=[
                place("far", "Far Diner", 30.2, -97.0, 4.0, 100),
                place("near", "Near Good", 30.01, -97.0, 4.6, 300),
                place("shut", "Closed One", 30.01, -97.0, 4.9, 900, open_now=False),
                place("legend", "Michelin Legend", 30.2, -97.0, 4.9, 300),
            ]
        )
        adapters = {"yelp": StaticAdapter("yelp", 4.0, 100), "tripadvisor": RaisingAdapter()}
        service = make_service(settings, places, adapters)

        response = service.search(pipeline.SearchRequest(query="nearby", user_lat=USER[0], user_lon=USER[1]))

        assert [c.name for c in response.candidates] == ["Near Good", "Michelin Legend"]
        assert response.total_found == 4
        assert places.nearby_calls[0]["radius"] == 8000
        assert places.nearby_calls[0]["open_now"] is True

        near = response.candidates[0]
        assert near.travel_time_min == 3
        assert near.distance_km == 1.1
        assert sorted(signal.source for signal in near.signals) == ["google", "yelp"]
        assert near.value_score > response.candidates[1].value_score
        assert response.candidates[1].is_exceptional

        assert response.errors["Near Good: tripadvisor"] == "quota exceeded"

        payload = response.to_dict()
        assert payload["totalFound"] == 4
        assert payload["filteredCount"] == 2
        assert payload["restaurants"][0]["name"] == "Near Good"
        assert payload["plannedFor"] == "2024-01-01T12:00:00"

    def test_respects_venue_cap_and_google_opt_out(self, settings):
        nearby = [place(f"p{i}", f"Venue {i}", 30.001, -97.0, 4.0, 50) for i in range(5)]
        places = FakePlaces(nearby=nearby)
        yelp = StaticAdapter("yelp", 4.2, 20)
        service = make_service(settings.__class__(google_api_key="k", max_nearby_venues=2), places, {"yelp": yelp})

        response = service.search(
            pipeline.SearchRequest(query="", user_lat=USER[0], user_lon=USER[1], sources=("yelp",))
        )

        assert len(response.candidates) == 2
        assert sorted(yelp.calls) == ["Venue 0", "Venue 1"]
        assert all([s.source for s in c.signals] == ["yelp"] for c in response.candidates)

    def test_planned_time_uses_opening_hours(self, settings):
        places = FakePlaces(
            nearby=[place("lunch", "Lunch Spot", 30.001, -97.0, 4.5, 100)],
            details={"lunch": {"opening_hours": {"weekday_text": ["Monday: 11:00 AM - 3:00 PM"]}}},
        )
        service = make_service(settings, places, {})

        dinner = service.search(
            pipeline.SearchRequest(query="nearby", user_lat=USER[0], user_lon=USER[1], planned_time="dinner")
        )
        assert dinner.candidates == []
        assert places.nearby_calls[0]["open_now"] is False

        lunch = service.search(
            pipeline.SearchRequest(query="nearby", user_lat=USER[0], user_lon=USER[1], planned_time="lunch")
        )
        assert [c.name for c in lunch.candidates] == ["Lunch Spot"]
        assert lunch.candidates[0].status.open_until == "3:00 PM"

    def test_places_failure_is_upstream_error(self, settings):
        service = make_service(settings, FakePlaces(error=GooglePlacesError("REQUEST_DENIED")), {})
        with pytest.raises(pipeline.UpstreamDependencyError):
            service.search(pipeline.SearchRequest(query="nearby", user_lat=USER[0], user_lon=USER[1]))


class TestSpecificVenue:
    def test_aggregates_all_sources(self, settings, fixture_signals):
        adapters = {s.source: StaticAdapter(s.source, s.rating, s.review_count) for s in fixture_signals}
        located = {
            "place_id": "uchi-1",
            "name": "Uchi",
            "formatted_address": "801 S Lamar Blvd, Austin",
            "geometry": {"location": {"lat": 30.001, "lng": -97.0}},
            "opening_hours": {"weekday_text": ["Monday: 11:00 AM - 10:00 PM"]},
        }
        places = FakePlaces(text={"status": "OK", "results": [located]})
        service = make_service(settings, places, adapters)

        response = service.search(
            pipeline.SearchRequest(query="Uchi", location="Austin", user_lat=USER[0], user_lon=USER[1])
        )

        assert places.text_calls == [("Uchi Austin", USER)]
        payload = response.to_dict()
        restaurant = payload["restaurant"]
        assert restaurant["id"] == "uchi-1"
        assert restaurant["aggregatedScore"] == 4.32
        assert restaurant["confidence"] == 0.99
        assert restaurant["isOpen"] is True
        assert restaurant["openUntil"] == "10:00 PM"
        assert restaurant["travelTimeMin"] is not None
        assert sorted(payload["platformsFound"]) == ["foursquare", "google", "tripadvisor", "yelp"]
        assert "errors" not in payload

    def test_venue_not_located_still_aggregates(self, settings):
        service = make_service(settings, FakePlaces(), {"yelp": StaticAdapter("yelp", 4.0, 0)})
        response = service.search(pipeline.SearchRequest(query="Hole In The Wall", location="Austin"))

        restaurant = response.to_dict()["restaurant"]
        assert restaurant["id"] == "hole-in-the-wall-austin"
        assert restaurant["isOpen"] is True
        assert restaurant["valueScore"] is None
        assert restaurant["reviews"][0]["platform"] == "yelp"

    def test_failed_source_is_reported(self, settings):
        class BrokenSession:
            headers = {}

            def get(self, *args, **kwargs):
                raise requests.ConnectionError("yelp is down")

        adapters = {"google": StaticAdapter("google", 4.5, 100), "yelp": YelpAdapter("key", session=BrokenSession())}
        service = make_service(settings, FakePlaces(), adapters)

        response = service.search(pipeline.SearchRequest(query="Franklin BBQ", location="Austin"))

        assert response.errors == {"yelp": "yelp is down"}
        payload = response.to_dict()
        assert payload["errors"] == {"yelp": "yelp is down"}
        assert payload["platformsFound"] == ["google"]
        assert payload["restaurant"]["aggregatedScore"] > 0


class TestDemo:
    def test_specific_venue_from_fixtures(self, settings):
        service = pipeline.SearchService.demo(settings, clock=lambda: MONDAY_NOON)
        response = service.search(pipeline.SearchRequest(query="Joe's Pizza", location="New York"))

        payload = response.to_dict()
        assert payload["isDemo"] is True
        restaurant = payload["restaurant"]
        assert restaurant["id"] == "demo-joes-pizza"
        assert restaurant["priceLevel"] == "$"
        assert restaurant["aggregatedScore"] == 4.32
        assert restaurant["isOpen"] is True
        assert restaurant["openUntil"] == "2:00 AM"
        assert sorted(payload["platformsFound"]) == ["foursquare", "google", "tripadvisor", "yelp"]

    def test_unknown_venue_has_no_signals(self, settings):
        service = pipeline.SearchService.demo(settings, clock=lambda: MONDAY_NOON)
        response = service.search(pipeline.SearchRequest(query="Nowhere Special", location="Austin"))

        restaurant = response.to_dict()["restaurant"]
        assert restaurant["reviews"] == []
        assert restaurant["aggregatedScore"] == 0
        assert restaurant["confidence"] == 0

    def test_nearby_filters_closed_fixtures(self, settings):
        service = pipeline.SearchService.demo(settings, clock=lambda: MONDAY_NOON)
        response = service.search(pipeline.SearchRequest(query="nearby", user_lat=40.7308, user_lon=-73.9894))

        names = [candidate.name for candidate in response.candidates]
        # Eleven Madison Park and Di Fara are closed on Mondays.
        assert set(names) == {
            "Joe's Pizza",
            "Shake Shack",
            "Katz's Deli",
            "Le Bernardin",
            "Tacos El Bronco",
            "Russ & Daughters",
        }
        assert response.total_found == 8
        scores = [candidate.value_score for candidate in response.candidates]
        assert scores == sorted(scores, reverse=True)
        assert response.to_dict()["isDemo"] is True
