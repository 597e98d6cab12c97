import pytest

from where_to_eat.core.config import Settings
from where_to_eat.engine import pipeline
from where_to_eat.jobs import run_search_server


class DummyService:
    def __init__(self, outcome=None):
        self.outcome = outcome
        self.requests = []

    def search(self, search_request):
        self.requests.append(search_request)
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return pipeline.SearchResponse(candidates=[], nearby=True, total_found=3)


@pytest.fixture(autouse=True)
def dummy_service(monkeypatch):
    service = DummyService()
    monkeypatch.setattr(run_search_server, "get_settings", lambda: Settings(default_max_travel_min=20.0))
    monkeypatch.setattr(run_search_server, "_service", service)
    yield service


def test_health_endpoint():
    client = run_search_server.app.test_client()
    response = client.get("/healthz")
    assert response.status_code == 200
    body = response.get_json()
    assert body["status"] == "ok"
    assert body["sources"] == ["google", "yelp", "tripadvisor", "foursquare"]


def test_strategies_endpoint():
    client = run_search_server.app.test_client()
    data = client.get("/strategies").get_json()["data"]
    assert set(data) == {"simple_average", "review_count_weighted", "bayesian_average", "confidence_weighted", "platform_trust"}


def test_search_passes_parsed_request(dummy_service):
    client = run_search_server.app.test_client()
    response = client.post("/search", json={"query": "nearby", "userLat": 30.0, "userLon": -97.0, "plannedTime": "lunch"})

    assert response.status_code == 200
    assert response.get_json() == {"restaurants": [], "totalFound": 3, "filteredCount": 0}
    parsed = dummy_service.requests[0]
    assert parsed.is_nearby
    assert parsed.planned_time == "lunch"
    assert parsed.max_travel_time_min == 20.0


def test_search_rejects_malformed_payload(dummy_service):
    client = run_search_server.app.test_client()
    response = client.post("/search", json={"weightingConfig": {"strategy": "vibes"}})
    assert response.status_code == 400
    assert "vibes" in response.get_json()["error"]
    assert dummy_service.requests == []


@pytest.mark.parametrize(
    "error,status",
    [
        (pipeline.MalformedInputError("Location is required for nearby search"), 400),
        (pipeline.UpstreamDependencyError("Places search failed"), 502),
        (RuntimeError("unexpected"), 500),
    ],
)
def test_search_error_mapping(dummy_service, error, status):
    dummy_service.outcome = error
    client = run_search_server.app.test_client()
    response = client.post("/search", json={"query": "nearby"})
    assert response.status_code == status
    assert "error" in response.get_json()


def test_demo_route_uses_demo_service(monkeypatch):
    demo_service = DummyService()
    monkeypatch.setattr(run_search_server, "_demo_service", demo_service)
    client = run_search_server.app.test_client()

    response = client.post("/demo", json={"query": "nearby", "userLat": 40.73, "userLon": -73.99})

    assert response.status_code == 200
    assert len(demo_service.requests) == 1


def test_service_is_built_once(monkeypatch):
    built = []

    class CountingService:
        def __init__(self, settings):
            built.append(settings)

    monkeypatch.setattr(run_search_server, "_service", None)
    monkeypatch.setattr(run_search_server, "SearchService", CountingService)

    first = run_search_server.get_service()
    assert run_search_server.get_service() is first
    assert len(built) == 1
