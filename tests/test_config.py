import pytest

from where_to_eat.core import config

ENV_VARS = (
    "GOOGLE_API_KEY",
    "SERPAPI_API_KEY",
    "YELP_API_KEY",
    "FOURSQUARE_API_KEY",
    "TRIPADVISOR_API_KEY",
    "SOURCE_TIMEOUT_MS",
    "TRIPADVISOR_MIN_INTERVAL_SECONDS",
    "MAX_NEARBY_VENUES",
    "DEFAULT_MAX_TRAVEL_MIN",
    "ENABLED_SOURCES",
    "WORKER_PORT",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(config, "load_dotenv", lambda: False)
    config.get_settings.cache_clear()
    yield
    config.get_settings.cache_clear()


def test_get_settings_reads_env(monkeypatch):
    monkeypatch.setenv("GOOGLE_API_KEY", "abc123")
    monkeypatch.setenv("YELP_API_KEY", "yelp-token")
    monkeypatch.setenv("SOURCE_TIMEOUT_MS", "2500")
    monkeypatch.setenv("TRIPADVISOR_MIN_INTERVAL_SECONDS", "0.5")
    monkeypatch.setenv("MAX_NEARBY_VENUES", "5")
    monkeypatch.setenv("WORKER_PORT", "9100")
    monkeypatch.setenv("ENABLED_SOURCES", "google, Yelp")

    settings = config.get_settings()

    assert settings.google_api_key == "abc123"
    assert settings.yelp_api_key == "yelp-token"
    assert settings.source_timeout_ms == 2500
    assert settings.tripadvisor_min_interval_seconds == 0.5
    assert settings.max_nearby_venues == 5
    assert settings.worker_port == 9100
    assert settings.enabled_sources == ("google", "yelp")


def test_get_settings_defaults_and_warnings(caplog):
    with caplog.at_level("WARNING"):
        settings = config.get_settings()

    messages = " ".join(caplog.messages)
    assert "GOOGLE_API_KEY is not configured" in messages
    assert "YELP_API_KEY is not configured" in messages
    assert settings.source_timeout_ms == 5000
    assert settings.tripadvisor_min_interval_seconds == 1.0
    assert settings.default_max_travel_min == 20.0
    assert settings.enabled_sources == config.ALL_SOURCES
    assert settings.worker_port == 8080


def test_unknown_sources_are_dropped(monkeypatch, caplog):
    monkeypatch.setenv("ENABLED_SOURCES", "google,zagat")
    with caplog.at_level("WARNING"):
        settings = config.get_settings()
    assert settings.enabled_sources == ("google",)
    assert "zagat" in caplog.text


def test_invalid_number_raises(monkeypatch):
    monkeypatch.setenv("SOURCE_TIMEOUT_MS", "soon")
    with pytest.raises(config.ConfigError):
        config.get_settings()
