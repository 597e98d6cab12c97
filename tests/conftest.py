import sys
from pathlib import Path

import pytest

# Ensure the `where_to_eat` package is importable when running pytest from the repo root.
SRC = Path(__file__).resolve().parents[1] / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from where_to_eat.core.config import Settings  # noqa: E402
from where_to_eat.core.models import RatingSignal  # noqa: E402


@pytest.fixture
def fixture_signals():
    """Regression fixture: one venue's ratings across four sources."""
    return [
        RatingSignal(source="google", rating=4.5, review_count=2847),
        RatingSignal(source="yelp", rating=4.0, review_count=1523),
        RatingSignal(source="tripadvisor", rating=4.5, review_count=892),
        RatingSignal(source="foursquare", rating=4.3, review_count=456),
    ]


@pytest.fixture
def settings():
    return Settings(google_api_key="places-key", source_timeout_ms=500, max_nearby_venues=10)
