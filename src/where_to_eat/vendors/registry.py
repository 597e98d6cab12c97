"""Builds the configured set of review source adapters."""

import logging
from typing import Dict, Iterable, Optional

from where_to_eat.core.config import Settings
from where_to_eat.core.rate_limit import RateLimiter
from where_to_eat.vendors.base import SourceAdapter
from where_to_eat.vendors.foursquare import FoursquareAdapter
from where_to_eat.vendors.page_scraper import GoogleSearchScraper
from where_to_eat.vendors.serp_client import GoogleMapsAdapter
from where_to_eat.vendors.tripadvisor import TripAdvisorAdapter
from where_to_eat.vendors.yelp import YelpAdapter

logger = logging.getLogger(__name__)


def build_adapters(
    settings: Settings,
    *,
    sources: Optional[Iterable[str]] = None,
    tripadvisor_limiter: Optional[RateLimiter] = None,
) -> Dict[str, SourceAdapter]:
    """Instantiate one adapter per enabled source that has credentials.

    Google falls back to the HTML scraper when SerpAPI is not configured.
    """
    wanted = [source for source in (sources or settings.enabled_sources) if source in settings.enabled_sources]
    adapters: Dict[str, SourceAdapter] = {}

    for source in wanted:
        if source == "google":
            if settings.serpapi_api_key:
                adapters[source] = GoogleMapsAdapter(settings.serpapi_api_key)
            else:
                adapters[source] = GoogleSearchScraper()
        elif source == "yelp" and settings.yelp_api_key:
            adapters[source] = YelpAdapter(settings.yelp_api_key)
        elif source == "foursquare" and settings.foursquare_api_key:
            adapters[source] = FoursquareAdapter(settings.foursquare_api_key)
        elif source == "tripadvisor" and settings.tripadvisor_api_key:
            limiter = tripadvisor_limiter or RateLimiter(settings.tripadvisor_min_interval_seconds)
            adapters[source] = TripAdvisorAdapter(settings.tripadvisor_api_key, rate_limiter=limiter)
        else:
            logger.debug("Skipping source %s: no credentials configured", source)

    logger.info("Configured review sources: %s", ", ".join(adapters) or "none")
    return adapters
