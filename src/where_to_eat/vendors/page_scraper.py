"""HTML scraping fallback for Google ratings when no SerpAPI key is available."""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, Optional, Tuple

import requests
from bs4 import BeautifulSoup

from where_to_eat.core.models import RatingSignal
from where_to_eat.vendors.base import REQUEST_TIMEOUT, USER_AGENT, SourceAdapter, SourceRateLimited, build_signal, safe_float

logger = logging.getLogger(__name__)

SEARCH_URL = "https://www.google.com/search"
RATING_SELECTORS = (
    "span[aria-label*='Rated']",
    "span[aria-label*='rating']",
    ".Aq14fc",
    ".yi40Hd",
)
RATING_REGEX = re.compile(r"(\d+(?:\.\d+)?)")
REVIEW_COUNT_REGEX = re.compile(r"(\d+)\s*(?:Google\s+)?reviews?", re.IGNORECASE)


def fetch_page(session: requests.Session, url: str, params: Dict[str, Any]) -> Optional[Tuple[str, BeautifulSoup]]:
    """Fetch a URL and return the final URL + soup when it is HTML content."""
    response = session.get(url, params=params, timeout=REQUEST_TIMEOUT, allow_redirects=True)
    if response.status_code == 429:
        raise SourceRateLimited(f"Search page rate limited (429) for {url}")
    response.raise_for_status()
    content_type = response.headers.get("Content-Type", "").lower()
    if "text/html" not in content_type:
        logger.debug("Skipping non-HTML content at %s (content-type=%s)", url, content_type)
        return None
    return response.url, BeautifulSoup(response.text, "html.parser")


def extract_aggregate_rating(soup: BeautifulSoup) -> Optional[Dict[str, Any]]:
    """Return the first schema.org ``aggregateRating`` found in JSON-LD blocks."""
    for script in soup.find_all("script", type="application/ld+json"):
        try:
            data = json.loads(script.string or "")
        except ValueError:
            continue
        entries = data if isinstance(data, list) else [data]
        for entry in entries:
            if isinstance(entry, dict) and isinstance(entry.get("aggregateRating"), dict):
                return entry["aggregateRating"]
    return None


def extract_rating(soup: BeautifulSoup) -> Optional[float]:
    for selector in RATING_SELECTORS:
        for node in soup.select(selector):
            text = node.get("aria-label") or node.get_text(" ", strip=True)
            match = RATING_REGEX.search(text or "")
            if not match:
                continue
            value = float(match.group(1))
            if value <= 5:
                return value
    return None


def extract_review_count(soup: BeautifulSoup) -> Optional[int]:
    text = soup.get_text(" ", strip=True).replace(",", "")
    match = REVIEW_COUNT_REGEX.search(text)
    return int(match.group(1)) if match else None


def parse_rating_page(soup: BeautifulSoup, source: str, url: Optional[str] = None) -> Optional[RatingSignal]:
    """Structured data wins; visible rating markup is the fallback."""
    rating: Optional[float] = None
    review_count: Any = None

    structured = extract_aggregate_rating(soup)
    if structured:
        rating = safe_float(structured.get("ratingValue"))
        if rating is not None and not 0 < rating <= 5:
            rating = None
        review_count = structured.get("reviewCount") or structured.get("ratingCount")

    if rating is None:
        rating = extract_rating(soup)
    if not review_count:
        review_count = extract_review_count(soup)

    if rating is None:
        return None
    return build_signal(source, rating, review_count, url=url)


class GoogleSearchScraper(SourceAdapter):
    """Scrapes the rating panel from a Google search results page."""

    source = "google"

    def __init__(self, session: Optional[requests.Session] = None) -> None:
        super().__init__(session)
        # requests.Session ships its own User-Agent and Accept, which Google blocks.
        self.session.headers.update(
            {
                "User-Agent": USER_AGENT,
                "Accept": "text/html,application/xhtml+xml",
                "Accept-Language": "en-US,en;q=0.9",
            }
        )

    def lookup(self, name: str, location: str) -> Optional[RatingSignal]:
        query = " ".join(filter(None, [name, location, "restaurant"]))
        fetched = fetch_page(self.session, SEARCH_URL, {"q": query})
        if not fetched:
            return None
        final_url, soup = fetched
        return parse_rating_page(soup, self.source, url=final_url)
