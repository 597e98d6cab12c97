"""CLI job to rank a venue (or everything nearby) and print the JSON response."""

import argparse
import json
import logging
import sys
from typing import List, Optional

from where_to_eat.core.config import ConfigError, get_settings
from where_to_eat.core.models import WeightingConfig, WeightingStrategy
from where_to_eat.engine.dayparts import DAYPARTS, NOW
from where_to_eat.engine.pipeline import (
    MalformedInputError,
    SearchRequest,
    SearchService,
    UpstreamDependencyError,
)

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Aggregate restaurant ratings across review sites")
    parser.add_argument("query", nargs="?", default="nearby", help="Restaurant name, or 'nearby'")
    parser.add_argument("--location", default="", help="Free-text location, e.g. 'Austin, TX'")
    parser.add_argument("--lat", dest="user_lat", type=float, help="User latitude")
    parser.add_argument("--lon", dest="user_lon", type=float, help="User longitude")
    parser.add_argument(
        "--strategy",
        choices=[strategy.value for strategy in WeightingStrategy],
        default=WeightingStrategy.BAYESIAN_AVERAGE.value,
        help="Rating weighting strategy",
    )
    parser.add_argument("--prior", type=float, default=3.5, help="Bayesian prior mean")
    parser.add_argument("--min-reviews", dest="min_reviews", type=float, default=10.0, help="Bayesian pseudo-count")
    parser.add_argument(
        "--weight",
        dest="weights",
        action="append",
        default=[],
        metavar="SOURCE=WEIGHT",
        help="Per-source trust weight for platform_trust (repeatable)",
    )
    parser.add_argument("--max-travel", dest="max_travel", type=float, help="Travel time ceiling in minutes")
    parser.add_argument("--when", default=NOW, choices=[NOW, *DAYPARTS], help="Planned time")
    parser.add_argument("--sources", help="Comma-separated review sources to query")
    parser.add_argument("--demo", action="store_true", help="Use built-in fixture venues instead of live sources")
    return parser


def _parse_weights(values: List[str]) -> Optional[dict]:
    if not values:
        return None
    weights = {}
    for value in values:
        source, sep, weight = value.partition("=")
        if not sep:
            raise MalformedInputError(f"--weight expects SOURCE=WEIGHT, got {value!r}")
        try:
            weights[source.strip().lower()] = float(weight)
        except ValueError as exc:
            raise MalformedInputError(f"weight for {source!r} must be numeric") from exc
    return weights


def request_from_args(args: argparse.Namespace, default_max_travel: float) -> SearchRequest:
    sources = tuple(part.strip().lower() for part in args.sources.split(",") if part.strip()) if args.sources else None
    return SearchRequest(
        query=args.query,
        location=args.location,
        user_lat=args.user_lat,
        user_lon=args.user_lon,
        weighting=WeightingConfig(
            strategy=WeightingStrategy(args.strategy),
            bayesian_prior=args.prior,
            bayesian_min_reviews=args.min_reviews,
            platform_weights=_parse_weights(args.weights),
        ),
        max_travel_time_min=args.max_travel if args.max_travel is not None else default_max_travel,
        planned_time=args.when,
        sources=sources,
    )


def main(argv: Optional[List[str]] = None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s - %(message)s")
    args = build_parser().parse_args(argv)

    try:
        settings = get_settings()
        request = request_from_args(args, settings.default_max_travel_min)
        service = SearchService.demo(settings) if args.demo else SearchService(settings)
        response = service.search(request)
    except (ConfigError, MalformedInputError) as exc:
        logger.error("Invalid request: %s", exc)
        return 2
    except UpstreamDependencyError as exc:
        logger.error("Search failed: %s", exc)
        return 1

    json.dump(response.to_dict(), sys.stdout, ensure_ascii=False, indent=2)
    sys.stdout.write("\n")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
