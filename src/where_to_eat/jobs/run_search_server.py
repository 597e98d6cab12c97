"""HTTP entrypoint exposing the search pipeline (Cloud Run friendly)."""

from __future__ import annotations

import logging
import os
import threading
from typing import Any, Callable, Dict, Optional

from flask import Flask, jsonify, request

from where_to_eat.core.config import get_settings
from where_to_eat.core.models import WeightingStrategy
from where_to_eat.engine.aggregation import describe_strategy
from where_to_eat.engine.pipeline import (
    MalformedInputError,
    SearchService,
    UpstreamDependencyError,
    parse_search_request,
)

# ---------- Logging ----------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)

# ---------- App & service ----------
app = Flask(__name__)
_service: Optional[SearchService] = None
_demo_service: Optional[SearchService] = None
_service_lock = threading.Lock()


def get_service() -> SearchService:
    """Build the process-wide service once so adapters and rate limiters are shared."""
    global _service
    if _service is None:
        with _service_lock:
            if _service is None:
                _service = SearchService(get_settings())
    return _service


def get_demo_service() -> SearchService:
    global _demo_service
    if _demo_service is None:
        with _service_lock:
            if _demo_service is None:
                _demo_service = SearchService.demo(get_settings())
    return _demo_service


# ---------- Routes ----------


@app.get("/healthz")
def healthcheck() -> Any:
    settings = get_settings()
    return (
        jsonify(
            {
                "status": "ok",
                "sources": list(settings.enabled_sources),
                "revision": os.getenv("K_REVISION", "unknown"),
            }
        ),
        200,
    )


@app.get("/strategies")
def strategies() -> Any:
    return jsonify({"data": {strategy.value: describe_strategy(strategy) for strategy in WeightingStrategy}}), 200


def _run_search(service_factory: Callable[[], SearchService]) -> Any:
    payload: Dict[str, Any] = request.get_json(silent=True) or {}

    try:
        search_request = parse_search_request(payload, get_settings().default_max_travel_min)
        response = service_factory().search(search_request)
    except MalformedInputError as exc:
        return jsonify({"error": str(exc)}), 400
    except UpstreamDependencyError as exc:
        logger.error("Upstream failure: %s", exc)
        return jsonify({"error": str(exc)}), 502
    except Exception as exc:  # noqa: BLE001
        logger.exception("Search failed: %s", exc)
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(response.to_dict()), 200


@app.post("/search")
def search() -> Any:
    """
    Rank a specific restaurant or everything nearby.
    JSON fields: query ('nearby' or a name), location, userLat, userLon,
    weightingConfig, maxTravelTimeMin, plannedTime, platforms.
    """
    return _run_search(get_service)


@app.post("/demo")
def demo() -> Any:
    """Same contract as /search, answered from built-in fixture venues."""
    return _run_search(get_demo_service)


def main() -> None:
    env_port = os.getenv("PORT")
    port = int(env_port or get_settings().worker_port)
    logger.info("[BOOT] Binding on 0.0.0.0:%d", port)
    app.run(host="0.0.0.0", port=port)


if __name__ == "__main__":
    main()
