"""Concurrent fan-out of one venue lookup across every review source."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Mapping, Optional, Set

from where_to_eat.core.models import FetchResult, RatingSignal, SourceFailure
from where_to_eat.vendors.base import SourceAdapter

logger = logging.getLogger(__name__)

ABSENT_NOT_FOUND = "not_found"
ABSENT_TIMEOUT = "timeout"


class _ResultCollector:
    """Thread-safe sink for adapter outcomes.

    Each source settles at most once, and nothing is accepted after ``close``.
    Adapters abandoned at the deadline keep running in their threads, so late
    writes must be dropped rather than leak into a result already handed back.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._closed = False
        self._settled: Set[str] = set()
        self._result = FetchResult()

    def _settle(self, source: str) -> bool:
        if self._closed or source in self._settled:
            return False
        self._settled.add(source)
        return True

    def record_signal(self, source: str, signal: RatingSignal) -> bool:
        with self._lock:
            if not self._settle(source):
                return False
            self._result.signals.append(signal)
            return True

    def record_absent(self, source: str, reason: str) -> bool:
        with self._lock:
            if not self._settle(source):
                return False
            self._result.absent[source] = reason
            return True

    def record_error(self, source: str, message: str) -> bool:
        with self._lock:
            if not self._settle(source):
                return False
            self._result.errors[source] = message
            return True

    def close(self) -> FetchResult:
        with self._lock:
            self._closed = True
            return FetchResult(
                signals=list(self._result.signals),
                errors=dict(self._result.errors),
                absent=dict(self._result.absent),
            )


def _run_adapter(collector: _ResultCollector, source: str, adapter: SourceAdapter, name: str, location: str) -> None:
    try:
        signal = adapter.fetch(name, location)
    except Exception as exc:  # noqa: BLE001
        logger.warning("Adapter %s raised for %r: %s", source, name, exc)
        collector.record_error(source, str(exc) or type(exc).__name__)
        return

    if signal is None:
        collector.record_absent(source, ABSENT_NOT_FOUND)
    elif isinstance(signal, SourceFailure):
        collector.record_error(source, signal.message)
    elif not collector.record_signal(source, signal):
        logger.debug("Discarding late %s signal for %r", source, name)


def fetch_all(
    adapters: Mapping[str, SourceAdapter],
    name: str,
    location: str,
    timeout_ms: int,
    *,
    executor: Optional[ThreadPoolExecutor] = None,
) -> FetchResult:
    """Query every adapter concurrently and collect what settles before the deadline.

    Timed-out sources are reported as absent. Failed lookups, whether raised or
    handed back as a ``SourceFailure``, land in ``errors``. Calls still running
    at the deadline are abandoned, not cancelled.
    """
    collector = _ResultCollector()
    if not adapters:
        return collector.close()

    owns_executor = executor is None
    pool = executor or ThreadPoolExecutor(max_workers=len(adapters), thread_name_prefix="source")
    futures = {
        pool.submit(_run_adapter, collector, source, adapter, name, location): source
        for source, adapter in adapters.items()
    }

    _, pending = wait(futures, timeout=max(timeout_ms, 0) / 1000)
    for future in pending:
        source = futures[future]
        if collector.record_absent(source, ABSENT_TIMEOUT):
            logger.warning("%s timed out after %dms for %r", source, timeout_ms, name)

    result = collector.close()
    if owns_executor:
        pool.shutdown(wait=False, cancel_futures=True)

    logger.info(
        "Fetched %d signal(s) for %r (absent=%s errors=%s)",
        len(result.signals),
        name,
        sorted(result.absent),
        sorted(result.errors),
    )
    return result
