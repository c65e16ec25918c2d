"""
Lightweight metrics collection for Ladderwatch.
Wraps prometheus_client with async-safe patterns.
"""
from __future__ import annotations

import time
from contextlib import asynccontextmanager
from typing import AsyncIterator

from prometheus_client import Counter, Histogram, start_http_server

from shared.utils.logging import get_logger

logger = get_logger(__name__)

# ── Counters ────────────────────────────────────────────────────────────
REMOTE_REQUESTS = Counter(
    "lw_remote_requests_total",
    "Total remote HTTP attempts by classified outcome",
    ["client", "outcome"],
)
REFERENCE_REFRESHES = Counter(
    "lw_reference_refreshes_total",
    "Reference dataset refresh attempts",
    ["dataset", "outcome"],
)
RECONCILIATIONS = Counter(
    "lw_reconciliations_total",
    "Completed or failed reconciliation runs",
    ["outcome"],
)

# ── Histograms ──────────────────────────────────────────────────────────
REMOTE_LATENCY = Histogram(
    "lw_remote_latency_seconds",
    "Remote request latency in seconds (per attempt)",
    ["client"],
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)
LOCAL_QUERY_LATENCY = Histogram(
    "lw_local_query_latency_seconds",
    "Local store query latency in seconds",
    ["query"],
    buckets=(0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 5.0),
)
RECONCILIATION_DRIFT = Histogram(
    "lw_reconciliation_drift",
    "Absolute drift observed per reconciliation run",
    ["kind"],
    buckets=(0, 1, 2, 5, 10, 25, 50, 100, 250, 1000),
)


@asynccontextmanager
async def atrack_latency(histogram: Histogram, **labels: str) -> AsyncIterator[None]:
    """Async context manager to track operation latency."""
    start = time.perf_counter()
    try:
        yield
    finally:
        histogram.labels(**labels).observe(time.perf_counter() - start)


def start_metrics_server(port: int, enabled: bool = True) -> None:
    """Start the Prometheus metrics HTTP server."""
    if not enabled:
        return
    try:
        start_http_server(port)
        logger.info("metrics_server_started", port=port)
    except OSError as exc:
        logger.warning("metrics_server_failed", error=str(exc), port=port)
