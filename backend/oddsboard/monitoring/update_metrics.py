"""
backend/oddsboard/monitoring/update_metrics.py

Purpose:
    Prometheus metrics for the odds update cycle and the usage ledger.

Dependencies:
    - prometheus_client
"""

from __future__ import annotations

from contextlib import contextmanager
from time import perf_counter

from prometheus_client import Counter, Gauge, Histogram

METRIC_FETCH_TOTAL = Counter(
    "oddsboard_fetch_total",
    "Upstream odds fetch attempts by result.",
    ["sport_key", "result"],
)
METRIC_UPDATE_SKIPPED = Counter(
    "oddsboard_update_skipped_total",
    "Update attempts that ended without an upstream call.",
    ["reason"],
)
METRIC_LEDGER_WRITE_FAILURES = Counter(
    "oddsboard_ledger_write_failures_total",
    "Successful fetches whose usage increment could not be persisted.",
)
METRIC_API_USAGE = Gauge(
    "oddsboard_api_usage_count",
    "Metered upstream calls recorded for the current month.",
)
METRIC_FETCH_LATENCY = Histogram(
    "oddsboard_fetch_latency_seconds",
    "Latency of one upstream odds fetch.",
)


@contextmanager
def observe_latency(metric):
    start = perf_counter()
    try:
        yield
    finally:
        metric.observe(perf_counter() - start)
