"""Prometheus metrics for the topology core.

All collectors live on the default registry so ``GET /metrics`` on the
REST app exposes them without extra wiring.
"""

from __future__ import annotations

from prometheus_client import Counter, Histogram

graph_builds_total = Counter(
    "kubetopo_graph_builds_total",
    "Resource graphs built",
)

connection_records_total = Counter(
    "kubetopo_connection_records_total",
    "Connection records produced by the connectivity calculator",
    ["verdict"],
)

layout_duration_seconds = Histogram(
    "kubetopo_layout_duration_seconds",
    "Wall-clock time spent computing a layout",
    ["strategy"],
    buckets=(0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0),
)

data_quality_warnings_total = Counter(
    "kubetopo_data_quality_warnings_total",
    "Non-fatal data quality warnings emitted",
    ["code"],
)

computations_cancelled_total = Counter(
    "kubetopo_computations_cancelled_total",
    "Computations aborted through a cancellation token",
    ["operation"],
)

layout_cache_hits_total = Counter(
    "kubetopo_layout_cache_hits_total",
    "Layout cache lookups that returned a stored result",
)

layout_cache_misses_total = Counter(
    "kubetopo_layout_cache_misses_total",
    "Layout cache lookups that found nothing",
)
