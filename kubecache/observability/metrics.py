"""Prometheus metrics for kubecache."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

cache_objects = Gauge(
    "kubecache_cache_objects",
    "Number of objects currently held in a kind's store.",
    ["kind"],
)

watch_events_total = Counter(
    "kubecache_watch_events_total",
    "Watch events received, by kind and event type.",
    ["kind", "type"],
)

relists_total = Counter(
    "kubecache_relists_total",
    "Full list calls completed (initial sync and periodic resync).",
    ["kind"],
)

sync_failures_total = Counter(
    "kubecache_sync_failures_total",
    "List or watch attempts that failed and were retried.",
    ["kind"],
)

queries_total = Counter(
    "kubecache_queries_total",
    "Cache queries served, by kind and outcome (ok, invalid_selector).",
    ["kind", "outcome"],
)

snapshot_refresh_seconds = Histogram(
    "kubecache_snapshot_refresh_seconds",
    "Time spent serializing every store into JSON snapshots.",
)
