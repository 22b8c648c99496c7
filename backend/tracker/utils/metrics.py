"""Prometheus metrics for autosave and remote sync."""

from prometheus_client import Counter, Histogram

autosave_flush_latency_ms = Histogram(
    "autosave_flush_latency_ms",
    "Autosave flush latency in milliseconds",
    ["outcome"],
    buckets=[5, 10, 50, 100, 200, 500, 1000, 2000, 4000],
)

sync_attempts_total = Counter(
    "sync_attempts_total",
    "Total outbox sync attempts",
    ["outcome"],
)

sync_conflicts_total = Counter(
    "sync_conflicts_total",
    "Total sync conflicts surfaced",
    ["source"],
)


class PrometheusSyncMetrics:
    """Prometheus-based sync metrics implementation."""

    def record_flush(self, outcome: str, latency_ms: float) -> None:
        """Record autosave flush latency."""
        autosave_flush_latency_ms.labels(outcome=outcome).observe(latency_ms)

    def inc_sync(self, outcome: str) -> None:
        """Increment sync attempt counter."""
        sync_attempts_total.labels(outcome=outcome).inc()

    def inc_conflict(self, source: str) -> None:
        """Increment conflict counter."""
        sync_conflicts_total.labels(source=source).inc()
