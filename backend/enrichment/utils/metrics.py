"""Prometheus metrics for the enrichment pipeline."""

from prometheus_client import Counter, Histogram

pipeline_stage_latency_ms = Histogram(
    "pipeline_stage_latency_ms",
    "Pipeline stage latency in milliseconds",
    ["stage", "outcome"],
    buckets=[10, 50, 100, 200, 500, 1000, 2000, 4000, 8000, 16000],
)

pipeline_degradations_total = Counter(
    "pipeline_degradations_total",
    "Total absorbed enrichment failures",
    ["stage", "reason"],
)

itinerary_cache_events_total = Counter(
    "itinerary_cache_events_total",
    "Itinerary cache hits, misses and errors",
    ["event"],
)


class PipelineMetrics:
    """No-op metrics interface (default for tests and embedded use)."""

    def record_latency(self, stage: str, outcome: str, latency_ms: float) -> None:
        """Record stage latency."""
        pass

    def inc_degradation(self, stage: str, reason: str) -> None:
        """Increment absorbed-failure counter."""
        pass

    def inc_cache_event(self, event: str) -> None:
        """Increment cache event counter."""
        pass


class PrometheusPipelineMetrics(PipelineMetrics):
    """Prometheus-based pipeline metrics implementation."""

    def record_latency(self, stage: str, outcome: str, latency_ms: float) -> None:
        """Record stage latency."""
        pipeline_stage_latency_ms.labels(stage=stage, outcome=outcome).observe(latency_ms)

    def inc_degradation(self, stage: str, reason: str) -> None:
        """Increment absorbed-failure counter."""
        pipeline_degradations_total.labels(stage=stage, reason=reason).inc()

    def inc_cache_event(self, event: str) -> None:
        """Increment cache event counter."""
        itinerary_cache_events_total.labels(event=event).inc()
