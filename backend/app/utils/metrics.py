"""Prometheus metrics for document processing and review."""

from prometheus_client import Counter, Histogram

# Pipeline metrics
pipeline_runs_total = Counter(
    "pipeline_runs_total",
    "Total pipeline runs by outcome",
    ["outcome"],
)

pipeline_stage_latency_ms = Histogram(
    "pipeline_stage_latency_ms",
    "Pipeline stage latency in milliseconds",
    ["stage"],
    buckets=[10, 50, 100, 250, 500, 1000, 2500, 5000, 10000, 30000, 60000],
)

# Review metrics
chunk_decisions_total = Counter(
    "chunk_decisions_total",
    "Total chunk review transitions",
    ["decision"],
)

documents_finalized_total = Counter(
    "documents_finalized_total",
    "Total finalized documents by outcome",
    ["outcome"],
)


class PrometheusReviewMetrics:
    """Prometheus-based pipeline and review metrics."""

    def record_stage(self, stage: str, latency_ms: float) -> None:
        """Record pipeline stage latency."""
        pipeline_stage_latency_ms.labels(stage=stage).observe(latency_ms)

    def inc_run(self, outcome: str) -> None:
        """Increment finished-run counter."""
        pipeline_runs_total.labels(outcome=outcome).inc()

    def inc_decision(self, decision: str) -> None:
        """Increment chunk transition counter."""
        chunk_decisions_total.labels(decision=decision).inc()

    def inc_finalized(self, outcome: str) -> None:
        """Increment finalization counter."""
        documents_finalized_total.labels(outcome=outcome).inc()
