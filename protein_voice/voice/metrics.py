"""Prometheus instruments for voice logging runs."""
from __future__ import annotations

from prometheus_client import Counter, Histogram

PIPELINE_RUNS = Counter(
    "protein_voice_pipeline_runs_total",
    "Number of voice logging runs by outcome.",
    labelnames=("outcome",),
)
PIPELINE_LATENCY = Histogram(
    "protein_voice_processing_seconds",
    "Time spent transcribing and extracting one recording.",
    buckets=(0.5, 1.0, 2.0, 3.0, 5.0, 8.0, 13.0, 21.0, 34.0),
)


def record_outcome(outcome: str) -> None:
    PIPELINE_RUNS.labels(outcome=outcome).inc()


__all__ = ["PIPELINE_LATENCY", "PIPELINE_RUNS", "record_outcome"]
