"""
Prometheus Metrics — detection pipeline observability.

Exposes counters and histograms for:
- Per-pass processing latency
- Pipeline runs by outcome
- Detected entities by type (counts only, never text)
- DenyList suppressions by type
- ML inference failures

Usage
-----
    from pii_detection.pipeline.metrics import timed_pass, record_pipeline_run

    with timed_pass("high-recall"):
        entities = pass_.execute(entities, context)

    record_pipeline_run("success")
"""
from __future__ import annotations

from contextlib import contextmanager
from typing import Dict, Generator, Iterable

from prometheus_client import Counter, Histogram

# ---------------------------------------------------------------------------
# Metric definitions
# ---------------------------------------------------------------------------

PASS_LATENCY: Histogram = Histogram(
    "pii_pass_duration_seconds",
    "Processing time per detection pass in seconds",
    ["pass_name"],
    buckets=(0.001, 0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 5.0),
)

PIPELINE_RUNS: Counter = Counter(
    "pii_pipeline_runs_total",
    "Detection pipeline runs by outcome (success / failure)",
    ["status"],
)

ENTITIES_DETECTED: Counter = Counter(
    "pii_entities_detected_total",
    "Entities emitted by the pipeline, by entity type",
    ["entity_type"],
)

DENY_LIST_FILTERED: Counter = Counter(
    "pii_deny_list_filtered_total",
    "Candidates suppressed by the DenyList, by entity type",
    ["entity_type"],
)

ML_INFERENCE_FAILURES: Counter = Counter(
    "pii_ml_inference_failures_total",
    "ML inference runs that failed after retries or on a fatal error",
)


# ---------------------------------------------------------------------------
# Convenience helpers
# ---------------------------------------------------------------------------

def record_pipeline_run(status: str) -> None:
    """Increment the run counter for *status*."""
    PIPELINE_RUNS.labels(status=status).inc()


def record_entities(entity_types: Iterable[str]) -> None:
    for entity_type in entity_types:
        ENTITIES_DETECTED.labels(entity_type=entity_type).inc()


def record_deny_list_filtered(counts: Dict[str, int]) -> None:
    for entity_type, count in counts.items():
        DENY_LIST_FILTERED.labels(entity_type=entity_type).inc(count)


def record_ml_failure() -> None:
    ML_INFERENCE_FAILURES.inc()


@contextmanager
def timed_pass(pass_name: str) -> Generator[None, None, None]:
    """
    Context manager that records pass latency.

    Usage::

        with timed_pass("consolidation"):
            entities = pass_.execute(entities, context)
    """
    with PASS_LATENCY.labels(pass_name=pass_name).time():
        yield
