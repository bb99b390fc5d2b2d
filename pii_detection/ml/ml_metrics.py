"""
ML inference metrics — bounded in-memory ring of per-inference records
with percentile aggregation, overall and grouped by document type and
language. Records carry sizes and timings only, never document text.
"""
import json
import math
import time
from collections import deque
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Deque, Dict, Iterable, List, Optional

import numpy as np

from pii_detection.config import settings

UNKNOWN_KEY = "unknown"


@dataclass(frozen=True)
class InferenceRecord:
    duration_ms: float
    text_length: int
    tokens_processed: int
    entities_detected: int
    model_name: str
    chunked: bool = False
    chunk_count: Optional[int] = None
    document_type: Optional[str] = None
    language: Optional[str] = None
    failed: bool = False
    retry_attempts: Optional[int] = None
    timestamp: float = field(default_factory=time.time)


@dataclass(frozen=True)
class MetricsConfig:
    max_retention: int = 1000
    enabled: bool = True


def create_inference_record(
    duration_ms: float,
    text_length: int,
    entities_detected: int,
    model_name: str,
    chunked: bool = False,
    chunk_count: Optional[int] = None,
    document_type: Optional[str] = None,
    language: Optional[str] = None,
    failed: bool = False,
    retry_attempts: Optional[int] = None,
) -> InferenceRecord:
    """Build a record; token count is estimated at four characters per token."""
    return InferenceRecord(
        duration_ms=duration_ms,
        text_length=text_length,
        tokens_processed=math.ceil(text_length / 4),
        entities_detected=entities_detected,
        model_name=model_name,
        chunked=chunked,
        chunk_count=chunk_count,
        document_type=document_type,
        language=language,
        failed=failed,
        retry_attempts=retry_attempts,
    )


def _nearest_rank(values: np.ndarray, p: float) -> float:
    return float(np.percentile(values, p, method="inverted_cdf"))


def aggregate_basic(records: List[InferenceRecord]) -> Dict[str, float]:
    if not records:
        return {
            "total_inferences": 0,
            "failed_inferences": 0,
            "avg_inference_time_ms": 0.0,
            "p50_inference_time_ms": 0.0,
            "p95_inference_time_ms": 0.0,
            "p99_inference_time_ms": 0.0,
            "min_inference_time_ms": 0.0,
            "max_inference_time_ms": 0.0,
            "avg_text_length": 0.0,
            "avg_tokens_processed": 0.0,
            "avg_entities_per_document": 0.0,
            "total_entities_detected": 0,
        }

    durations = np.array([r.duration_ms for r in records], dtype=float)
    entities = [r.entities_detected for r in records]
    return {
        "total_inferences": len(records),
        "failed_inferences": sum(1 for r in records if r.failed),
        "avg_inference_time_ms": float(np.mean(durations)),
        "p50_inference_time_ms": _nearest_rank(durations, 50),
        "p95_inference_time_ms": _nearest_rank(durations, 95),
        "p99_inference_time_ms": _nearest_rank(durations, 99),
        "min_inference_time_ms": float(durations.min()),
        "max_inference_time_ms": float(durations.max()),
        "avg_text_length": float(np.mean([r.text_length for r in records])),
        "avg_tokens_processed": float(np.mean([r.tokens_processed for r in records])),
        "avg_entities_per_document": float(np.mean(entities)),
        "total_entities_detected": int(sum(entities)),
    }


def _group(records: Iterable[InferenceRecord], attr: str) -> Dict[str, List[InferenceRecord]]:
    groups: Dict[str, List[InferenceRecord]] = {}
    for r in records:
        groups.setdefault(getattr(r, attr) or UNKNOWN_KEY, []).append(r)
    return groups


def aggregate_metrics(records: Iterable[InferenceRecord]) -> dict:
    records = list(records)
    result: dict = aggregate_basic(records)
    result["by_document_type"] = {
        k: aggregate_basic(v) for k, v in _group(records, "document_type").items()
    }
    result["by_language"] = {
        k: aggregate_basic(v) for k, v in _group(records, "language").items()
    }
    return result


class MLMetricsCollector:
    """Capacity-bounded collector; the oldest records are evicted first."""

    def __init__(self, config: Optional[MetricsConfig] = None) -> None:
        self.config = config or MetricsConfig(max_retention=settings.METRICS_MAX_RETENTION)
        self._records: Deque[InferenceRecord] = deque(maxlen=self.config.max_retention)

    def record(self, record: InferenceRecord) -> None:
        if self.config.enabled:
            self._records.append(record)

    def get_metrics(self) -> List[InferenceRecord]:
        return list(self._records)

    def get_count(self) -> int:
        return len(self._records)

    def get_aggregated(self) -> dict:
        return aggregate_metrics(self._records)

    def export(self) -> str:
        return json.dumps(
            {
                "exported_at": datetime.now(timezone.utc).isoformat(),
                "config": asdict(self.config),
                "metrics_count": len(self._records),
                "aggregated": self.get_aggregated(),
                "raw": [asdict(r) for r in self._records],
            },
            indent=2,
        )

    def clear(self) -> None:
        self._records.clear()

    def configure(self, max_retention: Optional[int] = None, enabled: Optional[bool] = None) -> None:
        self.config = MetricsConfig(
            max_retention=self.config.max_retention if max_retention is None else max_retention,
            enabled=self.config.enabled if enabled is None else enabled,
        )
        self._records = deque(self._records, maxlen=self.config.max_retention)

    def get_config(self) -> MetricsConfig:
        return self.config


# =============================================================================
# Process-wide collector
# =============================================================================
global_collector = MLMetricsCollector()


def record_ml_metrics(record: InferenceRecord) -> None:
    global_collector.record(record)


def get_aggregated_metrics() -> dict:
    return global_collector.get_aggregated()


def export_metrics() -> str:
    return global_collector.export()


def clear_metrics() -> None:
    global_collector.clear()


def get_metrics_count() -> int:
    return global_collector.get_count()
