"""
Pipeline configuration, per-run context and result models.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from jsonschema import ValidationError, validate
from pydantic import BaseModel, ConfigDict, Field

from pii_detection.config import settings
from pii_detection.config.schemas import DETECTION_RESULT_SCHEMA
from pii_detection.models.entity import Entity


class PipelineConfig(BaseModel):
    """Language-independent thresholds and feature flags for one pipeline."""

    model_config = ConfigDict(frozen=True)

    ml_confidence_threshold: float = Field(0.3, ge=0.0, le=1.0)
    context_window_size: int = Field(50, ge=1)
    auto_anonymize_threshold: float = Field(0.6, ge=0.0, le=1.0)
    enabled_passes: Optional[List[str]] = None
    debug: bool = False
    enable_epic8_features: bool = True
    enable_normalization: bool = True

    @classmethod
    def from_settings(cls) -> "PipelineConfig":
        return cls(
            ml_confidence_threshold=settings.ML_CONFIDENCE_THRESHOLD,
            context_window_size=settings.CONTEXT_WINDOW_SIZE,
            auto_anonymize_threshold=settings.AUTO_ANONYMIZE_THRESHOLD,
            enable_epic8_features=settings.ENABLE_EPIC8_FEATURES,
        )


@dataclass
class PipelineContext:
    """Per-run state handed to every pass; allocated fresh per document."""

    text: str
    document_id: str
    language: str
    config: PipelineConfig
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class PassResult:
    pass_name: str
    entities_added: int
    entities_modified: int
    entities_removed: int
    duration_ms: float

    def to_dict(self) -> dict:
        return {
            "pass_name": self.pass_name,
            "entities_added": self.entities_added,
            "entities_modified": self.entities_modified,
            "entities_removed": self.entities_removed,
            "duration_ms": self.duration_ms,
        }


@dataclass
class DetectionMetadata:
    total_duration_ms: float
    pass_results: List[PassResult] = field(default_factory=list)
    pass_timings: Dict[str, float] = field(default_factory=dict)
    entity_counts: Dict[str, int] = field(default_factory=dict)
    flagged_count: int = 0
    epic8: Optional[Dict[str, Dict[str, int]]] = None
    consolidation: Optional[Dict[str, Any]] = None

    def to_dict(self) -> dict:
        return {
            "total_duration_ms": self.total_duration_ms,
            "pass_results": [p.to_dict() for p in self.pass_results],
            "pass_timings": dict(self.pass_timings),
            "entity_counts": dict(self.entity_counts),
            "flagged_count": self.flagged_count,
            "epic8": self.epic8,
            "consolidation": self.consolidation,
        }


@dataclass
class DetectionResult:
    document_id: str
    language: str
    entities: List[Entity]
    metadata: DetectionMetadata

    def to_dict(self, redact: bool = False) -> dict:
        return {
            "document_id": self.document_id,
            "language": self.language,
            "entities": [e.to_dict(redact=redact) for e in self.entities],
            "metadata": self.metadata.to_dict(),
        }

    def schema_errors(self, redact: bool = False) -> List[str]:
        """Check to_dict() against DETECTION_RESULT_SCHEMA; [] when it conforms."""
        try:
            validate(instance=self.to_dict(redact=redact), schema=DETECTION_RESULT_SCHEMA)
        except ValidationError as e:
            return [f"Schema violation: {e.message}"]
        return []
