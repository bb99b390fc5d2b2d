"""
Typed Pydantic models for entity metadata.

Each pass that produces or rewrites an entity fills its own group of
optional fields; unknown keys are accepted so callers can attach their
own annotations without losing type safety on the known ones.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ScoringFactor(BaseModel):
    """One named factor of an address score breakdown."""

    model_config = ConfigDict(frozen=True)

    name: str
    score: float = Field(..., ge=0.0)
    max_score: float = Field(..., ge=0.0)
    matched: bool
    description: str = ""


class OriginalSpan(BaseModel):
    """A pre-consolidation span kept for auditability."""

    model_config = ConfigDict(frozen=True)

    start: int = Field(..., ge=0)
    end: int = Field(..., ge=0)
    type: str

    @field_validator("end")
    @classmethod
    def validate_end(cls, v: int, info) -> int:
        start = info.data.get("start")
        if start is not None and v < start:
            raise ValueError("end must not precede start")
        return v


class EntityMetadata(BaseModel):
    """
    Metadata bag attached to every Entity.

    Field groups:
        - rule detection:   pattern_name, pattern_priority
        - ML detection:     ml_entity_group, ml_score, token_count, chunk_count
        - context scoring:  context_words_found, context_boost, context_skip_reason
        - addresses:        is_address_component, component_type, is_grouped_address,
                            pattern_matched, breakdown, component_count,
                            scoring_factors, auto_anonymize, linked_to_address
        - consolidation:    consolidated_from, original_spans
    """

    model_config = ConfigDict(extra="allow", frozen=True)

    pattern_name: Optional[str] = None
    pattern_priority: Optional[int] = None

    ml_entity_group: Optional[str] = None
    ml_score: Optional[float] = Field(None, ge=0.0, le=1.0)
    token_count: Optional[int] = Field(None, ge=1)
    chunk_count: Optional[int] = Field(None, ge=1)

    context_words_found: Optional[List[str]] = None
    context_boost: Optional[float] = None
    context_skip_reason: Optional[str] = None

    is_address_component: Optional[bool] = None
    component_type: Optional[str] = None
    is_grouped_address: Optional[bool] = None
    pattern_matched: Optional[str] = None
    breakdown: Optional[Dict[str, Optional[str]]] = None
    component_count: Optional[int] = None
    scoring_factors: Optional[List[ScoringFactor]] = None
    auto_anonymize: Optional[bool] = None
    linked_to_address: Optional[bool] = None

    consolidated_from: Optional[List[str]] = None
    original_spans: Optional[List[OriginalSpan]] = None

    def merged(self, **updates: Any) -> "EntityMetadata":
        """Return a new metadata object with *updates* applied."""
        data = self.model_dump(exclude_none=True)
        data.update(updates)
        return type(self).model_validate(data)

    def to_dict(self) -> dict:
        return self.model_dump(exclude_none=True)
