"""
Entity model for detected PII spans (rules / ML / manual / linked).

Entities are immutable value objects: passes build new ones through
evolve() instead of mutating in place.
"""
import uuid
from dataclasses import dataclass, field, replace
from typing import Optional, Tuple

from pii_detection.config.constants import ENTITY_SOURCES, SOURCE_RULE
from pii_detection.errors import SpanMismatchError
from pii_detection.models.address import AddressComponent
from pii_detection.models.metadata import EntityMetadata

VALIDATION_VALID = "valid"
VALIDATION_INVALID = "invalid"
VALIDATION_UNCHECKED = "unchecked"


def new_entity_id() -> str:
    return str(uuid.uuid4())


@dataclass(frozen=True)
class ValidationInfo:
    """Validator verdict attached to an entity."""

    status: str             # "valid" | "invalid" | "unchecked"
    reason: Optional[str] = None
    checked_by: Optional[str] = None
    confidence: Optional[float] = None

    def to_dict(self) -> dict:
        return {
            "status": self.status,
            "reason": self.reason,
            "checked_by": self.checked_by,
            "confidence": self.confidence,
        }


@dataclass(frozen=True)
class ContextFactor:
    """One factor of the context score."""

    name: str
    weight: float
    matched: bool
    description: str = ""

    @property
    def score(self) -> float:
        return self.weight if self.matched else 0.0

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "weight": self.weight,
            "matched": self.matched,
            "score": self.score,
            "description": self.description,
        }


@dataclass(frozen=True)
class ContextResult:
    """Context factors and their normalized total."""

    factors: Tuple[ContextFactor, ...]
    total: float

    def to_dict(self) -> dict:
        return {
            "factors": [f.to_dict() for f in self.factors],
            "total": self.total,
        }


@dataclass(frozen=True)
class Entity:
    """A single detected PII span with provenance."""

    text: str
    type: str
    start: int
    end: int
    source: str = SOURCE_RULE      # "RULE" | "ML" | "BOTH" | "MANUAL" | "LINKED"
    confidence: float = 1.0
    id: str = field(default_factory=new_entity_id)
    metadata: EntityMetadata = field(default_factory=EntityMetadata)
    validation: Optional[ValidationInfo] = None
    context: Optional[ContextResult] = None
    logical_id: Optional[str] = None
    flagged_for_review: bool = False
    selected: bool = True
    components: Tuple[AddressComponent, ...] = ()

    def __post_init__(self) -> None:
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence must be in [0, 1], got {self.confidence}")
        if self.start < 0 or self.end < self.start:
            raise ValueError(f"invalid span [{self.start}, {self.end})")
        if self.source not in ENTITY_SOURCES:
            raise ValueError(f"unknown entity source '{self.source}'")

    def overlaps(self, other: "Entity") -> bool:
        """Check if two entities have overlapping spans."""
        return not (self.end <= other.start or other.end <= self.start)

    def contains(self, other: "Entity") -> bool:
        return self.start <= other.start and other.end <= self.end

    def span_length(self) -> int:
        return self.end - self.start

    def evolve(self, **changes) -> "Entity":
        """Return a copy with *changes* applied (id preserved unless given)."""
        return replace(self, **changes)

    def to_dict(self, redact: bool = False) -> dict:
        metadata = self.metadata.to_dict()
        if redact:
            metadata.pop("breakdown", None)
        return {
            "id": self.id,
            "type": self.type,
            "text": f"[{self.type}]" if redact else self.text,
            "start": self.start,
            "end": self.end,
            "confidence": self.confidence,
            "source": self.source,
            "logical_id": self.logical_id,
            "flagged_for_review": self.flagged_for_review,
            "selected": self.selected,
            "validation": self.validation.to_dict() if self.validation else None,
            "context": self.context.to_dict() if self.context else None,
            "metadata": metadata,
            "components": [] if redact else [c.to_dict() for c in self.components],
        }

    def __repr__(self) -> str:
        return (
            f"Entity({self.type}, [{self.start},{self.end}], "
            f"{self.source}, {self.confidence:.2f})"
        )


def ensure_span(entity: Entity, text: str) -> Entity:
    """Raise SpanMismatchError unless entity.text == text[start:end]."""
    if text[entity.start:entity.end] != entity.text:
        raise SpanMismatchError(entity.id, entity.start, entity.end)
    return entity
