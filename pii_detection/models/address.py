"""
Address models: classifier components, linked groups and scored groups.
"""
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Tuple

from pii_detection.models.metadata import ScoringFactor

# Pattern labels produced by the linker
PATTERN_SWISS = "SWISS"
PATTERN_EU = "EU"
PATTERN_ALTERNATIVE = "ALTERNATIVE"
PATTERN_PARTIAL = "PARTIAL"
PATTERN_NONE = "NONE"


@dataclass(frozen=True)
class AddressComponent:
    """A single address part found by the classifier."""

    type: str               # STREET_NAME | STREET_NUMBER | POSTAL_CODE | CITY | COUNTRY | REGION
    text: str
    start: int
    end: int
    linked: bool = False
    linked_to_group_id: Optional[str] = None

    def overlaps(self, other: "AddressComponent") -> bool:
        return not (self.end <= other.start or other.end <= self.start)

    def evolve(self, **changes) -> "AddressComponent":
        return replace(self, **changes)

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "text": self.text,
            "start": self.start,
            "end": self.end,
            "linked": self.linked,
            "linked_to_group_id": self.linked_to_group_id,
        }


@dataclass(frozen=True)
class LinkedAddressGroup:
    """Proximity group annotated with its detected pattern."""

    components: Tuple[AddressComponent, ...]
    pattern: str
    start: int
    end: int
    is_valid: bool


@dataclass(frozen=True)
class GroupedAddress:
    """Two or more components merged into one address span."""

    id: str
    type: str
    text: str
    start: int
    end: int
    confidence: float
    source: str
    components: Dict[str, Optional[str]]     # role -> text (street, number, postal, city, country)
    component_entities: Tuple[AddressComponent, ...]
    pattern_matched: str
    validation_status: str                    # valid | partial | uncertain


@dataclass(frozen=True)
class ScoredAddress:
    """GroupedAddress plus the scorer's verdict."""

    address: GroupedAddress
    final_confidence: float
    scoring_factors: List[ScoringFactor] = field(default_factory=list)
    flagged_for_review: bool = False
    auto_anonymize: bool = False

    @property
    def text(self) -> str:
        return self.address.text

    @property
    def start(self) -> int:
        return self.address.start

    @property
    def end(self) -> int:
        return self.address.end

    @property
    def pattern_matched(self) -> str:
        return self.address.pattern_matched

    @property
    def components(self) -> Dict[str, Optional[str]]:
        return self.address.components
