"""
Groups nearby address components into whole addresses.

Two grouping strategies:
- group_by_proximity: gap-based, with a wider gap allowed across line breaks
  (multi-line letter heads);
- link_components: sliding window that only accepts valid role transitions
  (street -> number -> postal -> city -> country).

Each group is matched against the known layouts (SWISS, EU, ALTERNATIVE,
PARTIAL) and turned into a GroupedAddress.
"""
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple

from pii_detection.address.classifier import AddressClassifier, ClassifierConfig
from pii_detection.config.constants import (
    ADDRESS,
    CITY,
    COUNTRY,
    POSTAL_CODE,
    REGION,
    SOURCE_LINKED,
    SOURCE_RULE,
    STREET_NAME,
    STREET_NUMBER,
)
from pii_detection.models.address import (
    PATTERN_ALTERNATIVE,
    PATTERN_EU,
    PATTERN_NONE,
    PATTERN_PARTIAL,
    PATTERN_SWISS,
    AddressComponent,
    GroupedAddress,
    LinkedAddressGroup,
)
from pii_detection.models.entity import Entity, new_entity_id
from pii_detection.models.metadata import EntityMetadata

VALID_TRANSITIONS: Dict[str, Tuple[str, ...]] = {
    STREET_NAME: (STREET_NUMBER, POSTAL_CODE, CITY),
    STREET_NUMBER: (POSTAL_CODE, CITY, STREET_NAME),
    POSTAL_CODE: (CITY, COUNTRY, STREET_NAME),
    CITY: (COUNTRY, POSTAL_CODE),
    COUNTRY: (),
    REGION: (CITY, COUNTRY),
}

BASE_PATTERN_CONFIDENCE: Dict[str, float] = {
    PATTERN_SWISS: 0.85,
    PATTERN_EU: 0.85,
    PATTERN_ALTERNATIVE: 0.75,
    PATTERN_PARTIAL: 0.5,
}

_NEWLINE = re.compile(r"[\r\n]")


@dataclass(frozen=True)
class LinkerConfig:
    proximity_threshold: int = 50
    newline_threshold: int = 100
    min_components: int = 2
    max_components: int = 6


@dataclass
class LinkResult:
    grouped_addresses: List[GroupedAddress] = field(default_factory=list)
    linked_components: List[AddressComponent] = field(default_factory=list)
    unlinked_components: List[AddressComponent] = field(default_factory=list)


@dataclass
class ProcessResult:
    components: List[AddressComponent]
    addresses: List[GroupedAddress]
    entities: List[Entity]


def _first(components: List[AddressComponent], component_type: str) -> Optional[AddressComponent]:
    return next((c for c in components if c.type == component_type), None)


def validation_status_for(pattern: str) -> str:
    if pattern in (PATTERN_SWISS, PATTERN_EU):
        return "valid"
    if pattern == PATTERN_ALTERNATIVE:
        return "partial"
    return "uncertain"


class AddressLinker:
    def __init__(
        self,
        config: Optional[LinkerConfig] = None,
        classifier: Optional[AddressClassifier] = None,
    ) -> None:
        self.config = config or LinkerConfig()
        self.classifier = classifier or AddressClassifier(
            ClassifierConfig(max_component_distance=self.config.proximity_threshold)
        )

    # ------------------------------------------------------------------
    # Proximity grouping
    # ------------------------------------------------------------------

    def group_by_proximity(
        self, components: List[AddressComponent], text: str
    ) -> List[List[AddressComponent]]:
        """Split components into runs whose gaps stay under the threshold."""
        if not components:
            return []

        ordered = sorted(components, key=lambda c: c.start)
        groups: List[List[AddressComponent]] = []
        current = [ordered[0]]

        for prev, cur in zip(ordered, ordered[1:]):
            gap = cur.start - prev.end
            threshold = (
                self.config.newline_threshold
                if _NEWLINE.search(text, prev.end, max(prev.end, cur.start))
                else self.config.proximity_threshold
            )
            if 0 <= gap <= threshold:
                current.append(cur)
            else:
                if len(current) >= self.config.min_components:
                    groups.append(current)
                current = [cur]

        if len(current) >= self.config.min_components:
            groups.append(current)
        return groups

    def match_patterns(self, groups: List[List[AddressComponent]]) -> List[LinkedAddressGroup]:
        linked = []
        for components in groups:
            pattern = self.detect_pattern(components)
            linked.append(LinkedAddressGroup(
                components=tuple(components),
                pattern=pattern,
                start=min(c.start for c in components),
                end=max(c.end for c in components),
                is_valid=pattern not in (PATTERN_NONE, PATTERN_PARTIAL),
            ))
        return linked

    def detect_pattern(self, components: List[AddressComponent]) -> str:
        """Classify a component group as SWISS, EU, ALTERNATIVE, PARTIAL or NONE."""
        types = {c.type for c in components}
        has_street = STREET_NAME in types
        has_number = STREET_NUMBER in types
        has_postal = POSTAL_CODE in types
        has_city = CITY in types
        has_country = COUNTRY in types

        if has_street and has_postal and has_city:
            if has_country:
                return PATTERN_EU
            ordered = sorted(components, key=lambda c: c.start)
            street_idx = next(i for i, c in enumerate(ordered) if c.type == STREET_NAME)
            postal_idx = next(i for i, c in enumerate(ordered) if c.type == POSTAL_CODE)
            if street_idx < postal_idx:
                return PATTERN_SWISS
            return PATTERN_ALTERNATIVE

        if (has_street or has_number) and (has_postal or has_city):
            return PATTERN_PARTIAL
        if has_postal and has_city:
            return PATTERN_PARTIAL
        return PATTERN_NONE

    def calculate_confidence(self, pattern: str, components: List[AddressComponent]) -> float:
        confidence = BASE_PATTERN_CONFIDENCE.get(pattern, 0.3)

        extra = len(components) - self.config.min_components
        if extra > 0:
            confidence += extra * 0.02

        types = {c.type for c in components}
        if STREET_NAME in types and STREET_NUMBER in types:
            confidence += 0.05
        if POSTAL_CODE in types and CITY in types:
            confidence += 0.05

        return min(confidence, 1.0)

    # ------------------------------------------------------------------
    # Sliding-window linking
    # ------------------------------------------------------------------

    def is_valid_addition(self, group: List[AddressComponent], candidate: AddressComponent) -> bool:
        if candidate.type != STREET_NAME and any(c.type == candidate.type for c in group):
            return False
        return candidate.type in VALID_TRANSITIONS.get(group[-1].type, ())

    def link_components(self, text: str, components: List[AddressComponent]) -> List[GroupedAddress]:
        ordered = sorted(components, key=lambda c: c.start)
        used: Set[int] = set()
        addresses: List[GroupedAddress] = []

        for i, seed in enumerate(ordered):
            if i in used:
                continue
            group = [seed]
            used.add(i)

            for j in range(i + 1, len(ordered)):
                if len(group) >= self.config.max_components:
                    break
                if j in used:
                    continue
                candidate = ordered[j]
                distance = candidate.start - group[-1].end
                if distance > self.config.proximity_threshold:
                    break
                if distance >= 0 and self.is_valid_addition(group, candidate):
                    group.append(candidate)
                    used.add(j)

            if len(group) >= self.config.min_components:
                pattern = self.detect_pattern(group)
                addresses.append(self._build_address(text, group, pattern))

        return addresses

    # ------------------------------------------------------------------
    # GroupedAddress construction
    # ------------------------------------------------------------------

    def _build_address(
        self, text: str, components: List[AddressComponent], pattern: str
    ) -> GroupedAddress:
        ordered = sorted(components, key=lambda c: c.start)
        start = ordered[0].start
        end = max(c.end for c in ordered)
        address_id = new_entity_id()

        def role_text(component_type: str) -> Optional[str]:
            component = _first(ordered, component_type)
            return component.text if component else None

        return GroupedAddress(
            id=address_id,
            type=ADDRESS,
            text=text[start:end],
            start=start,
            end=end,
            confidence=self.calculate_confidence(pattern, ordered),
            source=SOURCE_LINKED,
            components={
                "street": role_text(STREET_NAME),
                "number": role_text(STREET_NUMBER),
                "postal": role_text(POSTAL_CODE),
                "city": role_text(CITY),
                "country": role_text(COUNTRY),
            },
            component_entities=tuple(
                c.evolve(linked=True, linked_to_group_id=address_id) for c in ordered
            ),
            pattern_matched=pattern,
            validation_status=validation_status_for(pattern),
        )

    def create_grouped_address(self, group: LinkedAddressGroup, text: str) -> GroupedAddress:
        return self._build_address(text, list(group.components), group.pattern)

    def link_and_group(self, components: List[AddressComponent], text: str) -> LinkResult:
        """Proximity-group, pattern-match and keep valid or PARTIAL groups."""
        result = LinkResult()
        linked_keys = set()

        for group in self.match_patterns(self.group_by_proximity(components, text)):
            if group.is_valid or group.pattern == PATTERN_PARTIAL:
                result.grouped_addresses.append(self.create_grouped_address(group, text))
                linked_keys.update((c.start, c.end, c.type) for c in group.components)

        for component in components:
            if (component.start, component.end, component.type) in linked_keys:
                result.linked_components.append(component.evolve(linked=True))
            else:
                result.unlinked_components.append(component)
        return result

    def grouped_addresses_to_entities(
        self, addresses: List[GroupedAddress], source: str = SOURCE_RULE
    ) -> List[Entity]:
        return [
            Entity(
                id=address.id,
                type=ADDRESS,
                text=address.text,
                start=address.start,
                end=address.end,
                confidence=address.confidence,
                source=source,
                components=address.component_entities,
                metadata=EntityMetadata(
                    pattern_matched=address.pattern_matched,
                    breakdown=dict(address.components),
                    component_count=len(address.component_entities),
                    is_grouped_address=True,
                ),
            )
            for address in addresses
        ]

    def process_text(self, text: str) -> ProcessResult:
        components = self.classifier.classify_components(text)
        addresses = self.link_and_group(components, text).grouped_addresses
        return ProcessResult(
            components=components,
            addresses=addresses,
            entities=self.grouped_addresses_to_entities(addresses),
        )
