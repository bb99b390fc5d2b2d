"""
Consolidation Pass (order 50) — final clean-up of the entity list.

Steps (each can be switched off):
    1. Overlap resolution: greedy, by priority (x confidence), span length
       and position. The output never contains overlapping spans, so a
       second run changes nothing.
    2. Address consolidation: loose address-component entities close to
       each other are folded into one ADDRESS-family entity.
    3. Entity linking: repeated mentions of the same value share a
       logical id such as PERSON_1.
"""
import logging
import re
import time
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Set, Tuple

from pii_detection.config.constants import (
    ADDRESS,
    ADDRESS_TYPES,
    COMPONENT_TYPES,
    COUNTRY,
    DEFAULT_ENTITY_PRIORITY,
    EU_ADDRESS,
    PERSON,
    PERSON_NAME,
    POSTAL_CODE,
    SOURCE_LINKED,
    SWISS_ADDRESS,
    TITLE_VARIATIONS,
)
from pii_detection.models.address import AddressComponent
from pii_detection.models.entity import Entity, ensure_span
from pii_detection.models.metadata import EntityMetadata, OriginalSpan
from pii_detection.models.pipeline import PipelineContext
from pii_detection.passes.base import DetectionPass

logger = logging.getLogger(__name__)

OVERLAP_CONFIDENCE_WEIGHTED = "confidence-weighted"
OVERLAP_PRIORITY_ONLY = "priority-only"

LINK_EXACT = "exact"
LINK_NORMALIZED = "normalized"
LINK_FUZZY = "fuzzy"

_SWISS_POSTAL = re.compile(r"^(?:CH[-\s]?)?[1-9]\d{3}$", re.IGNORECASE)
_SWISS_COUNTRY_WORDS = ("schweiz", "suisse", "switzerland", "svizzera")
_WHITESPACE = re.compile(r"\s+")
_NEWLINE = re.compile(r"[\r\n]")

# longest first so "mrs." is stripped before "mr"
_TITLES: List[str] = sorted(
    {t for variants in TITLE_VARIATIONS.values() for t in variants}, key=len, reverse=True
)


@dataclass(frozen=True)
class ConsolidationConfig:
    address_max_gap: int = 50
    enable_overlap_resolution: bool = True
    enable_address_consolidation: bool = True
    enable_entity_linking: bool = True
    show_components: bool = False
    entity_type_priority: Dict[str, int] = field(default_factory=lambda: dict(DEFAULT_ENTITY_PRIORITY))
    overlap_strategy: str = OVERLAP_CONFIDENCE_WEIGHTED
    linking_strategy: str = LINK_NORMALIZED
    min_consolidation_confidence: float = 0.5
    preserve_original_spans: bool = True
    min_address_components: int = 2


@dataclass
class ConsolidationStats:
    overlaps_resolved: int = 0
    addresses_consolidated: int = 0
    entities_linked: int = 0
    original_entity_count: int = 0
    duration_ms: float = 0.0

    def to_dict(self) -> dict:
        return {
            "overlaps_resolved": self.overlaps_resolved,
            "addresses_consolidated": self.addresses_consolidated,
            "entities_linked": self.entities_linked,
            "original_entity_count": self.original_entity_count,
            "duration_ms": self.duration_ms,
        }


@dataclass
class ConsolidationResult:
    entities: List[Entity]
    stats: ConsolidationStats


# =============================================================================
# Helpers
# =============================================================================

def base_type(entity_type: str) -> str:
    """SWISS_/EU_ADDRESS -> ADDRESS, PERSON_NAME -> PERSON."""
    if entity_type in (SWISS_ADDRESS, EU_ADDRESS):
        return ADDRESS
    if entity_type == PERSON_NAME:
        return PERSON
    return entity_type


def normalize_text(text: str) -> str:
    return _WHITESPACE.sub(" ", text.lower()).strip()


def fuzzy_normalize_text(text: str) -> str:
    normalized = normalize_text(text)
    stripped = True
    while stripped:
        stripped = False
        for title in _TITLES:
            if normalized.startswith(title + " "):
                normalized = normalized[len(title) + 1:].lstrip()
                stripped = True
                break
    return normalized


def is_address_component(entity: Entity) -> bool:
    if entity.type in ADDRESS_TYPES and entity.components:
        return False
    return bool(entity.metadata.is_address_component) or entity.type in COMPONENT_TYPES


def determine_address_type(components: List[AddressComponent]) -> str:
    postal = next((c.text for c in components if c.type == POSTAL_CODE), "")
    country = next((c.text.lower() for c in components if c.type == COUNTRY), None)

    swiss_country = country is not None and (
        country == "ch" or any(w in country for w in _SWISS_COUNTRY_WORDS)
    )
    if _SWISS_POSTAL.match(postal) or swiss_country:
        return SWISS_ADDRESS
    if country or postal:
        return EU_ADDRESS
    return ADDRESS


# =============================================================================
# Consolidator
# =============================================================================

class Consolidator:
    """Standalone consolidation engine; the pass below wraps it."""

    def __init__(self, config: Optional[ConsolidationConfig] = None) -> None:
        self.config = config or ConsolidationConfig()

    def get_config(self) -> ConsolidationConfig:
        return self.config

    def configure(self, **changes) -> None:
        self.config = replace(self.config, **changes)

    # ------------------------------------------------------------------
    # Step 1: overlaps
    # ------------------------------------------------------------------
    def _overlap_score(self, entity: Entity) -> float:
        priority = self.config.entity_type_priority.get(entity.type, 0)
        if self.config.overlap_strategy == OVERLAP_PRIORITY_ONLY:
            return float(priority)
        return priority * entity.confidence

    def resolve_overlaps(self, entities: List[Entity]) -> List[Entity]:
        ranked = sorted(
            entities,
            key=lambda e: (-self._overlap_score(e), -e.span_length(), e.start),
        )
        accepted: List[Entity] = []
        for entity in ranked:
            if not any(entity.overlaps(kept) for kept in accepted):
                accepted.append(entity)
        accepted.sort(key=lambda e: (e.start, e.end))
        return accepted

    # ------------------------------------------------------------------
    # Step 2: addresses
    # ------------------------------------------------------------------
    def _group_components(self, components: List[Entity], text: str) -> List[List[Entity]]:
        ordered = sorted(components, key=lambda e: e.start)
        groups: List[List[Entity]] = []
        current: List[Entity] = []
        for entity in ordered:
            if current:
                previous = current[-1]
                gap = entity.start - previous.end
                threshold = self.config.address_max_gap
                if _NEWLINE.search(text[previous.end:entity.start]):
                    threshold *= 2
                if not 0 <= gap <= threshold:
                    groups.append(current)
                    current = []
            current.append(entity)
        if current:
            groups.append(current)
        return [g for g in groups if len(g) >= self.config.min_address_components]

    def consolidate_addresses(
        self, entities: List[Entity], text: str
    ) -> Tuple[List[Entity], int]:
        components = [e for e in entities if is_address_component(e)]
        if len(components) < self.config.min_address_components:
            return entities, 0

        others = [e for e in entities if not is_address_component(e)]
        consolidated: List[Entity] = []
        used: Set[str] = set()

        for group in self._group_components(components, text):
            confidence = sum(c.confidence for c in group) / len(group)
            if confidence < self.config.min_consolidation_confidence:
                continue

            start, end = group[0].start, max(c.end for c in group)
            # never swallow an unrelated entity
            if any(o.start < end and start < o.end for o in others):
                continue

            parts = [
                AddressComponent(
                    type=c.metadata.component_type or c.type,
                    text=c.text,
                    start=c.start,
                    end=c.end,
                    linked=True,
                )
                for c in group
            ]
            metadata_updates = {
                "consolidated_from": [c.id for c in group],
                "component_count": len(group),
                "is_grouped_address": True,
            }
            if self.config.preserve_original_spans:
                metadata_updates["original_spans"] = [
                    OriginalSpan(start=c.start, end=c.end, type=c.type) for c in group
                ]
            address = Entity(
                text=text[start:end],
                type=determine_address_type(parts),
                start=start,
                end=end,
                source=SOURCE_LINKED,
                confidence=confidence,
                components=tuple(parts),
                metadata=EntityMetadata(**metadata_updates),
            )
            consolidated.append(ensure_span(address, text))
            used.update(c.id for c in group)

        if self.config.show_components:
            remaining = [
                c.evolve(metadata=c.metadata.merged(linked_to_address=c.id in used))
                for c in components
            ]
        else:
            remaining = [c for c in components if c.id not in used]

        result = others + consolidated + remaining
        result.sort(key=lambda e: (e.start, e.end))
        return result, len(consolidated)

    # ------------------------------------------------------------------
    # Step 3: linking
    # ------------------------------------------------------------------
    def _link_key(self, entity: Entity) -> str:
        strategy = self.config.linking_strategy
        if strategy == LINK_NORMALIZED:
            value = normalize_text(entity.text)
        elif strategy == LINK_FUZZY:
            value = fuzzy_normalize_text(entity.text)
        else:
            value = entity.text
        return f"{base_type(entity.type)}:{value}"

    def link_entities(self, entities: List[Entity]) -> Tuple[List[Entity], int]:
        ordered = sorted(entities, key=lambda e: (e.start, e.end))
        groups: Dict[str, List[int]] = {}
        for i, entity in enumerate(ordered):
            groups.setdefault(self._link_key(entity), []).append(i)

        counters: Dict[str, int] = {}
        logical_ids: Dict[int, str] = {}
        linked_groups = 0
        # dicts keep insertion order, so groups are numbered by first mention
        for key, members in groups.items():
            if len(members) < 2:
                continue
            base = key.split(":", 1)[0]
            counters[base] = counters.get(base, 0) + 1
            linked_groups += 1
            for i in members:
                logical_ids[i] = f"{base}_{counters[base]}"

        result = [
            e.evolve(logical_id=logical_ids[i]) if i in logical_ids else e
            for i, e in enumerate(ordered)
        ]
        return result, linked_groups

    # ------------------------------------------------------------------
    def _with_original_spans(self, entities: List[Entity]) -> List[Entity]:
        result = []
        for entity in entities:
            spans = [
                OriginalSpan(start=o.start, end=o.end, type=o.type)
                for o in entities if o.overlaps(entity) or o is entity
            ]
            result.append(entity.evolve(metadata=entity.metadata.merged(original_spans=spans)))
        return result

    def consolidate(self, entities: List[Entity], text: str) -> ConsolidationResult:
        t0 = time.monotonic()
        stats = ConsolidationStats(original_entity_count=len(entities))
        result = list(entities)

        if self.config.preserve_original_spans:
            result = self._with_original_spans(result)

        if self.config.enable_overlap_resolution:
            resolved = self.resolve_overlaps(result)
            stats.overlaps_resolved = len(result) - len(resolved)
            result = resolved

        if self.config.enable_address_consolidation:
            result, stats.addresses_consolidated = self.consolidate_addresses(result, text)

        if self.config.enable_entity_linking:
            result, stats.entities_linked = self.link_entities(result)

        stats.duration_ms = (time.monotonic() - t0) * 1000
        return ConsolidationResult(entities=result, stats=stats)


def consolidate(
    entities: List[Entity], text: str, config: Optional[ConsolidationConfig] = None
) -> ConsolidationResult:
    return Consolidator(config).consolidate(entities, text)


class ConsolidationPass(DetectionPass):
    name = "consolidation"
    order = 50

    def __init__(self, config: Optional[ConsolidationConfig] = None, enabled: bool = True) -> None:
        super().__init__(enabled)
        self.consolidator = Consolidator(config)

    def get_config(self) -> ConsolidationConfig:
        return self.consolidator.get_config()

    def configure(self, **changes) -> None:
        self.consolidator.configure(**changes)

    def execute(self, entities: List[Entity], context: PipelineContext) -> List[Entity]:
        if not entities:
            return entities
        outcome = self.consolidator.consolidate(entities, context.text)
        context.metadata["consolidation"] = outcome.stats.to_dict()
        logger.debug("Consolidated document %s: %s", context.document_id, outcome.stats.to_dict())
        return outcome.entities
