"""
Address Relationship Pass (order 40).

Classifies address components, links nearby components into grouped
addresses, scores each group and replaces the loose address fragments
already in the entity list with the grouped entity.
"""
import logging
import re
from typing import List, Optional

from pii_detection.address.classifier import AddressClassifier, is_valid_swiss_postal_code
from pii_detection.address.linker import AddressLinker
from pii_detection.address.scorer import AddressScorer
from pii_detection.config.constants import (
    ADDRESS,
    EU_ADDRESS,
    LOCATION,
    SOURCE_LINKED,
    SWISS_ADDRESS,
)
from pii_detection.models.address import PATTERN_EU, PATTERN_SWISS, ScoredAddress
from pii_detection.models.entity import Entity, ensure_span
from pii_detection.models.pipeline import PipelineContext
from pii_detection.passes.base import DetectionPass

logger = logging.getLogger(__name__)

REPLACEABLE_TYPES = frozenset({ADDRESS, SWISS_ADDRESS, EU_ADDRESS, LOCATION})

_DIGITS = re.compile(r"\d+")


def address_entity_type(scored: ScoredAddress) -> str:
    """SWISS_ADDRESS / EU_ADDRESS / ADDRESS from pattern, postal code and country."""
    postal = scored.components.get("postal")
    digits = _DIGITS.search(postal) if postal else None
    code = digits.group(0) if digits else ""

    if scored.pattern_matched == PATTERN_SWISS:
        return SWISS_ADDRESS
    if len(code) == 4 and is_valid_swiss_postal_code(int(code)) and not postal.upper().startswith("A"):
        return SWISS_ADDRESS
    if scored.pattern_matched == PATTERN_EU or scored.components.get("country") or len(code) == 5:
        return EU_ADDRESS
    return ADDRESS


class AddressRelationshipPass(DetectionPass):
    name = "address-relationship"
    order = 40

    def __init__(
        self,
        classifier: Optional[AddressClassifier] = None,
        linker: Optional[AddressLinker] = None,
        scorer: Optional[AddressScorer] = None,
        show_components: bool = False,
        enabled: bool = True,
    ) -> None:
        super().__init__(enabled)
        self.classifier = classifier or AddressClassifier()
        self.linker = linker or AddressLinker(classifier=self.classifier)
        self.scorer = scorer or AddressScorer()
        self.show_components = show_components

    def build_address_entities(
        self, text: str, detected: Optional[List[Entity]] = None
    ) -> List[Entity]:
        """
        Group and score the addresses in *text*.

        Components inside an already detected non-address entity (digits of
        an IBAN or AVS number) are ignored.
        """
        taken = [e for e in detected or [] if e.type not in REPLACEABLE_TYPES]
        components = [
            c for c in self.classifier.classify_components(text)
            if not any(c.start < e.end and e.start < c.end for e in taken)
        ]
        if not components:
            return []

        grouped = self.linker.link_and_group(components, text).grouped_addresses
        entities: List[Entity] = []
        for address, scored in zip(grouped, self.scorer.score_addresses(grouped)):
            entity = self.linker.grouped_addresses_to_entities([address], SOURCE_LINKED)[0]
            entity = self.scorer.update_entity_with_score(entity, scored)
            entities.append(ensure_span(entity.evolve(type=address_entity_type(scored)), text))
        return entities

    def execute(self, entities: List[Entity], context: PipelineContext) -> List[Entity]:
        addresses = self.build_address_entities(context.text, entities)
        if not addresses:
            return entities

        result: List[Entity] = []
        for entity in entities:
            covered = entity.type in REPLACEABLE_TYPES and any(entity.overlaps(a) for a in addresses)
            if not covered:
                result.append(entity)
            elif self.show_components:
                result.append(entity.evolve(metadata=entity.metadata.merged(linked_to_address=True)))

        result.extend(addresses)
        result.sort(key=lambda e: (e.start, e.end))
        logger.debug("Linked %d grouped address(es) in document %s",
                     len(addresses), context.document_id)
        return result
