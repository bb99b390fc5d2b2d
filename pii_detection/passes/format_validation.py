"""
Format Validation Pass (order 20) — checksum and format checks.

Valid entities are boosted by VALID_CONFIDENCE_BOOST (capped at 1.0);
invalid ones are capped at the validator's own confidence. Types without
a validator are marked "unchecked" and left as they are.
"""
import logging
from typing import Dict, List, Optional

from pii_detection.config.constants import VALID_CONFIDENCE_BOOST
from pii_detection.models.entity import (
    VALIDATION_INVALID,
    VALIDATION_UNCHECKED,
    VALIDATION_VALID,
    Entity,
    ValidationInfo,
)
from pii_detection.models.pipeline import PipelineContext
from pii_detection.passes.base import DetectionPass
from pii_detection.validators.base import BaseValidator
from pii_detection.validators.registry import build_registry

logger = logging.getLogger(__name__)


class FormatValidationPass(DetectionPass):
    name = "format-validation"
    order = 20

    def __init__(
        self,
        validators: Optional[List[BaseValidator]] = None,
        boost: float = VALID_CONFIDENCE_BOOST,
        enabled: bool = True,
    ) -> None:
        super().__init__(enabled)
        self._validators: Dict[str, BaseValidator] = build_registry(validators)
        self.boost = boost

    def add_validator(self, validator: BaseValidator) -> None:
        """Register *validator*, replacing any existing one for its type."""
        self._validators[validator.entity_type] = validator

    def get_validator(self, entity_type: str) -> Optional[BaseValidator]:
        return self._validators.get(entity_type)

    def validate_entity(self, entity: Entity) -> Entity:
        validator = self._validators.get(entity.type)
        if validator is None:
            return entity.evolve(validation=ValidationInfo(
                status=VALIDATION_UNCHECKED,
                reason=f"No validator for type {entity.type}",
            ))

        result = validator.validate(entity.text)
        if result.is_valid:
            confidence = min(1.0, entity.confidence * self.boost)
            status = VALIDATION_VALID
        else:
            confidence = min(entity.confidence, result.confidence)
            status = VALIDATION_INVALID

        return entity.evolve(
            confidence=confidence,
            validation=ValidationInfo(
                status=status,
                reason=result.reason,
                checked_by=validator.name,
                confidence=result.confidence,
            ),
        )

    def execute(self, entities: List[Entity], context: PipelineContext) -> List[Entity]:
        validated = [self.validate_entity(e) for e in entities]
        invalid = sum(1 for e in validated if e.validation and e.validation.status == VALIDATION_INVALID)
        logger.debug("Validated %d entities in document %s (%d invalid)",
                     len(validated), context.document_id, invalid)
        return validated
