"""
Validator interface. One stateless validator per entity type.

Validators never raise on bad input: a malformed candidate yields an
invalid ValidationResult with a low confidence instead.
"""
from abc import ABC, abstractmethod

from pii_detection.models.validation import ValidationResult


class BaseValidator(ABC):
    """Format/checksum validator keyed to exactly one entity type."""

    name: str = "BaseValidator"
    entity_type: str = ""
    max_length: int = 100

    @abstractmethod
    def validate(self, text: str) -> ValidationResult:
        ...

    def _too_long(self, text: str) -> ValidationResult:
        return ValidationResult(
            is_valid=False,
            confidence=0.3,
            reason=f"Input exceeds maximum length ({self.max_length})",
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}(entity_type={self.entity_type!r})"
