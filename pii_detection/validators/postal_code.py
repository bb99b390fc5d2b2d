"""
Swiss postal code (NPA/PLZ) validator. Used for SWISS_ADDRESS spans:
the first four-digit code in the span must fall in 1000-9699.
"""
import re

from pii_detection.config.constants import (
    CONFIDENCE_INVALID_FORMAT,
    CONFIDENCE_STANDARD,
    CONFIDENCE_WEAK,
    SWISS_ADDRESS,
    SWISS_POSTAL_MAX,
    SWISS_POSTAL_MIN,
)
from pii_detection.models.validation import ValidationResult
from pii_detection.validators.base import BaseValidator

_POSTAL = re.compile(r"\b([1-9]\d{3})\b")


class SwissPostalCodeValidator(BaseValidator):
    name = "SwissPostalCodeValidator"
    entity_type = SWISS_ADDRESS
    max_length = 100

    def validate(self, text: str) -> ValidationResult:
        if len(text) > self.max_length:
            return self._too_long(text)

        m = _POSTAL.search(text)
        if not m:
            return ValidationResult(
                False, CONFIDENCE_INVALID_FORMAT, "No valid postal code found"
            )

        code = int(m.group(1))
        if not SWISS_POSTAL_MIN <= code <= SWISS_POSTAL_MAX:
            return ValidationResult(
                False, CONFIDENCE_WEAK, f"Postal code {code} outside Swiss range"
            )
        return ValidationResult(True, CONFIDENCE_STANDARD)
