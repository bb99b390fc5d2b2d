"""
VAT identifier validator: Swiss CHE-UID (checked with python-stdnum) and
basic EU formats.
"""
import re

from stdnum.ch import uid
from stdnum.exceptions import InvalidChecksum, ValidationError

from pii_detection.config.constants import (
    CONFIDENCE_FORMAT_VALID,
    CONFIDENCE_INVALID_FORMAT,
    CONFIDENCE_MODERATE,
    CONFIDENCE_WEAK,
    VAT_NUMBER,
)
from pii_detection.models.validation import ValidationResult
from pii_detection.validators.base import BaseValidator

UID_DIGITS = 9
EU_VAT_PATTERN = re.compile(r"^(DE|FR|IT|AT)\d{8,11}$")


class VatNumberValidator(BaseValidator):
    name = "VatNumberValidator"
    entity_type = VAT_NUMBER
    max_length = 40

    def validate(self, text: str) -> ValidationResult:
        if len(text) > self.max_length:
            return self._too_long(text)

        upper = text.strip().upper()

        if upper.startswith("CHE"):
            # drops the MWST/TVA/IVA suffix along with the separators
            digits = re.sub(r"\D", "", upper)
            if len(digits) != UID_DIGITS:
                return ValidationResult(
                    False,
                    CONFIDENCE_INVALID_FORMAT,
                    f"Invalid Swiss VAT length: {len(digits)} digits",
                )
            try:
                uid.validate("CHE" + digits)
            except InvalidChecksum:
                return ValidationResult(False, CONFIDENCE_WEAK, "Swiss UID checksum failed")
            except ValidationError:
                return ValidationResult(False, CONFIDENCE_INVALID_FORMAT, "Invalid Swiss UID")
            return ValidationResult(True, CONFIDENCE_FORMAT_VALID)

        if EU_VAT_PATTERN.match(re.sub(r"\s", "", upper)):
            return ValidationResult(True, CONFIDENCE_MODERATE)

        return ValidationResult(False, CONFIDENCE_INVALID_FORMAT, "Unrecognized VAT format")
