"""
Swiss social-insurance number (AVS/AHV, 756.XXXX.XXXX.XX) validator.

Prefix and EAN-13 check digit are verified by python-stdnum (stdnum.ch.ssn).
"""
import re

from stdnum import ean
from stdnum.ch import ssn
from stdnum.exceptions import InvalidChecksum, InvalidComponent, ValidationError

from pii_detection.config.constants import (
    CONFIDENCE_CHECKSUM_VALID,
    CONFIDENCE_FAILED,
    CONFIDENCE_INVALID_FORMAT,
    SWISS_AVS,
)
from pii_detection.models.validation import ValidationResult
from pii_detection.validators.base import BaseValidator

AVS_DIGITS = 13


class SwissAvsValidator(BaseValidator):
    name = "SwissAvsValidator"
    entity_type = SWISS_AVS
    max_length = 32

    def validate(self, text: str) -> ValidationResult:
        if len(text) > self.max_length:
            return self._too_long(text)

        digits = re.sub(r"\D", "", text)
        if len(digits) != AVS_DIGITS:
            return ValidationResult(
                False, CONFIDENCE_FAILED, f"Invalid length: {len(digits)} digits"
            )

        try:
            ssn.validate(digits)
        except InvalidComponent:
            return ValidationResult(False, CONFIDENCE_FAILED, "Missing 756 country prefix")
        except InvalidChecksum:
            return ValidationResult(
                False,
                CONFIDENCE_INVALID_FORMAT,
                f"Checksum mismatch: expected {ean.calc_check_digit(digits[:12])}, got {digits[12]}",
            )
        except ValidationError:
            return ValidationResult(False, CONFIDENCE_FAILED, "Invalid AVS number")
        return ValidationResult(True, CONFIDENCE_CHECKSUM_VALID)
