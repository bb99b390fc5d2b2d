"""
IBAN validation: per-country length table, then python-stdnum for the
Mod 97-10 checksum and the country's BBAN structure.
"""
import re
from typing import Dict

from stdnum import iban as stdnum_iban
from stdnum.exceptions import InvalidChecksum, InvalidComponent, ValidationError

from pii_detection.config.constants import (
    CONFIDENCE_CHECKSUM_VALID,
    CONFIDENCE_FAILED,
    CONFIDENCE_INVALID_FORMAT,
    IBAN,
)
from pii_detection.models.validation import ValidationResult
from pii_detection.validators.base import BaseValidator

# stdnum reports a truncated IBAN as a checksum failure; checked first
IBAN_LENGTHS: Dict[str, int] = {
    "CH": 21, "LI": 21, "DE": 22, "AT": 20, "FR": 27, "IT": 27, "ES": 24,
    "NL": 18, "BE": 16, "LU": 20, "GB": 22, "IE": 22, "PT": 25, "GR": 27,
    "PL": 28, "CZ": 24, "SK": 24, "HU": 28, "SE": 24, "DK": 18, "NO": 15,
    "FI": 18,
}

MIN_IBAN_LENGTH = 15

_IBAN_SHAPE = re.compile(r"^[A-Z]{2}\d{2}[A-Z0-9]+$")
_WHITESPACE = re.compile(r"\s+")


class IbanValidator(BaseValidator):
    name = "IbanValidator"
    entity_type = IBAN
    max_length = 34

    def validate(self, text: str) -> ValidationResult:
        iban = stdnum_iban.compact(_WHITESPACE.sub("", text))
        if len(iban) > self.max_length:
            return self._too_long(text)

        if len(iban) < MIN_IBAN_LENGTH:
            return ValidationResult(
                False, CONFIDENCE_FAILED, f"IBAN too short: {len(iban)} characters"
            )

        if not _IBAN_SHAPE.match(iban):
            return ValidationResult(
                False, CONFIDENCE_INVALID_FORMAT, "Invalid IBAN character layout"
            )

        country = iban[:2]
        expected = IBAN_LENGTHS.get(country)
        if expected is not None and len(iban) != expected:
            return ValidationResult(
                False,
                CONFIDENCE_INVALID_FORMAT,
                f"Invalid length for {country}: expected {expected}, got {len(iban)}",
            )

        try:
            stdnum_iban.validate(iban)
        except InvalidChecksum:
            return ValidationResult(False, CONFIDENCE_INVALID_FORMAT, "IBAN checksum failed")
        except InvalidComponent:
            return ValidationResult(
                False, CONFIDENCE_FAILED, f"Unknown IBAN country code: {country}"
            )
        except ValidationError:
            return ValidationResult(
                False, CONFIDENCE_INVALID_FORMAT, f"Invalid account structure for {country}"
            )

        return ValidationResult(True, CONFIDENCE_CHECKSUM_VALID)
