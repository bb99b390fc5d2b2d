"""
Phone number validator backed by phonenumbers (libphonenumber metadata).

Numbers without a country prefix are read in the Swiss numbering plan.
"""
import phonenumbers
from phonenumbers import NumberParseException, PhoneNumberType

from pii_detection.config.constants import (
    CONFIDENCE_FAILED,
    CONFIDENCE_FORMAT_VALID,
    CONFIDENCE_MODERATE,
    CONFIDENCE_WEAK,
    PHONE,
)
from pii_detection.models.validation import ValidationResult
from pii_detection.validators.base import BaseValidator

DEFAULT_REGION = "CH"


class PhoneValidator(BaseValidator):
    name = "PhoneValidator"
    entity_type = PHONE
    max_length = 20

    def __init__(self, default_region: str = DEFAULT_REGION) -> None:
        self.default_region = default_region

    def validate(self, text: str) -> ValidationResult:
        if len(text) > self.max_length:
            return self._too_long(text)

        try:
            parsed = phonenumbers.parse(text, self.default_region)
        except NumberParseException as e:
            return ValidationResult(False, CONFIDENCE_FAILED, f"Unparsable phone number: {e}")

        if not phonenumbers.is_possible_number(parsed):
            return ValidationResult(
                False, CONFIDENCE_FAILED, f"Impossible length for +{parsed.country_code}"
            )
        if not phonenumbers.is_valid_number(parsed):
            return ValidationResult(
                False, CONFIDENCE_WEAK, f"Not an assigned range for +{parsed.country_code}"
            )

        region = phonenumbers.region_code_for_number(parsed)
        if region == "CH" and phonenumbers.number_type(parsed) == PhoneNumberType.MOBILE:
            return ValidationResult(True, CONFIDENCE_FORMAT_VALID)
        return ValidationResult(True, CONFIDENCE_MODERATE)
