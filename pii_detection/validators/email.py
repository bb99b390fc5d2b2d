"""
Email validator (simplified RFC 5322 address pattern).
"""
import re

from pii_detection.config.constants import (
    CONFIDENCE_FAILED,
    CONFIDENCE_FORMAT_VALID,
    CONFIDENCE_INVALID_FORMAT,
    EMAIL,
)
from pii_detection.models.validation import ValidationResult
from pii_detection.validators.base import BaseValidator

EMAIL_PATTERN = re.compile(
    r"^[a-z0-9.!#$%&'*+/=?^_`{|}~-]+@[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?"
    r"(?:\.[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?)+$"
)


class EmailValidator(BaseValidator):
    name = "EmailValidator"
    entity_type = EMAIL
    max_length = 254

    def validate(self, text: str) -> ValidationResult:
        if len(text) > self.max_length:
            return self._too_long(text)

        email = text.strip().lower()
        if not EMAIL_PATTERN.match(email):
            return ValidationResult(False, CONFIDENCE_FAILED, "Does not match email format")
        if ".." in email:
            return ValidationResult(False, CONFIDENCE_FAILED, "Contains consecutive dots")

        tld = email.rsplit(".", 1)[-1]
        if len(tld) < 2:
            return ValidationResult(False, CONFIDENCE_INVALID_FORMAT, "Invalid TLD")

        return ValidationResult(True, CONFIDENCE_FORMAT_VALID)
