"""
Validator registry: entity type -> validator instance.
"""
from typing import Dict, List, Optional

from pii_detection.validators.avs import SwissAvsValidator
from pii_detection.validators.base import BaseValidator
from pii_detection.validators.date import DateValidator
from pii_detection.validators.email import EmailValidator
from pii_detection.validators.iban import IbanValidator
from pii_detection.validators.phone import PhoneValidator
from pii_detection.validators.postal_code import SwissPostalCodeValidator
from pii_detection.validators.vat import VatNumberValidator


def default_validators() -> List[BaseValidator]:
    return [
        IbanValidator(),
        SwissAvsValidator(),
        VatNumberValidator(),
        PhoneValidator(),
        EmailValidator(),
        DateValidator(),
        SwissPostalCodeValidator(),
    ]


def build_registry(validators: Optional[List[BaseValidator]] = None) -> Dict[str, BaseValidator]:
    """Index validators by entity type; later entries override earlier ones."""
    registry: Dict[str, BaseValidator] = {}
    for validator in validators if validators is not None else default_validators():
        registry[validator.entity_type] = validator
    return registry


DEFAULT_VALIDATORS: Dict[str, BaseValidator] = build_registry()


def get_validator(entity_type: str) -> Optional[BaseValidator]:
    return DEFAULT_VALIDATORS.get(entity_type)
