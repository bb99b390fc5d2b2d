"""
Constants used across the detection pipeline.
Versioned and pinned for determinism.
"""
from typing import Dict, FrozenSet, List

# =============================================================================
# Entity types (closed enum)
# =============================================================================
PERSON = "PERSON"
PERSON_NAME = "PERSON_NAME"
ORGANIZATION = "ORGANIZATION"
LOCATION = "LOCATION"
ADDRESS = "ADDRESS"
SWISS_ADDRESS = "SWISS_ADDRESS"
EU_ADDRESS = "EU_ADDRESS"
SWISS_AVS = "SWISS_AVS"
IBAN = "IBAN"
PHONE = "PHONE"
EMAIL = "EMAIL"
DATE = "DATE"
AMOUNT = "AMOUNT"
VAT_NUMBER = "VAT_NUMBER"
INVOICE_NUMBER = "INVOICE_NUMBER"
PAYMENT_REF = "PAYMENT_REF"
QR_REFERENCE = "QR_REFERENCE"
UNKNOWN = "UNKNOWN"

ENTITY_TYPES: FrozenSet[str] = frozenset({
    PERSON, PERSON_NAME, ORGANIZATION, LOCATION, ADDRESS, SWISS_ADDRESS,
    EU_ADDRESS, SWISS_AVS, IBAN, PHONE, EMAIL, DATE, AMOUNT, VAT_NUMBER,
    INVOICE_NUMBER, PAYMENT_REF, QR_REFERENCE, UNKNOWN,
})

ADDRESS_TYPES: FrozenSet[str] = frozenset({ADDRESS, SWISS_ADDRESS, EU_ADDRESS})

# =============================================================================
# Address component roles
# =============================================================================
STREET_NAME = "STREET_NAME"
STREET_NUMBER = "STREET_NUMBER"
POSTAL_CODE = "POSTAL_CODE"
CITY = "CITY"
COUNTRY = "COUNTRY"
REGION = "REGION"

COMPONENT_TYPES: FrozenSet[str] = frozenset({
    STREET_NAME, STREET_NUMBER, POSTAL_CODE, CITY, COUNTRY, REGION,
})

# Swiss NPA/PLZ range (Liechtenstein 94xx included)
SWISS_POSTAL_MIN: int = 1000
SWISS_POSTAL_MAX: int = 9699

# =============================================================================
# Entity sources
# =============================================================================
SOURCE_RULE = "RULE"
SOURCE_ML = "ML"
SOURCE_BOTH = "BOTH"
SOURCE_MANUAL = "MANUAL"
SOURCE_LINKED = "LINKED"

ENTITY_SOURCES: FrozenSet[str] = frozenset({
    SOURCE_RULE, SOURCE_ML, SOURCE_BOTH, SOURCE_MANUAL, SOURCE_LINKED,
})

# =============================================================================
# Languages
# =============================================================================
SUPPORTED_LANGUAGES: List[str] = ["en", "fr", "de", "it"]
FALLBACK_LANGUAGE: str = "de"

# =============================================================================
# Validator confidence levels
# =============================================================================
CONFIDENCE_CHECKSUM_VALID: float = 0.95
CONFIDENCE_FORMAT_VALID: float = 0.9
CONFIDENCE_STANDARD: float = 0.85
CONFIDENCE_KNOWN_VALID: float = 0.82
CONFIDENCE_MODERATE: float = 0.75
CONFIDENCE_WEAK: float = 0.5
CONFIDENCE_INVALID_FORMAT: float = 0.4
CONFIDENCE_FAILED: float = 0.3
CONFIDENCE_FALSE_POSITIVE: float = 0.2

# FormatValidationPass: valid => confidence * boost (capped at 1.0)
VALID_CONFIDENCE_BOOST: float = 1.2

# =============================================================================
# High-recall detection
# =============================================================================
DEFAULT_ML_THRESHOLD: float = 0.3
DEFAULT_RULE_CONFIDENCE: float = 0.7
MIN_MATCH_LENGTH: int = 3

RULE_BASE_CONFIDENCE: Dict[str, float] = {
    SWISS_AVS: 0.75,
    IBAN: 0.7,
    EMAIL: 0.8,
    PHONE: 0.6,
    VAT_NUMBER: 0.7,
    PAYMENT_REF: 0.6,
    SWISS_ADDRESS: 0.6,
    EU_ADDRESS: 0.55,
    ADDRESS: 0.6,
    DATE: 0.5,
    AMOUNT: 0.5,
    PERSON_NAME: 0.6,
}

ML_ENTITY_MAPPING: Dict[str, str] = {
    "PER": PERSON,
    "PERSON": PERSON,
    "ORG": ORGANIZATION,
    "ORGANIZATION": ORGANIZATION,
    "LOC": LOCATION,
    "LOCATION": LOCATION,
    "GPE": LOCATION,
    "DATE": DATE,
    "PHONE": PHONE,
    "EMAIL": EMAIL,
    "ADDRESS": ADDRESS,
    "MISC": UNKNOWN,
}

# Entity type -> key in the context-word table / deny-list type layer
CONTEXT_TYPE_ALIASES: Dict[str, str] = {
    PERSON: PERSON_NAME,
    PHONE: "PHONE_NUMBER",
    SWISS_ADDRESS: ADDRESS,
    EU_ADDRESS: ADDRESS,
}

# =============================================================================
# Consolidation: type priority (higher wins an overlap)
# =============================================================================
DEFAULT_ENTITY_PRIORITY: Dict[str, int] = {
    SWISS_AVS: 100,
    IBAN: 95,
    QR_REFERENCE: 90,
    VAT_NUMBER: 85,
    EMAIL: 80,
    PHONE: 75,
    PAYMENT_REF: 70,
    INVOICE_NUMBER: 65,
    SWISS_ADDRESS: 60,
    EU_ADDRESS: 58,
    ADDRESS: 55,
    PERSON_NAME: 50,
    PERSON: 48,
    ORGANIZATION: 45,
    DATE: 20,
    AMOUNT: 18,
    LOCATION: 15,
    UNKNOWN: 0,
}

# Linking: title prefixes stripped by the fuzzy strategy
TITLE_VARIATIONS: Dict[str, List[str]] = {
    "mr": ["mr", "mr.", "herr", "m.", "monsieur", "mister", "signor", "sig."],
    "mrs": ["mrs", "mrs.", "frau", "mme", "mme.", "madame", "signora", "sig.ra"],
    "ms": ["ms", "ms.", "fräulein", "mlle", "mademoiselle", "signorina"],
    "dr": ["dr", "dr.", "doktor", "docteur", "dott.", "dottore"],
    "prof": ["prof", "prof.", "professor", "professeur", "professore"],
}
