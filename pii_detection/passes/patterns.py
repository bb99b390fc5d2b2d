"""
High-recall regex pattern table.

Patterns are ordered by type priority (lower number = stronger
identifier):
    1. High-confidence identifiers (AVS, IBAN, email)
    2. Semi-structured identifiers (phone, VAT, payment references)
    3. Addresses (postal code + city, street + number)
    4. Dates and salutation-anchored person names
    5. Financial amounts

A pattern with `languages` is only consulted when the document language
is one of them (or unknown). A pattern with `group` emits the span of that
capture group instead of the whole match.
"""
import re
from dataclasses import dataclass
from typing import FrozenSet, List, Optional, Pattern

from pii_detection.config.constants import (
    ADDRESS,
    AMOUNT,
    DATE,
    EMAIL,
    EU_ADDRESS,
    IBAN,
    ML_ENTITY_MAPPING,
    PAYMENT_REF,
    PERSON_NAME,
    PHONE,
    SWISS_ADDRESS,
    SWISS_AVS,
    UNKNOWN,
    VAT_NUMBER,
)


@dataclass(frozen=True)
class PatternDef:
    name: str
    entity_type: str
    regex: Pattern[str]
    priority: int
    languages: Optional[FrozenSet[str]] = None
    group: int = 0

    def applies_to(self, language: Optional[str]) -> bool:
        return self.languages is None or language is None or language in self.languages


def _p(pattern: str, flags: int = 0) -> Pattern[str]:
    return re.compile(pattern, flags)


_UPPER = "A-ZÄÖÜÀÂÉÈÊÎÔÛÇ"
_LOWER = "a-zäöüßàâæéèêëïîôœùûüÿç"
_NAME = rf"[{_UPPER}][{_LOWER}]+(?:-[{_UPPER}][{_LOWER}]+)?"
_FULL_NAME = rf"({_NAME}(?:\s+{_NAME}){{0,2}})"

_DAY = r"(?:0?[1-9]|[12]\d|3[01])"

_MONTHS_DE = r"Januar|Februar|März|Maerz|April|Mai|Juni|Juli|August|September|Oktober|November|Dezember"
_MONTHS_FR = r"janvier|février|fevrier|mars|avril|mai|juin|juillet|août|aout|septembre|octobre|novembre|décembre|decembre"
_MONTHS_IT = r"gennaio|febbraio|marzo|aprile|maggio|giugno|luglio|agosto|settembre|ottobre|novembre|dicembre"
_MONTHS_EN = r"January|February|March|April|May|June|July|August|September|October|November|December"


def _month_date(months: str) -> Pattern[str]:
    return _p(rf"\b{_DAY}\.?\s*(?:{months})\s*(?:19|20)?\d{{2}}\b", re.IGNORECASE)


PATTERN_TABLE: List[PatternDef] = [
    # ==================================================================
    # Priority 1: high-confidence identifiers
    # ==================================================================
    PatternDef("swiss_avs", SWISS_AVS,
               _p(r"(?<!\d)756[.\s]?\d{4}[.\s]?\d{4}[.\s]?\d{2}(?!\d)"), 1),
    PatternDef("iban", IBAN,
               _p(r"\b[A-Z]{2}\d{2}\s?(?:[A-Z0-9]{4}\s?){3,7}[A-Z0-9]{0,3}\b"), 1),
    PatternDef("email", EMAIL,
               _p(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b"), 1),

    # ==================================================================
    # Priority 2: semi-structured identifiers
    # ==================================================================
    PatternDef("phone_international", PHONE,
               _p(r"(?<![\d+])(?:\+|00)(?:41|49|33|39|43|32|31|352)[\s.-]?(?:\(?\d{1,4}\)?[\s.-]?)?"
                  r"\d{2,4}[\s.-]?\d{2,4}(?:[\s.-]?\d{2,4})?(?!\d)"), 2),
    PatternDef("phone_swiss_local", PHONE,
               _p(r"(?<![\d+])0\d{2}[\s.-]?\d{3}[\s.-]?\d{2}[\s.-]?\d{2}(?!\d)"), 2),
    PatternDef("vat_che", VAT_NUMBER,
               _p(r"\bCHE[-\s]?\d{3}[.\s]?\d{3}[.\s]?\d{3}(?:\s*(?:MWST|TVA|IVA))?\b", re.IGNORECASE), 2),
    PatternDef("vat_eu", VAT_NUMBER,
               _p(r"\b(?:DE|FR|IT|AT)\s?\d{8,11}\b"), 2),
    PatternDef("qr_reference", PAYMENT_REF,
               _p(r"\b\d{2}\s?\d{5}\s?\d{5}\s?\d{5}\s?\d{5}\s?\d{5,6}\b"), 2),

    # ==================================================================
    # Priority 3: addresses
    # ==================================================================
    PatternDef("swiss_postal_city", SWISS_ADDRESS,
               _p(rf"\b(?:CH[-\s]?)?[1-9]\d{{3}}\s+[{_UPPER}][{_LOWER}]+(?:-[{_UPPER}][{_LOWER}]+)*"), 3),
    PatternDef("eu_postal_city", EU_ADDRESS,
               _p(rf"\b(?:[DFI][-\s]?)?\d{{5}}\s+[{_UPPER}][{_LOWER}]+(?:-[{_UPPER}][{_LOWER}]+)*"), 3),
    PatternDef("street_de", ADDRESS,
               _p(r"\b[A-ZÄÖÜ][a-zäöüß]+(?:straße|strasse|gasse|weg|platz|allee)\s+\d+[a-z]?\b"), 3,
               frozenset({"de"})),
    PatternDef("street_fr", ADDRESS,
               _p(rf"\b(?:[Rr]ue|[Aa]venue|[Bb]oulevard|[Cc]hemin|[Pp]lace|[Aa]llée)\s+"
                  rf"(?:de\s+(?:la\s+)?|du\s+|des\s+|d')?[{_UPPER}][{_LOWER}]+"
                  rf"(?:[\s-][{_UPPER}][{_LOWER}]+)*\s+\d+[a-z]?\b"), 3,
               frozenset({"fr"})),
    PatternDef("street_it", ADDRESS,
               _p(rf"\b(?:[Vv]ia|[Vv]iale|[Pp]iazza|[Cc]orso|[Vv]icolo)\s+"
                  rf"(?:della\s+|delle\s+|del\s+|dei\s+)?[{_UPPER}][{_LOWER}]+"
                  rf"(?:\s[{_UPPER}][{_LOWER}]+)*\s+\d+[a-z]?\b"), 3,
               frozenset({"it"})),
    PatternDef("street_en", ADDRESS,
               _p(r"\b\d+[a-z]?\s+[A-Z][a-z]+(?:\s[A-Z][a-z]+)*\s+(?:Street|Road|Lane|Avenue|Drive)\b"), 3,
               frozenset({"en"})),

    # ==================================================================
    # Priority 4: dates and names
    # ==================================================================
    PatternDef("date_numeric", DATE,
               _p(rf"\b{_DAY}[./-](?:0?[1-9]|1[0-2])[./-](?:19|20)?\d{{2}}\b"), 4),
    PatternDef("date_month_de", DATE, _month_date(_MONTHS_DE), 4, frozenset({"de"})),
    PatternDef("date_month_fr", DATE, _month_date(_MONTHS_FR), 4, frozenset({"fr"})),
    PatternDef("date_month_it", DATE, _month_date(_MONTHS_IT), 4, frozenset({"it"})),
    PatternDef("date_month_en", DATE, _month_date(_MONTHS_EN), 4, frozenset({"en"})),

    PatternDef("name_salutation_de", PERSON_NAME,
               _p(rf"\b(?:Herr|Frau|Hr\.|Fr\.)\s+(?:Dr\.\s+|Prof\.\s+)?{_FULL_NAME}"), 4,
               frozenset({"de"}), group=1),
    PatternDef("name_salutation_fr", PERSON_NAME,
               _p(rf"\b(?:Monsieur|Madame|Mademoiselle|M\.|Mme|Mlle)\s+{_FULL_NAME}"), 4,
               frozenset({"fr"}), group=1),
    PatternDef("name_salutation_it", PERSON_NAME,
               _p(rf"\b(?:Signor|Signora|Sig\.ra|Sig\.|Dott\.|Dott\.ssa)\s+{_FULL_NAME}"), 4,
               frozenset({"it"}), group=1),
    PatternDef("name_salutation_en", PERSON_NAME,
               _p(rf"\b(?:Mr\.?|Mrs\.?|Ms\.?|Dr\.?|Prof\.?)\s+{_FULL_NAME}"), 4,
               frozenset({"en"}), group=1),

    # ==================================================================
    # Priority 5: financial amounts
    # ==================================================================
    PatternDef("amount", AMOUNT,
               _p(r"(?:\b(?:CHF|EUR|Fr\.?)|€)\s*\d{1,3}(?:['\s.,]\d{3})*(?:[.,]\d{2})?\b", re.IGNORECASE), 5),
]


def patterns_for_language(language: Optional[str]) -> List[PatternDef]:
    return [p for p in PATTERN_TABLE if p.applies_to(language)]


def map_ml_entity_type(label: str) -> str:
    """Map a raw model label ('B-PER', 'ORG', ...) to an entity type."""
    clean = re.sub(r"^[BI]-", "", label).upper()
    return ML_ENTITY_MAPPING.get(clean, UNKNOWN)
