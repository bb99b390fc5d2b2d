"""
Date validator for European numeric dates and month-name dates
(en / de / fr / it, with ASCII spellings of accented month names).
"""
import calendar
import re
from typing import Dict, Optional, Tuple

from pii_detection.config.constants import DATE
from pii_detection.models.validation import ValidationResult
from pii_detection.validators.base import BaseValidator

MONTHS: Dict[str, int] = {
    # en
    "january": 1, "february": 2, "march": 3, "april": 4, "may": 5, "june": 6,
    "july": 7, "august": 8, "september": 9, "october": 10, "november": 11,
    "december": 12,
    # de
    "januar": 1, "februar": 2, "märz": 3, "maerz": 3, "marz": 3, "mai": 5,
    "juni": 6, "juli": 7, "oktober": 10, "dezember": 12,
    # fr
    "janvier": 1, "février": 2, "fevrier": 2, "mars": 3, "avril": 4, "juin": 6,
    "juillet": 7, "août": 8, "aout": 8, "septembre": 9, "octobre": 10,
    "novembre": 11, "décembre": 12, "decembre": 12,
    # it
    "gennaio": 1, "febbraio": 2, "marzo": 3, "aprile": 4, "maggio": 5,
    "giugno": 6, "luglio": 7, "agosto": 8, "settembre": 9, "ottobre": 10,
    "dicembre": 12,
}

_NUMERIC = re.compile(r"(\d{1,2})[./-](\d{1,2})[./-](\d{2,4})")
_MONTH_NAME = re.compile(r"(\d{1,2})\.?\s*([a-zäöüéèû]+)\.?\s*(\d{2,4})")


def _expand_year(year: int) -> int:
    if year < 100:
        year += 1900 if year > 30 else 2000
    return year


def parse_date(text: str) -> Optional[Tuple[int, int, int]]:
    """Return (day, month, year) or None when no supported format matches."""
    m = _NUMERIC.search(text)
    if m:
        return int(m.group(1)), int(m.group(2)), _expand_year(int(m.group(3)))

    m = _MONTH_NAME.search(text.lower())
    if m and m.group(2) in MONTHS:
        return int(m.group(1)), MONTHS[m.group(2)], _expand_year(int(m.group(3)))
    return None


class DateValidator(BaseValidator):
    name = "DateValidator"
    entity_type = DATE
    max_length = 40

    def validate(self, text: str) -> ValidationResult:
        if len(text) > self.max_length:
            return self._too_long(text)

        parsed = parse_date(text)
        if parsed is None:
            return ValidationResult(False, 0.4, "Could not parse date")

        day, month, year = parsed
        if not 1 <= month <= 12:
            return ValidationResult(False, 0.3, f"Invalid month: {month}")
        if not 1900 <= year <= 2100:
            return ValidationResult(False, 0.4, f"Year out of range: {year}")

        days_in_month = calendar.monthrange(year, month)[1]
        if not 1 <= day <= days_in_month:
            return ValidationResult(False, 0.3, f"Invalid day: {day} for month {month}")

        return ValidationResult(True, 0.85)
