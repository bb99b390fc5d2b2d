"""
Unit tests for the high-recall regex table and ML label mapping.
"""
import pytest

from pii_detection.config.constants import (
    AMOUNT,
    DATE,
    EMAIL,
    IBAN,
    LOCATION,
    ORGANIZATION,
    PERSON,
    PERSON_NAME,
    PHONE,
    SWISS_ADDRESS,
    SWISS_AVS,
    UNKNOWN,
    VAT_NUMBER,
)
from pii_detection.passes.patterns import PATTERN_TABLE, map_ml_entity_type, patterns_for_language


def matches(text, language=None):
    found = []
    for pattern in patterns_for_language(language):
        for m in pattern.regex.finditer(text):
            found.append((pattern.entity_type, m.group(pattern.group).rstrip()))
    return found


class TestPatternTable:
    @pytest.mark.parametrize("text, expected", [
        ("AHV 756.1234.5678.97", (SWISS_AVS, "756.1234.5678.97")),
        ("IBAN CH93 0076 2011 6238 5295 7", (IBAN, "CH93 0076 2011 6238 5295 7")),
        ("Mail: anna.muster@example.ch", (EMAIL, "anna.muster@example.ch")),
        ("Tel. +41 79 123 45 67", (PHONE, "+41 79 123 45 67")),
        ("Tel. 044 123 45 67", (PHONE, "044 123 45 67")),
        ("UID CHE-116.281.710 MWST", (VAT_NUMBER, "CHE-116.281.710 MWST")),
        ("wohnhaft in 8001 Zürich", (SWISS_ADDRESS, "8001 Zürich")),
        ("Datum: 31.12.2023", (DATE, "31.12.2023")),
        ("Total CHF 1'250.00", (AMOUNT, "CHF 1'250.00")),
    ])
    def test_language_independent_patterns(self, text, expected):
        assert expected in matches(text)

    def test_german_salutation_captures_name_only(self):
        assert (PERSON_NAME, "Hans Müller") in matches("Sehr geehrter Herr Hans Müller,", "de")

    def test_french_salutation(self):
        assert (PERSON_NAME, "Jean Dupont") in matches("Monsieur Jean Dupont", "fr")

    def test_month_name_date(self):
        assert (DATE, "12. März 2024") in matches("am 12. März 2024", "de")
        assert (DATE, "5 janvier 2024") in matches("le 5 janvier 2024", "fr")

    def test_language_specific_patterns_are_filtered(self):
        assert not any(t == PERSON_NAME for t, _ in matches("Herr Hans Müller", "fr"))
        names = {p.name for p in patterns_for_language("fr")}
        assert "street_fr" in names
        assert "street_de" not in names

    def test_unknown_language_uses_all_patterns(self):
        assert len(patterns_for_language(None)) == len(PATTERN_TABLE)

    def test_phone_requires_prefix(self):
        assert not any(t == PHONE for t, _ in matches("Ref 41 44 123 45 67"))

    def test_priorities_are_ordered(self):
        priorities = [p.priority for p in PATTERN_TABLE]
        assert priorities == sorted(priorities)


class TestMlEntityMapping:
    @pytest.mark.parametrize("label, expected", [
        ("B-PER", PERSON),
        ("I-PER", PERSON),
        ("ORG", ORGANIZATION),
        ("B-org", ORGANIZATION),
        ("GPE", LOCATION),
        ("MISC", UNKNOWN),
        ("SOMETHING", UNKNOWN),
    ])
    def test_mapping(self, label, expected):
        assert map_ml_entity_type(label) == expected
