"""
Unit tests for the layered DenyList.
"""
import json
import re

import pytest

from pii_detection.context.deny_list import (
    DEFAULT_GLOBAL_PATTERNS,
    DenyList,
    compile_flags,
    load_deny_list_file,
    parse_pattern_entry,
)
from pii_detection.errors import DenyListConfigError


@pytest.fixture
def denylist():
    return DenyList()


class TestDefaultDenyList:
    @pytest.mark.parametrize("text", ["Montant", "montant", "  MONTANT  "])
    def test_table_header_denied_in_any_case(self, denylist, text):
        assert denylist.is_denied(text, "PERSON_NAME")

    def test_real_name_not_denied(self, denylist):
        assert not denylist.is_denied("Jean Dupont", "PERSON_NAME")

    def test_acronym_denied_for_person_only(self, denylist):
        assert denylist.is_denied("UBS", "PERSON_NAME")
        assert not denylist.is_denied("UBS", "ORGANIZATION")

    def test_person_uses_person_name_layer(self, denylist):
        assert denylist.is_denied("UBS", "PERSON")

    @pytest.mark.parametrize("text", ["Muster AG", "Dupont Sàrl", "Rossi SpA", "Rue du Lac"])
    def test_company_and_street_words(self, denylist, text):
        assert denylist.is_denied(text, "PERSON_NAME")

    def test_month_abbreviation(self, denylist):
        assert denylist.is_denied("Okt", "PERSON_NAME")

    def test_global_patterns_exposed(self, denylist):
        assert denylist.get_global_patterns() == DEFAULT_GLOBAL_PATTERNS


class TestDenyListMutation:
    def test_add_global_pattern(self, denylist):
        denylist.add_pattern("Kontoauszug")
        assert denylist.is_denied("kontoauszug", "IBAN")

    def test_add_entity_type_regex(self, denylist):
        denylist.add_pattern(re.compile(r"@example\.com$"), "EMAIL")
        assert denylist.is_denied("max@example.com", "EMAIL")
        assert not denylist.is_denied("max@example.com", "PERSON_NAME")

    def test_language_layer_applies_to_that_language(self, denylist):
        denylist.add_language_pattern("Seite", "de")
        assert denylist.is_denied("Seite", "PERSON_NAME", "de")
        assert not denylist.is_denied("Seite", "PERSON_NAME", "fr")
        assert not denylist.is_denied("Seite", "PERSON_NAME")

    def test_get_patterns_merges_layers(self, denylist):
        denylist.add_language_pattern("Seite", "de")
        merged = denylist.get_patterns("PERSON_NAME", "de")
        assert len(merged) == (
            len(denylist.get_global_patterns())
            + len(denylist.get_entity_type_patterns("PERSON_NAME"))
            + 1
        )

    def test_get_language_patterns(self, denylist):
        before = len(denylist.get_language_patterns("de"))
        denylist.add_language_pattern("Seite", "de")
        assert len(denylist.get_language_patterns("de")) == before + 1
        assert denylist.get_language_patterns("xx") == []

    def test_clear_and_reset(self, denylist):
        denylist.clear()
        assert not denylist.is_denied("Montant", "PERSON_NAME")
        denylist.reset()
        assert denylist.is_denied("Montant", "PERSON_NAME")

    def test_explicit_layers_skip_defaults(self):
        custom = DenyList(global_patterns=["Foo"])
        assert custom.is_denied("foo", "PERSON_NAME")
        assert not custom.is_denied("Montant", "PERSON_NAME")


class TestDenyListConfig:
    def test_load_from_config_replaces_layers(self, denylist):
        denylist.load_from_config({
            "version": "2.0",
            "global": ["Hello"],
            "byEntityType": {"PERSON_NAME": [{"pattern": "^z", "type": "regex", "flags": "i"}]},
            "byLanguage": {"it": ["Pagina"]},
        })
        assert denylist.is_denied("hello", "EMAIL")
        assert denylist.is_denied("Zorro", "PERSON_NAME")
        assert denylist.is_denied("pagina", "PERSON_NAME", "it")
        assert not denylist.is_denied("Montant", "PERSON_NAME")

    def test_schema_violation(self, denylist):
        with pytest.raises(DenyListConfigError) as exc_info:
            denylist.load_from_config({"global": [], "byEntityType": {}})
        assert "Schema violation" in exc_info.value.errors[0]

    def test_invalid_regex(self, denylist):
        with pytest.raises(DenyListConfigError):
            denylist.load_from_config({
                "global": [{"pattern": "(", "type": "regex"}],
                "byEntityType": {},
                "byLanguage": {},
            })

    def test_failed_load_keeps_previous_config(self, denylist):
        with pytest.raises(DenyListConfigError):
            denylist.load_from_config({"global": "nope", "byEntityType": {}, "byLanguage": {}})
        assert denylist.is_denied("Montant", "PERSON_NAME")

    def test_load_file(self, tmp_path):
        path = tmp_path / "deny.json"
        path.write_text(json.dumps({
            "global": ["Seite"], "byEntityType": {}, "byLanguage": {},
        }), encoding="utf-8")
        target = load_deny_list_file(path, DenyList())
        assert target.is_denied("SEITE", "PERSON_NAME")

    def test_load_file_bad_json(self, tmp_path):
        path = tmp_path / "deny.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(DenyListConfigError):
            load_deny_list_file(path, DenyList())

    def test_parse_pattern_entry(self):
        assert parse_pattern_entry("Total") == "Total"
        assert parse_pattern_entry({"pattern": "Total", "type": "string"}) == "Total"
        compiled = parse_pattern_entry({"pattern": "^a", "type": "regex", "flags": "gi"})
        assert compiled.flags & re.IGNORECASE

    def test_compile_flags_ignores_js_only_flags(self):
        assert compile_flags("guy") == 0
        assert compile_flags("ms") == re.MULTILINE | re.DOTALL
