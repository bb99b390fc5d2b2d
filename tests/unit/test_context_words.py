"""
Unit tests for the multilingual context-word table.
"""
from pii_detection.config.constants import EU_ADDRESS, PERSON, PHONE, SWISS_ADDRESS
from pii_detection.context.context_words import (
    NEGATIVE,
    POSITIVE,
    ContextWord,
    context_type_for,
    get_all_context_words,
    get_context_word_strings,
    get_context_words,
    get_metadata,
    get_negative_context_words,
    get_positive_context_words,
    get_supported_entity_types,
    get_supported_languages,
    register_context_words,
    reset_context_words,
)


class TestContextWordLookup:
    def test_known_type_and_language(self):
        words = get_context_word_strings("PERSON_NAME", "fr")
        assert "monsieur" in words
        assert "madame" in words

    def test_language_is_case_insensitive(self):
        assert get_context_words("IBAN", "DE") == get_context_words("IBAN", "de")

    def test_unknown_type_returns_empty(self):
        assert get_context_words("NOT_A_TYPE", "en") == []

    def test_unknown_language_returns_empty(self):
        assert get_context_words("IBAN", "es") == []

    def test_returned_list_is_a_copy(self):
        words = get_context_words("IBAN", "en")
        words.clear()
        assert get_context_words("IBAN", "en")

    def test_polarity_split(self):
        positive = get_positive_context_words("PERSON_NAME", "en")
        negative = get_negative_context_words("PERSON_NAME", "en")
        assert all(cw.polarity == POSITIVE for cw in positive)
        assert all(cw.polarity == NEGATIVE for cw in negative)
        assert {"ltd", "street"} <= {cw.word for cw in negative}
        assert len(positive) + len(negative) == len(get_context_words("PERSON_NAME", "en"))

    def test_all_languages_deduplicated(self):
        words = [cw.word.lower() for cw in get_all_context_words("IBAN")]
        assert len(words) == len(set(words))
        assert "iban" in words
        assert "konto" in words

    def test_supported_languages(self):
        assert set(get_supported_languages("IBAN")) == {"en", "fr", "de", "it"}
        assert "PHONE_NUMBER" in get_supported_entity_types()

    def test_metadata(self):
        assert get_metadata()["version"] == "1.0.0"


class TestContextTypeAliases:
    def test_pipeline_types_map_to_table_keys(self):
        assert context_type_for(PERSON) == "PERSON_NAME"
        assert context_type_for(PHONE) == "PHONE_NUMBER"
        assert context_type_for(SWISS_ADDRESS) == "ADDRESS"
        assert context_type_for(EU_ADDRESS) == "ADDRESS"

    def test_unaliased_type_passes_through(self):
        assert context_type_for("IBAN") == "IBAN"


class TestContextWordRegistration:
    def test_register_and_reset(self):
        register_context_words("IBAN", "en", [ContextWord("acct", 0.5)])
        assert get_context_word_strings("IBAN", "en") == ["acct"]

        reset_context_words()
        assert "iban" in get_context_word_strings("IBAN", "en")

    def test_register_new_type(self):
        register_context_words("CUSTOMER_ID", "de", [ContextWord("kundennummer", 1.0)])
        assert get_supported_languages("CUSTOMER_ID") == ["de"]
