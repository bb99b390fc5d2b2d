"""
Unit tests for the direction-weighted ContextEnhancer.
"""
import pytest

from pii_detection.config.constants import IBAN, PERSON_NAME, PHONE
from pii_detection.context.context_words import NEGATIVE, ContextWord, get_context_words
from pii_detection.context.deny_list import DenyList
from pii_detection.context.enhancer import (
    DENIED_SKIP_REASON,
    ContextEnhancer,
    EnhancerConfig,
    context_word_pattern,
)


@pytest.fixture
def enhancer():
    return ContextEnhancer(deny_list=DenyList())


def person(make_entity, text, name, confidence=0.5):
    start = text.index(name)
    return make_entity(text, start, start + len(name), PERSON_NAME, confidence=confidence)


class TestContextWordPattern:
    def test_matches_whole_words_only(self):
        assert context_word_pattern("tel").search("Tel: 044")
        assert not context_word_pattern("tel").search("Hotel Bellevue")

    def test_punctuated_word(self):
        assert context_word_pattern("tél.").search("Tél. 021 555 55 55")
        assert context_word_pattern("test@").search("test@example.ch")


class TestContextEnhancer:
    def test_preceding_title_boosts(self, enhancer, make_entity):
        text = "Monsieur Jean Dupont"
        entity = person(make_entity, text, "Jean Dupont")
        result = enhancer.enhance_with_details(
            entity, text, get_context_words("PERSON_NAME", "fr"), "fr"
        )
        assert result.context_found == ["monsieur"]
        assert result.boost_applied == pytest.approx(0.35)
        assert result.entity.confidence == pytest.approx(0.85)
        assert result.entity.metadata.context_words_found == ["monsieur"]
        assert result.original_confidence == 0.5

    def test_negative_word_lowers_confidence(self, enhancer, make_entity):
        text = "Jean Dupont, rue du Lac"
        entity = person(make_entity, text, "Jean Dupont")
        result = enhancer.enhance_with_details(
            entity, text, get_context_words("PERSON_NAME", "fr"), "fr"
        )
        assert "rue" in result.context_found
        assert result.entity.confidence < 0.5

    def test_boost_never_exceeds_cap(self, enhancer, make_entity):
        text = "Monsieur Madame nom prénom contact Jean Dupont"
        entity = person(make_entity, text, "Jean Dupont", confidence=0.2)
        result = enhancer.enhance_with_details(
            entity, text, get_context_words("PERSON_NAME", "fr"), "fr"
        )
        assert 0 < result.boost_applied <= 0.35 + 1e-9

    def test_confidence_is_clamped(self, enhancer, make_entity):
        text = "Monsieur Jean Dupont"
        entity = person(make_entity, text, "Jean Dupont", confidence=0.95)
        enhanced = enhancer.enhance(entity, text, get_context_words("PERSON_NAME", "fr"), "fr")
        assert enhanced.confidence == 1.0

    def test_floor_is_bounded_by_cap(self, enhancer, make_entity):
        text = "de Jean Dupont"
        entity = person(make_entity, text, "Jean Dupont", confidence=0.01)
        enhanced = enhancer.enhance(entity, text, get_context_words("PERSON_NAME", "fr"), "fr")
        # floor is min(0.4, 0.01 + 0.35)
        assert enhanced.confidence == pytest.approx(0.36)

    def test_denied_entity_is_skipped(self, enhancer, make_entity):
        text = "Monsieur Montant"
        entity = person(make_entity, text, "Montant")
        result = enhancer.enhance_with_details(
            entity, text, get_context_words("PERSON_NAME", "fr"), "fr"
        )
        assert result.skipped
        assert result.skip_reason == DENIED_SKIP_REASON
        assert result.boost_applied == 0.0
        assert result.entity.confidence == 0.5
        assert result.entity.metadata.context_skip_reason == DENIED_SKIP_REASON

    def test_no_context_words(self, enhancer, make_entity):
        text = "Jean Dupont"
        entity = person(make_entity, text, "Jean Dupont")
        result = enhancer.enhance_with_details(entity, text, [])
        assert result.entity is entity
        assert result.boost_applied == 0.0

    def test_no_words_in_window(self, enhancer, make_entity):
        text = "Hotel +41 44 123 45 67"
        entity = make_entity(text, 6, len(text), PHONE)
        result = enhancer.enhance_with_details(
            entity, text, get_context_words("PHONE_NUMBER", "de"), "de"
        )
        assert result.context_found == []
        assert result.entity.confidence == entity.confidence

    def test_following_counts_less_than_preceding(self, make_entity):
        words = [ContextWord("iban", 0.5)]
        enhancer = ContextEnhancer(deny_list=DenyList(), config=EnhancerConfig(per_entity_type={}))
        value = "CH93 0076 2011 6238 5295 7"

        before = "iban " + value
        after = value + " iban"
        boost_before = enhancer.enhance_with_details(
            make_entity(before, 5, len(before), IBAN, confidence=0.5), before, words
        ).boost_applied
        boost_after = enhancer.enhance_with_details(
            make_entity(after, 0, len(value), IBAN, confidence=0.5), after, words
        ).boost_applied
        assert boost_before > boost_after > 0

    def test_negative_only_word(self, make_entity):
        enhancer = ContextEnhancer(deny_list=DenyList())
        text = "Invoice 044 123 45 67"
        entity = make_entity(text, 8, len(text), PHONE, confidence=0.6)
        enhanced = enhancer.enhance(entity, text, [ContextWord("invoice", 1.0, NEGATIVE)])
        assert enhanced.confidence == pytest.approx(0.25)


class TestEnhancerWindows:
    def test_per_type_window_uses_context_alias(self, enhancer):
        assert enhancer.get_window_size(PHONE) == 60
        assert enhancer.get_window_size(IBAN) == 40
        assert enhancer.get_window_size("DATE") == 100

    def test_custom_override_keeps_other_defaults(self):
        enhancer = ContextEnhancer(EnhancerConfig(per_entity_type={"IBAN": {"window_size": 25}}),
                                   deny_list=DenyList())
        assert enhancer.get_window_size(IBAN) == 25
        assert enhancer.get_window_size(PERSON_NAME) == 150
        assert enhancer.get_window_size(PHONE) == 60

    def test_word_outside_window_is_ignored(self, make_entity):
        enhancer = ContextEnhancer(deny_list=DenyList())
        value = "CH93 0076 2011 6238 5295 7"
        text = "iban" + " " * 60 + value
        entity = make_entity(text, len(text) - len(value), len(text), IBAN)
        result = enhancer.enhance_with_details(entity, text, get_context_words("IBAN", "en"))
        assert result.context_found == []

    def test_enhance_all(self, enhancer, make_entity):
        text = "Monsieur Jean Dupont et Madame Anne Martin"
        entities = [person(make_entity, text, "Jean Dupont"), person(make_entity, text, "Anne Martin")]
        results = enhancer.enhance_all_with_details(
            entities, text, get_context_words("PERSON_NAME", "fr"), "fr"
        )
        assert len(results) == 2
        assert all(r.boost_applied > 0 for r in results)

    def test_enhance_all_returns_entities(self, enhancer, make_entity):
        text = "Monsieur Jean Dupont"
        [enhanced] = enhancer.enhance_all(
            [person(make_entity, text, "Jean Dupont")], text, get_context_words("PERSON_NAME", "fr"), "fr"
        )
        assert enhanced.text == "Jean Dupont"
        assert enhanced.confidence > 0.5
