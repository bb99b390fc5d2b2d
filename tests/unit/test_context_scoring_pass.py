"""
Unit tests for the context scoring pass.
"""
import pytest

from pii_detection.config.constants import DATE, IBAN, PERSON_NAME, PHONE
from pii_detection.context.deny_list import DenyList
from pii_detection.passes.context_scoring import ContextScoringPass

VALUE = "CH93 0076 2011 6238 5295 7"


@pytest.fixture
def pass_():
    return ContextScoringPass(deny_list=DenyList())


def factor(result, name):
    return next(f for f in result.factors if f.name == name)


class TestFactors:
    def test_label_keyword_found(self, pass_, make_entity):
        text = "IBAN: " + VALUE
        entity = make_entity(text, 6, len(text), IBAN)
        result = pass_.score_entity(entity, text, [entity], 50)

        label = factor(result, "labelKeywords")
        assert label.matched
        assert label.description == 'Found keyword "iban" nearby'
        assert factor(result, "documentPosition").matched
        assert not factor(result, "relatedEntities").matched
        assert not factor(result, "repetition").matched
        assert result.total == pytest.approx(0.4 / 0.9)

    def test_keywords_match_whole_words(self, pass_, make_entity):
        text = "Kontoristin " + VALUE
        entity = make_entity(text, 12, len(text), IBAN)
        assert not factor(pass_.score_entity(entity, text, [entity], 50), "labelKeywords").matched

    def test_body_type_in_header_is_unusual(self, pass_, make_entity):
        text = VALUE + " " + "x" * 300
        entity = make_entity(text, 0, len(VALUE), IBAN)
        position = factor(pass_.score_entity(entity, text, [entity], 50), "documentPosition")
        assert not position.matched
        assert "unusual position" in position.description

    def test_header_type_in_header_is_expected(self, pass_, make_entity):
        phone = "+41 44 123 45 67"
        text = phone + " " + "x" * 300
        entity = make_entity(text, 0, len(phone), PHONE)
        position = factor(pass_.score_entity(entity, text, [entity], 50), "documentPosition")
        assert position.matched
        assert "expected position" in position.description

    def test_related_entities_nearby(self, pass_, make_entity):
        text = "Jean Dupont +41 44 123 45 67"
        person = make_entity(text, 0, 11, PERSON_NAME)
        phone = make_entity(text, 12, len(text), PHONE)
        related = factor(pass_.score_entity(person, text, [person, phone], 50), "relatedEntities")
        assert related.matched
        assert "PHONE" in related.description

    def test_repetition(self, pass_, make_entity):
        text = "Jean Dupont et Jean Dupont"
        first = make_entity(text, 0, 11, PERSON_NAME)
        second = make_entity(text, 15, 26, PERSON_NAME)
        repetition = factor(pass_.score_entity(first, text, [first, second], 50), "repetition")
        assert repetition.matched
        assert repetition.description == "Entity repeated 2 times in document"

    def test_descriptions_never_contain_entity_text(self, pass_, make_entity):
        text = "IBAN: " + VALUE + " IBAN: " + VALUE
        first = make_entity(text, 6, 32, IBAN)
        second = make_entity(text, 39, 65, IBAN)
        for f in pass_.score_entity(first, text, [first, second], 50).factors:
            assert VALUE not in f.description


class TestExecute:
    def test_confidence_and_context_attached(self, pass_, make_entity, make_context):
        text = "IBAN: " + VALUE
        entity = make_entity(text, 6, len(text), IBAN, confidence=0.5)
        context = make_context(text, enable_epic8_features=False)

        scored = pass_.execute([entity], context)[0]
        assert scored.confidence == pytest.approx(0.5 * (0.7 + (0.4 / 0.9) * 0.6))
        assert scored.context.total == pytest.approx(0.4 / 0.9)
        assert not scored.flagged_for_review

    def test_low_confidence_is_flagged(self, pass_, make_entity, make_context):
        text = "x" * 100 + " 12.03.2024 " + "x" * 100
        entity = make_entity(text, 101, 111, DATE, confidence=0.3)
        scored = pass_.execute([entity], make_context(text, enable_epic8_features=False))[0]
        assert scored.confidence == pytest.approx(0.3 * (0.7 + (0.15 / 0.9) * 0.6))
        assert scored.flagged_for_review

    def test_context_words_boost_with_epic8_features(self, pass_, make_entity, make_context):
        text = "IBAN: " + VALUE
        entity = make_entity(text, 6, len(text), IBAN, confidence=0.5)
        context = make_context(text)

        scored = pass_.execute([entity], context)[0]
        assert context.metadata["context_boosted"] == {IBAN: 1}
        assert scored.metadata.context_words_found == ["iban"]
        assert scored.confidence > 0.5

    def test_confidence_stays_in_bounds(self, pass_, make_entity, make_context):
        text = "IBAN konto account: " + VALUE + " IBAN " + VALUE
        entities = [
            make_entity(text, 20, 46, IBAN, confidence=1.0),
            make_entity(text, 52, 78, IBAN, confidence=1.0),
        ]
        for scored in pass_.execute(entities, make_context(text)):
            assert 0.0 <= scored.confidence <= 1.0
