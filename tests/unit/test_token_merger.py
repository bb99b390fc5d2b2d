"""
Unit tests for BIO subword token merging.
"""
import pytest

from pii_detection.ml.token_merger import (
    MergeConfig,
    SubwordTokenMerger,
    extract_entity_type,
    is_beginning_token,
    is_inside_token,
    merge_subword_tokens,
    merge_tokens,
)
from pii_detection.models.ml import MLToken

TEXT = "Hans Müller wohnt in Zürich"


@pytest.fixture
def tokens():
    return [
        MLToken("Hans", "B-PER", 0.9, 0, 4),
        MLToken("Müller", "I-PER", 0.7, 5, 11),
        MLToken("wohnt", "O", 0.99, 12, 17),
        MLToken("Zürich", "B-LOC", 0.95, 21, 27),
    ]


class TestLabelHelpers:
    def test_extract_entity_type(self):
        assert extract_entity_type("B-PER") == "PER"
        assert extract_entity_type("I-LOC") == "LOC"
        assert extract_entity_type("ORG") == "ORG"

    def test_bio_prefixes(self):
        assert is_beginning_token("B-PER")
        assert is_inside_token("I-PER")
        assert not is_inside_token("PER")


class TestMergeSubwordTokens:
    def test_bio_run_merges(self, tokens):
        merged = merge_subword_tokens(tokens, TEXT)
        assert [(m.entity, m.word, m.token_count) for m in merged] == [
            ("PER", "Hans Müller", 2),
            ("LOC", "Zürich", 1),
        ]
        assert merged[0].score == pytest.approx(0.8)
        assert (merged[0].start, merged[0].end) == (0, 11)

    def test_weighted_confidence(self, tokens):
        merged = merge_subword_tokens(tokens, TEXT, MergeConfig(weighted_confidence=True))
        assert merged[0].score == pytest.approx((0.9 + 0.7 * 0.5) / 1.5)

    def test_unsorted_input(self, tokens):
        assert merge_subword_tokens(list(reversed(tokens)), TEXT) == merge_subword_tokens(tokens, TEXT)

    def test_beginning_token_starts_new_entity(self):
        toks = [MLToken("Hans", "B-PER", 0.9, 0, 4), MLToken("Müller", "B-PER", 0.8, 5, 11)]
        assert len(merge_subword_tokens(toks, TEXT)) == 2

    def test_type_change_starts_new_entity(self):
        toks = [MLToken("Hans", "B-PER", 0.9, 0, 4), MLToken("Müller", "I-LOC", 0.8, 5, 11)]
        assert [m.entity for m in merge_subword_tokens(toks, TEXT)] == ["PER", "LOC"]

    def test_gap_limit(self):
        toks = [MLToken("Hans", "B-PER", 0.9, 0, 4), MLToken("Zürich", "I-PER", 0.8, 21, 27)]
        assert len(merge_subword_tokens(toks, TEXT, MergeConfig(max_gap=5))) == 2
        assert len(merge_subword_tokens(toks, TEXT, MergeConfig(max_gap=20))) == 1

    def test_short_entities_dropped(self):
        toks = [MLToken("in", "B-LOC", 0.9, 18, 20)]
        assert merge_subword_tokens(toks, TEXT, MergeConfig(min_length=3)) == []
        assert len(merge_tokens(toks, TEXT, min_length=2)) == 1

    def test_entity_group_dicts(self):
        toks = [
            {"entity_group": "PER", "word": "Hans Müller", "score": 0.88, "start": 0, "end": 11},
            {"entity": "B-LOC", "word": "Zürich", "score": 0.9, "start": 21, "end": 27},
        ]
        merged = merge_subword_tokens(toks, TEXT)
        assert [(m.entity, m.word) for m in merged] == [("PER", "Hans Müller"), ("LOC", "Zürich")]

    def test_word_is_resliced_from_text(self):
        toks = [MLToken("##ller", "B-PER", 0.9, 7, 11)]
        assert merge_subword_tokens(toks, TEXT)[0].word == "ller"


class TestSubwordTokenMerger:
    def test_configure(self, tokens):
        merger = SubwordTokenMerger()
        merger.configure(min_length=7)
        assert merger.get_config().min_length == 7
        assert [m.word for m in merger.merge(tokens, TEXT)] == ["Hans Müller"]
