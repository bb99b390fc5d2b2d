"""
Unit tests for address component linking and pattern detection.
"""
import pytest

from pii_detection.address.linker import AddressLinker, LinkerConfig, validation_status_for
from pii_detection.config.constants import (
    CITY,
    COUNTRY,
    POSTAL_CODE,
    SOURCE_LINKED,
    STREET_NAME,
    STREET_NUMBER,
)
from pii_detection.models.address import (
    PATTERN_ALTERNATIVE,
    PATTERN_EU,
    PATTERN_NONE,
    PATTERN_PARTIAL,
    PATTERN_SWISS,
    AddressComponent,
)


@pytest.fixture
def linker():
    return AddressLinker()


def component(component_type, text, start):
    return AddressComponent(type=component_type, text=text, start=start, end=start + len(text))


class TestDetectPattern:
    def test_swiss_order(self, linker):
        parts = [
            component(STREET_NAME, "Bahnhofstrasse", 0),
            component(POSTAL_CODE, "8001", 19),
            component(CITY, "Zürich", 24),
        ]
        assert linker.detect_pattern(parts) == PATTERN_SWISS

    def test_country_makes_eu(self, linker):
        parts = [
            component(STREET_NAME, "Hauptstrasse", 0),
            component(POSTAL_CODE, "10115", 16),
            component(CITY, "Berlin", 22),
            component(COUNTRY, "Deutschland", 30),
        ]
        assert linker.detect_pattern(parts) == PATTERN_EU

    def test_postal_before_street_is_alternative(self, linker):
        parts = [
            component(POSTAL_CODE, "8001", 0),
            component(CITY, "Zürich", 5),
            component(STREET_NAME, "Bahnhofstrasse", 13),
        ]
        assert linker.detect_pattern(parts) == PATTERN_ALTERNATIVE

    def test_partial(self, linker):
        assert linker.detect_pattern([
            component(STREET_NAME, "Bahnhofstrasse", 0), component(CITY, "Zürich", 16),
        ]) == PATTERN_PARTIAL
        assert linker.detect_pattern([
            component(POSTAL_CODE, "8001", 0), component(CITY, "Zürich", 5),
        ]) == PATTERN_PARTIAL

    def test_none(self, linker):
        assert linker.detect_pattern([
            component(STREET_NAME, "Bahnhofstrasse", 0), component(STREET_NUMBER, "10", 15),
        ]) == PATTERN_NONE

    def test_validation_status(self):
        assert validation_status_for(PATTERN_SWISS) == "valid"
        assert validation_status_for(PATTERN_ALTERNATIVE) == "partial"
        assert validation_status_for(PATTERN_PARTIAL) == "uncertain"


class TestConfidence:
    def test_complete_swiss_address(self, linker):
        parts = [
            component(STREET_NAME, "Bahnhofstrasse", 0),
            component(STREET_NUMBER, "10", 15),
            component(POSTAL_CODE, "8001", 19),
            component(CITY, "Zürich", 24),
        ]
        # 0.85 base + 2 extra components + street/number + postal/city
        assert linker.calculate_confidence(PATTERN_SWISS, parts) == pytest.approx(0.99)

    def test_unknown_pattern_base(self, linker):
        parts = [component(STREET_NAME, "Bahnhofstrasse", 0), component(COUNTRY, "CH", 16)]
        assert linker.calculate_confidence(PATTERN_NONE, parts) == pytest.approx(0.3)

    def test_capped_at_one(self, linker):
        parts = [component(CITY, "Zürich", i * 10) for i in range(20)]
        assert linker.calculate_confidence(PATTERN_EU, parts) == 1.0


class TestGrouping:
    def test_gap_splits_groups(self, linker):
        text = "Bahnhofstrasse 10" + " " * 80 + "8001 Zürich"
        parts = [
            component(STREET_NAME, "Bahnhofstrasse", 0),
            component(STREET_NUMBER, "10", 15),
            component(POSTAL_CODE, "8001", 97),
            component(CITY, "Zürich", 102),
        ]
        assert text[97:101] == "8001"
        groups = linker.group_by_proximity(parts, text)
        assert [len(g) for g in groups] == [2, 2]

    def test_newline_allows_wider_gap(self, linker):
        text = "Bahnhofstrasse 10\n" + " " * 60 + "8001 Zürich"
        start = text.index("8001")
        parts = [
            component(STREET_NAME, "Bahnhofstrasse", 0),
            component(STREET_NUMBER, "10", 15),
            component(POSTAL_CODE, "8001", start),
            component(CITY, "Zürich", start + 5),
        ]
        groups = linker.group_by_proximity(parts, text)
        assert len(groups) == 1

    def test_single_component_groups_are_dropped(self, linker):
        assert linker.group_by_proximity([component(CITY, "Zürich", 0)], "Zürich") == []

    def test_is_valid_addition(self, linker):
        street = component(STREET_NAME, "Bahnhofstrasse", 0)
        city = component(CITY, "Zürich", 20)
        assert linker.is_valid_addition([street], component(STREET_NUMBER, "10", 15))
        assert not linker.is_valid_addition([city], component(STREET_NAME, "Seeweg", 30))
        assert not linker.is_valid_addition([street, city], component(CITY, "Bern", 30))


class TestProcessText:
    def test_swiss_address(self, linker):
        text = "Adresse: Bahnhofstrasse 10, 8001 Zürich"
        result = linker.process_text(text)
        assert len(result.addresses) == 1

        address = result.addresses[0]
        assert address.text == "Bahnhofstrasse 10, 8001 Zürich"
        assert text[address.start:address.end] == address.text
        assert address.pattern_matched == PATTERN_SWISS
        assert address.validation_status == "valid"
        assert address.source == SOURCE_LINKED
        assert address.components == {
            "street": "Bahnhofstrasse",
            "number": "10",
            "postal": "8001",
            "city": "Zürich",
            "country": None,
        }
        assert all(c.linked and c.linked_to_group_id == address.id
                   for c in address.component_entities)

    def test_entities_carry_breakdown(self, linker):
        text = "Bahnhofstrasse 10, 8001 Zürich"
        entity = linker.process_text(text).entities[0]
        assert entity.metadata.is_grouped_address
        assert entity.metadata.component_count == 4
        assert entity.metadata.breakdown["city"] == "Zürich"
        assert len(entity.components) == 4

    def test_lone_street_is_not_an_address(self, linker):
        assert linker.process_text("Bahnhofstrasse 10").addresses == []

    def test_link_and_group_splits_linked_and_unlinked(self, linker):
        text = "Bahnhofstrasse 10, 8001 Zürich" + " " * 200 + "Bern"
        components = linker.classifier.classify_components(text)
        result = linker.link_and_group(components, text)
        assert len(result.grouped_addresses) == 1
        assert len(result.linked_components) == 4
        assert [c.text for c in result.unlinked_components] == ["Bern"]

    def test_sliding_window_linking(self, linker):
        text = "Bahnhofstrasse 10, 8001 Zürich"
        components = linker.classifier.classify_components(text)
        addresses = linker.link_components(text, components)
        assert len(addresses) == 1
        assert addresses[0].pattern_matched == PATTERN_SWISS

    def test_custom_threshold(self):
        linker = AddressLinker(LinkerConfig(proximity_threshold=1, newline_threshold=1))
        text = "Bahnhofstrasse   10,   8001   Zürich"
        assert linker.process_text(text).addresses == []
