"""
Finds address components (street, number, postal code, city, country) in free text.

Components are searched in a fixed order (street names, postal codes,
street numbers, cities, countries). A component is only accepted when it
does not overlap any component accepted before it, so one position is
never classified twice.
"""
import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from pii_detection.config.constants import (
    ADDRESS,
    CITY,
    COUNTRY,
    LOCATION,
    POSTAL_CODE,
    SOURCE_RULE,
    STREET_NAME,
    STREET_NUMBER,
    SWISS_ADDRESS,
    SWISS_POSTAL_MAX,
)
from pii_detection.models.address import AddressComponent
from pii_detection.models.entity import Entity
from pii_detection.models.metadata import EntityMetadata

# =============================================================================
# Reference data
# =============================================================================
SWISS_POSTAL_RANGES: List[Tuple[int, int, str]] = [
    (1000, 1299, "VD"), (1300, 1399, "VD/VS"), (1400, 1499, "VD"),
    (1500, 1599, "FR/VD"), (1600, 1699, "FR/VD"), (1700, 1799, "FR"),
    (1800, 1899, "VD/VS"), (1900, 1999, "VS"), (2000, 2299, "NE"),
    (2300, 2499, "NE/BE"), (2500, 2599, "BE"), (2600, 2699, "BE/SO"),
    (2700, 2799, "BE/JU"), (2800, 2999, "JU"), (3000, 3999, "BE"),
    (4000, 4999, "BS/BL/SO/AG"), (5000, 5999, "AG/SO"),
    (6000, 6999, "LU/ZG/SZ/NW/OW/UR/TI"), (7000, 7999, "GR"),
    (8000, 8999, "ZH/SH/TG/SG"), (9000, SWISS_POSTAL_MAX, "SG/AR/AI/TG/SH/FL"),
]

SWISS_CITIES: Dict[str, List[str]] = {
    "zurich": ["zürich", "zurich", "zurigo"],
    "geneva": ["genève", "geneve", "geneva", "genf", "ginevra"],
    "basel": ["basel", "bâle", "basilea"],
    "bern": ["bern", "berne", "berna"],
    "lausanne": ["lausanne", "losanna"],
    "winterthur": ["winterthur", "winterthour"],
    "lucerne": ["luzern", "lucerne", "lucerna"],
    "stgallen": ["st. gallen", "st.gallen", "saint-gall", "san gallo"],
    "lugano": ["lugano"],
    "biel": ["biel", "bienne"],
    "thun": ["thun", "thoune"],
    "fribourg": ["fribourg", "freiburg", "friburgo"],
    "neuchatel": ["neuchâtel", "neuchatel", "neuenburg"],
    "sion": ["sion", "sitten"],
    "chur": ["chur", "coire", "coira"],
    "montreux": ["montreux"],
    "zug": ["zug", "zoug"],
    "bellinzona": ["bellinzona", "bellinzone"],
    "locarno": ["locarno"],
}

COUNTRIES: Dict[str, List[str]] = {
    "switzerland": ["switzerland", "suisse", "schweiz", "svizzera", "CH"],
    "germany": ["germany", "allemagne", "deutschland", "germania", "DE"],
    "france": ["france", "frankreich", "francia", "FR"],
    "italy": ["italy", "italie", "italien", "italia", "IT"],
    "austria": ["austria", "autriche", "österreich", "AT"],
    "liechtenstein": ["liechtenstein", "LI"],
    "belgium": ["belgium", "belgique", "belgien", "belgio", "BE"],
    "netherlands": ["netherlands", "pays-bas", "niederlande", "paesi bassi", "NL"],
    "luxembourg": ["luxembourg", "luxemburg", "lussemburgo", "LU"],
}

# =============================================================================
# Patterns
# =============================================================================
_UPPER = "A-ZÄÖÜÉÈÀ"
_LOWER = "a-zäöüßéèàâêîôûç"

# Germanic compound: Bahnhofstrasse, Seeweg, Limmatquai-style suffixes
_COMPOUND_STREET = re.compile(
    rf"(?<!\w)[{_UPPER}][{_LOWER}]+(?i:strasse|straße|str\.|gasse|weg|platz|allee|ring|damm|quai)"
    r"(?=[\s,]|$)"
)
# Separate-word suffix: Zürcher Strasse, Baker Street, Main St.
_SEPARATE_STREET = re.compile(
    rf"(?<!\w)(?:[{_UPPER}][{_LOWER}]+\s+){{1,3}}"
    r"(?i:strasse|straße|gasse|weg|platz|allee|street|st\.|road|rd\.|lane|ln\.|avenue|ave\."
    r"|drive|way|court|ct\.|boulevard|blvd\.|circle)(?!\w)"
)
# Romance prefix: Rue de Lausanne, Via Nassa, Chemin des Roses
_NAME_AFTER_PREFIX = (
    rf"\s+(?:(?:de\s+la|de\s+l'|de|du|des|della|del|dei|delle|dello)\s+)?"
    rf"[{_UPPER}][\w'-]+(?:\s+[{_UPPER}][\w'-]+)*"
)
_PREFIX_STREET = re.compile(
    r"(?<!\w)(?:(?i:rue|chemin|boulevard|impasse|quai|viale|piazza|corso|vicolo|strada)"
    r"|Avenue|Av\.|Place|Route|Rte\.|Allée|Passage|Via|Largo)"
    + _NAME_AFTER_PREFIX
)

_AUSTRIAN_POSTAL = re.compile(r"(?<!\w)A-\d{4}(?!\w)")
_FIVE_DIGIT_POSTAL = re.compile(r"(?<!\w)(?:[DFI][-\s])?\d{5}(?!\w)")
_SWISS_POSTAL = re.compile(r"(?<!\w)(?:CH[-\s]?)?([1-9]\d{3})(?!\w)")

_STREET_NUMBER = re.compile(r"(?<!\w)\d{1,4}[a-zA-Z]?(?:\s*[-–]\s*\d{1,4}[a-zA-Z]?)?(?!\w)")

_CITY_AFTER_POSTAL = re.compile(rf"\s*([{_UPPER}][{_LOWER}]+(?:-[{_UPPER}][{_LOWER}]+)?)")

MIN_STREET_NAME_LENGTH = 5
CITY_LOOKAHEAD = 50

_CITY_TRANSLATION = str.maketrans({
    "ä": "a", "à": "a", "â": "a",
    "é": "e", "è": "e", "ê": "e", "ë": "e",
    "î": "i", "ï": "i", "ì": "i",
    "ö": "o", "ô": "o", "ò": "o",
    "ü": "u", "ù": "u", "û": "u",
    "ç": "c",
})


# =============================================================================
# Helpers
# =============================================================================

def is_valid_swiss_postal_code(code: int) -> bool:
    return any(lo <= code <= hi for lo, hi, _ in SWISS_POSTAL_RANGES)


def get_canton_for_postal_code(code: int) -> Optional[str]:
    for lo, hi, canton in SWISS_POSTAL_RANGES:
        if lo <= code <= hi:
            return canton
    return None


def normalize_city(city: str) -> str:
    """Lowercase, strip diacritics (ß -> ss) and surrounding whitespace."""
    return city.lower().translate(_CITY_TRANSLATION).replace("ß", "ss").strip()


_KNOWN_CITIES = frozenset(normalize_city(v) for variants in SWISS_CITIES.values() for v in variants)


def is_known_swiss_city(city: str) -> bool:
    return normalize_city(city) in _KNOWN_CITIES


def component_entity_type(component_type: str) -> str:
    if component_type in (STREET_NAME, STREET_NUMBER):
        return ADDRESS
    if component_type == POSTAL_CODE:
        return SWISS_ADDRESS
    return LOCATION


def components_to_entities(
    components: List[AddressComponent],
    source: str = SOURCE_RULE,
) -> List[Entity]:
    """Expose raw components as low-confidence address-component entities."""
    return [
        Entity(
            text=c.text,
            type=component_entity_type(c.type),
            start=c.start,
            end=c.end,
            source=source,
            confidence=0.7,
            metadata=EntityMetadata(component_type=c.type, is_address_component=True),
        )
        for c in components
    ]


# =============================================================================
# Classifier
# =============================================================================

@dataclass(frozen=True)
class ClassifierConfig:
    max_component_distance: int = 50


class AddressClassifier:
    """Rule-based detector of address components."""

    def __init__(self, config: Optional[ClassifierConfig] = None) -> None:
        self.config = config or ClassifierConfig()

    def classify_components(self, text: str) -> List[AddressComponent]:
        found: List[AddressComponent] = []
        self._find_street_names(text, found)
        self._find_postal_codes(text, found)
        self._find_street_numbers(text, found)
        self._find_cities(text, found)
        self._find_countries(text, found)
        return sorted(found, key=lambda c: (c.start, c.end))

    # ------------------------------------------------------------------

    @staticmethod
    def _claim(found: List[AddressComponent], component_type: str, text: str,
               start: int, end: int) -> bool:
        if any(start < c.end and c.start < end for c in found):
            return False
        found.append(AddressComponent(type=component_type, text=text[start:end],
                                      start=start, end=end))
        return True

    def _find_street_names(self, text: str, found: List[AddressComponent]) -> None:
        for pattern in (_COMPOUND_STREET, _SEPARATE_STREET, _PREFIX_STREET):
            for m in pattern.finditer(text):
                name = m.group(0).rstrip()
                if len(name) >= MIN_STREET_NAME_LENGTH:
                    self._claim(found, STREET_NAME, text, m.start(), m.start() + len(name))

    def _find_postal_codes(self, text: str, found: List[AddressComponent]) -> None:
        for m in _AUSTRIAN_POSTAL.finditer(text):
            self._claim(found, POSTAL_CODE, text, m.start(), m.end())
        for m in _FIVE_DIGIT_POSTAL.finditer(text):
            self._claim(found, POSTAL_CODE, text, m.start(), m.end())
        for m in _SWISS_POSTAL.finditer(text):
            if is_valid_swiss_postal_code(int(m.group(1))):
                self._claim(found, POSTAL_CODE, text, m.start(), m.end())

    def _find_street_numbers(self, text: str, found: List[AddressComponent]) -> None:
        streets = [c for c in found if c.type == STREET_NAME]
        if not streets:
            return
        limit = self.config.max_component_distance
        for m in _STREET_NUMBER.finditer(text):
            pos = m.start()
            near = any(
                min(abs(pos - s.end), abs(pos - s.start)) <= limit for s in streets
            )
            if near:
                self._claim(found, STREET_NUMBER, text, m.start(), m.end())

    def _find_cities(self, text: str, found: List[AddressComponent]) -> None:
        for variants in SWISS_CITIES.values():
            for variant in variants:
                pattern = re.compile(rf"(?<!\w){re.escape(variant)}(?!\w)", re.IGNORECASE)
                for m in pattern.finditer(text):
                    self._claim(found, CITY, text, m.start(), m.end())

        postals = [c for c in found if c.type == POSTAL_CODE]
        for postal in postals:
            m = _CITY_AFTER_POSTAL.match(text, postal.end, min(len(text), postal.end + CITY_LOOKAHEAD))
            if m:
                self._claim(found, CITY, text, m.start(1), m.end(1))

    def _find_countries(self, text: str, found: List[AddressComponent]) -> None:
        for variants in COUNTRIES.values():
            for variant in variants:
                if len(variant) <= 2:
                    # ISO codes: uppercase only, after a comma or whitespace
                    pattern = re.compile(rf"(?:,\s*|\s+)({variant})(?=\s|\.|$)")
                    for m in pattern.finditer(text):
                        self._claim(found, COUNTRY, text, m.start(1), m.end(1))
                else:
                    pattern = re.compile(rf"(?<!\w){re.escape(variant)}(?!\w)", re.IGNORECASE)
                    for m in pattern.finditer(text):
                        self._claim(found, COUNTRY, text, m.start(), m.end())


address_classifier = AddressClassifier()
