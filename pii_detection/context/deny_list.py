"""
DenyList — known false positives (table headers, invoice labels, acronyms,
company and street words) that must never be reported as PII.

Three additive layers are consulted, in this order:
global, per-entity-type, per-language. Each layer holds literal strings
(compared case-insensitively after trimming) and compiled regexes
(searched against the trimmed text).

A process-wide instance ``deny_list`` is shared by the passes; separate
``DenyList()`` instances can be injected for per-tenant lists.
"""
import json
import logging
import re
from pathlib import Path
from typing import Dict, List, Optional, Pattern, Set, Union

from jsonschema import ValidationError, validate

from pii_detection.config.constants import CONTEXT_TYPE_ALIASES
from pii_detection.config.schemas import DENY_LIST_CONFIG_SCHEMA
from pii_detection.errors import DenyListConfigError

logger = logging.getLogger(__name__)

DenyPattern = Union[str, Pattern[str]]

GLOBAL_SCOPE = "global"

# Flags accepted in config files; g / u / y have no Python counterpart.
_REGEX_FLAGS: Dict[str, int] = {
    "i": re.IGNORECASE,
    "m": re.MULTILINE,
    "s": re.DOTALL,
}

# =============================================================================
# Default patterns
# =============================================================================
DEFAULT_GLOBAL_PATTERNS: List[str] = [
    # fr table headers / invoice terms
    "Montant", "Libellé", "Description", "Quantité", "Prix", "Total",
    "Sous-total", "TVA", "Rabais", "Réduction", "Référence", "Numéro",
    "Facture", "Client", "Fournisseur", "Désignation", "Unité", "Remise",
    "HT", "TTC",
    # de
    "Beschreibung", "Betrag", "Menge", "Preis", "Summe", "MwSt",
    "Zwischensumme", "Rabatt", "Referenz", "Nummer", "Rechnung", "Kunde",
    "Lieferant", "Bezeichnung", "Einheit", "Netto", "Brutto",
    # en
    "Amount", "Quantity", "Price", "Subtotal", "Tax", "Discount", "Reference",
    "Number", "Invoice", "Customer", "Supplier", "Unit", "Net", "Gross",
    # it
    "Importo", "Quantità", "Prezzo", "Totale", "Subtotale", "IVA", "Sconto",
    "Riferimento", "Numero", "Fattura", "Cliente", "Fornitore", "Descrizione",
    # dates
    "Date", "Datum", "Data",
]

DEFAULT_ENTITY_TYPE_PATTERNS: Dict[str, List[DenyPattern]] = {
    "PERSON_NAME": [
        # acronyms
        re.compile(r"^[A-Z]{2,4}$"),
        re.compile(r"^\d+$"),
        re.compile(r"^(Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)$", re.I),
        re.compile(r"^(Mon|Tue|Wed|Thu|Fri|Sat|Sun)$", re.I),
        re.compile(r"^(Janv|Févr|Mars|Avr|Mai|Juin|Juil|Août|Sept|Oct|Nov|Déc)$", re.I),
        re.compile(r"^(Jan|Feb|Mär|Apr|Mai|Jun|Jul|Aug|Sep|Okt|Nov|Dez)$", re.I),
        # legal-form suffixes
        re.compile(
            r"\b(Ltd|AG|SA|GmbH|Inc|Corp|LLC|Sàrl|SARL|Sagl|Srl|SpA|Cie|KG|OHG|SE|NV|BV|Plc)\.?$",
            re.I,
        ),
        # street prefixes
        re.compile(
            r"^(Via|Viale|Piazza|Corso|Vicolo|Largo|Rue|Avenue|Boulevard|Chemin|Route"
            r"|Place|Allée|Strasse|Straße|Gasse|Weg|Platz|Allee)\b",
            re.I,
        ),
        re.compile(
            r"\b(Holding|Group|Technologies|Services|Solutions|Systems|Consulting"
            r"|Partners|Associates|Foundation|Institute|Bank)\s*$",
            re.I,
        ),
        # capitalized product / service word pairs
        re.compile(r"^(Case|Notre|Votre|Services|Gestion|Module|Données|Coordonnées)\s", re.I),
    ],
    "ORGANIZATION": [],
}

DEFAULT_LANGUAGE_PATTERNS: Dict[str, List[DenyPattern]] = {
    "en": [], "fr": [], "de": [], "it": [],
}


def compile_flags(flags: str) -> int:
    value = 0
    for ch in flags or "":
        value |= _REGEX_FLAGS.get(ch, 0)
    return value


def parse_pattern_entry(entry: Union[str, dict]) -> DenyPattern:
    """Turn a config entry (string or {pattern, type, flags}) into a pattern."""
    if isinstance(entry, str):
        return entry
    if entry.get("type") == "regex":
        return re.compile(entry["pattern"], compile_flags(entry.get("flags", "")))
    return entry["pattern"]


class _Layer:
    """String set (lowercased) + regex list for one scope."""

    def __init__(self, patterns: Optional[List[DenyPattern]] = None) -> None:
        self.patterns: List[DenyPattern] = []
        self.strings: Set[str] = set()
        self.regexes: List[Pattern[str]] = []
        for p in patterns or []:
            self.add(p)

    def add(self, pattern: DenyPattern) -> None:
        self.patterns.append(pattern)
        if isinstance(pattern, str):
            self.strings.add(pattern.strip().lower())
        else:
            self.regexes.append(pattern)

    def matches(self, text: str, lowered: str) -> bool:
        if lowered in self.strings:
            return True
        return any(r.search(text) for r in self.regexes)


class DenyList:
    """Layered deny-list registry."""

    def __init__(
        self,
        global_patterns: Optional[List[DenyPattern]] = None,
        by_entity_type: Optional[Dict[str, List[DenyPattern]]] = None,
        by_language: Optional[Dict[str, List[DenyPattern]]] = None,
    ) -> None:
        self._global = _Layer()
        self._by_type: Dict[str, _Layer] = {}
        self._by_language: Dict[str, _Layer] = {}
        if global_patterns is None and by_entity_type is None and by_language is None:
            self.reset()
        else:
            self._install(global_patterns or [], by_entity_type or {}, by_language or {})

    def _install(
        self,
        global_patterns: List[DenyPattern],
        by_entity_type: Dict[str, List[DenyPattern]],
        by_language: Dict[str, List[DenyPattern]],
    ) -> None:
        self._global = _Layer(global_patterns)
        self._by_type = {k: _Layer(v) for k, v in by_entity_type.items()}
        self._by_language = {k: _Layer(v) for k, v in by_language.items()}

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def is_denied(self, text: str, entity_type: str, language: Optional[str] = None) -> bool:
        """
        Check whether *text* is a known false positive for *entity_type*.

        The entity-type layer is also consulted under the type's context
        alias (PERSON -> PERSON_NAME, PHONE -> PHONE_NUMBER).
        """
        normalized = text.strip()
        lowered = normalized.lower()

        if self._global.matches(normalized, lowered):
            return True

        for key in dict.fromkeys((entity_type, CONTEXT_TYPE_ALIASES.get(entity_type, entity_type))):
            layer = self._by_type.get(key)
            if layer is not None and layer.matches(normalized, lowered):
                return True

        if language:
            layer = self._by_language.get(language)
            if layer is not None and layer.matches(normalized, lowered):
                return True

        return False

    # ------------------------------------------------------------------
    # Mutation (configuration operations)
    # ------------------------------------------------------------------

    def add_pattern(self, pattern: DenyPattern, scope: str = GLOBAL_SCOPE) -> None:
        """Add to the global layer or, for any other scope, to that entity type."""
        if scope == GLOBAL_SCOPE:
            self._global.add(pattern)
        else:
            self._by_type.setdefault(scope, _Layer()).add(pattern)

    def add_language_pattern(self, pattern: DenyPattern, language: str) -> None:
        self._by_language.setdefault(language, _Layer()).add(pattern)

    def load_from_config(self, config: dict) -> None:
        """
        Replace the whole configuration with a validated config document.

        Raises:
            DenyListConfigError: if the document violates DENY_LIST_CONFIG_SCHEMA
                or contains an uncompilable regex.
        """
        try:
            validate(instance=config, schema=DENY_LIST_CONFIG_SCHEMA)
        except ValidationError as e:
            raise DenyListConfigError([f"Schema violation: {e.message}"]) from e

        try:
            self._install(
                [parse_pattern_entry(p) for p in config["global"]],
                {k: [parse_pattern_entry(p) for p in v] for k, v in config["byEntityType"].items()},
                {k: [parse_pattern_entry(p) for p in v] for k, v in config["byLanguage"].items()},
            )
        except re.error as e:
            raise DenyListConfigError([f"Invalid regex: {e}"]) from e

        logger.info(
            "DenyList configuration loaded (version=%s, global=%d, types=%d, languages=%d)",
            config.get("version", "unversioned"),
            len(self._global.patterns),
            len(self._by_type),
            len(self._by_language),
        )

    def reset(self) -> None:
        """Restore the default configuration."""
        self._install(
            list(DEFAULT_GLOBAL_PATTERNS),
            {k: list(v) for k, v in DEFAULT_ENTITY_TYPE_PATTERNS.items()},
            {k: list(v) for k, v in DEFAULT_LANGUAGE_PATTERNS.items()},
        )

    def clear(self) -> None:
        """Remove every pattern (including defaults)."""
        self._install([], {}, {})

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def get_patterns(
        self, entity_type: Optional[str] = None, language: Optional[str] = None
    ) -> List[DenyPattern]:
        patterns = list(self._global.patterns)
        if entity_type and entity_type in self._by_type:
            patterns.extend(self._by_type[entity_type].patterns)
        if language and language in self._by_language:
            patterns.extend(self._by_language[language].patterns)
        return patterns

    def get_global_patterns(self) -> List[DenyPattern]:
        return list(self._global.patterns)

    def get_entity_type_patterns(self, entity_type: str) -> List[DenyPattern]:
        layer = self._by_type.get(entity_type)
        return list(layer.patterns) if layer else []

    def get_language_patterns(self, language: str) -> List[DenyPattern]:
        layer = self._by_language.get(language)
        return list(layer.patterns) if layer else []


def load_deny_list_file(path: Union[str, Path], target: Optional[DenyList] = None) -> DenyList:
    """Load a JSON deny-list config file into *target* (default: shared instance)."""
    target = target if target is not None else deny_list
    with open(path, "r", encoding="utf-8") as f:
        try:
            config = json.load(f)
        except json.JSONDecodeError as e:
            raise DenyListConfigError([f"JSON parse error: {e}"]) from e
    target.load_from_config(config)
    return target


deny_list = DenyList()
