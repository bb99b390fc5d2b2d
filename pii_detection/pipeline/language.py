"""
Lightweight language detection for en / fr / de / it documents.

Counts frequent function words per language; the highest count wins.
Falls back to the configured default language when nothing matches.
"""
import re
from typing import Dict, FrozenSet, Optional

from pii_detection.config import settings
from pii_detection.config.constants import SUPPORTED_LANGUAGES

MARKER_WORDS: Dict[str, FrozenSet[str]] = {
    "en": frozenset({
        "the", "and", "of", "to", "is", "for", "with", "dear", "please", "invoice",
        "your", "this", "from", "regards", "thank", "you", "street",
    }),
    "fr": frozenset({
        "le", "la", "les", "et", "des", "du", "une", "est", "pour", "avec", "madame",
        "monsieur", "facture", "veuillez", "nous", "vous", "rue", "salutations",
    }),
    "de": frozenset({
        "der", "die", "das", "und", "ist", "mit", "für", "von", "zu", "den", "sehr",
        "geehrte", "geehrter", "rechnung", "bitte", "freundlichen", "grüssen", "grüßen",
    }),
    "it": frozenset({
        "il", "lo", "gli", "di", "che", "è", "per", "con", "della", "fattura",
        "gentile", "signor", "signora", "cordiali", "saluti", "via", "sono",
    }),
}

_WORD = re.compile(r"[^\W\d_]+")


def detect_language(text: str, default: Optional[str] = None) -> str:
    """Return the most likely language code; *default* (or settings) on no signal."""
    fallback = default or settings.DEFAULT_LANGUAGE
    counts = {lang: 0 for lang in SUPPORTED_LANGUAGES}
    for word in _WORD.findall(text.lower()):
        for lang, markers in MARKER_WORDS.items():
            if word in markers:
                counts[lang] += 1

    best = max(SUPPORTED_LANGUAGES, key=lambda lang: counts[lang])
    if counts[best] == 0:
        return fallback
    return best
