"""
Shared test fixtures for the PII detection test suite.
"""
import pytest

from pii_detection.context.context_words import reset_context_words
from pii_detection.context.deny_list import deny_list
from pii_detection.ml.ml_metrics import clear_metrics
from pii_detection.models.entity import Entity
from pii_detection.models.pipeline import PipelineConfig, PipelineContext


# ==========================================================================
# Shared state
# ==========================================================================

@pytest.fixture(autouse=True)
def reset_shared_tables():
    """Every test starts from the default DenyList and context words."""
    deny_list.reset()
    reset_context_words()
    clear_metrics()
    yield
    deny_list.reset()
    reset_context_words()
    clear_metrics()


# ==========================================================================
# Documents
# ==========================================================================

@pytest.fixture
def iban_phone_text():
    return "IBAN CH93 0076 2011 6238 5295 7, Tel: +41 44 123 45 67"


@pytest.fixture
def swiss_letter_text():
    return (
        "Sehr geehrter Herr Müller,\n"
        "bitte überweisen Sie den Betrag auf das Konto CH93 0076 2011 6238 5295 7.\n"
        "Ihre AHV-Nummer 756.1234.5678.97 ist bei uns hinterlegt.\n"
        "Adresse: Bahnhofstrasse 10, 8001 Zürich\n"
        "Freundliche Grüsse"
    )


# ==========================================================================
# Helpers
# ==========================================================================

@pytest.fixture
def make_entity():
    """Build an Entity whose text is sliced from *text*."""
    def _make(text, start, end, entity_type, confidence=0.7, **kwargs):
        return Entity(
            text=text[start:end],
            type=entity_type,
            start=start,
            end=end,
            confidence=confidence,
            **kwargs,
        )
    return _make


@pytest.fixture
def make_context():
    def _make(text, language="en", **config):
        return PipelineContext(
            text=text,
            document_id="doc-test-001",
            language=language,
            config=PipelineConfig(**config),
        )
    return _make
