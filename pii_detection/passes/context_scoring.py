"""
Context Scoring Pass (order 30).

Two stages:
    1. ContextEnhancer (epic8 features): direction-weighted boost from the
       multilingual context-word table, DenyList-guarded.
    2. Structural factors, combined into a normalized context score:

        labelKeywords     0.25  label keyword in the preceding window
        relatedEntities   0.30  a commonly co-occurring type nearby
        documentPosition  0.15  header/footer plausibility
        repetition        0.20  same text and type elsewhere

       confidence = min(1, confidence * (0.7 + score * 0.6))

Factor descriptions name keywords and types only, never entity text.
"""
import logging
from typing import Dict, List, Optional, Tuple

from pii_detection.config.constants import (
    ADDRESS,
    AMOUNT,
    DATE,
    EMAIL,
    EU_ADDRESS,
    IBAN,
    INVOICE_NUMBER,
    LOCATION,
    ORGANIZATION,
    PAYMENT_REF,
    PERSON,
    PERSON_NAME,
    PHONE,
    QR_REFERENCE,
    SWISS_ADDRESS,
    SWISS_AVS,
    VAT_NUMBER,
)
from pii_detection.context.context_words import context_type_for, get_context_words
from pii_detection.context.deny_list import DenyList
from pii_detection.context.enhancer import ContextEnhancer, EnhancerConfig, context_word_pattern
from pii_detection.models.entity import ContextFactor, ContextResult, Entity
from pii_detection.models.pipeline import PipelineContext
from pii_detection.passes.base import DetectionPass

logger = logging.getLogger(__name__)

DEFAULT_FLAG_THRESHOLD = 0.4

FACTOR_WEIGHTS: Dict[str, float] = {
    "labelKeywords": 0.25,
    "relatedEntities": 0.3,
    "documentPosition": 0.15,
    "repetition": 0.2,
}

_ADDRESS_LABELS = ["adresse", "address", "anschrift", "wohnort", "domicile", "indirizzo"]
_PERSON_LABELS = ["name", "nom", "vorname", "nachname", "herr", "frau", "mr", "mrs", "ms",
                  "dr", "prof", "monsieur", "madame", "signor", "signora", "nome", "cognome"]

LABEL_KEYWORDS: Dict[str, List[str]] = {
    PERSON: _PERSON_LABELS,
    PERSON_NAME: _PERSON_LABELS,
    ORGANIZATION: ["firma", "company", "société", "gmbh", "ag", "sa", "sàrl", "ltd", "inc",
                   "corp", "azienda", "ditta"],
    LOCATION: ["ort", "location", "lieu", "city", "ville", "stadt", "città", "luogo"],
    ADDRESS: _ADDRESS_LABELS + ["strasse", "rue", "street", "via"],
    SWISS_ADDRESS: _ADDRESS_LABELS + ["ch-", "schweiz", "suisse", "svizzera"],
    EU_ADDRESS: _ADDRESS_LABELS + ["deutschland", "france", "österreich", "italia"],
    SWISS_AVS: ["avs", "ahv", "sozialversicherung", "assurance", "versicherungsnummer",
                "numéro avs", "numero avs"],
    IBAN: ["iban", "konto", "compte", "account", "bankverbindung", "coordonnées bancaires",
           "conto"],
    PHONE: ["tel", "telefon", "téléphone", "phone", "mobile", "handy", "natel", "portable",
            "fax", "telefono", "cellulare"],
    EMAIL: ["email", "e-mail", "mail", "courriel", "posta elettronica"],
    DATE: ["datum", "date", "geboren", "geburtsdatum", "né", "naissance", "born", "birthday",
           "data", "nato", "nata"],
    AMOUNT: ["betrag", "montant", "amount", "total", "summe", "prix", "price", "chf", "eur",
             "importo", "totale"],
    VAT_NUMBER: ["mwst", "tva", "iva", "vat", "ust", "uid", "steuer"],
    INVOICE_NUMBER: ["rechnung", "facture", "invoice", "rechnungsnummer", "numéro", "ref",
                     "beleg", "fattura"],
    PAYMENT_REF: ["referenz", "référence", "reference", "zahlungsreferenz", "qr", "riferimento"],
    QR_REFERENCE: ["qr", "referenz", "référence", "reference"],
}

RELATED_TYPES: Dict[str, List[str]] = {
    PERSON: [PHONE, EMAIL, ADDRESS, SWISS_ADDRESS, DATE],
    PERSON_NAME: [PHONE, EMAIL, ADDRESS, SWISS_ADDRESS, DATE],
    ORGANIZATION: [PHONE, EMAIL, ADDRESS, VAT_NUMBER, IBAN],
    LOCATION: [ADDRESS, SWISS_ADDRESS, EU_ADDRESS],
    ADDRESS: [PERSON, PERSON_NAME, ORGANIZATION, PHONE],
    SWISS_ADDRESS: [PERSON, PERSON_NAME, ORGANIZATION, PHONE, SWISS_AVS],
    EU_ADDRESS: [PERSON, PERSON_NAME, ORGANIZATION, PHONE],
    SWISS_AVS: [PERSON, PERSON_NAME, DATE, SWISS_ADDRESS],
    IBAN: [PERSON, PERSON_NAME, ORGANIZATION, AMOUNT],
    PHONE: [PERSON, PERSON_NAME, ORGANIZATION, ADDRESS, EMAIL],
    EMAIL: [PERSON, PERSON_NAME, ORGANIZATION, PHONE],
    DATE: [PERSON, PERSON_NAME, INVOICE_NUMBER, AMOUNT],
    AMOUNT: [DATE, INVOICE_NUMBER, IBAN, VAT_NUMBER],
    VAT_NUMBER: [ORGANIZATION, AMOUNT, INVOICE_NUMBER],
    INVOICE_NUMBER: [DATE, AMOUNT, ORGANIZATION],
    PAYMENT_REF: [AMOUNT, IBAN],
    QR_REFERENCE: [AMOUNT, IBAN, PAYMENT_REF],
}

# unusual in the first / last 10% of a document
BODY_TYPES = frozenset({SWISS_AVS, IBAN, PAYMENT_REF})
# expected in letter headers
HEADER_TYPES = frozenset({ADDRESS, SWISS_ADDRESS, EU_ADDRESS, PHONE, EMAIL})


class ContextScoringPass(DetectionPass):
    name = "context-scoring"
    order = 30

    def __init__(
        self,
        flag_threshold: float = DEFAULT_FLAG_THRESHOLD,
        enhancer_config: Optional[EnhancerConfig] = None,
        deny_list: Optional[DenyList] = None,
        enabled: bool = True,
    ) -> None:
        super().__init__(enabled)
        self.flag_threshold = flag_threshold
        self.enhancer = ContextEnhancer(enhancer_config, deny_list)

    # ------------------------------------------------------------------
    # Factors
    # ------------------------------------------------------------------
    def _label_keywords(self, entity: Entity, text: str, window: int) -> ContextFactor:
        weight = FACTOR_WEIGHTS["labelKeywords"]
        keywords = LABEL_KEYWORDS.get(entity.type, [])
        if not keywords:
            return ContextFactor("labelKeywords", weight, False,
                                 "No label keywords defined for this type")

        before = text[max(0, entity.start - window):entity.start]
        found = next((kw for kw in keywords if context_word_pattern(kw).search(before)), None)
        if found:
            return ContextFactor("labelKeywords", weight, True, f'Found keyword "{found}" nearby')
        return ContextFactor("labelKeywords", weight, False, "No label keywords found")

    def _related_entities(self, entity: Entity, entities: List[Entity], window: int) -> ContextFactor:
        weight = FACTOR_WEIGHTS["relatedEntities"]
        related = RELATED_TYPES.get(entity.type, [])
        if not related:
            return ContextFactor("relatedEntities", weight, False, "No related types defined")

        nearby = [
            other for other in entities
            if other.id != entity.id
            and other.type in related
            and min(abs(other.start - entity.end), abs(entity.start - other.end)) <= window
        ]
        if nearby:
            types = ", ".join(sorted({o.type for o in nearby}))
            return ContextFactor("relatedEntities", weight, True,
                                 f"Found {len(nearby)} related entities nearby ({types})")
        return ContextFactor("relatedEntities", weight, False, "No related entities nearby")

    def _document_position(self, entity: Entity, text: str) -> ContextFactor:
        weight = FACTOR_WEIGHTS["documentPosition"]
        position = entity.start / len(text) if text else 0.0
        is_header = position < 0.1
        is_footer = position > 0.9

        if entity.type in BODY_TYPES and (is_header or is_footer):
            where = "header" if is_header else "footer"
            return ContextFactor("documentPosition", weight, False,
                                 f"{entity.type} found in {where} (unusual position)")
        if entity.type in HEADER_TYPES and is_header:
            return ContextFactor("documentPosition", weight, True,
                                 f"{entity.type} found in header (expected position)")
        return ContextFactor("documentPosition", weight, True, "Position neutral")

    def _repetition(self, entity: Entity, entities: List[Entity]) -> ContextFactor:
        weight = FACTOR_WEIGHTS["repetition"]
        count = sum(
            1 for e in entities
            if e.id != entity.id and e.text == entity.text and e.type == entity.type
        )
        if count:
            return ContextFactor("repetition", weight, True,
                                 f"Entity repeated {count + 1} times in document")
        return ContextFactor("repetition", weight, False, "Entity appears once")

    def score_entity(
        self, entity: Entity, text: str, entities: List[Entity], window: int
    ) -> ContextResult:
        factors = (
            self._label_keywords(entity, text, window),
            self._related_entities(entity, entities, window),
            self._document_position(entity, text),
            self._repetition(entity, entities),
        )
        total_weight = sum(f.weight for f in factors)
        total = sum(f.score for f in factors) / total_weight if total_weight else 0.5
        return ContextResult(factors=factors, total=total)

    # ------------------------------------------------------------------
    # Pass
    # ------------------------------------------------------------------
    def _enhance(
        self, entities: List[Entity], context: PipelineContext
    ) -> Tuple[List[Entity], Dict[str, int]]:
        enhanced: List[Entity] = []
        boosted: Dict[str, int] = {}
        for entity in entities:
            words = get_context_words(context_type_for(entity.type), context.language)
            result = self.enhancer.enhance_with_details(entity, context.text, words, context.language)
            if result.boost_applied > 0:
                boosted[entity.type] = boosted.get(entity.type, 0) + 1
            enhanced.append(result.entity)
        return enhanced, boosted

    def execute(self, entities: List[Entity], context: PipelineContext) -> List[Entity]:
        text = context.text
        if context.config.enable_epic8_features:
            entities, boosted = self._enhance(entities, context)
            context.metadata["context_boosted"] = boosted

        window = context.config.context_window_size
        scored: List[Entity] = []
        for entity in entities:
            result = self.score_entity(entity, text, entities, window)
            confidence = min(1.0, entity.confidence * (0.7 + result.total * 0.6))
            scored.append(entity.evolve(
                confidence=confidence,
                context=result,
                flagged_for_review=confidence < self.flag_threshold,
            ))

        flagged = sum(1 for e in scored if e.flagged_for_review)
        logger.debug("Context-scored %d entities in document %s (%d flagged)",
                     len(scored), context.document_id, flagged)
        return scored
