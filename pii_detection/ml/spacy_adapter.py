"""
spaCy NER adapter.

Turns a spaCy pipeline into the `text -> List[MLToken]` callable the
high-recall pass expects: one BIO-labelled token per spaCy token that
falls inside a predicted entity, with document character offsets.
"""
import logging
from typing import List, Optional

import spacy
from spacy.language import Language

from pii_detection.config import settings
from pii_detection.models.ml import MLToken

logger = logging.getLogger(__name__)

# spaCy entities carry no probability
DEFAULT_NER_SCORE = 0.75


class SpacyNerAdapter:
    """Lazy-loading wrapper around a spaCy model."""

    def __init__(
        self,
        nlp: Optional[Language] = None,
        model_name: str = settings.SPACY_MODEL,
        score: float = DEFAULT_NER_SCORE,
    ) -> None:
        self._nlp = nlp
        self.model_name = model_name
        self.score = score

    @property
    def model_label(self) -> str:
        if self._nlp is not None:
            return f"spacy/{self._nlp.meta.get('name', self.model_name)}"
        return f"spacy/{self.model_name}"

    def _get_nlp(self) -> Language:
        # OSError from spacy.load propagates; the retry handler treats it as fatal
        if self._nlp is None:
            self._nlp = spacy.load(self.model_name)
            logger.info("Loaded spaCy model: %s", self.model_name)
        return self._nlp

    def __call__(self, text: str) -> List[MLToken]:
        doc = self._get_nlp()(text)
        tokens: List[MLToken] = []
        for ent in doc.ents:
            for i, tok in enumerate(ent):
                prefix = "B-" if i == 0 else "I-"
                tokens.append(
                    MLToken(
                        word=tok.text,
                        entity=f"{prefix}{ent.label_}",
                        score=self.score,
                        start=tok.idx,
                        end=tok.idx + len(tok.text),
                    )
                )
        return tokens
