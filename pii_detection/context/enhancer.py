"""
Context Enhancer — direction-aware confidence boosting from nearby words.

For each entity the text before and after it is scanned for context words.
Preceding words count more than following ones (a label usually precedes
its value). Positive and negative totals are each normalized and capped at
``similarity_factor``, so a single entity's confidence can never move by
more than that amount.

Entities rejected by the DenyList are skipped and left untouched.
"""
import re
from dataclasses import dataclass, field, replace
from functools import lru_cache
from typing import Dict, List, Optional, Pattern

from pii_detection.context.context_words import POSITIVE, ContextWord, context_type_for
from pii_detection.context.deny_list import DenyList, deny_list as shared_deny_list
from pii_detection.models.entity import Entity


DENIED_SKIP_REASON = "Entity denied by DenyList"

DEFAULT_PER_ENTITY_TYPE: Dict[str, dict] = {
    "PERSON_NAME": {"window_size": 150},
    "IBAN": {"window_size": 40},
    "EMAIL": {"window_size": 50},
    "PHONE_NUMBER": {"window_size": 60},
    "SWISS_AVS": {"window_size": 60},
}


@dataclass(frozen=True)
class EnhancerConfig:
    window_size: int = 100
    similarity_factor: float = 0.35
    min_score_with_context: float = 0.4
    preceding_weight: float = 1.2
    following_weight: float = 0.8
    # merged over DEFAULT_PER_ENTITY_TYPE, key by key
    per_entity_type: Dict[str, dict] = field(default_factory=dict)


DEFAULT_ENHANCER_CONFIG = EnhancerConfig()


@dataclass(frozen=True)
class EnhancementResult:
    entity: Entity
    context_found: List[str]
    boost_applied: float
    original_confidence: float
    skipped: bool = False
    skip_reason: Optional[str] = None


@lru_cache(maxsize=2048)
def context_word_pattern(word: str) -> Pattern[str]:
    """Case-insensitive pattern; word edges only where the word has word chars."""
    head = r"(?<!\w)" if word[:1].isalnum() else ""
    tail = r"(?!\w)" if word[-1:].isalnum() else ""
    return re.compile(head + re.escape(word) + tail, re.IGNORECASE)


class ContextEnhancer:
    """Adjust entity confidence from context words around the span."""

    def __init__(
        self,
        config: Optional[EnhancerConfig] = None,
        deny_list: Optional[DenyList] = None,
    ) -> None:
        self.config = config or DEFAULT_ENHANCER_CONFIG
        self.deny_list = deny_list if deny_list is not None else shared_deny_list

    def _effective_config(self, entity_type: str) -> EnhancerConfig:
        overrides = {**DEFAULT_PER_ENTITY_TYPE, **self.config.per_entity_type}
        override = overrides.get(entity_type) or overrides.get(context_type_for(entity_type))
        if not override:
            return self.config
        return replace(self.config, **override)

    def get_window_size(self, entity_type: str) -> int:
        return self._effective_config(entity_type).window_size

    def get_config(self) -> EnhancerConfig:
        return self.config

    def enhance(
        self,
        entity: Entity,
        text: str,
        context_words: List[ContextWord],
        language: Optional[str] = None,
    ) -> Entity:
        return self.enhance_with_details(entity, text, context_words, language).entity

    def enhance_with_details(
        self,
        entity: Entity,
        text: str,
        context_words: List[ContextWord],
        language: Optional[str] = None,
    ) -> EnhancementResult:
        """
        Compute the context boost for one entity.

        Args:
            entity: Entity to enhance.
            text: Full document text.
            context_words: Words for (context type, language).
            language: Document language, forwarded to the DenyList.

        Returns:
            EnhancementResult; ``entity`` carries the new confidence and
            ``context_words_found`` / ``context_boost`` metadata.
        """
        original = entity.confidence

        if self.deny_list.is_denied(entity.text, entity.type, language):
            return EnhancementResult(
                entity=entity.evolve(
                    metadata=entity.metadata.merged(context_skip_reason=DENIED_SKIP_REASON)
                ),
                context_found=[],
                boost_applied=0.0,
                original_confidence=original,
                skipped=True,
                skip_reason=DENIED_SKIP_REASON,
            )

        if not context_words:
            return EnhancementResult(entity, [], 0.0, original)

        cfg = self._effective_config(entity.type)
        preceding = text[max(0, entity.start - cfg.window_size):entity.start]
        following = text[entity.end:min(len(text), entity.end + cfg.window_size)]

        found: List[str] = []
        positive = 0.0
        negative = 0.0
        for cw in context_words:
            pattern = context_word_pattern(cw.word.lower())
            in_preceding = pattern.search(preceding) is not None
            in_following = pattern.search(following) is not None
            if not (in_preceding or in_following):
                continue

            found.append(cw.word)
            contribution = 0.0
            if in_preceding:
                contribution += cw.weight * cfg.preceding_weight
            if in_following:
                contribution += cw.weight * cfg.following_weight
            contribution = min(contribution, cw.weight * 2)

            if cw.polarity == POSITIVE:
                positive += contribution
            else:
                negative += contribution

        cap = cfg.similarity_factor
        max_direction = max(cfg.preceding_weight, cfg.following_weight)
        positive = min(positive / max_direction * cap, cap) if positive > 0 else 0.0
        negative = min(negative / max_direction * cap, cap) if negative > 0 else 0.0
        net = positive - negative

        confidence = original + net
        if positive > 0 and net > 0:
            # floor never lifts the score beyond the cap
            confidence = max(confidence, min(cfg.min_score_with_context, original + cap))
        confidence = max(0.0, min(1.0, confidence))
        boost = confidence - original

        if not found:
            return EnhancementResult(entity, [], 0.0, original)

        enhanced = entity.evolve(
            confidence=confidence,
            metadata=entity.metadata.merged(context_words_found=found, context_boost=boost),
        )
        return EnhancementResult(enhanced, found, boost, original)

    def enhance_all(
        self,
        entities: List[Entity],
        text: str,
        context_words: List[ContextWord],
        language: Optional[str] = None,
    ) -> List[Entity]:
        return [self.enhance(e, text, context_words, language) for e in entities]

    def enhance_all_with_details(
        self,
        entities: List[Entity],
        text: str,
        context_words: List[ContextWord],
        language: Optional[str] = None,
    ) -> List[EnhancementResult]:
        return [self.enhance_with_details(e, text, context_words, language) for e in entities]
