"""
High-Recall Pass — first detection pass (order 10).

Casts a wide net: every regex in the pattern table plus, when an NER
callable is attached, the merged ML predictions. Precision is recovered
by the later passes.

Flow:
    1. Rule matches (language-filtered pattern table)
    2. ML path: input validation -> chunking -> inference with retry
       -> chunk merge -> subword merge -> threshold + type mapping
    3. Same-type merge (containing span wins, RULE + ML -> BOTH)
    4. DenyList filter (epic8 features only)
"""
import logging
import time
from collections import Counter
from typing import Callable, Dict, List, Optional, Tuple

from pii_detection.config.constants import (
    DEFAULT_RULE_CONFIDENCE,
    MIN_MATCH_LENGTH,
    RULE_BASE_CONFIDENCE,
    SOURCE_BOTH,
    SOURCE_ML,
    SOURCE_RULE,
    UNKNOWN,
)
from pii_detection.context.deny_list import DenyList, deny_list as shared_deny_list
from pii_detection.ml.chunker import TextChunker, merge_chunk_predictions
from pii_detection.ml.input_validator import InputValidationConfig, MLInputValidator
from pii_detection.ml.ml_metrics import MLMetricsCollector, create_inference_record, global_collector
from pii_detection.ml.retry_handler import MLRetryHandler
from pii_detection.ml.token_merger import MergeConfig, SubwordTokenMerger, normalize_token
from pii_detection.models.entity import Entity, ensure_span
from pii_detection.models.metadata import EntityMetadata
from pii_detection.models.ml import ChunkPrediction, MLToken
from pii_detection.models.pipeline import PipelineContext
from pii_detection.passes.base import DetectionPass
from pii_detection.passes.patterns import PatternDef, map_ml_entity_type, patterns_for_language
from pii_detection.pipeline.metrics import record_deny_list_filtered, record_ml_failure

logger = logging.getLogger(__name__)

NerCallable = Callable[[str], List[MLToken]]

_RULE_ML_SOURCES = frozenset({SOURCE_RULE, SOURCE_ML, SOURCE_BOTH})


def _combined_source(outer: Entity, inner: Entity) -> str:
    if outer.source == inner.source:
        return outer.source
    if outer.source in _RULE_ML_SOURCES and inner.source in _RULE_ML_SOURCES:
        return SOURCE_BOTH
    return outer.source


def merge_same_type(entities: List[Entity]) -> List[Entity]:
    """
    Collapse same-type entities whose spans are equal or nested.

    The containing span survives with the higher confidence of the two.
    Overlaps across types are left to consolidation.
    """
    ordered = sorted(entities, key=lambda e: (e.start, -e.span_length()))
    merged: List[Entity] = []
    for entity in ordered:
        idx = next(
            (i for i, kept in enumerate(merged)
             if kept.type == entity.type and kept.contains(entity)),
            None,
        )
        if idx is None:
            merged.append(entity)
            continue
        kept = merged[idx]
        merged[idx] = kept.evolve(
            confidence=max(kept.confidence, entity.confidence),
            source=_combined_source(kept, entity),
        )
    return merged


class HighRecallPass(DetectionPass):
    name = "high-recall"
    order = 10

    def __init__(
        self,
        ner: Optional[NerCallable] = None,
        patterns: Optional[List[PatternDef]] = None,
        deny_list: Optional[DenyList] = None,
        chunker: Optional[TextChunker] = None,
        merger: Optional[SubwordTokenMerger] = None,
        input_validator: Optional[MLInputValidator] = None,
        retry_handler: Optional[MLRetryHandler] = None,
        metrics_collector: Optional[MLMetricsCollector] = None,
        enabled: bool = True,
    ) -> None:
        super().__init__(enabled)
        self.ner = ner
        self.patterns = patterns
        self.deny_list = deny_list or shared_deny_list
        self.chunker = chunker or TextChunker()
        self.merger = merger or SubwordTokenMerger(MergeConfig(min_length=MIN_MATCH_LENGTH))
        # offsets must survive validation, so no trimming
        self.input_validator = input_validator or MLInputValidator(
            InputValidationConfig(trim_whitespace=False)
        )
        self.retry_handler = retry_handler or MLRetryHandler()
        self.metrics_collector = metrics_collector or global_collector

    # ------------------------------------------------------------------
    # Rule path
    # ------------------------------------------------------------------
    def detect_rules(self, text: str, language: Optional[str] = None) -> List[Entity]:
        patterns = self.patterns if self.patterns is not None else patterns_for_language(language)
        entities: List[Entity] = []
        for pattern in patterns:
            if not pattern.applies_to(language):
                continue
            for match in pattern.regex.finditer(text):
                start = match.start(pattern.group)
                if start < 0:
                    continue
                matched = match.group(pattern.group).rstrip()
                if len(matched) < MIN_MATCH_LENGTH:
                    continue
                entity = Entity(
                    text=matched,
                    type=pattern.entity_type,
                    start=start,
                    end=start + len(matched),
                    source=SOURCE_RULE,
                    confidence=RULE_BASE_CONFIDENCE.get(pattern.entity_type, DEFAULT_RULE_CONFIDENCE),
                    metadata=EntityMetadata(
                        pattern_name=pattern.name,
                        pattern_priority=pattern.priority,
                    ),
                )
                entities.append(ensure_span(entity, text))
        return entities

    # ------------------------------------------------------------------
    # ML path
    # ------------------------------------------------------------------
    def _model_name(self) -> str:
        return getattr(self.ner, "model_label", type(self.ner).__name__)

    def detect_ml(self, text: str, context: PipelineContext) -> List[Entity]:
        if self.ner is None:
            return []

        validation = self.input_validator.validate(text)
        if not validation.valid:
            logger.warning("ML input rejected for document %s: %s",
                           context.document_id, validation.error)
            return []
        for warning in validation.warnings:
            logger.warning("ML input warning for document %s: %s", context.document_id, warning)

        ml_text = validation.text if validation.text is not None and len(validation.text) == len(text) else text
        chunks = self.chunker.chunk(ml_text)
        ner = self.ner

        def run_inference() -> List[ChunkPrediction]:
            return [
                ChunkPrediction(c.chunk_index, [normalize_token(t) for t in ner(c.text)])
                for c in chunks
            ]

        t0 = time.monotonic()
        outcome = self.retry_handler.execute(run_inference)
        duration_ms = (time.monotonic() - t0) * 1000

        if not outcome.success:
            logger.error(
                "ML inference failed for document %s after %d attempt(s): %s",
                context.document_id, outcome.attempts, type(outcome.error).__name__,
            )
            record_ml_failure()
            self.metrics_collector.record(create_inference_record(
                duration_ms=duration_ms,
                text_length=len(text),
                entities_detected=0,
                model_name=self._model_name(),
                chunked=len(chunks) > 1,
                chunk_count=len(chunks),
                language=context.language,
                failed=True,
                retry_attempts=outcome.attempts,
            ))
            return []

        tokens = merge_chunk_predictions(outcome.result or [], chunks)
        threshold = context.config.ml_confidence_threshold
        entities: List[Entity] = []
        for merged in self.merger.merge(tokens, ml_text):
            if merged.score < threshold:
                continue
            entity_type = map_ml_entity_type(merged.entity)
            if entity_type == UNKNOWN:
                continue
            score = max(0.0, min(1.0, merged.score))
            entity = Entity(
                text=text[merged.start:merged.end],
                type=entity_type,
                start=merged.start,
                end=merged.end,
                source=SOURCE_ML,
                confidence=score,
                metadata=EntityMetadata(
                    ml_entity_group=merged.entity,
                    ml_score=score,
                    token_count=merged.token_count,
                    chunk_count=len(chunks) if len(chunks) > 1 else None,
                ),
            )
            entities.append(ensure_span(entity, text))

        self.metrics_collector.record(create_inference_record(
            duration_ms=duration_ms,
            text_length=len(text),
            entities_detected=len(entities),
            model_name=self._model_name(),
            chunked=len(chunks) > 1,
            chunk_count=len(chunks),
            language=context.language,
            retry_attempts=outcome.attempts,
        ))
        return entities

    # ------------------------------------------------------------------
    # DenyList
    # ------------------------------------------------------------------
    def apply_deny_list(
        self, entities: List[Entity], language: Optional[str]
    ) -> Tuple[List[Entity], Dict[str, int]]:
        kept: List[Entity] = []
        filtered: Counter = Counter()
        for entity in entities:
            if self.deny_list.is_denied(entity.text, entity.type, language):
                filtered[entity.type] += 1
            else:
                kept.append(entity)
        return kept, dict(filtered)

    def execute(self, entities: List[Entity], context: PipelineContext) -> List[Entity]:
        text = context.text
        candidates = list(entities)
        candidates.extend(self.detect_rules(text, context.language))
        candidates.extend(self.detect_ml(text, context))

        merged = merge_same_type(candidates)

        if context.config.enable_epic8_features:
            merged, filtered = self.apply_deny_list(merged, context.language)
            context.metadata["deny_list_filtered"] = filtered
            if filtered:
                logger.debug("DenyList suppressed %d candidate(s) in document %s: %s",
                             sum(filtered.values()), context.document_id, filtered)
                record_deny_list_filtered(filtered)

        return merged
