"""
Detection Pipeline — main entry point for PII detection.

Runs the registered passes in ascending `order` over one document:
    10  HighRecallPass             regex + optional ML, DenyList filter
    20  FormatValidationPass       checksum / format validators
    30  ContextScoringPass         context words + structural factors
    40  AddressRelationshipPass    grouped, scored addresses
    50  ConsolidationPass          overlaps, address folding, linking

then finalizes the list (exact-duplicate collapse, review flags, sort)
and attaches per-pass timings. A pass exception ends the run: it is
logged and counted, then re-raised.
"""
import logging
import time
import uuid
from collections import Counter
from typing import Dict, List, Optional, Tuple

from pii_detection.config import settings
from pii_detection.context.deny_list import (
    DenyList,
    deny_list as shared_deny_list,
    load_deny_list_file,
)
from pii_detection.errors import PassConfigurationError
from pii_detection.models.entity import Entity, ensure_span
from pii_detection.models.pipeline import (
    DetectionMetadata,
    DetectionResult,
    PassResult,
    PipelineConfig,
    PipelineContext,
)
from pii_detection.passes.address_relationship import AddressRelationshipPass
from pii_detection.passes.base import DetectionPass
from pii_detection.passes.consolidation import ConsolidationPass
from pii_detection.passes.context_scoring import ContextScoringPass
from pii_detection.passes.format_validation import FormatValidationPass
from pii_detection.passes.high_recall import HighRecallPass, NerCallable
from pii_detection.pipeline.language import detect_language
from pii_detection.pipeline.metrics import record_entities, record_pipeline_run, timed_pass

logger = logging.getLogger(__name__)


def _diff(before: List[Entity], after: List[Entity]) -> Tuple[int, int, int]:
    """(added, modified, removed) between two entity lists, keyed by id."""
    old = {e.id: e for e in before}
    new = {e.id: e for e in after}
    added = sum(1 for i in new if i not in old)
    removed = sum(1 for i in old if i not in new)
    modified = sum(1 for i, e in new.items() if i in old and old[i] != e)
    return added, modified, removed


class DetectionPipeline:
    """Ordered collection of detection passes."""

    def __init__(
        self,
        config: Optional[PipelineConfig] = None,
        passes: Optional[List[DetectionPass]] = None,
    ) -> None:
        self.config = config or PipelineConfig.from_settings()
        self._passes: List[DetectionPass] = []
        for pass_ in passes or []:
            self.register_pass(pass_)

    # ------------------------------------------------------------------
    # Pass registry
    # ------------------------------------------------------------------
    def register_pass(self, pass_: DetectionPass) -> None:
        if any(p.name == pass_.name for p in self._passes):
            raise PassConfigurationError(f"Pass '{pass_.name}' is already registered")
        self._passes.append(pass_)
        # stable: equal orders keep registration order
        self._passes.sort(key=lambda p: p.order)

    def remove_pass(self, name: str) -> bool:
        before = len(self._passes)
        self._passes = [p for p in self._passes if p.name != name]
        return len(self._passes) < before

    def get_passes(self) -> List[DetectionPass]:
        return list(self._passes)

    def get_config(self) -> PipelineConfig:
        return self.config.model_copy()

    def configure(self, **changes) -> None:
        """Apply *changes*; invalid values raise pydantic.ValidationError."""
        self.config = PipelineConfig.model_validate({**self.config.model_dump(), **changes})

    def _is_enabled(self, pass_: DetectionPass) -> bool:
        if not pass_.enabled:
            return False
        enabled = self.config.enabled_passes
        return enabled is None or pass_.name in enabled

    # ------------------------------------------------------------------
    # Processing
    # ------------------------------------------------------------------
    def _finalize(self, entities: List[Entity], text: str) -> List[Entity]:
        best: Dict[Tuple[int, int, str], Entity] = {}
        for entity in entities:
            key = (entity.start, entity.end, entity.type)
            kept = best.get(key)
            if kept is None or entity.confidence > kept.confidence:
                best[key] = entity

        threshold = self.config.auto_anonymize_threshold
        finalized = []
        for entity in best.values():
            flagged = entity.flagged_for_review or entity.confidence < threshold
            finalized.append(ensure_span(
                entity.evolve(flagged_for_review=flagged, selected=not flagged), text
            ))
        finalized.sort(key=lambda e: (e.start, e.end, e.type))
        return finalized

    def process(
        self,
        text: str,
        document_id: Optional[str] = None,
        language: Optional[str] = None,
    ) -> DetectionResult:
        """
        Detect PII in one document.

        Args:
            text: Document text (never modified).
            document_id: Caller's id; a uuid4 is generated when omitted.
            language: en / fr / de / it; detected from the text when omitted.

        Returns:
            DetectionResult with entities sorted by position.
        """
        t0 = time.monotonic()
        document_id = document_id or str(uuid.uuid4())
        language = language or detect_language(text)
        context = PipelineContext(
            text=text,
            document_id=document_id,
            language=language,
            config=self.config,
        )
        metadata = DetectionMetadata(total_duration_ms=0.0)
        entities: List[Entity] = []

        if not text:
            record_pipeline_run("success")
            return DetectionResult(document_id, language, entities, metadata)

        for pass_ in self._passes:
            if not self._is_enabled(pass_):
                logger.debug("Skipping disabled pass %s", pass_.name)
                continue

            logger.debug("Running pass %s on document %s", pass_.name, document_id)
            p0 = time.monotonic()
            before = entities
            try:
                with timed_pass(pass_.name):
                    entities = pass_.execute(entities, context)
            except Exception as e:
                logger.error(
                    "Pass %s failed for document %s after %.1f ms: %s",
                    pass_.name, document_id, (time.monotonic() - t0) * 1000, type(e).__name__,
                )
                record_pipeline_run("failure")
                raise
            duration_ms = (time.monotonic() - p0) * 1000

            added, modified, removed = _diff(before, entities)
            metadata.pass_results.append(PassResult(
                pass_name=pass_.name,
                entities_added=added,
                entities_modified=modified,
                entities_removed=removed,
                duration_ms=duration_ms,
            ))
            metadata.pass_timings[pass_.name] = duration_ms
            logger.debug("Pass %s finished in %.1f ms (%d entities)",
                         pass_.name, duration_ms, len(entities))

        entities = self._finalize(entities, text)

        metadata.entity_counts = dict(Counter(e.type for e in entities))
        metadata.flagged_count = sum(1 for e in entities if e.flagged_for_review)
        if self.config.enable_epic8_features:
            metadata.epic8 = {
                "deny_list_filtered": dict(context.metadata.get("deny_list_filtered", {})),
                "context_boosted": dict(context.metadata.get("context_boosted", {})),
            }
        metadata.consolidation = context.metadata.get("consolidation")
        metadata.total_duration_ms = (time.monotonic() - t0) * 1000

        record_entities(e.type for e in entities)
        record_pipeline_run("success")
        logger.info("Detected %d entities in document %s (%d flagged, %.1f ms)",
                    len(entities), document_id, metadata.flagged_count,
                    metadata.total_duration_ms)
        return DetectionResult(document_id, language, entities, metadata)


def create_default_pipeline(
    config: Optional[PipelineConfig] = None,
    ner: Optional[NerCallable] = None,
    deny_list: Optional[DenyList] = None,
) -> DetectionPipeline:
    """
    Wire the five standard passes.

    Loads DENY_LIST_CONFIG_PATH into the DenyList when it is set.
    """
    target = deny_list or shared_deny_list
    if settings.DENY_LIST_CONFIG_PATH:
        load_deny_list_file(settings.DENY_LIST_CONFIG_PATH, target)

    return DetectionPipeline(
        config=config,
        passes=[
            HighRecallPass(ner=ner, deny_list=target),
            FormatValidationPass(),
            ContextScoringPass(deny_list=target),
            AddressRelationshipPass(),
            ConsolidationPass(),
        ],
    )
