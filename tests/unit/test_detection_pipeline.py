"""
Unit tests for the detection pipeline orchestrator.
"""
import json

import pytest
from prometheus_client import REGISTRY
from pydantic import ValidationError

from pii_detection.config import settings
from pii_detection.config.constants import IBAN, PERSON_NAME
from pii_detection.context.deny_list import DenyList
from pii_detection.errors import PassConfigurationError, SpanMismatchError
from pii_detection.models.entity import Entity
from pii_detection.models.pipeline import PipelineConfig
from pii_detection.passes.base import DetectionPass
from pii_detection.pipeline.detection_pipeline import DetectionPipeline, create_default_pipeline


class RecordingPass(DetectionPass):
    """Appends its name to a shared log and optionally adds one entity."""

    def __init__(self, name, order, log=None, span=None, entity_type=PERSON_NAME,
                 confidence=0.9, enabled=True):
        super().__init__(enabled)
        self.name = name
        self.order = order
        self.log = log if log is not None else []
        self.span = span
        self.entity_type = entity_type
        self.confidence = confidence

    def execute(self, entities, context):
        self.log.append(self.name)
        if self.span is None:
            return entities
        start, end = self.span
        return entities + [Entity(
            text=context.text[start:end],
            type=self.entity_type,
            start=start,
            end=end,
            confidence=self.confidence,
        )]


class ExplodingPass(DetectionPass):
    name = "exploding"
    order = 20

    def execute(self, entities, context):
        raise RuntimeError("boom")


class WrongSpanPass(DetectionPass):
    name = "wrong-span"
    order = 10

    def execute(self, entities, context):
        return [Entity(text="nope", type=PERSON_NAME, start=0, end=4)]


def runs(status):
    return REGISTRY.get_sample_value("pii_pipeline_runs_total", {"status": status}) or 0.0


@pytest.fixture
def pipeline():
    return DetectionPipeline(config=PipelineConfig())


TEXT = "Jean Dupont paid with CH93 0076 2011 6238 5295 7"


class TestPassRegistry:
    def test_passes_sorted_by_order(self, pipeline):
        pipeline.register_pass(RecordingPass("c", 30))
        pipeline.register_pass(RecordingPass("a", 10))
        pipeline.register_pass(RecordingPass("b", 20))
        assert [p.name for p in pipeline.get_passes()] == ["a", "b", "c"]

    def test_ties_keep_registration_order(self, pipeline):
        pipeline.register_pass(RecordingPass("first", 10))
        pipeline.register_pass(RecordingPass("second", 10))
        assert [p.name for p in pipeline.get_passes()] == ["first", "second"]

    def test_duplicate_name_rejected(self, pipeline):
        pipeline.register_pass(RecordingPass("a", 10))
        with pytest.raises(PassConfigurationError):
            pipeline.register_pass(RecordingPass("a", 20))

    def test_remove_pass(self, pipeline):
        pipeline.register_pass(RecordingPass("a", 10))
        assert pipeline.remove_pass("a")
        assert not pipeline.remove_pass("a")
        assert pipeline.get_passes() == []

    def test_get_passes_is_a_copy(self, pipeline):
        pipeline.register_pass(RecordingPass("a", 10))
        pipeline.get_passes().clear()
        assert len(pipeline.get_passes()) == 1


class TestConfiguration:
    def test_configure(self, pipeline):
        pipeline.configure(context_window_size=80)
        assert pipeline.get_config().context_window_size == 80

    def test_invalid_values_rejected(self, pipeline):
        with pytest.raises(ValidationError):
            pipeline.configure(ml_confidence_threshold=1.5)
        assert pipeline.get_config().ml_confidence_threshold == 0.3

    def test_enabled_passes_filter(self, pipeline):
        log = []
        pipeline.register_pass(RecordingPass("a", 10, log))
        pipeline.register_pass(RecordingPass("b", 20, log))
        pipeline.configure(enabled_passes=["b"])
        pipeline.process(TEXT, language="en")
        assert log == ["b"]

    def test_disabled_pass_skipped(self, pipeline):
        log = []
        pipeline.register_pass(RecordingPass("a", 10, log, enabled=False))
        pipeline.register_pass(RecordingPass("b", 20, log))
        result = pipeline.process(TEXT, language="en")
        assert log == ["b"]
        assert list(result.metadata.pass_timings) == ["b"]


class TestProcess:
    def test_passes_run_in_order(self, pipeline):
        log = []
        pipeline.register_pass(RecordingPass("late", 50, log))
        pipeline.register_pass(RecordingPass("early", 10, log))
        pipeline.process(TEXT, language="en")
        assert log == ["early", "late"]

    def test_empty_document(self, pipeline):
        log = []
        pipeline.register_pass(RecordingPass("a", 10, log, span=(0, 0)))
        result = pipeline.process("", document_id="empty", language="fr")

        assert log == []
        assert result.entities == []
        assert result.document_id == "empty"
        assert result.language == "fr"
        assert result.metadata.pass_results == []
        assert result.schema_errors() == []

    def test_document_id_generated(self, pipeline):
        first = pipeline.process(TEXT, language="en")
        second = pipeline.process(TEXT, language="en")
        assert first.document_id and first.document_id != second.document_id

    def test_language_detected_when_missing(self, pipeline):
        result = pipeline.process("Sehr geehrter Herr Meier, bitte beachten Sie die Rechnung.")
        assert result.language == "de"

    def test_pass_results(self, pipeline):
        pipeline.register_pass(RecordingPass("person", 10, span=(0, 11)))
        result = pipeline.process(TEXT, language="en")

        [pass_result] = result.metadata.pass_results
        assert pass_result.pass_name == "person"
        assert pass_result.entities_added == 1
        assert pass_result.entities_removed == 0
        assert result.metadata.entity_counts == {PERSON_NAME: 1}
        assert result.metadata.total_duration_ms >= 0

    def test_duplicates_collapsed_to_highest_confidence(self, pipeline):
        pipeline.register_pass(RecordingPass("low", 10, span=(0, 11), confidence=0.65))
        pipeline.register_pass(RecordingPass("high", 20, span=(0, 11), confidence=0.95))
        result = pipeline.process(TEXT, language="en")
        assert len(result.entities) == 1
        assert result.entities[0].confidence == 0.95

    def test_review_flags(self, pipeline):
        pipeline.register_pass(RecordingPass("person", 10, span=(0, 11), confidence=0.5))
        pipeline.register_pass(RecordingPass("iban", 20, span=(22, 48), entity_type=IBAN))
        result = pipeline.process(TEXT, language="en")

        person, iban = result.entities
        assert person.flagged_for_review and not person.selected
        assert not iban.flagged_for_review and iban.selected
        assert result.metadata.flagged_count == 1

    def test_entities_sorted(self, pipeline):
        pipeline.register_pass(RecordingPass("iban", 10, span=(22, 48), entity_type=IBAN))
        pipeline.register_pass(RecordingPass("person", 20, span=(0, 11)))
        result = pipeline.process(TEXT, language="en")
        assert [e.start for e in result.entities] == [0, 22]

    def test_span_mismatch_raises(self, pipeline):
        pipeline.register_pass(WrongSpanPass())
        with pytest.raises(SpanMismatchError):
            pipeline.process(TEXT, language="en")

    def test_epic8_metadata(self, pipeline):
        assert pipeline.process(TEXT, language="en").metadata.epic8 == {
            "deny_list_filtered": {},
            "context_boosted": {},
        }
        pipeline.configure(enable_epic8_features=False)
        assert pipeline.process(TEXT, language="en").metadata.epic8 is None

    def test_result_conforms_to_schema(self, pipeline):
        pipeline.register_pass(RecordingPass("person", 10, span=(0, 11)))
        result = pipeline.process(TEXT, language="en")
        assert result.schema_errors() == []
        assert result.schema_errors(redact=True) == []
        assert result.to_dict(redact=True)["entities"][0]["text"] == "[PERSON_NAME]"


class TestFailures:
    def test_pass_exception_propagates(self, pipeline):
        log = []
        pipeline.register_pass(RecordingPass("before", 10, log))
        pipeline.register_pass(ExplodingPass())
        pipeline.register_pass(RecordingPass("after", 30, log))

        before = runs("failure")
        with pytest.raises(RuntimeError, match="boom"):
            pipeline.process(TEXT, document_id="doc-err", language="en")
        assert log == ["before"]
        assert runs("failure") == before + 1

    def test_failure_log_has_no_document_text(self, pipeline, caplog):
        pipeline.register_pass(ExplodingPass())
        with pytest.raises(RuntimeError):
            pipeline.process(TEXT, document_id="doc-err", language="en")
        assert "doc-err" in caplog.text
        assert "Jean Dupont" not in caplog.text

    def test_success_counted(self, pipeline):
        before = runs("success")
        pipeline.process(TEXT, language="en")
        assert runs("success") == before + 1


class TestDefaultPipeline:
    def test_standard_passes(self):
        pipeline = create_default_pipeline(PipelineConfig())
        assert [(p.name, p.order) for p in pipeline.get_passes()] == [
            ("high-recall", 10),
            ("format-validation", 20),
            ("context-scoring", 30),
            ("address-relationship", 40),
            ("consolidation", 50),
        ]

    def test_loads_deny_list_config(self, tmp_path, monkeypatch):
        path = tmp_path / "deny.json"
        path.write_text(json.dumps({
            "global": ["Platzhalter"],
            "byEntityType": {},
            "byLanguage": {},
        }), encoding="utf-8")
        monkeypatch.setattr(settings, "DENY_LIST_CONFIG_PATH", str(path))

        target = DenyList()
        create_default_pipeline(PipelineConfig(), deny_list=target)
        assert target.is_denied("Platzhalter", PERSON_NAME)
        assert not target.is_denied("Montant", PERSON_NAME)
