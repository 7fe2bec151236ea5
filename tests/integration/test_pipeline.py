"""Integration tests for the end-to-end processing pipeline."""

import json
import threading

import pytest

from smart_clause.exceptions import (
    AnalysisNotFoundError,
    ConversationNotFoundError,
    DocumentNotFoundError,
    EmptyQuestionError,
    InvalidDocumentError,
    TransientServiceError,
)
from smart_clause.interfaces.classifier import ClassificationResult, IRiskClassifier
from smart_clause.models.enums import ClauseType, MessageRole, RiskLevel, SummarySeverity
from smart_clause.pipeline import PipelineConfig, ProcessingPipeline
from smart_clause.resilience import CLASSIFICATION_UNAVAILABLE
from smart_clause.storage import InMemoryRepository


CONTRACT = (
    "1. Termination. Either party may terminate this Agreement upon 30 days' notice. "
    "2. Confidentiality. Each party shall protect Confidential Information."
)

SERVICE_AGREEMENT = (
    "MASTER SERVICES AGREEMENT\n"
    "This Agreement is made between Acme Corp (the Client) and Beta LLC (the Contractor).\n"
    "1. Services. The Contractor shall provide the services described in each "
    "statement of work.\n"
    "2. Payment. Client shall pay each invoice within thirty (30) days of receipt.\n"
    "3. Indemnification. Contractor shall indemnify and hold harmless Client from "
    "all claims arising from the services.\n"
    "4. Governing Law. This Agreement is governed by the laws of the State of New York."
)


class FlakyClassifier(IRiskClassifier):
    """Fails transiently on every other call."""

    def __init__(self):
        self.calls = 0
        self._lock = threading.Lock()

    def classify(self, clause_text, category=None):
        with self._lock:
            self.calls += 1
            fail = self.calls % 2 == 1
        if fail:
            raise TransientServiceError(message="model busy")
        return ClassificationResult(level=RiskLevel.MEDIUM, rationale="flagged", signal_id="m")


class BrokenClassifier(IRiskClassifier):
    def classify(self, clause_text, category=None):
        raise TransientServiceError(message="model down")


class OutOfOrderClassifier(IRiskClassifier):
    """Holds the termination clause until every other clause is classified."""

    def __init__(self):
        self.others_done = threading.Event()
        self.completed = []
        self._lock = threading.Lock()

    def classify(self, clause_text, category=None):
        if "Termination" in clause_text:
            self.others_done.wait(timeout=5)
            level = RiskLevel.HIGH
        else:
            level = RiskLevel.LOW
        with self._lock:
            self.completed.append(clause_text.split()[0])
            if "Termination" not in clause_text:
                self.others_done.set()
        return ClassificationResult(level=level, rationale=f"{level.value} clause", signal_id="t")


@pytest.fixture
def pipeline():
    pipeline = ProcessingPipeline(config=PipelineConfig(retry_backoff=0.001))
    yield pipeline
    pipeline.close()


@pytest.fixture
def sql_pipeline(tmp_path):
    config = PipelineConfig(
        database_url=f"sqlite:///{tmp_path / 'pipeline.db'}",
        retry_backoff=0.001,
    )
    pipeline = ProcessingPipeline(config=config)
    yield pipeline
    pipeline.close()


class TestSegmentAndAnalyze:
    """Tests for ingesting and analyzing documents."""

    def test_termination_contract_is_medium_risk(self, pipeline):
        """Test the two-clause termination/confidentiality contract."""
        analysis = pipeline.segment_and_analyze(CONTRACT)

        assert analysis.id is not None
        assert analysis.document_id is not None
        assert analysis.clause_count == 2
        assert analysis.risk_level == RiskLevel.MEDIUM
        assert analysis.risky_clause_indices == (0,)

        assessments = pipeline.list_clause_assessments(analysis.id)
        assert [a.risk_level for a in assessments] == [RiskLevel.MEDIUM, RiskLevel.LOW]
        assert assessments[0].signal_id == "termination_with_notice"
        assert assessments[0].heading == "Termination"

    def test_summary_severities_follow_assessments(self, pipeline):
        """Test that summary bullets agree with the clause assessments."""
        analysis = pipeline.segment_and_analyze(CONTRACT)

        severities = [p.severity for p in analysis.summary]
        assert severities == [
            SummarySeverity.WARNING,
            SummarySeverity.WARNING,
            SummarySeverity.SUCCESS,
            SummarySeverity.WARNING,
        ]

    def test_key_term_notes_are_tagged_against_clauses(self, pipeline):
        """Test that key term notes join the summary with their justifying clause."""
        analysis = pipeline.segment_and_analyze(SERVICE_AGREEMENT)

        notes = {p.text: p for p in analysis.summary}
        payment = notes["Payment is due within 30 days."]
        assert payment.severity == SummarySeverity.WARNING
        assert payment.source_indices == (2,)
        assert analysis.summary[-1] is payment

    def test_blank_document_is_rejected_without_side_effects(self):
        """Test that blank text raises and stores nothing."""
        repository = InMemoryRepository()
        pipeline = ProcessingPipeline(documents=repository, store=repository)
        try:
            with pytest.raises(InvalidDocumentError):
                pipeline.segment_and_analyze("   ")

            assert repository.get_document(1) is None
        finally:
            pipeline.close()

    def test_service_agreement(self, pipeline):
        """Test a longer agreement with a preamble and a HIGH clause."""
        analysis = pipeline.segment_and_analyze(SERVICE_AGREEMENT)
        document = pipeline.get_document(analysis.document_id)

        assert document.category == "Service Agreement"
        assert analysis.risk_level == RiskLevel.HIGH
        assessments = pipeline.list_clause_assessments(analysis.id)
        by_heading = {a.heading: a for a in assessments}
        assert by_heading["Indemnification"].risk_level == RiskLevel.HIGH
        assert by_heading["Payment"].risk_level == RiskLevel.MEDIUM
        assert by_heading["Governing Law"].risk_level == RiskLevel.LOW
        assert assessments[0].heading == "MASTER SERVICES AGREEMENT"
        assert assessments[0].risk_level == RiskLevel.LOW

    def test_explicit_category_is_kept(self, pipeline):
        """Test that a caller-supplied category overrides detection."""
        analysis = pipeline.segment_and_analyze(CONTRACT, category="NDA", owner_id="u1")
        document = pipeline.get_document(analysis.document_id)

        assert document.category == "NDA"
        assert document.owner_id == "u1"

    def test_reanalysis_creates_new_analysis(self, pipeline):
        """Test that re-analysis supersedes but keeps the earlier result."""
        first = pipeline.segment_and_analyze(CONTRACT)
        second = pipeline.analyze_document(first.document_id)

        assert second.id != first.id
        assert second.to_payload() == first.to_payload()
        assert pipeline.get_analysis(first.document_id).id == second.id
        assert pipeline.list_clause_assessments(first.id)

    def test_ingest_then_analyze(self, pipeline):
        """Test the two-step ingest and analyze flow."""
        document = pipeline.ingest_document(CONTRACT, name="contract.txt")

        with pytest.raises(AnalysisNotFoundError):
            pipeline.get_analysis(document.id)

        analysis = pipeline.analyze_document(document.id)
        assert pipeline.get_analysis(document.id).id == analysis.id

    def test_missing_document(self, pipeline):
        """Test lookups against unknown documents."""
        with pytest.raises(DocumentNotFoundError):
            pipeline.analyze_document(999)
        with pytest.raises(DocumentNotFoundError):
            pipeline.get_analysis(999)
        with pytest.raises(AnalysisNotFoundError):
            pipeline.list_clause_assessments(999)

    def test_performance_stats_are_collected(self, pipeline):
        """Test that each pipeline stage is timed."""
        pipeline.segment_and_analyze(CONTRACT)

        stats = pipeline.get_performance_stats()

        for stage in ("normalize", "segment", "classify", "aggregate", "persist", "analysis"):
            assert stats[stage]["count"] == 1


class TestResilience:
    """Tests for classifier failures and fan-out during analysis."""

    def test_transient_failures_are_retried(self):
        """Test that a flaky classifier still yields its real result."""
        classifier = FlakyClassifier()
        pipeline = ProcessingPipeline(
            config=PipelineConfig(retry_backoff=0.001, max_classification_workers=1),
            classifier=classifier,
        )
        try:
            analysis = pipeline.segment_and_analyze(CONTRACT)
        finally:
            pipeline.close()

        assert analysis.risk_level == RiskLevel.MEDIUM
        assert analysis.risky_clause_indices == (0, 1)

    def test_unavailable_classifier_degrades_to_low(self):
        """Test that a dead classifier produces a LOW analysis instead of failing."""
        pipeline = ProcessingPipeline(
            config=PipelineConfig(retry_backoff=0.001, max_retry_attempts=2),
            classifier=BrokenClassifier(),
        )
        try:
            analysis = pipeline.segment_and_analyze(CONTRACT)
            assessments = pipeline.list_clause_assessments(analysis.id)
        finally:
            pipeline.close()

        assert analysis.risk_level == RiskLevel.LOW
        assert all(a.rationale == CLASSIFICATION_UNAVAILABLE.rationale for a in assessments)

    def test_results_keep_clause_order(self):
        """Test that out-of-order classification still maps results to their clauses."""
        classifier = OutOfOrderClassifier()
        pipeline = ProcessingPipeline(
            config=PipelineConfig(max_classification_workers=2),
            classifier=classifier,
        )
        try:
            analysis = pipeline.segment_and_analyze(CONTRACT)
            assessments = pipeline.list_clause_assessments(analysis.id)
        finally:
            pipeline.close()

        assert classifier.completed == ["2.", "1."]
        assert [a.clause_index for a in assessments] == [0, 1]
        assert [a.risk_level for a in assessments] == [RiskLevel.HIGH, RiskLevel.LOW]
        assert assessments[0].heading == "Termination"
        assert analysis.risky_clause_indices == (0,)


class TestConversations:
    """Tests for conversation-based Q&A through the pipeline."""

    def test_ask_direct_mentions_notice(self, pipeline):
        """Test a one-off termination question."""
        analysis = pipeline.segment_and_analyze(CONTRACT)

        answer = pipeline.ask_direct(analysis.document_id, "Can they terminate early?")

        assert "30 days" in answer

    def test_conversation_flow(self, pipeline):
        """Test asking several questions in one conversation."""
        document = pipeline.ingest_document(CONTRACT)
        conversation = pipeline.create_conversation(document.id)

        pipeline.ask(conversation.id, "Can they terminate early?")
        updated = pipeline.ask(conversation.id, "And how long is it?")

        assert [m.role for m in updated.messages] == [
            MessageRole.USER, MessageRole.ASSISTANT, MessageRole.USER, MessageRole.ASSISTANT,
        ]
        assert "30 days" in updated.messages[3].content
        assert [c.id for c in pipeline.list_conversations(document.id)] == [conversation.id]

    def test_conversation_errors(self, pipeline):
        """Test error mapping for conversation operations."""
        document = pipeline.ingest_document(CONTRACT)
        conversation = pipeline.create_conversation(document.id)

        with pytest.raises(EmptyQuestionError):
            pipeline.ask(conversation.id, " ")
        with pytest.raises(ConversationNotFoundError):
            pipeline.get_conversation(999)
        with pytest.raises(DocumentNotFoundError):
            pipeline.create_conversation(999)


class TestSqlBackedPipeline:
    """Tests for the pipeline running on SQLAlchemy storage."""

    def test_analysis_round_trip(self, sql_pipeline):
        """Test analysis persistence through the SQL repository."""
        analysis = sql_pipeline.segment_and_analyze(CONTRACT)

        stored = sql_pipeline.get_analysis(analysis.document_id)

        assert stored.id == analysis.id
        assert stored.to_payload() == analysis.to_payload()
        assert [a.clause_index for a in sql_pipeline.list_clause_assessments(stored.id)] == [0, 1]

    def test_conversation_round_trip(self, sql_pipeline):
        """Test conversation persistence through the SQL repository."""
        document = sql_pipeline.ingest_document(CONTRACT)
        conversation = sql_pipeline.create_conversation(document.id)

        sql_pipeline.ask(conversation.id, "Can they terminate early?")
        fetched = sql_pipeline.get_conversation(conversation.id)

        assert len(fetched.messages) == 2
        assert "30 days" in fetched.messages[1].content


class TestConfigurationAndGeneration:
    """Tests for configuration loading and clause generation."""

    def test_config_dir_extends_signals(self, tmp_path):
        """Test that signals from a configuration directory reach the classifier."""
        (tmp_path / "risk_signals.json").write_text(json.dumps({
            "include_defaults": True,
            "signals": [{
                "id": "force_majeure",
                "level": "high",
                "patterns": [r"\bforce\s+majeure\b"],
                "rationale": "Broad force majeure excuses non-performance.",
            }],
        }), encoding="utf-8")
        pipeline = ProcessingPipeline(config=PipelineConfig(config_dir=str(tmp_path)))
        try:
            analysis = pipeline.segment_and_analyze(
                CONTRACT + " 3. Force Majeure. Neither party is liable for force majeure events."
            )
        finally:
            pipeline.close()

        assert analysis.risk_level == RiskLevel.HIGH
        assert analysis.risky_clause_indices == (0, 2)

    def test_generate_clause(self, pipeline):
        """Test clause generation through the pipeline."""
        clause = pipeline.generate_clause("termination", tone="friendly")

        assert clause.clause_type == ClauseType.TERMINATION
        assert "8.1 Termination for Convenience" in clause.text
