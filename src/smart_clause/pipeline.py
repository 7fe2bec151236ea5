"""End-to-end processing pipeline for SmartClause.

This module wires the analysis core together: normalization,
segmentation, per-clause risk classification, aggregation and
persistence for documents, plus conversation-based Q&A and clause
generation.
"""

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, fields, replace
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from .analyzers.aggregator import AnalysisAggregator
from .analyzers.category_detector import detect_category
from .analyzers.key_terms import KeyTermExtractor
from .analyzers.risk_classifier import RuleBasedRiskClassifier
from .config.config_manager import ConfigurationManager
from .exceptions import AnalysisNotFoundError, DocumentNotFoundError
from .generators.clause_generator import ClauseGenerator, GeneratedClause
from .interfaces.answer import IAnswerGenerator
from .interfaces.classifier import IRiskClassifier
from .interfaces.repository import IDocumentRepository, IPersistenceSink
from .models.analysis import Analysis, ClauseAssessment
from .models.conversation import Conversation
from .models.document import Document
from .models.enums import ClauseType, Tone
from .performance import PerformanceMonitor, timed_operation
from .qa.answer_generator import TemplateAnswerGenerator
from .qa.conversation_manager import ConversationManager
from .resilience import ResilientAnswerGenerator, ResilientRiskClassifier
from .segmentation.normalizer import MIN_DOCUMENT_LENGTH, TextNormalizer
from .segmentation.segmenter import ClauseSegmenter
from .storage.database import DatabaseManager
from .storage.memory import InMemoryRepository
from .storage.sql_repository import SqlAlchemyRepository


logger = logging.getLogger(__name__)


ENV_PREFIX = "SMART_CLAUSE_"


@dataclass
class PipelineConfig:
    """Configuration for the processing pipeline."""

    # Storage; None keeps everything in memory
    database_url: Optional[str] = None

    # Normalization
    min_document_length: int = MIN_DOCUMENT_LENGTH

    # Classification fan-out and resilience
    max_classification_workers: int = 4
    classification_timeout: Optional[float] = 10.0
    answer_timeout: Optional[float] = 30.0
    max_retry_attempts: int = 3
    retry_backoff: float = 0.5
    enable_resilience: bool = True

    # Aggregation
    max_summary_points: int = 8

    # Performance configuration
    max_processing_time: float = 60.0  # seconds

    # Feature flags
    detect_categories: bool = True

    # Configuration files
    config_dir: Optional[str] = None

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        prefix: str = ENV_PREFIX,
    ) -> "PipelineConfig":
        """
        Build a configuration from environment variables.

        Each field maps to ``<prefix><FIELD_NAME>``, e.g.
        ``SMART_CLAUSE_MAX_CLASSIFICATION_WORKERS=8``. Timeouts accept
        ``none`` to disable them.

        Raises:
            ValueError: If a variable cannot be converted to its field type.
        """
        environ = os.environ if environ is None else environ
        defaults = cls()
        values: Dict[str, Any] = {}

        for f in fields(cls):
            raw = environ.get(prefix + f.name.upper())
            if raw is None:
                continue
            default = getattr(defaults, f.name)
            raw = raw.strip()
            try:
                values[f.name] = cls._convert(f.name, raw, default)
            except ValueError as e:
                raise ValueError(f"Invalid value for {prefix + f.name.upper()}: {raw!r}") from e

        return cls(**values)

    @staticmethod
    def _convert(name: str, raw: str, default: Any) -> Any:
        if name in ("classification_timeout", "answer_timeout"):
            return None if raw.lower() in ("", "none", "off") else float(raw)
        if isinstance(default, bool):
            if raw.lower() in ("1", "true", "yes", "on"):
                return True
            if raw.lower() in ("0", "false", "no", "off"):
                return False
            raise ValueError(raw)
        if isinstance(default, int) and not isinstance(default, bool):
            return int(raw)
        if isinstance(default, float):
            return float(raw)
        return raw or None


class ProcessingPipeline:
    """
    Main processing pipeline for SmartClause.

    Every collaborator can be injected; anything not provided is built
    from the configuration. Nothing is persisted for an analysis until
    segmentation, classification and aggregation have all succeeded.
    """

    def __init__(
        self,
        config: Optional[PipelineConfig] = None,
        documents: Optional[IDocumentRepository] = None,
        store: Optional[IPersistenceSink] = None,
        classifier: Optional[IRiskClassifier] = None,
        answer_generator: Optional[IAnswerGenerator] = None,
        config_manager: Optional[ConfigurationManager] = None,
        normalizer: Optional[TextNormalizer] = None,
        segmenter: Optional[ClauseSegmenter] = None,
        aggregator: Optional[AnalysisAggregator] = None,
        clause_generator: Optional[ClauseGenerator] = None,
        key_terms: Optional[KeyTermExtractor] = None,
    ):
        """
        Initialize the processing pipeline.

        Args:
            config: Pipeline configuration.
            documents: Optional document repository.
            store: Optional persistence sink for analyses and conversations.
            classifier: Optional risk classifier (rule-based if not provided).
            answer_generator: Optional answer generator (template-based if not provided).
            config_manager: Optional configuration manager (created if not provided).
            normalizer: Optional text normalizer.
            segmenter: Optional clause segmenter.
            aggregator: Optional analysis aggregator.
            clause_generator: Optional clause generator.
            key_terms: Optional key term extractor supplying summary notes.
        """
        self.config = config or PipelineConfig()

        self.performance_monitor = PerformanceMonitor(
            max_processing_time=self.config.max_processing_time
        )

        self._config_manager = config_manager or ConfigurationManager(
            config_dir=self.config.config_dir
        )
        if self.config.config_dir:
            result = self._config_manager.load_from_directory(self.config.config_dir)
            if result.is_valid:
                logger.info(f"Loaded configuration from {self.config.config_dir}")
            else:
                logger.warning(
                    f"Configuration in {self.config.config_dir} is invalid, "
                    f"using defaults where needed: {result.errors}"
                )

        # Storage
        self._db_manager: Optional[DatabaseManager] = None
        if documents is None or store is None:
            repository = self._build_repository()
            documents = documents or repository
            store = store or repository
        self._documents = documents
        self._store = store

        # Analysis components
        self._normalizer = normalizer or TextNormalizer(
            min_length=self.config.min_document_length
        )
        self._segmenter = segmenter or ClauseSegmenter()
        self._aggregator = aggregator or AnalysisAggregator(
            max_summary_points=self.config.max_summary_points
        )
        self._clause_generator = clause_generator or ClauseGenerator()
        self._key_terms = key_terms or KeyTermExtractor()

        sys_cfg = self._config_manager.configuration
        if classifier is None:
            classifier = RuleBasedRiskClassifier(signals=sys_cfg.risk_signals or None)
        if answer_generator is None:
            answer_generator = TemplateAnswerGenerator(topics=sys_cfg.answer_topics or None)

        if self.config.enable_resilience:
            classifier = ResilientRiskClassifier(
                classifier,
                timeout=self.config.classification_timeout,
                max_attempts=self.config.max_retry_attempts,
                backoff_multiplier=self.config.retry_backoff,
                max_workers=self.config.max_classification_workers,
            )
            answer_generator = ResilientAnswerGenerator(
                answer_generator,
                timeout=self.config.answer_timeout,
                max_attempts=self.config.max_retry_attempts,
                backoff_multiplier=self.config.retry_backoff,
            )
        self._classifier = classifier
        self._answer_generator = answer_generator

        self._conversations = ConversationManager(
            documents=self._documents,
            store=self._store,
            answer_generator=self._answer_generator,
        )

        self._executor = ThreadPoolExecutor(
            max_workers=max(1, self.config.max_classification_workers),
            thread_name_prefix="clause-classifier",
        )

        logger.info("Processing pipeline initialized")

    def _build_repository(self) -> Union[InMemoryRepository, SqlAlchemyRepository]:
        if not self.config.database_url:
            logger.info("Using in-memory storage")
            return InMemoryRepository()
        self._db_manager = DatabaseManager(database_url=self.config.database_url)
        logger.info("Using SQL storage")
        return SqlAlchemyRepository(self._db_manager)

    # =========================================================================
    # Documents and analysis
    # =========================================================================

    def ingest_document(
        self,
        text: str,
        category: Optional[str] = None,
        owner_id: Optional[str] = None,
        name: Optional[str] = None,
    ) -> Document:
        """
        Normalize and store a document without analyzing it.

        Raises:
            InvalidDocumentError: If the text is empty or too short.
        """
        normalized = self._normalizer.normalize(text)
        document = self._documents.add_document(Document(
            id=None,
            text=normalized,
            category=self._resolve_category(normalized, category),
            owner_id=owner_id,
            name=name,
        ))
        logger.info(
            f"Ingested document {document.id} ({len(normalized)} chars, "
            f"category={document.category})"
        )
        return document

    def get_document(self, document_id: int) -> Document:
        """
        Fetch a document.

        Raises:
            DocumentNotFoundError: If the document does not exist.
        """
        document = self._documents.get_document(document_id)
        if document is None:
            raise DocumentNotFoundError(
                message=f"Document {document_id} not found",
                entity_id=document_id,
            )
        return document

    @timed_operation("segment_and_analyze")
    def segment_and_analyze(
        self,
        document_text: str,
        category: Optional[str] = None,
        owner_id: Optional[str] = None,
        name: Optional[str] = None,
    ) -> Analysis:
        """
        Ingest a document and analyze it in one step.

        The document is stored only after the analysis succeeded, so a
        failure leaves no trace in storage.

        Raises:
            InvalidDocumentError: If the text is empty or too short.
        """
        with self.performance_monitor.track("normalize"):
            normalized = self._normalizer.normalize(document_text)
        category = self._resolve_category(normalized, category)

        analysis, assessments = self._run_analysis(normalized, category, document_id=None)

        document = self._documents.add_document(Document(
            id=None,
            text=normalized,
            category=category,
            owner_id=owner_id,
            name=name,
        ))
        return self._persist(replace(analysis, document_id=document.id), assessments)

    def analyze_document(self, document_id: int) -> Analysis:
        """
        Analyze (or re-analyze) a stored document.

        Each run creates a new Analysis; earlier ones are kept.

        Raises:
            DocumentNotFoundError: If the document does not exist.
        """
        document = self.get_document(document_id)
        analysis, assessments = self._run_analysis(
            document.text, document.category, document_id=document.id
        )
        return self._persist(analysis, assessments)

    def get_analysis(self, document_id: int) -> Analysis:
        """
        Fetch the latest analysis of a document.

        Raises:
            DocumentNotFoundError: If the document does not exist.
            AnalysisNotFoundError: If the document was never analyzed.
        """
        self.get_document(document_id)
        analysis = self._store.get_latest_analysis(document_id)
        if analysis is None:
            raise AnalysisNotFoundError(
                message=f"No analysis found for document {document_id}",
                entity_id=document_id,
            )
        return analysis

    def list_clause_assessments(self, analysis_id: int) -> List[ClauseAssessment]:
        """
        List the clause assessments of an analysis in clause order.

        Raises:
            AnalysisNotFoundError: If the analysis does not exist.
        """
        if self._store.get_analysis(analysis_id) is None:
            raise AnalysisNotFoundError(
                message=f"Analysis {analysis_id} not found",
                entity_id=analysis_id,
            )
        return self._store.list_clause_assessments(analysis_id)

    def _run_analysis(
        self,
        text: str,
        category: Optional[str],
        document_id: Optional[int],
    ) -> Tuple[Analysis, List[ClauseAssessment]]:
        """Segment, classify and aggregate without touching storage."""
        overall = self.performance_monitor.start_operation(
            "analysis", document_id=document_id
        )
        try:
            with self.performance_monitor.track("segment"):
                clauses = self._segmenter.segment(text, document_id).to_list()
            logger.info(f"Segmented document {document_id} into {len(clauses)} clauses")

            with self.performance_monitor.track("classify", clause_count=len(clauses)):
                # map() yields results in clause order regardless of completion order
                results = list(self._executor.map(
                    lambda clause: self._classifier.classify(clause.text, category),
                    clauses,
                ))

            assessments = [
                ClauseAssessment(
                    clause_index=clause.index,
                    clause_text=clause.text,
                    risk_level=result.level,
                    rationale=result.rationale,
                    suggestion=result.suggestion,
                    signal_id=result.signal_id,
                    heading=clause.heading,
                )
                for clause, result in zip(clauses, results)
            ]

            with self.performance_monitor.track("aggregate"):
                analysis = self._aggregator.aggregate(
                    document_id, assessments, notes=self._key_terms.extract(text)
                )
        except Exception as e:
            self.performance_monitor.end_operation(overall, success=False, error=str(e))
            logger.error(f"Analysis of document {document_id} failed: {e}")
            raise

        self.performance_monitor.end_operation(overall, success=True)
        return analysis, assessments

    def _persist(self, analysis: Analysis, assessments: List[ClauseAssessment]) -> Analysis:
        with self.performance_monitor.track("persist"):
            stored = self._store.save_analysis(analysis, assessments)
        logger.info(
            f"Stored analysis {stored.id} for document {stored.document_id}: "
            f"risk={stored.risk_level.value}, risky={list(stored.risky_clause_indices)}"
        )
        return stored

    def _resolve_category(self, text: str, category: Optional[str]) -> Optional[str]:
        if category and category.strip():
            return category.strip()
        if not self.config.detect_categories:
            return None
        return detect_category(text)

    # =========================================================================
    # Conversations
    # =========================================================================

    def create_conversation(self, document_id: int) -> Conversation:
        """Create an empty conversation for a document."""
        return self._conversations.create(document_id)

    def ask(self, conversation_id: int, question: str) -> Conversation:
        """Ask a question in a conversation; returns the updated conversation."""
        with self.performance_monitor.track("ask", conversation_id=conversation_id):
            return self._conversations.ask(conversation_id, question)

    def ask_direct(self, document_id: int, question: str) -> str:
        """Answer a one-off question about a document without persisting it."""
        with self.performance_monitor.track("ask_direct", document_id=document_id):
            return self._conversations.ask_direct(document_id, question)

    def get_conversation(self, conversation_id: int) -> Conversation:
        """Fetch a conversation."""
        return self._conversations.get(conversation_id)

    def list_conversations(self, document_id: int) -> List[Conversation]:
        """List a document's conversations in creation order."""
        return self._conversations.list_for_document(document_id)

    # =========================================================================
    # Clause generation
    # =========================================================================

    def generate_clause(
        self,
        clause_type: Union[str, ClauseType],
        tone: Union[str, Tone] = Tone.FORMAL,
        details: str = "",
    ) -> GeneratedClause:
        """Draft a clause of the given type and tone."""
        return self._clause_generator.generate(clause_type, tone, details)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def get_performance_stats(self) -> Dict[str, Dict[str, Any]]:
        """Get per-stage timing statistics."""
        return self.performance_monitor.get_all_stats()

    def close(self) -> None:
        """Release worker threads and database connections."""
        self._executor.shutdown(wait=True)
        for component in (self._classifier, self._answer_generator):
            shutdown = getattr(component, "shutdown", None)
            if callable(shutdown):
                shutdown()
        if self._db_manager is not None:
            self._db_manager.close()
        logger.info("Processing pipeline closed")
