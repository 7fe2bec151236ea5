"""
SmartClause

Clause segmentation, risk classification and conversational Q&A for
legal documents.
"""

__version__ = "0.1.0"

# Export main components
from .models.enums import (
    ClauseType,
    ConversationState,
    MessageRole,
    RiskLevel,
    SummarySeverity,
    Tone,
)
from .models.document import Clause, Document
from .models.analysis import Analysis, ClauseAssessment, SummaryPoint
from .models.conversation import Conversation, Message
from .exceptions import (
    AggregationError,
    AnalysisNotFoundError,
    AnswerGenerationTimeoutError,
    ClassificationTimeoutError,
    ConversationNotFoundError,
    DocumentNotFoundError,
    EmptyQuestionError,
    InvalidDocumentError,
    NotFoundError,
    SmartClauseError,
    TransientServiceError,
    ValidationError,
)
from .interfaces import (
    ClassificationResult,
    IAnswerGenerator,
    IDocumentRepository,
    IPersistenceSink,
    IRiskClassifier,
)
from .segmentation import ClauseSegmenter, TextNormalizer, normalize_text
from .analyzers import AnalysisAggregator, RuleBasedRiskClassifier, detect_category
from .qa import ConversationManager, TemplateAnswerGenerator
from .generators import ClauseGenerator, GeneratedClause
from .storage import DatabaseManager, InMemoryRepository, SqlAlchemyRepository
from .config import ConfigurationError, ConfigurationManager, ValidationResult
from .pipeline import PipelineConfig, ProcessingPipeline

__all__ = [
    "ClauseType",
    "ConversationState",
    "MessageRole",
    "RiskLevel",
    "SummarySeverity",
    "Tone",
    "Clause",
    "Document",
    "Analysis",
    "ClauseAssessment",
    "SummaryPoint",
    "Conversation",
    "Message",
    "AggregationError",
    "AnalysisNotFoundError",
    "AnswerGenerationTimeoutError",
    "ClassificationTimeoutError",
    "ConversationNotFoundError",
    "DocumentNotFoundError",
    "EmptyQuestionError",
    "InvalidDocumentError",
    "NotFoundError",
    "SmartClauseError",
    "TransientServiceError",
    "ValidationError",
    "ClassificationResult",
    "IAnswerGenerator",
    "IDocumentRepository",
    "IPersistenceSink",
    "IRiskClassifier",
    "ClauseSegmenter",
    "TextNormalizer",
    "normalize_text",
    "AnalysisAggregator",
    "RuleBasedRiskClassifier",
    "detect_category",
    "ConversationManager",
    "TemplateAnswerGenerator",
    "ClauseGenerator",
    "GeneratedClause",
    "DatabaseManager",
    "InMemoryRepository",
    "SqlAlchemyRepository",
    "ConfigurationError",
    "ConfigurationManager",
    "ValidationResult",
    "PipelineConfig",
    "ProcessingPipeline",
]
