"""Exception taxonomy for the SmartClause core."""

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass
class SmartClauseError(Exception):
    """
    Base exception for SmartClause errors.

    Carries a human-readable message plus structured details so errors
    can be logged and serialized consistently at the API boundary.

    Attributes:
        message: Human-readable error description.
        details: Additional error details.
    """
    message: str
    details: Optional[dict] = field(default_factory=dict)

    def __post_init__(self):
        if self.details is None:
            self.details = {}
        super().__init__(str(self))

    def __str__(self) -> str:
        return self.message

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


@dataclass
class ValidationError(SmartClauseError):
    """Invalid caller input. Surfaced immediately, never retried."""


@dataclass
class InvalidDocumentError(ValidationError):
    """Document text is empty or too short to segment after normalization."""


@dataclass
class EmptyQuestionError(ValidationError):
    """Question is blank after trimming."""


@dataclass
class NotFoundError(SmartClauseError):
    """A referenced entity does not exist."""
    entity_id: Optional[Any] = None


@dataclass
class DocumentNotFoundError(NotFoundError):
    """Referenced document does not exist."""


@dataclass
class ConversationNotFoundError(NotFoundError):
    """Referenced conversation does not exist."""


@dataclass
class AnalysisNotFoundError(NotFoundError):
    """No analysis exists for the given document or analysis id."""


@dataclass
class TransientServiceError(SmartClauseError):
    """
    Failure of an external call that may succeed when retried.

    Classifier and answer-generator implementations raise this (or a
    subclass) to request a retry with backoff.
    """


@dataclass
class ClassificationTimeoutError(TransientServiceError):
    """Risk classification did not finish within its timeout."""


@dataclass
class AnswerGenerationTimeoutError(TransientServiceError):
    """Answer generation did not finish within its timeout."""


@dataclass
class AggregationError(SmartClauseError):
    """The assessment set handed to the aggregator is inconsistent."""
