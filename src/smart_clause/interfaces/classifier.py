"""Risk classifier interface for the SmartClause core."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from ..models.enums import RiskLevel


@dataclass(frozen=True)
class ClassificationResult:
    """Outcome of classifying a single clause."""
    level: RiskLevel
    rationale: str
    suggestion: Optional[str] = None
    signal_id: Optional[str] = None


class IRiskClassifier(ABC):
    """
    Abstract interface for clause risk classification.

    Implementations range from the rule-based default to learned or
    model-backed scorers; the pipeline depends only on this contract.
    """

    @abstractmethod
    def classify(
        self,
        clause_text: str,
        category: Optional[str] = None,
    ) -> ClassificationResult:
        """
        Assign a risk level and rationale to one clause.

        Args:
            clause_text: Text of the clause to classify.
            category: Optional document category (e.g. "NDA").

        Returns:
            ClassificationResult with level, rationale and optional suggestion.

        Raises:
            TransientServiceError: If an external dependency failed in a
                way that may succeed on retry.
        """
        pass
