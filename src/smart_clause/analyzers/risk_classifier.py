"""Rule-based risk classifier.

Classifies a clause by evaluating an ordered list of RiskSignal rules;
the first matching rule determines the level, rationale and suggestion.
"""

import logging
from typing import List, Optional, Sequence

from ..interfaces.classifier import ClassificationResult, IRiskClassifier
from ..models.enums import RiskLevel
from .risk_patterns import (
    UNCLASSIFIED_RATIONALE,
    RiskSignal,
    build_default_signals,
    order_signals,
)


logger = logging.getLogger(__name__)


DEFAULT_RESULT = ClassificationResult(
    level=RiskLevel.LOW,
    rationale=UNCLASSIFIED_RATIONALE,
)


class RuleBasedRiskClassifier(IRiskClassifier):
    """
    Default IRiskClassifier implementation.

    Never raises on arbitrary text: a fault inside rule evaluation is
    logged and degraded to the generic LOW result.
    """

    def __init__(self, signals: Optional[Sequence[RiskSignal]] = None):
        """
        Initialize the classifier.

        Args:
            signals: Optional rule set. Defaults to the built-in signals.
        """
        if signals is None:
            signals = build_default_signals()
        self._signals = order_signals(signals)

    @property
    def signals(self) -> List[RiskSignal]:
        """Signals in evaluation order."""
        return list(self._signals)

    def classify(
        self,
        clause_text: str,
        category: Optional[str] = None,
    ) -> ClassificationResult:
        try:
            return self._classify(clause_text, category)
        except Exception:
            logger.exception("Risk classification failed; defaulting to LOW")
            return DEFAULT_RESULT

    def matching_signals(
        self,
        clause_text: str,
        category: Optional[str] = None,
    ) -> List[RiskSignal]:
        """Return every signal that fires for the clause, in evaluation order."""
        text = " ".join((clause_text or "").split())
        return [
            s for s in self._signals
            if s.applies_to(category) and s.matches(text)
        ]

    def _classify(self, clause_text: str, category: Optional[str]) -> ClassificationResult:
        text = " ".join((clause_text or "").split())
        if not text:
            return DEFAULT_RESULT

        for signal in self._signals:
            if signal.applies_to(category) and signal.matches(text):
                return ClassificationResult(
                    level=signal.level,
                    rationale=signal.rationale,
                    suggestion=signal.suggestion,
                    signal_id=signal.id,
                )
        return DEFAULT_RESULT
