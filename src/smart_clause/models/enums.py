"""Enumerations for the SmartClause core."""

from enum import Enum


class RiskLevel(Enum):
    """Ordered risk classification applied to clauses and documents."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        return _RISK_RANKS[self]

    def __lt__(self, other):
        if not isinstance(other, RiskLevel):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other):
        if not isinstance(other, RiskLevel):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other):
        if not isinstance(other, RiskLevel):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other):
        if not isinstance(other, RiskLevel):
            return NotImplemented
        return self.rank >= other.rank

    @property
    def is_flagged(self) -> bool:
        """MEDIUM and HIGH clauses are reported as risky."""
        return self.rank >= 1


_RISK_RANKS = {
    RiskLevel.LOW: 0,
    RiskLevel.MEDIUM: 1,
    RiskLevel.HIGH: 2,
}


class MessageRole(Enum):
    """Author of a conversation message."""
    USER = "user"
    ASSISTANT = "assistant"


class SummarySeverity(Enum):
    """Display severity attached to a summary point."""
    SUCCESS = "success"
    WARNING = "warning"
    DANGER = "danger"


class ConversationState(Enum):
    """Lifecycle state of a conversation."""
    EMPTY = "empty"
    ACTIVE = "active"


class ClauseType(Enum):
    """Clause families supported by the clause generator."""
    CONFIDENTIALITY = "confidentiality"
    TERMINATION = "termination"
    PAYMENT = "payment"
    OTHER = "other"


class Tone(Enum):
    """Drafting tone for generated clauses."""
    FORMAL = "formal"
    FRIENDLY = "friendly"
    AGGRESSIVE = "aggressive"
    NEUTRAL = "neutral"
