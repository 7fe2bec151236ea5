"""Data models and enums for the SmartClause core."""

from .enums import (
    ClauseType,
    ConversationState,
    MessageRole,
    RiskLevel,
    SummarySeverity,
    Tone,
)
from .document import Clause, Document
from .analysis import Analysis, ClauseAssessment, SummaryPoint
from .conversation import Conversation, Message

__all__ = [
    # Enums
    "ClauseType",
    "ConversationState",
    "MessageRole",
    "RiskLevel",
    "SummarySeverity",
    "Tone",
    # Document models
    "Clause",
    "Document",
    # Analysis models
    "Analysis",
    "ClauseAssessment",
    "SummaryPoint",
    # Conversation models
    "Conversation",
    "Message",
]
