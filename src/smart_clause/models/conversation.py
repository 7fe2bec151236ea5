"""Conversation data models for contract Q&A."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from .enums import ConversationState, MessageRole


@dataclass(frozen=True)
class Message:
    """A single question or answer; immutable once appended."""
    role: MessageRole
    content: str
    timestamp: datetime
    id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "role": self.role.value,
            "content": self.content,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class Conversation:
    """
    Append-only sequence of question/answer turns scoped to one document.

    Messages keep their append order and are never reordered or
    deduplicated. A conversation can always accept new turns.
    """
    id: Optional[int]
    document_id: int
    messages: Tuple[Message, ...] = ()
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def state(self) -> ConversationState:
        return ConversationState.ACTIVE if self.messages else ConversationState.EMPTY

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "document_id": self.document_id,
            "state": self.state.value,
            "messages": [m.to_dict() for m in self.messages],
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
