"""In-memory document repository and persistence sink."""

import itertools
import threading
import uuid
from dataclasses import replace
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

from ..exceptions import ConversationNotFoundError, DocumentNotFoundError
from ..interfaces.repository import IDocumentRepository, IPersistenceSink
from ..models.analysis import Analysis, ClauseAssessment
from ..models.conversation import Conversation, Message
from ..models.document import Document


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryRepository(IDocumentRepository, IPersistenceSink):
    """
    Process-local storage for tests and single-process deployments.

    Ids come from per-entity counters. Every write happens under one lock
    and replaces whole immutable records, so readers never see a partial
    write.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._document_ids = itertools.count(1)
        self._analysis_ids = itertools.count(1)
        self._conversation_ids = itertools.count(1)
        self._documents: Dict[int, Document] = {}
        self._analyses: Dict[int, Analysis] = {}
        self._assessments: Dict[int, List[ClauseAssessment]] = {}
        self._conversations: Dict[int, Conversation] = {}

    def add_document(self, document: Document) -> Document:
        with self._lock:
            stored = replace(
                document,
                id=next(self._document_ids),
                created_at=document.created_at or _utcnow(),
            )
            self._documents[stored.id] = stored
            return stored

    def get_document(self, document_id: int) -> Optional[Document]:
        with self._lock:
            return self._documents.get(document_id)

    def save_analysis(
        self,
        analysis: Analysis,
        assessments: Sequence[ClauseAssessment],
    ) -> Analysis:
        with self._lock:
            self._require_document(analysis.document_id)
            analysis_id = next(self._analysis_ids)
            stored = replace(
                analysis,
                id=analysis_id,
                created_at=analysis.created_at or _utcnow(),
            )
            self._assessments[analysis_id] = sorted(
                (replace(a, analysis_id=analysis_id) for a in assessments),
                key=lambda a: a.clause_index,
            )
            self._analyses[analysis_id] = stored
            return stored

    def get_analysis(self, analysis_id: int) -> Optional[Analysis]:
        with self._lock:
            return self._analyses.get(analysis_id)

    def get_latest_analysis(self, document_id: int) -> Optional[Analysis]:
        with self._lock:
            matching = [a for a in self._analyses.values() if a.document_id == document_id]
            return max(matching, key=lambda a: a.id) if matching else None

    def list_clause_assessments(self, analysis_id: int) -> List[ClauseAssessment]:
        with self._lock:
            return list(self._assessments.get(analysis_id, []))

    def create_conversation(self, document_id: int) -> Conversation:
        with self._lock:
            self._require_document(document_id)
            now = _utcnow()
            conversation = Conversation(
                id=next(self._conversation_ids),
                document_id=document_id,
                created_at=now,
                updated_at=now,
            )
            self._conversations[conversation.id] = conversation
            return conversation

    def get_conversation(self, conversation_id: int) -> Optional[Conversation]:
        with self._lock:
            return self._conversations.get(conversation_id)

    def append_messages(
        self,
        conversation_id: int,
        messages: Sequence[Message],
    ) -> Conversation:
        with self._lock:
            conversation = self._conversations.get(conversation_id)
            if conversation is None:
                raise ConversationNotFoundError(
                    message=f"Conversation {conversation_id} not found",
                    entity_id=conversation_id,
                )
            appended = tuple(
                m if m.id else replace(m, id=str(uuid.uuid4())) for m in messages
            )
            updated = replace(
                conversation,
                messages=conversation.messages + appended,
                updated_at=appended[-1].timestamp if appended else conversation.updated_at,
            )
            self._conversations[conversation_id] = updated
            return updated

    def list_conversations(self, document_id: int) -> List[Conversation]:
        with self._lock:
            return sorted(
                (c for c in self._conversations.values() if c.document_id == document_id),
                key=lambda c: c.id,
            )

    def _require_document(self, document_id: Optional[int]) -> None:
        if document_id not in self._documents:
            raise DocumentNotFoundError(
                message=f"Document {document_id} not found",
                entity_id=document_id,
            )
