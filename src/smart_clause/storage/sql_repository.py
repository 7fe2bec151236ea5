"""SQLAlchemy-backed document repository and persistence sink."""

import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from sqlalchemy import func, select

from ..exceptions import ConversationNotFoundError, DocumentNotFoundError
from ..interfaces.repository import IDocumentRepository, IPersistenceSink
from ..models.analysis import Analysis, ClauseAssessment, SummaryPoint
from ..models.conversation import Conversation, Message
from ..models.document import Document
from ..models.enums import MessageRole, RiskLevel, SummarySeverity
from .database import DatabaseManager
from .models import (
    AnalysisModel,
    ClauseAssessmentModel,
    ConversationModel,
    DocumentModel,
    MessageModel,
)


logger = logging.getLogger(__name__)


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite drops tzinfo; stored values are always UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SqlAlchemyRepository(IDocumentRepository, IPersistenceSink):
    """
    Relational storage for documents, analyses and conversations.

    Identifiers come from autoincrement keys. Every write runs in a single
    session transaction, so an analysis and its assessments, or a pair of
    appended messages, become visible together or not at all.
    """

    def __init__(self, db_manager: DatabaseManager, create_schema: bool = True):
        """
        Initialize the repository.

        Args:
            db_manager: Database manager owning the engine and sessions.
            create_schema: If True, create missing tables on startup.
        """
        self.db_manager = db_manager
        if create_schema:
            self.db_manager.init_database()

    # Documents

    def add_document(self, document: Document) -> Document:
        with self.db_manager.get_session() as session:
            record = DocumentModel(
                text=document.text,
                category=document.category,
                name=document.name,
                owner_id=document.owner_id,
                created_at=document.created_at or _utcnow(),
            )
            session.add(record)
            session.flush()
            stored = self._to_document(record)
        logger.debug(f"Stored document {stored.id}")
        return stored

    def get_document(self, document_id: int) -> Optional[Document]:
        with self.db_manager.get_session() as session:
            record = session.get(DocumentModel, document_id)
            return self._to_document(record) if record else None

    # Analyses

    def save_analysis(
        self,
        analysis: Analysis,
        assessments: Sequence[ClauseAssessment],
    ) -> Analysis:
        with self.db_manager.get_session() as session:
            if session.get(DocumentModel, analysis.document_id) is None:
                raise DocumentNotFoundError(
                    message=f"Document {analysis.document_id} not found",
                    entity_id=analysis.document_id,
                )
            record = AnalysisModel(
                document_id=analysis.document_id,
                risk_level=analysis.risk_level.value,
                summary=[p.to_dict() for p in analysis.summary],
                risky_clause_indices=list(analysis.risky_clause_indices),
                rationale=analysis.rationale,
                clause_count=analysis.clause_count,
                metadata_=dict(analysis.metadata),
                created_at=analysis.created_at or _utcnow(),
            )
            record.assessments = [
                ClauseAssessmentModel(
                    clause_index=a.clause_index,
                    clause_text=a.clause_text,
                    heading=a.heading,
                    risk_level=a.risk_level.value,
                    rationale=a.rationale,
                    suggestion=a.suggestion,
                    signal_id=a.signal_id,
                )
                for a in assessments
            ]
            session.add(record)
            session.flush()
            stored = self._to_analysis(record)
        logger.debug(f"Stored analysis {stored.id} with {len(assessments)} assessments")
        return stored

    def get_analysis(self, analysis_id: int) -> Optional[Analysis]:
        with self.db_manager.get_session() as session:
            record = session.get(AnalysisModel, analysis_id)
            return self._to_analysis(record) if record else None

    def get_latest_analysis(self, document_id: int) -> Optional[Analysis]:
        with self.db_manager.get_session() as session:
            stmt = (
                select(AnalysisModel)
                .where(AnalysisModel.document_id == document_id)
                .order_by(AnalysisModel.id.desc())
                .limit(1)
            )
            record = session.scalars(stmt).first()
            return self._to_analysis(record) if record else None

    def list_clause_assessments(self, analysis_id: int) -> List[ClauseAssessment]:
        with self.db_manager.get_session() as session:
            stmt = (
                select(ClauseAssessmentModel)
                .where(ClauseAssessmentModel.analysis_id == analysis_id)
                .order_by(ClauseAssessmentModel.clause_index)
            )
            return [self._to_assessment(r) for r in session.scalars(stmt)]

    # Conversations

    def create_conversation(self, document_id: int) -> Conversation:
        with self.db_manager.get_session() as session:
            if session.get(DocumentModel, document_id) is None:
                raise DocumentNotFoundError(
                    message=f"Document {document_id} not found",
                    entity_id=document_id,
                )
            now = _utcnow()
            record = ConversationModel(document_id=document_id, created_at=now, updated_at=now)
            session.add(record)
            session.flush()
            return self._to_conversation(record)

    def get_conversation(self, conversation_id: int) -> Optional[Conversation]:
        with self.db_manager.get_session() as session:
            record = session.get(ConversationModel, conversation_id)
            return self._to_conversation(record) if record else None

    def append_messages(
        self,
        conversation_id: int,
        messages: Sequence[Message],
    ) -> Conversation:
        with self.db_manager.get_session() as session:
            record = session.get(ConversationModel, conversation_id)
            if record is None:
                raise ConversationNotFoundError(
                    message=f"Conversation {conversation_id} not found",
                    entity_id=conversation_id,
                )
            last = session.scalar(
                select(func.max(MessageModel.position))
                .where(MessageModel.conversation_id == conversation_id)
            )
            position = -1 if last is None else last
            for message in messages:
                position += 1
                record.messages.append(MessageModel(
                    id=message.id or str(uuid.uuid4()),
                    position=position,
                    role=message.role.value,
                    content=message.content,
                    timestamp=message.timestamp,
                ))
            if messages:
                record.updated_at = messages[-1].timestamp
            session.flush()
            return self._to_conversation(record)

    def list_conversations(self, document_id: int) -> List[Conversation]:
        with self.db_manager.get_session() as session:
            stmt = (
                select(ConversationModel)
                .where(ConversationModel.document_id == document_id)
                .order_by(ConversationModel.id)
            )
            return [self._to_conversation(r) for r in session.scalars(stmt)]

    # Mapping

    @staticmethod
    def _to_document(record: DocumentModel) -> Document:
        return Document(
            id=record.id,
            text=record.text,
            category=record.category,
            created_at=_aware(record.created_at),
            owner_id=record.owner_id,
            name=record.name,
        )

    @staticmethod
    def _to_analysis(record: AnalysisModel) -> Analysis:
        return Analysis(
            id=record.id,
            document_id=record.document_id,
            risk_level=RiskLevel(record.risk_level),
            summary=tuple(
                SummaryPoint(
                    text=p["text"],
                    severity=SummarySeverity(p["severity"]),
                    source_indices=tuple(p.get("source_indices", ())),
                )
                for p in (record.summary or [])
            ),
            risky_clause_indices=tuple(record.risky_clause_indices or ()),
            rationale=record.rationale or "",
            clause_count=record.clause_count or 0,
            created_at=_aware(record.created_at),
            metadata=dict(record.metadata_ or {}),
        )

    @staticmethod
    def _to_assessment(record: ClauseAssessmentModel) -> ClauseAssessment:
        return ClauseAssessment(
            clause_index=record.clause_index,
            clause_text=record.clause_text,
            risk_level=RiskLevel(record.risk_level),
            rationale=record.rationale,
            suggestion=record.suggestion,
            signal_id=record.signal_id,
            heading=record.heading,
            analysis_id=record.analysis_id,
        )

    @staticmethod
    def _to_conversation(record: ConversationModel) -> Conversation:
        return Conversation(
            id=record.id,
            document_id=record.document_id,
            messages=tuple(
                Message(
                    role=MessageRole(m.role),
                    content=m.content,
                    timestamp=_aware(m.timestamp),
                    id=m.id,
                )
                for m in record.messages
            ),
            created_at=_aware(record.created_at),
            updated_at=_aware(record.updated_at),
        )
