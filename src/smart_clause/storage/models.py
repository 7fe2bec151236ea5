"""SQLAlchemy models for SmartClause persistence."""

from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    String,
    DateTime,
    Integer,
    Text,
    ForeignKey,
    Index,
    CheckConstraint,
    UniqueConstraint,
    JSON,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, relationship
from sqlalchemy.types import TypeDecorator


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JSONType(TypeDecorator):
    """Platform-independent JSON type.

    Uses JSONB for PostgreSQL and JSON for other databases (like SQLite).
    """
    impl = JSON
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == 'postgresql':
            return dialect.type_descriptor(JSONB())
        else:
            return dialect.type_descriptor(JSON())


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


class DocumentModel(Base):
    """Document table model."""
    __tablename__ = "documents"

    id = Column(Integer, primary_key=True, autoincrement=True)
    text = Column(Text, nullable=False)
    category = Column(String(100))
    name = Column(String(255))
    owner_id = Column(String(100))
    created_at = Column(DateTime(timezone=True), default=_utcnow)

    analyses = relationship("AnalysisModel", back_populates="document", cascade="all, delete-orphan")
    conversations = relationship("ConversationModel", back_populates="document", cascade="all, delete-orphan")

    __table_args__ = (
        Index("idx_documents_owner_id", "owner_id"),
    )


class AnalysisModel(Base):
    """Analysis results table model."""
    __tablename__ = "analyses"

    id = Column(Integer, primary_key=True, autoincrement=True)
    document_id = Column(Integer, ForeignKey("documents.id", ondelete="CASCADE"), nullable=False)
    risk_level = Column(String(10), nullable=False)
    summary = Column(JSONType, nullable=False)
    risky_clause_indices = Column(JSONType, nullable=False)
    rationale = Column(Text, nullable=False, default="")
    clause_count = Column(Integer, nullable=False, default=0)
    metadata_ = Column("metadata", JSONType)
    created_at = Column(DateTime(timezone=True), default=_utcnow)

    document = relationship("DocumentModel", back_populates="analyses")
    assessments = relationship(
        "ClauseAssessmentModel",
        back_populates="analysis",
        cascade="all, delete-orphan",
        order_by="ClauseAssessmentModel.clause_index",
    )

    __table_args__ = (
        CheckConstraint("risk_level IN ('low', 'medium', 'high')", name="check_analysis_risk_level"),
        Index("idx_analyses_document_id", "document_id"),
    )


class ClauseAssessmentModel(Base):
    """Per-clause assessment table model."""
    __tablename__ = "clause_assessments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    analysis_id = Column(Integer, ForeignKey("analyses.id", ondelete="CASCADE"), nullable=False)
    clause_index = Column(Integer, nullable=False)
    clause_text = Column(Text, nullable=False)
    heading = Column(String(255))
    risk_level = Column(String(10), nullable=False)
    rationale = Column(Text, nullable=False)
    suggestion = Column(Text)
    signal_id = Column(String(100))

    analysis = relationship("AnalysisModel", back_populates="assessments")

    __table_args__ = (
        UniqueConstraint("analysis_id", "clause_index", name="uq_assessment_clause"),
        CheckConstraint("risk_level IN ('low', 'medium', 'high')", name="check_assessment_risk_level"),
        Index("idx_clause_assessments_analysis_id", "analysis_id"),
    )


class ConversationModel(Base):
    """Conversation table model."""
    __tablename__ = "conversations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    document_id = Column(Integer, ForeignKey("documents.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow)

    document = relationship("DocumentModel", back_populates="conversations")
    messages = relationship(
        "MessageModel",
        back_populates="conversation",
        cascade="all, delete-orphan",
        order_by="MessageModel.position",
    )

    __table_args__ = (
        Index("idx_conversations_document_id", "document_id"),
    )


class MessageModel(Base):
    """Conversation message table model."""
    __tablename__ = "messages"

    id = Column(String(36), primary_key=True)
    conversation_id = Column(Integer, ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False)
    position = Column(Integer, nullable=False)
    role = Column(String(10), nullable=False)
    content = Column(Text, nullable=False)
    timestamp = Column(DateTime(timezone=True), nullable=False)

    conversation = relationship("ConversationModel", back_populates="messages")

    __table_args__ = (
        UniqueConstraint("conversation_id", "position", name="uq_message_position"),
        CheckConstraint("role IN ('user', 'assistant')", name="check_message_role"),
        Index("idx_messages_conversation_id", "conversation_id"),
    )
