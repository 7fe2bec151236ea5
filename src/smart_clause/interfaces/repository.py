"""Storage collaborator interfaces for the SmartClause core.

The core never generates identifiers itself; both interfaces delegate
identity to the storage implementation.
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from ..models.analysis import Analysis, ClauseAssessment
from ..models.conversation import Conversation, Message
from ..models.document import Document


class IDocumentRepository(ABC):
    """Key-based access to ingested documents."""

    @abstractmethod
    def add_document(self, document: Document) -> Document:
        """
        Store a new document.

        Args:
            document: Document without an identifier.

        Returns:
            The stored Document with its assigned identifier.
        """
        pass

    @abstractmethod
    def get_document(self, document_id: int) -> Optional[Document]:
        """Fetch a document by id, or None if it does not exist."""
        pass


class IPersistenceSink(ABC):
    """
    Key-based storage for analyses, clause assessments and conversations.

    Every write method is a single transaction: readers never observe an
    analysis without its assessments or a half-appended message pair.
    """

    @abstractmethod
    def save_analysis(
        self,
        analysis: Analysis,
        assessments: Sequence[ClauseAssessment],
    ) -> Analysis:
        """
        Store an analysis together with its clause assessments.

        Returns:
            The stored Analysis with its assigned identifier.
        """
        pass

    @abstractmethod
    def get_analysis(self, analysis_id: int) -> Optional[Analysis]:
        """Fetch an analysis by id, or None."""
        pass

    @abstractmethod
    def get_latest_analysis(self, document_id: int) -> Optional[Analysis]:
        """Fetch the most recent analysis of a document, or None."""
        pass

    @abstractmethod
    def list_clause_assessments(self, analysis_id: int) -> List[ClauseAssessment]:
        """List the assessments of an analysis in clause order."""
        pass

    @abstractmethod
    def create_conversation(self, document_id: int) -> Conversation:
        """Create an empty conversation bound to a document."""
        pass

    @abstractmethod
    def get_conversation(self, conversation_id: int) -> Optional[Conversation]:
        """Fetch a conversation by id, or None."""
        pass

    @abstractmethod
    def append_messages(
        self,
        conversation_id: int,
        messages: Sequence[Message],
    ) -> Conversation:
        """
        Append messages to a conversation atomically.

        Either all messages are appended or none are.

        Returns:
            The updated Conversation.

        Raises:
            ConversationNotFoundError: If the conversation does not exist.
        """
        pass

    @abstractmethod
    def list_conversations(self, document_id: int) -> List[Conversation]:
        """List the conversations of a document in creation order."""
        pass
