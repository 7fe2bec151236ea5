"""Conversation state management for contract Q&A.

Each conversation is bound to one document and grows by appending a
user question and the generated answer as one atomic pair. Calls for
the same conversation are serialized so concurrent questions never
interleave their messages.
"""

import logging
import threading
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Dict, Iterator, List, Optional

from ..exceptions import (
    ConversationNotFoundError,
    DocumentNotFoundError,
    EmptyQuestionError,
)
from ..interfaces.answer import IAnswerGenerator
from ..interfaces.repository import IDocumentRepository, IPersistenceSink
from ..models.conversation import Conversation, Message
from ..models.document import Document
from ..models.enums import MessageRole


logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class _LockEntry:
    lock: threading.Lock = field(default_factory=threading.Lock)
    users: int = 0


class ConversationManager:
    """
    Creates conversations and appends question/answer turns.

    Args:
        documents: Repository the conversations' documents are read from.
        store: Persistence sink holding the conversations.
        answer_generator: Generator producing the assistant replies.
        clock: Optional timestamp source, mainly for tests.
    """

    def __init__(
        self,
        documents: IDocumentRepository,
        store: IPersistenceSink,
        answer_generator: IAnswerGenerator,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._documents = documents
        self._store = store
        self._answer_generator = answer_generator
        self._clock = clock or _utcnow
        self._locks: Dict[int, _LockEntry] = {}
        self._locks_guard = threading.Lock()

    def create(self, document_id: int) -> Conversation:
        """
        Create an empty conversation for a document.

        Raises:
            DocumentNotFoundError: If the document does not exist.
        """
        self._require_document(document_id)
        conversation = self._store.create_conversation(document_id)
        logger.info(f"Created conversation {conversation.id} for document {document_id}")
        return conversation

    def get(self, conversation_id: int) -> Conversation:
        """
        Fetch a conversation.

        Raises:
            ConversationNotFoundError: If the conversation does not exist.
        """
        conversation = self._store.get_conversation(conversation_id)
        if conversation is None:
            raise ConversationNotFoundError(
                message=f"Conversation {conversation_id} not found",
                entity_id=conversation_id,
            )
        return conversation

    def list_for_document(self, document_id: int) -> List[Conversation]:
        """List a document's conversations in creation order."""
        self._require_document(document_id)
        return self._store.list_conversations(document_id)

    def ask(self, conversation_id: int, question: str) -> Conversation:
        """
        Ask a question within a conversation.

        The generator sees the full prior history. The user message and
        the assistant answer are appended together; on failure neither is.

        Returns:
            The updated Conversation, two messages longer.

        Raises:
            EmptyQuestionError: If the question is blank.
            ConversationNotFoundError: If the conversation does not exist.
            DocumentNotFoundError: If the conversation's document is gone.
        """
        question = self._validate_question(question)
        self.get(conversation_id)

        with self._conversation_lock(conversation_id):
            conversation = self.get(conversation_id)
            document = self._require_document(conversation.document_id)

            user_message = self._message(MessageRole.USER, question)
            answer = self._answer_generator.answer(
                document.text,
                document.category,
                conversation.messages,
                question,
            )
            assistant_message = self._message(MessageRole.ASSISTANT, answer)

            updated = self._store.append_messages(
                conversation_id, [user_message, assistant_message]
            )

        logger.info(
            f"Answered question in conversation {conversation_id} "
            f"({len(updated.messages)} messages)"
        )
        return updated

    def ask_direct(self, document_id: int, question: str) -> str:
        """
        Answer a one-off question about a document without a conversation.

        Nothing is persisted.

        Raises:
            EmptyQuestionError: If the question is blank.
            DocumentNotFoundError: If the document does not exist.
        """
        question = self._validate_question(question)
        document = self._require_document(document_id)
        return self._answer_generator.answer(document.text, document.category, (), question)

    @contextmanager
    def _conversation_lock(self, conversation_id: int) -> Iterator[None]:
        """Hold the conversation's lock; the entry is evicted once no caller uses it."""
        with self._locks_guard:
            entry = self._locks.get(conversation_id)
            if entry is None:
                entry = self._locks[conversation_id] = _LockEntry()
            entry.users += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._locks_guard:
                entry.users -= 1
                if entry.users == 0:
                    del self._locks[conversation_id]

    def _require_document(self, document_id: int) -> Document:
        document = self._documents.get_document(document_id)
        if document is None:
            raise DocumentNotFoundError(
                message=f"Document {document_id} not found",
                entity_id=document_id,
            )
        return document

    @staticmethod
    def _validate_question(question: str) -> str:
        if not isinstance(question, str) or not question.strip():
            raise EmptyQuestionError(message="Question must not be empty")
        return question.strip()

    def _message(self, role: MessageRole, content: str) -> Message:
        return Message(
            role=role,
            content=content,
            timestamp=self._clock(),
            id=str(uuid.uuid4()),
        )
