"""Answer generator interface for contract Q&A."""

from abc import ABC, abstractmethod
from typing import Optional, Sequence

from ..models.conversation import Message


class IAnswerGenerator(ABC):
    """
    Abstract interface for answering questions about a document.

    The default implementation is template based; a retrieval-augmented
    or model-backed generator can be substituted without changing any
    caller.
    """

    @abstractmethod
    def answer(
        self,
        document_text: str,
        category: Optional[str],
        history: Sequence[Message],
        question: str,
    ) -> str:
        """
        Produce an answer to a question in the context of a document.

        Args:
            document_text: Full normalized document text.
            category: Optional document category.
            history: Prior messages of the conversation, in append order.
            question: The question to answer.

        Returns:
            Non-empty answer text.

        Raises:
            TransientServiceError: If an external dependency failed in a
                way that may succeed on retry.
        """
        pass
