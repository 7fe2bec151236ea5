"""Contract question answering and conversation management."""

from .answer_generator import (
    GENERIC_ANSWER,
    UNABLE_TO_ANSWER,
    AnswerTopic,
    TemplateAnswerGenerator,
    build_default_topics,
)
from .conversation_manager import ConversationManager

__all__ = [
    "GENERIC_ANSWER",
    "UNABLE_TO_ANSWER",
    "AnswerTopic",
    "TemplateAnswerGenerator",
    "build_default_topics",
    "ConversationManager",
]
