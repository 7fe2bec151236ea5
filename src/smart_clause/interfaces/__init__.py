"""Abstract interfaces for the SmartClause core."""

from .classifier import ClassificationResult, IRiskClassifier
from .answer import IAnswerGenerator
from .repository import IDocumentRepository, IPersistenceSink

__all__ = [
    "ClassificationResult",
    "IRiskClassifier",
    "IAnswerGenerator",
    "IDocumentRepository",
    "IPersistenceSink",
]
