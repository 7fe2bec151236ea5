"""Document and clause data models for the SmartClause core."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class Document:
    """
    An ingested legal document.

    Holds the normalized text the analysis and Q&A steps operate on.
    Documents are immutable once ingested; the identifier is assigned
    by the storage layer.
    """
    id: Optional[int]
    text: str
    category: Optional[str] = None
    created_at: Optional[datetime] = None
    owner_id: Optional[str] = None
    name: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "category": self.category,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "owner_id": self.owner_id,
            "name": self.name,
        }


@dataclass(frozen=True)
class Clause:
    """
    One contiguous, indexed unit of contract text.

    The index is stable for a single segmentation run only; segmenting
    edited text may produce a different numbering.
    """
    document_id: Optional[int]
    index: int
    text: str
    heading: Optional[str] = None
    number: Optional[str] = None  # "1", "2.1" etc.
    start: int = 0
    end: int = 0

    @property
    def label(self) -> str:
        """Human-readable label used in summaries."""
        if self.heading:
            return self.heading
        if self.number:
            return f"Section {self.number}"
        return f"Clause {self.index + 1}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "document_id": self.document_id,
            "index": self.index,
            "text": self.text,
            "heading": self.heading,
            "number": self.number,
            "start": self.start,
            "end": self.end,
        }
