"""Analysis result models for the SmartClause core."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from .enums import RiskLevel, SummarySeverity


@dataclass(frozen=True)
class ClauseAssessment:
    """
    Risk assessment of a single clause within one analysis run.

    This is the source of truth for clause risk; summary severities are
    derived from it for display only.
    """
    clause_index: int
    clause_text: str
    risk_level: RiskLevel
    rationale: str
    suggestion: Optional[str] = None
    signal_id: Optional[str] = None
    heading: Optional[str] = None
    analysis_id: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "analysis_id": self.analysis_id,
            "clause_index": self.clause_index,
            "clause_text": self.clause_text,
            "heading": self.heading,
            "risk_level": self.risk_level.value,
            "rationale": self.rationale,
            "suggestion": self.suggestion,
            "signal_id": self.signal_id,
        }


@dataclass(frozen=True)
class SummaryPoint:
    """Plain-language summary bullet with its display severity."""
    text: str
    severity: SummarySeverity
    source_indices: Tuple[int, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "severity": self.severity.value,
            "source_indices": list(self.source_indices),
        }


@dataclass(frozen=True)
class Analysis:
    """
    Immutable output of one classification and aggregation run.

    The document risk level always equals the worst clause risk level
    (LOW when no clause is flagged). A later analysis supersedes an
    earlier one without deleting it.
    """
    id: Optional[int]
    document_id: Optional[int]
    risk_level: RiskLevel
    summary: Tuple[SummaryPoint, ...] = ()
    risky_clause_indices: Tuple[int, ...] = ()
    rationale: str = ""
    clause_count: int = 0
    created_at: Optional[datetime] = None
    metadata: Dict[str, Any] = field(default_factory=dict, compare=False)

    def to_payload(self) -> Dict[str, Any]:
        """Content of the analysis without identity or timestamp."""
        return {
            "document_id": self.document_id,
            "risk_level": self.risk_level.value,
            "summary": [p.to_dict() for p in self.summary],
            "risky_clause_indices": list(self.risky_clause_indices),
            "rationale": self.rationale,
            "clause_count": self.clause_count,
        }

    def to_dict(self) -> Dict[str, Any]:
        data = {"id": self.id}
        data.update(self.to_payload())
        data["created_at"] = self.created_at.isoformat() if self.created_at else None
        return data
