"""Analysis aggregation.

Reduces the per-clause assessments of one run into a document-level
Analysis: overall risk level, risky clause indices, rationale and a
short summary with display severities.
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, FrozenSet, List, Optional, Sequence, Tuple

from ..exceptions import AggregationError
from ..models.analysis import Analysis, ClauseAssessment, SummaryPoint
from ..models.enums import RiskLevel, SummarySeverity


logger = logging.getLogger(__name__)


DEFAULT_MAX_SUMMARY_POINTS = 8
DEFAULT_OVERLAP_THRESHOLD = 0.5

_SEVERITY_BY_LEVEL = {
    RiskLevel.LOW: SummarySeverity.SUCCESS,
    RiskLevel.MEDIUM: SummarySeverity.WARNING,
    RiskLevel.HIGH: SummarySeverity.DANGER,
}

# Fallback wording heuristic for points no assessment justifies
_DANGER_WORDS = ("risk", "concern", "excessive", "broad")
_WARNING_WORDS = ("caution", "consider", "indemnification", "liability")

_TOKEN = re.compile(r"[a-z0-9]+")
_STOPWORDS = frozenset({
    "a", "an", "and", "are", "as", "at", "be", "by", "for", "from", "has",
    "in", "is", "it", "its", "of", "on", "or", "that", "the", "this", "to",
    "was", "were", "will", "with", "shall", "may", "any", "all", "each",
})

_OVERVIEW_RANK = 99


def _tokens(text: str) -> FrozenSet[str]:
    return frozenset(t for t in _TOKEN.findall(text.lower()) if t not in _STOPWORDS)


@dataclass(frozen=True)
class _Candidate:
    order: int
    rank: int
    point: SummaryPoint


class AnalysisAggregator:
    """
    Pure reduction from clause assessments to an Analysis.

    The same assessments always produce the same payload, so re-running
    aggregation is idempotent.
    """

    def __init__(
        self,
        max_summary_points: int = DEFAULT_MAX_SUMMARY_POINTS,
        overlap_threshold: float = DEFAULT_OVERLAP_THRESHOLD,
    ):
        if max_summary_points < 1:
            raise ValueError("max_summary_points must be at least 1")
        self.max_summary_points = max_summary_points
        self.overlap_threshold = overlap_threshold

    def aggregate(
        self,
        document_id: Optional[int],
        assessments: Sequence[ClauseAssessment],
        created_at: Optional[datetime] = None,
        notes: Sequence[str] = (),
    ) -> Analysis:
        """
        Aggregate clause assessments into an Analysis.

        Args:
            document_id: Owning document id.
            assessments: One assessment per clause, in any order.
            created_at: Optional timestamp stamped on the result.
            notes: Optional free-text summary points (e.g. from an external
                summarizer); their severity is tagged against the assessments.

        Returns:
            Analysis with ``id=None``; identity is assigned on persistence.

        Raises:
            AggregationError: If two assessments share a clause index.
        """
        ordered = self._order(assessments)
        risk_level = max((a.risk_level for a in ordered), default=RiskLevel.LOW)
        risky = tuple(a.clause_index for a in ordered if a.risk_level.is_flagged)
        counts = self._level_counts(ordered)

        summary = self._build_summary(ordered, risk_level, risky, notes)

        logger.debug(
            f"Aggregated {len(ordered)} assessments for document {document_id}: "
            f"level={risk_level.value}, risky={list(risky)}"
        )

        return Analysis(
            id=None,
            document_id=document_id,
            risk_level=risk_level,
            summary=summary,
            risky_clause_indices=risky,
            rationale=self._build_rationale(ordered, risk_level, counts),
            clause_count=len(ordered),
            created_at=created_at,
            metadata={"level_counts": counts},
        )

    def tag_severity(
        self,
        text: str,
        assessments: Sequence[ClauseAssessment],
    ) -> Tuple[SummarySeverity, Tuple[int, ...]]:
        """
        Tag a free-text summary point.

        The assessments whose clause text and rationale cover at least
        ``overlap_threshold`` of the point's tokens justify it; the most
        severe of them sets the severity. Without a justifying assessment
        the wording heuristic decides.

        Returns:
            Tuple of (severity, justifying clause indices).
        """
        point_tokens = _tokens(text)
        justifying: List[ClauseAssessment] = []
        if point_tokens:
            for assessment in assessments:
                basis = _tokens(f"{assessment.clause_text} {assessment.rationale}")
                overlap = len(point_tokens & basis) / len(point_tokens)
                if overlap >= self.overlap_threshold:
                    justifying.append(assessment)

        if justifying:
            level = max(a.risk_level for a in justifying)
            return _SEVERITY_BY_LEVEL[level], tuple(a.clause_index for a in justifying)
        return self._lexical_severity(text), ()

    @staticmethod
    def _lexical_severity(text: str) -> SummarySeverity:
        lower = text.lower()
        if any(word in lower for word in _DANGER_WORDS):
            return SummarySeverity.DANGER
        if any(word in lower for word in _WARNING_WORDS):
            return SummarySeverity.WARNING
        return SummarySeverity.SUCCESS

    def _order(self, assessments: Sequence[ClauseAssessment]) -> List[ClauseAssessment]:
        ordered = sorted(assessments, key=lambda a: a.clause_index)
        seen = set()
        for assessment in ordered:
            if assessment.clause_index in seen:
                raise AggregationError(
                    message=f"Duplicate assessment for clause {assessment.clause_index}",
                    details={"clause_index": assessment.clause_index},
                )
            seen.add(assessment.clause_index)
        return ordered

    @staticmethod
    def _level_counts(ordered: Sequence[ClauseAssessment]) -> Dict[str, int]:
        counts = {level.value: 0 for level in RiskLevel}
        for assessment in ordered:
            counts[assessment.risk_level.value] += 1
        return counts

    @staticmethod
    def _label(assessment: ClauseAssessment) -> str:
        return assessment.heading or f"Clause {assessment.clause_index + 1}"

    def _build_summary(
        self,
        ordered: Sequence[ClauseAssessment],
        risk_level: RiskLevel,
        risky: Tuple[int, ...],
        notes: Sequence[str],
    ) -> Tuple[SummaryPoint, ...]:
        candidates = [_Candidate(
            order=-1,
            rank=_OVERVIEW_RANK,
            point=self._overview_point(ordered, risk_level, risky),
        )]

        for assessment in ordered:
            if not assessment.risk_level.is_flagged and assessment.signal_id is None:
                continue
            plain = f"{self._label(assessment)}: {assessment.rationale}"
            if assessment.risk_level.is_flagged:
                text = (
                    f"{self._label(assessment)} ({assessment.risk_level.value} risk): "
                    f"{assessment.rationale}"
                )
            else:
                text = plain
            # Tagged on the text without the level marker
            severity, _ = self.tag_severity(plain, [assessment])
            candidates.append(_Candidate(
                order=assessment.clause_index,
                rank=assessment.risk_level.rank,
                point=SummaryPoint(
                    text=text,
                    severity=severity,
                    source_indices=(assessment.clause_index,),
                ),
            ))

        # Free-text notes follow the clause points
        note_base = (ordered[-1].clause_index + 1) if ordered else 0
        for offset, note in enumerate(n.strip() for n in notes):
            if not note:
                continue
            severity, sources = self.tag_severity(note, ordered)
            rank = {
                SummarySeverity.SUCCESS: 0,
                SummarySeverity.WARNING: 1,
                SummarySeverity.DANGER: 2,
            }[severity]
            candidates.append(_Candidate(
                order=note_base + offset,
                rank=rank,
                point=SummaryPoint(text=note, severity=severity, source_indices=sources),
            ))

        if len(candidates) > self.max_summary_points:
            kept = sorted(candidates, key=lambda c: (-c.rank, c.order))
            candidates = kept[:self.max_summary_points]
        candidates.sort(key=lambda c: c.order)
        return tuple(c.point for c in candidates)

    @staticmethod
    def _overview_point(
        ordered: Sequence[ClauseAssessment],
        risk_level: RiskLevel,
        risky: Tuple[int, ...],
    ) -> SummaryPoint:
        total = len(ordered)
        if total == 0:
            return SummaryPoint(
                text="No clauses were found to assess.",
                severity=SummarySeverity.SUCCESS,
            )
        if not risky:
            return SummaryPoint(
                text=f"Overall risk is low: none of the {total} clauses were flagged.",
                severity=SummarySeverity.SUCCESS,
                source_indices=tuple(a.clause_index for a in ordered),
            )
        return SummaryPoint(
            text=(
                f"Overall risk is {risk_level.value}: {len(risky)} of {total} "
                f"clauses need attention."
            ),
            severity=_SEVERITY_BY_LEVEL[risk_level],
            source_indices=risky,
        )

    def _build_rationale(
        self,
        ordered: Sequence[ClauseAssessment],
        risk_level: RiskLevel,
        counts: Dict[str, int],
    ) -> str:
        total = len(ordered)
        if total == 0:
            return "No clauses were assessed; the document is treated as low risk."
        if risk_level == RiskLevel.LOW:
            return f"All {total} clauses were assessed as low risk."

        worst = [self._label(a) for a in ordered if a.risk_level == risk_level]
        return (
            f"{total} clauses assessed: {counts['high']} high, "
            f"{counts['medium']} medium and {counts['low']} low risk. "
            f"Document risk is {risk_level.value} because of: {', '.join(worst)}."
        )
