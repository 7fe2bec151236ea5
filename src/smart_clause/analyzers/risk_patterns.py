"""Lexical risk signals for clause classification.

Each signal is a small rule: a set of regex patterns of which any one
must match, optional exclusion patterns of which none may match, and an
optional list of document categories the rule is restricted to.
Signals are evaluated HIGH first, then MEDIUM, then LOW; within a level
they keep their declaration order.
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional, Pattern, Sequence

from ..models.enums import RiskLevel


UNCLASSIFIED_RATIONALE = (
    "No notable risk signals were detected in this clause; it reads as a "
    "standard provision."
)


@dataclass
class RiskSignal:
    """Lexical rule that maps matching clause text to a risk level."""
    id: str
    level: RiskLevel
    patterns: List[str]
    rationale: str
    suggestion: Optional[str] = None
    excludes: List[str] = field(default_factory=list)
    categories: List[str] = field(default_factory=list)  # empty = any category
    description: Optional[str] = None
    _compiled: List[Pattern] = field(default_factory=list, init=False, repr=False, compare=False)
    _compiled_excludes: List[Pattern] = field(default_factory=list, init=False, repr=False, compare=False)

    def __post_init__(self):
        if self.excludes is None:
            self.excludes = []
        if self.categories is None:
            self.categories = []
        self._compiled = [re.compile(p, re.IGNORECASE) for p in self.patterns]
        self._compiled_excludes = [re.compile(p, re.IGNORECASE) for p in self.excludes]

    def applies_to(self, category: Optional[str]) -> bool:
        """Check whether the signal is active for a document category."""
        if not self.categories:
            return True
        if not category:
            return False
        return category.strip().lower() in {c.lower() for c in self.categories}

    def matches(self, text: str) -> bool:
        """Check if text triggers this signal."""
        if not any(p.search(text) for p in self._compiled):
            return False
        return not any(p.search(text) for p in self._compiled_excludes)


def order_signals(signals: Sequence[RiskSignal]) -> List[RiskSignal]:
    """Order signals HIGH > MEDIUM > LOW, keeping declaration order within a level."""
    return sorted(signals, key=lambda s: -s.level.rank)


_LIABILITY_CAP = (
    r"\b(cap|capped|limited to|shall not exceed|not to exceed|"
    r"maximum aggregate|in no event exceed)\b"
)


def build_default_signals() -> List[RiskSignal]:
    """Build the built-in signal set in declaration order."""
    return [
        # HIGH
        RiskSignal(
            id="unilateral_termination",
            level=RiskLevel.HIGH,
            patterns=[
                r"\bterminat\w*\b[^.]*\b(at any time|immediately)\b[^.]*\bwithout\b[^.]*\b(cause|notice|reason)\b",
                r"\bsole (and absolute )?discretion\b[^.]*\bterminat\w*",
                r"\bterminat\w*\b[^.]*\bsole (and absolute )?discretion\b",
                r"\bterminat\w*\b[^.]*\bwithout (any )?(prior )?notice\b",
            ],
            rationale=(
                "One party can end the agreement at will, without notice or "
                "cause, leaving the other party exposed to sudden loss of the "
                "relationship."
            ),
            suggestion=(
                "Either party may terminate this Agreement for convenience upon "
                "thirty (30) days' prior written notice to the other party."
            ),
        ),
        RiskSignal(
            id="non_compete",
            level=RiskLevel.HIGH,
            patterns=[
                r"\bnon-?compet\w*",
                r"\bnot\b[^.]*\b(engage|participate)\b[^.]*\bcompetitive\b",
                r"\bshall not compete\b",
            ],
            rationale=(
                "Non-compete restriction; overly broad duration or geographic "
                "scope may be unenforceable and can restrict future business."
            ),
            suggestion=(
                "Limit the restriction to substantially similar services, a "
                "period of no more than one (1) year, and the regions where "
                "services were actually provided."
            ),
        ),
        RiskSignal(
            id="uncapped_indemnification",
            level=RiskLevel.HIGH,
            patterns=[r"\bindemnif\w*", r"\bhold\s+harmless\b"],
            excludes=[_LIABILITY_CAP],
            rationale=(
                "Indemnification obligation without a liability cap places a "
                "potentially unlimited burden on the indemnifying party."
            ),
            suggestion=(
                "Limit indemnification to third-party claims arising from gross "
                "negligence or willful misconduct, and cap it at the fees paid "
                "in the preceding twelve (12) months."
            ),
        ),
        RiskSignal(
            id="unlimited_liability",
            level=RiskLevel.HIGH,
            patterns=[
                r"\bunlimited\b[^.]*\bliabilit\w*",
                r"\bliabilit\w*\b[^.]*\bunlimited\b",
                r"\bwithout (any )?limitation of liability\b",
            ],
            rationale="Liability is expressly unlimited.",
            suggestion=(
                "Cap each party's aggregate liability at the amounts paid under "
                "this Agreement in the twelve (12) months preceding the claim."
            ),
        ),
        RiskSignal(
            id="ip_assignment",
            level=RiskLevel.HIGH,
            patterns=[
                r"\bassign\w*\b[^.]*\b(all|any)\b[^.]*\b(intellectual property|work product|inventions)\b",
                r"\b(intellectual property|work product)\b[^.]*\bassign\w*\b[^.]*\bwithout limitation\b",
            ],
            excludes=[r"\blicen[cs]e\s+back\b", r"\bpre-?existing\b"],
            rationale=(
                "All work product and intellectual property is assigned without "
                "limitation, including materials created before the agreement."
            ),
            suggestion=(
                "Assign only deliverables created specifically under this "
                "Agreement and retain ownership of pre-existing materials."
            ),
        ),
        # MEDIUM
        RiskSignal(
            id="termination_with_notice",
            level=RiskLevel.MEDIUM,
            patterns=[
                r"\bmay\s+terminate\b",
                r"\bright\s+to\s+terminate\b",
                r"\btermination\s+for\s+(convenience|cause)\b",
                r"\bterminat\w*\b[^.]*\bnotice\b",
            ],
            rationale=(
                "The agreement can be terminated early; check the notice period "
                "and what happens to outstanding fees and deliverables."
            ),
            suggestion=(
                "Specify written notice of at least thirty (30) days and how "
                "fees and work in progress are settled on termination."
            ),
        ),
        RiskSignal(
            id="auto_renewal",
            level=RiskLevel.MEDIUM,
            patterns=[
                r"\bautomatic(ally)?\s+renew",
                r"\bauto-?renew",
                r"\brenew\w*\s+automatically\b",
                r"\bsuccessive\s+(renewal\s+)?terms?\b",
            ],
            rationale="The term renews automatically unless a party opts out in time.",
            suggestion=(
                "Require an affirmative renewal or a reminder notice sixty (60) "
                "days before the renewal date."
            ),
        ),
        RiskSignal(
            id="capped_indemnification",
            level=RiskLevel.MEDIUM,
            patterns=[r"\bindemnif\w*", r"\bhold\s+harmless\b"],
            rationale=(
                "Indemnification obligation is present but subject to a cap; "
                "confirm the cap and the covered claims are acceptable."
            ),
        ),
        RiskSignal(
            id="limitation_of_liability",
            level=RiskLevel.MEDIUM,
            patterns=[
                r"\blimitation\s+of\s+liability\b",
                r"\bliabilit\w*\b[^.]*\b(limited|cap|capped|exceed)\b",
                r"\b(indirect|consequential|punitive)\s+damages\b",
            ],
            rationale=(
                "Liability is limited; consider whether the cap and excluded "
                "damages leave you adequately protected."
            ),
        ),
        RiskSignal(
            id="late_payment_penalty",
            level=RiskLevel.MEDIUM,
            patterns=[
                r"\blate\s+(payment|fee)s?\b",
                r"\binterest\b[^.]*\b(per\s+month|overdue|late)\b",
                r"\bpenalt(y|ies)\b",
            ],
            rationale="Late payment triggers interest or penalties.",
            suggestion=(
                "Cap late-payment interest at the lower of 1% per month or the "
                "maximum rate permitted by law, with a grace period."
            ),
        ),
        RiskSignal(
            id="payment_terms",
            level=RiskLevel.MEDIUM,
            patterns=[
                r"\bpay(ment|able)?\b[^.]*\bwithin\s+\w+",
                r"\binvoice\w*\b",
            ],
            rationale="Payment obligations and deadlines apply; confirm they are workable.",
        ),
        RiskSignal(
            id="exclusivity",
            level=RiskLevel.MEDIUM,
            patterns=[r"\bexclusiv\w*"],
            excludes=[r"\bnon-?exclusiv\w*"],
            rationale="Exclusivity limits the ability to work with other parties.",
            suggestion="Limit exclusivity to a defined scope and a fixed period.",
        ),
        RiskSignal(
            id="unilateral_amendment",
            level=RiskLevel.MEDIUM,
            patterns=[
                r"\bmay\s+(amend|modify|change)\b[^.]*\b(at any time|from time to time|sole discretion)\b",
            ],
            rationale="One party may change the terms without the other's consent.",
            suggestion="Require amendments to be in writing and signed by both parties.",
        ),
        RiskSignal(
            id="perpetual_confidentiality",
            level=RiskLevel.MEDIUM,
            patterns=[
                r"\bconfidential\w*\b[^.]*\b(perpetu\w*|indefinite\w*)\b",
                r"\b(perpetu\w*|indefinite\w*)\b[^.]*\bconfidential\w*",
            ],
            categories=["NDA"],
            rationale=(
                "Confidentiality obligations never expire, which is unusual for "
                "a non-disclosure agreement."
            ),
            suggestion=(
                "Limit confidentiality obligations to three (3) years after "
                "disclosure, except for trade secrets."
            ),
        ),
        # LOW
        RiskSignal(
            id="confidentiality",
            level=RiskLevel.LOW,
            patterns=[r"\bconfidential\w*"],
            rationale="Standard confidentiality obligation protecting shared information.",
        ),
        RiskSignal(
            id="governing_law",
            level=RiskLevel.LOW,
            patterns=[r"\bgoverning\s+law\b", r"\bgoverned\s+by\b", r"\bjurisdiction\b"],
            rationale="Sets the governing law and forum for disputes.",
        ),
        RiskSignal(
            id="notices",
            level=RiskLevel.LOW,
            patterns=[r"\bnotices?\b[^.]*\b(in writing|written)\b"],
            rationale="Describes how formal notices must be delivered.",
        ),
        RiskSignal(
            id="entire_agreement",
            level=RiskLevel.LOW,
            patterns=[r"\bentire\s+agreement\b", r"\bsupersedes?\b"],
            rationale="Standard entire-agreement clause.",
        ),
        RiskSignal(
            id="severability",
            level=RiskLevel.LOW,
            patterns=[r"\bseverab\w*", r"\binvalid\s+or\s+unenforceable\b"],
            rationale="Standard severability clause.",
        ),
    ]
