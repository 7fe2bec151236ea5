"""Clause drafting from Jinja2 templates.

Generates a standard clause for a clause family and adjusts its wording
for the requested tone.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Tuple, Union

from jinja2 import DictLoader, Environment

from ..models.enums import ClauseType, Tone


logger = logging.getLogger(__name__)


_TEMPLATES = {
    ClauseType.CONFIDENTIALITY.value: (
        "11.1 Confidential Information. Each party acknowledges that it may be "
        "furnished with or may otherwise receive or have access to information or "
        "material that relates to past, present, or future products, software, "
        "research, development, inventions, processes, techniques, designs, or "
        "technical information and data, and marketing plans (hereinafter the "
        "\"Confidential Information\"). Each party agrees to preserve and protect "
        "the confidentiality of the Confidential Information.\n\n"
        "11.2 Non-Disclosure. Each party agrees that it will not disclose to any "
        "third party or use any Confidential Information disclosed to it by the "
        "other party except as expressly permitted in this Agreement, and will take "
        "reasonable measures to maintain the confidentiality of such information, "
        "which measures shall not be less than the degree of care employed by the "
        "recipient to preserve and safeguard its own confidential information, but "
        "in no event less than a reasonable degree of care.\n\n"
        "11.3 Term of Obligation. The obligations of the parties under this Section "
        "shall continue in full force and effect for a period of three (3) years "
        "from the date of termination or expiration of this Agreement."
    ),
    ClauseType.TERMINATION.value: (
        "8.1 Termination for Convenience. Either party may terminate this Agreement "
        "for any reason upon thirty (30) days' prior written notice to the other "
        "party.\n\n"
        "8.2 Termination for Cause. Either party may terminate this Agreement "
        "immediately upon written notice to the other party if the other party "
        "materially breaches this Agreement and fails to cure such breach within "
        "fifteen (15) business days after receiving written notice thereof.\n\n"
        "8.3 Effect of Termination. Upon termination of this Agreement for any "
        "reason, each party shall promptly return to the other party all property "
        "belonging to the other party, including without limitation all "
        "Confidential Information."
    ),
    ClauseType.PAYMENT.value: (
        "5.1 Fees. Client shall pay the fees set forth in the applicable Statement "
        "of Work. All fees are exclusive of taxes, which Client shall pay as "
        "applicable.\n\n"
        "5.2 Payment Terms. Client shall pay all invoices within thirty (30) days "
        "of receipt. Late payments shall accrue interest at a rate of 1.5% per "
        "month or the highest rate allowed by applicable law, whichever is lower, "
        "from the date such payment was due until the date paid.\n\n"
        "5.3 Disputes. Client shall notify Contractor in writing of any disputed "
        "charges within fifteen (15) days of the invoice date, or such charges "
        "shall be deemed accepted by Client."
    ),
    ClauseType.OTHER.value: (
        "This is a template for the {{ clause_name }} clause type with a "
        "{{ tone }} tone.\n\n"
        "The clause would typically include specific legal language relevant to "
        "this type of provision, with appropriate binding terms and conditions "
        "that protect the party's interests.\n\n"
        "Additional details from your input would be incorporated here: "
        "{{ details or \"No additional details provided.\" }}"
    ),
}

_LEGAL_CONTEXT = {
    ClauseType.CONFIDENTIALITY: (
        "Confidentiality obligations usually survive termination for a fixed "
        "period; trade secrets may justify longer protection."
    ),
    ClauseType.TERMINATION: (
        "Termination rights should state the notice period, the cure period for "
        "breaches and what happens to property and payments afterwards."
    ),
    ClauseType.PAYMENT: (
        "Late-payment interest must not exceed the maximum rate permitted by "
        "applicable law."
    ),
    ClauseType.OTHER: (
        "Review generated language with counsel before relying on it in a "
        "binding agreement."
    ),
}

_CLAUSE_ALIASES = {
    "nda": ClauseType.CONFIDENTIALITY,
    "non-disclosure": ClauseType.CONFIDENTIALITY,
    "confidentiality": ClauseType.CONFIDENTIALITY,
    "termination": ClauseType.TERMINATION,
    "payment": ClauseType.PAYMENT,
    "payment terms": ClauseType.PAYMENT,
}

_TONE_REWRITES: Dict[Tone, List[Tuple[str, str]]] = {
    Tone.FRIENDLY: [(r"\bshall\b", "will"), (r"\bhereinafter\b", "below")],
    Tone.AGGRESSIVE: [(r"\bmay\b", "shall"), (r"\breasonable\b", "strict")],
}


@dataclass(frozen=True)
class GeneratedClause:
    """Drafted clause text plus a short note on its legal context."""
    text: str
    legal_context: str
    clause_type: ClauseType
    tone: Tone

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "legal_context": self.legal_context,
            "clause_type": self.clause_type.value,
            "tone": self.tone.value,
        }


class ClauseGenerator:
    """Drafts standard clauses and rewrites them for tone."""

    def __init__(self):
        self.env = Environment(
            loader=DictLoader(_TEMPLATES),
            autoescape=False,
            keep_trailing_newline=False,
        )

    def generate(
        self,
        clause_type: Union[str, ClauseType],
        tone: Union[str, Tone] = Tone.FORMAL,
        details: str = "",
    ) -> GeneratedClause:
        """
        Generate a clause.

        Args:
            clause_type: Clause family or free-form clause name. Unknown
                names use the generic template.
            tone: Drafting tone.
            details: Extra requirements; used by the generic template.

        Returns:
            GeneratedClause with the drafted text.

        Raises:
            ValueError: If the tone is not supported.
        """
        resolved_tone = self._resolve_tone(tone)
        resolved_type, clause_name = self._resolve_type(clause_type)

        text = self.env.get_template(resolved_type.value).render(
            clause_name=clause_name,
            tone=resolved_tone.value,
            details=(details or "").strip(),
        )
        for pattern, replacement in _TONE_REWRITES.get(resolved_tone, []):
            text = re.sub(pattern, replacement, text)

        logger.info(f"Generated {resolved_type.value} clause with {resolved_tone.value} tone")
        return GeneratedClause(
            text=text,
            legal_context=_LEGAL_CONTEXT[resolved_type],
            clause_type=resolved_type,
            tone=resolved_tone,
        )

    @staticmethod
    def _resolve_tone(tone: Union[str, Tone]) -> Tone:
        if isinstance(tone, Tone):
            return tone
        try:
            return Tone(str(tone).strip().lower())
        except ValueError:
            valid = [t.value for t in Tone]
            raise ValueError(f"Unsupported tone {tone!r}; expected one of {valid}")

    @staticmethod
    def _resolve_type(clause_type: Union[str, ClauseType]) -> Tuple[ClauseType, str]:
        if isinstance(clause_type, ClauseType):
            return clause_type, clause_type.value
        name = str(clause_type).strip()
        return _CLAUSE_ALIASES.get(name.lower(), ClauseType.OTHER), name or "custom"
