"""Key term extraction for analysis summaries.

Picks out the business terms a reader looks for first (notice period,
payment deadline, initial term, confidentiality duration, automatic
renewal) and phrases each as a plain-language summary note.
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional, Pattern


_DURATION = r"\(?\d+\)?\s+(?:business\s+|calendar\s+)?(?:days?|weeks?|months?|years?)"


@dataclass
class KeyTermPattern:
    """Pattern definition for one key term."""
    name: str
    pattern: str  # may define a ``value`` group
    note: str  # str.format template; ``{value}`` receives the cleaned value
    _compiled: Optional[Pattern] = field(default=None, init=False, repr=False, compare=False)

    def __post_init__(self):
        self._compiled = re.compile(self.pattern, re.IGNORECASE)

    def extract(self, text: str) -> Optional[str]:
        match = self._compiled.search(text)
        if not match:
            return None
        if "value" not in match.groupdict():
            return self.note
        value = match.group("value").replace("(", "").replace(")", "")
        return self.note.format(value=" ".join(value.split()))


def build_default_key_terms() -> List[KeyTermPattern]:
    """Build the built-in key term patterns in summary order."""
    return [
        KeyTermPattern(
            name="initial_term",
            pattern=rf"\b(?:initial\s+)?term\s+of\s+(?:[a-z]+\s+)?(?P<value>{_DURATION})",
            note="The agreement runs for an initial term of {value}.",
        ),
        KeyTermPattern(
            name="auto_renewal",
            pattern=r"\b(?:automatically\s+renew\w*|renew\w*\s+automatically|auto-?renew\w*)",
            note="The agreement renews automatically unless notice is given.",
        ),
        KeyTermPattern(
            name="notice_period",
            pattern=(
                rf"(?P<value>{_DURATION})'?\s+(?:prior\s+)?(?:written\s+)?"
                r"(?:advance\s+)?notice"
            ),
            note="Termination requires notice of {value}.",
        ),
        KeyTermPattern(
            name="payment_deadline",
            pattern=(
                r"\b(?:pay|paid|payment|payable|invoice)\w*\b[^.]*?\bwithin\s+"
                rf"(?:[a-z]+\s+)?(?P<value>{_DURATION})"
            ),
            note="Payment is due within {value}.",
        ),
        KeyTermPattern(
            name="confidentiality_duration",
            pattern=(
                r"\bconfidential\w*\b[^.]*?\b(?:for|period\s+of)\s+"
                r"(?:[a-z]+\s+)?(?P<value>\(?\d+\)?\s+years?)"
            ),
            note="Confidentiality obligations last {value}.",
        ),
    ]


class KeyTermExtractor:
    """
    Extracts summary notes for the key terms a document states.

    Each pattern contributes at most one note, taken from its first match,
    so the same text always yields the same notes in the same order.
    """

    def __init__(self, patterns: Optional[List[KeyTermPattern]] = None):
        self._patterns = patterns if patterns is not None else build_default_key_terms()

    def extract(self, text: str) -> List[str]:
        """
        Extract key term notes from document text.

        Args:
            text: Normalized document text.

        Returns:
            Notes in pattern order; empty when no key term is stated.
        """
        notes = []
        for pattern in self._patterns:
            note = pattern.extract(text or "")
            if note and note not in notes:
                notes.append(note)
        return notes
