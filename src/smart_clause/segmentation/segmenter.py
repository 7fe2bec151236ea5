"""Clause segmentation for normalized contract text.

Splits text on numbered section headers ("1.", "2.1", "3.1.") found at a
line start or right after sentence-ending punctuation, and falls back to
blank-line-delimited paragraphs when no header is present.
"""

import re
from typing import Iterator, List, Optional, Tuple

from ..models.document import Clause


# A header number must contain a dot ("1." / "1.1") so plain quantities
# such as "30 Days" never start a clause.
_SECTION_HEADER = re.compile(
    r"(?:^|(?<=[.;:!?)\"']\s))"
    r"(?P<number>\d{1,3}\.(?:\d{1,3}\.?)*)"
    r"[ \t]+(?=[A-Z(])",
    re.MULTILINE,
)

# Numbers after these abbreviations are dates or references: "Jan. 1.", "No. 5."
_ABBREVIATION_BEFORE = re.compile(
    r"\b(?:Jan|Feb|Mar|Apr|Jun|Jul|Aug|Sep|Sept|Oct|Nov|Dec|No|Nos|Sec|Secs|"
    r"Art|Para|Cl|Mr|Mrs|Ms|Dr|St|vs|approx)\.\s$",
    re.IGNORECASE,
)
_ABBREVIATION_WINDOW = 12

_PARAGRAPH_BREAK = re.compile(r"\n[ \t]*\n")

# Title sentence directly after the number: "Termination." / "PAYMENT TERMS\n"
_TITLE = re.compile(r"^(?P<title>[A-Z][^.\n]{0,79}?)(?:\.(?=\s|$)|\n)")

_TITLE_SMALL_WORDS = {
    "a", "an", "and", "as", "at", "by", "for", "in", "of", "on", "or",
    "the", "to", "with", "&",
}
_MAX_TITLE_WORDS = 8


class ClauseSequence:
    """
    Lazy, finite and restartable sequence of clauses.

    Each iteration re-runs a single forward pass over the text, so the
    sequence can be consumed repeatedly and always yields the same clauses.
    """

    def __init__(self, segmenter: "ClauseSegmenter", text: str, document_id: Optional[int]):
        self._segmenter = segmenter
        self._text = text
        self._document_id = document_id

    def __iter__(self) -> Iterator[Clause]:
        return self._segmenter.iter_clauses(self._text, self._document_id)

    def to_list(self) -> List[Clause]:
        return list(self)


class ClauseSegmenter:
    """
    Deterministic clause segmenter.

    Clauses are indexed from zero by position of first appearance.
    Whitespace-only fragments are discarded without taking an index.
    """

    def segment(self, text: str, document_id: Optional[int] = None) -> ClauseSequence:
        """
        Segment normalized text into clauses.

        Args:
            text: Normalized document text.
            document_id: Optional owning document id stamped on each clause.

        Returns:
            ClauseSequence that yields Clause objects in document order.
        """
        return ClauseSequence(self, text, document_id)

    def iter_clauses(self, text: str, document_id: Optional[int] = None) -> Iterator[Clause]:
        """Generate clauses in a single forward pass."""
        headers = self._header_matches(text)
        if headers:
            spans = self._header_spans(text, headers)
        else:
            spans = self._paragraph_spans(text)

        index = 0
        for start, end, number in spans:
            raw = text[start:end]
            stripped = raw.strip()
            if not stripped:
                continue
            offset = start + (len(raw) - len(raw.lstrip()))
            yield Clause(
                document_id=document_id,
                index=index,
                text=stripped,
                heading=self._extract_heading(stripped, number),
                number=number,
                start=offset,
                end=offset + len(stripped),
            )
            index += 1

    @staticmethod
    def _header_matches(text: str) -> List[re.Match]:
        """Section header matches, minus numbers that follow an abbreviation."""
        return [
            match for match in _SECTION_HEADER.finditer(text)
            if not _ABBREVIATION_BEFORE.search(
                text[max(0, match.start() - _ABBREVIATION_WINDOW):match.start()]
            )
        ]

    def _header_spans(
        self, text: str, headers: List[re.Match]
    ) -> Iterator[Tuple[int, int, Optional[str]]]:
        """Yield (start, end, number) spans delimited by section headers."""
        span_start = 0
        number: Optional[str] = None
        for match in headers:
            if match.start() > span_start or number is not None:
                yield span_start, match.start(), number
            span_start = match.start()
            number = match.group("number").rstrip(".")
        yield span_start, len(text), number

    def _paragraph_spans(self, text: str) -> Iterator[Tuple[int, int, Optional[str]]]:
        """Yield (start, end, None) spans delimited by blank lines."""
        span_start = 0
        for match in _PARAGRAPH_BREAK.finditer(text):
            yield span_start, match.start(), None
            span_start = match.end()
        yield span_start, len(text), None

    def _extract_heading(self, clause_text: str, number: Optional[str]) -> Optional[str]:
        """Return the short title that opens a clause, if there is one."""
        body = clause_text
        if number is not None:
            parts = clause_text.split(None, 1)
            body = parts[1] if len(parts) > 1 else ""
        elif "\n" not in body:
            # Unnumbered single-line paragraphs have no separate title.
            return None

        match = _TITLE.match(body)
        if not match:
            return None
        title = match.group("title").strip()
        if len(title) == len(body.strip().rstrip(".")):
            # The whole clause is one short sentence; nothing follows a title.
            return None
        return title if self._looks_like_title(title) else None

    @staticmethod
    def _looks_like_title(candidate: str) -> bool:
        words = candidate.split()
        if not words or len(words) > _MAX_TITLE_WORDS:
            return False
        if candidate.isupper():
            return True
        for position, word in enumerate(words):
            if position > 0 and word.lower() in _TITLE_SMALL_WORDS:
                continue
            first = word[0]
            if first.isalpha() and not first.isupper():
                return False
        return True
