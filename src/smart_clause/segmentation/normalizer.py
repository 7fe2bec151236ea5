"""Text normalization applied to extracted contract text before segmentation."""

import re
import unicodedata

from ..exceptions import InvalidDocumentError


MIN_DOCUMENT_LENGTH = 20

_QUOTE_TRANSLATION = str.maketrans({
    "\u2018": "'",
    "\u2019": "'",
    "\u201a": "'",
    "\u201b": "'",
    "\u2032": "'",
    "\u201c": "\"",
    "\u201d": "\"",
    "\u201e": "\"",
    "\u201f": "\"",
    "\u2013": "-",
    "\u2014": "-",
    "\u2212": "-",
})

# Unicode line and paragraph separators (NEL, LS, PS)
_LINE_SEPARATORS = str.maketrans({
    "\x85": "\n",
    "\u2028": "\n",
    "\u2029": "\n\n",
})

# Everything below 0x20 except \t and \n, DEL, C1 controls and zero-width marks
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b-\x1f\x7f-\x9f\u200b-\u200d\u2060\ufeff]")
_INLINE_WHITESPACE = re.compile(r"[ \t]+")
_EXCESS_BLANK_LINES = re.compile(r"\n{3,}")

_PAGE_ARTIFACTS = [
    re.compile(r"^\d{1,4}$"),
    re.compile(r"^-\s*\d{1,4}\s*-$"),
    re.compile(r"(?i)^page\s+\d+(\s+of\s+\d+)?$"),
]

# "1 . Term" -> "1. Term", "2.1 . Fees" -> "2.1. Fees"
_BROKEN_NUMBERING = re.compile(r"^(\d+(?:\.\d+)*)\s+\.(?=\s|$)")


class TextNormalizer:
    """
    Canonicalizes raw extracted text.

    Normalizes encoding and line endings, strips control characters,
    collapses whitespace and removes page-numbering artifacts left by
    PDF/DOCX extraction. Paragraph breaks (single blank lines) are kept
    because the segmenter falls back to them.
    """

    def __init__(self, min_length: int = MIN_DOCUMENT_LENGTH):
        self.min_length = min_length

    def normalize(self, text: str) -> str:
        """
        Normalize raw document text.

        Args:
            text: Raw extracted text.

        Returns:
            Normalized text.

        Raises:
            InvalidDocumentError: If the input is not a string, or the
                normalized text is empty or shorter than ``min_length``.
        """
        if not isinstance(text, str):
            raise InvalidDocumentError(
                message="Document text must be a string",
                details={"type": type(text).__name__},
            )

        normalized = text.replace("\r\n", "\n").replace("\r", "\n")
        normalized = normalized.replace("\f", "\n\n")
        normalized = normalized.translate(_LINE_SEPARATORS)
        normalized = unicodedata.normalize("NFKC", normalized)
        normalized = normalized.translate(_QUOTE_TRANSLATION)
        normalized = _CONTROL_CHARS.sub("", normalized)

        lines = []
        for line in normalized.split("\n"):
            line = _INLINE_WHITESPACE.sub(" ", line).strip()
            if line and self._is_page_artifact(line):
                continue
            lines.append(_BROKEN_NUMBERING.sub(r"\1.", line))

        normalized = _EXCESS_BLANK_LINES.sub("\n\n", "\n".join(lines)).strip()

        if len(normalized) < max(self.min_length, 1):
            raise InvalidDocumentError(
                message=(
                    "Document text is empty or too short to analyze "
                    f"({len(normalized)} < {self.min_length} characters)"
                ),
                details={"length": len(normalized), "min_length": self.min_length},
            )

        return normalized

    @staticmethod
    def _is_page_artifact(line: str) -> bool:
        return any(pattern.match(line) for pattern in _PAGE_ARTIFACTS)


def normalize_text(text: str, min_length: int = MIN_DOCUMENT_LENGTH) -> str:
    """Normalize text with a default-configured TextNormalizer."""
    return TextNormalizer(min_length=min_length).normalize(text)
