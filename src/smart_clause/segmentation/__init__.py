"""Text normalization and clause segmentation."""

from .normalizer import MIN_DOCUMENT_LENGTH, TextNormalizer, normalize_text
from .segmenter import ClauseSegmenter, ClauseSequence

__all__ = [
    "MIN_DOCUMENT_LENGTH",
    "TextNormalizer",
    "normalize_text",
    "ClauseSegmenter",
    "ClauseSequence",
]
