"""Document category detection.

Infers the contract category from keyword and title-pattern scoring so
category-restricted risk signals can be applied to documents ingested
without an explicit category.
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional, Pattern, Tuple


@dataclass
class CategoryPattern:
    """Pattern definition for document categorization."""
    category: str
    keywords: List[str]
    title_patterns: List[str]  # Regex patterns matched against the document title
    priority: int = 0  # Higher priority patterns win ties
    _keyword_res: List[Pattern] = field(default_factory=list, init=False, repr=False, compare=False)

    def __post_init__(self):
        # Whole words with an optional plural "s"
        self._keyword_res = [
            re.compile(r"\b" + re.escape(k) + r"s?\b") for k in self.keywords
        ]

    def count_keywords(self, text_lower: str) -> int:
        return sum(1 for k in self._keyword_res if k.search(text_lower))


MIN_CATEGORY_SCORE = 0.3


class CategoryDetector:
    """
    Keyword-based document category detector.

    The first non-empty line is treated as the document title; a title
    match outweighs several keyword hits.
    """

    def __init__(self, min_score: float = MIN_CATEGORY_SCORE):
        self.min_score = min_score
        self._patterns = self._build_patterns()

    def _build_patterns(self) -> List[CategoryPattern]:
        return [
            CategoryPattern(
                category="NDA",
                keywords=[
                    "non-disclosure", "nondisclosure", "confidential information",
                    "disclosing party", "receiving party", "trade secret",
                ],
                title_patterns=[
                    r"(?i)non-?disclosure",
                    r"(?i)confidentiality\s+agreement",
                    r"^NDA\b",
                ],
                priority=10,
            ),
            CategoryPattern(
                category="Employment Agreement",
                keywords=[
                    "employee", "employer", "employment", "salary",
                    "probation", "working hours", "annual leave",
                ],
                title_patterns=[
                    r"(?i)employment\s+(agreement|contract)",
                    r"(?i)offer\s+letter",
                ],
                priority=8,
            ),
            CategoryPattern(
                category="Lease Agreement",
                keywords=[
                    "landlord", "tenant", "lessor", "lessee", "premises",
                    "rent", "security deposit",
                ],
                title_patterns=[
                    r"(?i)\blease\b",
                    r"(?i)rental\s+agreement",
                    r"(?i)tenancy",
                ],
                priority=7,
            ),
            CategoryPattern(
                category="Sales Agreement",
                keywords=[
                    "buyer", "seller", "purchase price", "goods", "delivery",
                    "title to the goods", "warranty",
                ],
                title_patterns=[
                    r"(?i)(sales|purchase)\s+agreement",
                    r"(?i)bill\s+of\s+sale",
                ],
                priority=6,
            ),
            CategoryPattern(
                category="Service Agreement",
                keywords=[
                    "services", "service provider", "contractor", "client",
                    "statement of work", "deliverables", "consultant",
                ],
                title_patterns=[
                    r"(?i)(service|services|consulting)\s+agreement",
                    r"(?i)master\s+services",
                    r"(?i)statement\s+of\s+work",
                ],
                priority=5,
            ),
        ]

    def detect(self, text: str) -> Tuple[Optional[str], float]:
        """
        Detect the category of a document.

        Args:
            text: Normalized document text.

        Returns:
            Tuple of (category or None, confidence score).
        """
        if not text or not text.strip():
            return (None, 0.0)

        title = next((line.strip() for line in text.splitlines() if line.strip()), "")
        text_lower = text.lower()
        best_match: Optional[str] = None
        best_score = 0.0

        for pattern in sorted(self._patterns, key=lambda p: -p.priority):
            score = self._calculate_match_score(text_lower, title, pattern)
            if score > best_score:
                best_score = score
                best_match = pattern.category

        if best_score < self.min_score:
            return (None, best_score)
        return (best_match, best_score)

    def _calculate_match_score(
        self,
        text_lower: str,
        title: str,
        pattern: CategoryPattern,
    ) -> float:
        score = 0.0

        for title_pattern in pattern.title_patterns:
            if re.search(title_pattern, title):
                score += 0.5
                break

        score += 0.15 * pattern.count_keywords(text_lower)

        return min(1.0, score)


_default_detector: Optional[CategoryDetector] = None


def detect_category(text: str) -> Optional[str]:
    """Infer a document category with the default detector, or None."""
    global _default_detector
    if _default_detector is None:
        _default_detector = CategoryDetector()
    return _default_detector.detect(text)[0]
