"""Unit tests for the rule-based risk classifier and category detector."""

import pytest

from smart_clause.analyzers import (
    CategoryDetector,
    RiskSignal,
    RuleBasedRiskClassifier,
    build_default_signals,
    detect_category,
)
from smart_clause.analyzers.risk_patterns import UNCLASSIFIED_RATIONALE, order_signals
from smart_clause.models.enums import RiskLevel


@pytest.fixture
def classifier():
    return RuleBasedRiskClassifier()


class TestRiskSignal:
    """Tests for individual RiskSignal rules."""

    def test_matches_is_case_insensitive(self):
        """Test that patterns ignore case."""
        signal = RiskSignal(
            id="test", level=RiskLevel.LOW, patterns=[r"\bgoverning law\b"], rationale="r"
        )

        assert signal.matches("GOVERNING LAW. New York law applies.")

    def test_exclude_pattern_suppresses_match(self):
        """Test that an exclusion pattern vetoes a match."""
        signal = RiskSignal(
            id="test",
            level=RiskLevel.MEDIUM,
            patterns=[r"\bexclusive\b"],
            excludes=[r"\bnon-exclusive\b"],
            rationale="r",
        )

        assert signal.matches("Supplier is the exclusive provider.")
        assert not signal.matches("Supplier grants a non-exclusive license.")

    def test_category_restriction(self):
        """Test that category-restricted signals only apply to their categories."""
        signal = RiskSignal(
            id="test", level=RiskLevel.MEDIUM, patterns=["x"], rationale="r",
            categories=["NDA"],
        )

        assert signal.applies_to("NDA")
        assert signal.applies_to(" nda ")
        assert not signal.applies_to("Lease Agreement")
        assert not signal.applies_to(None)

    def test_unrestricted_signal_applies_everywhere(self):
        """Test that a signal without categories applies to any document."""
        signal = RiskSignal(id="test", level=RiskLevel.LOW, patterns=["x"], rationale="r")

        assert signal.applies_to(None)
        assert signal.applies_to("Service Agreement")

    def test_order_signals_is_stable_within_level(self):
        """Test HIGH > MEDIUM > LOW ordering keeps declaration order per level."""
        signals = [
            RiskSignal(id="low_a", level=RiskLevel.LOW, patterns=["a"], rationale="r"),
            RiskSignal(id="high_a", level=RiskLevel.HIGH, patterns=["a"], rationale="r"),
            RiskSignal(id="low_b", level=RiskLevel.LOW, patterns=["a"], rationale="r"),
            RiskSignal(id="high_b", level=RiskLevel.HIGH, patterns=["a"], rationale="r"),
        ]

        ordered = [s.id for s in order_signals(signals)]

        assert ordered == ["high_a", "high_b", "low_a", "low_b"]

    def test_default_signal_ids_are_unique(self):
        """Test that the built-in rule set has no duplicate ids."""
        ids = [s.id for s in build_default_signals()]

        assert len(ids) == len(set(ids))


class TestRuleBasedRiskClassifier:
    """Tests for RuleBasedRiskClassifier."""

    def test_termination_with_notice_is_medium(self, classifier):
        """Test that a notice-based termination right is flagged MEDIUM."""
        result = classifier.classify(
            "1. Termination. Either party may terminate this Agreement upon 30 days' notice."
        )

        assert result.level == RiskLevel.MEDIUM
        assert result.signal_id == "termination_with_notice"
        assert result.suggestion

    def test_confidentiality_is_low(self, classifier):
        """Test that a plain confidentiality clause is LOW."""
        result = classifier.classify(
            "2. Confidentiality. Each party shall protect Confidential Information."
        )

        assert result.level == RiskLevel.LOW
        assert result.signal_id == "confidentiality"

    def test_termination_without_cause_is_high(self, classifier):
        """Test that at-will termination is flagged HIGH."""
        result = classifier.classify(
            "The Company may terminate this Agreement at any time without cause."
        )

        assert result.level == RiskLevel.HIGH
        assert result.signal_id == "unilateral_termination"

    def test_uncapped_indemnification_is_high(self, classifier):
        """Test that indemnification without a cap is flagged HIGH."""
        result = classifier.classify(
            "Contractor shall indemnify and hold harmless Client from all claims."
        )

        assert result.level == RiskLevel.HIGH
        assert result.signal_id == "uncapped_indemnification"

    def test_capped_indemnification_is_medium(self, classifier):
        """Test that a liability cap downgrades indemnification to MEDIUM."""
        result = classifier.classify(
            "Contractor shall indemnify Client, provided that the total amount "
            "shall not exceed the fees paid."
        )

        assert result.level == RiskLevel.MEDIUM
        assert result.signal_id == "capped_indemnification"

    def test_non_compete_is_high(self, classifier):
        """Test that a non-compete restriction is flagged HIGH."""
        result = classifier.classify(
            "Employee agrees to a non-compete covering all of North America for five years."
        )

        assert result.level == RiskLevel.HIGH
        assert result.signal_id == "non_compete"

    def test_category_specific_signal(self, classifier):
        """Test that perpetual confidentiality is only MEDIUM for NDAs."""
        text = "The obligations of confidentiality shall survive in perpetuity."

        nda_result = classifier.classify(text, category="NDA")
        other_result = classifier.classify(text)

        assert nda_result.level == RiskLevel.MEDIUM
        assert nda_result.signal_id == "perpetual_confidentiality"
        assert other_result.level == RiskLevel.LOW
        assert other_result.signal_id == "confidentiality"

    def test_non_exclusive_license_is_not_exclusivity(self, classifier):
        """Test that the exclusivity rule ignores non-exclusive grants."""
        result = classifier.classify(
            "Licensor grants Licensee a non-exclusive license to use the Software."
        )

        assert result.signal_id != "exclusivity"
        assert result.level == RiskLevel.LOW

    def test_unmatched_clause_defaults_to_low(self, classifier):
        """Test the generic LOW result for clauses no signal matches."""
        result = classifier.classify("The parties met in the offices of the Company.")

        assert result.level == RiskLevel.LOW
        assert result.signal_id is None
        assert result.rationale == UNCLASSIFIED_RATIONALE

    def test_empty_clause_defaults_to_low(self, classifier):
        """Test that empty text never raises."""
        result = classifier.classify("   ")

        assert result.level == RiskLevel.LOW

    def test_whitespace_inside_clause_is_normalized(self, classifier):
        """Test that line breaks inside a phrase do not defeat a pattern."""
        result = classifier.classify("Either party may\nterminate this Agreement.")

        assert result.signal_id == "termination_with_notice"

    def test_higher_level_wins_over_declaration_order(self):
        """Test that a HIGH signal wins even when a LOW one is declared first."""
        classifier = RuleBasedRiskClassifier(signals=[
            RiskSignal(id="low", level=RiskLevel.LOW, patterns=["fee"], rationale="low"),
            RiskSignal(id="high", level=RiskLevel.HIGH, patterns=["fee"], rationale="high"),
        ])

        result = classifier.classify("A fee applies.")

        assert result.signal_id == "high"
        assert result.rationale == "high"

    def test_faulty_signal_degrades_to_low(self):
        """Test that an exception inside a rule yields the generic LOW result."""

        class BrokenSignal(RiskSignal):
            def matches(self, text):
                raise RuntimeError("boom")

        classifier = RuleBasedRiskClassifier(signals=[
            BrokenSignal(id="broken", level=RiskLevel.HIGH, patterns=["x"], rationale="r"),
        ])

        result = classifier.classify("Any clause text.")

        assert result.level == RiskLevel.LOW
        assert result.rationale == UNCLASSIFIED_RATIONALE

    def test_matching_signals_lists_every_hit(self, classifier):
        """Test that matching_signals reports all firing rules in order."""
        ids = [
            s.id for s in classifier.matching_signals(
                "Confidential Information shall be protected; either party may terminate."
            )
        ]

        assert ids.index("termination_with_notice") < ids.index("confidentiality")


class TestCategoryDetector:
    """Tests for CategoryDetector."""

    def test_detects_nda_from_title_and_keywords(self):
        """Test NDA detection from its title and vocabulary."""
        text = (
            "MUTUAL NON-DISCLOSURE AGREEMENT\n"
            "The Disclosing Party shares Confidential Information with the Receiving Party."
        )

        category, score = CategoryDetector().detect(text)

        assert category == "NDA"
        assert score == pytest.approx(1.0)

    def test_detects_lease(self):
        """Test lease detection."""
        text = "RESIDENTIAL LEASE\nLandlord rents the premises to Tenant for one year."

        category, _ = CategoryDetector().detect(text)

        assert category == "Lease Agreement"

    def test_weak_evidence_returns_none(self):
        """Test that a single keyword is below the minimum score."""
        text = (
            "1. Termination. Either party may terminate this Agreement upon 30 days' notice. "
            "2. Confidentiality. Each party shall protect Confidential Information."
        )

        category, score = CategoryDetector().detect(text)

        assert category is None
        assert score < 0.3

    def test_keywords_match_whole_words(self):
        """Test that keywords inside longer words are not counted."""
        text = "Parent Co will review current prices for the premises each quarter."

        category, score = CategoryDetector().detect(text)

        assert category is None
        assert score == pytest.approx(0.15)

    def test_empty_text(self):
        """Test that empty text yields no category."""
        assert CategoryDetector().detect("") == (None, 0.0)

    def test_module_level_helper(self):
        """Test the detect_category convenience function."""
        assert detect_category("EMPLOYMENT AGREEMENT\nThe Employee reports to the Employer.") == (
            "Employment Agreement"
        )
