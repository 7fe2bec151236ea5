"""Unit tests for text normalization and clause segmentation."""

import pytest

from smart_clause.exceptions import InvalidDocumentError
from smart_clause.segmentation import ClauseSegmenter, TextNormalizer, normalize_text


SAMPLE_CONTRACT = (
    "1. Termination. Either party may terminate this Agreement upon 30 days' notice. "
    "2. Confidentiality. Each party shall protect Confidential Information."
)


class TestTextNormalizer:
    """Tests for TextNormalizer."""

    def test_whitespace_only_text_is_rejected(self):
        """Test that text that is empty after trimming raises InvalidDocumentError."""
        with pytest.raises(InvalidDocumentError):
            normalize_text("   ")

    def test_short_text_is_rejected(self):
        """Test that text below the minimum length is rejected."""
        with pytest.raises(InvalidDocumentError) as exc_info:
            TextNormalizer(min_length=50).normalize("Too short to be a contract.")

        assert exc_info.value.details["min_length"] == 50

    def test_non_string_is_rejected(self):
        """Test that non-string input is rejected."""
        with pytest.raises(InvalidDocumentError):
            normalize_text(None)

    def test_line_endings_and_whitespace(self):
        """Test CRLF conversion and inline whitespace collapsing."""
        text = "This   Agreement\r\nis made\t\tbetween the parties."

        result = normalize_text(text)

        assert result == "This Agreement\nis made between the parties."

    def test_smart_quotes_are_replaced(self):
        """Test that typographic quotes and dashes become ASCII."""
        text = "The “Company” gives 30 days’ notice — in writing."

        result = normalize_text(text)

        assert "\"Company\"" in result
        assert "days' notice" in result
        assert "- in writing" in result

    def test_control_characters_are_removed(self):
        """Test that control and zero-width characters are stripped."""
        result = normalize_text("Each party\x07 shall pro\u200btect the information.")

        assert result == "Each party shall protect the information."

    def test_page_artifacts_are_removed(self):
        """Test removal of page numbers left by PDF extraction."""
        text = (
            "1. Term. The term is one year.\n"
            "Page 1 of 2\n"
            "2. Fees. Fees are payable monthly.\n"
            "- 2 -\n"
            "17"
        )

        result = normalize_text(text)

        assert "Page 1" not in result
        assert "- 2 -" not in result
        assert not result.endswith("17")

    def test_broken_numbering_is_repaired(self):
        """Test that '1 . Term' becomes '1. Term'."""
        result = normalize_text("1 . Term. The term of this Agreement is one year.")

        assert result.startswith("1. Term.")

    def test_excess_blank_lines_are_collapsed(self):
        """Test that paragraph breaks survive but runs of blank lines shrink."""
        result = normalize_text("First paragraph of text.\n\n\n\n\nSecond paragraph of text.")

        assert result == "First paragraph of text.\n\nSecond paragraph of text."

    def test_unicode_line_separators_become_newlines(self):
        """Test that NEL, line and paragraph separators are treated as line breaks."""
        text = (
            "1. Term. The term is one year.\u20282. Fees. Fees are payable monthly."
            "\u2029Third paragraph here.\x85Last line here."
        )

        result = normalize_text(text)

        assert result == (
            "1. Term. The term is one year.\n2. Fees. Fees are payable monthly.\n\n"
            "Third paragraph here.\nLast line here."
        )


class TestClauseSegmenter:
    """Tests for ClauseSegmenter."""

    @pytest.fixture
    def segmenter(self):
        return ClauseSegmenter()

    def test_numbered_sections_on_one_line(self, segmenter):
        """Test splitting inline numbered sections."""
        clauses = segmenter.segment(SAMPLE_CONTRACT).to_list()

        assert len(clauses) == 2
        assert [c.index for c in clauses] == [0, 1]
        assert clauses[0].text.startswith("1. Termination.")
        assert clauses[1].text.startswith("2. Confidentiality.")

    def test_headings_and_numbers(self, segmenter):
        """Test that section titles and numbers are extracted."""
        clauses = segmenter.segment(SAMPLE_CONTRACT).to_list()

        assert clauses[0].heading == "Termination"
        assert clauses[0].number == "1"
        assert clauses[1].heading == "Confidentiality"
        assert clauses[1].number == "2"

    def test_offsets_point_into_source(self, segmenter):
        """Test that start/end offsets reproduce the clause text."""
        for clause in segmenter.segment(SAMPLE_CONTRACT):
            assert SAMPLE_CONTRACT[clause.start:clause.end] == clause.text

    def test_numbered_sections_on_separate_lines(self, segmenter):
        """Test multi-level numbering at line starts."""
        text = (
            "1. Services\n"
            "The Contractor shall provide the services.\n"
            "1.1 Scope. The scope is described in Exhibit A.\n"
            "2. Payment\n"
            "Fees are due monthly."
        )

        clauses = segmenter.segment(text).to_list()

        assert [c.number for c in clauses] == ["1", "1.1", "2"]
        assert clauses[0].heading == "Services"
        assert clauses[2].heading == "Payment"

    def test_preamble_becomes_first_clause(self, segmenter):
        """Test that text before the first header is kept as its own clause."""
        text = (
            "This Agreement is made between Acme and Beta.\n"
            "1. Term. The term is one year.\n"
            "2. Fees. Fees are due monthly."
        )

        clauses = segmenter.segment(text).to_list()

        assert len(clauses) == 3
        assert clauses[0].number is None
        assert clauses[0].text == "This Agreement is made between Acme and Beta."
        assert clauses[1].number == "1"

    def test_quantities_do_not_start_clauses(self, segmenter):
        """Test that numbers without a dot such as '30 Days' are not headers."""
        text = "Payment is due within 30 Days of the invoice date for all services."

        clauses = segmenter.segment(text).to_list()

        assert len(clauses) == 1

    def test_paragraph_fallback(self, segmenter):
        """Test blank-line splitting when no numbered header exists."""
        text = "The parties agree as follows.\n\nThe supplier delivers the goods.\n\nThe buyer pays."

        clauses = segmenter.segment(text).to_list()

        assert len(clauses) == 3
        assert all(c.number is None for c in clauses)
        assert clauses[2].text == "The buyer pays."

    def test_whitespace_fragments_take_no_index(self, segmenter):
        """Test that blank fragments are discarded without consuming an index."""
        text = "First paragraph here.\n\n   \n\nSecond paragraph here."

        clauses = segmenter.segment(text).to_list()

        assert [c.index for c in clauses] == [0, 1]

    def test_sequence_is_restartable(self, segmenter):
        """Test that a clause sequence yields the same clauses on every pass."""
        sequence = segmenter.segment(SAMPLE_CONTRACT, document_id=7)

        first = list(sequence)
        second = list(sequence)

        assert first == second
        assert all(c.document_id == 7 for c in first)

    def test_sentence_only_clause_has_no_heading(self, segmenter):
        """Test that a one-sentence clause is not mistaken for a title."""
        clauses = segmenter.segment("1. Fees are payable monthly in arrears.").to_list()

        assert clauses[0].heading is None
        assert clauses[0].label == "Section 1"

    def test_number_after_abbreviation_is_not_a_section(self, segmenter):
        """Test that dates like 'Jan. 1.' do not start a new clause."""
        text = (
            "1. Term. This Agreement starts on Jan. 1. The term lasts one year.\n"
            "2. Payment. Fees are due monthly."
        )

        clauses = segmenter.segment(text).to_list()

        assert [c.number for c in clauses] == ["1", "2"]
        assert clauses[0].text == (
            "1. Term. This Agreement starts on Jan. 1. The term lasts one year."
        )

    def test_reference_numbers_fall_back_to_paragraphs(self, segmenter):
        """Test that a text whose only number follows 'No.' is not split."""
        text = "Invoice No. 5. Payment is due on receipt of this invoice."

        clauses = segmenter.segment(text).to_list()

        assert len(clauses) == 1
        assert clauses[0].number is None
