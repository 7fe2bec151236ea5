"""Unit tests for the Configuration Manager."""

import json

import pytest

from smart_clause.analyzers import RuleBasedRiskClassifier, build_default_signals
from smart_clause.config import (
    ConfigurationError,
    ConfigurationManager,
    ValidationResult,
)
from smart_clause.models.enums import RiskLevel
from smart_clause.qa import TemplateAnswerGenerator, build_default_topics


def signal_dict(**overrides):
    data = {
        "id": "force_majeure",
        "level": "medium",
        "patterns": [r"\bforce\s+majeure\b"],
        "rationale": "Force majeure excuses performance in broad circumstances.",
        "suggestion": "List the qualifying events explicitly.",
    }
    data.update(overrides)
    return data


def topic_dict(**overrides):
    data = {
        "name": "warranty",
        "keywords": ["warrant", "guarantee"],
        "document_patterns": [r"\bwarrant\w*"],
        "fact_pattern": r"(?P<value>\d+\s+(?:days|months|years))",
        "template": "{% if fact %}The warranty lasts {{ fact }}. {% endif %}"
                    "It states: \"{{ quote }}\"",
        "fallback": "I could not find a warranty in this contract.",
    }
    data.update(overrides)
    return data


class TestRiskSignals:
    """Tests for risk signal configuration."""

    def test_load_from_list(self):
        """Test loading risk signals from a list."""
        manager = ConfigurationManager()

        result = manager.load_risk_signals([signal_dict()])

        assert result.is_valid
        assert manager.is_loaded
        signal = manager.get_risk_signal("force_majeure")
        assert signal.level == RiskLevel.MEDIUM
        assert signal.matches("Neither party is liable for Force Majeure events.")

    def test_load_from_dict_with_defaults(self):
        """Test extending the built-in signals."""
        manager = ConfigurationManager()

        manager.load_risk_signals({"signals": [signal_dict()], "include_defaults": True})

        signals = manager.configuration.risk_signals
        assert len(signals) == len(build_default_signals()) + 1
        assert signals[-1].id == "force_majeure"

    def test_load_from_file(self, tmp_path):
        """Test loading risk signals from a JSON file."""
        path = tmp_path / "signals.json"
        path.write_text(json.dumps({"signals": [signal_dict()]}), encoding="utf-8")
        manager = ConfigurationManager()

        result = manager.load_risk_signals(path)

        assert result.is_valid
        assert [s.id for s in manager.configuration.risk_signals] == ["force_majeure"]

    def test_missing_required_field(self):
        """Test validation fails for missing required fields."""
        manager = ConfigurationManager()
        data = signal_dict()
        del data["rationale"]

        with pytest.raises(ConfigurationError) as exc_info:
            manager.load_risk_signals([data])

        assert "Missing required field 'rationale'" in str(exc_info.value.validation_result.errors)

    def test_invalid_level(self):
        """Test validation fails for unknown risk levels."""
        manager = ConfigurationManager()

        with pytest.raises(ConfigurationError) as exc_info:
            manager.load_risk_signals([signal_dict(level="critical")])

        assert "'level' must be one of" in str(exc_info.value.validation_result.errors)

    def test_invalid_regex(self):
        """Test validation fails for patterns that do not compile."""
        manager = ConfigurationManager()

        with pytest.raises(ConfigurationError) as exc_info:
            manager.load_risk_signals([signal_dict(patterns=["(unclosed"])])

        assert "invalid regex" in str(exc_info.value.validation_result.errors)

    def test_duplicate_ids(self):
        """Test validation fails for duplicate IDs, including clashes with defaults."""
        manager = ConfigurationManager()

        with pytest.raises(ConfigurationError) as exc_info:
            manager.load_risk_signals({
                "signals": [signal_dict(id="confidentiality")],
                "include_defaults": True,
            })

        assert "Duplicate risk signal IDs" in str(exc_info.value.validation_result.errors)

    def test_failed_load_keeps_previous_configuration(self):
        """Test that an invalid load does not replace the current signals."""
        manager = ConfigurationManager()
        manager.load_risk_signals([signal_dict()])

        with pytest.raises(ConfigurationError):
            manager.load_risk_signals([signal_dict(level="nope")])

        assert [s.id for s in manager.configuration.risk_signals] == ["force_majeure"]

    def test_empty_list_warns(self):
        """Test that an empty signal list is valid but warns."""
        manager = ConfigurationManager()

        result = manager.load_risk_signals([])

        assert result.is_valid
        assert result.warnings

    def test_loaded_signals_drive_classifier(self):
        """Test that configured signals plug into the rule-based classifier."""
        manager = ConfigurationManager()
        manager.load_risk_signals([signal_dict()])

        classifier = RuleBasedRiskClassifier(signals=manager.configuration.risk_signals)
        result = classifier.classify("Delays caused by force majeure are excused.")

        assert result.signal_id == "force_majeure"
        assert result.suggestion == "List the qualifying events explicitly."


class TestAnswerTopics:
    """Tests for answer topic configuration."""

    def test_load_topics(self):
        """Test loading a valid answer topic."""
        manager = ConfigurationManager()

        result = manager.load_answer_topics([topic_dict()])

        assert result.is_valid
        assert manager.get_answer_topic("warranty") is not None

    def test_loaded_topic_answers_questions(self):
        """Test that a configured topic is used by the answer generator."""
        manager = ConfigurationManager()
        manager.load_answer_topics({"topics": [topic_dict()], "include_defaults": True})
        generator = TemplateAnswerGenerator(topics=manager.configuration.answer_topics)

        answer = generator.answer(
            "The Seller warrants the goods for 12 months from delivery.",
            None, (), "Is there a warranty?",
        )

        assert answer.startswith("The warranty lasts 12 months.")

    def test_defaults_are_appended(self):
        """Test that included defaults follow the configured topics."""
        manager = ConfigurationManager()

        manager.load_answer_topics({"topics": [topic_dict()], "include_defaults": True})

        names = [t.name for t in manager.configuration.answer_topics]
        assert names[0] == "warranty"
        assert names[1:] == [t.name for t in build_default_topics()]

    def test_invalid_template(self):
        """Test validation fails for templates with syntax errors."""
        manager = ConfigurationManager()

        with pytest.raises(ConfigurationError) as exc_info:
            manager.load_answer_topics([topic_dict(template="{% if fact %}unclosed")])

        assert "invalid template" in str(exc_info.value.validation_result.errors)

    def test_fact_pattern_requires_value_group(self):
        """Test validation fails for fact patterns without a 'value' group."""
        manager = ConfigurationManager()

        with pytest.raises(ConfigurationError) as exc_info:
            manager.load_answer_topics([topic_dict(fact_pattern=r"\d+ days")])

        assert "'value' group" in str(exc_info.value.validation_result.errors)

    def test_reserved_name(self):
        """Test that names starting with '__' are rejected."""
        manager = ConfigurationManager()

        with pytest.raises(ConfigurationError):
            manager.load_answer_topics([topic_dict(name="__generic__")])


class TestConfigurationFiles:
    """Tests for directory loading and export."""

    def test_load_from_directory(self, tmp_path):
        """Test loading both configuration files from a directory."""
        (tmp_path / "risk_signals.json").write_text(
            json.dumps({"signals": [signal_dict()]}), encoding="utf-8"
        )
        (tmp_path / "answer_topics.json").write_text(
            json.dumps([topic_dict()]), encoding="utf-8"
        )
        manager = ConfigurationManager()

        result = manager.load_from_directory(tmp_path)

        assert result.is_valid
        assert len(manager.configuration.risk_signals) == 1
        assert len(manager.configuration.answer_topics) == 1

    def test_directory_with_invalid_file(self, tmp_path):
        """Test that errors in one file are reported, not raised."""
        (tmp_path / "risk_signals.json").write_text("{not json", encoding="utf-8")
        manager = ConfigurationManager()

        result = manager.load_from_directory(tmp_path)

        assert not result.is_valid
        assert manager.configuration.risk_signals == []

    def test_missing_file(self, tmp_path):
        """Test that a missing file raises ConfigurationError."""
        manager = ConfigurationManager()

        with pytest.raises(ConfigurationError):
            manager.load_risk_signals(tmp_path / "absent.json")

    def test_reset(self):
        """Test resetting to the built-in defaults."""
        manager = ConfigurationManager()
        manager.load_risk_signals([signal_dict()])

        manager.reset()

        assert not manager.is_loaded
        assert manager.configuration.risk_signals == []

    def test_to_dict_round_trips_through_loader(self):
        """Test that exported configuration can be loaded again."""
        manager = ConfigurationManager()
        manager.load_risk_signals([signal_dict()])
        manager.load_answer_topics([topic_dict()])

        exported = manager.to_dict()
        reloaded = ConfigurationManager()
        reloaded.load_risk_signals(exported["risk_signals"])
        reloaded.load_answer_topics(exported["answer_topics"])

        assert reloaded.to_dict() == exported


class TestValidationResult:
    """Tests for ValidationResult helpers."""

    def test_merge(self):
        """Test merging validation results."""
        ok = ValidationResult(is_valid=True, warnings=["w"])
        bad = ValidationResult(is_valid=True)
        bad.add_error("e")

        merged = ok.merge(bad)

        assert not merged.is_valid
        assert merged.errors == ["e"]
        assert merged.warnings == ["w"]
