"""Configuration Manager implementation for SmartClause.

This module loads, validates and manages the configurable parts of the
analysis core: the risk signals used by the rule-based classifier and
the answer topics used by the template answer generator.
"""

import json
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from jinja2 import Environment, TemplateSyntaxError

from ..analyzers.risk_patterns import RiskSignal, build_default_signals
from ..models.enums import RiskLevel
from ..qa.answer_generator import AnswerTopic, build_default_topics
from .models import (
    ConfigurationError,
    SystemConfiguration,
    ValidationResult,
)


RISK_SIGNALS_FILE = "risk_signals.json"
ANSWER_TOPICS_FILE = "answer_topics.json"

Source = Union[str, Path, Dict[str, Any], List[Dict[str, Any]]]


class ConfigurationManager:
    """
    Manager for system configuration.

    Handles loading, validation, and access to risk signals and answer
    topics. A source may be a JSON file path, a dict or a list of dicts.
    Dict sources may set ``"include_defaults": true`` to extend the
    built-in set instead of replacing it.
    """

    def __init__(self, config_dir: Optional[Union[str, Path]] = None):
        """
        Initialize the configuration manager.

        Args:
            config_dir: Optional directory path for configuration files.
        """
        self._config_dir = Path(config_dir) if config_dir else None
        self._configuration = SystemConfiguration()
        self._is_loaded = False
        self._jinja = Environment()

    @property
    def configuration(self) -> SystemConfiguration:
        """Get the current system configuration."""
        return self._configuration

    @property
    def is_loaded(self) -> bool:
        """Check if configuration has been loaded."""
        return self._is_loaded

    # =========================================================================
    # Risk signals
    # =========================================================================

    def load_risk_signals(self, source: Source) -> ValidationResult:
        """
        Load and validate risk signals for the rule-based classifier.

        Args:
            source: File path, dictionary (``{"signals": [...]}``), or list.

        Returns:
            ValidationResult indicating success or failure with details.

        Raises:
            ConfigurationError: If validation fails and configuration cannot be applied.
        """
        items, include_defaults = self._unwrap(self._parse_source(source), "signals")

        result = ValidationResult(is_valid=True)
        signals: List[RiskSignal] = []
        for i, signal_dict in enumerate(items):
            signal_result, signal = self._validate_risk_signal(signal_dict, index=i)
            result = result.merge(signal_result)
            if signal:
                signals.append(signal)

        if include_defaults:
            signals = build_default_signals() + signals

        ids = [s.id for s in signals]
        duplicates = sorted({i for i in ids if ids.count(i) > 1})
        if duplicates:
            result.add_error(f"Duplicate risk signal IDs found: {duplicates}")

        if not signals and result.is_valid:
            result.add_warning("No risk signals configured; built-in signals will be used")

        if not result.is_valid:
            raise ConfigurationError(
                "Risk signal validation failed",
                validation_result=result
            )

        self._configuration.risk_signals = signals
        self._is_loaded = True
        return result

    def _validate_risk_signal(
        self,
        data: Dict[str, Any],
        index: int = 0
    ) -> tuple[ValidationResult, Optional[RiskSignal]]:
        """Validate a single risk signal dictionary."""
        result = ValidationResult(is_valid=True)
        prefix = f"Risk signal [{index}]"

        if not isinstance(data, dict):
            result.add_error(f"{prefix}: must be an object")
            return result, None

        for field in ["id", "level", "patterns", "rationale"]:
            if field not in data:
                result.add_error(f"{prefix}: Missing required field '{field}'")
        if not result.is_valid:
            return result, None

        if not isinstance(data["id"], str) or not data["id"].strip():
            result.add_error(f"{prefix}: 'id' must be a non-empty string")

        valid_levels = [level.value for level in RiskLevel]
        if data["level"] not in valid_levels:
            result.add_error(f"{prefix}: 'level' must be one of {valid_levels}")

        if not isinstance(data["rationale"], str) or not data["rationale"].strip():
            result.add_error(f"{prefix}: 'rationale' must be a non-empty string")

        self._check_patterns(data["patterns"], f"{prefix} 'patterns'", result, required=True)
        self._check_patterns(data.get("excludes", []), f"{prefix} 'excludes'", result)

        categories = data.get("categories", [])
        if not isinstance(categories, list) or not all(isinstance(c, str) for c in categories):
            result.add_error(f"{prefix}: 'categories' must be a list of strings")

        suggestion = data.get("suggestion")
        if suggestion is not None and not isinstance(suggestion, str):
            result.add_error(f"{prefix}: 'suggestion' must be a string")

        if not result.is_valid:
            return result, None

        signal = RiskSignal(
            id=data["id"].strip(),
            level=RiskLevel(data["level"]),
            patterns=list(data["patterns"]),
            rationale=data["rationale"].strip(),
            suggestion=suggestion.strip() if suggestion else None,
            excludes=list(data.get("excludes", [])),
            categories=[c.strip() for c in categories if c.strip()],
            description=data.get("description"),
        )
        return result, signal

    def get_risk_signal(self, signal_id: str) -> Optional[RiskSignal]:
        """Get a configured risk signal by ID."""
        for signal in self._configuration.risk_signals:
            if signal.id == signal_id:
                return signal
        return None

    # =========================================================================
    # Answer topics
    # =========================================================================

    def load_answer_topics(self, source: Source) -> ValidationResult:
        """
        Load and validate answer topics for the template answer generator.

        Args:
            source: File path, dictionary (``{"topics": [...]}``), or list.

        Returns:
            ValidationResult indicating success or failure with details.

        Raises:
            ConfigurationError: If validation fails and configuration cannot be applied.
        """
        items, include_defaults = self._unwrap(self._parse_source(source), "topics")

        result = ValidationResult(is_valid=True)
        topics: List[AnswerTopic] = []
        for i, topic_dict in enumerate(items):
            topic_result, topic = self._validate_answer_topic(topic_dict, index=i)
            result = result.merge(topic_result)
            if topic:
                topics.append(topic)

        if include_defaults:
            topics = topics + build_default_topics()

        names = [t.name for t in topics]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            result.add_error(f"Duplicate answer topic names found: {duplicates}")

        if not result.is_valid:
            raise ConfigurationError(
                "Answer topic validation failed",
                validation_result=result
            )

        self._configuration.answer_topics = topics
        self._is_loaded = True
        return result

    def _validate_answer_topic(
        self,
        data: Dict[str, Any],
        index: int = 0
    ) -> tuple[ValidationResult, Optional[AnswerTopic]]:
        """Validate a single answer topic dictionary."""
        result = ValidationResult(is_valid=True)
        prefix = f"Answer topic [{index}]"

        if not isinstance(data, dict):
            result.add_error(f"{prefix}: must be an object")
            return result, None

        for field in ["name", "keywords", "document_patterns", "template", "fallback"]:
            if field not in data:
                result.add_error(f"{prefix}: Missing required field '{field}'")
        if not result.is_valid:
            return result, None

        name = data["name"]
        if not isinstance(name, str) or not name.strip():
            result.add_error(f"{prefix}: 'name' must be a non-empty string")
        elif name.startswith("__"):
            result.add_error(f"{prefix}: 'name' must not start with '__'")

        keywords = data["keywords"]
        if (
            not isinstance(keywords, list)
            or not keywords
            or not all(isinstance(k, str) and k.strip() for k in keywords)
        ):
            result.add_error(f"{prefix}: 'keywords' must be a non-empty list of strings")

        self._check_patterns(
            data["document_patterns"], f"{prefix} 'document_patterns'", result, required=True
        )

        fact_pattern = data.get("fact_pattern")
        if fact_pattern is not None:
            compiled = self._check_patterns([fact_pattern], f"{prefix} 'fact_pattern'", result)
            if compiled and "value" not in compiled[0].groupindex:
                result.add_error(f"{prefix}: 'fact_pattern' must define a 'value' group")

        for field in ["template", "fallback"]:
            if not isinstance(data[field], str) or not data[field].strip():
                result.add_error(f"{prefix}: '{field}' must be a non-empty string")

        if isinstance(data["template"], str):
            try:
                self._jinja.parse(data["template"])
            except TemplateSyntaxError as e:
                result.add_error(f"{prefix}: invalid template: {e.message}")

        if not result.is_valid:
            return result, None

        topic = AnswerTopic(
            name=name.strip(),
            keywords=[k.strip() for k in keywords],
            document_patterns=list(data["document_patterns"]),
            template=data["template"],
            fallback=data["fallback"].strip(),
            fact_pattern=fact_pattern,
        )
        return result, topic

    def get_answer_topic(self, name: str) -> Optional[AnswerTopic]:
        """Get a configured answer topic by name."""
        for topic in self._configuration.answer_topics:
            if topic.name == name:
                return topic
        return None

    # =========================================================================
    # Shared helpers
    # =========================================================================

    @staticmethod
    def _check_patterns(
        patterns: Any,
        label: str,
        result: ValidationResult,
        required: bool = False,
    ) -> List[re.Pattern]:
        """Validate a list of regex strings, returning the compiled ones."""
        if not isinstance(patterns, list) or not all(isinstance(p, str) for p in patterns):
            result.add_error(f"{label} must be a list of strings")
            return []
        if required and not patterns:
            result.add_error(f"{label} must not be empty")
            return []

        compiled = []
        for pattern in patterns:
            try:
                compiled.append(re.compile(pattern))
            except re.error as e:
                result.add_error(f"{label}: invalid regex {pattern!r}: {e}")
        return compiled

    @staticmethod
    def _unwrap(raw_data: Any, key: str) -> tuple[List[Any], bool]:
        """Split a raw source into its item list and include-defaults flag."""
        if isinstance(raw_data, dict):
            if key in raw_data:
                items = raw_data[key]
                if not isinstance(items, list):
                    raise ConfigurationError(f"'{key}' must be a list")
                return items, bool(raw_data.get("include_defaults", False))
            return [raw_data], False
        if isinstance(raw_data, list):
            return raw_data, False
        raise ConfigurationError(
            f"Unsupported configuration source type: {type(raw_data).__name__}"
        )

    def _parse_source(self, source: Source) -> Union[Dict[str, Any], List[Dict[str, Any]]]:
        """Parse configuration source to raw data."""
        if isinstance(source, (str, Path)):
            path = Path(source)
            if not path.exists():
                raise ConfigurationError(f"Configuration file not found: {path}")

            try:
                with open(path, "r", encoding="utf-8") as f:
                    return json.load(f)
            except json.JSONDecodeError as e:
                raise ConfigurationError(f"Invalid JSON in {path}: {e}") from e

        return source

    def load_from_directory(self, config_dir: Union[str, Path]) -> ValidationResult:
        """
        Load all configuration files from a directory.

        Expects files named:
        - risk_signals.json
        - answer_topics.json

        Missing files are skipped and leave the built-in defaults in place.

        Args:
            config_dir: Directory containing configuration files.

        Returns:
            Combined ValidationResult for all loaded configurations.
        """
        config_dir = Path(config_dir)
        result = ValidationResult(is_valid=True)

        signals_file = config_dir / RISK_SIGNALS_FILE
        if signals_file.exists():
            try:
                result = result.merge(self.load_risk_signals(signals_file))
            except ConfigurationError as e:
                result.add_error(f"Risk signal loading failed: {e.message}")
                if e.validation_result:
                    result = result.merge(e.validation_result)

        topics_file = config_dir / ANSWER_TOPICS_FILE
        if topics_file.exists():
            try:
                result = result.merge(self.load_answer_topics(topics_file))
            except ConfigurationError as e:
                result.add_error(f"Answer topic loading failed: {e.message}")
                if e.validation_result:
                    result = result.merge(e.validation_result)

        self._config_dir = config_dir
        return result

    def reset(self) -> None:
        """Reset configuration to the built-in defaults."""
        self._configuration = SystemConfiguration()
        self._is_loaded = False

    def to_dict(self) -> Dict[str, Any]:
        """Export the current configuration as plain data."""
        return {
            "version": self._configuration.version,
            "risk_signals": [
                {
                    "id": s.id,
                    "level": s.level.value,
                    "patterns": list(s.patterns),
                    "excludes": list(s.excludes),
                    "categories": list(s.categories),
                    "rationale": s.rationale,
                    "suggestion": s.suggestion,
                    "description": s.description,
                }
                for s in self._configuration.risk_signals
            ],
            "answer_topics": [
                {
                    "name": t.name,
                    "keywords": list(t.keywords),
                    "document_patterns": list(t.document_patterns),
                    "template": t.template,
                    "fallback": t.fallback,
                    "fact_pattern": t.fact_pattern,
                }
                for t in self._configuration.answer_topics
            ],
            "metadata": dict(self._configuration.metadata),
        }
