"""Configuration management for SmartClause."""

from .config_manager import ANSWER_TOPICS_FILE, RISK_SIGNALS_FILE, ConfigurationManager
from .models import ConfigurationError, SystemConfiguration, ValidationResult

__all__ = [
    "ANSWER_TOPICS_FILE",
    "RISK_SIGNALS_FILE",
    "ConfigurationManager",
    "ConfigurationError",
    "SystemConfiguration",
    "ValidationResult",
]
