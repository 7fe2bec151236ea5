"""Risk classification, aggregation and category detection."""

from .aggregator import AnalysisAggregator
from .category_detector import CategoryDetector, detect_category
from .key_terms import KeyTermExtractor
from .risk_classifier import RuleBasedRiskClassifier
from .risk_patterns import RiskSignal, build_default_signals

__all__ = [
    "AnalysisAggregator",
    "CategoryDetector",
    "detect_category",
    "KeyTermExtractor",
    "RuleBasedRiskClassifier",
    "RiskSignal",
    "build_default_signals",
]
