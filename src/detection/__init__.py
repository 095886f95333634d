"""
Wheel strategy detection.

Public API:
    detect_wheel_strategies: Classify a portfolio's tickers
    WheelDetector: Configurable detector (weights, rules, thresholds)
    generate_wheel_suggestions: Turn a result into tracking suggestions
"""

from .detector import WheelDetector, detect_wheel_strategies, generate_wheel_suggestions
from .models import (
    DetectionOptions,
    DetectionResult,
    MarketContext,
    MarketTrend,
    PositionSummary,
    PotentialAction,
    RiskAssessment,
    RiskLevel,
    RiskTolerance,
    Strategy,
    WheelSuggestion,
)
from .risk import assess_risk
from .rules import DETECTION_RULES, StrategyRule, TickerExposure, classify
from .scoring import (
    DEFAULT_WEIGHTS,
    ConfidenceWeights,
    calculate_cash_required,
    calculate_confidence_score,
)

__all__ = [
    # Models
    "Strategy",
    "RiskTolerance",
    "RiskLevel",
    "MarketTrend",
    "MarketContext",
    "DetectionOptions",
    "DetectionResult",
    "PositionSummary",
    "PotentialAction",
    "RiskAssessment",
    "WheelSuggestion",
    # Rules and scoring
    "TickerExposure",
    "StrategyRule",
    "DETECTION_RULES",
    "classify",
    "ConfidenceWeights",
    "DEFAULT_WEIGHTS",
    "calculate_cash_required",
    "calculate_confidence_score",
    "assess_risk",
    # Detection
    "WheelDetector",
    "detect_wheel_strategies",
    "generate_wheel_suggestions",
]
