"""
Shared constants for wheel detection and lot accounting.

This module centralizes the scoring point table and the thresholds used
across the detector and the lot ledger, so the policy can be audited and
tuned in one place.
"""

# =============================================================================
# Contract Sizing
# =============================================================================

SHARES_PER_CONTRACT = 100
"""Shares represented by one standard equity option contract."""

DEFAULT_LOT_SHARES = 100
"""Shares assumed for an open stock lot whose opening event was never recorded."""


# =============================================================================
# Confidence Score Point Table
# =============================================================================

BASE_CONFIDENCE_SCORE = 50
"""Starting score for every detected strategy."""

STRATEGY_BONUS: dict[str, int] = {
    "full_wheel": 30,
    "covered_call": 20,
    "cash_secured_put": 15,
    "naked_stock": 10,
}
"""Points added for the completeness of the detected strategy."""

CASH_SUFFICIENT_BONUS = 15
"""Cash balance covers all short put collateral."""

CASH_PARTIAL_BONUS = 5
"""Cash balance covers at least half of the short put collateral."""

CASH_INSUFFICIENT_PENALTY = -10
"""Cash balance covers less than half of the short put collateral."""

PARTIAL_CASH_RATIO = 0.5
"""Fraction of required collateral that counts as partial coverage."""

LONG_HORIZON_BONUS = 10
"""Average days to expiration above the long horizon threshold."""

SHORT_HORIZON_PENALTY = -15
"""Average days to expiration below the near expiry threshold."""

ELEVATED_VOLATILITY_BONUS = 5
"""Implied volatility above the elevated threshold (richer premiums)."""

BULLISH_TREND_BONUS = 5
"""Bullish market trend hint."""

MIN_CONFIDENCE_SCORE = 0
MAX_CONFIDENCE_SCORE = 100

HIGH_CONFIDENCE_THRESHOLD = 70
"""Scores at or above this are bucketed as high confidence."""

MEDIUM_CONFIDENCE_THRESHOLD = 40
"""Scores at or above this (and below high) are bucketed as medium."""


# =============================================================================
# Time Horizon Thresholds (calendar days)
# =============================================================================

NEAR_EXPIRY_DAYS = 7
"""Options expiring sooner than this carry high assignment risk."""

MODERATE_EXPIRY_DAYS = 21
"""Options expiring sooner than this carry moderate assignment risk."""

LONG_HORIZON_DAYS = 30
"""Options further out than this earn the time horizon bonus."""


# =============================================================================
# Risk Assessment
# =============================================================================

BASE_ASSIGNMENT_RISK = 50.0
MODERATE_ASSIGNMENT_RISK = 60.0
HIGH_ASSIGNMENT_RISK = 80.0
"""Assignment risk estimates (percent) keyed off the nearest short expiry."""

HIGH_ASSIGNMENT_RISK_CUTOFF = 70.0
"""Assignment risk above this adds an explicit likely-assignment factor."""

CONCENTRATION_THRESHOLD_PCT = 25.0
"""A ticker above this share of portfolio market value is flagged as concentrated."""

ELEVATED_VOLATILITY = 0.30
"""Implied volatility (as a fraction) considered elevated."""


# =============================================================================
# Strategy Ordering
# =============================================================================

STRATEGY_ORDER: dict[str, int] = {
    "full_wheel": 0,
    "covered_call": 1,
    "cash_secured_put": 2,
    "naked_stock": 3,
}
"""Sort rank of detection results, most complete strategy first."""
