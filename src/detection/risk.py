"""
Risk assessment for detected strategies.

Risk is reported as a level plus the qualitative factors behind it so a
UI can explain why a position is flagged, rather than a single opaque
number. The level starts at medium and escalates to high when a short
option is close to expiration or the caller is conservative.
"""

import logging
from datetime import date
from typing import Optional

from src import constants

from .models import RiskAssessment, RiskLevel, RiskTolerance, Strategy
from .rules import TickerExposure

logger = logging.getLogger(__name__)


def assess_risk(
    strategy: Strategy,
    exposure: TickerExposure,
    risk_tolerance: RiskTolerance = RiskTolerance.MODERATE,
    portfolio_value: float = 0.0,
    as_of: Optional[date] = None,
    near_expiry_days: int = constants.NEAR_EXPIRY_DAYS,
    moderate_expiry_days: int = constants.MODERATE_EXPIRY_DAYS,
    concentration_threshold_pct: float = constants.CONCENTRATION_THRESHOLD_PCT,
) -> RiskAssessment:
    """
    Assess the risk factors of a strategy.

    Args:
        strategy: Detected strategy
        exposure: The ticker's strategy-usable positions
        risk_tolerance: Caller's risk tolerance
        portfolio_value: Absolute market value of the whole portfolio
            (0 disables the concentration check)
        as_of: Reference date for days-to-expiration
        near_expiry_days: Window for high assignment risk
        moderate_expiry_days: Window for moderate assignment risk
        concentration_threshold_pct: Portfolio share flagged as concentrated

    Returns:
        RiskAssessment with level, factors and assignment risk estimate
    """
    factors: list[str] = []
    level = RiskLevel.MEDIUM
    assignment_risk = constants.BASE_ASSIGNMENT_RISK

    # Assignment exposure
    short_options = [o for o in exposure.options if o.is_short]
    if short_options:
        min_dte = min(o.days_to_expiration(as_of) for o in short_options)
        if min_dte < near_expiry_days:
            factors.append(
                f"Options expiring within {near_expiry_days} days - high assignment risk"
            )
            assignment_risk = constants.HIGH_ASSIGNMENT_RISK
            level = RiskLevel.HIGH
        elif min_dte < moderate_expiry_days:
            factors.append(
                f"Options expiring within {moderate_expiry_days} days - moderate assignment risk"
            )
            assignment_risk = constants.MODERATE_ASSIGNMENT_RISK

        # Time decay
        if min_dte >= near_expiry_days:
            factors.append("Time decay works in favor of the short premium")
        else:
            factors.append("Little time value left to decay before expiration")

    # Risk tolerance
    if risk_tolerance == RiskTolerance.CONSERVATIVE:
        factors.append("Conservative risk profile - consider safer strikes")
        level = RiskLevel.HIGH
    elif risk_tolerance == RiskTolerance.AGGRESSIVE:
        factors.append("Aggressive risk profile - monitor positions closely")

    # Strategy-specific exposure
    if strategy == Strategy.CASH_SECURED_PUT:
        factors.append("Assignment would result in stock ownership")
        if assignment_risk > constants.HIGH_ASSIGNMENT_RISK_CUTOFF:
            factors.append("High probability of assignment at current levels")
    elif strategy == Strategy.COVERED_CALL:
        factors.append("Call assignment would result in stock sale")
    elif strategy == Strategy.FULL_WHEEL:
        factors.append("Multiple assignment possibilities - complex management")
    elif strategy == Strategy.NAKED_STOCK:
        factors.append("Unhedged stock exposure - full downside risk")

    # Concentration
    if portfolio_value > 0:
        ticker_value = sum(abs(p.market_value) for p in exposure.stocks + exposure.options)
        share_pct = ticker_value / portfolio_value * 100
        if share_pct > concentration_threshold_pct:
            factors.append(
                f"Concentrated position - {exposure.ticker} is {share_pct:.1f}% of portfolio value"
            )

    logger.debug(f"{exposure.ticker} risk {level.value}: {factors}")
    return RiskAssessment(level=level, factors=factors, assignment_risk=assignment_risk)
