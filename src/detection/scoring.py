"""
Confidence scoring for detected strategies.

The score starts at a base value and adds or subtracts points from a
small, named point table (``ConfidenceWeights``), then clamps to 0-100:

- Strategy completeness (full wheel > covered call > CSP > naked stock)
- Cash adequacy for put-backed strategies
- Average days to expiration of the ticker's options
- Optional market context (elevated volatility, bullish trend)
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Optional

from src import constants
from src.positions.models import Confidence, OptionPosition

from .models import MarketContext, MarketTrend, Strategy

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConfidenceWeights:
    """Point table and thresholds for the confidence score."""

    base: int = constants.BASE_CONFIDENCE_SCORE
    strategy_bonus: dict[str, int] = field(
        default_factory=lambda: dict(constants.STRATEGY_BONUS)
    )
    cash_sufficient: int = constants.CASH_SUFFICIENT_BONUS
    cash_partial: int = constants.CASH_PARTIAL_BONUS
    cash_insufficient: int = constants.CASH_INSUFFICIENT_PENALTY
    partial_cash_ratio: float = constants.PARTIAL_CASH_RATIO
    long_horizon: int = constants.LONG_HORIZON_BONUS
    short_horizon: int = constants.SHORT_HORIZON_PENALTY
    elevated_volatility: int = constants.ELEVATED_VOLATILITY_BONUS
    bullish_trend: int = constants.BULLISH_TREND_BONUS
    long_horizon_days: int = constants.LONG_HORIZON_DAYS
    near_expiry_days: int = constants.NEAR_EXPIRY_DAYS
    volatility_threshold: float = constants.ELEVATED_VOLATILITY
    high_threshold: int = constants.HIGH_CONFIDENCE_THRESHOLD
    medium_threshold: int = constants.MEDIUM_CONFIDENCE_THRESHOLD

    @classmethod
    def from_settings(cls, settings: Any) -> "ConfidenceWeights":
        """Take the time and volatility thresholds from EngineSettings."""
        return cls(
            long_horizon_days=settings.long_horizon_days,
            near_expiry_days=settings.near_expiry_days,
            volatility_threshold=settings.elevated_volatility,
        )


DEFAULT_WEIGHTS = ConfidenceWeights()


def calculate_cash_required(short_puts: list[OptionPosition]) -> float:
    """
    Collateral needed to cover assignment of every short put.

    ``sum(|contracts| * strike * 100)``
    """
    total = 0.0
    for put in short_puts:
        if put.is_put and put.is_short:
            total += abs(put.contracts) * put.strike_price * constants.SHARES_PER_CONTRACT
    return total


def confidence_bucket(score: float, weights: ConfidenceWeights = DEFAULT_WEIGHTS) -> Confidence:
    """Map a 0-100 score to high/medium/low."""
    if score >= weights.high_threshold:
        return Confidence.HIGH
    if score >= weights.medium_threshold:
        return Confidence.MEDIUM
    return Confidence.LOW


def cash_adjustment(
    cash_required: float, cash_balance: float, weights: ConfidenceWeights = DEFAULT_WEIGHTS
) -> int:
    """Points for how well the cash balance covers put collateral."""
    if cash_required <= 0:
        return 0
    if cash_balance >= cash_required:
        return weights.cash_sufficient
    if cash_balance >= cash_required * weights.partial_cash_ratio:
        return weights.cash_partial
    return weights.cash_insufficient


def time_horizon_adjustment(
    options: list[OptionPosition],
    as_of: Optional[date] = None,
    weights: ConfidenceWeights = DEFAULT_WEIGHTS,
) -> int:
    """Points for the average days to expiration of the ticker's options."""
    if not options:
        return 0
    average_dte = sum(o.days_to_expiration(as_of) for o in options) / len(options)
    if average_dte > weights.long_horizon_days:
        return weights.long_horizon
    if average_dte < weights.near_expiry_days:
        return weights.short_horizon
    return 0


def market_adjustment(
    market_context: Optional[MarketContext], weights: ConfidenceWeights = DEFAULT_WEIGHTS
) -> int:
    """Points from optional market hints."""
    if market_context is None:
        return 0
    points = 0
    if market_context.volatility is not None and market_context.volatility > weights.volatility_threshold:
        points += weights.elevated_volatility
    if market_context.trend == MarketTrend.BULLISH:
        points += weights.bullish_trend
    return points


def calculate_confidence_score(
    strategy: Strategy,
    options: list[OptionPosition],
    cash_required: float = 0.0,
    cash_balance: float = 0.0,
    market_context: Optional[MarketContext] = None,
    as_of: Optional[date] = None,
    weights: ConfidenceWeights = DEFAULT_WEIGHTS,
) -> tuple[Confidence, float]:
    """
    Score how closely a ticker matches an intentional wheel.

    Args:
        strategy: Detected strategy
        options: The ticker's (strategy-usable) option positions
        cash_required: Short put collateral (0 for strategies without puts)
        cash_balance: Available cash
        market_context: Optional market hints
        as_of: Reference date for days-to-expiration
        weights: Point table

    Returns:
        (confidence bucket, score clamped to 0-100)
    """
    score = weights.base
    score += weights.strategy_bonus.get(strategy.value, 0)
    score += cash_adjustment(cash_required, cash_balance, weights)
    score += time_horizon_adjustment(options, as_of, weights)
    score += market_adjustment(market_context, weights)

    score = max(constants.MIN_CONFIDENCE_SCORE, min(constants.MAX_CONFIDENCE_SCORE, score))
    return confidence_bucket(score, weights), float(score)
