"""
Wheel strategy detection.

Classifies each ticker's normalized positions into a wheel strategy,
scores how closely it matches an intentional wheel, and attaches a risk
assessment plus follow-up actions.

Example:
    >>> from src.positions import normalize_positions
    >>> from src.detection import detect_wheel_strategies, DetectionOptions
    >>> positions = normalize_positions(records)
    >>> results = detect_wheel_strategies(positions, DetectionOptions(cash_balance=25000))
    >>> results[0].strategy
    <Strategy.COVERED_CALL: 'covered_call'>
"""

import logging
from typing import Any, Optional

from src import constants
from src.exceptions import InvalidInputError
from src.positions.grouping import group_by_ticker
from src.positions.models import Position

from .models import (
    DetectionOptions,
    DetectionResult,
    PositionSummary,
    PotentialAction,
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

logger = logging.getLogger(__name__)


RECOMMENDATIONS: dict[Strategy, list[str]] = {
    Strategy.FULL_WHEEL: [
        "Monitor covered call for expiration or early assignment",
        "Consider rolling call option if needed",
        "Look for opportunities to sell additional puts if assigned",
    ],
    Strategy.COVERED_CALL: [
        "Monitor for potential assignment at expiration",
        "Consider rolling call if wanting to keep shares",
        "Could evolve into full wheel by selling puts",
    ],
    Strategy.CASH_SECURED_PUT: [
        "Prepare for potential assignment",
        "Ensure sufficient cash to purchase shares",
        "Plan covered call strategy if assigned",
    ],
    Strategy.NAKED_STOCK: [
        "Consider selling covered calls to generate income",
        "Stock position is suitable for wheel strategy",
        "Could start with covered calls above current price",
    ],
}

POTENTIAL_ACTIONS: dict[Strategy, list[tuple[str, str, str]]] = {
    Strategy.FULL_WHEEL: [
        ("roll_call", "Roll covered call to later expiration", "high"),
        ("close_call", "Buy back call option for profit", "medium"),
        ("sell_put", "Sell additional cash-secured puts", "low"),
    ],
    Strategy.COVERED_CALL: [
        ("roll_call", "Extend call expiration", "high"),
        ("sell_put", "Start wheel by selling puts below current price", "medium"),
    ],
    Strategy.CASH_SECURED_PUT: [
        ("manage_assignment", "Prepare for potential share assignment", "high"),
        ("roll_put", "Roll put to avoid assignment", "medium"),
    ],
    Strategy.NAKED_STOCK: [
        ("sell_call", "Start covered call strategy", "high"),
        ("start_wheel", "Begin full wheel strategy", "medium"),
    ],
}


def _format_shares(shares: float) -> str:
    return f"{shares:g}"


def describe(strategy: Strategy, exposure: TickerExposure) -> str:
    """Human-readable one-line description of a detected strategy."""
    shares = _format_shares(exposure.stock_shares)
    if strategy == Strategy.FULL_WHEEL:
        return f"Complete wheel strategy: {shares} shares with covered call and put-selling capability"
    if strategy == Strategy.COVERED_CALL:
        return f"Covered call position: {shares} shares with {len(exposure.short_calls)} short call(s)"
    if strategy == Strategy.CASH_SECURED_PUT:
        description = f"Cash-secured put position: {len(exposure.short_puts)} short put(s)"
        if exposure.stock_shares > 0:
            description += f" with {shares} existing shares"
        return description
    return f"{shares} shares ready for wheel strategy"


class WheelDetector:
    """
    Classifies per-ticker position groups into wheel strategies.

    The detector holds only configuration (point table, rules, risk
    thresholds); every call is a pure function of its inputs.
    """

    def __init__(
        self,
        weights: ConfidenceWeights = DEFAULT_WEIGHTS,
        rules: tuple[StrategyRule, ...] = DETECTION_RULES,
        near_expiry_days: int = constants.NEAR_EXPIRY_DAYS,
        moderate_expiry_days: int = constants.MODERATE_EXPIRY_DAYS,
        concentration_threshold_pct: float = constants.CONCENTRATION_THRESHOLD_PCT,
        default_risk_tolerance: RiskTolerance = RiskTolerance.MODERATE,
    ):
        """
        Initialize the detector.

        Args:
            weights: Confidence point table
            rules: Ordered classification rules
            near_expiry_days: Window for high assignment risk
            moderate_expiry_days: Window for moderate assignment risk
            concentration_threshold_pct: Portfolio share flagged as concentrated
            default_risk_tolerance: Tolerance used when the options name none
        """
        self.weights = weights
        self.rules = rules
        self.near_expiry_days = near_expiry_days
        self.moderate_expiry_days = moderate_expiry_days
        self.concentration_threshold_pct = concentration_threshold_pct
        self.default_risk_tolerance = default_risk_tolerance

    @classmethod
    def from_settings(cls, settings: Any) -> "WheelDetector":
        """Build a detector from EngineSettings."""
        return cls(
            weights=ConfidenceWeights.from_settings(settings),
            near_expiry_days=settings.near_expiry_days,
            moderate_expiry_days=settings.moderate_expiry_days,
            concentration_threshold_pct=settings.concentration_threshold_pct,
            default_risk_tolerance=RiskTolerance(settings.risk_tolerance),
        )

    def detect(
        self, positions: list[Position], options: Optional[DetectionOptions] = None
    ) -> list[DetectionResult]:
        """
        Detect wheel strategies across a portfolio.

        Args:
            positions: Normalized positions (any number of tickers)
            options: Cash balance, risk tolerance, market context and filters

        Returns:
            One DetectionResult per classified ticker, ordered by strategy
            completeness then descending confidence score

        Raises:
            InvalidInputError: If positions is not a list
        """
        if not isinstance(positions, (list, tuple)):
            raise InvalidInputError(
                f"positions must be a list, got {type(positions).__name__}"
            )
        options = options or DetectionOptions()

        portfolio_value = sum(abs(p.market_value) for p in positions)
        grouped = group_by_ticker(list(positions))

        if options.tickers is not None:
            wanted = {t.upper() for t in options.tickers}
            grouped = {t: group for t, group in grouped.items() if t.upper() in wanted}

        results = []
        for ticker, group in grouped.items():
            result = self.analyze_ticker(ticker, group, options, portfolio_value)
            if result is None:
                logger.debug(f"No strategy detected for {ticker}")
                continue
            logger.debug(
                f"{ticker}: {result.strategy.value} "
                f"({result.confidence.value}, score {result.confidence_score:.0f})"
            )
            results.append(result)

        # list.sort is stable, so ties keep input order
        results.sort(
            key=lambda r: (constants.STRATEGY_ORDER.get(r.strategy.value, 99), -r.confidence_score)
        )
        logger.info(f"Detected {len(results)} strategies across {len(grouped)} tickers")
        return results

    def analyze_ticker(
        self,
        ticker: str,
        positions: list[Position],
        options: Optional[DetectionOptions] = None,
        portfolio_value: float = 0.0,
    ) -> Optional[DetectionResult]:
        """
        Classify one ticker's positions.

        Args:
            ticker: Underlying ticker
            positions: The ticker's normalized positions
            options: Detection options
            portfolio_value: Absolute market value of the whole portfolio

        Returns:
            DetectionResult, or None if no strategy matches
        """
        options = options or DetectionOptions()
        exposure = TickerExposure.from_positions(ticker, positions)
        strategy = classify(exposure, self.rules)
        if strategy is None:
            return None

        cash_required = 0.0
        cash_validated: Optional[bool] = None
        if strategy.is_put_backed:
            cash_required = calculate_cash_required(exposure.short_puts)
            if options.cash_balance > 0:
                cash_validated = options.cash_balance >= cash_required

        confidence, score = calculate_confidence_score(
            strategy,
            exposure.options,
            cash_required=cash_required,
            cash_balance=options.cash_balance,
            market_context=options.market_context,
            as_of=options.as_of,
            weights=self.weights,
        )
        risk = assess_risk(
            strategy,
            exposure,
            risk_tolerance=options.risk_tolerance or self.default_risk_tolerance,
            portfolio_value=portfolio_value,
            as_of=options.as_of,
            near_expiry_days=self.near_expiry_days,
            moderate_expiry_days=self.moderate_expiry_days,
            concentration_threshold_pct=self.concentration_threshold_pct,
        )

        return DetectionResult(
            ticker=ticker,
            strategy=strategy,
            confidence=confidence,
            confidence_score=score,
            description=describe(strategy, exposure),
            risk_assessment=risk,
            positions=[PositionSummary.from_position(p, options.as_of) for p in positions],
            cash_required=cash_required,
            cash_validated=cash_validated,
            recommendations=list(RECOMMENDATIONS[strategy]),
            potential_actions=[
                PotentialAction(action=a, description=d, priority=p)
                for a, d, p in POTENTIAL_ACTIONS[strategy]
            ],
            market_context=options.market_context,
        )


def detect_wheel_strategies(
    positions: list[Position],
    options: Optional[DetectionOptions] = None,
    detector: Optional[WheelDetector] = None,
) -> list[DetectionResult]:
    """Detect wheel strategies with a default (or supplied) detector."""
    return (detector or WheelDetector()).detect(positions, options)


def generate_wheel_suggestions(result: DetectionResult) -> list[WheelSuggestion]:
    """
    Map a detection result to suggestions for tracking it as a wheel cycle.

    Args:
        result: A detection result

    Returns:
        Suggestions (currently one per strategy)
    """
    short_puts = [p for p in result.positions if p.type == "put" and p.side == "short"]
    short_calls = [p for p in result.positions if p.type == "call" and p.side == "short"]
    stocks = [p for p in result.positions if p.type == "stock"]

    if result.strategy == Strategy.CASH_SECURED_PUT:
        return [
            WheelSuggestion(
                title="Create CSP Wheel Cycle",
                description="Track this cash-secured put as the beginning of a wheel strategy",
                action="create_csp_cycle",
                params={"ticker": result.ticker, "puts": short_puts},
            )
        ]
    if result.strategy == Strategy.COVERED_CALL:
        return [
            WheelSuggestion(
                title="Convert to Covered Call Wheel",
                description="Track this covered call position as part of an ongoing wheel",
                action="create_cc_cycle",
                params={"ticker": result.ticker, "stocks": stocks, "calls": short_calls},
            )
        ]
    if result.strategy == Strategy.FULL_WHEEL:
        return [
            WheelSuggestion(
                title="Import Complete Wheel Strategy",
                description="Create a comprehensive wheel tracking for this complete position",
                action="create_full_wheel",
                params={"ticker": result.ticker, "all_positions": list(result.positions)},
            )
        ]
    return [
        WheelSuggestion(
            title="Start Wheel Strategy",
            description="Begin a wheel strategy with your existing stock position",
            action="start_new_wheel",
            params={"ticker": result.ticker, "shares": stocks[0].quantity if stocks else 0},
        )
    ]
