"""Data models for wheel strategy detection."""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Optional

from src.positions.models import Confidence, OptionPosition, Position


class Strategy(Enum):
    """Wheel strategy patterns, most complete first."""

    FULL_WHEEL = "full_wheel"
    COVERED_CALL = "covered_call"
    CASH_SECURED_PUT = "cash_secured_put"
    NAKED_STOCK = "naked_stock"

    @property
    def is_put_backed(self) -> bool:
        """True if the strategy holds short puts that need cash collateral."""
        return self in (Strategy.FULL_WHEEL, Strategy.CASH_SECURED_PUT)


class RiskTolerance(Enum):
    """Caller's risk appetite."""

    CONSERVATIVE = "conservative"
    MODERATE = "moderate"
    AGGRESSIVE = "aggressive"


class RiskLevel(Enum):
    """Qualitative risk level."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class MarketTrend(Enum):
    """Optional market trend hint."""

    BULLISH = "bullish"
    NEUTRAL = "neutral"
    BEARISH = "bearish"


@dataclass
class MarketContext:
    """
    Optional market hints that nudge the confidence score.

    Attributes:
        volatility: Implied volatility as a fraction (0.35 = 35%)
        trend: Market trend hint
    """

    volatility: Optional[float] = None
    trend: Optional[MarketTrend] = None


@dataclass
class DetectionOptions:
    """Caller-supplied context for detection."""

    cash_balance: float = 0.0
    risk_tolerance: Optional[RiskTolerance] = None  # Detector default when unset
    market_context: Optional[MarketContext] = None
    tickers: Optional[list[str]] = None  # Restrict detection to these tickers
    as_of: Optional[date] = None  # Reference date for days-to-expiration


@dataclass
class RiskAssessment:
    """Risk level plus the reasons behind it."""

    level: RiskLevel = RiskLevel.MEDIUM
    factors: list[str] = field(default_factory=list)
    assignment_risk: float = 50.0  # Percent


@dataclass
class PositionSummary:
    """Display view of one position inside a detection result."""

    type: str  # "stock", "call" or "put"
    symbol: str
    quantity: float
    side: str  # "long" or "short"
    market_value: float
    strike_price: Optional[float] = None
    expiration_date: Optional[date] = None
    days_to_expiration: Optional[int] = None
    confidence: Confidence = Confidence.HIGH
    source: str = "unknown"

    @classmethod
    def from_position(cls, position: Position, as_of: Optional[date] = None) -> "PositionSummary":
        """Summarize a normalized position."""
        if isinstance(position, OptionPosition):
            return cls(
                type="call" if position.is_call else "put",
                symbol=position.symbol,
                quantity=position.quantity,
                side="short" if position.is_short else "long",
                market_value=position.market_value,
                strike_price=position.strike_price,
                expiration_date=position.expiration_date,
                days_to_expiration=position.days_to_expiration(as_of),
                confidence=position.confidence,
                source=position.source,
            )
        return cls(
            type="stock",
            symbol=position.symbol,
            quantity=position.quantity,
            side="short" if position.is_short else "long",
            market_value=position.market_value,
            confidence=position.confidence,
            source=position.source,
        )


@dataclass
class PotentialAction:
    """A follow-up action suggested for a detected strategy."""

    action: str
    description: str
    priority: str = "medium"  # "high", "medium" or "low"


@dataclass
class DetectionResult:
    """Classification of one ticker's positions."""

    ticker: str
    strategy: Strategy
    confidence: Confidence
    confidence_score: float
    description: str
    risk_assessment: RiskAssessment
    positions: list[PositionSummary] = field(default_factory=list)
    cash_required: float = 0.0
    cash_validated: Optional[bool] = None
    recommendations: list[str] = field(default_factory=list)
    potential_actions: list[PotentialAction] = field(default_factory=list)
    market_context: Optional[MarketContext] = None

    def to_dict(self) -> dict[str, Any]:
        """
        Convert to dictionary for JSON serialization.

        Returns:
            Dictionary representation of the result
        """
        return {
            "ticker": self.ticker,
            "strategy": self.strategy.value,
            "confidence": self.confidence.value,
            "confidence_score": self.confidence_score,
            "description": self.description,
            "cash_required": self.cash_required,
            "cash_validated": self.cash_validated,
            "risk_assessment": {
                "level": self.risk_assessment.level.value,
                "factors": list(self.risk_assessment.factors),
                "assignment_risk": self.risk_assessment.assignment_risk,
            },
            "positions": [
                {
                    "type": p.type,
                    "symbol": p.symbol,
                    "quantity": p.quantity,
                    "position": p.side,
                    "strike_price": p.strike_price,
                    "expiration_date": (
                        p.expiration_date.isoformat() if p.expiration_date else None
                    ),
                    "days_to_expiration": p.days_to_expiration,
                    "market_value": p.market_value,
                    "confidence": p.confidence.value,
                }
                for p in self.positions
            ],
            "recommendations": list(self.recommendations),
            "potential_actions": [
                {"action": a.action, "description": a.description, "priority": a.priority}
                for a in self.potential_actions
            ],
        }


@dataclass
class WheelSuggestion:
    """A suggestion for turning a detection into a tracked wheel cycle."""

    title: str
    description: str
    action: str
    params: dict[str, Any] = field(default_factory=dict)
