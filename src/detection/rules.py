"""
Ordered classification rules.

A ticker's exposure is tested against ``DETECTION_RULES`` in order and the
first matching rule wins. The order is policy: a ticker holding shares, a
short call and a short put is a full wheel, never merely a covered call.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Optional

from src.constants import SHARES_PER_CONTRACT
from src.positions.models import OptionPosition, Position, StockPosition

from .models import Strategy


@dataclass
class TickerExposure:
    """
    Strategy-relevant view of one ticker's positions.

    Low-confidence records are left out of every list here; they are
    display-only.
    """

    ticker: str
    stocks: list[StockPosition] = field(default_factory=list)
    options: list[OptionPosition] = field(default_factory=list)

    @classmethod
    def from_positions(cls, ticker: str, positions: list[Position]) -> "TickerExposure":
        usable = [p for p in positions if not p.excluded_from_strategy]
        return cls(
            ticker=ticker,
            stocks=[p for p in usable if isinstance(p, StockPosition)],
            options=[p for p in usable if isinstance(p, OptionPosition)],
        )

    @property
    def stock_shares(self) -> float:
        return sum(p.shares for p in self.stocks)

    @property
    def short_calls(self) -> list[OptionPosition]:
        return [p for p in self.options if p.is_call and p.is_short]

    @property
    def short_puts(self) -> list[OptionPosition]:
        return [p for p in self.options if p.is_put and p.is_short]


@dataclass(frozen=True)
class StrategyRule:
    """A predicate mapped to the strategy it detects."""

    strategy: Strategy
    predicate: Callable[[TickerExposure], bool]
    description: str


def is_full_wheel(exposure: TickerExposure) -> bool:
    """Round lot of shares plus a short call plus a short put."""
    return (
        exposure.stock_shares >= SHARES_PER_CONTRACT
        and len(exposure.short_calls) > 0
        and len(exposure.short_puts) > 0
    )


def is_covered_call(exposure: TickerExposure) -> bool:
    """Round lot of shares plus at least one short call."""
    return exposure.stock_shares >= SHARES_PER_CONTRACT and len(exposure.short_calls) > 0


def is_cash_secured_put(exposure: TickerExposure) -> bool:
    """At least one short put, regardless of shares held."""
    return len(exposure.short_puts) > 0


def is_naked_stock(exposure: TickerExposure) -> bool:
    """Shares with no options at all, in at least one round lot."""
    # Odd lots are not actionable for a 100-share-per-contract strategy
    return (
        exposure.stock_shares > 0
        and len(exposure.options) == 0
        and exposure.stock_shares >= SHARES_PER_CONTRACT
    )


DETECTION_RULES: tuple[StrategyRule, ...] = (
    StrategyRule(Strategy.FULL_WHEEL, is_full_wheel, "shares >= 100, short call and short put"),
    StrategyRule(Strategy.COVERED_CALL, is_covered_call, "shares >= 100 and short call"),
    StrategyRule(Strategy.CASH_SECURED_PUT, is_cash_secured_put, "short put"),
    StrategyRule(Strategy.NAKED_STOCK, is_naked_stock, "shares >= 100 and no options"),
)


def classify(
    exposure: TickerExposure, rules: tuple[StrategyRule, ...] = DETECTION_RULES
) -> Optional[Strategy]:
    """
    Return the strategy of the first matching rule.

    Args:
        exposure: The ticker's exposure
        rules: Ordered rules (defaults to DETECTION_RULES)

    Returns:
        The matched Strategy, or None when no rule matches
    """
    for rule in rules:
        if rule.predicate(exposure):
            return rule.strategy
    return None
