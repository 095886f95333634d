"""Shared fixtures for position, detection and lot tests."""

from datetime import date, timedelta
from typing import Callable, Optional

import pytest

from src.lots.events import EventType, WheelEvent
from src.positions.models import Confidence, OptionPosition, OptionType, StockPosition

AS_OF = date(2025, 1, 1)


@pytest.fixture
def as_of() -> date:
    """Fixed reference date so days-to-expiration is deterministic."""
    return AS_OF


@pytest.fixture
def make_stock() -> Callable[..., StockPosition]:
    """Factory for stock positions."""

    def _make(
        ticker: str = "AAPL",
        shares: float = 100,
        price: float = 170.0,
        market_value: Optional[float] = None,
        confidence: Confidence = Confidence.HIGH,
    ) -> StockPosition:
        return StockPosition(
            symbol=ticker,
            underlying_symbol=ticker,
            signed_quantity=shares,
            market_value=shares * price if market_value is None else market_value,
            average_price=price,
            confidence=confidence,
        )

    return _make


@pytest.fixture
def make_option() -> Callable[..., OptionPosition]:
    """Factory for option positions expiring a number of days after AS_OF."""

    def _make(
        ticker: str = "AAPL",
        option_type: OptionType = OptionType.CALL,
        strike: float = 180.0,
        days: int = 20,
        contracts: int = -1,
        market_value: float = -150.0,
    ) -> OptionPosition:
        return OptionPosition(
            symbol=f"{ticker} {option_type.value} {strike:g}",
            underlying_symbol=ticker,
            signed_quantity=contracts,
            market_value=market_value,
            average_price=2.0,
            option_type=option_type,
            strike_price=strike,
            expiration_date=AS_OF + timedelta(days=days),
        )

    return _make


@pytest.fixture
def make_event() -> Callable[..., WheelEvent]:
    """Factory for ledger events dated relative to AS_OF."""

    def _make(event_type: EventType, day: int = 0, **kwargs) -> WheelEvent:
        return WheelEvent(
            event_type=event_type,
            trade_date=AS_OF + timedelta(days=day),
            **kwargs,
        )

    return _make
