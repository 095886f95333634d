"""
Profit/loss for lots, cycles and portfolios.

Premiums are counted per share and multiplied by 100 per contract.
Per-lot metrics net the lot's premiums into an effective cost basis;
cycle metrics use average-cost accounting across every share trade in
the cycle.
"""

import logging
from collections.abc import Iterable
from typing import Optional, Union

from src.constants import SHARES_PER_CONTRACT

from .events import (
    OPTION_CLOSE_EVENTS,
    OPTION_OPEN_EVENTS,
    SHARE_ACQUISITION_EVENTS,
    SHARE_DISPOSAL_EVENTS,
    EventType,
    WheelEvent,
    sort_events,
)
from .ledger import share_delta
from .models import CycleMetrics, Lot, LotMetrics, PortfolioPnL
from .state import LotStatus

logger = logging.getLogger(__name__)


def option_cash(event: WheelEvent) -> float:
    """Premium cash for one option event: positive when sold, negative when bought back."""
    amount = (event.premium or 0.0) * event.contract_count * SHARES_PER_CONTRACT
    if event.event_type in OPTION_OPEN_EVENTS:
        return amount
    if event.event_type in OPTION_CLOSE_EVENTS:
        return -amount
    return 0.0


def _trade_price(event: WheelEvent) -> float:
    if event.event_type in (EventType.PUT_ASSIGNMENT, EventType.CALL_ASSIGNMENT):
        return event.strike or event.price or 0.0
    return event.price or event.strike or 0.0


def compute_lot_metrics(lot: Lot, current_price: Optional[float] = None) -> LotMetrics:
    """
    Compute profit/loss for one lot.

    - ``net_premiums``: premiums received minus premiums paid, minus fees
    - ``cost_basis_effective``: (stock cost - net premiums) per acquired
      share; the lot's stored basis when no acquisition was recorded
    - ``realized_pl``: stock proceeds minus average cost of the shares
      disposed (the stored basis when no acquisition was recorded), plus
      net premiums once the lot is closed, or once a cash-reserved lot's
      put has been closed. Premium on a put that is still
      open is not realized.
    - ``unrealized_pl``: (current price - effective basis) x shares for
      lots still holding shares

    Args:
        lot: Lot with derived state
        current_price: Current share price, if known

    Returns:
        LotMetrics
    """
    premiums = 0.0
    fees_total = 0.0
    stock_cost_total = 0.0
    stock_proceeds = 0.0
    shares_acquired = 0.0
    shares_disposed = 0.0

    for event in lot.events:
        fees_total += event.fees or 0.0
        premiums += option_cash(event)
        shares = abs(share_delta(event))
        if event.event_type in SHARE_ACQUISITION_EVENTS:
            stock_cost_total += _trade_price(event) * shares
            shares_acquired += shares
        elif event.event_type in SHARE_DISPOSAL_EVENTS:
            stock_proceeds += _trade_price(event) * shares
            shares_disposed += shares

    net_premiums = premiums - fees_total

    cost_basis_effective = lot.cost_basis_effective
    if shares_acquired > 0:
        cost_basis_effective = (stock_cost_total - net_premiums) / shares_acquired

    realized_stock_pl = 0.0
    if shares_disposed > 0 and shares_acquired > 0:
        average_cost = stock_cost_total / shares_acquired
        realized_stock_pl = stock_proceeds - average_cost * shares_disposed
    elif shares_disposed > 0 and lot.cost_basis_effective is not None:
        # Acquisition predates the ledger; realize against the stored basis
        realized_stock_pl = stock_proceeds - lot.cost_basis_effective * shares_disposed

    put_settled = lot.coverage is None or not lot.coverage.is_open
    realized_pl = realized_stock_pl
    unrealized_pl = 0.0
    if lot.status.is_closed or (lot.status == LotStatus.CASH_RESERVED and put_settled):
        realized_pl += net_premiums
    elif current_price is not None and cost_basis_effective is not None:
        unrealized_pl = (current_price - cost_basis_effective) * lot.shares

    return LotMetrics(
        lot_number=lot.lot_number,
        ticker=lot.ticker,
        net_premiums=round(net_premiums, 2),
        fees_total=round(fees_total, 2),
        stock_cost_total=round(stock_cost_total, 2),
        stock_proceeds=round(stock_proceeds, 2),
        cost_basis_effective=(
            None if cost_basis_effective is None else round(cost_basis_effective, 4)
        ),
        realized_pl=round(realized_pl, 2),
        unrealized_pl=round(unrealized_pl, 2),
        current_price=current_price,
    )


def compute_cycle_metrics(
    events: list[WheelEvent], current_price: Optional[float] = None, ticker: str = ""
) -> CycleMetrics:
    """
    Average-cost profit/loss over a whole cycle.

    Share sales and call assignments realize P&L against the running
    average cost; option premiums (net of fees) are realized as cash flow.

    Args:
        events: All events of the cycle
        current_price: Current share price, if known
        ticker: Ticker label for the result

    Returns:
        CycleMetrics
    """
    shares_owned = 0.0
    total_cost = 0.0
    net_options_cashflow = 0.0
    realized_stock_pl = 0.0

    for event in sort_events(events):
        fees = event.fees or 0.0
        shares = abs(share_delta(event))
        if event.event_type in SHARE_ACQUISITION_EVENTS:
            shares_owned += shares
            total_cost += _trade_price(event) * shares + fees
        elif event.event_type in SHARE_DISPOSAL_EVENTS:
            if shares > 0 and shares_owned > 0:
                average_cost = total_cost / shares_owned
                realized_stock_pl += (_trade_price(event) - average_cost) * shares - fees
                shares_owned -= shares
                total_cost -= average_cost * shares
        elif event.event_type in OPTION_OPEN_EVENTS | OPTION_CLOSE_EVENTS:
            net_options_cashflow += option_cash(event) - fees
        elif event.event_type == EventType.FEE:
            net_options_cashflow -= fees

    average_cost_basis = total_cost / shares_owned if shares_owned else 0.0
    unrealized_pl = 0.0
    if current_price is not None and shares_owned:
        unrealized_pl = (current_price - average_cost_basis) * shares_owned

    return CycleMetrics(
        ticker=ticker,
        shares_owned=round(shares_owned, 6),
        average_cost_basis=round(average_cost_basis, 6),
        total_cost_remaining=round(total_cost, 2),
        net_options_cashflow=round(net_options_cashflow, 2),
        realized_stock_pl=round(realized_stock_pl, 2),
        total_realized_pl=round(realized_stock_pl + net_options_cashflow, 2),
        current_price=current_price,
        unrealized_pl=round(unrealized_pl, 2),
    )


def aggregate_metrics(
    metrics: Iterable[Optional[Union[LotMetrics, CycleMetrics]]],
) -> PortfolioPnL:
    """Sum realized, unrealized and option cash flow across lots or cycles."""
    result = PortfolioPnL()
    for item in metrics:
        if item is None:
            continue
        result.total_realized_pl += item.total_realized_pl
        result.unrealized_pl += item.unrealized_pl
        result.net_options_cashflow += item.net_options_cashflow
        result.count += 1
    result.total_realized_pl = round(result.total_realized_pl, 2)
    result.unrealized_pl = round(result.unrealized_pl, 2)
    result.net_options_cashflow = round(result.net_options_cashflow, 2)
    return result
