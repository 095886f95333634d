"""
Lot assembly: split a cycle's events into 100-share lots.

Rules, applied in trade-date order:

- Each short put contract opens a CASH_SECURED_PUT lot (cash reserved).
- Each put assignment contract moves a reserved lot to shares, or opens
  a PUT_ASSIGNMENT lot when no reserved lot is waiting.
- Purchased shares accumulate into OUTRIGHT_PURCHASE lots of 100.
- Each short call contract binds to the oldest uncovered lot.
- Call closes and call assignments settle the linked (or oldest covered) lot.
- Share sales draw down the oldest open lots.
- Fees follow their linked event, or the most recent lot.

Events are split per lot into new event objects; the input events are
never modified.
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Optional

from src.constants import SHARES_PER_CONTRACT

from .events import EventType, WheelEvent, sort_events
from .models import LotBundle, LotRecord
from .state import AcquisitionMethod, LotStatus

logger = logging.getLogger(__name__)


@dataclass
class _WorkingLot:
    lot_number: int
    method: AcquisitionMethod
    acquisition_date: date
    status: LotStatus
    shares: float = 0.0
    open_call_id: Optional[str] = None
    open_put_id: Optional[str] = None
    has_open_call: bool = False
    has_open_put: bool = False
    events: list[WheelEvent] = field(default_factory=list)


def _portion(event: WheelEvent, first: bool, **changes) -> WheelEvent:
    """Copy of an event for one lot; fees stay on the first portion only."""
    if not first:
        changes["fees"] = None
    return replace(event, **changes)


def _contract_units(event: WheelEvent) -> int:
    if event.contract_count:
        return event.contract_count
    if event.quantity_shares:
        return max(1, int(event.quantity_shares // SHARES_PER_CONTRACT))
    return 1


class LotAssembler:
    """Deterministically groups one cycle's events into lots."""

    def __init__(self, ticker: str, cycle_id: Optional[str] = None):
        self.ticker = ticker.upper()
        self.cycle_id = cycle_id
        self.lots: list[_WorkingLot] = []
        self._pending: list[WheelEvent] = []
        self._pending_shares = 0.0

    def _open_lot(self, method: AcquisitionMethod, opened: date, status: LotStatus) -> _WorkingLot:
        lot = _WorkingLot(
            lot_number=len(self.lots) + 1,
            method=method,
            acquisition_date=opened,
            status=status,
        )
        self.lots.append(lot)
        return lot

    def _find(self, predicate, link_id: Optional[str] = None) -> Optional[_WorkingLot]:
        candidates = [lot for lot in self.lots if predicate(lot)]
        if link_id is not None:
            for lot in candidates:
                if link_id in (lot.open_call_id, lot.open_put_id):
                    return lot
        return candidates[0] if candidates else None

    def _unplaced(self, event: WheelEvent, reason: str) -> None:
        logger.warning(
            f"{self.ticker}: {event.event_type.value} event {event.id} not assigned to a lot ({reason})"
        )

    # -- event handlers ----------------------------------------------------

    def _sell_put_open(self, event: WheelEvent) -> None:
        for i in range(_contract_units(event)):
            lot = self._open_lot(
                AcquisitionMethod.CASH_SECURED_PUT, event.trade_date, LotStatus.CASH_RESERVED
            )
            lot.open_put_id = event.id
            lot.has_open_put = True
            lot.events.append(_portion(event, i == 0, contracts=1))

    def _close_put(self, event: WheelEvent) -> None:
        for i in range(_contract_units(event)):
            lot = self._find(lambda lot: lot.has_open_put, event.link_event_id)
            if lot is None:
                self._unplaced(event, "no open put")
                return
            lot.has_open_put = False
            lot.events.append(_portion(event, i == 0, contracts=1))

    def _put_assignment(self, event: WheelEvent) -> None:
        for i in range(_contract_units(event)):
            shares = SHARES_PER_CONTRACT
            portion = _portion(
                event,
                i == 0,
                contracts=1,
                quantity_shares=float(shares) if event.quantity_shares else None,
            )
            lot = self._find(
                lambda lot: lot.status == LotStatus.CASH_RESERVED and lot.has_open_put,
                event.link_event_id,
            )
            if lot is None:
                lot = self._open_lot(
                    AcquisitionMethod.PUT_ASSIGNMENT, event.trade_date, LotStatus.OPEN_UNCOVERED
                )
            else:
                lot.method = AcquisitionMethod.PUT_ASSIGNMENT
                lot.acquisition_date = event.trade_date
                lot.status = LotStatus.OPEN_UNCOVERED
                lot.has_open_put = False
            lot.shares += shares
            lot.events.append(portion)

    def _buy_shares(self, event: WheelEvent) -> None:
        remaining = event.quantity_shares or 0.0
        first = True
        while remaining > 0:
            take = min(remaining, SHARES_PER_CONTRACT - self._pending_shares)
            self._pending.append(_portion(event, first, quantity_shares=take))
            self._pending_shares += take
            remaining -= take
            first = False
            if self._pending_shares >= SHARES_PER_CONTRACT:
                self._flush_pending(event.trade_date)

    def _flush_pending(self, opened: date) -> None:
        lot = self._open_lot(AcquisitionMethod.OUTRIGHT_PURCHASE, opened, LotStatus.OPEN_UNCOVERED)
        lot.shares = self._pending_shares
        lot.events.extend(self._pending)
        self._pending = []
        self._pending_shares = 0.0

    def _sell_shares(self, event: WheelEvent) -> None:
        remaining = event.quantity_shares or 0.0
        first = True
        while remaining > 0:
            lot = self._find(lambda lot: lot.status.holds_shares and lot.shares > 0)
            if lot is None:
                break
            take = min(remaining, lot.shares)
            lot.events.append(_portion(event, first, quantity_shares=take))
            lot.shares -= take
            remaining -= take
            first = False
            if lot.shares <= 0:
                lot.status = LotStatus.CLOSED_SOLD
            elif lot.status == LotStatus.OPEN_COVERED and lot.shares < SHARES_PER_CONTRACT:
                lot.status = LotStatus.OPEN_UNCOVERED
        if remaining > 0:
            self._unplaced(event, f"{remaining:g} shares exceed open lots")

    def _sell_call_open(self, event: WheelEvent) -> None:
        for i in range(_contract_units(event)):
            lot = self._find(
                lambda lot: lot.status == LotStatus.OPEN_UNCOVERED
                and lot.shares >= SHARES_PER_CONTRACT
            )
            if lot is None:
                self._unplaced(event, "no uncovered lot")
                return
            lot.status = LotStatus.OPEN_COVERED
            lot.open_call_id = event.id
            lot.has_open_call = True
            lot.events.append(_portion(event, i == 0, contracts=1))

    def _settle_call(self, event: WheelEvent) -> None:
        assigned = event.event_type == EventType.CALL_ASSIGNMENT
        for i in range(_contract_units(event)):
            lot = self._find(lambda lot: lot.has_open_call, event.link_event_id)
            if lot is None:
                self._unplaced(event, "no covered lot")
                return
            lot.has_open_call = False
            if assigned:
                shares = min(lot.shares, SHARES_PER_CONTRACT)
                portion = _portion(
                    event,
                    i == 0,
                    contracts=1,
                    quantity_shares=shares if event.quantity_shares else None,
                )
                lot.shares -= shares
                lot.status = LotStatus.CLOSED_CALLED_AWAY
            else:
                portion = _portion(event, i == 0, contracts=1)
                lot.status = LotStatus.OPEN_UNCOVERED
            lot.events.append(portion)

    def _fee(self, event: WheelEvent) -> None:
        target = None
        if event.link_event_id is not None:
            for lot in self.lots:
                if any(e.id == event.link_event_id for e in lot.events):
                    target = lot
                    break
        if target is None and self.lots:
            target = self.lots[-1]
        if target is None:
            self._unplaced(event, "no lots yet")
            return
        target.events.append(event)

    # -- driver ------------------------------------------------------------

    def assemble(self, events: list[WheelEvent]) -> list[LotBundle]:
        """
        Split events into lots.

        Args:
            events: All events of one ticker's cycle

        Returns:
            One LotBundle per lot, in the order the lots were opened
        """
        handlers = {
            EventType.SELL_PUT_OPEN: self._sell_put_open,
            EventType.SELL_PUT_CLOSE: self._close_put,
            EventType.BUY_PUT_CLOSE: self._close_put,
            EventType.PUT_ASSIGNMENT: self._put_assignment,
            EventType.BUY_SHARES: self._buy_shares,
            EventType.SELL_SHARES: self._sell_shares,
            EventType.SELL_CALL_OPEN: self._sell_call_open,
            EventType.SELL_CALL_CLOSE: self._settle_call,
            EventType.CALL_ASSIGNMENT: self._settle_call,
            EventType.FEE: self._fee,
        }
        for event in sort_events(events):
            if event.ticker and event.ticker.upper() != self.ticker:
                logger.debug(f"Ignoring {event.ticker} event {event.id} for {self.ticker}")
                continue
            handlers[event.event_type](event)

        # Leftover shares short of a full lot become an odd lot
        if self._pending:
            self._flush_pending(self._pending[-1].trade_date)

        bundles = [
            LotBundle(
                record=LotRecord(
                    lot_number=lot.lot_number,
                    ticker=self.ticker,
                    acquisition_method=lot.method,
                    acquisition_date=lot.acquisition_date,
                    cycle_id=self.cycle_id,
                ),
                events=list(lot.events),
            )
            for lot in self.lots
        ]
        logger.info(f"Assembled {len(bundles)} lots for {self.ticker}")
        return bundles


def assemble_lots(
    events: list[WheelEvent], ticker: str, cycle_id: Optional[str] = None
) -> list[LotBundle]:
    """Group one cycle's events into lots (see module docstring for rules)."""
    return LotAssembler(ticker, cycle_id).assemble(events)
