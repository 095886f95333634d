"""
Lot ledger: derive share balance, coverage and status from events.

Nothing derived here is stored. Every call folds the lot's events from
scratch, so the result always reflects the current ledger.

Example:
    >>> ledger = LotLedger()
    >>> lot = ledger.build_lot(record, events)
    >>> lot.status, lot.shares
    (<LotStatus.OPEN_UNCOVERED: 'OPEN_UNCOVERED'>, 100.0)
"""

import logging
from collections.abc import Iterable
from typing import Any, Optional

from src.constants import DEFAULT_LOT_SHARES, SHARES_PER_CONTRACT
from src.exceptions import InvalidInputError
from src.warnings import (
    add_link_warning,
    add_negative_balance_warning,
    add_status_mismatch_warning,
    add_uncovered_call_warning,
)

from .events import (
    CALL_SETTLEMENT_EVENTS,
    PUT_SETTLEMENT_EVENTS,
    EventType,
    WheelEvent,
    sort_events,
)
from .models import Coverage, Lot, LotBundle, LotRecord
from .state import (
    AcquisitionMethod,
    CoverageKind,
    CoverageStatus,
    LotStatus,
    get_next_status,
    initial_status,
)

logger = logging.getLogger(__name__)


def share_delta(event: WheelEvent) -> float:
    """
    Share balance change caused by one event.

    Assignments without a recorded share quantity count 100 shares per
    contract. Option premiums and fees never move the balance.
    """
    shares = event.quantity_shares
    if event.event_type == EventType.BUY_SHARES:
        return shares or 0.0
    if event.event_type == EventType.PUT_ASSIGNMENT:
        return shares or SHARES_PER_CONTRACT * event.contract_count
    if event.event_type == EventType.SELL_SHARES:
        return -(shares or 0.0)
    if event.event_type == EventType.CALL_ASSIGNMENT:
        return -(shares or SHARES_PER_CONTRACT * event.contract_count)
    return 0.0


def compute_share_balance(events: list[WheelEvent]) -> float:
    """Fold events in trade-date order into a share balance."""
    return float(sum(share_delta(e) for e in sort_events(events)))


def infer_default_shares_when_history_missing(
    balance: float,
    status: Optional[LotStatus],
    acquisition_method: AcquisitionMethod,
    default_shares: float = DEFAULT_LOT_SHARES,
) -> float:
    """
    Assume a full lot when an open stock lot shows no shares.

    Lots opened before event tracking existed have no BUY_SHARES or
    assignment event, so their folded balance is zero even though they
    hold shares. An open, stock-holding lot with a zero balance is
    therefore reported as holding ``default_shares``.

    Any non-zero balance is returned unchanged, as is a zero balance for
    a closed lot or a cash-secured put placeholder.

    Args:
        balance: Folded share balance
        status: Lot status (stored, or derived when nothing is stored)
        acquisition_method: How the lot was acquired
        default_shares: Shares to assume

    Returns:
        The share count to report
    """
    if balance != 0:
        return balance
    if status is not None and status.is_closed:
        return balance
    if not acquisition_method.holds_stock or status == LotStatus.CASH_RESERVED:
        return balance
    return float(default_shares)


def _settles(open_event: WheelEvent, event: WheelEvent, settlement_types: frozenset) -> bool:
    if event.event_type not in settlement_types:
        return False
    # Unlinked settlements match the most recent open by recency
    return event.link_event_id is None or event.link_event_id == open_event.id


def _latest(events: list[WheelEvent], event_type: EventType) -> Optional[int]:
    for index in range(len(events) - 1, -1, -1):
        if events[index].event_type == event_type:
            return index
    return None


def derive_coverage(
    events: list[WheelEvent],
    status: Optional[LotStatus],
    acquisition_method: AcquisitionMethod,
) -> Optional[Coverage]:
    """
    Derive a lot's coverage from its events.

    The latest SELL_CALL_OPEN is the lot's coverage. It is CLOSED once a
    later SELL_CALL_CLOSE or CALL_ASSIGNMENT links to it (or carries no
    link at all). Without a call, a cash-reserved or cash-secured-put lot
    reports its latest short put in the same shape, closed once the put
    is bought back or assigned.

    Args:
        events: The lot's events
        status: Lot status
        acquisition_method: How the lot was acquired

    Returns:
        Coverage, or None if the lot has no call (or qualifying put)
    """
    ordered = sort_events(events)

    call_index = _latest(ordered, EventType.SELL_CALL_OPEN)
    if call_index is not None:
        call_open = ordered[call_index]
        closed = any(
            _settles(call_open, e, CALL_SETTLEMENT_EVENTS) for e in ordered[call_index + 1 :]
        )
        return Coverage(
            kind=CoverageKind.CALL,
            status=CoverageStatus.CLOSED if closed else CoverageStatus.OPEN,
            strike=call_open.strike,
            premium=call_open.premium,
            contracts=call_open.contracts,
            event_id=call_open.id,
        )

    put_index = _latest(ordered, EventType.SELL_PUT_OPEN)
    is_cash_lot = (
        status == LotStatus.CASH_RESERVED
        or acquisition_method == AcquisitionMethod.CASH_SECURED_PUT
    )
    if put_index is not None and is_cash_lot:
        put_open = ordered[put_index]
        closed = any(
            _settles(put_open, e, PUT_SETTLEMENT_EVENTS) for e in ordered[put_index + 1 :]
        )
        return Coverage(
            kind=CoverageKind.PUT,
            status=CoverageStatus.CLOSED if closed else CoverageStatus.OPEN,
            strike=put_open.strike,
            premium=put_open.premium,
            contracts=put_open.contracts,
            event_id=put_open.id,
        )

    return None


def compute_collateral_reserved(events: list[WheelEvent]) -> float:
    """
    Cash reserved by short puts that are still open.

    ``sum(contracts * strike * 100)`` over SELL_PUT_OPEN events not yet
    settled by a close or an assignment. Unlinked settlements close the
    most recent open put.
    """
    open_puts: list[WheelEvent] = []
    for event in sort_events(events):
        if event.event_type == EventType.SELL_PUT_OPEN:
            open_puts.append(event)
        elif event.event_type in PUT_SETTLEMENT_EVENTS and open_puts:
            if event.link_event_id is None:
                open_puts.pop()
            else:
                open_puts = [p for p in open_puts if p.id != event.link_event_id]
    return float(sum(
        p.contract_count * (p.strike or 0.0) * SHARES_PER_CONTRACT for p in open_puts
    ))


class LotLedger:
    """
    Builds lots with derived state from their event lists.

    The ledger holds only configuration; it keeps no state between calls.
    """

    def __init__(self, default_lot_shares: float = DEFAULT_LOT_SHARES):
        """
        Initialize the ledger.

        Args:
            default_lot_shares: Shares assumed for open lots with no
                recorded acquisition
        """
        self.default_lot_shares = default_lot_shares

    @classmethod
    def from_settings(cls, settings: Any) -> "LotLedger":
        """Build a ledger from EngineSettings."""
        return cls(default_lot_shares=settings.default_lot_shares)

    def derive_status(
        self, record: LotRecord, events: list[WheelEvent], warnings: Optional[list[str]] = None
    ) -> tuple[LotStatus, float]:
        """
        Run the lot state machine over its events.

        Args:
            record: Lot identity
            events: The lot's events
            warnings: Optional list collecting data-quality warnings

        Returns:
            (derived status, folded share balance)
        """
        if warnings is None:
            warnings = []
        ordered = sort_events(events)
        known_ids = {e.id for e in ordered if e.id is not None}

        status = initial_status(record.acquisition_method)
        balance = 0.0
        has_share_history = False
        balance_warned = False
        open_call: Optional[WheelEvent] = None

        for event in ordered:
            add_link_warning(event, known_ids, warnings)

            if event.event_type == EventType.SELL_CALL_OPEN:
                no_shares = has_share_history and balance <= 0
                if status == LotStatus.CASH_RESERVED or no_shares:
                    add_uncovered_call_warning(record.lot_number, event, warnings)

            delta = share_delta(event)
            if delta:
                has_share_history = True
                balance += delta
            if balance < 0 and not balance_warned:
                add_negative_balance_warning(record.lot_number, event, balance, warnings)
                balance_warned = True

            if event.event_type == EventType.SELL_CALL_OPEN:
                open_call = event
            elif event.event_type in CALL_SETTLEMENT_EVENTS and open_call is not None:
                # A settlement linked to an earlier, rolled call leaves the live one open
                if not _settles(open_call, event, CALL_SETTLEMENT_EVENTS):
                    continue
                open_call = None

            status = get_next_status(status, event.event_type, balance)

        return status, balance

    def build_lot(self, record: LotRecord, events: list[WheelEvent]) -> Lot:
        """
        Derive a lot's shares, coverage, status and warnings.

        Args:
            record: Lot identity
            events: Events belonging to this lot

        Returns:
            Lot with derived state
        """
        warnings: list[str] = []
        ordered = sort_events(events)
        status, balance = self.derive_status(record, ordered, warnings)

        shares = infer_default_shares_when_history_missing(
            balance,
            record.recorded_status or status,
            record.acquisition_method,
            self.default_lot_shares,
        )
        shares_inferred = shares != balance
        if shares_inferred:
            logger.debug(
                f"{record.ticker} lot {record.lot_number}: no share history, "
                f"assuming {shares:g} shares"
            )

        add_status_mismatch_warning(record.lot_number, record.recorded_status, status, warnings)

        return Lot(
            lot_number=record.lot_number,
            ticker=record.ticker,
            acquisition_method=record.acquisition_method,
            status=status,
            shares=shares,
            acquisition_date=record.acquisition_date,
            cost_basis_effective=record.cost_basis_effective,
            coverage=derive_coverage(ordered, status, record.acquisition_method),
            shares_inferred=shares_inferred,
            cycle_id=record.cycle_id,
            events=ordered,
            warnings=warnings,
        )

    def build_lots(self, bundles: Iterable[LotBundle]) -> list[Lot]:
        """
        Build many lots.

        Raises:
            InvalidInputError: If an item is not a LotBundle
        """
        lots = []
        for bundle in bundles:
            if not isinstance(bundle, LotBundle):
                raise InvalidInputError(
                    f"expected LotBundle, got {type(bundle).__name__}"
                )
            lots.append(self.build_lot(bundle.record, bundle.events))
        flagged = sum(1 for lot in lots if lot.warnings)
        logger.info(f"Built {len(lots)} lots ({flagged} with data-quality warnings)")
        return lots
