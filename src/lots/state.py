"""State machine enums for wheel lots."""

from enum import Enum
from typing import Optional

from src.constants import SHARES_PER_CONTRACT

from .events import EventType


class LotStatus(Enum):
    """
    Derived status of a lot.

    A lot holds shares (OPEN_*) or reserves cash for a short put
    (CASH_RESERVED) until the shares leave it (CLOSED_*).
    """

    CASH_RESERVED = "CASH_RESERVED"  # Short put open, no shares yet
    OPEN_UNCOVERED = "OPEN_UNCOVERED"  # Holding shares, no open call
    OPEN_COVERED = "OPEN_COVERED"  # Holding shares, call sold against them
    CLOSED_SOLD = "CLOSED_SOLD"  # Shares sold manually
    CLOSED_CALLED_AWAY = "CLOSED_CALLED_AWAY"  # Call assigned

    @property
    def is_closed(self) -> bool:
        return self.value.startswith("CLOSED")

    @property
    def holds_shares(self) -> bool:
        return self in (LotStatus.OPEN_UNCOVERED, LotStatus.OPEN_COVERED)


class AcquisitionMethod(Enum):
    """How a lot came into the ledger."""

    PUT_ASSIGNMENT = "PUT_ASSIGNMENT"
    OUTRIGHT_PURCHASE = "OUTRIGHT_PURCHASE"
    CASH_SECURED_PUT = "CASH_SECURED_PUT"  # Placeholder until assignment

    @property
    def holds_stock(self) -> bool:
        return self != AcquisitionMethod.CASH_SECURED_PUT


class CoverageStatus(Enum):
    """Whether the option backing a lot is still open."""

    OPEN = "OPEN"
    CLOSED = "CLOSED"


class CoverageKind(Enum):
    """Covered call against shares, or the short put a cash lot secures."""

    CALL = "CALL"
    PUT = "PUT"


# Transitions that do not depend on the share balance
VALID_TRANSITIONS: dict[LotStatus, dict[EventType, LotStatus]] = {
    LotStatus.CASH_RESERVED: {
        EventType.PUT_ASSIGNMENT: LotStatus.OPEN_UNCOVERED,
        EventType.BUY_SHARES: LotStatus.OPEN_UNCOVERED,
    },
    LotStatus.OPEN_UNCOVERED: {
        EventType.SELL_CALL_OPEN: LotStatus.OPEN_COVERED,
        EventType.CALL_ASSIGNMENT: LotStatus.CLOSED_CALLED_AWAY,
    },
    LotStatus.OPEN_COVERED: {
        EventType.SELL_CALL_CLOSE: LotStatus.OPEN_UNCOVERED,
        EventType.CALL_ASSIGNMENT: LotStatus.CLOSED_CALLED_AWAY,
    },
    LotStatus.CLOSED_SOLD: {},
    LotStatus.CLOSED_CALLED_AWAY: {},
}


def initial_status(method: AcquisitionMethod) -> LotStatus:
    """Status of a lot before any of its events are applied."""
    if method == AcquisitionMethod.CASH_SECURED_PUT:
        return LotStatus.CASH_RESERVED
    return LotStatus.OPEN_UNCOVERED


def can_transition(from_status: LotStatus, event_type: EventType) -> bool:
    """Check if an event moves a lot out of its current status."""
    return event_type in VALID_TRANSITIONS.get(from_status, {})


def get_next_status(
    from_status: LotStatus, event_type: EventType, shares_after: Optional[float] = None
) -> LotStatus:
    """
    Get the status after applying one event.

    Events with no transition from the current status leave it unchanged.
    Share sales depend on the balance left afterwards: an emptied lot is
    closed as sold, and a covered lot left with less than one contract's
    worth of shares is no longer covered.

    Args:
        from_status: Current status
        event_type: Event being applied
        shares_after: Share balance after the event

    Returns:
        The next status
    """
    if from_status.is_closed:
        return from_status

    if event_type == EventType.SELL_SHARES and shares_after is not None:
        if shares_after <= 0:
            return LotStatus.CLOSED_SOLD
        if from_status == LotStatus.OPEN_COVERED and shares_after < SHARES_PER_CONTRACT:
            return LotStatus.OPEN_UNCOVERED
        return from_status

    return VALID_TRANSITIONS[from_status].get(event_type, from_status)
