"""Tests for the lot state machine."""

import pytest

from src.lots.events import EventType
from src.lots.state import (
    VALID_TRANSITIONS,
    AcquisitionMethod,
    LotStatus,
    can_transition,
    get_next_status,
    initial_status,
)


class TestLotStatus:
    """Tests for LotStatus helpers."""

    def test_closed_states(self) -> None:
        """Only the CLOSED_* states are closed."""
        closed = {s for s in LotStatus if s.is_closed}
        assert closed == {LotStatus.CLOSED_SOLD, LotStatus.CLOSED_CALLED_AWAY}

    def test_holds_shares(self) -> None:
        """Only open states hold shares."""
        assert LotStatus.OPEN_COVERED.holds_shares is True
        assert LotStatus.CASH_RESERVED.holds_shares is False

    def test_initial_status(self) -> None:
        """Cash-secured put lots start reserved, stock lots start uncovered."""
        assert initial_status(AcquisitionMethod.CASH_SECURED_PUT) == LotStatus.CASH_RESERVED
        assert initial_status(AcquisitionMethod.PUT_ASSIGNMENT) == LotStatus.OPEN_UNCOVERED
        assert initial_status(AcquisitionMethod.OUTRIGHT_PURCHASE) == LotStatus.OPEN_UNCOVERED


class TestTransitions:
    """Tests for status transitions."""

    def test_closed_states_have_no_transitions(self) -> None:
        """Closed states are terminal."""
        assert VALID_TRANSITIONS[LotStatus.CLOSED_SOLD] == {}
        assert VALID_TRANSITIONS[LotStatus.CLOSED_CALLED_AWAY] == {}

    def test_can_transition(self) -> None:
        """can_transition reports table entries."""
        assert can_transition(LotStatus.OPEN_UNCOVERED, EventType.SELL_CALL_OPEN) is True
        assert can_transition(LotStatus.CASH_RESERVED, EventType.SELL_CALL_OPEN) is False

    @pytest.mark.parametrize(
        "start,event_type,expected",
        [
            (LotStatus.CASH_RESERVED, EventType.PUT_ASSIGNMENT, LotStatus.OPEN_UNCOVERED),
            (LotStatus.CASH_RESERVED, EventType.BUY_SHARES, LotStatus.OPEN_UNCOVERED),
            (LotStatus.OPEN_UNCOVERED, EventType.SELL_CALL_OPEN, LotStatus.OPEN_COVERED),
            (LotStatus.OPEN_COVERED, EventType.SELL_CALL_CLOSE, LotStatus.OPEN_UNCOVERED),
            (LotStatus.OPEN_COVERED, EventType.CALL_ASSIGNMENT, LotStatus.CLOSED_CALLED_AWAY),
            (LotStatus.OPEN_UNCOVERED, EventType.CALL_ASSIGNMENT, LotStatus.CLOSED_CALLED_AWAY),
        ],
    )
    def test_table_transitions(self, start, event_type, expected) -> None:
        """Balance-independent transitions follow the table."""
        assert get_next_status(start, event_type) == expected

    def test_unmatched_event_keeps_status(self) -> None:
        """Events with no transition leave the status alone."""
        assert get_next_status(LotStatus.OPEN_COVERED, EventType.FEE) == LotStatus.OPEN_COVERED
        assert (
            get_next_status(LotStatus.CASH_RESERVED, EventType.SELL_PUT_OPEN)
            == LotStatus.CASH_RESERVED
        )

    def test_closed_is_terminal(self) -> None:
        """Nothing reopens a closed lot."""
        assert (
            get_next_status(LotStatus.CLOSED_SOLD, EventType.BUY_SHARES, 100)
            == LotStatus.CLOSED_SOLD
        )

    def test_sale_emptying_lot_closes_it(self) -> None:
        """Selling the last shares closes the lot as sold."""
        assert (
            get_next_status(LotStatus.OPEN_UNCOVERED, EventType.SELL_SHARES, 0)
            == LotStatus.CLOSED_SOLD
        )

    def test_partial_sale_uncovers_lot(self) -> None:
        """A covered lot left below 100 shares is no longer covered."""
        assert (
            get_next_status(LotStatus.OPEN_COVERED, EventType.SELL_SHARES, 50)
            == LotStatus.OPEN_UNCOVERED
        )
        assert (
            get_next_status(LotStatus.OPEN_COVERED, EventType.SELL_SHARES, 100)
            == LotStatus.OPEN_COVERED
        )
