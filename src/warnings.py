"""
Data-quality warning utilities for the lot ledger.

A ledger with gaps or inconsistent links is still folded into lots; the
problems found along the way are appended to the lot's warning list so a
UI can flag it for manual review.

Example:
    from src.warnings import add_link_warning, add_negative_balance_warning

    warnings = []
    add_link_warning(event, known_ids, warnings)
    add_negative_balance_warning(lot_number, event, balance, warnings)
"""

import logging
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .lots.events import WheelEvent
    from .lots.state import LotStatus

logger = logging.getLogger(__name__)


def _add(message: str, warnings: list[str]) -> None:
    logger.warning(message)
    warnings.append(message)


def add_link_warning(event: "WheelEvent", known_ids: set[str], warnings: list[str]) -> None:
    """
    Warn when an event links to an event that is not in the ledger.

    Args:
        event: Event being folded
        known_ids: Ids of the events available to link to
        warnings: List to append warnings to
    """
    if event.link_event_id is not None and event.link_event_id not in known_ids:
        _add(
            f"Event {event.id} ({event.event_type.value}) links to unknown event "
            f"{event.link_event_id}",
            warnings,
        )


def add_negative_balance_warning(
    lot_number: int, event: "WheelEvent", balance: float, warnings: list[str]
) -> None:
    """Warn when folding an event drives the share balance below zero."""
    if balance < 0:
        _add(
            f"Lot {lot_number}: share balance {balance:g} is negative after event "
            f"{event.id} ({event.event_type.value})",
            warnings,
        )


def add_uncovered_call_warning(
    lot_number: int, event: "WheelEvent", warnings: list[str]
) -> None:
    """Warn about a call sold on a lot that holds no shares."""
    _add(
        f"Lot {lot_number}: call sold with no shares held (event {event.id})",
        warnings,
    )


def add_status_mismatch_warning(
    lot_number: int,
    recorded: Optional["LotStatus"],
    derived: "LotStatus",
    warnings: list[str],
) -> None:
    """Warn when a stored status disagrees with the status derived from events."""
    if recorded is not None and recorded != derived:
        _add(
            f"Lot {lot_number}: recorded status {recorded.value} differs from "
            f"derived status {derived.value}",
            warnings,
        )
