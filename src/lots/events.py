"""
Wheel ledger events.

A ``WheelEvent`` is an immutable, append-only ledger entry. Raw event
records (from an import file or an API) are validated through
``RawEvent`` and mapped onto the canonical ``EventType`` names; legacy
spellings such as ``ASSIGNMENT`` or ``CALLED_AWAY`` are accepted.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from src.exceptions import InvalidInputError
from src.utils.date_utils import to_date

logger = logging.getLogger(__name__)


class EventType(Enum):
    """Canonical ledger event types."""

    BUY_SHARES = "BUY_SHARES"
    SELL_SHARES = "SELL_SHARES"
    SELL_PUT_OPEN = "SELL_PUT_OPEN"
    SELL_PUT_CLOSE = "SELL_PUT_CLOSE"
    BUY_PUT_CLOSE = "BUY_PUT_CLOSE"
    PUT_ASSIGNMENT = "PUT_ASSIGNMENT"
    SELL_CALL_OPEN = "SELL_CALL_OPEN"
    SELL_CALL_CLOSE = "SELL_CALL_CLOSE"
    CALL_ASSIGNMENT = "CALL_ASSIGNMENT"
    FEE = "FEE"


# Older ledgers used these names
LEGACY_EVENT_TYPES: dict[str, EventType] = {
    "ASSIGNMENT": EventType.PUT_ASSIGNMENT,
    "CALLED_AWAY": EventType.CALL_ASSIGNMENT,
    "CALL_ASSIGNED": EventType.CALL_ASSIGNMENT,
    "SELL_PUT": EventType.SELL_PUT_OPEN,
    "SELL_PUT_CLOSED": EventType.SELL_PUT_CLOSE,
    "SELL_CALL_CLOSED": EventType.SELL_CALL_CLOSE,
}

SHARE_ACQUISITION_EVENTS = frozenset({EventType.BUY_SHARES, EventType.PUT_ASSIGNMENT})
SHARE_DISPOSAL_EVENTS = frozenset({EventType.SELL_SHARES, EventType.CALL_ASSIGNMENT})
OPTION_OPEN_EVENTS = frozenset({EventType.SELL_PUT_OPEN, EventType.SELL_CALL_OPEN})
OPTION_CLOSE_EVENTS = frozenset(
    {EventType.SELL_PUT_CLOSE, EventType.BUY_PUT_CLOSE, EventType.SELL_CALL_CLOSE}
)
CALL_SETTLEMENT_EVENTS = frozenset({EventType.SELL_CALL_CLOSE, EventType.CALL_ASSIGNMENT})
PUT_SETTLEMENT_EVENTS = frozenset(
    {EventType.SELL_PUT_CLOSE, EventType.BUY_PUT_CLOSE, EventType.PUT_ASSIGNMENT}
)


def parse_event_type(value: Any) -> Optional[EventType]:
    """
    Map a raw event type name to an EventType.

    Args:
        value: Canonical or legacy name, any case

    Returns:
        The EventType, or None if the name is unknown
    """
    if isinstance(value, EventType):
        return value
    if value is None:
        return None
    name = str(value).strip().upper()
    if name in LEGACY_EVENT_TYPES:
        return LEGACY_EVENT_TYPES[name]
    try:
        return EventType(name)
    except ValueError:
        return None


@dataclass(frozen=True)
class WheelEvent:
    """
    One recorded trade or fee.

    Attributes:
        event_type: What happened
        trade_date: When it happened
        id: Ledger id (close/roll/fee events point at it via link_event_id)
        cycle_id: Wheel cycle the event belongs to
        ticker: Underlying ticker
        quantity_shares: Shares bought, sold, assigned or called away
        contracts: Option contracts
        price: Share price for stock trades
        strike: Option strike
        premium: Option premium per share
        fees: Commissions and fees
        link_event_id: Id of the open event this event settles
        notes: Free-form notes
    """

    event_type: EventType
    trade_date: date
    id: Optional[str] = None
    cycle_id: Optional[str] = None
    ticker: Optional[str] = None
    quantity_shares: Optional[float] = None
    contracts: Optional[int] = None
    price: Optional[float] = None
    strike: Optional[float] = None
    premium: Optional[float] = None
    fees: Optional[float] = None
    link_event_id: Optional[str] = None
    notes: Optional[str] = None

    @property
    def contract_count(self) -> int:
        """Unsigned contract count (0 when not recorded)."""
        return abs(int(self.contracts or 0))


class RawEvent(BaseModel):
    """A raw ledger event record in snake_case or camelCase."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: Optional[str] = None
    cycle_id: Optional[str] = Field(None, validation_alias=AliasChoices("cycle_id", "cycleId"))
    ticker: Optional[str] = None
    event_type: str = Field(validation_alias=AliasChoices("event_type", "eventType", "type"))
    trade_date: date = Field(validation_alias=AliasChoices("trade_date", "tradeDate"))
    quantity_shares: Optional[float] = Field(
        None, validation_alias=AliasChoices("quantity_shares", "quantityShares")
    )
    contracts: Optional[int] = None
    price: Optional[float] = None
    strike: Optional[float] = None
    premium: Optional[float] = None
    fees: Optional[float] = None
    link_event_id: Optional[str] = Field(
        None, validation_alias=AliasChoices("link_event_id", "linkEventId")
    )
    notes: Optional[str] = None

    @field_validator("id", "cycle_id", "link_event_id", mode="before")
    @classmethod
    def _id_as_text(cls, value: Any) -> Optional[str]:
        if value is None or value == "":
            return None
        return str(value)

    @field_validator("ticker", mode="before")
    @classmethod
    def _upper_ticker(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        return str(value).strip().upper() or None

    @field_validator("trade_date", mode="before")
    @classmethod
    def _coerce_date(cls, value: Any) -> Any:
        parsed = to_date(value)
        if parsed is None:
            raise ValueError(f"invalid trade date: {value!r}")
        return parsed

    @field_validator("quantity_shares", "price", "strike", "premium", "fees", mode="before")
    @classmethod
    def _blank_as_none(cls, value: Any) -> Any:
        return None if value == "" else value

    @field_validator("contracts", mode="before")
    @classmethod
    def _whole_contracts(cls, value: Any) -> Any:
        if value is None or value == "":
            return None
        return int(float(value))


def parse_event(record: Any, warnings: Optional[list[str]] = None) -> Optional[WheelEvent]:
    """
    Validate one raw event record.

    Records that fail validation or carry an unknown event type are
    skipped: a warning is logged and, when given, appended to ``warnings``.

    Args:
        record: Raw event mapping, or an existing WheelEvent
        warnings: Optional list collecting data-quality warnings

    Returns:
        WheelEvent, or None if the record was skipped
    """
    if isinstance(record, WheelEvent):
        return record
    if not isinstance(record, Mapping):
        raise InvalidInputError(f"event record must be a mapping, got {type(record).__name__}")

    try:
        raw = RawEvent.model_validate(dict(record))
    except ValidationError as e:
        message = f"Skipping invalid event {record.get('id')!r}: {e.error_count()} validation error(s)"
        logger.warning(message)
        if warnings is not None:
            warnings.append(message)
        return None

    event_type = parse_event_type(raw.event_type)
    if event_type is None:
        message = f"Skipping event {raw.id!r} with unknown type '{raw.event_type}'"
        logger.warning(message)
        if warnings is not None:
            warnings.append(message)
        return None

    return WheelEvent(
        event_type=event_type,
        trade_date=raw.trade_date,
        id=raw.id,
        cycle_id=raw.cycle_id,
        ticker=raw.ticker,
        quantity_shares=raw.quantity_shares,
        contracts=raw.contracts,
        price=raw.price,
        strike=raw.strike,
        premium=raw.premium,
        fees=raw.fees,
        link_event_id=raw.link_event_id,
        notes=raw.notes,
    )


def parse_events(records: list[Any], warnings: Optional[list[str]] = None) -> list[WheelEvent]:
    """
    Validate a list of raw event records, skipping bad ones.

    Raises:
        InvalidInputError: If records is not a list
    """
    if not isinstance(records, (list, tuple)):
        raise InvalidInputError(f"events must be a list, got {type(records).__name__}")
    events = []
    for record in records:
        event = parse_event(record, warnings)
        if event is not None:
            events.append(event)
    return events


def sort_events(events: list[WheelEvent]) -> list[WheelEvent]:
    """Order events by trade date; same-day events keep their input order."""
    return sorted(events, key=lambda e: e.trade_date)
