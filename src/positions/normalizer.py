"""
Position normalization.

Converts raw brokerage position records into canonical ``StockPosition``
and ``OptionPosition`` objects. Each raw record yields at most one
position: records with zero long and zero short quantity are flat and
carry no signal, so they are dropped.

Per-record problems never raise. Missing numbers default to 0 and an
anomaly is recorded on the position; an option whose terms cannot be
resolved is kept as a low-confidence record so it can still be shown.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Optional

from pydantic import ValidationError

from src.exceptions import InvalidInputError
from src.utils.date_utils import to_date

from .models import (
    Confidence,
    OptionPosition,
    OptionType,
    Position,
    RawPosition,
    StockPosition,
)
from .symbols import ParsedSymbol, parse_option_symbol, parse_stock_symbol

logger = logging.getLogger(__name__)


@dataclass
class NormalizedAccount:
    """Positions plus the balance fields the detector needs."""

    account_number: str = ""
    positions: list[Position] = field(default_factory=list)
    cash_balance: float = 0.0


def net_quantity(raw: RawPosition) -> float:
    """
    Signed quantity: ``long - short``.

    Falls back to a single signed ``quantity`` field when the record has no
    long/short split.
    """
    if raw.long_quantity is None and raw.short_quantity is None:
        return raw.quantity or 0.0
    return (raw.long_quantity or 0.0) - (raw.short_quantity or 0.0)


def select_average_price(raw: RawPosition, is_short: bool) -> Optional[float]:
    """
    Pick the average price field matching the side of the position.

    Short positions carry their own average short price in some feeds;
    reading the long-side field for a short silently corrupts P&L.

    Returns:
        The first populated field for the side, or None if none is set
    """
    if is_short:
        candidates = (
            raw.average_short_price,
            raw.tax_lot_average_short_price,
            raw.average_price,
        )
    else:
        candidates = (
            raw.average_long_price,
            raw.tax_lot_average_long_price,
            raw.average_price,
        )
    for value in candidates:
        if value:
            return value
    return None


def resolve_underlying(raw: RawPosition, parsed: Optional[ParsedSymbol]) -> str:
    """
    Resolve the underlying ticker for a record.

    Preference: explicit underlying field, then the parsed option symbol,
    then the raw symbol itself.
    """
    if raw.underlying_symbol:
        return raw.underlying_symbol.upper()
    if parsed is not None and parsed.is_option:
        return parsed.ticker
    return parse_stock_symbol(raw.symbol or "").ticker.upper()


def _looks_like_option(raw: RawPosition, parsed: ParsedSymbol) -> bool:
    return (
        raw.is_option_asset
        or parsed.is_option
        or raw.option_type is not None
        or raw.strike_price is not None
    )


def normalize_position(
    record: Mapping[str, Any], index: int = 0
) -> Optional[Position]:
    """
    Normalize a single raw position record.

    Args:
        record: Raw provider record (any supported shape)
        index: Position of the record in its batch (used for fallback ids)

    Returns:
        A StockPosition or OptionPosition, or None for flat or unusable records

    Raises:
        InvalidInputError: If the record is not a mapping
    """
    if not isinstance(record, Mapping):
        raise InvalidInputError(
            f"Position record at index {index} must be a mapping, got {type(record).__name__}"
        )

    try:
        raw = RawPosition.model_validate(dict(record))
    except ValidationError as e:
        logger.warning(f"Skipping unreadable position record at index {index}: {e}")
        return None

    symbol = raw.symbol or raw.cusip
    if not symbol:
        logger.warning(f"Skipping position record at index {index}: no symbol")
        return None

    if raw.long_quantity is None and raw.short_quantity is None and raw.quantity is None:
        logger.warning(f"Skipping position {symbol}: no quantity fields")
        return None

    quantity = net_quantity(raw)
    if quantity == 0:
        logger.debug(f"Skipping flat position {symbol}")
        return None

    anomalies: list[str] = []
    is_short = quantity < 0

    average_price = select_average_price(raw, is_short)
    if average_price is None:
        anomalies.append("average price missing; defaulted to 0")
        average_price = 0.0

    market_value = raw.market_value
    if market_value is None:
        anomalies.append("market value missing; defaulted to 0")
        market_value = 0.0

    position_id = raw.id or f"{raw.source}-{symbol}-{index}"
    parsed = parse_option_symbol(symbol, log_failures=False)

    if not _looks_like_option(raw, parsed):
        return StockPosition(
            id=position_id,
            symbol=symbol,
            underlying_symbol=resolve_underlying(raw, None),
            signed_quantity=quantity,
            market_value=market_value,
            average_price=average_price,
            source=raw.source,
            anomalies=anomalies,
        )

    return _normalize_option(
        raw, symbol, parsed, position_id, quantity, market_value, average_price, anomalies
    )


def _normalize_option(
    raw: RawPosition,
    symbol: str,
    parsed: ParsedSymbol,
    position_id: str,
    quantity: float,
    market_value: float,
    average_price: float,
    anomalies: list[str],
) -> Position:
    option_type = OptionType.from_raw(raw.option_type) or parsed.option_type
    strike = parsed.strike_price if parsed.is_option else raw.strike_price
    expiration = to_date(parsed.expiration_date if parsed.is_option else raw.expiration_date)
    underlying = resolve_underlying(raw, parsed)

    if option_type and strike and expiration:
        if quantity != int(quantity):
            anomalies.append(f"fractional contract quantity {quantity} truncated")
        return OptionPosition(
            id=position_id,
            symbol=symbol,
            underlying_symbol=underlying,
            signed_quantity=int(quantity),
            market_value=market_value,
            average_price=average_price,
            source=raw.source,
            option_type=option_type,
            strike_price=strike,
            expiration_date=expiration,
            # Terms taken from explicit fields rather than the symbol
            confidence=Confidence.HIGH if parsed.is_option else Confidence.MEDIUM,
            anomalies=anomalies,
        )

    missing = [
        name
        for name, value in (
            ("option type", option_type),
            ("strike", strike),
            ("expiration", expiration),
        )
        if not value
    ]
    anomalies.extend(parsed.errors)
    anomalies.append(f"option terms unresolved ({', '.join(missing)}); excluded from strategy math")
    logger.warning(
        f"Option position {symbol!r} could not be parsed; treating as plain "
        f"low-confidence record (missing {', '.join(missing)})"
    )
    # Unparsed options are kept as stock-like records for display only
    return StockPosition(
        id=position_id,
        symbol=symbol,
        underlying_symbol=underlying,
        signed_quantity=quantity,
        market_value=market_value,
        average_price=average_price,
        source=raw.source,
        confidence=Confidence.LOW,
        anomalies=anomalies,
    )


def normalize_positions(records: list[Mapping[str, Any]]) -> list[Position]:
    """
    Normalize a batch of raw position records.

    Args:
        records: List of raw provider records

    Returns:
        Normalized positions, in input order, flat records omitted

    Raises:
        InvalidInputError: If ``records`` is not a list/tuple, or an entry
            is not a mapping
    """
    if not isinstance(records, (list, tuple)):
        raise InvalidInputError(
            f"Position records must be a list, got {type(records).__name__}"
        )

    positions: list[Position] = []
    for index, record in enumerate(records):
        position = normalize_position(record, index)
        if position is not None:
            positions.append(position)

    low_confidence = sum(1 for p in positions if p.excluded_from_strategy)
    logger.info(
        f"Normalized {len(positions)} of {len(records)} position records "
        f"({low_confidence} low confidence)"
    )
    return positions


def normalize_account(payload: Mapping[str, Any]) -> NormalizedAccount:
    """
    Normalize a brokerage account payload.

    The account data may be nested under ``securitiesAccount``.

    Args:
        payload: Raw account response

    Returns:
        NormalizedAccount with positions and cash balance

    Raises:
        InvalidInputError: If the payload is not a mapping
    """
    if not isinstance(payload, Mapping):
        raise InvalidInputError(
            f"Account payload must be a mapping, got {type(payload).__name__}"
        )
    account_data = payload.get("securitiesAccount", payload)
    balances = account_data.get("currentBalances") or {}

    cash_balance = balances.get("cashBalance", 0.0)
    try:
        cash_balance = float(cash_balance or 0.0)
    except (TypeError, ValueError):
        logger.warning(f"Ignoring non-numeric cash balance {cash_balance!r}")
        cash_balance = 0.0

    return NormalizedAccount(
        account_number=str(account_data.get("accountNumber", "")),
        positions=normalize_positions(list(account_data.get("positions") or [])),
        cash_balance=cash_balance,
    )
