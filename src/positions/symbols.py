"""
Option symbol parsing.

Decodes OCC-style option identifiers of the form::

    TICKER + YYMMDD + C|P + strike x 1000 (8 digits)

e.g. ``"GOOG  260618C00250000"`` is a GOOG call expiring 2026-06-18 with a
$250 strike. Whitespace anywhere in the symbol is ignored.

Parsing never raises. A symbol that does not match comes back with
``is_option=False``, low confidence and a recorded error, so one malformed
record cannot block classification of the rest of a portfolio.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from src.utils.date_utils import calculate_days_to_expiry

from .models import Confidence, OptionType

logger = logging.getLogger(__name__)

OPTION_SYMBOL_PATTERN = re.compile(r"^([A-Z][A-Z0-9./]*?)(\d{6})([CP])(\d{8})$")
STRIKE_SCALE = 1000
OCC_TICKER_WIDTH = 6


@dataclass
class ParsedSymbol:
    """Result of parsing a raw position symbol."""

    original_symbol: str
    ticker: str
    is_option: bool = False
    option_type: Optional[OptionType] = None
    strike_price: Optional[float] = None
    expiration_date: Optional[str] = None  # YYYY-MM-DD
    confidence: Confidence = Confidence.LOW
    errors: list[str] = field(default_factory=list)

    @property
    def expiration(self) -> Optional[date]:
        """Expiration as a date object."""
        if self.expiration_date is None:
            return None
        return date.fromisoformat(self.expiration_date)

    def days_to_expiration(self, as_of: Optional[date] = None) -> Optional[int]:
        """Calendar days until expiration (None for non-options)."""
        if self.expiration_date is None:
            return None
        return calculate_days_to_expiry(self.expiration_date, as_of)

    @property
    def display_symbol(self) -> str:
        """Human-readable form, e.g. ``HIMS 2025-10-17 Put $37``."""
        if not self.is_option:
            return self.ticker
        return (
            f"{self.ticker} {self.expiration_date} {self.option_type.value} "
            f"${self.strike_price:g}"
        )


def parse_option_symbol(symbol: str, log_failures: bool = True) -> ParsedSymbol:
    """
    Parse an option symbol into its components.

    Args:
        symbol: Raw symbol, e.g. "HIMS  251017P00037000"
        log_failures: Log a warning when the symbol does not parse

    Returns:
        ParsedSymbol. On failure ``is_option`` is False, ``ticker`` is the
        raw symbol and ``errors`` explains why.
    """
    raw = symbol if isinstance(symbol, str) else ("" if symbol is None else str(symbol))
    clean = re.sub(r"\s+", "", raw).upper()

    match = OPTION_SYMBOL_PATTERN.match(clean)
    if not match:
        if log_failures:
            logger.warning(f"Could not parse option symbol: {raw!r}")
        return ParsedSymbol(
            original_symbol=raw,
            ticker=raw.strip(),
            errors=["Could not parse option symbol format"],
        )

    ticker, date_str, type_str, strike_str = match.groups()

    try:
        expiration = date(
            2000 + int(date_str[0:2]), int(date_str[2:4]), int(date_str[4:6])
        )
    except ValueError as e:
        if log_failures:
            logger.warning(f"Invalid expiration date in option symbol {raw!r}: {e}")
        return ParsedSymbol(
            original_symbol=raw,
            ticker=raw.strip(),
            errors=[f"Invalid expiration date '{date_str}': {e}"],
        )

    return ParsedSymbol(
        original_symbol=raw,
        ticker=ticker,
        is_option=True,
        option_type=OptionType.CALL if type_str == "C" else OptionType.PUT,
        strike_price=int(strike_str) / STRIKE_SCALE,
        expiration_date=expiration.isoformat(),
        confidence=Confidence.HIGH,
    )


def parse_stock_symbol(symbol: str) -> ParsedSymbol:
    """Parse a stock symbol (whitespace stripped, always high confidence)."""
    raw = symbol or ""
    return ParsedSymbol(
        original_symbol=raw,
        ticker=re.sub(r"\s+", "", raw),
        confidence=Confidence.HIGH,
    )


def format_option_symbol(
    ticker: str,
    expiration: date,
    option_type: OptionType,
    strike: float,
    padded: bool = True,
) -> str:
    """
    Build an OCC-style option symbol.

    Args:
        ticker: Underlying ticker
        expiration: Expiration date
        option_type: Call or Put
        strike: Strike price in dollars
        padded: Pad the ticker to six characters (brokerage style)

    Returns:
        Symbol such as "AAPL  250117C00150000"
    """
    root = ticker.upper().ljust(OCC_TICKER_WIDTH) if padded else ticker.upper()
    flag = "C" if option_type == OptionType.CALL else "P"
    scaled = int(round(strike * STRIKE_SCALE))
    return f"{root}{expiration:%y%m%d}{flag}{scaled:08d}"
