"""
Position parsing and normalization.

Public API:
    parse_option_symbol: Decode OCC-style option symbols
    normalize_positions: Raw brokerage records -> canonical positions
    group_by_ticker: Partition positions by underlying
    PositionCache: Session-scoped TTL cache in front of the feed
"""

from .cache import PositionCache
from .grouping import group_by_ticker, split_stocks_and_options
from .models import (
    Confidence,
    OptionPosition,
    OptionType,
    Position,
    RawPosition,
    StockPosition,
)
from .normalizer import (
    NormalizedAccount,
    normalize_account,
    normalize_position,
    normalize_positions,
    select_average_price,
)
from .symbols import (
    ParsedSymbol,
    format_option_symbol,
    parse_option_symbol,
    parse_stock_symbol,
)

__all__ = [
    # Models
    "Confidence",
    "OptionType",
    "Position",
    "StockPosition",
    "OptionPosition",
    "RawPosition",
    # Symbols
    "ParsedSymbol",
    "parse_option_symbol",
    "parse_stock_symbol",
    "format_option_symbol",
    # Normalization
    "NormalizedAccount",
    "normalize_position",
    "normalize_positions",
    "normalize_account",
    "select_average_price",
    # Grouping and caching
    "group_by_ticker",
    "split_stocks_and_options",
    "PositionCache",
]
