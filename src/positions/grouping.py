"""Grouping of normalized positions by underlying ticker."""

from .models import OptionPosition, Position, StockPosition


def group_by_ticker(positions: list[Position]) -> dict[str, list[Position]]:
    """
    Partition positions by underlying ticker.

    Tickers appear in first-seen order and positions keep their input
    order within each group.
    """
    grouped: dict[str, list[Position]] = {}
    for position in positions:
        grouped.setdefault(position.underlying_symbol, []).append(position)
    return grouped


def split_stocks_and_options(
    positions: list[Position],
) -> tuple[list[StockPosition], list[OptionPosition]]:
    """Split one ticker's positions into (stocks, options)."""
    stocks = [p for p in positions if isinstance(p, StockPosition)]
    options = [p for p in positions if isinstance(p, OptionPosition)]
    return stocks, options
