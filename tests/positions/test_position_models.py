"""Tests for position data models."""

from datetime import date

import pytest

from src.positions.models import (
    Confidence,
    OptionPosition,
    OptionType,
    RawPosition,
    StockPosition,
)


class TestOptionType:
    """Tests for OptionType.from_raw."""

    @pytest.mark.parametrize("value", ["CALL", "call", "Call", "C", " c "])
    def test_call_spellings(self, value) -> None:
        """Provider call spellings map to CALL."""
        assert OptionType.from_raw(value) == OptionType.CALL

    @pytest.mark.parametrize("value", ["PUT", "put", "P"])
    def test_put_spellings(self, value) -> None:
        """Provider put spellings map to PUT."""
        assert OptionType.from_raw(value) == OptionType.PUT

    @pytest.mark.parametrize("value", [None, "", "STRADDLE"])
    def test_unknown(self, value) -> None:
        """Unknown values map to None."""
        assert OptionType.from_raw(value) is None


class TestRawPosition:
    """Tests for RawPosition field aliasing."""

    def test_brokerage_shape(self) -> None:
        """Nested instrument fields and camelCase quantities are read."""
        raw = RawPosition.model_validate(
            {
                "instrument": {
                    "symbol": "AAPL  250117C00150000",
                    "assetType": "OPTION",
                    "underlyingSymbol": "AAPL",
                    "putCall": "CALL",
                    "cusip": "0AAPL.AB50150000",
                },
                "longQuantity": 0,
                "shortQuantity": 2,
                "averageShortPrice": 2.5,
                "marketValue": -300.0,
            }
        )

        assert raw.symbol == "AAPL  250117C00150000"
        assert raw.asset_type == "OPTION"
        assert raw.is_option_asset is True
        assert raw.underlying_symbol == "AAPL"
        assert raw.option_type == "CALL"
        assert raw.cusip == "0AAPL.AB50150000"
        assert raw.short_quantity == 2
        assert raw.average_short_price == 2.5
        assert raw.market_value == -300.0

    def test_flat_import_shape(self) -> None:
        """Snake_case import records are read."""
        raw = RawPosition.model_validate(
            {
                "id": 42,
                "symbol": " MSFT ",
                "quantity": "50",
                "average_price": 300,
                "market_value": 16000,
                "data_source": "import",
            }
        )

        assert raw.id == "42"
        assert raw.symbol == "MSFT"
        assert raw.quantity == 50.0
        assert raw.source == "import"
        assert raw.is_option_asset is False

    def test_unparseable_number_reads_as_missing(self) -> None:
        """Non-numeric numbers become None rather than failing validation."""
        raw = RawPosition.model_validate({"symbol": "AAPL", "quantity": 100, "marketValue": "n/a"})

        assert raw.market_value is None
        assert raw.quantity == 100.0


class TestStockPosition:
    """Tests for StockPosition derived values."""

    def test_long_stock(self) -> None:
        """Long stock profits when market value exceeds cost."""
        position = StockPosition(
            symbol="AAPL",
            underlying_symbol="AAPL",
            signed_quantity=100,
            market_value=17500.0,
            average_price=170.0,
        )

        assert position.is_option is False
        assert position.is_long is True
        assert position.shares == 100
        assert position.market_price == 175.0
        assert position.cost_basis == 17000.0
        assert position.unrealized_pnl == 500.0
        assert position.excluded_from_strategy is False

    def test_low_confidence_excluded(self) -> None:
        """Low-confidence records are excluded from strategy math."""
        position = StockPosition(
            symbol="BAD",
            underlying_symbol="BAD",
            signed_quantity=1,
            confidence=Confidence.LOW,
        )
        assert position.excluded_from_strategy is True

    def test_zero_quantity_market_price(self) -> None:
        """Market price is 0 when there is no quantity."""
        position = StockPosition(symbol="X", underlying_symbol="X", signed_quantity=0)
        assert position.market_price == 0.0


class TestOptionPosition:
    """Tests for OptionPosition derived values."""

    @pytest.fixture
    def short_call(self) -> OptionPosition:
        return OptionPosition(
            symbol="AAPL  250117C00150000",
            underlying_symbol="AAPL",
            signed_quantity=-2,
            market_value=-300.0,
            average_price=2.5,
            option_type=OptionType.CALL,
            strike_price=150.0,
            expiration_date=date(2025, 1, 17),
        )

    def test_contract_fields(self, short_call) -> None:
        """Options expose signed contracts and their right."""
        assert short_call.is_option is True
        assert short_call.is_short is True
        assert short_call.contracts == -2
        assert short_call.quantity == 2
        assert short_call.is_call is True
        assert short_call.is_put is False
        assert short_call.multiplier == 100

    def test_short_option_pnl(self, short_call) -> None:
        """A short option profits as its market value shrinks."""
        assert short_call.cost_basis == 500.0
        assert short_call.market_price == 1.5
        assert short_call.unrealized_pnl == 200.0

    def test_days_to_expiration(self, short_call) -> None:
        """Days to expiration never goes negative."""
        assert short_call.days_to_expiration(as_of=date(2025, 1, 1)) == 16
        assert short_call.days_to_expiration(as_of=date(2025, 2, 1)) == 0
