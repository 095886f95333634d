"""
Position data models.

Raw brokerage records arrive in several shapes (the brokerage API nests
the symbol under ``instrument`` and splits long/short quantities, the
flattened import format uses snake_case and sometimes a single signed
``quantity``). ``RawPosition`` absorbs those differences; the normalizer
turns it into exactly one of the canonical position types:

- ``StockPosition``: shares (signed share count)
- ``OptionPosition``: contracts (signed contract count) with a parsed
  option type, strike and expiration

No code downstream of the normalizer should look at provider fields.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Optional, Union

from pydantic import AliasChoices, AliasPath, BaseModel, ConfigDict, Field, field_validator

from src.constants import SHARES_PER_CONTRACT
from src.utils.date_utils import calculate_days_to_expiry

logger = logging.getLogger(__name__)


class Confidence(Enum):
    """How much the engine trusts a parsed record or a detection."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class OptionType(Enum):
    """Option right."""

    CALL = "Call"
    PUT = "Put"

    @classmethod
    def from_raw(cls, value: Any) -> Optional["OptionType"]:
        """Map provider spellings ("CALL", "call", "C", "Put") to an OptionType."""
        if value is None:
            return None
        text = str(value).strip().upper()
        if text in ("CALL", "C"):
            return cls.CALL
        if text in ("PUT", "P"):
            return cls.PUT
        return None


# =============================================================================
# Raw provider record
# =============================================================================

_NUMERIC_FIELDS = (
    "long_quantity",
    "short_quantity",
    "quantity",
    "market_value",
    "average_price",
    "average_long_price",
    "average_short_price",
    "tax_lot_average_long_price",
    "tax_lot_average_short_price",
    "strike_price",
)


def _choices(*names: str, instrument: Optional[str] = None) -> AliasChoices:
    aliases: list[Any] = list(names)
    if instrument:
        aliases.append(AliasPath("instrument", instrument))
    return AliasChoices(*aliases)


class RawPosition(BaseModel):
    """A brokerage position record in any supported provider shape.

    Numeric fields that are present but unparseable are read as missing;
    the normalizer records an anomaly for the ones it needs.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: Optional[str] = Field(None, validation_alias=_choices("id", "position_id"))
    symbol: Optional[str] = Field(
        None, validation_alias=_choices("symbol", instrument="symbol")
    )
    cusip: Optional[str] = Field(None, validation_alias=AliasPath("instrument", "cusip"))
    asset_type: Optional[str] = Field(
        None, validation_alias=_choices("asset_type", "assetType", instrument="assetType")
    )
    underlying_symbol: Optional[str] = Field(
        None,
        validation_alias=_choices(
            "underlying_symbol", "underlyingSymbol", instrument="underlyingSymbol"
        ),
    )
    option_type: Optional[str] = Field(
        None,
        validation_alias=_choices("option_type", "optionType", "putCall", instrument="putCall"),
    )
    strike_price: Optional[float] = Field(
        None, validation_alias=_choices("strike_price", "strikePrice", instrument="strikePrice")
    )
    expiration_date: Optional[str] = Field(
        None,
        validation_alias=_choices(
            "expiration_date", "expirationDate", instrument="expirationDate"
        ),
    )
    long_quantity: Optional[float] = Field(
        None, validation_alias=_choices("long_quantity", "longQuantity")
    )
    short_quantity: Optional[float] = Field(
        None, validation_alias=_choices("short_quantity", "shortQuantity")
    )
    quantity: Optional[float] = Field(None, validation_alias=_choices("quantity", "shares"))
    market_value: Optional[float] = Field(
        None, validation_alias=_choices("market_value", "marketValue")
    )
    average_price: Optional[float] = Field(
        None, validation_alias=_choices("average_price", "averagePrice")
    )
    average_long_price: Optional[float] = Field(
        None, validation_alias=_choices("average_long_price", "averageLongPrice")
    )
    average_short_price: Optional[float] = Field(
        None, validation_alias=_choices("average_short_price", "averageShortPrice")
    )
    tax_lot_average_long_price: Optional[float] = Field(
        None,
        validation_alias=_choices("tax_lot_average_long_price", "taxLotAverageLongPrice"),
    )
    tax_lot_average_short_price: Optional[float] = Field(
        None,
        validation_alias=_choices("tax_lot_average_short_price", "taxLotAverageShortPrice"),
    )
    source: str = Field("unknown", validation_alias=_choices("source", "data_source"))

    @field_validator(*_NUMERIC_FIELDS, mode="before")
    @classmethod
    def _lenient_number(cls, value: Any) -> Optional[float]:
        if value is None or value == "":
            return None
        try:
            return float(value)
        except (TypeError, ValueError):
            logger.warning(f"Ignoring non-numeric position field value: {value!r}")
            return None

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_text(cls, value: Any) -> Optional[str]:
        return None if value is None else str(value)

    @field_validator("symbol", "underlying_symbol", "expiration_date", mode="before")
    @classmethod
    def _strip_text(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        text = str(value).strip()
        return text or None

    @property
    def is_option_asset(self) -> bool:
        """True when the provider labels this record as an option."""
        return (self.asset_type or "").upper() == "OPTION"


# =============================================================================
# Canonical positions
# =============================================================================


@dataclass(kw_only=True)
class BasePosition:
    """Fields shared by stock and option holdings."""

    symbol: str
    underlying_symbol: str
    signed_quantity: float  # shares for stock, contracts for options
    market_value: float = 0.0
    average_price: float = 0.0
    id: Optional[str] = None
    source: str = "unknown"
    confidence: Confidence = Confidence.HIGH
    anomalies: list[str] = field(default_factory=list)

    multiplier = 1

    @property
    def is_option(self) -> bool:
        return False

    @property
    def is_short(self) -> bool:
        return self.signed_quantity < 0

    @property
    def is_long(self) -> bool:
        return self.signed_quantity > 0

    @property
    def quantity(self) -> float:
        """Unsigned size of the holding."""
        return abs(self.signed_quantity)

    @property
    def excluded_from_strategy(self) -> bool:
        """Low-confidence records are shown but never used in strategy math."""
        return self.confidence == Confidence.LOW

    @property
    def market_price(self) -> float:
        """Current price per share (stock) or per contract share (option)."""
        units = self.quantity * self.multiplier
        if units == 0:
            return 0.0
        return abs(self.market_value) / units

    @property
    def cost_basis(self) -> float:
        """Total cost basis (or premium received, for shorts)."""
        return self.average_price * self.quantity * self.multiplier

    @property
    def unrealized_pnl(self) -> float:
        """Open profit/loss. Shorts profit when the market value shrinks."""
        if self.is_short:
            return self.cost_basis - abs(self.market_value)
        return self.market_value - self.cost_basis


@dataclass(kw_only=True)
class StockPosition(BasePosition):
    """A share holding."""

    @property
    def shares(self) -> float:
        return self.signed_quantity


@dataclass(kw_only=True)
class OptionPosition(BasePosition):
    """An option holding with fully parsed contract terms."""

    option_type: OptionType
    strike_price: float
    expiration_date: date

    multiplier = SHARES_PER_CONTRACT

    @property
    def is_option(self) -> bool:
        return True

    @property
    def contracts(self) -> int:
        """Signed contract count (negative when short)."""
        return int(self.signed_quantity)

    @property
    def is_call(self) -> bool:
        return self.option_type == OptionType.CALL

    @property
    def is_put(self) -> bool:
        return self.option_type == OptionType.PUT

    def days_to_expiration(self, as_of: Optional[date] = None) -> int:
        """Calendar days until expiration (0 once expired)."""
        return calculate_days_to_expiry(self.expiration_date, as_of)


Position = Union[StockPosition, OptionPosition]
