"""Data models for lots and their profit/loss."""

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Optional

from .events import WheelEvent
from .state import AcquisitionMethod, CoverageKind, CoverageStatus, LotStatus


@dataclass
class LotRecord:
    """
    Identity of a lot, as assembled or stored by the caller.

    Everything else about a lot (shares, coverage, status) is derived
    from its events.

    Attributes:
        lot_number: Lot number within the ticker's cycle
        ticker: Underlying ticker
        acquisition_method: How the lot was acquired
        acquisition_date: When the lot was opened
        cost_basis_effective: Stored per-share basis, used when the
            acquisition events are missing
        recorded_status: Status as last stored by the caller, checked
            against the derived status
        cycle_id: Wheel cycle the lot belongs to
    """

    lot_number: int
    ticker: str
    acquisition_method: AcquisitionMethod
    acquisition_date: Optional[date] = None
    cost_basis_effective: Optional[float] = None
    recorded_status: Optional[LotStatus] = None
    cycle_id: Optional[str] = None


@dataclass
class LotBundle:
    """A lot record together with the events that belong to it."""

    record: LotRecord
    events: list[WheelEvent] = field(default_factory=list)


@dataclass
class Coverage:
    """The option sold against a lot (call) or secured by it (put)."""

    kind: CoverageKind
    status: CoverageStatus
    strike: Optional[float] = None
    premium: Optional[float] = None
    contracts: Optional[int] = None
    event_id: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return self.status == CoverageStatus.OPEN


@dataclass
class Lot:
    """A lot with its derived state."""

    lot_number: int
    ticker: str
    acquisition_method: AcquisitionMethod
    status: LotStatus
    shares: float
    acquisition_date: Optional[date] = None
    cost_basis_effective: Optional[float] = None
    coverage: Optional[Coverage] = None
    shares_inferred: bool = False  # Default share count assumed, history missing
    cycle_id: Optional[str] = None
    events: list[WheelEvent] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_open(self) -> bool:
        return not self.status.is_closed

    @property
    def is_covered(self) -> bool:
        return (
            self.coverage is not None
            and self.coverage.kind == CoverageKind.CALL
            and self.coverage.is_open
        )

    @property
    def has_warnings(self) -> bool:
        return len(self.warnings) > 0

    def to_dict(self) -> dict[str, Any]:
        """
        Convert to dictionary for JSON serialization.

        Returns:
            Dictionary representation of the lot
        """
        coverage = None
        if self.coverage is not None:
            coverage = {
                "kind": self.coverage.kind.value,
                "status": self.coverage.status.value,
                "strike": self.coverage.strike,
                "premium": self.coverage.premium,
                "contracts": self.coverage.contracts,
            }
        return {
            "lot_number": self.lot_number,
            "ticker": self.ticker,
            "cycle_id": self.cycle_id,
            "acquisition_method": self.acquisition_method.value,
            "acquisition_date": (
                self.acquisition_date.isoformat() if self.acquisition_date else None
            ),
            "cost_basis_effective": self.cost_basis_effective,
            "status": self.status.value,
            "shares": self.shares,
            "shares_inferred": self.shares_inferred,
            "coverage": coverage,
            "warnings": list(self.warnings),
        }


@dataclass
class LotMetrics:
    """Profit/loss for one lot."""

    lot_number: int
    ticker: str
    net_premiums: float = 0.0  # Received minus paid to close, minus fees
    fees_total: float = 0.0
    stock_cost_total: float = 0.0
    stock_proceeds: float = 0.0
    cost_basis_effective: Optional[float] = None  # Per share, net of premiums
    realized_pl: float = 0.0
    unrealized_pl: float = 0.0
    current_price: Optional[float] = None

    @property
    def total_realized_pl(self) -> float:
        return self.realized_pl

    @property
    def net_options_cashflow(self) -> float:
        return self.net_premiums


@dataclass
class CycleMetrics:
    """Average-cost profit/loss over a whole wheel cycle."""

    ticker: str
    shares_owned: float = 0.0
    average_cost_basis: float = 0.0
    total_cost_remaining: float = 0.0
    net_options_cashflow: float = 0.0
    realized_stock_pl: float = 0.0
    total_realized_pl: float = 0.0
    current_price: Optional[float] = None
    unrealized_pl: float = 0.0


@dataclass
class PortfolioPnL:
    """Profit/loss summed across lots or cycles."""

    total_realized_pl: float = 0.0
    unrealized_pl: float = 0.0
    net_options_cashflow: float = 0.0
    count: int = 0

    @property
    def total_pl(self) -> float:
        return self.total_realized_pl + self.unrealized_pl
