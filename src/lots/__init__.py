"""
Event-sourced lot accounting.

Public API:
    parse_events: Raw event records -> WheelEvents
    assemble_lots: Split a cycle's events into lots
    LotLedger: Derive shares, coverage and status per lot
    compute_lot_metrics / compute_cycle_metrics / aggregate_metrics: P&L
"""

from .assembler import LotAssembler, assemble_lots
from .events import EventType, RawEvent, WheelEvent, parse_event, parse_event_type, parse_events
from .ledger import (
    LotLedger,
    compute_collateral_reserved,
    compute_share_balance,
    derive_coverage,
    infer_default_shares_when_history_missing,
)
from .models import (
    Coverage,
    CycleMetrics,
    Lot,
    LotBundle,
    LotMetrics,
    LotRecord,
    PortfolioPnL,
)
from .pnl import aggregate_metrics, compute_cycle_metrics, compute_lot_metrics
from .state import AcquisitionMethod, CoverageKind, CoverageStatus, LotStatus

__all__ = [
    # Events
    "EventType",
    "WheelEvent",
    "RawEvent",
    "parse_event",
    "parse_event_type",
    "parse_events",
    # State
    "LotStatus",
    "AcquisitionMethod",
    "CoverageStatus",
    "CoverageKind",
    # Models
    "LotRecord",
    "LotBundle",
    "Coverage",
    "Lot",
    "LotMetrics",
    "CycleMetrics",
    "PortfolioPnL",
    # Ledger
    "LotLedger",
    "LotAssembler",
    "assemble_lots",
    "compute_share_balance",
    "compute_collateral_reserved",
    "derive_coverage",
    "infer_default_shares_when_history_missing",
    # P&L
    "compute_lot_metrics",
    "compute_cycle_metrics",
    "aggregate_metrics",
]
