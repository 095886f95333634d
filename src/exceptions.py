"""Custom exceptions for the wheel detection and lot accounting engine.

Only caller contract violations are raised. Dirty individual records are
degraded and reported through anomaly/warning lists instead.
"""


class WheelEngineError(Exception):
    """Base exception for engine operations."""

    pass


class InvalidInputError(WheelEngineError):
    """Input is structurally invalid (wrong container or record type)."""

    pass


class PositionFetchError(WheelEngineError):
    """The position loader behind the cache failed."""

    pass
