"""Shared utility functions."""

from .date_utils import calculate_days_to_expiry, to_date

__all__ = ["calculate_days_to_expiry", "to_date"]
