"""In-memory TTL cache for normalized positions.

Fronts the fetch + normalize boundary so repeated reads within a short
window do not refetch or re-normalize the account feed.

Features:
- TTL validation on read (5 minutes by default)
- Forced refresh and unconditional invalidation (e.g. on disconnect)
- Injected clock for deterministic tests
- Lock-guarded read-check-write so concurrent refreshes cannot race

The cache is owned by one session/account; create one instance per
session rather than sharing a process-wide singleton. Nothing is
persisted across restarts: the account feed is the source of truth.
"""

import logging
import threading
from collections.abc import Callable, Mapping
from datetime import datetime, timedelta
from typing import Any, Optional

from src.exceptions import PositionFetchError

from .grouping import group_by_ticker
from .models import Position
from .normalizer import normalize_positions

logger = logging.getLogger(__name__)

DEFAULT_TTL = timedelta(minutes=5)

PositionLoader = Callable[[], list[Mapping[str, Any]]]
PositionNormalizer = Callable[[list[Mapping[str, Any]]], list[Position]]


class PositionCache:
    """
    Short-lived cache of normalized positions for one session.

    Attributes:
        ttl: How long a fetched snapshot stays fresh
    """

    def __init__(
        self,
        loader: PositionLoader,
        normalizer: PositionNormalizer = normalize_positions,
        ttl: timedelta = DEFAULT_TTL,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """
        Initialize the cache.

        Args:
            loader: Callable returning raw position records (the feed)
            normalizer: Callable turning raw records into positions
            ttl: Time-to-live for a cached snapshot
            clock: Callable returning the current time
        """
        if ttl <= timedelta(0):
            raise ValueError("ttl must be positive")
        self.ttl = ttl
        self._loader = loader
        self._normalizer = normalizer
        self._clock = clock
        self._lock = threading.Lock()
        self._positions: list[Position] = []
        self._last_fetch: Optional[datetime] = None

    @classmethod
    def from_settings(cls, loader: PositionLoader, settings: Any, **kwargs: Any) -> "PositionCache":
        """Build a cache using ``settings.cache_ttl_seconds`` as the TTL."""
        return cls(loader, ttl=timedelta(seconds=settings.cache_ttl_seconds), **kwargs)

    @property
    def last_fetch(self) -> Optional[datetime]:
        """When the cached snapshot was fetched (None if empty)."""
        return self._last_fetch

    @property
    def age(self) -> Optional[timedelta]:
        """Age of the cached snapshot (None if nothing is cached)."""
        if self._last_fetch is None:
            return None
        return self._clock() - self._last_fetch

    @property
    def is_fresh(self) -> bool:
        """True if a non-empty snapshot younger than the TTL is cached."""
        return self._is_fresh(self._clock())

    def _is_fresh(self, now: datetime) -> bool:
        if self._last_fetch is None or not self._positions:
            return False
        return now - self._last_fetch < self.ttl

    def get(self, force_refresh: bool = False) -> list[Position]:
        """
        Return positions, refetching when stale or when forced.

        Args:
            force_refresh: Bypass a fresh snapshot and refetch

        Returns:
            A copy of the cached position list

        Raises:
            PositionFetchError: If the loader fails; the previous snapshot
                is left untouched
        """
        with self._lock:
            now = self._clock()
            if not force_refresh and self._is_fresh(now):
                logger.debug("Returning cached positions")
                return list(self._positions)

            try:
                raw_records = self._loader()
            except Exception as e:
                raise PositionFetchError(f"Failed to load positions: {e}") from e

            # Normalize fully before swapping so readers never see a partial update
            positions = self._normalizer(raw_records)
            self._positions = positions
            self._last_fetch = now
            logger.info(f"Refreshed position cache with {len(positions)} positions")
            return list(positions)

    def force_sync(self) -> list[Position]:
        """Drop the cached snapshot and fetch a fresh one."""
        self.invalidate()
        return self.get(force_refresh=True)

    def invalidate(self) -> None:
        """Clear the cache unconditionally (used on disconnect)."""
        with self._lock:
            self._positions = []
            self._last_fetch = None
        logger.debug("Position cache invalidated")

    def grouped(self, force_refresh: bool = False) -> dict[str, list[Position]]:
        """Cached positions grouped by underlying ticker."""
        return group_by_ticker(self.get(force_refresh))
