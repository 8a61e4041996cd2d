"""In-memory route dataset cache with a time-to-live and stale fallback."""

from __future__ import annotations

import asyncio
from time import monotonic
from typing import Awaitable, Callable, Optional

from .datatypes import CacheStatus, DatasetSnapshot, RouteDataset
from .logging_utils import get_logger

logger = get_logger("routefinder.cache")

DEFAULT_TTL_S = 10 * 60.0

Fetcher = Callable[[], Awaitable[RouteDataset]]
Clock = Callable[[], float]


class DatasetUnavailableError(RuntimeError):
    """Raised when the feed fails and there is no cached dataset to fall back on."""


class DatasetCache:
    """Holds the most recent dataset and refreshes it lazily once it expires.

    The dataset reference is swapped wholesale on refresh, so queries holding
    an older snapshot keep a consistent view. A failed refresh serves the
    previous dataset regardless of its age.
    """

    def __init__(self, fetcher: Fetcher, *, ttl_s: float = DEFAULT_TTL_S, clock: Clock = monotonic) -> None:
        if ttl_s <= 0:
            raise ValueError("ttl_s must be positive")
        self._fetcher = fetcher
        self._ttl_s = ttl_s
        self._clock = clock
        self._dataset: Optional[RouteDataset] = None
        self._fetched_at: Optional[float] = None
        self._invalidated = False
        self._last_error: Optional[str] = None
        self._lock = asyncio.Lock()

    @property
    def ttl_s(self) -> float:
        return self._ttl_s

    @property
    def dataset(self) -> Optional[RouteDataset]:
        return self._dataset

    @property
    def last_error(self) -> Optional[str]:
        return self._last_error

    def age_s(self) -> Optional[float]:
        """Seconds since the last successful fetch, or None if never fetched."""
        if self._fetched_at is None:
            return None
        return self._clock() - self._fetched_at

    def is_fresh(self) -> bool:
        return self._fresh_snapshot() is not None

    def invalidate(self) -> None:
        """Force the next access to refetch while keeping the stale copy as fallback."""
        self._invalidated = True

    async def get_dataset(self) -> RouteDataset:
        snapshot = await self.snapshot()
        return snapshot.dataset

    async def snapshot(self) -> DatasetSnapshot:
        """Return the current dataset along with how it was obtained."""

        cached = self._fresh_snapshot()
        if cached is not None:
            return cached

        async with self._lock:
            # another request may have refreshed while we waited
            cached = self._fresh_snapshot()
            if cached is not None:
                return cached
            return await self._refresh()

    def _fresh_snapshot(self) -> Optional[DatasetSnapshot]:
        dataset = self._dataset
        age = self.age_s()
        if dataset is None or age is None or self._invalidated or age >= self._ttl_s:
            return None
        return DatasetSnapshot(dataset=dataset, status=CacheStatus.FRESH, age_s=age)

    async def _refresh(self) -> DatasetSnapshot:
        started_at = self._clock()
        try:
            dataset = await self._fetcher()
        except Exception as exc:
            self._last_error = str(exc) or exc.__class__.__name__
            if self._dataset is None:
                logger.error(
                    "dataset_unavailable",
                    extra={"event": "dataset_unavailable", "error": self._last_error},
                )
                raise DatasetUnavailableError(
                    "Unable to fetch route data and no cached data is available"
                ) from exc

            logger.warning(
                "dataset_refresh_failed_serving_stale",
                extra={
                    "event": "dataset_refresh_failed_serving_stale",
                    "error": self._last_error,
                    "age_s": self.age_s(),
                },
            )
            return DatasetSnapshot(
                dataset=self._dataset,
                status=CacheStatus.STALE,
                age_s=self.age_s() or 0.0,
                error=self._last_error,
            )

        self._dataset = dataset
        self._fetched_at = started_at
        self._invalidated = False
        self._last_error = None

        logger.info(
            "dataset_refreshed",
            extra={"event": "dataset_refreshed", "routes": len(dataset.routes)},
        )
        return DatasetSnapshot(dataset=dataset, status=CacheStatus.REFRESHED, age_s=self._clock() - started_at)
