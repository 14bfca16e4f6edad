"""In-process cache for the city catalog."""

import asyncio
import os
import time
from typing import Callable

from prometheus_client import Counter, Gauge

from app.catalog.source import CatalogSource
from app.location_service.errors import CatalogUnavailableError
from app.logging_config import logger
from app.models.city import CatalogSnapshot

CATALOG_TTL_S = float(os.getenv("CATALOG_TTL_S", "3600"))
CATALOG_FETCH_TIMEOUT_S = float(os.getenv("CATALOG_FETCH_TIMEOUT_S", "15"))

CATALOG_REFRESH_COUNT = Counter(
    "catalog_refresh_total", "Catalog refresh attempts", ["outcome"]
)
CATALOG_RECORDS = Gauge("catalog_records", "Records in the current catalog snapshot")


class CatalogCache:
    """Hold the latest catalog snapshot and refresh it once its TTL expires.

    Fresh snapshots are returned without waiting. At most one refresh runs at
    a time: callers that already have a snapshot get the stale one while it is
    in flight, and callers on a cold cache await the same attempt. When a
    refresh fails, the previous snapshot keeps being served.
    """

    def __init__(
        self,
        source: CatalogSource,
        ttl_s: float = CATALOG_TTL_S,
        fetch_timeout_s: float = CATALOG_FETCH_TIMEOUT_S,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.source = source
        self.ttl_s = ttl_s
        self.fetch_timeout_s = fetch_timeout_s
        self.clock = clock
        self._snapshot: CatalogSnapshot | None = None
        self._refresh_task: asyncio.Task | None = None

    @property
    def snapshot(self) -> CatalogSnapshot | None:
        return self._snapshot

    @property
    def is_warm(self) -> bool:
        return self._snapshot is not None

    def _is_fresh(self, snapshot: CatalogSnapshot | None) -> bool:
        return snapshot is not None and self.clock() - snapshot.fetched_at < self.ttl_s

    def invalidate(self) -> None:
        """Mark the current snapshot as expired without discarding it."""
        snapshot = self._snapshot
        if snapshot is not None:
            self._snapshot = CatalogSnapshot(
                records=snapshot.records, fetched_at=self.clock() - self.ttl_s
            )

    async def get(self) -> CatalogSnapshot:
        """Return the current catalog snapshot, refreshing it if expired.

        Returns:
            A fresh snapshot, or the stale one if the refresh failed.

        Raises:
            CatalogUnavailableError: If no catalog has ever been fetched and
                the fetch fails.
        """
        snapshot = self._snapshot
        if self._is_fresh(snapshot):
            return snapshot

        if self._refresh_task is None:
            self._refresh_task = asyncio.ensure_future(self._refresh(snapshot))
            self._refresh_task.add_done_callback(self._refresh_done)
            return await asyncio.shield(self._refresh_task)

        if snapshot is not None:
            return snapshot
        return await asyncio.shield(self._refresh_task)

    def _refresh_done(self, task: asyncio.Task) -> None:
        self._refresh_task = None
        # Mark the outcome as retrieved even if every caller was cancelled.
        if not task.cancelled():
            task.exception()

    async def _refresh(self, stale: CatalogSnapshot | None) -> CatalogSnapshot:
        try:
            records = await asyncio.wait_for(
                self.source.fetch_all(), timeout=self.fetch_timeout_s
            )
            fetched = CatalogSnapshot(records=tuple(records), fetched_at=self.clock())
        except Exception as exc:
            CATALOG_REFRESH_COUNT.labels(outcome="failed").inc()
            if stale is not None:
                logger.error(
                    "CATALOG_REFRESH_FAILED",
                    error=str(exc) or type(exc).__name__,
                    serving_stale=True,
                    stale_records=len(stale.records),
                )
                return stale
            logger.error(
                "CATALOG_REFRESH_FAILED",
                error=str(exc) or type(exc).__name__,
                serving_stale=False,
            )
            raise CatalogUnavailableError("City catalog is unavailable") from exc

        if fetched.is_empty:
            CATALOG_REFRESH_COUNT.labels(outcome="empty").inc()
            if stale is not None:
                logger.warning(
                    "CATALOG_REFRESH_EMPTY",
                    serving_stale=True,
                    stale_records=len(stale.records),
                )
                return stale
            logger.warning("CATALOG_REFRESH_EMPTY", serving_stale=False)
            return fetched

        self._snapshot = fetched
        CATALOG_REFRESH_COUNT.labels(outcome="success").inc()
        CATALOG_RECORDS.set(len(fetched.records))
        logger.info("CATALOG_REFRESHED", records=len(fetched.records))
        return fetched
