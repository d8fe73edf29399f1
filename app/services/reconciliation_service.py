"""
Bulk reconciliation: purge stale matches and re-score a whole catalog.
"""

import asyncio
import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

from app.core.config import settings
from app.db.repositories import MatchRepository
from app.models.property_match import BulkMatchResult
from app.services.matching_service import MatchingService

logger = logging.getLogger(__name__)


class ReconciliationService:
    """Runs the matching pipeline over every available property of an organization"""

    def __init__(
        self,
        matching_service: MatchingService,
        matches: MatchRepository,
        retention_days: Optional[int] = None,
        global_sweep: Optional[bool] = None,
    ):
        self.matching_service = matching_service
        self.matches = matches
        self.retention_days = settings.MATCH_RETENTION_DAYS if retention_days is None else retention_days
        self.global_sweep = settings.retention_sweep_is_global if global_sweep is None else global_sweep
        self._locks: Dict[str, asyncio.Lock] = {}

    async def bulk_match(self, organization_id: str) -> BulkMatchResult:
        """Purge matches past retention, then match all available properties against all buyers"""
        lock = self._locks.setdefault(organization_id, asyncio.Lock())
        if lock.locked():
            logger.info("Reconciliation for organization %s already running, waiting", organization_id)

        async with lock:
            start = time.monotonic()

            cutoff = datetime.now(timezone.utc) - timedelta(days=self.retention_days)
            try:
                purged = await self.matches.delete_older_than(
                    cutoff, organization_id=None if self.global_sweep else organization_id
                )
            except Exception as e:
                logger.error("Retention sweep failed before bulk match of %s: %s", organization_id, e)
                return BulkMatchResult(success=False, error=str(e), duration_seconds=time.monotonic() - start)

            result = await self.matching_service.run_matching(organization_id, full_catalog=True)

            duration = time.monotonic() - start
            matches_per_second = result.matches_created / duration if duration > 0 else 0.0
            logger.info(
                "Bulk match for %s finished: success=%s, %d matches in %.2fs (%.2f/s), %d purged",
                organization_id, result.success, result.matches_created, duration, matches_per_second, purged,
            )

            return BulkMatchResult(
                **result.model_dump(),
                duration_seconds=duration,
                matches_per_second=matches_per_second,
                purged_matches=purged,
            )


class ReconciliationScheduler:
    """Periodically reconciles the configured organizations in the background"""

    def __init__(self, reconciliation_service: ReconciliationService, interval_hours: float, organization_ids):
        self.reconciliation_service = reconciliation_service
        self.interval_seconds = interval_hours * 3600
        self.organization_ids = list(organization_ids)
        self._task: Optional[asyncio.Task] = None

    @property
    def enabled(self) -> bool:
        return self.interval_seconds > 0 and bool(self.organization_ids)

    def start(self) -> None:
        if not self.enabled:
            logger.info("Periodic reconciliation disabled")
            return
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._run())
            logger.info("Periodic reconciliation every %.1fh for %s",
                        self.interval_seconds / 3600, ", ".join(self.organization_ids))

    async def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    async def run_once(self) -> None:
        for organization_id in self.organization_ids:
            try:
                await self.reconciliation_service.bulk_match(organization_id)
            except Exception as e:
                logger.error("Periodic reconciliation failed for %s: %s", organization_id, e)

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            await self.run_once()
