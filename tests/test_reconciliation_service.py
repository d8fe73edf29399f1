"""
Tests for bulk reconciliation, its scheduler and match statistics
"""

import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from app.models.property_match import BulkMatchResult, PropertyMatch
from app.services.match_stats_service import MatchStatsService
from app.services.reconciliation_service import ReconciliationScheduler, ReconciliationService
from tests.test_utils import ORG_ID, make_property


def _stale_match(property_id, organization_id, days_old=45):
    return PropertyMatch(
        property_id=property_id,
        buyer_profile_id="buyer_x",
        organization_id=organization_id,
        match_score=75,
        created_at=datetime.now(timezone.utc) - timedelta(days=days_old),
    )


class TestBulkMatch:
    @pytest.mark.asyncio
    async def test_bulk_match_scores_full_catalog(self, reconciliation_service, property_repo):
        property_repo.add(make_property("old_listing", created_at=datetime.now(timezone.utc) - timedelta(days=60)))

        result = await reconciliation_service.bulk_match(ORG_ID)

        assert isinstance(result, BulkMatchResult)
        assert result.success
        assert result.matches_created == 2
        assert result.duration_seconds >= 0
        assert result.matches_per_second >= 0

    @pytest.mark.asyncio
    async def test_stale_matches_are_purged_globally(self, reconciliation_service, match_repo):
        match_repo.rows[("p_old", "buyer_x")] = _stale_match("p_old", ORG_ID)
        match_repo.rows[("p_other", "buyer_x")] = _stale_match("p_other", "org_2")
        match_repo.rows[("p_recent", "buyer_x")] = _stale_match("p_recent", "org_2", days_old=2)

        result = await reconciliation_service.bulk_match(ORG_ID)

        assert result.purged_matches == 2
        assert ("p_other", "buyer_x") not in match_repo.rows
        assert ("p_recent", "buyer_x") in match_repo.rows

    @pytest.mark.asyncio
    async def test_organization_scoped_sweep_keeps_other_tenants(self, matching_service, match_repo):
        service = ReconciliationService(matching_service, match_repo, retention_days=30, global_sweep=False)
        match_repo.rows[("p_old", "buyer_x")] = _stale_match("p_old", ORG_ID)
        match_repo.rows[("p_other", "buyer_x")] = _stale_match("p_other", "org_2")

        result = await service.bulk_match(ORG_ID)

        assert result.purged_matches == 1
        assert ("p_other", "buyer_x") in match_repo.rows

    @pytest.mark.asyncio
    async def test_back_to_back_runs_renotify_by_default(self, reconciliation_service, match_repo, notifier_channel):
        first = await reconciliation_service.bulk_match(ORG_ID)
        second = await reconciliation_service.bulk_match(ORG_ID)

        assert first.matches[0].match_score == second.matches[0].match_score
        assert (await match_repo.get("prop_1", "buyer_1")).notified is True
        # Rescored matches are dispatched again unless SKIP_ALREADY_NOTIFIED is set
        assert len(notifier_channel.sent) == 2

    @pytest.mark.asyncio
    async def test_failed_run_is_reported(self, reconciliation_service, match_repo):
        match_repo.fail_on_upsert = True

        result = await reconciliation_service.bulk_match(ORG_ID)

        assert result.success is False
        assert result.error == "database unavailable"

    @pytest.mark.asyncio
    async def test_failed_retention_sweep_aborts(self, matching_service, match_repo):
        match_repo.delete_older_than = AsyncMock(side_effect=RuntimeError("sweep failed"))
        service = ReconciliationService(matching_service, match_repo)

        result = await service.bulk_match(ORG_ID)

        assert result.success is False
        assert result.error == "sweep failed"
        assert match_repo.rows == {}

    @pytest.mark.asyncio
    async def test_overlapping_runs_for_same_organization_are_serialized(self, reconciliation_service):
        active = 0
        peak = 0
        original = reconciliation_service.matching_service.run_matching

        async def tracking_run(*args, **kwargs):
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01)
            try:
                return await original(*args, **kwargs)
            finally:
                active -= 1

        reconciliation_service.matching_service.run_matching = tracking_run

        results = await asyncio.gather(
            reconciliation_service.bulk_match(ORG_ID), reconciliation_service.bulk_match(ORG_ID)
        )

        assert all(r.success for r in results)
        assert peak == 1


class TestReconciliationScheduler:
    def test_disabled_without_interval_or_organizations(self):
        service = AsyncMock(spec=ReconciliationService)

        assert not ReconciliationScheduler(service, 0, ["org_1"]).enabled
        assert not ReconciliationScheduler(service, 6, []).enabled
        assert ReconciliationScheduler(service, 6, ["org_1"]).enabled

    @pytest.mark.asyncio
    async def test_run_once_reconciles_each_organization_and_isolates_errors(self):
        service = AsyncMock(spec=ReconciliationService)
        service.bulk_match.side_effect = [RuntimeError("boom"), BulkMatchResult(success=True)]
        scheduler = ReconciliationScheduler(service, 6, ["org_1", "org_2"])

        await scheduler.run_once()

        assert [c.args[0] for c in service.bulk_match.call_args_list] == ["org_1", "org_2"]

    @pytest.mark.asyncio
    async def test_start_and_stop(self):
        service = AsyncMock(spec=ReconciliationService)
        scheduler = ReconciliationScheduler(service, 6, ["org_1"])

        scheduler.start()
        assert scheduler._task is not None
        await scheduler.stop()

        assert scheduler._task is None
        service.bulk_match.assert_not_called()


class TestMatchStats:
    @pytest.mark.asyncio
    async def test_stats_buckets_and_latency(self, match_repo):
        now = datetime.now(timezone.utc)
        for i, score in enumerate([95, 85, 75, 63]):
            match_repo.rows[(f"p{i}", "b")] = PropertyMatch(
                property_id=f"p{i}", buyer_profile_id="b", organization_id=ORG_ID, match_score=score,
                created_at=now - timedelta(hours=2),
            )
        match_repo.rows[("p0", "b")].notified = True
        match_repo.rows[("p0", "b")].notified_at = now

        stats = await MatchStatsService(match_repo).get_stats(ORG_ID)

        assert stats.total_matches == 4
        assert stats.avg_match_score == pytest.approx(79.5)
        assert (stats.excellent_matches, stats.good_matches, stats.fair_matches) == (1, 1, 1)
        assert stats.notified_matches == 1
        assert stats.avg_notification_time_hours == pytest.approx(2.0)

    @pytest.mark.asyncio
    async def test_stats_for_empty_store(self, match_repo):
        stats = await MatchStatsService(match_repo).get_stats()

        assert stats.total_matches == 0
        assert stats.avg_match_score is None
