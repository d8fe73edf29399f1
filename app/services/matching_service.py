"""
Matching pipeline: candidate generation, scoring, persistence and notification.

A run scores (property, buyer profile) pairs, upserts every pair that
clears the auto-match threshold and hands the resulting matches to the
notification dispatcher. Any error while fetching candidates, scoring or
persisting aborts the run; matches upserted before the error stay in the
store, so a failed run can simply be repeated.
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple

from app.core.config import settings
from app.db.repositories import BuyerProfileRepository, MatchRepository, PropertyRepository
from app.models.buyer_profile import BuyerProfile
from app.models.property import Property, PropertyFilters, PropertyStatus
from app.models.property_match import MatchingRunResult, PropertyMatch
from app.services.match_notification_service import MatchNotificationService
from app.services.scoring_service import score_property

logger = logging.getLogger(__name__)


class MatchingService:
    """Turns new properties or buyer profiles into persisted, notified matches"""

    def __init__(
        self,
        properties: PropertyRepository,
        buyer_profiles: BuyerProfileRepository,
        matches: MatchRepository,
        notifier: Optional[MatchNotificationService] = None,
        auto_match_threshold: Optional[int] = None,
        concurrency: Optional[int] = None,
    ):
        self.properties = properties
        self.buyer_profiles = buyer_profiles
        self.matches = matches
        self.notifier = notifier
        self.auto_match_threshold = (
            settings.AUTO_MATCH_THRESHOLD if auto_match_threshold is None else auto_match_threshold
        )
        self.concurrency = max(1, concurrency or settings.MATCHING_CONCURRENCY)

    # ==================== PIPELINE ====================

    async def run_matching(
        self,
        organization_id: str,
        property_id: Optional[str] = None,
        buyer_profile_id: Optional[str] = None,
        full_catalog: bool = False,
    ) -> MatchingRunResult:
        """Match and notify for one organization.

        With ``property_id`` only that property is scored against all buyers;
        with ``buyer_profile_id`` that buyer is scored against all available
        properties; otherwise properties listed within the recent window (or
        every available property when ``full_catalog`` is set) are scored
        against all buyers.
        """
        try:
            properties, buyer_profiles = await self._generate_candidates(
                organization_id, property_id, buyer_profile_id, full_catalog
            )
            logger.info(
                "Matching organization %s: %d properties x %d buyer profiles",
                organization_id, len(properties), len(buyer_profiles),
            )

            matches = await self._match_candidates(organization_id, properties, buyer_profiles)

            if self.notifier and matches:
                await self.notifier.send_match_notifications(matches)

            return MatchingRunResult(success=True, matches_created=len(matches), matches=matches)
        except Exception as e:
            logger.error("Auto matching error for organization %s: %s", organization_id, e)
            return MatchingRunResult(success=False, error=str(e))

    # ==================== CANDIDATE GENERATION ====================

    async def _generate_candidates(
        self,
        organization_id: str,
        property_id: Optional[str],
        buyer_profile_id: Optional[str],
        full_catalog: bool,
    ) -> Tuple[List[Property], List[BuyerProfile]]:
        if buyer_profile_id:
            buyer_profile = await self.buyer_profiles.get_by_id(buyer_profile_id)
            if not buyer_profile or buyer_profile.organization_id != organization_id:
                logger.warning("Buyer profile %s not found in organization %s", buyer_profile_id, organization_id)
                return [], []
            properties = await self.available_properties(organization_id)
            return properties, [buyer_profile]

        if property_id:
            prop = await self.properties.get_by_id(property_id)
            if not prop or prop.organization_id != organization_id:
                logger.warning("Property %s not found in organization %s", property_id, organization_id)
                return [], []
            if prop.status != PropertyStatus.AVAILABLE:
                logger.info("Property %s is %s, not matching", property_id, prop.status.value)
                return [], []
            properties = [prop]
        elif full_catalog:
            properties = await self.available_properties(organization_id)
        else:
            since = datetime.now(timezone.utc) - timedelta(hours=settings.RECENT_PROPERTY_WINDOW_HOURS)
            properties = await self.available_properties(organization_id, created_after=since)

        if not properties:
            return [], []

        buyer_profiles = await self.buyer_profiles.find_by_organization(organization_id)
        return properties, buyer_profiles

    async def available_properties(
        self, organization_id: str, created_after: Optional[datetime] = None
    ) -> List[Property]:
        """Every available property of an organization, read page by page"""
        page_size = settings.RECOMMENDATION_PAGE_SIZE
        filters = PropertyFilters(status=PropertyStatus.AVAILABLE, created_after=created_after)
        properties: List[Property] = []
        offset = 0

        while True:
            batch = await self.properties.find_by_organization(organization_id, filters, page_size, offset)
            properties.extend(batch)
            if len(batch) < page_size:
                return properties
            offset += page_size

    # ==================== SCORING & PERSISTENCE ====================

    async def _match_candidates(
        self, organization_id: str, properties: List[Property], buyer_profiles: List[BuyerProfile]
    ) -> List[PropertyMatch]:
        if self.concurrency == 1:
            matches = []
            for prop in properties:
                matches.extend(await self._match_property(organization_id, prop, buyer_profiles))
            return matches

        semaphore = asyncio.Semaphore(self.concurrency)

        async def bounded(prop: Property) -> List[PropertyMatch]:
            async with semaphore:
                return await self._match_property(organization_id, prop, buyer_profiles)

        # A failing property cancels the others before the run returns
        try:
            async with asyncio.TaskGroup() as group:
                tasks = [group.create_task(bounded(prop)) for prop in properties]
        except ExceptionGroup as eg:
            raise eg.exceptions[0] from eg

        return [match for task in tasks for match in task.result()]

    async def _match_property(
        self, organization_id: str, prop: Property, buyer_profiles: List[BuyerProfile]
    ) -> List[PropertyMatch]:
        matches = []
        for buyer_profile in buyer_profiles:
            result = score_property(buyer_profile.preferences, prop)
            if result.score < self.auto_match_threshold:
                continue

            stored = await self.matches.upsert(PropertyMatch(
                property_id=prop.id,
                buyer_profile_id=buyer_profile.id,
                organization_id=organization_id,
                match_score=result.score,
                match_reasons=result.reasons,
            ))
            matches.append(stored)
        return matches
