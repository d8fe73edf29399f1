"""
On-demand property recommendations and manual search for a buyer.

Read-only: nothing is persisted and no notification is sent.
"""

import logging
from typing import List, Optional

from app.core.config import settings
from app.db.repositories import BuyerProfileRepository, PropertyRepository
from app.exceptions import BuyerProfileNotFoundError
from app.models.buyer_profile import BuyerProfile
from app.models.property import Property, PropertyFilters, PropertyStatus
from app.models.property_match import PropertySearchCriteria, RankedProperty
from app.services.scoring_service import score_property

logger = logging.getLogger(__name__)


def rank(buyer_profile: BuyerProfile, prop: Property) -> RankedProperty:
    result = score_property(buyer_profile.preferences, prop)
    return RankedProperty(property=prop, match_score=result.score, match_reasons=result.reasons)


class RecommendationService:
    """Scores an organization's listings for one buyer"""

    def __init__(
        self,
        properties: PropertyRepository,
        buyer_profiles: BuyerProfileRepository,
        threshold: Optional[int] = None,
    ):
        self.properties = properties
        self.buyer_profiles = buyer_profiles
        self.threshold = settings.RECOMMENDATION_THRESHOLD if threshold is None else threshold

    async def recommend(self, buyer_profile_id: str, limit: int = 10) -> List[RankedProperty]:
        """Top available properties scoring at least the recommendation threshold"""
        buyer_profile = await self.buyer_profiles.get_by_id(buyer_profile_id)
        if not buyer_profile:
            logger.info("No buyer profile %s, nothing to recommend", buyer_profile_id)
            return []

        properties = await self.properties.find_by_organization(
            buyer_profile.organization_id,
            PropertyFilters(status=PropertyStatus.AVAILABLE),
            settings.RECOMMENDATION_PAGE_SIZE,
        )

        ranked = [rank(buyer_profile, prop) for prop in properties]
        high_matches = [r for r in ranked if r.match_score >= self.threshold]
        high_matches.sort(key=lambda r: r.match_score, reverse=True)

        logger.info("Recommending %d of %d properties for buyer %s",
                    min(len(high_matches), limit), len(properties), buyer_profile_id)
        return high_matches[:limit]

    async def search(
        self, buyer_profile_id: str, criteria: Optional[PropertySearchCriteria] = None
    ) -> List[RankedProperty]:
        """Search available properties, seeding omitted criteria from the buyer's preferences.

        Every result is returned with its score, regardless of threshold.
        """
        buyer_profile = await self.buyer_profiles.get_by_id(buyer_profile_id)
        if not buyer_profile:
            raise BuyerProfileNotFoundError(buyer_profile_id)

        filters = self.build_search_filters(buyer_profile, criteria or PropertySearchCriteria())
        properties = await self.properties.find_by_organization(
            buyer_profile.organization_id, filters, settings.SEARCH_PAGE_SIZE
        )
        return [rank(buyer_profile, prop) for prop in properties]

    @staticmethod
    def build_search_filters(buyer_profile: BuyerProfile, criteria: PropertySearchCriteria) -> PropertyFilters:
        filters = PropertyFilters(status=PropertyStatus.AVAILABLE, **criteria.model_dump())
        preferences = buyer_profile.preferences

        if not filters.location and preferences.location:
            filters.location = preferences.location.city

        if filters.min_price is None and filters.max_price is None and preferences.budget:
            filters.min_price = preferences.budget.min
            filters.max_price = preferences.budget.max

        return filters
