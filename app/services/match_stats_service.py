import logging
from typing import Optional

from app.db.repositories import MatchRepository
from app.models.property_match import MatchingStats

logger = logging.getLogger(__name__)


class MatchStatsService:
    """Match quality and notification latency statistics"""

    def __init__(self, matches: MatchRepository):
        self.matches = matches

    async def get_stats(self, organization_id: Optional[str] = None) -> MatchingStats:
        stats = await self.matches.get_stats(organization_id)
        logger.debug("Match stats for %s: %s", organization_id or "all organizations", stats)
        return stats
