"""
Data-access interfaces used by the matching services.

Services receive these as constructor arguments; MongoDB implementations
live in ``app.db.mongo_repositories``.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from app.models.buyer_profile import BuyerProfile, Contact
from app.models.property import Property, PropertyFilters
from app.models.property_match import MatchingStats, PropertyMatch


class PropertyRepository(ABC):
    """Read access to listings"""

    @abstractmethod
    async def get_by_id(self, property_id: str) -> Optional[Property]:
        """Get a property by ID"""

    @abstractmethod
    async def find_by_organization(
        self, organization_id: str, filters: Optional[PropertyFilters] = None, limit: int = 50, offset: int = 0
    ) -> List[Property]:
        """Get an organization's properties, newest first"""


class BuyerProfileRepository(ABC):
    """Read access to buyer profiles and their contacts"""

    @abstractmethod
    async def get_by_id(self, buyer_profile_id: str) -> Optional[BuyerProfile]:
        """Get a buyer profile by ID"""

    @abstractmethod
    async def find_by_organization(self, organization_id: str) -> List[BuyerProfile]:
        """Get every buyer profile of an organization"""

    @abstractmethod
    async def get_contact(self, contact_id: str) -> Optional[Contact]:
        """Get the contact a buyer profile refers to"""


class MatchRepository(ABC):
    """Persistence for property matches, keyed by (property_id, buyer_profile_id)"""

    @abstractmethod
    async def upsert(self, match: PropertyMatch) -> PropertyMatch:
        """Insert a match or refresh score, reasons and created_at of the existing one.

        Notification state of an existing match is left untouched. Returns the
        stored match.
        """

    @abstractmethod
    async def get(self, property_id: str, buyer_profile_id: str) -> Optional[PropertyMatch]:
        """Get the match for a pair"""

    @abstractmethod
    async def mark_notified(self, property_id: str, buyer_profile_id: str) -> bool:
        """Mark a match as notified now"""

    @abstractmethod
    async def delete_older_than(self, cutoff: datetime, organization_id: Optional[str] = None) -> int:
        """Delete matches computed before cutoff, optionally for one organization only"""

    @abstractmethod
    async def get_stats(self, organization_id: Optional[str] = None) -> MatchingStats:
        """Aggregate match quality and notification latency"""
