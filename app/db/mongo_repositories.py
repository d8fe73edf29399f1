"""
MongoDB (Motor) implementations of the data-access interfaces
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from bson import ObjectId
from pymongo import DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError

from app.core.config import settings
from app.db.repositories import BuyerProfileRepository, MatchRepository, PropertyRepository
from app.models.buyer_profile import BuyerProfile, Contact
from app.models.property import Property, PropertyFilters
from app.models.property_match import MatchingStats, PropertyMatch

logger = logging.getLogger(__name__)


def _id_query(document_id: str) -> Dict[str, Any]:
    """Match by ObjectId when the ID looks like one, by raw value otherwise"""
    if ObjectId.is_valid(document_id):
        return {"_id": ObjectId(document_id)}
    return {"_id": document_id}


def _with_id(doc: Dict[str, Any]) -> Dict[str, Any]:
    doc["id"] = str(doc.pop("_id"))
    return doc


class MongoPropertyRepository(PropertyRepository):
    """Properties stored in the ``properties`` collection"""

    def __init__(self, db):
        self.db = db

    async def get_by_id(self, property_id: str) -> Optional[Property]:
        doc = await self.db.properties.find_one(_id_query(property_id))
        if doc:
            return Property(**_with_id(doc))
        return None

    @staticmethod
    def build_query(organization_id: str, filters: Optional[PropertyFilters]) -> Dict[str, Any]:
        query: Dict[str, Any] = {"organization_id": organization_id}
        if filters is None:
            return query

        if filters.status is not None:
            query["status"] = filters.status.value
        if filters.created_after is not None:
            query["created_at"] = {"$gte": filters.created_after}
        if filters.property_type:
            query["type"] = filters.property_type
        if filters.min_price is not None or filters.max_price is not None:
            price_query = {}
            if filters.min_price is not None:
                price_query["$gte"] = filters.min_price
            if filters.max_price is not None:
                price_query["$lte"] = filters.max_price
            query["price"] = price_query
        if filters.location:
            query["location.city"] = filters.location
        if filters.featured is not None:
            query["featured"] = filters.featured
        return query

    async def find_by_organization(
        self, organization_id: str, filters: Optional[PropertyFilters] = None, limit: int = 50, offset: int = 0
    ) -> List[Property]:
        query = self.build_query(organization_id, filters)
        properties = []

        cursor = (
            self.db.properties.find(query)
            .sort([("created_at", DESCENDING), ("_id", DESCENDING)])
            .skip(offset)
            .limit(limit)
        )
        async for doc in cursor:
            properties.append(Property(**_with_id(doc)))

        return properties


class MongoBuyerProfileRepository(BuyerProfileRepository):
    """Buyer profiles in ``buyer_profiles``, contacts in ``contacts``"""

    def __init__(self, db, page_size: Optional[int] = None):
        self.db = db
        self.page_size = page_size or settings.BUYER_PAGE_SIZE

    async def get_by_id(self, buyer_profile_id: str) -> Optional[BuyerProfile]:
        doc = await self.db.buyer_profiles.find_one(_id_query(buyer_profile_id))
        if doc:
            return BuyerProfile(**_with_id(doc))
        return None

    async def find_by_organization(self, organization_id: str) -> List[BuyerProfile]:
        profiles = []
        offset = 0

        while True:
            cursor = (
                self.db.buyer_profiles.find({"organization_id": organization_id})
                .sort([("last_active", DESCENDING), ("_id", DESCENDING)])
                .skip(offset)
                .limit(self.page_size)
            )
            batch = [BuyerProfile(**_with_id(doc)) async for doc in cursor]
            profiles.extend(batch)
            if len(batch) < self.page_size:
                break
            offset += self.page_size

        logger.debug("Loaded %d buyer profiles for organization %s", len(profiles), organization_id)
        return profiles

    async def get_contact(self, contact_id: str) -> Optional[Contact]:
        doc = await self.db.contacts.find_one(_id_query(contact_id))
        if doc:
            return Contact(**_with_id(doc))
        return None


class MongoMatchRepository(MatchRepository):
    """Matches in ``property_matches``; uniqueness is backed by a compound unique index"""

    def __init__(self, db):
        self.db = db

    async def upsert(self, match: PropertyMatch) -> PropertyMatch:
        key = {"property_id": match.property_id, "buyer_profile_id": match.buyer_profile_id}
        update = {
            "$set": {
                "organization_id": match.organization_id,
                "match_score": match.match_score,
                "match_reasons": match.match_reasons,
                "created_at": datetime.now(timezone.utc),
            },
            "$setOnInsert": {"notified": False, "notified_at": None},
        }

        try:
            doc = await self.db.property_matches.find_one_and_update(
                key, update, upsert=True, return_document=ReturnDocument.AFTER
            )
        except DuplicateKeyError:
            # Lost an insert race for the same pair, the row exists now
            logger.info("Concurrent insert for property %s, buyer %s; updating existing match",
                        match.property_id, match.buyer_profile_id)
            doc = await self.db.property_matches.find_one_and_update(
                key, update, upsert=False, return_document=ReturnDocument.AFTER
            )

        return PropertyMatch(**_with_id(doc))

    async def get(self, property_id: str, buyer_profile_id: str) -> Optional[PropertyMatch]:
        doc = await self.db.property_matches.find_one(
            {"property_id": property_id, "buyer_profile_id": buyer_profile_id}
        )
        if doc:
            return PropertyMatch(**_with_id(doc))
        return None

    async def mark_notified(self, property_id: str, buyer_profile_id: str) -> bool:
        result = await self.db.property_matches.update_one(
            {"property_id": property_id, "buyer_profile_id": buyer_profile_id},
            {"$set": {"notified": True, "notified_at": datetime.now(timezone.utc)}},
        )
        return bool(result.matched_count > 0)

    async def delete_older_than(self, cutoff: datetime, organization_id: Optional[str] = None) -> int:
        query: Dict[str, Any] = {"created_at": {"$lt": cutoff}}
        if organization_id is not None:
            query["property_id"] = {"$in": await self._organization_property_ids(organization_id)}

        result = await self.db.property_matches.delete_many(query)
        logger.info("Deleted %s matches older than %s", result.deleted_count, cutoff.isoformat())
        return result.deleted_count

    async def _organization_property_ids(self, organization_id: str) -> List[str]:
        ids = await self.db.properties.distinct("_id", {"organization_id": organization_id})
        return [str(property_id) for property_id in ids]

    async def get_stats(self, organization_id: Optional[str] = None) -> MatchingStats:
        pipeline: List[Dict[str, Any]] = []
        if organization_id is not None:
            property_ids = await self._organization_property_ids(organization_id)
            pipeline.append({"$match": {"property_id": {"$in": property_ids}}})

        notified = {"$eq": ["$notified", True]}
        pipeline.append({
            "$group": {
                "_id": None,
                "total_matches": {"$sum": 1},
                "avg_match_score": {"$avg": "$match_score"},
                "excellent_matches": {"$sum": {"$cond": [{"$gte": ["$match_score", 90]}, 1, 0]}},
                "good_matches": {"$sum": {"$cond": [
                    {"$and": [{"$gte": ["$match_score", 80]}, {"$lt": ["$match_score", 90]}]}, 1, 0
                ]}},
                "fair_matches": {"$sum": {"$cond": [
                    {"$and": [{"$gte": ["$match_score", 70]}, {"$lt": ["$match_score", 80]}]}, 1, 0
                ]}},
                "notified_matches": {"$sum": {"$cond": [notified, 1, 0]}},
                "avg_notification_ms": {"$avg": {"$cond": [
                    {"$and": [notified, {"$ne": ["$notified_at", None]}]},
                    {"$subtract": ["$notified_at", "$created_at"]},
                    None,
                ]}},
            }
        })

        rows = await self.db.property_matches.aggregate(pipeline).to_list(length=None)
        if not rows:
            return MatchingStats()

        row = rows[0]
        avg_ms = row.get("avg_notification_ms")
        return MatchingStats(
            total_matches=row["total_matches"],
            avg_match_score=row.get("avg_match_score"),
            excellent_matches=row["excellent_matches"],
            good_matches=row["good_matches"],
            fair_matches=row["fair_matches"],
            notified_matches=row["notified_matches"],
            avg_notification_time_hours=avg_ms / 3_600_000 if avg_ms is not None else None,
        )
