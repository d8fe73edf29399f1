import logging

from app.db.mongodb import mongodb

logger = logging.getLogger(__name__)


async def init_database(db=None):
    """Initialize database with collections and indexes"""
    try:
        if db is None:
            db = mongodb.get_database()

        # Indexes for properties collection
        await db.properties.create_index("organization_id")
        await db.properties.create_index([("organization_id", 1), ("status", 1), ("created_at", -1)])
        await db.properties.create_index("price")

        # Indexes for buyer_profiles collection
        await db.buyer_profiles.create_index([("organization_id", 1), ("last_active", -1)])

        # Indexes for property_matches collection; one match per pair
        await db.property_matches.create_index([("property_id", 1), ("buyer_profile_id", 1)], unique=True)
        await db.property_matches.create_index("buyer_profile_id")
        await db.property_matches.create_index("created_at")
        await db.property_matches.create_index("organization_id")

        logger.info("Database indexes created successfully")

    except Exception as e:
        logger.error("Error initializing database: %s", e)
        raise
