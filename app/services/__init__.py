"""
Services module initialization
"""

from app.core.config import settings
from app.db.mongo_repositories import MongoBuyerProfileRepository, MongoMatchRepository, MongoPropertyRepository
from app.db.mongodb import mongodb
from app.services.match_notification_service import MatchNotificationService
from app.services.match_stats_service import MatchStatsService
from app.services.matching_service import MatchingService
from app.services.notification_service import NotificationService, TelegramNotificationService
from app.services.recommendation_service import RecommendationService
from app.services.reconciliation_service import ReconciliationScheduler, ReconciliationService

# Global service instances
_notification_service: NotificationService | None = None
_reconciliation_service: ReconciliationService | None = None


def get_notification_service() -> NotificationService:
    """Get the global notification service instance (singleton)"""
    global _notification_service
    if _notification_service is None:
        _notification_service = TelegramNotificationService()
    return _notification_service


def get_matching_service() -> MatchingService:
    db = mongodb.get_database()
    properties = MongoPropertyRepository(db)
    buyer_profiles = MongoBuyerProfileRepository(db)
    matches = MongoMatchRepository(db)
    notifier = MatchNotificationService(properties, buyer_profiles, matches, get_notification_service())
    return MatchingService(properties, buyer_profiles, matches, notifier)


def get_recommendation_service() -> RecommendationService:
    db = mongodb.get_database()
    return RecommendationService(MongoPropertyRepository(db), MongoBuyerProfileRepository(db))


def get_match_stats_service() -> MatchStatsService:
    return MatchStatsService(MongoMatchRepository(mongodb.get_database()))


def get_reconciliation_service() -> ReconciliationService:
    """Get the global reconciliation service; shared so concurrent bulk runs are serialized"""
    global _reconciliation_service
    if _reconciliation_service is None:
        _reconciliation_service = ReconciliationService(
            get_matching_service(), MongoMatchRepository(mongodb.get_database())
        )
    return _reconciliation_service


def create_reconciliation_scheduler() -> ReconciliationScheduler:
    return ReconciliationScheduler(
        get_reconciliation_service(),
        settings.RECONCILIATION_INTERVAL_HOURS,
        settings.reconciliation_organizations_list,
    )
