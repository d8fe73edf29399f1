"""
Pytest configuration and fixtures for testing
"""

import pytest

from app.services.match_notification_service import MatchNotificationService
from app.services.matching_service import MatchingService
from app.services.reconciliation_service import ReconciliationService
from tests.test_utils import (
    InMemoryBuyerProfileRepository,
    InMemoryMatchRepository,
    InMemoryPropertyRepository,
    RecordingNotificationService,
    make_buyer_profile,
    make_contact,
    make_property,
)


@pytest.fixture
def property_repo():
    return InMemoryPropertyRepository([make_property()])


@pytest.fixture
def buyer_repo():
    return InMemoryBuyerProfileRepository([make_buyer_profile()], [make_contact()])


@pytest.fixture
def match_repo():
    return InMemoryMatchRepository()


@pytest.fixture
def notifier_channel():
    return RecordingNotificationService()


@pytest.fixture
def match_notifier(property_repo, buyer_repo, match_repo, notifier_channel):
    return MatchNotificationService(
        property_repo, buyer_repo, match_repo, notifier_channel, skip_already_notified=False
    )


@pytest.fixture
def matching_service(property_repo, buyer_repo, match_repo, match_notifier):
    return MatchingService(property_repo, buyer_repo, match_repo, match_notifier, auto_match_threshold=60)


@pytest.fixture
def reconciliation_service(matching_service, match_repo):
    return ReconciliationService(matching_service, match_repo, retention_days=30, global_sweep=True)
