"""
Tests for match notification rendering and per-recipient dispatch
"""

import pytest

from app.models.property_match import PropertyMatch
from app.services.match_notification_service import MatchNotificationService, create_match_message
from tests.test_utils import (
    RecordingNotificationService,
    make_buyer_profile,
    make_contact,
    make_property,
)


def _match(property_id="prop_1", buyer_profile_id="buyer_1", score=63, reasons=None, notified=False):
    return PropertyMatch(
        property_id=property_id,
        buyer_profile_id=buyer_profile_id,
        organization_id="org_1",
        match_score=score,
        match_reasons=reasons if reasons is not None else ["Perfect location match in Bandra"],
        notified=notified,
    )


class TestMatchMessage:
    """Rendering of the notification text"""

    def test_message_contains_listing_details(self):
        prop = make_property(location={"area": "Bandra", "city": "Mumbai"})

        message = create_match_message(prop, _match(score=88))

        assert "NEW PROPERTY MATCH (88% match)" in message
        assert "*Sea-facing 3BHK*" in message
        assert "📍 Bandra, Mumbai" in message
        assert "💰 ₹8,500,000" in message
        assert "🏢 apartment | 3BHK | 1200 sq.ft" in message

    def test_address_takes_precedence_over_area(self):
        prop = make_property(location={"area": "Bandra", "city": "Mumbai", "address": "14 Hill Road"})

        assert "📍 14 Hill Road" in create_match_message(prop, _match())

    def test_only_top_three_reasons_are_included(self):
        reasons = ["first", "second", "third", "fourth"]

        message = create_match_message(make_property(), _match(reasons=reasons))

        assert "✅ third" in message
        assert "fourth" not in message

    def test_listing_text_is_escaped_for_markdown(self):
        prop = make_property(
            title="Sea_view *premium* [new]",
            location={"area": "Bandra_West", "city": "Mumbai"},
            type="row_house",
        )
        reasons = ["Amenities you want: swimming_pool"]

        message = create_match_message(prop, _match(reasons=reasons))

        assert r"*Sea\_view \*premium\* \[new]*" in message
        assert r"📍 Bandra\_West, Mumbai" in message
        assert r"🏢 row\_house | 3BHK" in message
        assert r"✅ Amenities you want: swimming\_pool" in message


class TestMatchNotificationService:
    """Dispatch isolates each recipient"""

    @pytest.fixture
    def two_buyers(self, buyer_repo, match_repo):
        buyer_repo.items["buyer_2"] = make_buyer_profile("buyer_2", buyer_id="contact_2")
        buyer_repo.contacts["contact_2"] = make_contact("contact_2", telegram_chat_id=1002)
        return buyer_repo

    async def _stored(self, match_repo, *matches):
        return [await match_repo.upsert(m) for m in matches]

    @pytest.mark.asyncio
    async def test_successful_send_marks_match_notified(self, match_notifier, match_repo, notifier_channel):
        matches = await self._stored(match_repo, _match())

        summary = await match_notifier.send_match_notifications(matches)

        assert summary.sent == 1
        assert (await match_repo.get("prop_1", "buyer_1")).notified is True
        assert notifier_channel.sent[0][0] == "1001"

    @pytest.mark.asyncio
    async def test_buyer_without_address_is_skipped(self, match_notifier, buyer_repo, match_repo, notifier_channel):
        buyer_repo.contacts["contact_1"] = make_contact("contact_1", telegram_chat_id=None)
        matches = await self._stored(match_repo, _match())

        summary = await match_notifier.send_match_notifications(matches)

        assert summary.skipped == 1
        assert summary.failed == 0
        assert notifier_channel.sent == []
        assert (await match_repo.get("prop_1", "buyer_1")).notified is False

    @pytest.mark.asyncio
    async def test_missing_property_or_contact_is_skipped(self, match_notifier, buyer_repo, match_repo):
        del buyer_repo.contacts["contact_1"]
        matches = await self._stored(match_repo, _match(), _match(property_id="gone"))

        summary = await match_notifier.send_match_notifications(matches)

        assert summary.skipped == 2

    @pytest.mark.asyncio
    async def test_failed_send_does_not_affect_other_recipients(self, two_buyers, property_repo, match_repo):
        channel = RecordingNotificationService(fail_for={"1001"})
        notifier = MatchNotificationService(property_repo, two_buyers, match_repo, channel)
        matches = await self._stored(match_repo, _match(), _match(buyer_profile_id="buyer_2"))

        summary = await notifier.send_match_notifications(matches)

        assert summary.failed == 1
        assert summary.sent == 1
        assert (await match_repo.get("prop_1", "buyer_1")).notified is False
        assert (await match_repo.get("prop_1", "buyer_2")).notified is True

    @pytest.mark.asyncio
    async def test_send_exception_is_isolated(self, two_buyers, property_repo, match_repo):
        channel = RecordingNotificationService(raise_for={"1001"})
        notifier = MatchNotificationService(property_repo, two_buyers, match_repo, channel)
        matches = await self._stored(match_repo, _match(), _match(buyer_profile_id="buyer_2"))

        summary = await notifier.send_match_notifications(matches)

        assert summary.failed == 1
        assert [address for address, _ in channel.sent] == ["1002"]

    @pytest.mark.asyncio
    async def test_already_notified_matches_are_sent_again_by_default(self, match_notifier, notifier_channel):
        summary = await match_notifier.send_match_notifications([_match(notified=True)])

        assert summary.sent == 1

    @pytest.mark.asyncio
    async def test_already_notified_matches_skipped_when_configured(
        self, property_repo, buyer_repo, match_repo, notifier_channel
    ):
        notifier = MatchNotificationService(
            property_repo, buyer_repo, match_repo, notifier_channel, skip_already_notified=True
        )

        summary = await notifier.send_match_notifications([_match(notified=True), _match(buyer_profile_id="x")])

        assert summary.skipped == 2
        assert notifier_channel.sent == []
