"""
Dispatches match notifications to buyers.

Each match is rendered and sent to its buyer independently: a missing
contact address skips the recipient, a failed send is logged and does not
affect the rest of the batch. There is no retry.
"""

import logging
from typing import List, Optional

from telegram.helpers import escape_markdown

from app.core.config import settings
from app.db.repositories import BuyerProfileRepository, MatchRepository, PropertyRepository
from app.models.property import Property
from app.models.property_match import DispatchSummary, PropertyMatch
from app.services.notification_service import NotificationService
from app.services.scoring_service import format_price

logger = logging.getLogger(__name__)

MAX_REASONS_IN_MESSAGE = 3


def create_match_message(prop: Property, match: PropertyMatch) -> str:
    """Render a match into the text sent to the buyer"""
    location = prop.location.address or ", ".join(
        part for part in (prop.location.area, prop.location.city) if part
    )

    spec_parts = []
    if prop.type:
        spec_parts.append(escape_markdown(prop.type))
    if prop.specifications.bedrooms is not None:
        spec_parts.append(f"{prop.specifications.bedrooms}BHK")
    if prop.specifications.area_sqft is not None:
        spec_parts.append(f"{prop.specifications.area_sqft:g} sq.ft")

    lines = [
        f"🏠 *NEW PROPERTY MATCH ({match.match_score}% match)*",
        "",
        f"*{escape_markdown(prop.title or 'New listing')}*",
        f"📍 {escape_markdown(location)}",
        f"💰 {escape_markdown(format_price(prop.price, prop.currency))}",
    ]
    if spec_parts:
        lines.append(f"🏢 {' | '.join(spec_parts)}")

    lines.extend(["", "*Why this matches you:*"])
    lines.extend(f"✅ {escape_markdown(reason)}" for reason in match.match_reasons[:MAX_REASONS_IN_MESSAGE])

    lines.extend([
        "",
        "🎯 *High match score!* Interested in viewing this property?",
        "",
        '📞 Reply "YES" to schedule a visit',
        '📋 Reply "DETAILS" for more information',
        '❌ Reply "NO" to stop these recommendations',
    ])
    return "\n".join(lines)


class MatchNotificationService:
    """Sends one message per match through the configured notification service"""

    def __init__(
        self,
        properties: PropertyRepository,
        buyer_profiles: BuyerProfileRepository,
        matches: MatchRepository,
        notification_service: NotificationService,
        skip_already_notified: Optional[bool] = None,
    ):
        self.properties = properties
        self.buyer_profiles = buyer_profiles
        self.matches = matches
        self.notification_service = notification_service
        if skip_already_notified is None:
            skip_already_notified = settings.SKIP_ALREADY_NOTIFIED
        self.skip_already_notified = skip_already_notified

    async def send_match_notifications(self, matches: List[PropertyMatch]) -> DispatchSummary:
        summary = DispatchSummary()

        for match in matches:
            try:
                sent = await self._notify(match)
            except Exception as e:
                logger.error("Error sending match notification for property %s, buyer %s: %s",
                             match.property_id, match.buyer_profile_id, e)
                summary.failed += 1
                continue

            if sent is None:
                summary.skipped += 1
            elif sent:
                summary.sent += 1
            else:
                summary.failed += 1

        logger.info("Match notifications: %d sent, %d skipped, %d failed",
                    summary.sent, summary.skipped, summary.failed)
        return summary

    async def _notify(self, match: PropertyMatch) -> Optional[bool]:
        """Returns None when the recipient is skipped, otherwise whether the send succeeded"""
        if self.skip_already_notified and match.notified:
            logger.debug("Match %s/%s already notified, skipping", match.property_id, match.buyer_profile_id)
            return None

        prop = await self.properties.get_by_id(match.property_id)
        buyer_profile = await self.buyer_profiles.get_by_id(match.buyer_profile_id)
        if not prop or not buyer_profile or not buyer_profile.buyer_id:
            return None

        contact = await self.buyer_profiles.get_contact(buyer_profile.buyer_id)
        if contact is None:
            return None

        address = self.notification_service.recipient_address(contact)
        if not address:
            logger.debug("Buyer %s has no reachable address, skipping", buyer_profile.id)
            return None

        message = create_match_message(prop, match)
        if not await self.notification_service.send_text(address, message):
            logger.warning("Notification for buyer %s was not delivered", buyer_profile.id)
            return False

        await self.matches.mark_notified(match.property_id, match.buyer_profile_id)
        return True
