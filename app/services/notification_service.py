"""
Notification service interface for sending messages to buyers.

This module provides an abstract base class for outbound messaging and
a concrete Telegram implementation with lazy bot initialization.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

from telegram import Bot

from app.core.config import settings
from app.models.buyer_profile import Contact

logger = logging.getLogger(__name__)


class NotificationService(ABC):
    """Abstract base class for notification services"""

    @abstractmethod
    def recipient_address(self, contact: Contact) -> Optional[str]:
        """Address of the contact on this channel, None if unreachable"""

    @abstractmethod
    async def send_text(self, address: str, body: str) -> bool:
        """Send a text message to one recipient"""


class TelegramNotificationService(NotificationService):
    """Telegram implementation of notification service"""

    def __init__(self, bot_token: Optional[str] = None) -> None:
        self.bot_token = bot_token or settings.TELEGRAM_BOT_TOKEN
        self._bot: Optional[Any] = None

    async def _get_bot(self) -> Any:
        """Lazy initialization of the bot client"""
        if self._bot is None:
            bot = Bot(token=self.bot_token)
            await bot.initialize()
            self._bot = bot
        return self._bot

    def recipient_address(self, contact: Contact) -> Optional[str]:
        if contact.telegram_chat_id is None:
            return None
        return str(contact.telegram_chat_id)

    async def send_text(self, address: str, body: str) -> bool:
        """Send message to a chat via Telegram bot"""
        if not self.bot_token:
            logger.warning("TELEGRAM_BOT_TOKEN is not configured, cannot send to %s", address)
            return False
        try:
            bot = await self._get_bot()
            await bot.send_message(chat_id=address, text=body, parse_mode="Markdown")
            return True
        except Exception as e:
            logger.error("Error sending message to chat %s: %s", address, e)
            return False

    async def close(self) -> None:
        if self._bot is not None:
            await self._bot.shutdown()
            self._bot = None
