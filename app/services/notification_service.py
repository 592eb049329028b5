"""
Notification service interface and the keyword alert dispatcher.

This module provides an abstract base class for notification services, a
concrete Telegram implementation with lazy bot initialization to avoid
circular imports, and the dispatcher that fans one keyword match out to all
of a user's destinations.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

from app.models.message_context import UNKNOWN_CHAT, UNKNOWN_USER, MessageContext
from app.models.user import User

logger = logging.getLogger(__name__)

MESSAGE_PREVIEW_LENGTH = 200


class NotificationService(ABC):
    """Abstract base class for notification services"""

    @abstractmethod
    async def send_message(self, chat_id: int, message: str, parse_mode: Optional[str] = None) -> bool:
        """Send message to a chat or user"""


class TelegramNotificationService(NotificationService):
    """Telegram implementation of notification service"""

    def __init__(self, bot: Optional[Any] = None) -> None:
        self._bot: Optional[Any] = bot

    async def _get_bot(self) -> Any:
        """Lazy initialization of bot to avoid circular imports"""
        if self._bot is None:
            from app.telegram_bot import telegram_bot

            self._bot = telegram_bot
        return self._bot

    async def send_message(self, chat_id: int, message: str, parse_mode: Optional[str] = None) -> bool:
        """Send message via Telegram bot"""
        try:
            bot = await self._get_bot()
            return await bot.send_message(chat_id, message, parse_mode=parse_mode)
        except Exception as e:
            logger.error("Error sending message to %s: %s", chat_id, e)
            return False


def format_keyword_notification(user: User, keyword: str, message: MessageContext) -> str:
    """Build the alert text for one keyword match"""
    text = message.text
    if len(text) > MESSAGE_PREVIEW_LENGTH:
        text = text[:MESSAGE_PREVIEW_LENGTH] + "..."

    return (
        "🔔 Keyword Match Found!\n\n"
        f'Keyword: "{keyword}"\n'
        f"Chat: {message.chat_title or UNKNOWN_CHAT}\n"
        f"From: {message.sender_name or UNKNOWN_USER}\n"
        f"Message: {text}\n"
        f"Length: {message.length} chars (limit: {user.character_limit})\n\n"
        f"Time: {message.timestamp.strftime('%Y-%m-%d %H:%M:%S UTC')}"
    )


class KeywordNotificationDispatcher:
    """Sends one alert per destination; a failing destination never blocks the others"""

    def __init__(self, notification_service: Optional[NotificationService] = None) -> None:
        self.notification_service = notification_service or TelegramNotificationService()

    async def _send(self, destination: int, text: str, user: User, keyword: str) -> bool:
        try:
            sent = await self.notification_service.send_message(destination, text)
        except Exception as e:
            logger.error("Failed to send notification to %s for user %s: %s", destination, user.user_id, e)
            return False

        if sent:
            logger.info(
                "Keyword notification sent to %s for user %s keyword '%s'", destination, user.user_id, keyword
            )
        else:
            logger.error("Failed to send notification to %s for user %s", destination, user.user_id)
        return sent

    async def notify(self, user: User, keyword: str, message: MessageContext) -> int:
        """Alert all of the user's destinations; returns how many deliveries succeeded"""
        try:
            text = format_keyword_notification(user, keyword, message)
            results = await asyncio.gather(
                *(self._send(destination, text, user, keyword) for destination in user.notification_targets)
            )
            return sum(1 for sent in results if sent)
        except Exception as e:
            logger.error("Error sending keyword notification for user %s: %s", user.user_id, e)
            return 0
