"""
Telegram monitoring package.

``TelegramService`` is a facade over the Telethon client manager and the
message ingestor that feeds keyword matching.
"""

import logging
from typing import Any, Dict, Optional

from app.services.keyword_search_service import KeywordSearchService
from app.services.telegram.client_manager import TelegramClientManager
from app.services.telegram.message_ingestor import MessageIngestor

logger = logging.getLogger(__name__)


class TelegramService:
    """Facade that delegates to specialised sub-modules."""

    def __init__(self, search_service: Optional[KeywordSearchService] = None) -> None:
        self.client_manager = TelegramClientManager()
        self.ingestor = MessageIngestor(self.client_manager, search_service)
        # Wire callbacks so the client_manager can invoke the ingestor
        self.client_manager.set_callbacks(
            new_message=self.ingestor.handle_new_message,
            edited_message=self.ingestor.handle_edited_message,
        )

    @property
    def client(self):
        return self.client_manager.client

    @property
    def is_monitoring(self) -> bool:
        return self.client_manager.is_monitoring

    async def start_monitoring(self, session_string: Optional[str] = None) -> bool:
        return await self.client_manager.start_monitoring(session_string)

    async def ensure_monitoring(self, session_string: str) -> bool:
        """Start monitoring with a freshly authenticated session if nothing is running yet"""
        if self.client_manager.is_monitoring:
            return True
        try:
            return await self.client_manager.start_monitoring(session_string)
        except Exception as e:
            logger.error("Failed to start monitoring after login: %s", e)
            return False

    async def stop_monitoring(self) -> None:
        await self.client_manager.stop_monitoring()

    def get_status(self) -> Dict[str, Any]:
        return self.client_manager.get_status()


__all__ = ["TelegramService"]
