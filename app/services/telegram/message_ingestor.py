import logging
from typing import TYPE_CHECKING, Any, Optional

from app.models.message_context import UNKNOWN_CHAT, UNKNOWN_USER
from app.services.keyword_search_service import KeywordSearchService, keyword_search_service
from app.services.telegram.message_normalizer import normalize_message

if TYPE_CHECKING:
    from app.services.telegram.client_manager import TelegramClientManager

logger = logging.getLogger(__name__)


class MessageIngestor:
    """Turns new and edited message events into keyword searches."""

    def __init__(
        self,
        client_manager: "TelegramClientManager",
        search_service: Optional[KeywordSearchService] = None,
    ) -> None:
        self.client_manager = client_manager
        self.search_service = search_service or keyword_search_service

    # ------------------------------------------------------------------
    # Best-effort lookups
    # ------------------------------------------------------------------

    async def _get_entity(self, entity_id: int) -> Any:
        client = self.client_manager.client
        if client is None:
            return None
        return await client.get_entity(entity_id)

    async def get_chat_title(self, chat_id: int) -> str:
        try:
            chat = await self._get_entity(chat_id)
        except Exception as e:
            logger.warning("Error getting chat info for %s: %s", chat_id, e)
            return UNKNOWN_CHAT
        return getattr(chat, "title", None) or getattr(chat, "first_name", None) or UNKNOWN_CHAT

    async def get_sender_name(self, sender_id: int) -> str:
        try:
            sender = await self._get_entity(sender_id)
        except Exception as e:
            logger.warning("Error getting sender name for %s: %s", sender_id, e)
            return UNKNOWN_USER
        return getattr(sender, "first_name", None) or getattr(sender, "username", None) or UNKNOWN_USER

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------

    async def ingest(self, raw_message: Any, is_edit: bool = False) -> list:
        """Normalize one raw message and run it through keyword matching"""
        message = normalize_message(raw_message, is_edit=is_edit)
        if message is None:
            return []

        message = message.model_copy(
            update={
                "chat_title": await self.get_chat_title(message.chat_id),
                "sender_name": await self.get_sender_name(message.sender_id),
            }
        )
        return await self.search_service.process_message(message)

    async def handle_new_message(self, event: Any) -> None:
        try:
            await self.ingest(getattr(event, "message", None))
        except Exception as e:
            logger.error("Error processing new message: %s", e)

    async def handle_edited_message(self, event: Any) -> None:
        try:
            await self.ingest(getattr(event, "message", None), is_edit=True)
        except Exception as e:
            logger.error("Error processing edited message: %s", e)
