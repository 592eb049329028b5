import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Coroutine, Dict, Optional

from telethon import TelegramClient, events
from telethon.sessions import StringSession

from app.core.config import settings
from app.services.auth_session_service import AuthSessionService, auth_session_service

logger = logging.getLogger(__name__)

# Type alias for the event handling callbacks
EventCallback = Callable[[Any], Coroutine[Any, Any, None]]


class TelegramClientManager:
    """Manages the Telethon monitoring client lifecycle and its event handlers."""

    def __init__(self, sessions: Optional[AuthSessionService] = None) -> None:
        self.client: Optional[TelegramClient] = None
        self.is_monitoring = False
        self.sessions = sessions or auth_session_service
        self._run_task: Optional[asyncio.Task] = None
        self._started_at: Optional[datetime] = None
        # Callbacks set by facade
        self._new_message_callback: Optional[EventCallback] = None
        self._edited_message_callback: Optional[EventCallback] = None

    def set_callbacks(self, new_message: EventCallback, edited_message: EventCallback) -> None:
        """Set callbacks for message events (wired by facade)."""
        self._new_message_callback = new_message
        self._edited_message_callback = edited_message

    # ------------------------------------------------------------------
    # Client construction
    # ------------------------------------------------------------------

    async def _resolve_session(self, session_string: Optional[str]):
        """Explicit string session, then the configured one, then the latest user login, then the session file"""
        if session_string:
            return StringSession(session_string)
        if settings.TELEGRAM_SESSION_STRING:
            return StringSession(settings.TELEGRAM_SESSION_STRING)
        try:
            stored = await self.sessions.get_latest_active_session_string()
        except Exception as e:
            logger.warning("Could not load a stored session for monitoring: %s", e)
            stored = None
        if stored:
            return StringSession(stored)
        return settings.TELEGRAM_SESSION_NAME

    def _create_client(self, session) -> TelegramClient:
        return TelegramClient(session, settings.TELEGRAM_API_ID, settings.TELEGRAM_API_HASH, connection_retries=5)

    def _register_handlers(self) -> None:
        @self.client.on(events.NewMessage())
        async def handle_new_message(event: events.NewMessage.Event) -> None:
            try:
                if self._new_message_callback:
                    await self._new_message_callback(event)
            except Exception as e:
                logger.error("Error handling userbot event: %s", e)

        @self.client.on(events.MessageEdited())
        async def handle_edited_message(event: events.MessageEdited.Event) -> None:
            try:
                if self._edited_message_callback:
                    await self._edited_message_callback(event)
            except Exception as e:
                logger.error("Error handling message edit event: %s", e)

        logger.info("Registered new and edited message handlers")

    # ------------------------------------------------------------------
    # Monitoring lifecycle
    # ------------------------------------------------------------------

    async def start_monitoring(self, session_string: Optional[str] = None) -> bool:
        """Connect the monitoring account and start receiving events; False if no authorised session exists"""
        if self.is_monitoring:
            logger.warning("Userbot is already running")
            return True

        session = await self._resolve_session(session_string)
        client = self._create_client(session)
        try:
            await client.connect()
            if not await client.is_user_authorized():
                logger.warning("Monitoring account is not authorised yet; waiting for a user to /login")
                await client.disconnect()
                return False
        except Exception as e:
            logger.error("Failed to start Telegram userbot: %s", e)
            try:
                await client.disconnect()
            except Exception as disconnect_error:
                logger.debug("Error disconnecting after failed start: %s", disconnect_error)
            raise

        self.client = client
        self._register_handlers()
        self._run_task = asyncio.create_task(self._run_client(), name="telethon-monitor")
        self.is_monitoring = True
        self._started_at = datetime.now(timezone.utc)
        logger.info("Telegram userbot started successfully")
        return True

    async def _run_client(self) -> None:
        try:
            logger.info("Telegram client background task started")
            await self.client.run_until_disconnected()
            logger.info("Telegram client disconnected")
        except Exception as e:
            logger.error("Error in Telegram client background task: %s", e)
        finally:
            self.is_monitoring = False

    async def stop_monitoring(self) -> None:
        if self.client is None:
            return
        try:
            await self.client.disconnect()
        except Exception as e:
            logger.error("Error stopping Telegram userbot: %s", e)
        if self._run_task is not None:
            self._run_task.cancel()
            try:
                await self._run_task
            except asyncio.CancelledError:
                pass
            self._run_task = None
        self.client = None
        self.is_monitoring = False
        logger.info("Telegram userbot stopped")

    def get_status(self) -> Dict[str, Any]:
        return {
            "is_connected": self.client.is_connected() if self.client else False,
            "is_monitoring": self.is_monitoring,
            "started_at": self._started_at.isoformat() if self._started_at else None,
        }
