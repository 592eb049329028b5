"""
Storage for authenticated Telegram sessions (one active session per user)
"""

import logging
from typing import Optional

from pymongo import DESCENDING

from app.db.mongodb import mongodb
from app.models.auth_session import AuthSession
from app.services.encryption_service import EncryptionService, encryption_service

logger = logging.getLogger(__name__)


class AuthSessionService:
    """Service for saving and loading encrypted session strings"""

    def __init__(self, encryption: Optional[EncryptionService] = None):
        self.encryption = encryption or encryption_service

    async def save_session(self, user_id: int, phone_number: str, session_string: str) -> AuthSession:
        """Upsert the user's session; the latest login replaces any previous one"""
        session = AuthSession(
            user_id=user_id,
            phone_number=phone_number,
            session_string=self.encryption.encrypt(session_string),
        )
        try:
            db = mongodb.get_database()
            await db.auth_sessions.replace_one(
                {"user_id": user_id}, session.model_dump(exclude={"id"}), upsert=True
            )
            logger.info("Auth session saved for user: %s", user_id)
            return session
        except Exception as e:
            logger.error("Failed to save auth session for user %s: %s", user_id, e)
            raise

    async def get_latest_active_session_string(self) -> Optional[str]:
        """Decrypted session string of the most recent active login, used for monitoring"""
        try:
            db = mongodb.get_database()
            doc = await db.auth_sessions.find_one({"is_active": True}, sort=[("created_at", DESCENDING)])
        except Exception as e:
            logger.error("Failed to get latest auth session: %s", e)
            raise
        if not doc:
            return None
        return self.encryption.decrypt(doc["session_string"])

    async def deactivate_session(self, user_id: int) -> bool:
        try:
            db = mongodb.get_database()
            result = await db.auth_sessions.update_one({"user_id": user_id}, {"$set": {"is_active": False}})
            return result.modified_count > 0
        except Exception as e:
            logger.error("Failed to deactivate auth session for user %s: %s", user_id, e)
            raise


# Global instance
auth_session_service = AuthSessionService()
