"""
User directory: tenants, their keywords, character limits and notification destinations.

Every call reads or writes MongoDB directly; there is no in-process cache, so
keyword matching always sees the latest state written by bot commands.
"""

import logging
import re
from typing import List, Optional

from pymongo import ReturnDocument

from app.core.config import settings
from app.db.mongodb import mongodb
from app.exceptions import (
    InvalidCharacterLimitError,
    InvalidDestinationError,
    InvalidKeywordError,
    InvalidPhoneNumberError,
)
from app.models.user import MAX_CHARACTER_LIMIT, MIN_CHARACTER_LIMIT, User
from app.services.keyword_matcher import MAX_KEYWORD_LENGTH

logger = logging.getLogger(__name__)

PHONE_NUMBER_RE = re.compile(r"^\+[1-9]\d{1,14}$")


def validate_phone_number(phone_number: str) -> str:
    phone_number = (phone_number or "").strip().replace(" ", "")
    if not PHONE_NUMBER_RE.match(phone_number):
        raise InvalidPhoneNumberError(
            "Please send a valid phone number in international format (e.g., +1234567890)."
        )
    return phone_number


def parse_character_limit(value) -> int:
    try:
        limit = int(str(value).strip())
    except (TypeError, ValueError):
        raise InvalidCharacterLimitError(
            f"Character limit must be a whole number between {MIN_CHARACTER_LIMIT} and {MAX_CHARACTER_LIMIT}."
        ) from None
    if not MIN_CHARACTER_LIMIT <= limit <= MAX_CHARACTER_LIMIT:
        raise InvalidCharacterLimitError(
            f"Character limit must be between {MIN_CHARACTER_LIMIT} and {MAX_CHARACTER_LIMIT}, got {limit}."
        )
    return limit


def parse_destination_id(value) -> int:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        raise InvalidDestinationError(
            f"'{value}' is not a valid chat ID. Chat IDs are numbers, e.g. -1001234567890."
        ) from None


def validate_keyword(keyword: str) -> str:
    keyword = (keyword or "").strip()
    if not keyword:
        raise InvalidKeywordError("Keyword must not be empty.")
    if len(keyword) > MAX_KEYWORD_LENGTH:
        raise InvalidKeywordError(f"Keyword must be at most {MAX_KEYWORD_LENGTH} characters long.")
    return keyword


def _exact_ignore_case(keyword: str) -> re.Pattern:
    return re.compile(f"^{re.escape(keyword)}$", re.IGNORECASE)


class UserService:
    """Service for managing monitored users"""

    async def create_user(
        self, user_id: int, phone_number: str, is_authenticated: bool = True, session_string: Optional[str] = None
    ) -> User:
        """Create a new user with default settings"""
        user = User(
            user_id=user_id,
            phone_number=phone_number,
            is_authenticated=is_authenticated,
            session_string=session_string,
            character_limit=settings.DEFAULT_CHARACTER_LIMIT,
        )
        try:
            db = mongodb.get_database()
            result = await db.users.insert_one(user.model_dump(exclude={"id"}))
            user.id = str(result.inserted_id)
            logger.info("User created: %s", user_id)
            return user
        except Exception as e:
            logger.error("Failed to create user %s: %s", user_id, e)
            raise

    async def get_user(self, user_id: int) -> Optional[User]:
        """Get user by Telegram ID"""
        try:
            db = mongodb.get_database()
            doc = await db.users.find_one({"user_id": user_id})
            return User.from_document(doc) if doc else None
        except Exception as e:
            logger.error("Failed to get user %s: %s", user_id, e)
            raise

    async def get_user_by_phone(self, phone_number: str) -> Optional[User]:
        try:
            db = mongodb.get_database()
            doc = await db.users.find_one({"phone_number": phone_number})
            return User.from_document(doc) if doc else None
        except Exception as e:
            logger.error("Failed to get user by phone number: %s", e)
            raise

    async def get_active_users(self) -> List[User]:
        """Get every user that is both authenticated and active"""
        try:
            db = mongodb.get_database()
            users = []
            async for doc in db.users.find({"is_authenticated": True, "is_active": True}):
                try:
                    users.append(User.from_document(doc))
                except ValueError as e:
                    logger.warning("Skipping malformed user document %s: %s", doc.get("_id"), e)
            return users
        except Exception as e:
            logger.error("Failed to get active users: %s", e)
            raise

    async def update_user(self, user_id: int, fields: dict) -> Optional[User]:
        try:
            db = mongodb.get_database()
            doc = await db.users.find_one_and_update(
                {"user_id": user_id},
                {"$set": {**fields, "updated_at": mongodb.get_current_time()}},
                return_document=ReturnDocument.AFTER,
            )
            return User.from_document(doc) if doc else None
        except Exception as e:
            logger.error("Failed to update user %s: %s", user_id, e)
            raise

    async def mark_authenticated(self, user_id: int, phone_number: str, session_string: Optional[str]) -> User:
        """Create the user on first login, otherwise re-authenticate and re-activate it"""
        user = await self.get_user(user_id)
        if user is None:
            other = await self.get_user_by_phone(phone_number)
            if other is not None:
                # The phone number moved to a new Telegram account
                db = mongodb.get_database()
                await db.users.update_one(
                    {"user_id": other.user_id},
                    {
                        "$unset": {"phone_number": ""},
                        "$set": {"is_authenticated": False, "is_active": False, "updated_at": mongodb.get_current_time()},
                    },
                )
                logger.warning("Phone number of user %s reassigned to user %s", other.user_id, user_id)
            return await self.create_user(user_id, phone_number, True, session_string)

        updated = await self.update_user(
            user_id,
            {
                "phone_number": phone_number,
                "is_authenticated": True,
                "is_active": True,
                "session_string": session_string,
            },
        )
        logger.info("User %s authenticated", user_id)
        return updated or user

    async def logout(self, user_id: int) -> bool:
        """Soft-deactivate the user; keywords and destinations are kept"""
        user = await self.update_user(
            user_id, {"is_authenticated": False, "is_active": False, "session_string": None}
        )
        if user:
            logger.info("User %s logged out", user_id)
        return user is not None

    async def add_keyword(self, user_id: int, keyword: str) -> bool:
        """Add a keyword; returns False when it already exists in any casing"""
        keyword = validate_keyword(keyword)
        try:
            db = mongodb.get_database()
            result = await db.users.update_one(
                {"user_id": user_id, "keywords": {"$not": _exact_ignore_case(keyword)}},
                {"$push": {"keywords": keyword}, "$set": {"updated_at": mongodb.get_current_time()}},
            )
            added = result.matched_count > 0
            if added:
                logger.info("Keyword '%s' added for user %s", keyword, user_id)
            return added
        except Exception as e:
            logger.error("Failed to add keyword for user %s: %s", user_id, e)
            raise

    async def remove_keyword(self, user_id: int, keyword: str) -> bool:
        """Remove a keyword in any casing; returns False when it was not present"""
        keyword = validate_keyword(keyword)
        try:
            db = mongodb.get_database()
            result = await db.users.update_one(
                {"user_id": user_id, "keywords": _exact_ignore_case(keyword)},
                {"$pull": {"keywords": _exact_ignore_case(keyword)}, "$set": {"updated_at": mongodb.get_current_time()}},
            )
            removed = result.matched_count > 0
            if removed:
                logger.info("Keyword '%s' removed for user %s", keyword, user_id)
            return removed
        except Exception as e:
            logger.error("Failed to remove keyword for user %s: %s", user_id, e)
            raise

    async def set_character_limit(self, user_id: int, limit) -> int:
        limit = parse_character_limit(limit)
        user = await self.update_user(user_id, {"character_limit": limit})
        if user is None:
            raise LookupError(f"User {user_id} not found")
        return limit

    async def set_notification_groups(self, user_id: int, group_ids: List) -> List[int]:
        """Replace all destinations; an empty list means alerts go to the user directly"""
        parsed = []
        for group_id in group_ids:
            destination = parse_destination_id(group_id)
            if destination not in parsed:
                parsed.append(destination)
        user = await self.update_user(user_id, {"notification_groups": parsed})
        if user is None:
            raise LookupError(f"User {user_id} not found")
        return parsed

    async def set_notification_chat(self, user_id: int, chat_id) -> List[int]:
        return await self.set_notification_groups(user_id, [chat_id])

    async def add_notification_group(self, user_id: int, group_id) -> bool:
        destination = parse_destination_id(group_id)
        try:
            db = mongodb.get_database()
            result = await db.users.update_one(
                {"user_id": user_id, "notification_groups": {"$ne": destination}},
                {"$addToSet": {"notification_groups": destination}, "$set": {"updated_at": mongodb.get_current_time()}},
            )
            return result.matched_count > 0
        except Exception as e:
            logger.error("Failed to add notification group for user %s: %s", user_id, e)
            raise

    async def remove_notification_group(self, user_id: int, group_id) -> bool:
        destination = parse_destination_id(group_id)
        try:
            db = mongodb.get_database()
            result = await db.users.update_one(
                {"user_id": user_id, "notification_groups": destination},
                {"$pull": {"notification_groups": destination}, "$set": {"updated_at": mongodb.get_current_time()}},
            )
            return result.matched_count > 0
        except Exception as e:
            logger.error("Failed to remove notification group for user %s: %s", user_id, e)
            raise


# Global instance
user_service = UserService()
