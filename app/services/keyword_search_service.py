"""
Keyword matching engine.

For every inbound message the engine reads all authenticated, active users,
skips users without keywords or whose character limit is below the message
length, and tests each remaining keyword. Each match is written to the ledger
and dispatched to the user's destinations.
"""

import asyncio
import logging
from typing import List, Optional, Tuple

from app.models.keyword_match import KeywordMatch
from app.models.message_context import MessageContext
from app.models.user import User
from app.services.keyword_match_service import KeywordMatchService, keyword_match_service
from app.services.keyword_matcher import find_matching_keywords
from app.services.notification_service import KeywordNotificationDispatcher
from app.services.user_service import UserService, user_service

logger = logging.getLogger(__name__)


class KeywordSearchService:
    """Matches messages against every user's keywords and fans out the results"""

    def __init__(
        self,
        users: Optional[UserService] = None,
        ledger: Optional[KeywordMatchService] = None,
        dispatcher: Optional[KeywordNotificationDispatcher] = None,
    ) -> None:
        self.users = users or user_service
        self.ledger = ledger or keyword_match_service
        self.dispatcher = dispatcher or KeywordNotificationDispatcher()

    def match_user(self, user: User, message: MessageContext) -> List[str]:
        """Keywords of one user that match the message, honoring the character limit"""
        if not user.keywords:
            return []
        if message.length > user.character_limit:
            logger.debug(
                "Message %s (%s chars) exceeds limit %s of user %s",
                message.message_id, message.length, user.character_limit, user.user_id,
            )
            return []
        return find_matching_keywords(message.text, user.keywords)

    async def evaluate(self, message: MessageContext) -> List[Tuple[User, str]]:
        """Return one (user, keyword) pair per matching keyword across all active users"""
        users = await self.users.get_active_users()
        results: List[Tuple[User, str]] = []

        for user in users:
            try:
                keywords = self.match_user(user, message)
            except Exception as e:
                logger.error("Error matching keywords for user %s: %s", user.user_id, e)
                continue
            results.extend((user, keyword) for keyword in keywords)

        return results

    async def _handle_match(self, user: User, keyword: str, message: MessageContext) -> KeywordMatch:
        match = KeywordMatch.from_message(user.user_id, keyword, message)
        try:
            await self.ledger.record(match)
            logger.info(
                "Keyword match found in %s message: '%s' for user %s",
                "edited" if message.is_edit else "new", keyword, user.user_id,
            )
        except Exception as e:
            logger.error("Failed to save keyword match for user %s: %s", user.user_id, e)

        await self.dispatcher.notify(user, keyword, message)
        return match

    async def _handle_user_matches(
        self, user: User, keywords: List[str], message: MessageContext
    ) -> List[KeywordMatch]:
        matches = []
        for keyword in keywords:
            matches.append(await self._handle_match(user, keyword, message))
        return matches

    async def process_message(self, message: MessageContext) -> List[KeywordMatch]:
        """Evaluate the message, record every match and notify its owner"""
        try:
            pairs = await self.evaluate(message)
        except Exception as e:
            logger.error("Error searching keywords in message %s of chat %s: %s", message.message_id, message.chat_id, e)
            return []

        if not pairs:
            return []

        by_user: dict = {}
        for user, keyword in pairs:
            by_user.setdefault(user.user_id, (user, []))[1].append(keyword)

        results = await asyncio.gather(
            *(self._handle_user_matches(user, keywords, message) for user, keywords in by_user.values()),
            return_exceptions=True,
        )

        matches: List[KeywordMatch] = []
        for result in results:
            if isinstance(result, BaseException):
                logger.error("Error handling keyword matches: %s", result)
                continue
            matches.extend(result)
        return matches


# Global instance
keyword_search_service = KeywordSearchService()
