"""
Match ledger: append-only store of keyword matches with queries, statistics and retention
"""

import logging
import math
from datetime import timedelta
from typing import Dict, List, Optional

from pymongo import ASCENDING, DESCENDING

from app.db.mongodb import mongodb
from app.models.keyword_match import KeywordCount, KeywordMatch, MatchStats

logger = logging.getLogger(__name__)

TOP_KEYWORDS_LIMIT = 10


class KeywordMatchService:
    """Service for recording and querying keyword matches"""

    async def record(self, match: KeywordMatch) -> KeywordMatch:
        """Persist one match; a single insert, so it either fully succeeds or raises"""
        try:
            db = mongodb.get_database()
            result = await db.keyword_matches.insert_one(match.model_dump(exclude={"id"}))
            match.id = str(result.inserted_id)
            logger.info("Keyword match recorded for user %s: '%s'", match.user_id, match.keyword)
            return match
        except Exception as e:
            logger.error("Failed to record keyword match for user %s: %s", match.user_id, e)
            raise

    async def _find(self, query: dict, limit: int) -> List[KeywordMatch]:
        db = mongodb.get_database()
        matches = []
        async for doc in db.keyword_matches.find(query).sort("timestamp", DESCENDING).limit(limit):
            matches.append(KeywordMatch.from_document(doc))
        return matches

    async def get_matches_by_user(self, user_id: int, limit: int = 50) -> List[KeywordMatch]:
        try:
            return await self._find({"user_id": user_id}, limit)
        except Exception as e:
            logger.error("Failed to get matches by user %s: %s", user_id, e)
            raise

    async def get_matches_by_keyword(self, keyword: str, limit: int = 50) -> List[KeywordMatch]:
        try:
            return await self._find({"keyword": keyword}, limit)
        except Exception as e:
            logger.error("Failed to get matches by keyword '%s': %s", keyword, e)
            raise

    async def get_recent_matches(self, limit: int = 100) -> List[KeywordMatch]:
        try:
            return await self._find({}, limit)
        except Exception as e:
            logger.error("Failed to get recent matches: %s", e)
            raise

    async def get_matches_by_character_limit(self, max_length: int, limit: int = 100) -> List[KeywordMatch]:
        try:
            return await self._find({"message_length": {"$lte": max_length}}, limit)
        except Exception as e:
            logger.error("Failed to get matches by character limit: %s", e)
            raise

    async def get_matches_by_user_and_character_limit(
        self, user_id: int, max_length: int, limit: int = 50
    ) -> List[KeywordMatch]:
        try:
            return await self._find({"user_id": user_id, "message_length": {"$lte": max_length}}, limit)
        except Exception as e:
            logger.error("Failed to get matches by user and character limit: %s", e)
            raise

    async def get_matches_for_message(self, chat_id: int, message_id: int) -> List[KeywordMatch]:
        try:
            return await self._find({"chat_id": chat_id, "message_id": message_id}, 0)
        except Exception as e:
            logger.error("Failed to get matches for message %s in chat %s: %s", message_id, chat_id, e)
            raise

    async def prune_older_than(self, days: int = 30) -> int:
        """Delete matches strictly older than now - days; returns the number removed"""
        cutoff = mongodb.get_current_time() - timedelta(days=days)
        try:
            db = mongodb.get_database()
            result = await db.keyword_matches.delete_many({"timestamp": {"$lt": cutoff}})
            logger.info("Deleted %s old keyword matches", result.deleted_count)
            return result.deleted_count
        except Exception as e:
            logger.error("Failed to delete old matches: %s", e)
            raise

    async def aggregate_stats(self, user_id: Optional[int] = None, days: int = 7) -> MatchStats:
        """Total matches, average message length and top keywords over the trailing window"""
        cutoff = mongodb.get_current_time() - timedelta(days=days)
        query: Dict = {"timestamp": {"$gte": cutoff}}
        if user_id is not None:
            query["user_id"] = user_id

        try:
            db = mongodb.get_database()
            total = 0
            length_sum = 0
            keyword_counts: Dict[str, int] = {}
            user_ids = set()

            # Natural insertion order, so ties keep the first-seen keyword first
            cursor = db.keyword_matches.find(
                query, {"keyword": 1, "message_length": 1, "user_id": 1}
            ).sort("_id", ASCENDING)
            async for doc in cursor:
                total += 1
                length_sum += doc.get("message_length", 0)
                keyword = doc["keyword"]
                keyword_counts[keyword] = keyword_counts.get(keyword, 0) + 1
                user_ids.add(doc.get("user_id"))

            top_keywords = sorted(keyword_counts.items(), key=lambda item: item[1], reverse=True)
            return MatchStats(
                total_matches=total,
                average_message_length=math.floor(length_sum / total + 0.5) if total else 0,
                top_keywords=[
                    KeywordCount(keyword=keyword, count=count) for keyword, count in top_keywords[:TOP_KEYWORDS_LIMIT]
                ],
                active_users=len(user_ids) if user_id is None else None,
                days=days,
            )
        except Exception as e:
            logger.error("Failed to get match stats: %s", e)
            raise

    async def get_global_stats(self, days: int = 7) -> MatchStats:
        return await self.aggregate_stats(None, days)


# Global instance
keyword_match_service = KeywordMatchService()
