import logging

from pymongo import ASCENDING, DESCENDING

from app.db.mongodb import mongodb

logger = logging.getLogger(__name__)


async def init_database():
    """Initialize database with collections and indexes"""
    try:
        db = mongodb.get_database()

        # Indexes for users collection
        await db.users.create_index("user_id", unique=True)
        await db.users.create_index("phone_number", unique=True, sparse=True)
        await db.users.create_index("is_authenticated")
        await db.users.create_index("is_active")

        # Indexes for keyword_matches collection
        await db.keyword_matches.create_index([("user_id", ASCENDING), ("timestamp", DESCENDING)])
        await db.keyword_matches.create_index([("keyword", ASCENDING), ("timestamp", DESCENDING)])
        await db.keyword_matches.create_index([("chat_id", ASCENDING), ("message_id", ASCENDING)])
        await db.keyword_matches.create_index([("timestamp", DESCENDING)])
        await db.keyword_matches.create_index("message_length")

        # Indexes for auth_sessions collection
        await db.auth_sessions.create_index("user_id", unique=True)
        await db.auth_sessions.create_index("phone_number")
        await db.auth_sessions.create_index("is_active")

        logger.info("Database indexes created successfully")

    except Exception as e:
        logger.error("Error initializing database: %s", e)
        raise
