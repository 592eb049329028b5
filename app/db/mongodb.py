import logging
from datetime import datetime, timezone

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from app.core.config import settings
from app.exceptions import DatabaseNotConnectedError

logger = logging.getLogger(__name__)


class MongoDB:
    client: AsyncIOMotorClient = None

    async def connect_to_mongo(self, url: str = None):
        """Create database connection"""
        self.client = AsyncIOMotorClient(url or settings.MONGODB_URL, tz_aware=True)
        await self.client.admin.command("ping")
        logger.info("Connected to MongoDB")

    async def close_mongo_connection(self):
        """Close database connection"""
        if self.client:
            self.client.close()
            self.client = None
            logger.info("Disconnected from MongoDB")

    def get_database(self) -> AsyncIOMotorDatabase:
        """Get database instance"""
        if self.client is None:
            raise DatabaseNotConnectedError()
        return self.client.get_database()

    async def ping(self) -> bool:
        """Check whether the server answers"""
        if self.client is None:
            return False
        try:
            await self.client.admin.command("ping")
            return True
        except Exception as e:
            logger.warning("MongoDB ping failed: %s", e)
            return False

    @staticmethod
    def get_current_time():
        """Get current UTC time"""
        return datetime.now(timezone.utc)


mongodb = MongoDB()
