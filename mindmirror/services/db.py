# async mongodb client for the backend api
# uses motor for non-blocking operations

import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from mindmirror.config import settings

logger = logging.getLogger(__name__)


class Database:
    """async mongodb connection manager"""

    def __init__(self):
        self.client: Optional[AsyncIOMotorClient] = None
        self.db: Optional[AsyncIOMotorDatabase] = None

    async def connect(self):
        """establish connection to mongodb and ensure reflection indexes"""
        if self.client is not None:
            return

        logger.info(f"Connecting to MongoDB database: {settings.MONGODB_DATABASE}")
        client_kwargs = {}
        if settings.MONGODB_CREDENTIALS_PATH:
            client_kwargs["tls"] = True
            client_kwargs["tlsCertificateKeyFile"] = settings.MONGODB_CREDENTIALS_PATH
        self.client = AsyncIOMotorClient(settings.MONGODB_URI, **client_kwargs)
        self.db = self.client[settings.MONGODB_DATABASE]

        # verify connection
        await self.client.admin.command("ping")

        # date lookups and recent-first listings are both scoped by user
        await self.reflections.create_index([("user_id", 1), ("date", 1), ("created_at", -1)])
        await self.reflections.create_index([("user_id", 1), ("created_at", -1)])
        logger.info("MongoDB connection established")

    async def close(self):
        """close mongodb connection"""
        if self.client:
            self.client.close()
            self.client = None
            self.db = None
            logger.info("MongoDB connection closed")

    # collection accessors

    @property
    def reflections(self):
        return self.db["reflections"]

    @property
    def users(self):
        return self.db["users"]


# singleton instance
db = Database()


async def get_db() -> Database:
    """dependency injection for database access"""
    return db
