# motor connection for the record store
# owns the client lifecycle, the collection handles and the range-query indexes

import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection, AsyncIOMotorDatabase
from pymongo import ASCENDING, IndexModel

from clinic_metrics.config import settings

logger = logging.getLogger(__name__)

# every report query is a range scan on one of these timestamp fields,
# optionally narrowed by therapist / client / status
RECORD_INDEXES: dict[str, list[IndexModel]] = {
    "sessions": [
        IndexModel([("id", ASCENDING)], unique=True),
        IndexModel([("start_time", ASCENDING)]),
        IndexModel([("therapist_id", ASCENDING), ("start_time", ASCENDING)]),
        IndexModel([("client_id", ASCENDING), ("start_time", ASCENDING)]),
        IndexModel([("status", ASCENDING), ("start_time", ASCENDING)]),
    ],
    "clients": [IndexModel([("id", ASCENDING)], unique=True)],
    "therapists": [IndexModel([("id", ASCENDING)], unique=True)],
    "authorizations": [
        IndexModel([("id", ASCENDING)], unique=True),
        IndexModel([("created_at", ASCENDING)]),
    ],
    "billing_records": [
        IndexModel([("id", ASCENDING)], unique=True),
        IndexModel([("created_at", ASCENDING)]),
        IndexModel([("session_id", ASCENDING)]),
    ],
}


class Database:
    """holds the motor client and exposes the record collections"""

    def __init__(self):
        self.client: Optional[AsyncIOMotorClient] = None
        self.db: Optional[AsyncIOMotorDatabase] = None

    async def connect(self):
        if self.client is not None:
            return

        logger.info(f"Connecting to record store {settings.MONGODB_DATABASE}")
        self.client = AsyncIOMotorClient(
            settings.MONGODB_URI,
            appname="clinic-metrics",
            serverSelectionTimeoutMS=settings.MONGODB_TIMEOUT_MS,
        )
        self.db = self.client[settings.MONGODB_DATABASE]
        await self.client.admin.command("ping")
        logger.info("Record store connection ready")

    async def close(self):
        if self.client is None:
            return
        self.client.close()
        self.client = None
        self.db = None
        logger.info("Record store connection closed")

    async def create_indexes(self):
        """idempotent: mongodb skips indexes that already exist"""
        for name, indexes in RECORD_INDEXES.items():
            created = await self.db[name].create_indexes(indexes)
            logger.info(f"Indexes on {name}: {', '.join(created)}")

    @property
    def sessions(self) -> AsyncIOMotorCollection:
        return self.db["sessions"]

    @property
    def clients(self) -> AsyncIOMotorCollection:
        return self.db["clients"]

    @property
    def therapists(self) -> AsyncIOMotorCollection:
        return self.db["therapists"]

    @property
    def authorizations(self) -> AsyncIOMotorCollection:
        return self.db["authorizations"]

    @property
    def billing_records(self) -> AsyncIOMotorCollection:
        return self.db["billing_records"]


# one connection per process, handed to request handlers through get_db
db = Database()


async def get_db() -> Database:
    return db
