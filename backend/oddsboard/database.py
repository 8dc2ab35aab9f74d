"""
backend/oddsboard/database.py

Purpose:
    MongoDB connection bootstrap and index management. The database handle is
    returned to the caller and passed to repositories explicitly.

Dependencies:
    - motor.motor_asyncio
    - pymongo
"""

import logging

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import DESCENDING

from oddsboard.services.usage_repository import USAGE_COLLECTION

logger = logging.getLogger("oddsboard.database")


async def connect_db(uri: str, db_name: str) -> tuple[AsyncIOMotorClient, AsyncIOMotorDatabase]:
    client = AsyncIOMotorClient(uri, maxPoolSize=10, minPoolSize=1)
    db = client[db_name]
    await ensure_indexes(db)
    logger.info("Connected to MongoDB database %s", db_name)
    return client, db


async def ensure_indexes(db: AsyncIOMotorDatabase) -> None:
    # History reads sort months newest first.
    await db[USAGE_COLLECTION].create_index([("month", DESCENDING)], name="month_desc")


def close_db(client: AsyncIOMotorClient | None) -> None:
    if client is not None:
        client.close()
