"""
MongoDB connection for the NEST API.

``db`` is None when DATABASE_URL / DATABASE_NAME are not configured; routes
report the database as unavailable in that case.
"""

from typing import Optional

from pymongo import MongoClient
from pymongo.database import Database

import settings

client: Optional[MongoClient] = None
db: Optional[Database] = None

if settings.DATABASE_URL and settings.DATABASE_NAME:
    # MongoClient connects lazily; nothing is sent until the first operation
    client = MongoClient(settings.DATABASE_URL, serverSelectionTimeoutMS=settings.MONGO_TIMEOUT_MS)
    db = client[settings.DATABASE_NAME]


def get_db() -> Optional[Database]:
    return db


def close() -> None:
    global client, db
    if client is not None:
        client.close()
    client = None
    db = None
