"""
LeadsFlow CRM - MongoDB access

- check_connection(): throwaway probe for the setup wizard, never pooled
- Database: the application's single live connection
- get_db(): route dependency
"""

import asyncio
import logging
from typing import Dict, Optional

from fastapi import HTTPException, Request
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from config import DB_CONNECT_RETRIES, DB_CONNECT_RETRY_DELAY, DB_TEST_TIMEOUT_MS

logger = logging.getLogger("database")


async def check_connection(uri: str, database_name: str, timeout_ms: int = DB_TEST_TIMEOUT_MS) -> Dict:
    """
    Try to reach a MongoDB server with caller-supplied credentials.
    The client lives only for this call and is closed on every path.
    Returns {"success": True} or {"success": False, "error": "..."}.
    """
    client = None
    try:
        client = AsyncIOMotorClient(
            uri,
            serverSelectionTimeoutMS=timeout_ms,
            connectTimeoutMS=timeout_ms,
        )
        await client[database_name].command("ping")
        return {"success": True}
    except (PyMongoError, ValueError, TypeError) as e:
        logger.warning(f"[DB_TEST] Connection test failed for database {database_name}: {e}")
        return {"success": False, "error": str(e) or "Failed to connect to database"}
    finally:
        if client is not None:
            client.close()


class Database:
    """Owns the process-wide motor client. One live connection at a time."""

    def __init__(self, retries: int = DB_CONNECT_RETRIES, retry_delay: float = DB_CONNECT_RETRY_DELAY):
        self.retries = retries
        self.retry_delay = retry_delay
        self._client: Optional[AsyncIOMotorClient] = None
        self._db: Optional[AsyncIOMotorDatabase] = None

    @property
    def is_connected(self) -> bool:
        return self._db is not None

    @property
    def db(self) -> AsyncIOMotorDatabase:
        if self._db is None:
            raise RuntimeError("Database is not connected")
        return self._db

    async def connect(self, uri: str, database_name: str) -> bool:
        """
        Connect with a bounded number of attempts and a fixed delay.
        An existing connection is closed first.
        """
        if not uri:
            logger.error("MongoDB URI is not configured")
            return False

        await self.close()

        for attempt in range(1, self.retries + 1):
            client = AsyncIOMotorClient(
                uri,
                maxPoolSize=10,
                serverSelectionTimeoutMS=5000,
                socketTimeoutMS=45000,
            )
            try:
                await client[database_name].command("ping")
            except PyMongoError as e:
                client.close()
                logger.error(f"Failed to connect to MongoDB (attempt {attempt}/{self.retries}): {e}")
                if attempt < self.retries:
                    logger.info(f"Retrying in {self.retry_delay} seconds...")
                    await asyncio.sleep(self.retry_delay)
                continue

            self._client = client
            self._db = client[database_name]
            logger.info(f"Connected to MongoDB database: {database_name}")
            return True

        logger.error("All database connection attempts failed")
        return False

    async def close(self) -> None:
        if self._client is not None:
            self._client.close()
            logger.info("Disconnected from MongoDB")
        self._client = None
        self._db = None

    async def ensure_indexes(self) -> None:
        """Unique keys the seeding upserts and the routes rely on"""
        db = self.db
        await db.users.create_index("id", unique=True)
        await db.users.create_index("username", unique=True)
        await db.users.create_index("email")
        await db.users.create_index("phone")
        await db.leads.create_index("id", unique=True)
        await db.leads.create_index([("createdAt", -1)])
        await db.leads.create_index([("assignedTo", 1), ("status", 1)])
        await db.notes.create_index([("leadId", 1), ("createdAt", -1)])
        await db.activities.create_index([("leadId", 1), ("createdAt", -1)])
        await db.followups.create_index([("assignedTo", 1), ("dueDate", 1), ("isCompleted", 1)])
        await db.pipeline_stages.create_index("name", unique=True)
        await db.lead_sources.create_index("name", unique=True)
        await db.lead_statuses.create_index("name", unique=True)
        await db.notifications.create_index([("recipient", 1), ("createdAt", -1)])
        await db.verification_codes.create_index("expiresAt")
        logger.info("MongoDB indexes ensured")


# ==================== DEPENDENCY ====================

def get_db(request: Request) -> AsyncIOMotorDatabase:
    """FastAPI dependency: the live database attached to the app"""
    database: Database = request.app.state.database
    if not database.is_connected:
        raise HTTPException(status_code=503, detail="Database is not connected")
    return database.db
